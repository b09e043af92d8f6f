import os
import requests
from colorama import init, Fore, Style

init(autoreset=True)

BASE_URL = os.getenv("GATEWAY_URL", "http://localhost:8000")
TOKEN = os.getenv("GATEWAY_SECRET", "")
DB = os.getenv("SMOKE_DB", "mcw_db")

HEADERS = {"Authorization": f"Bearer {TOKEN}"}


def check(title, resp, expected_status):
    ok = resp.status_code == expected_status
    color = Fore.GREEN if ok else Fore.RED
    print(f"{color}{'PASS' if ok else 'FAIL'}{Style.RESET_ALL} {title} -> {resp.status_code}")
    if not ok:
        print(f"   {resp.text[:300]}")
    return ok


def main():
    results = []

    # 1. 列表 / 过滤排序 / 分页
    results.append(check("list users", requests.get(f"{BASE_URL}/rest/{DB}/users", headers=HEADERS), 200))
    results.append(check(
        "filter + sort",
        requests.get(f"{BASE_URL}/rest/{DB}/users",
                     params={"age": "25", "sort_by": "name", "order": "desc"}, headers=HEADERS),
        200,
    ))
    results.append(check(
        "paginate",
        requests.get(f"{BASE_URL}/rest/{DB}/users", params={"limit": "10", "offset": "20"}, headers=HEADERS),
        200,
    ))

    # 2. 增改删
    created = requests.post(f"{BASE_URL}/rest/{DB}/users", json={"name": "Smoke", "age": 30}, headers=HEADERS)
    results.append(check("create user", created, 201))
    new_id = None
    if created.status_code == 201:
        new_id = created.json()["data"]["meta"]["last_row_id"]

    if new_id:
        results.append(check(
            "update user",
            requests.patch(f"{BASE_URL}/rest/{DB}/users/{new_id}", json={"age": 31}, headers=HEADERS),
            200,
        ))
        results.append(check(
            "delete user",
            requests.delete(f"{BASE_URL}/rest/{DB}/users/{new_id}", headers=HEADERS),
            200,
        ))

    # 3. 原始查询
    results.append(check(
        "raw query",
        requests.post(f"{BASE_URL}/query/{DB}",
                      json={"query": "SELECT COUNT(*) AS n FROM users WHERE age > ?", "params": [20]},
                      headers=HEADERS),
        200,
    ))

    # 4. 拒绝场景
    results.append(check("no token", requests.get(f"{BASE_URL}/rest/{DB}/users"), 401))
    results.append(check("unknown db", requests.get(f"{BASE_URL}/rest/nope_db/users", headers=HEADERS), 400))

    passed = sum(results)
    color = Fore.GREEN if passed == len(results) else Fore.YELLOW
    print(f"\n{color}{passed}/{len(results)} checks passed")


if __name__ == "__main__":
    main()
