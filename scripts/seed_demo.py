import os
import sys
import pymysql

# 引入项目配置
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from app.core.config import settings
from app.modules.sql.identifier import sanitize_identifier

# 是否清空 users 表再灌数据（true/false）
RESET_DATA = os.getenv("RESET_DATA", "false").lower() == "true"

DDL_USERS = """
CREATE TABLE IF NOT EXISTS `users` (
    id INT AUTO_INCREMENT PRIMARY KEY,
    name VARCHAR(64) NOT NULL,
    age INT NULL,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
) DEFAULT CHARSET=utf8mb4
"""

DEMO_USERS = [
    ("John", 30),
    ("Alice", 25),
    ("Bob", 25),
    ("Carol", 41),
]


def seed(name: str, cfg: dict):
    schema = sanitize_identifier(cfg["database"])
    print(f"🌱 [{name}] seeding `{schema}` on {cfg['host']}:{cfg['port']}")

    conn = pymysql.connect(
        host=cfg["host"],
        port=cfg["port"],
        user=cfg["user"],
        password=cfg["password"],
        charset="utf8mb4",
        autocommit=True,
    )
    try:
        with conn.cursor() as cur:
            cur.execute(f"CREATE DATABASE IF NOT EXISTS `{schema}` DEFAULT CHARSET utf8mb4")
            cur.execute(f"USE `{schema}`")
            cur.execute(DDL_USERS)
            if RESET_DATA:
                cur.execute("TRUNCATE TABLE `users`")
            cur.executemany("INSERT INTO `users` (name, age) VALUES (%s, %s)", DEMO_USERS)
        print(f"   ✅ {len(DEMO_USERS)} users inserted")
    finally:
        conn.close()


def main():
    for name, cfg in settings.DATABASES.items():
        try:
            seed(name, cfg)
        except pymysql.MySQLError as e:
            print(f"   ❌ [{name}] seed failed: {e}")


if __name__ == "__main__":
    main()
