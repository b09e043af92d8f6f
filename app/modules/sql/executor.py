import time
import json
import os
import uuid
from decimal import Decimal
from datetime import datetime, date, timezone
from typing import Any, Dict, Optional, Sequence

from app.core.config import settings
from app.core.errors import ServerError
from app.core.logger import logger
from app.infrastructure.db.mysql import Database


# ==========================================
# 🛠️ 基础工具函数
# ==========================================
def _jsonable(v: Any):
    """
    处理 JSON 不支持的类型
    """
    if v is None:
        return None
    if isinstance(v, (datetime, date)):
        return v.isoformat()
    if isinstance(v, Decimal):
        return float(v)  # Decimal -> float，防止 json dump 报错
    if isinstance(v, (bytes, bytearray)):
        return v.decode("utf-8", errors="ignore")
    return v


def _bindable(v: Any):
    # 请求体里嵌套的对象 / 数组按 JSON 文本入库
    if isinstance(v, (dict, list)):
        return json.dumps(v, ensure_ascii=False)
    return v


def append_event(event: dict):
    """写入审计日志"""
    try:
        log_dir = os.path.dirname(settings.EVENT_LOG_PATH)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        with open(settings.EVENT_LOG_PATH, "a", encoding="utf-8") as f:
            f.write(json.dumps(event, ensure_ascii=False) + "\n")
    except OSError as e:
        logger.warning(f"[Log Error] Failed to write event log: {e}")


def translate_placeholders(sql: str, paramstyle: str) -> str:
    """
    把 ? 占位符换成驱动的风格。

    format 风格 (pymysql) 会对整条 SQL 做 % 格式化，所以字面量 % 要写成 %%；
    引号 / 反引号 / 注释 (-- 、#、/* */) 里的 ? 保持原样。
    """
    if paramstyle == "qmark":
        return sql
    if paramstyle != "format":
        raise ValueError(f"Unsupported paramstyle: {paramstyle}")

    out = []
    quote = None
    comment = None  # "line" / "block"
    i = 0
    n = len(sql)
    while i < n:
        ch = sql[i]
        if ch == "%":
            out.append("%%")
        elif comment == "line":
            out.append(ch)
            if ch == "\n":
                comment = None
        elif comment == "block":
            out.append(ch)
            if ch == "*" and sql[i + 1:i + 2] == "/":
                out.append("/")
                i += 1
                comment = None
        elif quote:
            out.append(ch)
            if ch == "\\" and quote != "`" and i + 1 < n:
                # 反斜杠转义，下一个字符原样带走
                i += 1
                out.append("%%" if sql[i] == "%" else sql[i])
            elif ch == quote:
                if i + 1 < n and sql[i + 1] == quote:
                    # '' 形式的转义引号
                    out.append(quote)
                    i += 1
                else:
                    quote = None
        elif ch in ("'", '"', "`"):
            quote = ch
            out.append(ch)
        elif ch == "#" or (ch == "-" and sql[i + 1:i + 2] == "-" and (i + 2 >= n or sql[i + 2].isspace())):
            # MySQL 的 -- 注释后面必须跟空白
            comment = "line"
            out.append(ch)
        elif ch == "/" and sql[i + 1:i + 2] == "*":
            comment = "block"
            out.append("/*")
            i += 1
        elif ch == "?":
            out.append("%s")
        else:
            out.append(ch)
        i += 1
    return "".join(out)


# ==========================================
# 执行器：一次只跑一条语句，不重试、不开事务
# ==========================================
def execute_statement(db: Database, sql: str, params: Optional[Sequence[Any]] = None,
                      trace_id: str = None) -> Dict[str, Any]:
    if not trace_id:
        trace_id = str(uuid.uuid4())
    params = tuple(params or ())

    start = time.time()
    rows = []
    changes = 0
    last_row_id = None
    err = None

    try:
        query = translate_placeholders(sql, db.paramstyle)
        with db.connection() as conn:
            cur = conn.cursor()
            try:
                cur.execute(query, tuple(_bindable(p) for p in params))
                if cur.description:
                    columns = [d[0] for d in cur.description]
                    for row in cur.fetchall():
                        rows.append({col: _jsonable(val) for col, val in zip(columns, row)})
                else:
                    changes = max(cur.rowcount, 0)
                last_row_id = _jsonable(cur.lastrowid)
            finally:
                cur.close()
    except Exception as e:
        err = str(e)
        logger.error(f"[Execute Error] {err}", extra={"trace_id": trace_id, "db_name": db.name})
        raise ServerError(err) from e
    finally:
        latency_ms = int((time.time() - start) * 1000)
        append_event({
            "trace_id": trace_id,
            "db_name": db.name,
            "sql": sql,
            "param_count": len(params),
            "latency_ms": latency_ms,
            "error": err[:500] if err else None,
            "status": "ERROR" if err else "SUCCESS",
            "ts_iso": datetime.now(timezone.utc).isoformat(),
        })

    logger.info(f"[Execute] rows={len(rows)} changes={changes} latency={latency_ms}ms",
                extra={"trace_id": trace_id, "db_name": db.name})

    return {
        "results": rows,
        "success": True,
        "meta": {
            "duration": latency_ms,
            "rows_read": len(rows),
            "changes": changes,
            "last_row_id": last_row_id,
        },
    }
