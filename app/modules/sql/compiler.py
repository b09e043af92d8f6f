import functools
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from app.core.errors import ClientError, GatewayError, ServerError
from app.modules.sql.identifier import quote_identifier, sanitize_identifier

# 查询串里的控制参数，不参与 WHERE 过滤
CONTROL_PARAMS = ("sort_by", "order", "limit", "offset")

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


@dataclass(frozen=True)
class CompiledStatement:
    sql: str
    params: Tuple[Any, ...] = ()


def parse_int(value: str):
    """
    取前导整数 ("10abc" -> 10)；完全不是数字时返回 NaN，照样绑定，交给数据库报错
    """
    m = _LEADING_INT.match(value)
    if not m:
        return float("nan")
    return int(m.group(1))


def _table(table_name: str) -> str:
    if not sanitize_identifier(table_name):
        raise ClientError("Invalid table name")
    return quote_identifier(table_name)


def _object_body(data: Any) -> Dict[str, Any]:
    # null / 数组 / 基础类型一律拒绝
    if not isinstance(data, dict):
        raise ClientError("Invalid data format")
    return data


def _guard(fn):
    # 编译期意外异常统一转成 500，ClientError 原样抛出
    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except GatewayError:
            raise
        except Exception as e:
            raise ServerError(str(e)) from e

    return wrapper


@_guard
def compile_select(table_name: str, record_id: Optional[str] = None,
                   query: Optional[Mapping[str, str]] = None) -> CompiledStatement:
    """
    GET: SELECT * FROM `t` [WHERE ...] [ORDER BY ...] [LIMIT ? [OFFSET ?]]

    query 为查询串映射 (同名 key 只保留最后一个值)。
    """
    query = query or {}
    sql = f"SELECT * FROM {_table(table_name)}"
    params: List[Any] = []
    conditions: List[str] = []

    if record_id:
        conditions.append("id = ?")
        params.append(record_id)

    for key, value in query.items():
        if key in CONTROL_PARAMS:
            continue
        conditions.append(f"{sanitize_identifier(key)} = ?")
        params.append(value)

    if conditions:
        sql += f" WHERE {' AND '.join(conditions)}"

    sort_by = query.get("sort_by")
    if sort_by:
        order = "DESC" if (query.get("order") or "").upper() == "DESC" else "ASC"
        sql += f" ORDER BY {sanitize_identifier(sort_by)} {order}"

    # offset 只有在 limit 存在时才生效
    limit = query.get("limit")
    if limit:
        sql += " LIMIT ?"
        params.append(parse_int(limit))

        offset = query.get("offset")
        if offset:
            sql += " OFFSET ?"
            params.append(parse_int(offset))

    return CompiledStatement(sql, tuple(params))


@_guard
def compile_insert(table_name: str, data: Any) -> CompiledStatement:
    table = _table(table_name)
    data = _object_body(data)

    columns = []
    params = []
    # 列和值按同一个 key 成对取，保证顺序一致
    for key, value in data.items():
        columns.append(sanitize_identifier(key))
        params.append(value)

    placeholders = ", ".join("?" for _ in columns)
    sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})"
    return CompiledStatement(sql, tuple(params))


@_guard
def compile_update(table_name: str, record_id: str, data: Any) -> CompiledStatement:
    """PUT/PATCH: 参数严格为 [字段值..., id]"""
    table = _table(table_name)
    data = _object_body(data)
    if not data:
        raise ClientError("No fields to update")

    assignments = ", ".join(f"{sanitize_identifier(key)} = ?" for key in data)
    sql = f"UPDATE {table} SET {assignments} WHERE id = ?"
    return CompiledStatement(sql, (*data.values(), record_id))


@_guard
def compile_delete(table_name: str, record_id: str) -> CompiledStatement:
    sql = f"DELETE FROM {_table(table_name)} WHERE id = ?"
    return CompiledStatement(sql, (record_id,))
