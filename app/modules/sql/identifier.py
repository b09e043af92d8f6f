import re

# 白名单：只保留字母数字下划线
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_]")


def sanitize_identifier(identifier: str) -> str:
    """
    标识符 (表名 / 列名 / 排序字段) 不能走占位符绑定，只能白名单过滤后拼接。
    可能返回空串，由调用方判断。
    """
    return _UNSAFE_CHARS.sub("", identifier)


def quote_identifier(identifier: str) -> str:
    """表名加反引号，避免和关键字冲突 (如 `order`, `group`)"""
    return f"`{sanitize_identifier(identifier)}`"
