from pydantic import BaseModel
from typing import Any, Optional, Dict, List


class ErrorResponse(BaseModel):
    error: str


class QueryMeta(BaseModel):
    duration: int = 0               # 执行耗时 (毫秒)
    rows_read: int = 0
    changes: int = 0                # 写操作影响的行数
    last_row_id: Optional[Any] = None


class QueryResult(BaseModel):
    results: List[Dict[str, Any]] = []
    success: bool = True
    meta: QueryMeta = QueryMeta()


class WriteAck(BaseModel):
    message: str
    data: Optional[QueryResult] = None


# 路由文档里登记的错误返回
ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    405: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}
