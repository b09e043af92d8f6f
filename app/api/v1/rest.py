import asyncio

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from app.api.deps import get_dispatcher, require_auth
from app.api.v1.body import path_parts, read_json_body
from app.core.errors import ClientError, MethodNotAllowedError
from app.core.logger import logger
from app.infrastructure.db.dispatcher import DatabaseDispatcher
from app.modules.sql.compiler import compile_delete, compile_insert, compile_select, compile_update
from app.modules.sql.executor import execute_statement
from app.schemas.response import ERROR_RESPONSES, QueryResult, WriteAck

router = APIRouter(tags=["REST"], dependencies=[Depends(require_auth)], responses=ERROR_RESPONSES)

INVALID_PATH = "Invalid path. Expected format: /rest/{db_name}/{tableName}/{id?}"

# HEAD / OPTIONS 也进来，统一回 405
ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


async def _execute(db, statement, trace_id):
    # pymysql 是同步驱动，放到线程池跑
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(
        None,
        lambda: execute_statement(db, statement.sql, statement.params, trace_id=trace_id)
    )


@router.api_route("/rest", methods=ALL_METHODS)
@router.api_route("/rest/{path:path}", methods=ALL_METHODS)
async def rest_endpoint(request: Request, dispatcher: DatabaseDispatcher = Depends(get_dispatcher)):
    """
    通用 CRUD：
      GET    /rest/{db}/{table}[/{id}]  查询 (查询串做等值过滤 / 排序 / 分页)
      POST   /rest/{db}/{table}         新增
      PUT    /rest/{db}/{table}/{id}    更新 (PATCH 同)
      DELETE /rest/{db}/{table}/{id}    删除
    """
    trace_id = getattr(request.state, "trace_id", None)
    parts = path_parts(request)
    if len(parts) < 3:
        raise ClientError(INVALID_PATH)

    db_name, table_name = parts[1], parts[2]
    record_id = parts[3] if len(parts) > 3 else None
    method = request.method

    if method not in ("GET", "POST", "PUT", "PATCH", "DELETE"):
        raise MethodNotAllowedError()
    if method in ("PUT", "PATCH") and not record_id:
        raise ClientError("ID is required for updates")
    if method == "DELETE" and not record_id:
        raise ClientError("ID is required for deletion")

    # 先确认库名，未知库不编译也不执行
    db = dispatcher.resolve(db_name)

    logger.info(f"[REST] {method} {db_name}.{table_name} id={record_id}", extra={"trace_id": trace_id})

    if method == "GET":
        statement = compile_select(table_name, record_id, dict(request.query_params))
        return QueryResult(**await _execute(db, statement, trace_id))

    if method == "POST":
        statement = compile_insert(table_name, await read_json_body(request))
        result = await _execute(db, statement, trace_id)
        ack = WriteAck(message="Resource created successfully", data=QueryResult(**result))
        return JSONResponse(ack.model_dump(), status_code=201)

    if method in ("PUT", "PATCH"):
        statement = compile_update(table_name, record_id, await read_json_body(request))
        await _execute(db, statement, trace_id)
        return JSONResponse("Resource updated successfully", status_code=200)

    statement = compile_delete(table_name, record_id)
    await _execute(db, statement, trace_id)
    return WriteAck(message="Resource deleted successfully").model_dump(exclude_none=True)
