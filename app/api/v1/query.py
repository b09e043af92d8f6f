import asyncio

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError

from app.api.deps import get_dispatcher, require_auth
from app.api.v1.body import path_parts, read_json_body
from app.core.errors import ClientError
from app.core.logger import logger
from app.infrastructure.db.dispatcher import DatabaseDispatcher
from app.modules.sql.executor import execute_statement
from app.schemas.request import RawQueryRequest
from app.schemas.response import ERROR_RESPONSES, QueryResult

router = APIRouter(tags=["Raw SQL Executor"], dependencies=[Depends(require_auth)], responses=ERROR_RESPONSES)

INVALID_PATH = "Invalid path. Expected format: /query/{db_name}"


@router.post("/query", response_model=QueryResult)
@router.post("/query/{path:path}", response_model=QueryResult)
async def execute_raw_query_endpoint(request: Request, dispatcher: DatabaseDispatcher = Depends(get_dispatcher)):
    """
    原样执行带参数的 SQL，不做任何清洗 (调用方已鉴权，自行负责)
    """
    trace_id = getattr(request.state, "trace_id", None)
    parts = path_parts(request)
    if len(parts) < 2:
        raise ClientError(INVALID_PATH)

    db = dispatcher.resolve(parts[1])

    body = await read_json_body(request)
    if not isinstance(body, dict):
        raise ClientError("Query is required")
    try:
        req = RawQueryRequest.model_validate(body)
    except ValidationError as e:
        if any(err["loc"][:1] == ("params",) for err in e.errors()):
            raise ClientError("params must be an array") from None
        raise ClientError("Query is required") from None

    if not req.query:
        raise ClientError("Query is required")

    logger.info(f"[Raw Query] db={db.name} params={len(req.params or [])}", extra={"trace_id": trace_id})

    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(
        None,
        lambda: execute_statement(db, req.query, req.params, trace_id=trace_id)
    )
