from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core.logger import logger


class GatewayError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ClientError(GatewayError):
    """请求本身有问题 (路径 / 请求体 / 库名)，返回 4xx"""
    status_code = 400


class UnauthorizedError(ClientError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class MethodNotAllowedError(ClientError):
    status_code = 405

    def __init__(self, message: str = "Method not allowed"):
        super().__init__(message)


class UnknownDatabaseError(ClientError):
    def __init__(self, message: str = "Unknown database name"):
        super().__init__(message)


class ServerError(GatewayError):
    """编译或执行 SQL 时的意外异常，原样透出错误信息"""
    status_code = 500


async def gateway_error_handler(request: Request, exc: GatewayError):
    trace_id = getattr(request.state, "trace_id", "N/A")
    if exc.status_code >= 500:
        logger.error(f"[{request.method} {request.url.path}] {exc.message}", extra={"trace_id": trace_id})
    else:
        logger.warning(f"[{request.method} {request.url.path}] {exc.message}", extra={"trace_id": trace_id})
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(GatewayError, gateway_error_handler)
