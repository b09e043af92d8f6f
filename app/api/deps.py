import threading
from typing import Optional

from fastapi import Depends, Request
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.errors import GatewayError, MethodNotAllowedError, UnauthorizedError, gateway_error_handler
from app.core.logger import logger
from app.core.security import SecretProvider, build_secret_provider, check_authorization
from app.infrastructure.db.dispatcher import DatabaseDispatcher
from app.infrastructure.db.mysql import create_mysql_database

# =========================
# Singletons + Locks
# =========================
_dispatcher: Optional[DatabaseDispatcher] = None
_secret_provider: Optional[SecretProvider] = None

_lock = threading.Lock()


def get_dispatcher() -> DatabaseDispatcher:
    global _dispatcher
    if _dispatcher is None:
        with _lock:
            if _dispatcher is None:
                logger.info("🔌 Creating MySQL pools for logical databases...")
                _dispatcher = DatabaseDispatcher.from_factory(create_mysql_database)
    return _dispatcher


def get_secret_provider() -> SecretProvider:
    global _secret_provider
    if _secret_provider is None:
        with _lock:
            if _secret_provider is None:
                _secret_provider = build_secret_provider()
    return _secret_provider


def require_auth(request: Request, provider: SecretProvider = Depends(get_secret_provider)):
    check_authorization(provider, request.headers.get("Authorization"))


def close_resources():
    global _dispatcher
    with _lock:
        if _dispatcher is not None:
            _dispatcher.close()
            _dispatcher = None


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """
    路由层自己抛的 404 / 405 也统一成 {"error": ...}。

    未声明的方法 (TRACE / PROPFIND 等) 到不了路由依赖，405 之前先补做鉴权。
    """
    if exc.status_code == 405 and request.scope["path"].startswith(("/rest", "/query")):
        provider = request.app.dependency_overrides.get(get_secret_provider, get_secret_provider)()
        try:
            check_authorization(provider, request.headers.get("Authorization"))
        except UnauthorizedError as e:
            return await gateway_error_handler(request, e)
        return await gateway_error_handler(request, MethodNotAllowedError())
    return await gateway_error_handler(request, GatewayError(str(exc.detail), exc.status_code))
