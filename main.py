import time
import uuid
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

# 引入路由
from app.api.v1.rest import router as rest_router
from app.api.v1.query import router as raw_query_router

from app.api.deps import close_resources, get_dispatcher, get_secret_provider, http_exception_handler
from app.core.config import settings
from app.core.errors import register_exception_handlers
from app.core.logger import logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🔥 [Startup] Gateway is warming up...")
    t0 = time.perf_counter()

    # ===========================
    # 1. 初始化各逻辑库的连接池
    # ===========================
    dispatcher = get_dispatcher()
    logger.info(f"   ✅ Database pools ready: {', '.join(dispatcher.names())}")

    # ===========================
    # 2. 预取 Bearer 密钥
    # ===========================
    if not get_secret_provider().get():
        logger.warning("   ⚠️ No gateway secret configured, every request will get 401.")

    elapsed = time.perf_counter() - t0
    logger.info(f"✅ [Startup] Ready! Took {elapsed:.2f}s")

    yield

    # ===========================
    # 3. 关闭资源
    # ===========================
    logger.info("🛑 [Shutdown] Closing database pools...")
    close_resources()


app = FastAPI(title="sql-rest-gateway", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_methods=["*"], allow_headers=["*"],
)

register_exception_handlers(app)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)


@app.middleware("http")
async def trace_id_middleware(request: Request, call_next):
    request.state.trace_id = request.headers.get("X-Trace-Id") or str(uuid.uuid4())
    response = await call_next(request)
    response.headers["X-Trace-Id"] = request.state.trace_id
    return response


# 注册路由
app.include_router(rest_router)
app.include_router(raw_query_router)


@app.get("/health")
def health():
    return {"ok": True}


if __name__ == "__main__":
    import uvicorn
    import os

    is_reload = os.getenv("UVICORN_RELOAD", "False").lower() == "true"

    uvicorn.run(
        "main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        reload=is_reload
    )
