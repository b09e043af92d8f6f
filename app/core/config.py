import os
from dotenv import load_dotenv

# 加载 .env
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
load_dotenv(os.path.join(project_root, ".env"))

# 逻辑库名 (与 LogicalDatabase 枚举保持一致)
LOGICAL_DATABASES = ("mcw_db", "utility_db", "catalog_db")


def _database_config(name: str) -> dict:
    """
    单个逻辑库的连接参数：<NAME>_HOST 等覆盖共享的 MYSQL_* 默认值
    """
    prefix = name.upper()
    return {
        "host": os.getenv(f"{prefix}_HOST", os.getenv("MYSQL_HOST", "127.0.0.1")),
        "port": int(os.getenv(f"{prefix}_PORT", os.getenv("MYSQL_PORT", "3306"))),
        "user": os.getenv(f"{prefix}_USER", os.getenv("MYSQL_USER", "root")),
        "password": os.getenv(f"{prefix}_PASSWORD", os.getenv("MYSQL_PASSWORD", "")),
        "database": os.getenv(f"{prefix}_SCHEMA", name),
    }


class Settings:
    # MySQL 配置 (每个逻辑库一套)
    DATABASES = {name: _database_config(name) for name in LOGICAL_DATABASES}

    # 连接池
    MYSQL_POOL_MAX_CONNECTIONS = int(os.getenv("MYSQL_POOL_MAX_CONNECTIONS", "20"))
    MYSQL_POOL_MIN_CACHED = int(os.getenv("MYSQL_POOL_MIN_CACHED", "0"))
    MYSQL_POOL_MAX_CACHED = int(os.getenv("MYSQL_POOL_MAX_CACHED", "5"))

    # SQL 执行超时时间 (毫秒)，默认 10秒，0 表示不限制
    SQL_TIMEOUT_MS = int(os.getenv("SQL_TIMEOUT_MS", "10000"))

    # Bearer 密钥：优先读文件 (方便轮换)，否则读环境变量
    GATEWAY_SECRET = os.getenv("GATEWAY_SECRET")
    GATEWAY_SECRET_FILE = os.getenv("GATEWAY_SECRET_FILE")
    SECRET_REFRESH_SECONDS = float(os.getenv("SECRET_REFRESH_SECONDS", "300"))
    SECRET_RETRY_SECONDS = float(os.getenv("SECRET_RETRY_SECONDS", "5"))

    # CORS
    CORS_ALLOW_ORIGINS = [o.strip() for o in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",") if o.strip()]

    # 日志
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
    EVENT_LOG_PATH = os.getenv("EVENT_LOG_PATH", os.path.join(project_root, "logs", "events.jsonl"))


settings = Settings()
