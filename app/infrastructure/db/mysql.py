from contextlib import contextmanager
import pymysql
# 引入连接池模块
from dbutils.pooled_db import PooledDB
from app.core.config import settings


class Database:
    """
    一个逻辑库对应的数据库句柄。

    子类负责提供 DB-API 连接，并声明驱动的占位符风格 (qmark / format)。
    """
    paramstyle = "qmark"

    def __init__(self, name: str):
        self.name = name

    @contextmanager
    def connection(self):
        raise NotImplementedError

    def close(self):
        pass


class MySQLDatabase(Database):
    # pymysql 按位置使用 %s 占位符
    paramstyle = "format"

    def __init__(self, name: str, host: str, port: int, user: str, password: str, database: str):
        super().__init__(name)
        init_command = None
        if settings.SQL_TIMEOUT_MS > 0:
            init_command = f"SET SESSION MAX_EXECUTION_TIME={settings.SQL_TIMEOUT_MS}"

        self.pool = PooledDB(
            creator=pymysql,  # 使用 pymysql 库
            maxconnections=settings.MYSQL_POOL_MAX_CONNECTIONS,
            mincached=settings.MYSQL_POOL_MIN_CACHED,
            maxcached=settings.MYSQL_POOL_MAX_CACHED,
            maxshared=0,  # 0 表示所有连接都不共享
            blocking=True,  # 连接池满了阻塞等待

            # 以下是透传给 pymysql.connect 的参数
            host=host,
            port=port,
            user=user,
            password=password,
            database=database,
            charset="utf8mb4",
            autocommit=True,  # 每条语句独立提交，不开事务
            init_command=init_command,
            connect_timeout=10,
        )

    @contextmanager
    def connection(self):
        """
        从连接池获取连接，使用完毕后归还（而不是断开）。

        Usage:
            with db.connection() as conn:
                cur = conn.cursor()
                cur.execute(...)
        """
        # 1. 从池子里“借”一个连接
        conn = self.pool.connection()
        try:
            yield conn
        finally:
            # 2. 用完“还”回池子
            # 注意：在 PooledDB 中，.close() 并不是关闭 TCP 连接，而是重置状态并放回池中
            conn.close()

    def close(self):
        self.pool.close()


def create_mysql_database(name: str) -> MySQLDatabase:
    return MySQLDatabase(name, **settings.DATABASES[name])
