from enum import Enum
from typing import Callable, Dict, Optional

from app.core.config import LOGICAL_DATABASES
from app.core.errors import UnknownDatabaseError
from app.infrastructure.db.mysql import Database

# 支持的逻辑库，REST 与原始查询共用这一份
LogicalDatabase = Enum("LogicalDatabase", {name.upper(): name for name in LOGICAL_DATABASES}, type=str)


class DatabaseDispatcher:
    """逻辑库名 -> 数据库句柄 的查找表"""

    def __init__(self, handles: Dict[LogicalDatabase, Database]):
        missing = [db.value for db in LogicalDatabase if db not in handles]
        if missing:
            raise ValueError(f"No database handle configured for: {', '.join(missing)}")
        self._handles = dict(handles)

    @classmethod
    def from_factory(cls, factory: Callable[[str], Database]) -> "DatabaseDispatcher":
        return cls({db: factory(db.value) for db in LogicalDatabase})

    @staticmethod
    def parse_name(name: Optional[str]) -> LogicalDatabase:
        try:
            return LogicalDatabase(name)
        except ValueError:
            raise UnknownDatabaseError() from None

    def resolve(self, name: Optional[str]) -> Database:
        return self._handles[self.parse_name(name)]

    def names(self):
        return [db.value for db in self._handles]

    def close(self):
        for handle in self._handles.values():
            handle.close()
