"""Shared pytest fixtures: in-memory SQLite handles standing in for the MySQL pools."""
from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager

import pytest
from fastapi.testclient import TestClient

from app.api.deps import get_dispatcher, get_secret_provider
from app.core.config import settings
from app.core.security import SecretProvider
from app.infrastructure.db.dispatcher import DatabaseDispatcher, LogicalDatabase
from app.infrastructure.db.mysql import Database

SECRET = "s3cr3t-token"

USERS_SCHEMA = """
CREATE TABLE users (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL,
    age INTEGER,
    profile TEXT
);
INSERT INTO users (id, name, age) VALUES (1, 'Alice', 25);
INSERT INTO users (id, name, age) VALUES (2, 'Bob', 25);
INSERT INTO users (id, name, age) VALUES (3, 'Carol', 41);
INSERT INTO users (id, name, age) VALUES (123, 'Dave', 30);
CREATE TABLE "order" (id INTEGER PRIMARY KEY, total REAL);
INSERT INTO "order" (id, total) VALUES (1, 9.5);
CREATE TABLE docs (id TEXT PRIMARY KEY, title TEXT);
INSERT INTO docs (id, title) VALUES ('a/b', 'slashed');
INSERT INTO docs (id, title) VALUES ('a', 'plain');
"""


class SQLiteDatabase(Database):
    """Single shared connection; SQLite accepts backtick identifiers and ``?``."""

    paramstyle = "qmark"

    def __init__(self, name: str):
        super().__init__(name)
        self.conn = sqlite3.connect(":memory:", check_same_thread=False, isolation_level=None)
        self.conn.executescript(USERS_SCHEMA)
        self.checkouts = 0
        self._lock = threading.Lock()

    @contextmanager
    def connection(self):
        with self._lock:
            self.checkouts += 1
            yield self.conn

    def close(self):
        self.conn.close()

    def rows(self, sql: str, params=()):
        return self.conn.execute(sql, params).fetchall()


@pytest.fixture(autouse=True)
def event_log(tmp_path, monkeypatch):
    """Keep audit events out of the project tree."""
    path = tmp_path / "events.jsonl"
    monkeypatch.setattr(settings, "EVENT_LOG_PATH", str(path))
    return path


@pytest.fixture
def databases():
    dbs = {db: SQLiteDatabase(db.value) for db in LogicalDatabase}
    yield dbs
    for handle in dbs.values():
        handle.close()


@pytest.fixture
def mcw(databases) -> SQLiteDatabase:
    return databases[LogicalDatabase("mcw_db")]


@pytest.fixture
def client(databases):
    from main import app

    dispatcher = DatabaseDispatcher(databases)
    provider = SecretProvider(lambda: SECRET)
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    app.dependency_overrides[get_secret_provider] = lambda: provider
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth() -> dict:
    return {"Authorization": f"Bearer {SECRET}"}
