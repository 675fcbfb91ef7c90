"""Root conftest — fake aiomysql pool, environment isolation, markers."""

from __future__ import annotations

import asyncio
import os

import aiomysql
import pytest

from mysqlgate import querylog


def pytest_configure(config):
    config.addinivalue_line("markers", "mysql: requires a running MySQL server")


def pytest_collection_modifyitems(config, items):
    if os.environ.get("MYSQLGATE_TEST_MYSQL"):
        return

    skip_mysql = pytest.mark.skip(reason="MySQL not available (set MYSQLGATE_TEST_MYSQL=1)")
    for item in items:
        if "mysql" in item.keywords:
            item.add_marker(skip_mysql)


_ENV_PREFIXES = ("MYSQL_", "ALLOW_", "SCHEMA_")


@pytest.fixture(autouse=True)
def _isolate(monkeypatch, tmp_path, request):
    """Keep tests away from the real environment, .env files and ~/.mysqlgate."""
    if "mysql" in request.keywords:
        yield
        return
    for name in list(os.environ):
        if name.startswith(_ENV_PREFIXES):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(querylog, "_LOG_ROOT", tmp_path / "logs")
    yield


# -- Fake aiomysql --


class FakeServer:
    """Scripted server behaviour shared by every fake connection."""

    def __init__(self) -> None:
        self.executed: list[tuple[str, tuple | None]] = []
        self.results: dict[str, list[dict]] = {"SELECT 1": [{"1": 1}]}
        self.error: Exception | None = None
        self.connect_error: Exception | None = None
        self.delay = 0.0
        self.affected_rows = 1
        self.last_insert_id = 0

    def handle(self, sql: str, args: tuple | None) -> list[dict] | None:
        self.executed.append((sql, args))
        if self.error is not None:
            raise self.error
        for prefix in sorted(self.results, key=len, reverse=True):
            if sql.strip().startswith(prefix):
                return self.results[prefix]
        return None


class FakeCursor:
    def __init__(self, server: FakeServer) -> None:
        self._server = server
        self._rows: list[dict] = []
        self.description = None
        self.rowcount = -1
        self.lastrowid = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def execute(self, sql, args=None):
        if self._server.delay:
            await asyncio.sleep(self._server.delay)
        rows = self._server.handle(sql, args)
        if rows is None:
            self.rowcount = self._server.affected_rows
            self.lastrowid = self._server.last_insert_id
            return self.rowcount
        self._rows = [dict(r) for r in rows]
        keys = list(rows[0]) if rows else ["?"]
        self.description = [(k,) for k in keys]
        self.rowcount = len(rows)
        return self.rowcount

    async def fetchall(self):
        return self._rows


class FakeConnection:
    def __init__(self, server: FakeServer) -> None:
        self._server = server
        self.closed = False

    def cursor(self, *cursor_classes):
        return FakeCursor(self._server)

    def close(self):
        self.closed = True


class FakePool:
    def __init__(self, server: FakeServer, kwargs: dict) -> None:
        self.server = server
        self.kwargs = kwargs
        self.maxsize = kwargs.get("maxsize", 10)
        self._free: list[FakeConnection] = [FakeConnection(server)]
        self._used: set[FakeConnection] = set()
        self.closed = False
        self.wait_closed_calls = 0

    @property
    def freesize(self) -> int:
        return len(self._free)

    @property
    def size(self) -> int:
        return len(self._free) + len(self._used)

    async def acquire(self):
        conn = self._free.pop() if self._free else FakeConnection(self.server)
        self._used.add(conn)
        return conn

    async def release(self, conn):
        self._used.discard(conn)
        if not conn.closed:
            self._free.append(conn)

    def close(self):
        self.closed = True

    async def wait_closed(self):
        self.wait_closed_calls += 1
        for conn in self._free:
            conn.close()
        self._free.clear()


@pytest.fixture
def server() -> FakeServer:
    return FakeServer()


@pytest.fixture
def fake_pools(monkeypatch, server) -> list[FakePool]:
    """Patch aiomysql.create_pool; the returned list collects created pools."""
    created: list[FakePool] = []

    async def create_pool(**kwargs):
        if server.connect_error is not None:
            raise server.connect_error
        pool = FakePool(server, kwargs)
        created.append(pool)
        return pool

    monkeypatch.setattr(aiomysql, "create_pool", create_pool)
    return created
