"""Connection pool handle: one lazily created aiomysql pool per process.

The host process builds a single ConnectionPool and injects it into the
gateway. The underlying pool is created on first use, reused afterwards,
and closed by shutdown().
"""

from __future__ import annotations

import asyncio
import contextlib
import ssl
from collections.abc import AsyncIterator
from typing import Any

import aiomysql
import pymysql

from mysqlgate.config import Configuration
from mysqlgate.errors import DatabaseConnectionError, translate_driver_error


def _ssl_context(config: Configuration) -> ssl.SSLContext | None:
    if not config.ssl:
        return None
    ctx = ssl.create_default_context()
    if not config.ssl_reject_unauthorized:
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE
    return ctx


def connect_kwargs(config: Configuration) -> dict[str, Any]:
    """Keyword arguments for aiomysql.create_pool built from a Configuration."""
    kwargs: dict[str, Any] = {
        "user": config.user,
        "password": config.password,
        "minsize": 1,
        "maxsize": config.pool_size,
        "connect_timeout": config.connect_timeout,
        "autocommit": True,
        "charset": "utf8mb4",
    }
    if config.socket_path:
        kwargs["unix_socket"] = config.socket_path
    else:
        kwargs["host"] = config.host
        kwargs["port"] = config.port
    if config.database:
        kwargs["db"] = config.database
    ctx = _ssl_context(config)
    if ctx is not None:
        kwargs["ssl"] = ctx
    return kwargs


class ConnectionPool:
    """Lazily created aiomysql pool with scoped acquire/release."""

    def __init__(self, config: Configuration) -> None:
        self._config = config
        self._pool: aiomysql.Pool | None = None
        self._lock = asyncio.Lock()
        self._closed = False
        self.acquisitions = 0
        self.in_use = 0

    @property
    def created(self) -> bool:
        return self._pool is not None

    async def get_pool(self) -> aiomysql.Pool:
        """Return the pool, creating it (connect + handshake) on first call."""
        if self._pool is not None:
            return self._pool
        if self._closed:
            raise DatabaseConnectionError("Connection pool has been shut down")
        async with self._lock:
            if self._pool is None:
                self._pool = await self._create()
        return self._pool

    async def _create(self) -> aiomysql.Pool:
        try:
            return await asyncio.wait_for(
                aiomysql.create_pool(**connect_kwargs(self._config)),
                timeout=self._config.connect_timeout,
            )
        except TimeoutError as e:
            raise DatabaseConnectionError(
                f"MySQL connection failed: timed out after {self._config.connect_timeout:g}s "
                f"connecting to {self._config.display_host}"
            ) from e
        except (pymysql.err.MySQLError, OSError) as e:
            raise translate_driver_error(e) from e

    @contextlib.asynccontextmanager
    async def acquire(self) -> AsyncIterator[aiomysql.Connection]:
        """Check out one connection; it goes back to the pool on every exit path.

        A connection interrupted mid-statement (timeout or cancellation) is
        closed first, so the pool drops it instead of reusing it.
        """
        pool = await self.get_pool()
        try:
            conn = await asyncio.wait_for(pool.acquire(), timeout=self._config.connect_timeout)
        except TimeoutError as e:
            raise DatabaseConnectionError(
                f"No pooled connection available within {self._config.connect_timeout:g}s"
            ) from e
        except (pymysql.err.MySQLError, OSError) as e:
            raise translate_driver_error(e) from e

        self.acquisitions += 1
        self.in_use += 1
        try:
            yield conn
        except (TimeoutError, asyncio.CancelledError):
            conn.close()
            raise
        finally:
            self.in_use -= 1
            await pool.release(conn)

    async def shutdown(self) -> None:
        """Close every pooled connection. Safe to call repeatedly or before first use."""
        if self._pool is None:
            return
        pool, self._pool = self._pool, None
        self._closed = True
        pool.close()
        await pool.wait_closed()
