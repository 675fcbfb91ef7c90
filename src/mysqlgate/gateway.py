"""Query gateway, the single path through which SQL reaches MySQL.

Every call classifies the statement locally, rejects disallowed statement
types before a connection is acquired, runs allowed statements with a
bounded timeout, and turns the outcome (rows, affected-row count or error)
into a QueryResult. No exception escapes a gateway call.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import aiomysql

from mysqlgate.config import Configuration
from mysqlgate.errors import GatewayError, PermissionDenied, QueryTimeout, translate_driver_error
from mysqlgate.policy import Classification, check_permission, classify_sql
from mysqlgate.pool import ConnectionPool

Params = Sequence[Any] | None


@dataclass
class QueryResult:
    """Outcome of one gateway call: either data or an error, never both."""

    success: bool
    data: object | None = None
    error: str | None = None
    error_type: str | None = None
    execution_time_ms: float | None = None
    classification: Classification | None = None
    schema: str | None = None

    @classmethod
    def failure(
        cls, error: GatewayError, classification: Classification | None = None
    ) -> QueryResult:
        return cls(
            success=False,
            error=str(error),
            error_type=error.kind,
            classification=classification,
        )

    def to_response(self) -> dict[str, object]:
        """The transport shape: success, data | error, executionTime."""
        response: dict[str, object] = {"success": self.success}
        if self.success:
            response["data"] = self.data
        else:
            response["error"] = self.error
            response["errorType"] = self.error_type
        if self.execution_time_ms is not None:
            response["executionTime"] = round(self.execution_time_ms, 3)
        return response


def _read_only_rejection(classification: Classification) -> PermissionDenied:
    if classification.multiple_statements:
        reason = "multiple statements are not allowed; send one statement per call"
    elif classification.executable_comment:
        reason = "MySQL executable comments (/*! ... */) are not allowed"
    else:
        kind = classification.statement_type.name
        keyword = f" ({classification.keyword})" if classification.keyword else ""
        reason = f"read-only query rejected a {kind} statement{keyword}"
    return PermissionDenied(f"Permission denied: {reason}")


class QueryGateway:
    """Permission-gated executor bound to one configuration and one pool."""

    def __init__(self, config: Configuration, pool: ConnectionPool) -> None:
        self._config = config
        self._pool = pool

    @property
    def config(self) -> Configuration:
        return self._config

    async def execute_read_only_query(self, sql: str, params: Params = None) -> QueryResult:
        """Run a statement that only reads data.

        Anything not classified SELECT (including unknown keywords) is
        rejected with PermissionDenied before a connection is acquired.
        """
        classification = classify_sql(sql)
        if not classification.is_read_only:
            return QueryResult.failure(_read_only_rejection(classification), classification)
        return await self._run(sql, params, classification, schema=self._config.database)

    async def execute_query(self, sql: str, params: Params = None) -> QueryResult:
        """Run any statement, gating INSERT/UPDATE/DELETE/DDL on permissions."""
        return await self._execute_query(sql, params, classify_sql(sql))

    async def execute(self, sql: str, params: Params = None) -> QueryResult:
        """Dispatch: writes go through the permission gate, everything else is read-only."""
        classification = classify_sql(sql)
        if classification.is_mutation:
            return await self._execute_query(sql, params, classification)
        if not classification.is_read_only:
            return QueryResult.failure(_read_only_rejection(classification), classification)
        return await self._run(sql, params, classification, schema=self._config.database)

    async def ping(self) -> QueryResult:
        """Round-trip a trivial query and report the server version."""
        return await self.execute_read_only_query("SELECT 1 AS connected, VERSION() AS version")

    async def _execute_query(
        self, sql: str, params: Params, classification: Classification
    ) -> QueryResult:
        decision = check_permission(classification, self._config)
        if not decision.allowed:
            return QueryResult.failure(
                PermissionDenied(f"Permission denied: {decision.reason}"), classification,
            )
        return await self._run(sql, params, classification, schema=decision.schema)

    async def _run(
        self,
        sql: str,
        params: Params,
        classification: Classification,
        *,
        schema: str | None,
    ) -> QueryResult:
        args = tuple(params) if params is not None else None
        timeout = self._config.query_timeout
        try:
            async with self._pool.acquire() as conn:
                t0 = time.monotonic()
                data = await asyncio.wait_for(self._round_trip(conn, sql, args), timeout=timeout)
                duration_ms = (time.monotonic() - t0) * 1000
        except TimeoutError:
            return QueryResult.failure(
                QueryTimeout(f"Query exceeded the {timeout:g}s timeout"), classification,
            )
        except GatewayError as e:
            return QueryResult.failure(e, classification)
        except Exception as e:
            return QueryResult.failure(translate_driver_error(e), classification)

        return QueryResult(
            success=True,
            data=data,
            execution_time_ms=duration_ms,
            classification=classification,
            schema=schema,
        )

    @staticmethod
    async def _round_trip(
        conn: aiomysql.Connection, sql: str, args: tuple[Any, ...] | None
    ) -> object:
        async with conn.cursor(aiomysql.DictCursor) as cur:
            await cur.execute(sql, args)
            if cur.description:
                rows = await cur.fetchall()
                return [dict(row) for row in rows]
            return {"affectedRows": cur.rowcount, "insertId": cur.lastrowid}
