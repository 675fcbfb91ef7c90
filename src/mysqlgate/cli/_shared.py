"""Shared helpers: configuration, gateway lifecycle, result reporting."""

from __future__ import annotations

import asyncio
import contextlib
import sys
from collections.abc import Awaitable, Callable
from typing import NoReturn

import click
import pymysql

from mysqlgate.cli._output import emit_error, emit_result
from mysqlgate.config import Configuration, load_config
from mysqlgate.errors import ConfigurationError
from mysqlgate.gateway import QueryGateway, QueryResult
from mysqlgate.pool import ConnectionPool
from mysqlgate.querylog import cleanup_old_logs, log_query

GatewayCall = Callable[[QueryGateway], Awaitable[QueryResult]]


def fail(message: str, error_type: str = "Error") -> NoReturn:
    """Emit a JSON error and exit 1."""
    emit_error(message, error_type)
    raise SystemExit(1)


def resolve_sql_stdin(sql: str | None, from_stdin: bool) -> str:
    """Resolve SQL from positional arguments or stdin. Exactly one source required."""
    if sql and from_stdin:
        raise click.UsageError("Provide SQL as an argument or --from-stdin, not both.")
    if from_stdin:
        if sys.stdin.isatty():
            raise click.UsageError("--from-stdin requires piped input (stdin is a terminal).")
        text = sys.stdin.read().strip()
        if not text:
            raise click.UsageError("--from-stdin: stdin was empty.")
        return text
    if not sql or not sql.strip():
        raise click.UsageError("SQL query is required")
    return sql


def load_configuration() -> Configuration:
    """Resolve configuration once; a bad environment exits with a JSON error."""
    try:
        return load_config()
    except ConfigurationError as e:
        fail(f"Invalid configuration: {e}", e.kind)


async def _with_gateway(config: Configuration, call: GatewayCall) -> QueryResult:
    pool = ConnectionPool(config)
    gateway = QueryGateway(config, pool)
    try:
        return await call(gateway)
    finally:
        # Errors while closing never change the outcome of the statement.
        with contextlib.suppress(pymysql.err.MySQLError, OSError):
            await pool.shutdown()


def run_gateway(config: Configuration, call: GatewayCall) -> QueryResult:
    """Run one gateway call on a fresh pool handle, then shut the pool down."""
    # The query log never changes the outcome of a command.
    with contextlib.suppress(OSError):
        cleanup_old_logs()
    try:
        return asyncio.run(_with_gateway(config, call))
    except Exception as e:
        fail(f"Unexpected error: {e}")


def record(
    command: str,
    sql: str,
    result: QueryResult,
    config: Configuration,
    *,
    param_count: int = 0,
) -> None:
    classification = result.classification
    with contextlib.suppress(OSError):
        log_query(
            command=command,
            sql=sql,
            host=config.display_host,
            schema=result.schema,
            statement_type=classification.statement_type.value if classification else None,
            tables=list(classification.tables) if classification else None,
            success=result.success,
            error_type=result.error_type,
            duration_ms=result.execution_time_ms,
            param_count=param_count,
        )


def finish(result: QueryResult) -> None:
    """Emit the result document and exit 1 on failure."""
    emit_result(result)
    if not result.success:
        raise SystemExit(1)
