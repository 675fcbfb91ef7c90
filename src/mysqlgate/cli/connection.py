"""The `test-connection` command: handshake, round trip, report settings."""

from __future__ import annotations

import click

from mysqlgate import __version__
from mysqlgate.cli._shared import finish, load_configuration, record, run_gateway
from mysqlgate.gateway import QueryResult

PING_SQL = "SELECT 1 AS connected, VERSION() AS version"


@click.command("test-connection")
def test_connection_cmd() -> None:
    """Test the database connection and show effective permissions."""
    config = load_configuration()
    result = run_gateway(config, lambda gateway: gateway.ping())
    record("test-connection", PING_SQL, result, config)

    if not result.success:
        result.error = f"Connection failed: {result.error}"
        finish(result)

    rows = result.data if isinstance(result.data, list) else []
    server_version = rows[0].get("version") if rows else None
    finish(QueryResult(
        success=True,
        data={
            "connected": True,
            "version": __version__,
            "serverVersion": server_version,
            "host": config.display_host,
            "database": config.database or "Multi-DB Mode",
            "multiDbMode": config.multi_db_mode,
            "ssl": config.ssl,
            "permissions": config.permissions.summary(),
        },
        execution_time_ms=result.execution_time_ms,
    ))
