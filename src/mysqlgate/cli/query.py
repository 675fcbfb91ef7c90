"""The `query` command: run one SQL statement through the gateway.

Reads run on the read-only path. Writes (INSERT/UPDATE/DELETE/DDL) run
only when the matching ALLOW_*_OPERATION / SCHEMA_*_PERMISSIONS setting
allows them for the target schema.
"""

from __future__ import annotations

import click

from mysqlgate.cli._shared import (
    fail,
    finish,
    load_configuration,
    record,
    resolve_sql_stdin,
    run_gateway,
)


@click.command(context_settings={"ignore_unknown_options": True})
@click.argument("sql", nargs=-1)
@click.option("--from-stdin", is_flag=True, help="Read SQL from stdin instead of arguments.")
@click.option(
    "--param",
    "-p",
    "params",
    multiple=True,
    help="Value bound to the next %s placeholder (repeatable).",
)
def query(sql: tuple[str, ...], from_stdin: bool, params: tuple[str, ...]) -> None:
    """Execute a SQL query.

    \b
    Examples:
      mysqlgate query "SELECT * FROM users LIMIT 5"
      mysqlgate query "SELECT * FROM users WHERE id = %s" -p 42
      echo "SHOW TABLES" | mysqlgate query --from-stdin
    """
    try:
        text = resolve_sql_stdin(" ".join(sql) or None, from_stdin)
    except click.UsageError as e:
        fail(e.format_message(), "UsageError")

    config = load_configuration()
    bound = list(params) if params else None
    result = run_gateway(config, lambda gateway: gateway.execute(text, bound))
    record("query", text, result, config, param_count=len(params))
    finish(result)
