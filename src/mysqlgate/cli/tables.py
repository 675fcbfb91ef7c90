"""The `list-tables` and `describe` commands: information_schema lookups."""

from __future__ import annotations

import click

from mysqlgate.cli._shared import fail, finish, load_configuration, record, run_gateway
from mysqlgate.gateway import QueryResult

LIST_TABLES_SQL = """
    SELECT
        table_schema AS `database`,
        table_name AS name,
        table_rows AS rowCount,
        ROUND(data_length / 1024 / 1024, 2) AS dataSizeMB,
        table_comment AS description
    FROM information_schema.tables
    WHERE table_schema NOT IN ('information_schema', 'mysql', 'performance_schema', 'sys')
    ORDER BY table_schema, table_name
"""

_DESCRIBE_COLUMNS = """
    SELECT
        table_schema AS `database`,
        column_name AS name,
        data_type AS type,
        column_type AS fullType,
        is_nullable AS nullable,
        column_key AS `key`,
        column_default AS `default`,
        extra,
        column_comment AS comment
    FROM information_schema.columns
"""


def describe_sql(table_ref: str, *, database: str | None) -> tuple[str, list[str]]:
    """Build the describe query for ``table`` or ``schema.table``.

    An unqualified name is looked up in the configured database, or in every
    schema in multi-database mode.
    """
    if "." in table_ref:
        schema_name, table_name = table_ref.split(".", 1)
    else:
        schema_name, table_name = database, table_ref

    where = ["table_name = %s"]
    params = [table_name.strip("`")]
    if schema_name:
        where.append("table_schema = %s")
        params.append(schema_name.strip("`"))

    sql = (
        f"{_DESCRIBE_COLUMNS}    WHERE {' AND '.join(where)}\n"
        "    ORDER BY table_schema, ordinal_position\n"
    )
    return sql, params


@click.command("list-tables")
def list_tables() -> None:
    """List all tables in the database."""
    config = load_configuration()
    result = run_gateway(config, lambda gateway: gateway.execute_read_only_query(LIST_TABLES_SQL))
    record("list-tables", LIST_TABLES_SQL, result, config)
    if not result.success:
        result.error = f"Failed to list tables: {result.error}"
    finish(result)


@click.command("describe")
@click.argument("table", required=False, default=None)
def describe(table: str | None) -> None:
    """Show table structure. TABLE is table or schema.table."""
    if not table or not table.strip():
        fail("Table name is required", "UsageError")

    config = load_configuration()
    sql, params = describe_sql(table.strip(), database=config.database)
    result = run_gateway(config, lambda gateway: gateway.execute_query(sql, params))
    record("describe", sql, result, config, param_count=len(params))

    if result.success and not result.data:
        result = QueryResult(
            success=False,
            error=f"Table '{table}' not found",
            error_type="QueryError",
            execution_time_ms=result.execution_time_ms,
        )
    elif not result.success:
        result.error = f"Failed to describe table: {result.error}"
    finish(result)
