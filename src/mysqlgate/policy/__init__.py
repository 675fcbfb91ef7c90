"""Statement policy: classify, resolve the target schema, decide permission."""

from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING

import sqlglot
from sqlglot import exp
from sqlglot.errors import SqlglotError

from mysqlgate.policy._types import (
    MUTATING_TYPES,
    Classification,
    Decision,
    StatementType,
)
from mysqlgate.policy.classify import classify, classify_keyword
from mysqlgate.policy.safety import (
    DIALECT,
    explain_analyze_start,
    first_write_keyword,
    has_executable_comment,
    is_load_statement,
    leading_keyword,
    load_target,
    selects_into,
    split_statements,
)
from mysqlgate.policy.tables import extract_tables, target_schemas

if TYPE_CHECKING:
    from mysqlgate.config import Configuration

__all__ = [
    "Classification",
    "Decision",
    "StatementType",
    "check_permission",
    "classify_sql",
]


def classify_sql(sql: str) -> Classification:
    """Classify a raw SQL string.

    Steps:
        1. Tokenize and split on semicolons (comments are discarded)
        2. Classify by leading keyword (a SELECT with an INTO token is OTHER)
        3. Refine with the parsed AST when sqlglot can parse the statement
           (writable CTEs, SELECT ... INTO, table and schema extraction)

    Input that can't be tokenized, or whose leading keyword is unknown,
    classifies as OTHER. Parse failures keep the keyword classification so
    that malformed SQL still reaches the server and gets its error message.
    Write targets are only recorded when they come from a parsed statement
    (or the INTO TABLE clause of LOAD DATA); otherwise they stay unknown.
    """
    hidden_sql = has_executable_comment(sql)
    try:
        statements = split_statements(sql)
    except SqlglotError:
        return Classification(statement_type=StatementType.OTHER, executable_comment=hidden_sql)

    if not statements:
        return Classification(statement_type=StatementType.OTHER, executable_comment=hidden_sql)

    tokens = statements[0]
    keyword = leading_keyword(tokens)

    if len(statements) == 1:
        # EXPLAIN ANALYZE executes the wrapped statement, so it is classified as that statement.
        start = explain_analyze_start(tokens)
        if start is not None:
            inner = classify_sql(sql[start:])
            return dataclasses.replace(
                inner, keyword=keyword, executable_comment=inner.executable_comment or hidden_sql,
            )

    by_keyword = classify_keyword(keyword)
    has_into = selects_into(tokens)
    if by_keyword == StatementType.SELECT and has_into:
        by_keyword = StatementType.OTHER
    elif keyword == "WITH":
        # WITH ... UPDATE/DELETE (MySQL 8); without a parse, any write keyword counts.
        by_keyword = classify_keyword(first_write_keyword(tokens))
    elif is_load_statement(tokens):
        by_keyword = StatementType.INSERT

    if len(statements) > 1:
        return Classification(
            statement_type=by_keyword,
            keyword=keyword,
            multiple_statements=True,
            executable_comment=hidden_sql,
        )

    if is_load_statement(tokens):
        target = load_target(tokens)
        if target is None:
            return Classification(
                statement_type=by_keyword, keyword=keyword, executable_comment=hidden_sql,
            )
        schema, table = target
        return Classification(
            statement_type=by_keyword,
            keyword=keyword,
            executable_comment=hidden_sql,
            tables=(f"{schema}.{table}" if schema else table,),
            target_schemas=(schema,),
        )

    try:
        parsed = [s for s in sqlglot.parse(sql, read=DIALECT) if s is not None]
    except SqlglotError:
        parsed = []

    if len(parsed) != 1:
        return Classification(
            statement_type=by_keyword, keyword=keyword, executable_comment=hidden_sql,
        )

    statement = parsed[0]
    stmt_type = classify(statement)
    if stmt_type is None:
        stmt_type = by_keyword
    elif stmt_type == StatementType.SELECT and has_into:
        stmt_type = StatementType.OTHER

    targets: tuple[str | None, ...] | None = None
    if stmt_type in MUTATING_TYPES and not isinstance(statement, exp.Command):
        targets = tuple(target_schemas(statement)) or None

    return Classification(
        statement_type=stmt_type,
        keyword=keyword,
        executable_comment=hidden_sql,
        tables=tuple(extract_tables(statement)),
        target_schemas=targets,
    )


def check_permission(classification: Classification, config: Configuration) -> Decision:
    """Decide whether a classified statement may run under ``config``.

    Multiple statements and executable comments are always denied. SELECT
    and OTHER are not gated here (the read-only path rejects OTHER on its
    own). For writes, each target schema is resolved (explicit qualifier,
    else the configured database) and checked against the matching
    permission; an unresolvable schema is denied.

    When the targets are unknown (the statement did not parse), the write
    is allowed only if the answer can't depend on the schema: a single
    configured database and a permission with no per-schema overrides.
    """
    if classification.multiple_statements:
        return Decision(
            allowed=False,
            reason="multiple statements are not allowed; send one statement per call",
        )
    if classification.executable_comment:
        return Decision(
            allowed=False,
            reason="MySQL executable comments (/*! ... */) are not allowed",
        )

    stmt_type = classification.statement_type
    permission = config.permissions.for_type(stmt_type)
    if permission is None:
        return Decision(allowed=True, schema=config.database)

    label = stmt_type.name
    schemas = classification.target_schemas
    if not schemas:
        if config.multi_db_mode:
            return Decision(
                allowed=False,
                reason=(
                    f"{label} denied: cannot determine the target schema in "
                    "multi-database mode; qualify the table as schema.table"
                ),
            )
        if permission.is_schema_scoped:
            return Decision(
                allowed=False,
                reason=(
                    f"{label} denied: cannot determine the target schema, and "
                    f"{label} permissions are set per schema"
                ),
            )
        schemas = (None,)

    resolved: str | None = config.database
    for qualifier in schemas:
        resolved = qualifier or config.database
        if resolved is None:
            return Decision(
                allowed=False,
                reason=(
                    f"{label} denied: cannot determine the target schema in "
                    "multi-database mode; qualify the table as schema.table"
                ),
            )
        if not permission.allows(resolved):
            return Decision(
                allowed=False,
                schema=resolved,
                reason=f"{label} operations are not allowed for schema '{resolved}'",
            )
    return Decision(allowed=True, schema=resolved)
