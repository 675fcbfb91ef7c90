"""CTE-aware table extraction and write-target schema resolution."""

from __future__ import annotations

from sqlglot import exp
from sqlglot.optimizer.scope import traverse_scope

_DB_KINDS = {"DATABASE", "SCHEMA"}

def extract_tables(statement: exp.Expression) -> list[str]:
    """Extract all referenced table names from a SQL statement.

    Resolves CTEs and only returns real (physical) table names.
    Returns a sorted list of schema.table (or table) names.
    """
    cte_names: set[str] = set()
    source_tables: set[str] = set()

    try:
        scopes = list(traverse_scope(statement))
    except Exception:
        # Scope analysis fails on some DDL; fall back to a plain AST walk.
        return _walk_tables(statement)

    if not scopes:
        # DDL and other statements without scopes
        return _walk_tables(statement)

    for scope in scopes:
        if scope.is_cte:
            cte_names.add(scope.expression.parent.alias)

    for scope in scopes:
        for table in scope.tables:
            if table.name not in cte_names:
                source_tables.add(_qualified_name(table))

    # Write targets (INSERT INTO, DELETE FROM, UPDATE) aren't in scopes
    for table in _target_tables(statement):
        if table.name and table.name not in cte_names:
            source_tables.add(_qualified_name(table))

    return sorted(source_tables)

def target_schemas(statement: exp.Expression) -> list[str | None]:
    """Schema qualifiers of the tables a statement writes to.

    ``None`` marks an unqualified target. CREATE/DROP DATABASE|SCHEMA target
    the named schema itself. Returns an empty list when no target is found,
    which callers must treat as "target unknown".
    """
    if _is_database_statement(statement):
        return _database_names(statement)
    return [table.db or None for table in _target_tables(statement)]

def _is_database_statement(statement: exp.Expression) -> bool:
    if not isinstance(statement, (exp.Create, exp.Drop)):
        return False
    return str(statement.args.get("kind") or "").upper() in _DB_KINDS

def _database_names(statement: exp.Expression) -> list[str | None]:
    # The name is `this` in older sqlglot releases and under `tables` in newer ones.
    names: list[str | None] = []
    for node in [statement.this, *_arg_list(statement, "tables", "expressions")]:
        if isinstance(node, exp.Table):
            name = node.db or node.name
        elif isinstance(node, exp.Identifier):
            name = node.name
        else:
            continue
        if name:
            names.append(name)
    return names

def _arg_list(statement: exp.Expression, *keys: str) -> list[exp.Expression]:
    nodes: list[exp.Expression] = []
    for key in keys:
        value = statement.args.get(key)
        if isinstance(value, list):
            nodes.extend(value)
        elif isinstance(value, exp.Expression):
            nodes.append(value)
    return nodes

def _outer_tables(node: exp.Expression | None) -> list[exp.Table]:
    """Tables in ``node`` that are not inside a subquery (those are only read)."""
    if node is None:
        return []
    return [
        t for t in node.find_all(exp.Table)
        if t.name and t.find_ancestor(exp.Query, exp.CTE) is None
    ]

def _target_tables(statement: exp.Expression) -> list[exp.Table]:
    if isinstance(statement, exp.TruncateTable):
        return [t for t in statement.expressions if isinstance(t, exp.Table)]

    if isinstance(statement, (exp.Update, exp.Delete)):
        return _dml_targets(statement)

    if isinstance(statement, exp.Insert):
        this = statement.this
        if isinstance(this, exp.Schema):
            this = this.this
        return [this] if isinstance(this, exp.Table) else []

    if isinstance(statement, exp.Alter):
        # Covers RENAME TO other_schema.t as well as the altered table.
        return _outer_tables(statement)

    if not isinstance(statement, (exp.Create, exp.Drop)):
        return []

    kind = str(statement.args.get("kind") or "").upper()
    this = statement.this
    if kind == "INDEX":
        # The index name is not a table; the indexed table is.
        return [t for t in _outer_tables(statement) if t is not this]

    targets: list[exp.Table] = []
    if isinstance(this, exp.Schema):
        this = this.this
    if isinstance(this, exp.Table):
        targets.append(this)
    # DROP TABLE a, b
    for node in _arg_list(statement, "tables", "expressions"):
        if isinstance(node, exp.Table) and node is not this:
            targets.append(node)
    return targets

def _dml_targets(statement: exp.Expression) -> list[exp.Table]:
    """Every table an UPDATE or DELETE may write to.

    Multi-table forms (UPDATE a JOIN b ..., DELETE a FROM a JOIN b ...) can
    write to any joined table, so all of them count. Unqualified names that
    are only aliases of joined tables are dropped.
    """
    joined = _outer_tables(statement.this)
    for node in _arg_list(statement, "joins", "from", "from_", "using"):
        joined.extend(_outer_tables(node))

    aliases = {t.alias for t in joined if t.alias}
    targets = list(joined)
    for node in _arg_list(statement, "tables"):
        if not isinstance(node, exp.Table) or node in targets:
            continue
        if not node.db and node.name in aliases:
            continue
        targets.append(node)
    return targets

def _walk_tables(statement: exp.Expression) -> list[str]:
    """Simple AST walk fallback for DDL and other non-scoped statements."""
    tables: set[str] = set()
    for node in statement.walk():
        if isinstance(node, exp.Table) and node.name:
            tables.add(_qualified_name(node))
    return sorted(tables)

def _qualified_name(table: exp.Table) -> str:
    """Build schema.table or just table name."""
    if table.db:
        return f"{table.db}.{table.name}"
    return table.name
