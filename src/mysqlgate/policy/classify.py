"""Classify SQL statements by type (SELECT, INSERT, UPDATE, DELETE, DDL, OTHER)."""

from __future__ import annotations

from sqlglot import exp

from mysqlgate.policy._types import StatementType

_KEYWORDS: dict[str, StatementType] = {
    "SELECT": StatementType.SELECT,
    "SHOW": StatementType.SELECT,
    "DESCRIBE": StatementType.SELECT,
    "DESC": StatementType.SELECT,
    "EXPLAIN": StatementType.SELECT,
    "TABLE": StatementType.SELECT,  # MySQL 8 TABLE t
    "INSERT": StatementType.INSERT,
    "REPLACE": StatementType.INSERT,
    "UPDATE": StatementType.UPDATE,
    "DELETE": StatementType.DELETE,
    "CREATE": StatementType.DDL,
    "ALTER": StatementType.DDL,
    "DROP": StatementType.DDL,
    "TRUNCATE": StatementType.DDL,
    "RENAME": StatementType.DDL,
}

_READ_TYPES = (exp.Select, exp.Union, exp.Intersect, exp.Except)
_DML_TYPES: tuple[tuple[type[exp.Expression], StatementType], ...] = (
    (exp.Insert, StatementType.INSERT),
    (exp.Update, StatementType.UPDATE),
    (exp.Delete, StatementType.DELETE),
)
_DDL_TYPES = (exp.Create, exp.Drop, exp.Alter, exp.TruncateTable)
_INSPECT_TYPES = (exp.Show, exp.Describe)


def classify_keyword(keyword: str | None) -> StatementType:
    """Classify by leading keyword alone. Unknown keywords are OTHER."""
    if not keyword:
        return StatementType.OTHER
    return _KEYWORDS.get(keyword.upper(), StatementType.OTHER)


def _dml_type(node: exp.Expression) -> StatementType | None:
    for cls, stmt_type in _DML_TYPES:
        if isinstance(node, cls):
            return stmt_type
    return None


def _dml_in_cte(statement: exp.Expression) -> StatementType | None:
    """Return the DML type hidden in a writable CTE, if any."""
    for cte in statement.find_all(exp.CTE):
        stmt_type = _dml_type(cte.this)
        if stmt_type is not None:
            return stmt_type
    return None


def _has_into(statement: exp.Expression) -> bool:
    """SELECT ... INTO OUTFILE / @var writes outside the result set."""
    return isinstance(statement, exp.Select) and statement.find(exp.Into) is not None


def classify(statement: exp.Expression) -> StatementType | None:
    """Classify a parsed statement. Returns None when the AST is not conclusive.

    Anything we can't positively identify as read-only is never SELECT:
    - Writable CTEs: WITH d AS (DELETE ...) SELECT * FROM d → DELETE
    - SELECT ... INTO OUTFILE / DUMPFILE / @var → OTHER
    - exp.Command (statements sqlglot keeps as raw text) → by keyword
    """
    if isinstance(statement, exp.Subquery):
        return classify(statement.unnest())
    if isinstance(statement, _READ_TYPES):
        hidden = _dml_in_cte(statement)
        if hidden is not None:
            return hidden
        if _has_into(statement):
            return StatementType.OTHER
        return StatementType.SELECT
    dml = _dml_type(statement)
    if dml is not None:
        return dml
    if isinstance(statement, _DDL_TYPES):
        return StatementType.DDL
    if isinstance(statement, _INSPECT_TYPES):
        return StatementType.SELECT
    if isinstance(statement, exp.Command):
        return classify_keyword(str(statement.this))
    return None
