"""Internal types for the statement policy."""

from __future__ import annotations

import enum
from dataclasses import dataclass


class StatementType(enum.Enum):
    SELECT = "select"    # SELECT, SHOW, DESCRIBE, EXPLAIN, read-only WITH
    INSERT = "insert"    # INSERT, REPLACE
    UPDATE = "update"
    DELETE = "delete"
    DDL = "ddl"          # CREATE, ALTER, DROP, TRUNCATE, RENAME
    OTHER = "other"      # Anything we can't classify → never treated as read-only


MUTATING_TYPES = frozenset({
    StatementType.INSERT,
    StatementType.UPDATE,
    StatementType.DELETE,
    StatementType.DDL,
})


@dataclass(frozen=True)
class Classification:
    statement_type: StatementType
    keyword: str | None = None
    multiple_statements: bool = False
    executable_comment: bool = False
    tables: tuple[str, ...] = ()
    # Schema qualifiers of the write targets (None entry = unqualified).
    # None overall means the targets are unknown.
    target_schemas: tuple[str | None, ...] | None = None

    @property
    def is_read_only(self) -> bool:
        return (
            self.statement_type == StatementType.SELECT
            and not self.multiple_statements
            and not self.executable_comment
        )

    @property
    def is_mutation(self) -> bool:
        return self.statement_type in MUTATING_TYPES


@dataclass(frozen=True)
class Decision:
    allowed: bool
    schema: str | None = None
    reason: str | None = None
