"""Token-level checks that run before any parsing."""

from __future__ import annotations

import sqlglot
from sqlglot.tokens import Token, TokenType

DIALECT = "mysql"


def split_statements(sql: str) -> list[list[Token]]:
    """Tokenize SQL and split it into non-empty statements.

    Comments and whitespace never produce tokens, so leading comments,
    leading semicolons and trailing semicolons are all ignored.
    Raises sqlglot.errors.TokenError on untokenizable input.
    """
    statements: list[list[Token]] = []
    current: list[Token] = []
    for token in sqlglot.tokenize(sql, read=DIALECT):
        if token.token_type == TokenType.SEMICOLON:
            if current:
                statements.append(current)
            current = []
            continue
        current.append(token)
    if current:
        statements.append(current)
    return statements


def leading_keyword(tokens: list[Token]) -> str | None:
    """First keyword, skipping opening parentheses: `(SELECT 1)` leads with SELECT."""
    for token in tokens:
        if token.token_type != TokenType.L_PAREN:
            return token.text.upper()
    return None


def has_executable_comment(sql: str) -> bool:
    """Detect MySQL version comments (``/*! ... */``), which the server runs as SQL.

    The tokenizer discards them as comments, so they would otherwise be
    invisible to classification. Matches inside string literals too.
    """
    return "/*!" in sql


def selects_into(tokens: list[Token]) -> bool:
    """SELECT ... INTO OUTFILE / DUMPFILE / @var, detected without parsing."""
    return any(token.token_type == TokenType.INTO for token in tokens)


_WRITE_KEYWORDS = {"INSERT", "REPLACE", "UPDATE", "DELETE"}


def first_write_keyword(tokens: list[Token]) -> str | None:
    """First INSERT/REPLACE/UPDATE/DELETE keyword anywhere in a statement."""
    for token in tokens:
        text = token.text.upper()
        if text in _WRITE_KEYWORDS and token.token_type != TokenType.STRING:
            return text
    return None


_LOAD_FORMS = {"DATA", "XML"}


def load_target(tokens: list[Token]) -> tuple[str | None, str] | None:
    """(schema, table) written by LOAD DATA / LOAD XML, or None if not found.

    LOAD DATA [LOCAL] INFILE 'f' [REPLACE | IGNORE] INTO TABLE [db.]tbl ...
    """
    if len(tokens) < 2 or tokens[1].text.upper() not in _LOAD_FORMS:
        return None
    for i, token in enumerate(tokens):
        if token.token_type != TokenType.INTO:
            continue
        j = i + 1
        if j < len(tokens) and tokens[j].text.upper() == "TABLE":
            j += 1
        if j >= len(tokens):
            return None
        if j + 2 < len(tokens) and tokens[j + 1].token_type == TokenType.DOT:
            return tokens[j].text, tokens[j + 2].text
        return None, tokens[j].text
    return None


def is_load_statement(tokens: list[Token]) -> bool:
    return (
        len(tokens) >= 2
        and tokens[0].text.upper() == "LOAD"
        and tokens[1].text.upper() in _LOAD_FORMS
    )


def explain_analyze_start(tokens: list[Token]) -> int | None:
    """Character offset of the statement wrapped by EXPLAIN ANALYZE.

    EXPLAIN ANALYZE runs the statement it explains. Returns None for any
    other statement, or when nothing follows ANALYZE.
    """
    if len(tokens) < 3:
        return None
    if tokens[0].text.upper() not in {"EXPLAIN", "DESCRIBE", "DESC"}:
        return None
    if tokens[1].text.upper() != "ANALYZE":
        return None
    return tokens[2].start
