"""JSON output for CLI commands."""

from __future__ import annotations

import base64
import datetime as dt
import json
import uuid
from decimal import Decimal

import click

from mysqlgate.gateway import QueryResult


def _json_default(value: object) -> object:
    """Serialize driver values that json can't handle natively."""
    if isinstance(value, (dt.datetime, dt.date, dt.time)):
        return value.isoformat()
    if isinstance(value, dt.timedelta):
        return str(value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (bytes, bytearray)):
        try:
            return bytes(value).decode("utf-8")
        except UnicodeDecodeError:
            return "base64:" + base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    if isinstance(value, uuid.UUID):
        return str(value)
    return str(value)


def dumps(document: object) -> str:
    return json.dumps(document, indent=2, default=_json_default)


def emit(document: dict[str, object]) -> None:
    click.echo(dumps(document))


def emit_result(result: QueryResult) -> None:
    emit(result.to_response())


def emit_error(message: str, error_type: str = "Error") -> None:
    emit({"success": False, "error": message, "errorType": error_type})
