"""Error taxonomy shared by the pool, the gateway and the CLI.

Every error carries a stable ``kind`` that is reported to callers as
``errorType`` in the JSON response.
"""

from __future__ import annotations

import pymysql

# Server and client error codes that mean "could not reach or log in to the
# server" rather than "the server rejected this statement".
_CONNECTION_ERROR_CODES = frozenset({
    1044,  # ER_DBACCESS_DENIED_ERROR
    1045,  # ER_ACCESS_DENIED_ERROR
    1049,  # ER_BAD_DB_ERROR
    2002,  # CR_CONNECTION_ERROR (socket)
    2003,  # CR_CONN_HOST_ERROR
    2005,  # CR_UNKNOWN_HOST
    2006,  # CR_SERVER_GONE_ERROR
    2013,  # CR_SERVER_LOST
})


class GatewayError(Exception):
    """Base class for every failure the gateway reports."""

    kind = "Error"


class PermissionDenied(GatewayError):
    kind = "PermissionDenied"


class DatabaseConnectionError(GatewayError):
    kind = "ConnectionError"


class QueryError(GatewayError):
    kind = "QueryError"


class QueryTimeout(GatewayError):
    kind = "TimeoutError"


class ConfigurationError(GatewayError):
    kind = "ConfigurationError"


def _mysql_message(e: pymysql.err.MySQLError) -> tuple[int | None, str]:
    if len(e.args) >= 2 and isinstance(e.args[0], int):
        return e.args[0], str(e.args[1])
    return None, str(e)


def translate_driver_error(e: BaseException) -> GatewayError:
    """Map a driver or socket exception onto the gateway taxonomy."""
    if isinstance(e, GatewayError):
        return e
    if isinstance(e, pymysql.err.MySQLError):
        code, message = _mysql_message(e)
        if code in _CONNECTION_ERROR_CODES:
            return DatabaseConnectionError(f"MySQL connection failed ({code}): {message}")
        if code is not None:
            return QueryError(f"MySQL error {code}: {message}")
        return QueryError(f"MySQL error: {message}")
    if isinstance(e, OSError):
        return DatabaseConnectionError(f"MySQL connection failed: {e}")
    return QueryError(f"Unexpected error: {e}")
