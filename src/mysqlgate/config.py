"""Environment configuration: connection parameters and permission flags.

Settings are read once at process start (optionally from a ``.env`` file)
into an immutable :class:`Configuration`. Nothing mutates it afterwards.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType

from dotenv import load_dotenv

from mysqlgate.errors import ConfigurationError
from mysqlgate.policy._types import StatementType

_TRUE = {"true", "1", "yes", "on"}
_FALSE = {"false", "0", "no", "off"}

DEFAULT_PORT = 3306
DEFAULT_POOL_SIZE = 10
DEFAULT_CONNECT_TIMEOUT = 10.0
DEFAULT_QUERY_TIMEOUT = 30.0


def parse_bool(value: str | None, *, name: str, default: bool = False) -> bool:
    if value is None or value.strip() == "":
        return default
    v = value.strip().lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    raise ConfigurationError(f"{name} must be a boolean (true/false), got '{value}'")


def parse_schema_permissions(value: str | None, *, name: str) -> dict[str, bool]:
    """Parse ``schema:bool,schema:bool`` into a mapping.

    Empty input yields an empty mapping. Whitespace around entries is ignored.
    """
    if value is None or not value.strip():
        return {}
    result: dict[str, bool] = {}
    for part in value.split(","):
        part = part.strip()
        if not part:
            continue
        if ":" not in part:
            raise ConfigurationError(f"{name}: expected schema:bool pair, got '{part}'")
        schema, flag = part.rsplit(":", 1)
        schema = schema.strip()
        if not schema:
            raise ConfigurationError(f"{name}: empty schema name in '{part}'")
        result[schema] = parse_bool(flag, name=f"{name}[{schema}]")
    return result


def _parse_int(value: str | None, *, name: str, default: int, lo: int, hi: int) -> int:
    if value is None or value.strip() == "":
        return default
    try:
        n = int(value.strip())
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got '{value}'") from e
    if not lo <= n <= hi:
        raise ConfigurationError(f"{name} must be between {lo} and {hi}, got {n}")
    return n


def _parse_seconds(value: str | None, *, name: str, default: float) -> float:
    if value is None or value.strip() == "":
        return default
    try:
        n = float(value.strip())
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number of seconds, got '{value}'") from e
    if n <= 0:
        raise ConfigurationError(f"{name} must be positive, got {n}")
    return n


@dataclass(frozen=True)
class OperationPermission:
    """A global flag plus per-schema overrides for one statement type."""

    default: bool = False
    schemas: Mapping[str, bool] = field(default_factory=lambda: MappingProxyType({}))

    def allows(self, schema: str | None) -> bool:
        if schema is not None and schema in self.schemas:
            return self.schemas[schema]
        return self.default

    @property
    def is_schema_scoped(self) -> bool:
        return bool(self.schemas)


@dataclass(frozen=True)
class PermissionSet:
    insert: OperationPermission = field(default_factory=OperationPermission)
    update: OperationPermission = field(default_factory=OperationPermission)
    delete: OperationPermission = field(default_factory=OperationPermission)
    ddl: OperationPermission = field(default_factory=OperationPermission)

    def for_type(self, stmt_type: StatementType) -> OperationPermission | None:
        """Return the permission governing a statement type (None if ungated)."""
        return {
            StatementType.INSERT: self.insert,
            StatementType.UPDATE: self.update,
            StatementType.DELETE: self.delete,
            StatementType.DDL: self.ddl,
        }.get(stmt_type)

    def summary(self) -> dict[str, object]:
        """JSON-friendly view used by `test-connection`."""
        out: dict[str, object] = {}
        for name in ("insert", "update", "delete", "ddl"):
            perm: OperationPermission = getattr(self, name)
            out[name] = perm.default
            if perm.schemas:
                out[f"{name}Schemas"] = dict(perm.schemas)
        return out


@dataclass(frozen=True)
class Configuration:
    host: str = "127.0.0.1"
    port: int = DEFAULT_PORT
    user: str = "root"
    password: str = ""
    database: str | None = None
    socket_path: str | None = None
    ssl: bool = False
    ssl_reject_unauthorized: bool = True
    pool_size: int = DEFAULT_POOL_SIZE
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    query_timeout: float = DEFAULT_QUERY_TIMEOUT
    permissions: PermissionSet = field(default_factory=PermissionSet)

    @property
    def multi_db_mode(self) -> bool:
        return not self.database

    @property
    def display_host(self) -> str:
        return self.socket_path or self.host


def _operation(env: Mapping[str, str], op: str) -> OperationPermission:
    flag_var = f"ALLOW_{op}_OPERATION"
    schema_var = f"SCHEMA_{op}_PERMISSIONS"
    return OperationPermission(
        default=parse_bool(env.get(flag_var), name=flag_var),
        schemas=MappingProxyType(parse_schema_permissions(env.get(schema_var), name=schema_var)),
    )


def load_config(env: Mapping[str, str] | None = None, *, dotenv: bool = True) -> Configuration:
    """Build a Configuration from environment variables.

    When ``env`` is None the process environment is used, after loading a
    ``.env`` file from the working directory (existing variables win).
    Raises ConfigurationError for malformed values.
    """
    if env is None:
        if dotenv:
            load_dotenv(Path.cwd() / ".env", override=False)
        env = os.environ

    user = env.get("MYSQL_USER", "root").strip()
    if not user:
        raise ConfigurationError("MYSQL_USER must not be empty")

    database = (env.get("MYSQL_DB") or "").strip() or None
    socket_path = (env.get("MYSQL_SOCKET_PATH") or "").strip() or None

    return Configuration(
        host=(env.get("MYSQL_HOST") or "127.0.0.1").strip(),
        port=_parse_int(env.get("MYSQL_PORT"), name="MYSQL_PORT", default=DEFAULT_PORT,
                        lo=1, hi=65535),
        user=user,
        password=env.get("MYSQL_PASS", ""),
        database=database,
        socket_path=socket_path,
        ssl=parse_bool(env.get("MYSQL_SSL"), name="MYSQL_SSL"),
        ssl_reject_unauthorized=parse_bool(
            env.get("MYSQL_SSL_REJECT_UNAUTHORIZED"),
            name="MYSQL_SSL_REJECT_UNAUTHORIZED",
            default=True,
        ),
        pool_size=_parse_int(env.get("MYSQL_POOL_SIZE"), name="MYSQL_POOL_SIZE",
                             default=DEFAULT_POOL_SIZE, lo=1, hi=1000),
        connect_timeout=_parse_seconds(env.get("MYSQL_CONNECT_TIMEOUT"),
                                       name="MYSQL_CONNECT_TIMEOUT",
                                       default=DEFAULT_CONNECT_TIMEOUT),
        query_timeout=_parse_seconds(env.get("MYSQL_QUERY_TIMEOUT"),
                                     name="MYSQL_QUERY_TIMEOUT",
                                     default=DEFAULT_QUERY_TIMEOUT),
        permissions=PermissionSet(
            insert=_operation(env, "INSERT"),
            update=_operation(env, "UPDATE"),
            delete=_operation(env, "DELETE"),
            ddl=_operation(env, "DDL"),
        ),
    )
