"""CLI tests for the `query` command using the fake aiomysql pool."""

from __future__ import annotations

import datetime as dt
import json
from decimal import Decimal

import pymysql
from click.testing import CliRunner

from mysqlgate import querylog
from mysqlgate.cli import main

ENV = {"MYSQL_DB": "shop", "MYSQL_QUERY_TIMEOUT": "5"}


def _invoke(args, env=None, **kwargs):
    runner = CliRunner()
    return runner.invoke(main, args, env={**ENV, **(env or {})}, **kwargs)


class TestQuery:
    def test_select(self, fake_pools, server) -> None:
        result = _invoke(["query", "SELECT 1"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["success"] is True
        assert data["data"] == [{"1": 1}]
        assert isinstance(data["executionTime"], float)

    def test_unquoted_words_are_joined(self, fake_pools, server) -> None:
        result = _invoke(["query", "SELECT", "1"])
        assert result.exit_code == 0
        assert server.executed == [("SELECT 1", None)]

    def test_params(self, fake_pools, server) -> None:
        server.results["SELECT name FROM users"] = [{"name": "ada"}]
        sql = "SELECT name FROM users WHERE id = %s AND active = %s"
        result = _invoke(["query", sql, "-p", "7", "--param", "1"])
        assert result.exit_code == 0
        assert server.executed == [(sql, ("7", "1"))]

    def test_from_stdin(self, fake_pools, server) -> None:
        result = _invoke(["query", "--from-stdin"], input="SELECT 1\n")
        assert result.exit_code == 0
        assert json.loads(result.output)["success"] is True

    def test_missing_sql(self, fake_pools) -> None:
        result = _invoke(["query"])
        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data == {
            "success": False,
            "error": "SQL query is required",
            "errorType": "UsageError",
        }
        assert fake_pools == []

    def test_write_denied(self, fake_pools, server) -> None:
        result = _invoke(["query", "DELETE FROM users WHERE id = 1"])
        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["success"] is False
        assert data["errorType"] == "PermissionDenied"
        assert "DELETE" in data["error"]
        assert not server.executed

    def test_write_allowed(self, fake_pools, server) -> None:
        server.affected_rows = 2
        result = _invoke(
            ["query", "DELETE FROM users WHERE id IN (1, 2)"],
            env={"ALLOW_DELETE_OPERATION": "true"},
        )
        assert result.exit_code == 0
        assert json.loads(result.output)["data"] == {"affectedRows": 2, "insertId": 0}

    def test_schema_scoped_permission(self, fake_pools, server) -> None:
        env = {"ALLOW_UPDATE_OPERATION": "true", "SCHEMA_UPDATE_PERMISSIONS": "prod:false"}
        denied = _invoke(["query", "UPDATE prod.users SET a = 1"], env=env)
        assert denied.exit_code == 1
        assert "prod" in json.loads(denied.output)["error"]

        allowed = _invoke(["query", "UPDATE users SET a = 1"], env=env)
        assert allowed.exit_code == 0

    def test_other_statement_rejected(self, fake_pools, server) -> None:
        result = _invoke(["query", "SET GLOBAL max_connections = 1"])
        assert result.exit_code == 1
        assert json.loads(result.output)["errorType"] == "PermissionDenied"

    def test_multi_statement_rejected(self, fake_pools, server) -> None:
        result = _invoke(["query", "SELECT 1; DROP TABLE users"])
        assert result.exit_code == 1
        assert "multiple statements" in json.loads(result.output)["error"]

    def test_server_error(self, fake_pools, server) -> None:
        server.error = pymysql.err.ProgrammingError(1146, "Table 'shop.nope' doesn't exist")
        result = _invoke(["query", "SELECT * FROM nope"])
        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["errorType"] == "QueryError"
        assert "doesn't exist" in data["error"]

    def test_connection_error(self, fake_pools, server) -> None:
        server.connect_error = pymysql.err.OperationalError(2003, "Can't connect to MySQL server")
        result = _invoke(["query", "SELECT 1"])
        assert result.exit_code == 1
        assert json.loads(result.output)["errorType"] == "ConnectionError"

    def test_invalid_configuration(self, fake_pools) -> None:
        result = _invoke(["query", "SELECT 1"], env={"MYSQL_PORT": "not-a-port"})
        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["errorType"] == "ConfigurationError"
        assert "MYSQL_PORT" in data["error"]
        assert fake_pools == []

    def test_driver_values_serialized(self, fake_pools, server) -> None:
        server.results["SELECT * FROM orders"] = [{
            "total": Decimal("19.90"),
            "created": dt.datetime(2024, 3, 1, 12, 30),
            "blob": b"\xff\x00",
        }]
        result = _invoke(["query", "SELECT * FROM orders"])
        assert result.exit_code == 0
        row = json.loads(result.output)["data"][0]
        assert row["total"] == "19.90"
        assert row["created"] == "2024-03-01T12:30:00"
        assert row["blob"].startswith("base64:")

    def test_pool_shut_down_after_command(self, fake_pools, server) -> None:
        _invoke(["query", "SELECT 1"])
        assert fake_pools[0].closed
        assert fake_pools[0].wait_closed_calls == 1

    def test_query_logged(self, fake_pools, server, tmp_path) -> None:
        _invoke(["query", "SELECT 1"])
        _invoke(["query", "DROP TABLE users"])
        files = list((tmp_path / "logs").rglob("*.jsonl"))
        assert len(files) == 1
        entries = [json.loads(line) for line in files[0].read_text().splitlines()]
        assert [e["success"] for e in entries] == [True, False]
        assert entries[0]["statement_type"] == "select"
        assert entries[0]["schema"] == "shop"
        assert entries[1]["error_type"] == "PermissionDenied"

    def test_unwritable_query_log_does_not_change_outcome(
        self, fake_pools, server, tmp_path, monkeypatch
    ) -> None:
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        monkeypatch.setattr(querylog, "_LOG_ROOT", blocker / "logs")

        result = _invoke(["query", "SELECT 1"])
        assert result.exit_code == 0
        assert json.loads(result.output)["data"] == [{"1": 1}]

        denied = _invoke(["query", "DROP TABLE users"])
        assert denied.exit_code == 1
        assert json.loads(denied.output)["errorType"] == "PermissionDenied"
