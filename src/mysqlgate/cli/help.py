"""The `help` command: machine-readable usage for agents."""

from __future__ import annotations

import click

from mysqlgate import __version__
from mysqlgate.cli._output import emit

HELP_DOCUMENT: dict[str, object] = {
    "skill": "mysql-query",
    "version": __version__,
    "commands": {
        "query <sql>": "Execute a SQL query",
        "list-tables": "List all tables in the database",
        "describe <table>": "Show table structure",
        "test-connection": "Test database connection",
        "help": "Show this help",
    },
    "examples": [
        'mysqlgate query "SELECT * FROM users LIMIT 5"',
        "mysqlgate list-tables",
        "mysqlgate describe users",
        "mysqlgate test-connection",
    ],
}


def show_help() -> None:
    emit(HELP_DOCUMENT)


@click.command("help")
def help_cmd() -> None:
    """Show available commands as JSON."""
    show_help()
