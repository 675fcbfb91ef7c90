"""CLI entry point for `mysqlgate`."""

from __future__ import annotations

import click

from mysqlgate import __version__
from mysqlgate.cli._output import emit_error
from mysqlgate.cli.connection import test_connection_cmd
from mysqlgate.cli.help import help_cmd, show_help
from mysqlgate.cli.query import query
from mysqlgate.cli.tables import describe, list_tables


class _JsonGroup(click.Group):
    """Report unknown commands as a JSON error with exit code 1."""

    def resolve_command(self, ctx: click.Context, args: list[str]):
        cmd_name = args[0] if args else None
        if cmd_name and not cmd_name.startswith("-") and self.get_command(ctx, cmd_name) is None:
            emit_error(
                f"Unknown command: {cmd_name}. Use 'help' for available commands.",
                "UsageError",
            )
            ctx.exit(1)
        return super().resolve_command(ctx, args)


@click.group(cls=_JsonGroup, invoke_without_command=True)
@click.version_option(version=__version__, prog_name="mysqlgate")
@click.pass_context
def main(ctx: click.Context) -> None:
    """mysqlgate: permission-gated MySQL queries with JSON output."""
    if ctx.invoked_subcommand is None:
        show_help()


main.add_command(query)
main.add_command(list_tables)
main.add_command(describe)
main.add_command(test_connection_cmd)
main.add_command(help_cmd)
