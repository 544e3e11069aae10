from __future__ import annotations

import sys
from typing import Annotated

import typer

from unidb.cli.commands._shared import output, run_with_client
from unidb.core.query_source import resolve_query_source


def query_command(
    ctx: typer.Context,
    file: Annotated[
        str | None,
        typer.Argument(help="SQL file to execute"),
    ] = None,
    execute: Annotated[
        str | None,
        typer.Option("--execute", "-e", help="Execute inline SQL query"),
    ] = None,
    full: Annotated[
        bool,
        typer.Option(
            "--full", help="Print the whole result (columns, timing, warnings)"
        ),
    ] = False,
) -> None:
    """Execute a SQL query from file, inline (-e), or stdin."""
    try:
        is_tty = sys.stdin.isatty()
    except (ValueError, AttributeError):
        is_tty = False
    if execute is None and file is None and is_tty:
        typer.echo(ctx.get_help())
        raise typer.Exit()

    sql = resolve_query_source(inline=execute, file_path=file)
    result = run_with_client(ctx, lambda client: client.execute_query(sql))

    output(ctx, result if full else result.rows)
