"""Introspection commands: tables, schema, ping."""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated

import typer

from unidb.cli.commands._shared import output, run_with_client

if TYPE_CHECKING:
    from unidb.core.client import DatabaseClient


def tables_command(
    ctx: typer.Context,
    schema: Annotated[
        str | None,
        typer.Option("--schema", "-s", help="Only tables in this schema"),
    ] = None,
    names: Annotated[
        bool,
        typer.Option("--names", help="Print qualified table names only"),
    ] = False,
) -> None:
    """Describe tables with columns, constraints and indices."""
    tables = run_with_client(ctx, lambda client: client.get_tables())
    if schema is not None:
        tables = [t for t in tables if t.schema_name == schema]
    if names:
        output(ctx, [t.qualified_name for t in tables])
    else:
        output(ctx, tables)


def schema_command(ctx: typer.Context) -> None:
    """Describe the whole database: tables, views, functions, constraints."""
    output(ctx, run_with_client(ctx, lambda client: client.get_schema_info()))


def ping_command(ctx: typer.Context) -> None:
    """Check that the server accepts connections and answers queries."""

    async def _ping(client: DatabaseClient) -> bool:
        await client.test_connection()
        return await client.is_connected()

    connected = run_with_client(ctx, _ping)
    output(ctx, {"connected": connected})
