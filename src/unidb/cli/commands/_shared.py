"""Shared CLI plumbing for command modules.

Client creation from resolved configuration, running a coroutine
against a connected client, and output helpers.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, TypeVar

from unidb.cli.output import write_json
from unidb.core.client import client_from_config
from unidb.core.config import load_config, resolve_config

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    import typer

    from unidb.core.client import DatabaseClient

T = TypeVar("T")


def get_client(ctx: typer.Context) -> DatabaseClient:
    obj = ctx.ensure_object(dict)
    config = load_config(obj.get("config_file"))

    cli_overrides: dict[str, Any] = {}
    for key in (
        "host",
        "port",
        "database",
        "user",
        "password",
        "pool_size",
        "statement_timeout",
    ):
        val = obj.get(key)
        if val is not None:
            cli_overrides[key] = val

    resolved = resolve_config(
        config,
        profile_name=obj.get("profile"),
        dsn=obj.get("dsn"),
        **cli_overrides,
    )
    return client_from_config(resolved)


def run_with_client(
    ctx: typer.Context, operation: Callable[[DatabaseClient], Awaitable[T]]
) -> T:
    """Connect, run operation, and always disconnect."""
    client = get_client(ctx)

    async def _run() -> T:
        await client.connect()
        try:
            return await operation(client)
        finally:
            await client.disconnect()

    return asyncio.run(_run())


def output(ctx: typer.Context, payload: Any) -> None:
    obj = ctx.ensure_object(dict)
    write_json(payload, compact=obj.get("compact", False))
