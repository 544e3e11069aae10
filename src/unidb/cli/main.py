"""unidb CLI entry point and command registration."""

from __future__ import annotations

from pathlib import Path  # noqa: TC003
from typing import Annotated

import sentry_sdk
import typer

from unidb.__about__ import __version__
from unidb.cli.commands.query import query_command
from unidb.cli.commands.schema import ping_command, schema_command, tables_command
from unidb.core.config import load_config
from unidb.core.exceptions import UnidbError
from unidb.core.logging import setup_logging
from unidb.core.monitoring import setup_sentry

app = typer.Typer(
    help="unidb - database introspection and query execution",
    no_args_is_help=True,
)

app.command("query")(query_command)
app.command("tables")(tables_command)
app.command("schema")(schema_command)
app.command("ping")(ping_command)


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"unidb {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Enable verbose logging"),
    ] = False,
    json_logs: Annotated[
        bool,
        typer.Option("--json-logs", help="Log JSON lines to stderr"),
    ] = False,
    profile: Annotated[
        str | None,
        typer.Option("--profile", "-P", help="Named connection profile"),
    ] = None,
    host: Annotated[
        str | None,
        typer.Option("--host", "-H", help="Database host"),
    ] = None,
    port: Annotated[
        int | None,
        typer.Option("--port", "-p", help="Database port"),
    ] = None,
    database: Annotated[
        str | None,
        typer.Option("--database", "-d", help="Database name"),
    ] = None,
    user: Annotated[
        str | None,
        typer.Option("--user", "-U", help="User name"),
    ] = None,
    password: Annotated[
        str | None,
        typer.Option("--password", "-W", help="Password"),
    ] = None,
    dsn: Annotated[
        str | None,
        typer.Option("--dsn", help="Connection DSN"),
    ] = None,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="Path to config file"),
    ] = None,
    pool_size: Annotated[
        int | None,
        typer.Option("--pool-size", help="Maximum pooled connections"),
    ] = None,
    statement_timeout: Annotated[
        float | None,
        typer.Option("--statement-timeout", help="Statement timeout in seconds"),
    ] = None,
    compact: Annotated[
        bool,
        typer.Option("--compact", help="Compact JSON output (no indentation)"),
    ] = False,
) -> None:
    """unidb - database introspection and query execution."""
    setup_logging(verbose, json_logs=json_logs)
    setup_sentry(load_config(config_file).sentry_dsn)

    ctx.ensure_object(dict)
    ctx.obj["profile"] = profile
    ctx.obj["host"] = host
    ctx.obj["port"] = port
    ctx.obj["database"] = database
    ctx.obj["user"] = user
    ctx.obj["password"] = password
    ctx.obj["dsn"] = dsn
    ctx.obj["config_file"] = config_file
    ctx.obj["pool_size"] = pool_size
    ctx.obj["statement_timeout"] = statement_timeout
    ctx.obj["compact"] = compact


def run() -> None:
    """Entry point with global error handling."""
    try:
        app()
    except UnidbError as e:
        sentry_sdk.capture_exception(e)
        typer.echo(f"Error: {e.message}", err=True)
        raise SystemExit(e.exit_code) from None
    except SystemExit:
        raise
    except KeyboardInterrupt:
        raise SystemExit(130) from None
    except Exception as e:
        sentry_sdk.capture_exception(e)
        typer.echo(f"Error: {e}", err=True)
        raise SystemExit(1) from None
