"""PostgreSQL backend for unidb.

PostgresClient owns one psycopg_pool.AsyncConnectionPool per instance
and implements the DatabaseClient contract: connection lifecycle, query
execution with text-normalized rows, and schema introspection through
the pg_catalog readers.
"""

from __future__ import annotations

import asyncio
import time
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any
from urllib.parse import urlparse

import psycopg
import psycopg.errors
import sentry_sdk
from psycopg_pool import AsyncConnectionPool, PoolTimeout

from unidb.core import pg_catalog
from unidb.core.assembler import assemble_tables, build_schema
from unidb.core.config import DEFAULT_POOL_SIZE
from unidb.core.exceptions import ConnectionError, QueryError, TimeoutError
from unidb.core.logging import get_logger
from unidb.core.models import ColumnDefinition, QueryResult, Schema, Table
from unidb.core.values import row_to_text

if TYPE_CHECKING:
    from collections.abc import Iterator

    from psycopg import AsyncConnection

# Common PostgreSQL type OIDs; anything else is looked up in the
# connection's type registry.
_TYPE_NAMES: dict[int, str] = {
    16: "bool",
    17: "bytea",
    20: "int8",
    21: "int2",
    23: "int4",
    25: "text",
    26: "oid",
    114: "json",
    142: "xml",
    650: "cidr",
    700: "float4",
    701: "float8",
    790: "money",
    829: "macaddr",
    869: "inet",
    1007: "_int4",
    1009: "_text",
    1042: "bpchar",
    1043: "varchar",
    1082: "date",
    1083: "time",
    1114: "timestamp",
    1184: "timestamptz",
    1186: "interval",
    1266: "timetz",
    1700: "numeric",
    2950: "uuid",
    3802: "jsonb",
}


def _known_type_name(conn: AsyncConnection[Any], oid: int) -> str | None:
    name = _TYPE_NAMES.get(oid)
    if name is not None:
        return name
    info = conn.adapters.types.get(oid)
    return info.name if info is not None else None


def _describe_target(connection_string: str) -> str:
    """host:port/dbname without credentials, for error messages and logs."""
    parsed = urlparse(connection_string)
    if not parsed.scheme:
        return "(connection string)"
    host = parsed.hostname or "localhost"
    port = f":{parsed.port}" if parsed.port else ""
    return f"{host}{port}/{parsed.path.strip('/')}"


@contextmanager
def _translate_errors(action: str) -> Iterator[None]:
    """Map psycopg exceptions onto the unidb hierarchy."""
    try:
        yield
    except psycopg.errors.QueryCanceled as e:
        raise TimeoutError(f"{action} timed out: {e}") from e
    except PoolTimeout as e:
        raise TimeoutError(f"{action} timed out waiting for a connection: {e}") from e
    except psycopg.OperationalError as e:
        raise ConnectionError(f"{action} failed, database unavailable: {e}") from e
    except psycopg.Error as e:
        raise QueryError(f"{action} failed: {e}") from e


class PostgresClient:
    """Asynchronous PostgreSQL client backed by a bounded connection pool."""

    def __init__(
        self,
        connection_string: str,
        *,
        pool_size: int = DEFAULT_POOL_SIZE,
        connect_timeout: float = 10.0,
        statement_timeout: float | None = None,
    ) -> None:
        self._connection_string = connection_string
        self.pool_size = pool_size
        self.connect_timeout = connect_timeout
        self.statement_timeout = statement_timeout
        self._pool: AsyncConnectionPool | None = None
        self._lifecycle = asyncio.Lock()
        # Enum, domain and other user-defined type names read from pg_type.
        self._type_cache: dict[int, str] = {}

    async def __aenter__(self) -> PostgresClient:
        await self.connect()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.disconnect()

    # -- Connection lifecycle --

    def get_connection_string(self) -> str:
        return self._connection_string

    def _pool_alive(self) -> bool:
        return self._pool is not None and not self._pool.closed

    def _get_pool(self) -> AsyncConnectionPool:
        if not self._pool_alive():
            raise ConnectionError("Database client is not connected")
        assert self._pool is not None
        return self._pool

    def _connection_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {"autocommit": True}
        if self.statement_timeout:
            timeout_ms = int(self.statement_timeout * 1000)
            kwargs["options"] = f"-c statement_timeout={timeout_ms}"
        return kwargs

    async def is_connected(self) -> bool:
        return self._pool_alive()

    async def _connect(self) -> None:
        if self._pool_alive():
            return

        log = get_logger("postgres")
        target = _describe_target(self._connection_string)
        kwargs = self._connection_kwargs()

        # A direct connection surfaces the server's auth/network error;
        # the pool would only retry in the background until it times out.
        try:
            check_conn = await psycopg.AsyncConnection.connect(
                self._connection_string,
                connect_timeout=int(self.connect_timeout),
                **kwargs,
            )
        except psycopg.Error as e:
            log.error("connection failed", target=target, error=str(e))
            raise ConnectionError(f"Connection failed to {target}: {e}") from e
        await check_conn.close()

        pool = AsyncConnectionPool(
            self._connection_string,
            min_size=1,
            max_size=self.pool_size,
            kwargs=kwargs,
            open=False,
            name="unidb",
        )
        try:
            await pool.open(wait=True, timeout=self.connect_timeout)
        except (PoolTimeout, psycopg.Error) as e:
            await pool.close()
            log.error("connection pool failed to open", target=target, error=str(e))
            raise ConnectionError(f"Connection failed to {target}: {e}") from e

        self._pool = pool
        log.debug("connected", target=target, pool_size=self.pool_size)

    async def _disconnect(self) -> None:
        pool, self._pool = self._pool, None
        self._type_cache.clear()
        if pool is None or pool.closed:
            return

        log = get_logger("postgres")
        try:
            await pool.close()
        except Exception as e:
            log.warning("error closing connection pool", error=str(e))
        log.debug("disconnected", target=_describe_target(self._connection_string))

    async def connect(self) -> None:
        async with self._lifecycle:
            await self._connect()

    async def disconnect(self) -> None:
        async with self._lifecycle:
            await self._disconnect()

    async def reconnect(self) -> None:
        async with self._lifecycle:
            await self._disconnect()
            await self._connect()

    async def reconnect_with_string(self, connection_string: str) -> None:
        """Switch to a new server.

        The stored string is replaced before connecting, so a failed
        attempt leaves the client disconnected and pointed at the new
        target.
        """
        async with self._lifecycle:
            await self._disconnect()
            self._connection_string = connection_string
            await self._connect()

    async def test_connection(self) -> None:
        pool = self._get_pool()
        with _translate_errors("Connection test"):
            async with pool.connection() as conn:
                await conn.execute("SELECT 1")

    # -- Query execution --

    async def _type_names(
        self, conn: AsyncConnection[Any], oids: list[int]
    ) -> dict[int, str]:
        names: dict[int, str] = {}
        missing: list[int] = []
        for oid in oids:
            name = self._type_cache.get(oid) or _known_type_name(conn, oid)
            if name is not None:
                names[oid] = name
            elif oid not in missing:
                missing.append(oid)

        if missing:
            fetched = await pg_catalog.fetch_type_names(conn, missing)
            self._type_cache.update(fetched)
            for oid in missing:
                names[oid] = fetched.get(oid, "unknown")
        return names

    async def execute_query(self, sql: str) -> QueryResult:
        """Execute one statement and return rows as text."""
        log = get_logger("postgres")
        pool = self._get_pool()

        sql_normalized = " ".join(sql.split())
        log.debug("executing query", sql=sql_normalized)
        warnings: list[str] = []

        def on_notice(diag: psycopg.errors.Diagnostic) -> None:
            warnings.append(diag.message_primary or "")

        with sentry_sdk.start_span(
            op="db.query", description=sql_normalized[:100]
        ) as span:
            start_time = time.monotonic()
            try:
                with _translate_errors("Query"):
                    async with pool.connection() as conn:
                        conn.add_notice_handler(on_notice)
                        try:
                            async with conn.cursor() as cur:
                                await cur.execute(sql)
                                records = await cur.fetchall() if cur.description else []

                                columns: list[ColumnDefinition] = []
                                rows: list[dict[str, str | None]] = []
                                if records:
                                    description = cur.description or []
                                    type_names = await self._type_names(
                                        conn, [desc.type_code for desc in description]
                                    )
                                    columns = [
                                        ColumnDefinition(
                                            name=desc.name,
                                            data_type=type_names[desc.type_code],
                                        )
                                        for desc in description
                                    ]
                                    names = [c.name for c in columns]
                                    rows = [row_to_text(names, r) for r in records]

                                rows_affected = None
                                if cur.description is None and cur.rowcount >= 0:
                                    rows_affected = cur.rowcount
                        finally:
                            conn.remove_notice_handler(on_notice)
            except TimeoutError:
                span.set_status("deadline_exceeded")
                log.error("query timeout", sql=sql_normalized)
                raise
            except ConnectionError as e:
                span.set_status("unavailable")
                log.error("database unavailable", sql=sql_normalized, error=e.message)
                raise
            except QueryError as e:
                span.set_status("invalid_argument")
                log.error("query failed", sql=sql_normalized, error=e.message)
                raise

            duration_ms = (time.monotonic() - start_time) * 1000
            span.set_data("row_count", len(rows))
            span.set_data("duration_ms", duration_ms)
            log.debug(
                "query complete",
                duration_ms=f"{duration_ms:.1f}",
                row_count=len(rows),
            )

        return QueryResult(
            query=sql,
            timestamp=int(time.time()),
            rows_affected=rows_affected,
            execution_time_ms=duration_ms,
            columns=columns,
            rows=rows,
            warnings=warnings,
        )

    # -- Introspection --

    async def _read_tables(self, conn: AsyncConnection[Any]) -> list[Table]:
        rows = await pg_catalog.fetch_columns(conn)

        async def load_details(schema: str, table: str) -> Any:
            return await pg_catalog.fetch_table_details(conn, schema, table)

        return await assemble_tables(rows, load_details)

    async def get_tables(self) -> list[Table]:
        pool = self._get_pool()
        with _translate_errors("Reading tables"):
            async with pool.connection() as conn:
                return await self._read_tables(conn)

    async def get_schema_info(self) -> Schema:
        log = get_logger("postgres")
        pool = self._get_pool()
        with _translate_errors("Reading schema"):
            async with pool.connection() as conn:
                name = await pg_catalog.fetch_current_schema(conn)
                tables = await self._read_tables(conn)
                views = await pg_catalog.fetch_views(conn)
                functions = await pg_catalog.fetch_functions(conn)

        schema = build_schema(name, tables, views, functions)
        log.debug(
            "schema read",
            tables=len(schema.tables),
            views=len(schema.views),
            functions=len(schema.functions),
            constraints=len(schema.constraints),
        )
        return schema
