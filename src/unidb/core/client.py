"""DatabaseClient protocol and backend registry.

A backend is any object with the DatabaseClient capabilities; there is
no base class to inherit from. Backends register a factory under the
connection URI schemes they serve, and create_client() dispatches on the
scheme of the connection string it is given.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable
from urllib.parse import urlparse

from unidb.core.exceptions import UnsupportedError
from unidb.core.postgres import PostgresClient

if TYPE_CHECKING:
    from collections.abc import Callable

    from unidb.core.config import ResolvedConfig
    from unidb.core.models import QueryResult, Schema, Table


@runtime_checkable
class DatabaseClient(Protocol):
    """Capabilities every engine backend provides.

    All I/O methods are coroutines. Lifecycle methods are idempotent:
    connect() on a connected client and disconnect() on a disconnected
    one do nothing.
    """

    def get_connection_string(self) -> str: ...

    async def is_connected(self) -> bool: ...

    async def test_connection(self) -> None: ...

    async def connect(self) -> None: ...

    async def disconnect(self) -> None: ...

    async def reconnect(self) -> None: ...

    async def reconnect_with_string(self, connection_string: str) -> None: ...

    async def execute_query(self, sql: str) -> QueryResult: ...

    async def get_tables(self) -> list[Table]: ...

    async def get_schema_info(self) -> Schema: ...


class BackendRegistry:
    """Registry for looking up backends by connection URI scheme."""

    def __init__(self) -> None:
        self._factories: dict[str, Callable[..., DatabaseClient]] = {}

    def register(self, scheme: str, factory: Callable[..., DatabaseClient]) -> None:
        self._factories[scheme.lower()] = factory

    def create(self, connection_string: str, **options: Any) -> DatabaseClient:
        """Instantiate the backend serving this connection string.

        Raises UnsupportedError if no backend handles the scheme.
        """
        scheme = urlparse(connection_string).scheme.lower()
        factory = self._factories.get(scheme)
        if factory is None:
            available = ", ".join(self.available) or "none"
            msg = f"Unsupported database scheme {scheme!r}. Available: {available}"
            raise UnsupportedError(msg)
        return factory(connection_string, **options)

    @property
    def available(self) -> list[str]:
        return sorted(self._factories)


# Global registry instance with the built-in backends.
registry = BackendRegistry()
registry.register("postgresql", PostgresClient)
registry.register("postgres", PostgresClient)


def create_client(connection_string: str, **options: Any) -> DatabaseClient:
    return registry.create(connection_string, **options)


def client_from_config(config: ResolvedConfig) -> DatabaseClient:
    return create_client(
        config.connection_string,
        pool_size=config.pool_size,
        connect_timeout=config.connect_timeout,
        statement_timeout=config.statement_timeout,
    )
