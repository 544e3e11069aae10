"""Tests for the DatabaseClient protocol and backend registry."""

import pytest

from unidb.core.client import (
    BackendRegistry,
    DatabaseClient,
    client_from_config,
    create_client,
    registry,
)
from unidb.core.config import ResolvedConfig
from unidb.core.exceptions import UnsupportedError
from unidb.core.models import QueryResult, Schema
from unidb.core.postgres import PostgresClient


class InMemoryClient:
    """Minimal backend satisfying the protocol without inheriting from it."""

    def __init__(self, connection_string, **options):
        self.connection_string = connection_string
        self.options = options
        self.connected = False

    def get_connection_string(self):
        return self.connection_string

    async def is_connected(self):
        return self.connected

    async def test_connection(self):
        return None

    async def connect(self):
        self.connected = True

    async def disconnect(self):
        self.connected = False

    async def reconnect(self):
        self.connected = True

    async def reconnect_with_string(self, connection_string):
        self.connection_string = connection_string
        self.connected = True

    async def execute_query(self, sql):
        return QueryResult(query=sql, timestamp=0)

    async def get_tables(self):
        return []

    async def get_schema_info(self):
        return Schema(name="main")


@pytest.mark.unit
def test_postgres_client_satisfies_protocol():
    assert isinstance(PostgresClient("postgresql://localhost/db"), DatabaseClient)


@pytest.mark.unit
def test_duck_typed_backend_satisfies_protocol():
    assert isinstance(InMemoryClient("memory://"), DatabaseClient)


@pytest.mark.unit
def test_incomplete_backend_rejected():
    class HalfClient:
        def get_connection_string(self):
            return ""

    assert not isinstance(HalfClient(), DatabaseClient)


@pytest.mark.unit
class TestBackendRegistry:
    def test_builtin_schemes(self):
        assert registry.available == ["postgres", "postgresql"]

    @pytest.mark.parametrize(
        "dsn", ["postgresql://localhost/db", "postgres://localhost/db", "POSTGRESQL://h/d"]
    )
    def test_create_postgres(self, dsn):
        client = create_client(dsn)
        assert isinstance(client, PostgresClient)
        assert client.get_connection_string() == dsn

    def test_options_forwarded(self):
        client = create_client("postgresql://localhost/db", pool_size=3, statement_timeout=2.0)
        assert client.pool_size == 3
        assert client.statement_timeout == 2.0

    def test_unsupported_scheme(self):
        with pytest.raises(UnsupportedError, match="Unsupported database scheme 'mysql'"):
            create_client("mysql://localhost/db")

    def test_unsupported_lists_available(self):
        with pytest.raises(UnsupportedError, match="Available: postgres, postgresql"):
            create_client("sqlite:///tmp/x.db")

    def test_register_custom_backend(self):
        reg = BackendRegistry()
        reg.register("Memory", InMemoryClient)
        client = reg.create("memory://scratch", pool_size=1)
        assert isinstance(client, InMemoryClient)
        assert client.options == {"pool_size": 1}
        assert reg.available == ["memory"]

    def test_empty_registry(self):
        with pytest.raises(UnsupportedError, match="Available: none"):
            BackendRegistry().create("postgresql://localhost/db")


@pytest.mark.unit
def test_client_from_config():
    config = ResolvedConfig(
        host="db",
        dbname="app",
        user="ro",
        pool_size=7,
        connect_timeout=4,
        statement_timeout=30.0,
    )
    client = client_from_config(config)
    assert isinstance(client, PostgresClient)
    assert client.get_connection_string() == config.connection_string
    assert client.pool_size == 7
    assert client.connect_timeout == 4
    assert client.statement_timeout == 30.0
