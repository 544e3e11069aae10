"""Shared test fixtures for unidb."""

from pathlib import Path
from tempfile import TemporaryDirectory

import pytest
from typer.testing import CliRunner

from tests.integration_config import TEST_DSN
from unidb.cli.main import app


@pytest.fixture
def runner():
    """Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def cli_runner(runner):
    """Invoke the CLI app with the given arguments."""

    def invoke(*args: str, **kwargs):
        return runner.invoke(app, list(args), **kwargs)

    return invoke


@pytest.fixture
def temp_dir():
    """Temporary directory for test files."""
    with TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_dsn():
    """Connection string of the integration database."""
    if not TEST_DSN:
        pytest.skip("UNIDB_TEST_DSN not set")
    return TEST_DSN


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch):
    """Keep host PG* variables and profiles out of unit tests."""
    for var in (
        "PGHOST",
        "PGPORT",
        "PGDATABASE",
        "PGUSER",
        "PGPASSWORD",
        "UNIDB_PROFILE",
        "UNIDB_SENTRY_DSN",
    ):
        monkeypatch.delenv(var, raising=False)
