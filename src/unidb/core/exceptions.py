"""Exception hierarchy for unidb.

All exceptions carry an exit_code for CLI return value mapping and a
human-readable message for whatever layer renders the error.
"""

from unidb.core.exit_codes import ExitCode


class UnidbError(Exception):
    """Base exception for all unidb errors."""

    exit_code: int = ExitCode.GENERAL_ERROR

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConnectionError(UnidbError):
    """Client not connected, unreachable host, authentication failure."""

    exit_code: int = ExitCode.NETWORK_ERROR


class TimeoutError(ConnectionError):
    """Statement timeout, connection timeout."""

    exit_code: int = ExitCode.TIMEOUT


class QueryError(UnidbError):
    """Statement rejected or failed on the server."""

    exit_code: int = ExitCode.QUERY_ERROR


class UnsupportedError(UnidbError):
    """No backend for the requested engine."""

    exit_code: int = ExitCode.UNSUPPORTED


class InputError(UnidbError):
    """File not found, invalid parameters."""

    exit_code: int = ExitCode.INPUT_ERROR


class ConfigError(UnidbError):
    """Malformed config, missing profile."""

    exit_code: int = ExitCode.CONFIG_ERROR
