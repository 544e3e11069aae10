"""Standard exit codes for unidb.

Exit codes follow Unix conventions; the CLI maps UnidbError.exit_code
straight to the process return value.
"""

from enum import IntEnum


class ExitCode(IntEnum):
    """Exit codes for unidb commands."""

    SUCCESS = 0
    GENERAL_ERROR = 1
    USAGE_ERROR = 2
    INPUT_ERROR = 3
    QUERY_ERROR = 4
    NETWORK_ERROR = 5
    TIMEOUT = 6
    CONFIG_ERROR = 7
    UNSUPPORTED = 8
