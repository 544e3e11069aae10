"""Sentry integration for error tracking and query performance spans.

Disabled unless a DSN is configured (config file `sentry_dsn` or the
UNIDB_SENTRY_DSN environment variable).
"""

from __future__ import annotations

import os

import sentry_sdk

from unidb.__about__ import __version__


def setup_sentry(dsn: str | None = None, environment: str = "local") -> bool:
    """Initialize Sentry. Returns False when no DSN is available."""
    dsn = dsn or os.environ.get("UNIDB_SENTRY_DSN")
    if not dsn:
        return False
    sentry_sdk.init(
        dsn=dsn,
        traces_sample_rate=0.05,
        environment=environment,
        release=f"unidb@{__version__}",
        attach_stacktrace=True,
        send_default_pii=False,
    )
    return True
