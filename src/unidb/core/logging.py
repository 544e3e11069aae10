"""Logging configuration using structlog.

Logs go to stderr so stdout stays reserved for result payloads. Callers
embedding unidb behind an IPC bridge can switch to JSON lines.
"""

import logging
import sys
from typing import Any

import structlog


class _StderrLoggerFactory:
    """Look up sys.stderr per logger instead of once at configure() time.

    Test runners swap sys.stderr between invocations; a handle captured
    at configure() time would point at a closed stream.
    """

    def __call__(self, *args: Any, **kwargs: Any) -> structlog.PrintLogger:
        return structlog.PrintLogger(file=sys.stderr)


def setup_logging(verbose: bool = False, *, json_logs: bool = False) -> None:
    """Configure structlog for unidb.

    Args:
        verbose: Emit debug events (executed SQL, catalog reads).
        json_logs: Render one JSON object per line instead of console text.
    """
    renderer: Any
    if json_logs:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if verbose else logging.INFO
        ),
        context_class=dict,
        logger_factory=_StderrLoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None) -> Any:
    """Return a structlog logger, optionally bound with a component name.

    Call inside functions, never at module level, so the logger picks up
    the configuration made by setup_logging().
    """
    logger = structlog.get_logger()
    if name:
        logger = logger.bind(logger=name)
    return logger
