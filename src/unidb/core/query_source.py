"""Query source resolution for the unidb CLI.

Resolves the SQL text from one of three sources:
1. Inline (-e flag), highest priority
2. File path
3. stdin, lowest priority
"""

from __future__ import annotations

import sys
from pathlib import Path

from unidb.core.exceptions import InputError


def resolve_query_source(
    inline: str | None,
    file_path: str | None,
) -> str:
    """Resolve SQL from inline text, a file, or stdin.

    Raises InputError when no source is available or the SQL is blank.
    """
    if inline is not None:
        sql = inline
    elif file_path is not None:
        p = Path(file_path)
        if not p.exists():
            msg = (
                f"Query file not found: {file_path}\n"
                "Use -e for inline queries or pipe query via stdin."
            )
            raise InputError(msg)
        sql = p.read_text()
    elif not sys.stdin.isatty():
        sql = sys.stdin.read()
    else:
        raise InputError("No query provided. Use -e, file path, or pipe to stdin.")

    if not sql.strip():
        raise InputError("Query is empty.")
    return sql
