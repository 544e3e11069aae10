"""Conversion of driver values to the portable textual form of QueryResult rows."""

from __future__ import annotations

import json
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any


def _json_default(val: Any) -> Any:
    if isinstance(val, (datetime, date, time)):
        return val.isoformat()
    if isinstance(val, Decimal):
        return str(val)
    if isinstance(val, (bytes, bytearray, memoryview)):
        return "\\x" + bytes(val).hex()
    return str(val)


def value_to_text(val: Any) -> str | None:
    """Render one column value as text.

    None stays None so SQL NULL is distinguishable from the string "NULL".
    Containers (json/jsonb documents, arrays, composites) become JSON text.
    """
    if val is None:
        return None
    if isinstance(val, str):
        return val
    if isinstance(val, bool):
        return "true" if val else "false"
    if isinstance(val, (dict, list, tuple)):
        return json.dumps(val, default=_json_default, ensure_ascii=False)
    if isinstance(val, (bytes, bytearray, memoryview)):
        return "\\x" + bytes(val).hex()
    if isinstance(val, (datetime, date, time)):
        return val.isoformat()
    return str(val)


def row_to_text(names: list[str], row: tuple[Any, ...]) -> dict[str, str | None]:
    return {name: value_to_text(val) for name, val in zip(names, row, strict=True)}
