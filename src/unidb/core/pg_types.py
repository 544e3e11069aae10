"""PostgreSQL type name to TypeCategory mapping.

Accepts both the SQL spelling produced by format_type() ("integer",
"character varying(20)", "timestamp(3) with time zone") and the internal
pg_type names ("int4", "varchar", "timestamptz", "_int4").
"""

from __future__ import annotations

import re

from unidb.core.models import TypeCategory

_MODIFIERS = re.compile(r"\([^)]*\)")
_WHITESPACE = re.compile(r"\s+")

_EXACT: dict[str, TypeCategory] = {}


def _register(category: TypeCategory, *names: str) -> None:
    for name in names:
        _EXACT[name] = category


_register(
    TypeCategory.NUMERIC,
    "smallint", "integer", "bigint", "int", "int2", "int4", "int8",
    "smallserial", "serial", "bigserial", "serial2", "serial4", "serial8",
    "decimal", "numeric", "real", "double precision", "float4", "float8",
    "money", "oid",
)
_register(
    TypeCategory.TEXT,
    "character varying", "varchar", "character", "char", "bpchar", "text",
    "name", "citext", "xml",
)
_register(TypeCategory.BOOLEAN, "boolean", "bool")
_register(TypeCategory.DATE, "date")
_register(
    TypeCategory.TIME,
    "time", "timetz", "time without time zone", "time with time zone",
)
_register(
    TypeCategory.DATETIME,
    "timestamp", "timestamptz", "timestamp without time zone",
    "timestamp with time zone", "interval",
)
_register(TypeCategory.BINARY, "bytea")
_register(TypeCategory.JSON, "json", "jsonb")
_register(TypeCategory.UUID, "uuid")
_register(TypeCategory.NETWORK, "inet", "cidr", "macaddr", "macaddr8")


def normalize_type_name(type_name: str) -> str:
    """Lower-case, drop type modifiers and collapse whitespace."""
    name = _MODIFIERS.sub("", type_name.strip().lower())
    return _WHITESPACE.sub(" ", name).strip()


def map_type_category(type_name: str) -> TypeCategory:
    """Map a PostgreSQL type name to its portable category.

    Exact names win, then array spellings, then PostGIS prefixes.
    Enums, domains and other user-defined types fall through to OTHER.
    """
    name = normalize_type_name(type_name)
    category = _EXACT.get(name)
    if category is not None:
        return category
    if name.endswith("[]") or (name.startswith("_") and name[1:] in _EXACT):
        return TypeCategory.ARRAY
    if name.startswith(("geometry", "geography")):
        return TypeCategory.GEOMETRY
    return TypeCategory.OTHER
