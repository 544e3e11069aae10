"""Read-only PostgreSQL catalog queries.

Each reader takes an open psycopg async connection, runs one catalog
query and decodes the rows into unidb models. The columns reader returns
flat ColumnRow records sorted by schema, table and ordinal position; the
assembler depends on that ordering to group them into tables.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from psycopg.rows import dict_row

from unidb.core.assembler import ColumnRow
from unidb.core.logging import get_logger
from unidb.core.models import (
    Column,
    Constraint,
    ConstraintType,
    ForeignKeyReference,
    Function,
    Index,
    View,
)
from unidb.core.pg_types import map_type_category

if TYPE_CHECKING:
    from psycopg import AsyncConnection

# Keep user namespaces only; pg_toast and per-session pg_temp_N schemas
# share the pg_ prefix with the catalog.
_USER_NAMESPACES = """
    n.nspname NOT IN ('pg_catalog', 'information_schema')
    AND n.nspname !~ '^pg_(toast|temp_)'
"""

_CONSTRAINT_TYPES: dict[str, ConstraintType] = {
    "p": ConstraintType.PRIMARY_KEY,
    "f": ConstraintType.FOREIGN_KEY,
    "u": ConstraintType.UNIQUE,
    "c": ConstraintType.CHECK,
    "x": ConstraintType.EXCLUSION,
}

_FUNCTION_KINDS: dict[str, str] = {"f": "function", "p": "procedure"}

# pg_constraint.confupdtype / confdeltype codes
_FK_ACTIONS: dict[str, str] = {
    "a": "NO ACTION",
    "r": "RESTRICT",
    "c": "CASCADE",
    "n": "SET NULL",
    "d": "SET DEFAULT",
}

COLUMNS_SQL = f"""
SELECT
    n.nspname AS schema_name,
    c.relname AS table_name,
    obj_description(c.oid, 'pg_class') AS table_comment,
    a.attname AS column_name,
    format_type(a.atttypid, a.atttypmod) AS full_data_type,
    a.attnotnull AS not_null,
    row_number() OVER (PARTITION BY c.oid ORDER BY a.attnum) AS ordinal_position,
    pg_get_expr(d.adbin, d.adrelid) AS default_value,
    col_description(c.oid, a.attnum) AS description,
    information_schema._pg_char_max_length(a.atttypid, a.atttypmod) AS char_max_length,
    information_schema._pg_numeric_precision(a.atttypid, a.atttypmod) AS numeric_precision,
    information_schema._pg_numeric_scale(a.atttypid, a.atttypmod) AS numeric_scale,
    EXISTS (
        SELECT 1 FROM pg_index i
        WHERE i.indrelid = c.oid
        AND i.indisprimary
        AND a.attnum = ANY (i.indkey)
    ) AS is_primary,
    EXISTS (
        SELECT 1 FROM pg_index i
        WHERE i.indrelid = c.oid
        AND a.attnum = ANY (i.indkey)
    ) AS is_indexed,
    EXISTS (
        SELECT 1 FROM pg_index i
        WHERE i.indrelid = c.oid
        AND i.indisunique
        AND a.attnum = ANY (i.indkey)
    ) AS is_unique,
    (
        a.attidentity <> ''
        OR pg_get_serial_sequence(
            format('%I.%I', n.nspname, c.relname), a.attname::text
        ) IS NOT NULL
    ) AS is_serial
FROM pg_class c
JOIN pg_namespace n ON n.oid = c.relnamespace
JOIN pg_attribute a ON a.attrelid = c.oid
LEFT JOIN pg_attrdef d ON d.adrelid = c.oid AND d.adnum = a.attnum
WHERE c.relkind IN ('r', 'p')
AND {_USER_NAMESPACES}
AND a.attnum > 0
AND NOT a.attisdropped
ORDER BY n.nspname, c.relname, a.attnum
"""

CONSTRAINTS_SQL = """
SELECT
    c.conname AS name,
    c.contype AS type,
    pg_get_constraintdef(c.oid) AS definition,
    ARRAY(
        SELECT a.attname::text
        FROM unnest(c.conkey) WITH ORDINALITY AS k(attnum, ord)
        JOIN pg_attribute a ON a.attrelid = c.conrelid AND a.attnum = k.attnum
        ORDER BY k.ord
    ) AS columns,
    CASE c.contype
        WHEN 'f' THEN (
            SELECT json_build_object(
                'referenced_schema', nf.nspname,
                'referenced_table', tf.relname,
                'referenced_columns', ARRAY(
                    SELECT af.attname::text
                    FROM unnest(c.confkey) WITH ORDINALITY AS k(attnum, ord)
                    JOIN pg_attribute af
                        ON af.attrelid = c.confrelid AND af.attnum = k.attnum
                    ORDER BY k.ord
                ),
                'on_update', c.confupdtype,
                'on_delete', c.confdeltype
            )
            FROM pg_class tf
            JOIN pg_namespace nf ON nf.oid = tf.relnamespace
            WHERE tf.oid = c.confrelid
        )
    END AS fk_reference
FROM pg_constraint c
JOIN pg_namespace n ON n.oid = c.connamespace
JOIN pg_class t ON t.oid = c.conrelid
WHERE n.nspname = %(schema)s AND t.relname = %(table)s
ORDER BY c.oid
"""

INDICES_SQL = """
SELECT
    i.relname AS name,
    am.amname AS method,
    ix.indisunique AS is_unique,
    ix.indisprimary AS is_primary,
    ARRAY(
        SELECT a.attname::text
        FROM unnest(ix.indkey::int2[]) WITH ORDINALITY AS k(attnum, ord)
        JOIN pg_attribute a ON a.attrelid = ix.indrelid AND a.attnum = k.attnum
        ORDER BY k.ord
    ) AS column_names
FROM pg_index ix
JOIN pg_class i ON i.oid = ix.indexrelid
JOIN pg_class t ON t.oid = ix.indrelid
JOIN pg_am am ON am.oid = i.relam
JOIN pg_namespace n ON n.oid = t.relnamespace
WHERE n.nspname = %(schema)s AND t.relname = %(table)s
ORDER BY i.oid
"""

VIEWS_SQL = f"""
SELECT
    c.relname AS name,
    n.nspname AS schema_name,
    c.relkind = 'm' AS materialized,
    pg_get_viewdef(c.oid) AS definition,
    ARRAY(
        SELECT a.attname::text
        FROM pg_attribute a
        WHERE a.attrelid = c.oid AND a.attnum > 0 AND NOT a.attisdropped
        ORDER BY a.attnum
    ) AS columns
FROM pg_class c
JOIN pg_namespace n ON n.oid = c.relnamespace
WHERE c.relkind IN ('v', 'm')
AND {_USER_NAMESPACES}
ORDER BY n.nspname, c.relname
"""

# Aggregates and window functions are skipped: pg_get_functiondef() rejects them.
FUNCTIONS_SQL = f"""
SELECT
    p.proname AS name,
    n.nspname AS schema_name,
    p.prokind AS kind,
    pg_get_function_arguments(p.oid) AS arguments,
    pg_get_function_result(p.oid) AS return_type,
    pg_get_functiondef(p.oid) AS definition
FROM pg_proc p
JOIN pg_namespace n ON n.oid = p.pronamespace
WHERE p.prokind IN ('f', 'p')
AND {_USER_NAMESPACES}
ORDER BY n.nspname, p.proname, p.oid
"""

CURRENT_SCHEMA_SQL = "SELECT current_schema() AS name"

TYPE_NAMES_SQL = """
SELECT t.oid::bigint AS oid, t.typname AS name
FROM pg_type t
WHERE t.oid::bigint = ANY (%(oids)s::bigint[])
"""


def split_arguments(signature: str | None) -> list[str]:
    """Split a pg_get_function_arguments() string into single arguments.

    Commas inside parentheses, quoted identifiers and string literals do
    not separate arguments: "a numeric(10,2), b text DEFAULT 'x,y'" gives
    two entries.
    """
    if not signature or not signature.strip():
        return []

    args: list[str] = []
    current: list[str] = []
    depth = 0
    quote: str | None = None
    for ch in signature:
        if quote:
            current.append(ch)
            if ch == quote:
                quote = None
            continue
        if ch in ("'", '"'):
            quote = ch
        elif ch in "([":
            depth += 1
        elif ch in ")]":
            depth = max(depth - 1, 0)
        elif ch == "," and depth == 0:
            args.append("".join(current).strip())
            current = []
            continue
        current.append(ch)

    tail = "".join(current).strip()
    if tail:
        args.append(tail)
    return args


def _fk_action(code: str | None) -> str | None:
    if code is None:
        return None
    return _FK_ACTIONS.get(code, code)


def decode_foreign_key(raw: Any) -> ForeignKeyReference | None:
    """Decode the json_build_object() reference attached to a foreign key."""
    if raw is None:
        return None
    if isinstance(raw, (str, bytes)):
        raw = json.loads(raw)
    referenced_columns = list(raw.get("referenced_columns") or [])
    return ForeignKeyReference(
        referenced_schema=raw.get("referenced_schema") or "",
        referenced_table=raw.get("referenced_table") or "",
        referenced_column=referenced_columns[0] if referenced_columns else "",
        referenced_columns=referenced_columns,
        on_update=_fk_action(raw.get("on_update")),
        on_delete=_fk_action(raw.get("on_delete")),
    )


def column_row_from_record(record: dict[str, Any]) -> ColumnRow:
    full_type = record["full_data_type"]
    column = Column(
        name=record["column_name"],
        data_type=full_type,
        type_category=map_type_category(full_type),
        nullable=not record["not_null"],
        primary_key=record["is_primary"],
        auto_increment=record["is_serial"],
        indexed=record["is_indexed"],
        unique=record["is_unique"],
        char_max_length=record.get("char_max_length"),
        numeric_precision=record.get("numeric_precision"),
        numeric_scale=record.get("numeric_scale"),
        default_value=record["default_value"],
        comment=record["description"],
        position=record["ordinal_position"],
    )
    return ColumnRow(
        schema_name=record["schema_name"],
        table_name=record["table_name"],
        table_comment=record.get("table_comment"),
        column=column,
    )


def constraint_from_record(
    record: dict[str, Any], schema: str, table: str
) -> Constraint | None:
    """Build a Constraint, or None for kinds unidb does not model."""
    constraint_type = _CONSTRAINT_TYPES.get(record["type"])
    if constraint_type is None:
        return None
    return Constraint(
        name=record["name"],
        constraint_type=constraint_type,
        schema_name=schema,
        table_name=table,
        column_names=list(record["columns"] or []),
        foreign_key_reference=decode_foreign_key(record["fk_reference"]),
        check_definition=(
            record["definition"] if constraint_type is ConstraintType.CHECK else None
        ),
        definition=record["definition"],
    )


async def _fetch(
    conn: AsyncConnection[Any], sql: str, params: dict[str, Any] | None = None
) -> list[dict[str, Any]]:
    async with conn.cursor(row_factory=dict_row) as cur:
        await cur.execute(sql, params)
        return await cur.fetchall()


async def fetch_columns(conn: AsyncConnection[Any]) -> list[ColumnRow]:
    records = await _fetch(conn, COLUMNS_SQL)
    return [column_row_from_record(r) for r in records]


async def fetch_constraints(
    conn: AsyncConnection[Any], schema: str, table: str
) -> list[Constraint]:
    log = get_logger("catalog")
    records = await _fetch(conn, CONSTRAINTS_SQL, {"schema": schema, "table": table})
    constraints: list[Constraint] = []
    for record in records:
        constraint = constraint_from_record(record, schema, table)
        if constraint is None:
            log.debug(
                "skipping constraint of unknown kind",
                constraint=record["name"],
                kind=record["type"],
                table=f"{schema}.{table}",
            )
            continue
        constraints.append(constraint)
    return constraints


async def fetch_indices(
    conn: AsyncConnection[Any], schema: str, table: str
) -> list[Index]:
    records = await _fetch(conn, INDICES_SQL, {"schema": schema, "table": table})
    return [
        Index(
            name=r["name"],
            schema_name=schema,
            table_name=table,
            is_unique=r["is_unique"],
            is_primary=r["is_primary"],
            column_names=list(r["column_names"] or []),
            method=r["method"],
        )
        for r in records
    ]


async def fetch_table_details(
    conn: AsyncConnection[Any], schema: str, table: str
) -> tuple[list[Constraint], list[Index]]:
    constraints = await fetch_constraints(conn, schema, table)
    indices = await fetch_indices(conn, schema, table)
    return constraints, indices


async def fetch_views(conn: AsyncConnection[Any]) -> list[View]:
    records = await _fetch(conn, VIEWS_SQL)
    return [
        View(
            name=r["name"],
            schema_name=r["schema_name"],
            definition=r["definition"],
            columns=list(r["columns"] or []),
            materialized=r["materialized"],
        )
        for r in records
    ]


async def fetch_functions(conn: AsyncConnection[Any]) -> list[Function]:
    records = await _fetch(conn, FUNCTIONS_SQL)
    return [
        Function(
            name=r["name"],
            schema_name=r["schema_name"],
            arguments=split_arguments(r["arguments"]),
            return_type=r["return_type"],
            definition=r["definition"],
            kind=_FUNCTION_KINDS.get(r["kind"], "function"),
        )
        for r in records
    ]


async def fetch_current_schema(conn: AsyncConnection[Any]) -> str:
    records = await _fetch(conn, CURRENT_SCHEMA_SQL)
    if records and records[0]["name"]:
        return str(records[0]["name"])
    return "public"


async def fetch_type_names(
    conn: AsyncConnection[Any], oids: list[int]
) -> dict[int, str]:
    """Names of the given type OIDs; OIDs pg_type does not know are absent."""
    records = await _fetch(conn, TYPE_NAMES_SQL, {"oids": oids})
    return {int(r["oid"]): r["name"] for r in records}
