"""Schema assembly: flat catalog rows to nested Table and Schema models.

The columns query yields one row per column, sorted by schema, table and
ordinal position. assemble_tables() walks that stream once, accumulating
columns until the (schema, table) key changes, then flushes the group
into a Table. Constraints and indices are loaded per table at flush time
and kept on the Table, so the schema-wide constraint list is built from
them without a second catalog read.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel

from unidb.core.models import (
    Column,
    Constraint,
    ConstraintType,
    Function,
    Index,
    Schema,
    Table,
    View,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

    DetailLoader = Callable[
        [str, str], Awaitable[tuple[list[Constraint], list[Index]]]
    ]


class ColumnRow(BaseModel):
    """One row of the columns query: a column plus its owning table."""

    schema_name: str
    table_name: str
    table_comment: str | None = None
    column: Column


def reconcile_foreign_keys(columns: list[Column], constraints: list[Constraint]) -> None:
    """Copy foreign-key targets from constraints onto the member columns.

    For composite keys the n-th member column points at the n-th
    referenced column. A column already carrying a reference keeps it.
    """
    by_name = {col.name: col for col in columns}
    for constraint in constraints:
        ref = constraint.foreign_key_reference
        if constraint.constraint_type is not ConstraintType.FOREIGN_KEY or ref is None:
            continue
        for i, col_name in enumerate(constraint.column_names):
            col = by_name.get(col_name)
            if col is None or col.foreign_key is not None:
                continue
            if i < len(ref.referenced_columns):
                col.foreign_key = ref.model_copy(
                    update={"referenced_column": ref.referenced_columns[i]}
                )
            else:
                col.foreign_key = ref.model_copy()


class TableAccumulator:
    """Columns collected for one (schema, table) group."""

    def __init__(
        self, schema_name: str, table_name: str, comment: str | None = None
    ) -> None:
        self.schema_name = schema_name
        self.table_name = table_name
        self.comment = comment
        self.columns: list[Column] = []

    @property
    def key(self) -> tuple[str, str]:
        return (self.schema_name, self.table_name)

    def add(self, column: Column) -> None:
        self.columns.append(column)

    def flush(self, constraints: list[Constraint], indices: list[Index]) -> Table:
        reconcile_foreign_keys(self.columns, constraints)
        return Table(
            name=self.table_name,
            schema_name=self.schema_name,
            columns=self.columns,
            constraints=constraints,
            indices=indices,
            primary_key_columns=[c.name for c in self.columns if c.primary_key],
            comment=self.comment,
        )


async def _flush(acc: TableAccumulator, load_details: DetailLoader) -> Table:
    constraints, indices = await load_details(acc.schema_name, acc.table_name)
    return acc.flush(constraints, indices)


async def assemble_tables(
    rows: Iterable[ColumnRow], load_details: DetailLoader
) -> list[Table]:
    """Group sorted column rows into Tables.

    Rows must arrive ordered by (schema, table, position); a key change
    closes the current table. The last group is flushed after the loop.
    Errors from load_details propagate and abort the whole assembly.
    """
    tables: list[Table] = []
    current: TableAccumulator | None = None

    for row in rows:
        if current is None or current.key != (row.schema_name, row.table_name):
            if current is not None:
                tables.append(await _flush(current, load_details))
            current = TableAccumulator(
                row.schema_name, row.table_name, row.table_comment
            )
        current.add(row.column)

    if current is not None:
        tables.append(await _flush(current, load_details))

    return tables


def collect_constraints(tables: Iterable[Table]) -> list[Constraint]:
    return [c for table in tables for c in table.constraints]


def build_schema(
    name: str,
    tables: list[Table],
    views: list[View],
    functions: list[Function],
) -> Schema:
    return Schema(
        name=name,
        tables=tables,
        views=views,
        functions=functions,
        constraints=collect_constraints(tables),
    )
