"""Engine-agnostic schema and result models for unidb.

Every backend produces these pydantic models, so callers see the same
shape whichever server answered. Nested lists keep the order in which
the server catalog returned them.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field


class TypeCategory(StrEnum):
    """Portable vocabulary that engine-specific type names collapse into."""

    NUMERIC = "numeric"
    TEXT = "text"
    BOOLEAN = "boolean"
    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"
    BINARY = "binary"
    JSON = "json"
    ARRAY = "array"
    UUID = "uuid"
    NETWORK = "network"
    GEOMETRY = "geometry"
    OTHER = "other"


class ConstraintType(StrEnum):
    PRIMARY_KEY = "primary_key"
    FOREIGN_KEY = "foreign_key"
    UNIQUE = "unique"
    CHECK = "check"
    EXCLUSION = "exclusion"


class ForeignKeyReference(BaseModel):
    """Target of a foreign key.

    referenced_column is the first referenced column; referenced_columns
    holds all of them, in key order, for composite keys.
    """

    referenced_schema: str
    referenced_table: str
    referenced_column: str
    referenced_columns: list[str] = Field(default_factory=list)
    on_update: str | None = None
    on_delete: str | None = None


class Column(BaseModel):
    """A table column as described by the server catalog."""

    name: str
    data_type: str
    type_category: TypeCategory
    nullable: bool = True
    primary_key: bool = False
    auto_increment: bool = False
    indexed: bool = False
    unique: bool = False
    char_max_length: int | None = None
    numeric_precision: int | None = None
    numeric_scale: int | None = None
    default_value: str | None = None
    comment: str | None = None
    position: int
    foreign_key: ForeignKeyReference | None = None


class Constraint(BaseModel):
    name: str
    constraint_type: ConstraintType
    schema_name: str
    table_name: str
    column_names: list[str] = Field(default_factory=list)
    foreign_key_reference: ForeignKeyReference | None = None
    check_definition: str | None = None
    definition: str | None = None


class Index(BaseModel):
    name: str
    schema_name: str
    table_name: str
    is_unique: bool = False
    is_primary: bool = False
    column_names: list[str] = Field(default_factory=list)
    method: str | None = None


class Table(BaseModel):
    """A table with its columns, constraints and indices.

    primary_key_columns is derived from the columns flagged primary_key,
    in ordinal order.
    """

    name: str
    schema_name: str
    columns: list[Column] = Field(default_factory=list)
    constraints: list[Constraint] = Field(default_factory=list)
    indices: list[Index] = Field(default_factory=list)
    primary_key_columns: list[str] = Field(default_factory=list)
    comment: str | None = None

    @property
    def qualified_name(self) -> str:
        return f"{self.schema_name}.{self.name}"


class View(BaseModel):
    name: str
    schema_name: str
    definition: str | None = None
    columns: list[str] = Field(default_factory=list)
    materialized: bool = False


class Function(BaseModel):
    name: str
    schema_name: str
    arguments: list[str] = Field(default_factory=list)
    return_type: str | None = None
    definition: str | None = None
    kind: str = "function"


class Schema(BaseModel):
    """Snapshot of a database, rebuilt from the live catalog on each call."""

    name: str
    tables: list[Table] = Field(default_factory=list)
    views: list[View] = Field(default_factory=list)
    functions: list[Function] = Field(default_factory=list)
    constraints: list[Constraint] = Field(default_factory=list)


class ColumnDefinition(BaseModel):
    """Result-set column.

    A result set alone cannot tell nullability, keys or defaults, so those
    stay at their "unknown" values.
    """

    name: str
    data_type: str
    nullable: bool = True
    primary_key: bool = False
    default_value: str | None = None


class QueryResult(BaseModel):
    """Result of executing one SQL statement.

    Row values are text; SQL NULL is None.
    """

    query: str
    timestamp: int
    rows_affected: int | None = None
    execution_time_ms: float = 0.0
    columns: list[ColumnDefinition] = Field(default_factory=list)
    rows: list[dict[str, str | None]] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    result_index: int = 0

    @property
    def row_count(self) -> int:
        return len(self.rows)
