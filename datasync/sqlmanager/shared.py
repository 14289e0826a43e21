"""Dialect independent schema and constraint models."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

POSTGRES_DRIVER = "postgres"
MYSQL_DRIVER = "mysql"
MSSQL_DRIVER = "mssql"

INT16_MIN = -(2**15)
INT16_MAX = 2**15 - 1


@dataclass(frozen=True)
class DatabaseSchemaRow:
    table_schema: str
    table_name: str
    column_name: str
    data_type: str
    column_default: str
    is_nullable: bool
    ordinal_position: Optional[int]
    character_maximum_length: Optional[int] = None
    numeric_precision: Optional[int] = None
    numeric_scale: Optional[int] = None
    identity_generation: Optional[str] = None
    generated_type: Optional[str] = None


@dataclass(frozen=True)
class ColumnInfo:
    ordinal_position: Optional[int] = None
    column_default: str = ""
    is_nullable: bool = True
    data_type: str = ""
    character_maximum_length: Optional[int] = None
    numeric_precision: Optional[int] = None
    numeric_scale: Optional[int] = None
    identity_generation: Optional[str] = None
    generated_type: Optional[str] = None

    @property
    def has_length_bound(self) -> bool:
        return self.character_maximum_length is not None and self.character_maximum_length > 0


@dataclass(frozen=True)
class ForeignKey:
    table: str
    columns: tuple[str, ...]


@dataclass(frozen=True)
class ForeignConstraint:
    """A foreign key owned by the referencing table.

    ``columns[i]`` references ``foreign_key.columns[i]`` and ``not_nullable[i]``
    describes ``columns[i]``; the three sequences always share one ordering.
    """

    columns: tuple[str, ...]
    not_nullable: tuple[bool, ...]
    foreign_key: ForeignKey
    constraint_name: Optional[str] = None

    @property
    def is_nullable(self) -> bool:
        return not any(self.not_nullable)


@dataclass
class TableConstraints:
    foreign_key_constraints: dict[str, list[ForeignConstraint]] = field(default_factory=dict)
    primary_key_constraints: dict[str, list[str]] = field(default_factory=dict)
    unique_constraints: dict[str, list[list[str]]] = field(default_factory=dict)


@dataclass(frozen=True)
class SchemaTable:
    schema: str
    table: str

    def __str__(self) -> str:
        return build_table(self.schema, self.table)


def build_table(schema: str, table: str) -> str:
    if schema:
        return f"{schema}.{table}"
    return table


def split_table(name: str) -> SchemaTable:
    schema, _, table = name.partition(".")
    if not table:
        return SchemaTable(schema="", table=schema)
    return SchemaTable(schema=schema, table=table)


def dedupe(values: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        result.append(value)
    return result


def split_and_strip(value: Optional[str], delimiter: str = ",") -> list[str]:
    if not value:
        return []
    return [piece.strip() for piece in value.split(delimiter) if piece.strip()]


def get_unique_schema_col_mappings(rows: Iterable[DatabaseSchemaRow]) -> dict[str, dict[str, ColumnInfo]]:
    grouped: dict[str, dict[str, ColumnInfo]] = {}
    for row in rows:
        key = build_table(row.table_schema, row.table_name)
        columns = grouped.setdefault(key, {})
        if row.column_name in columns:
            continue
        columns[row.column_name] = ColumnInfo(
            ordinal_position=row.ordinal_position,
            column_default=row.column_default,
            is_nullable=row.is_nullable,
            data_type=row.data_type,
            character_maximum_length=row.character_maximum_length,
            numeric_precision=row.numeric_precision,
            numeric_scale=row.numeric_scale,
            identity_generation=row.identity_generation,
            generated_type=row.generated_type,
        )
    return grouped


def get_table_columns_map(rows: Iterable[DatabaseSchemaRow]) -> dict[str, list[str]]:
    """Group column names per table, ordered by ordinal position."""

    grouped: dict[str, list[DatabaseSchemaRow]] = {}
    for row in rows:
        grouped.setdefault(build_table(row.table_schema, row.table_name), []).append(row)

    result: dict[str, list[str]] = {}
    for table, table_rows in grouped.items():
        ordered = sorted(
            table_rows,
            key=lambda item: item.ordinal_position if item.ordinal_position is not None else INT16_MAX,
        )
        result[table] = dedupe(item.column_name for item in ordered)
    return result
