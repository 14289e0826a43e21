from __future__ import annotations

import logging
from typing import Any, Iterable, Optional, Protocol, Sequence

from sqlalchemy import func, select, table as sql_table, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from datasync.errors import ConstraintMetadataError
from datasync.sqlmanager.shared import (
    INT16_MAX,
    INT16_MIN,
    MSSQL_DRIVER,
    MYSQL_DRIVER,
    POSTGRES_DRIVER,
    ColumnInfo,
    DatabaseSchemaRow,
    ForeignConstraint,
    ForeignKey,
    TableConstraints,
    build_table,
    dedupe,
    get_unique_schema_col_mappings,
    split_and_strip,
)

logger = logging.getLogger(__name__)

FOREIGN_KEY = "FOREIGN KEY"
PRIMARY_KEY = "PRIMARY KEY"
UNIQUE = "UNIQUE"


class SqlManagerError(RuntimeError):
    """Raised when schema metadata cannot be retrieved from a source database."""


class SchemaQuerier(Protocol):
    """Runs the dialect specific introspection queries and returns raw rows."""

    def get_database_schema(self) -> Optional[Iterable[Any]]:
        ...

    def get_table_constraints_by_schemas(self, schemas: Sequence[str]) -> Optional[Iterable[Any]]:
        ...

    def get_role_permissions(self) -> Optional[Iterable[Any]]:
        ...


class SqlManager:
    """Normalizes raw introspection rows into the shared schema model."""

    driver = ""

    def __init__(self, querier: SchemaQuerier, *, engine: Engine | None = None) -> None:
        self._querier = querier
        self._engine = engine

    def get_database_schema(self) -> list[DatabaseSchemaRow]:
        rows = self._querier.get_database_schema()
        if not rows:
            return []
        return [self._normalize_schema_row(row) for row in rows]

    def get_schema_column_map(self) -> dict[str, dict[str, ColumnInfo]]:
        return get_unique_schema_col_mappings(self.get_database_schema())

    def get_table_constraints_by_schema(self, schemas: Sequence[str]) -> TableConstraints:
        if not schemas:
            return TableConstraints()
        rows = self._querier.get_table_constraints_by_schemas(list(schemas))
        if not rows:
            return TableConstraints()
        return build_table_constraints(rows)

    def get_role_permissions_map(self) -> dict[str, list[str]]:
        rows = self._querier.get_role_permissions()
        if not rows:
            return {}

        privileges: dict[str, list[str]] = {}
        for row in rows:
            key = build_table(
                str(_row_value(row, "table_schema") or ""),
                str(_row_value(row, "table_name") or ""),
            )
            privilege = _row_value(row, "privilege_type")
            if privilege is not None:
                privileges.setdefault(key, []).append(str(privilege))
        return privileges

    def get_table_row_count(self, schema: str, table: str, where_clause: str | None = None) -> int:
        if self._engine is None:
            raise SqlManagerError(f"No database engine configured to count rows for {build_table(schema, table)}.")

        stmt = select(func.count()).select_from(sql_table(table, schema=schema or None))
        if where_clause:
            stmt = stmt.where(text(where_clause))

        try:
            with self._engine.connect() as connection:
                return int(connection.execute(stmt).scalar_one())
        except SQLAlchemyError as exc:
            raise SqlManagerError(
                f"Unable to query table row count for {self.driver or 'database'} table {build_table(schema, table)}: {exc}"
            ) from exc

    def _normalize_schema_row(self, row: Any) -> DatabaseSchemaRow:
        return DatabaseSchemaRow(
            table_schema=str(_row_value(row, "table_schema", "schema_name") or ""),
            table_name=str(_row_value(row, "table_name") or ""),
            column_name=str(_row_value(row, "column_name") or ""),
            data_type=str(_row_value(row, "data_type") or ""),
            column_default=str(_row_value(row, "column_default") or ""),
            is_nullable=_parse_nullable(_row_value(row, "is_nullable")),
            ordinal_position=_parse_ordinal(_row_value(row, "ordinal_position")),
            character_maximum_length=_optional_int(_row_value(row, "character_maximum_length")),
            numeric_precision=_optional_int(_row_value(row, "numeric_precision")),
            numeric_scale=_optional_int(_row_value(row, "numeric_scale")),
            identity_generation=self._identity_generation(row),
            generated_type=self._generated_type(row),
        )

    def _identity_generation(self, row: Any) -> Optional[str]:
        return None

    def _generated_type(self, row: Any) -> Optional[str]:
        return None


class PostgresManager(SqlManager):
    driver = POSTGRES_DRIVER

    _IDENTITY_CODES = {"a": "ALWAYS", "d": "BY DEFAULT"}
    _GENERATED_CODES = {"s": "STORED"}

    def _identity_generation(self, row: Any) -> Optional[str]:
        value = _normalize_string(_row_value(row, "identity_generation"))
        if not value:
            return None
        return self._IDENTITY_CODES.get(value.lower(), value)

    def _generated_type(self, row: Any) -> Optional[str]:
        value = _normalize_string(_row_value(row, "generated_type"))
        if not value:
            return None
        return self._GENERATED_CODES.get(value.lower(), value)


class MysqlManager(SqlManager):
    driver = MYSQL_DRIVER

    def _identity_generation(self, row: Any) -> Optional[str]:
        extra = (_normalize_string(_row_value(row, "extra")) or "").lower()
        if "auto_increment" in extra:
            return "auto_increment"
        return None

    def _generated_type(self, row: Any) -> Optional[str]:
        return _normalize_string(_row_value(row, "generation_expression", "generation_exp"))


class MssqlManager(SqlManager):
    driver = MSSQL_DRIVER

    default_identity = "IDENTITY(1,1)"

    def _identity_generation(self, row: Any) -> Optional[str]:
        if _parse_bool(_row_value(row, "is_identity")):
            return self.default_identity
        return None

    def _generated_type(self, row: Any) -> Optional[str]:
        return _normalize_string(_row_value(row, "generation_expression"))


_MANAGERS: dict[str, type[SqlManager]] = {
    POSTGRES_DRIVER: PostgresManager,
    MYSQL_DRIVER: MysqlManager,
    MSSQL_DRIVER: MssqlManager,
}


def get_sql_manager(driver: str, querier: SchemaQuerier, *, engine: Engine | None = None) -> SqlManager:
    manager_cls = _MANAGERS.get((driver or "").strip().lower())
    if manager_cls is None:
        raise SqlManagerError(
            f"Unsupported driver '{driver}'. Supported drivers: {', '.join(sorted(_MANAGERS))}."
        )
    return manager_cls(querier, engine=engine)


def build_table_constraints(rows: Iterable[Any]) -> TableConstraints:
    """Fold raw constraint rows into foreign key, primary key and unique maps."""

    foreign_keys: dict[str, list[ForeignConstraint]] = {}
    primary_keys: dict[str, list[str]] = {}
    uniques: dict[str, list[list[str]]] = {}

    for row in rows:
        table_name = build_table(
            str(_row_value(row, "schema_name", "table_schema") or ""),
            str(_row_value(row, "table_name") or ""),
        )
        constraint_name = _normalize_string(_row_value(row, "constraint_name"))
        constraint_type = (_normalize_string(_row_value(row, "constraint_type")) or "").upper()
        constraint_columns = split_and_strip(_row_value(row, "constraint_columns"))

        if constraint_type == FOREIGN_KEY:
            constraint = _build_foreign_constraint(row, table_name, constraint_name, constraint_columns)
            if constraint is not None:
                foreign_keys.setdefault(table_name, []).append(constraint)
        elif constraint_type == PRIMARY_KEY:
            existing = primary_keys.setdefault(table_name, [])
            existing.extend(column for column in dedupe(constraint_columns) if column not in existing)
        elif constraint_type == UNIQUE:
            uniques.setdefault(table_name, []).append(dedupe(constraint_columns))

    return TableConstraints(
        foreign_key_constraints=foreign_keys,
        primary_key_constraints=primary_keys,
        unique_constraints=uniques,
    )


def _build_foreign_constraint(
    row: Any,
    table_name: str,
    constraint_name: Optional[str],
    constraint_columns: list[str],
) -> ForeignConstraint | None:
    referenced_table = _normalize_string(_row_value(row, "referenced_table"))
    referenced_columns = split_and_strip(_row_value(row, "referenced_columns"))
    if not referenced_table or not referenced_columns:
        logger.debug("Skipping foreign key %s on %s without a referenced table", constraint_name, table_name)
        return None

    referenced_schema = _normalize_string(_row_value(row, "referenced_schema_name", "referenced_schema"))
    if referenced_schema and "." not in referenced_table:
        referenced_table = build_table(referenced_schema, referenced_table)

    nullability = split_and_strip(_row_value(row, "constraint_columns_nullability"))
    not_nullable = [value.upper() == "NOT NULL" for value in nullability]

    label = constraint_name or "<unnamed>"
    if len(constraint_columns) != len(referenced_columns):
        raise ConstraintMetadataError(
            f"Foreign key {label} on {table_name} has {len(constraint_columns)} columns"
            f" but references {len(referenced_columns)} columns"
        )
    if len(constraint_columns) != len(not_nullable):
        raise ConstraintMetadataError(
            f"Foreign key {label} on {table_name} has {len(constraint_columns)} columns"
            f" but {len(not_nullable)} nullability flags"
        )

    return ForeignConstraint(
        columns=tuple(constraint_columns),
        not_nullable=tuple(not_nullable),
        foreign_key=ForeignKey(table=referenced_table, columns=tuple(referenced_columns)),
        constraint_name=constraint_name,
    )


def _row_value(row: Any, *candidates: str):
    if isinstance(row, dict):
        normalized = {str(key).lower(): value for key, value in row.items()}
        for candidate in candidates:
            value = normalized.get(candidate.lower())
            if value is not None:
                return value
        return None

    mapping = getattr(row, "_mapping", None)
    if mapping:
        normalized = {str(key).lower(): value for key, value in mapping.items()}
        for candidate in candidates:
            value = normalized.get(candidate.lower())
            if value is not None:
                return value
    for candidate in candidates:
        direct = getattr(row, candidate, None)
        if direct is not None:
            return direct
        upper = getattr(row, candidate.upper(), None)
        if upper is not None:
            return upper
    return None


def _normalize_string(value: Any) -> Optional[str]:
    if value is None:
        return None
    trimmed = str(value).strip()
    return trimmed or None


def _optional_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _parse_ordinal(value: Any) -> Optional[int]:
    position = _optional_int(value)
    if position is None or position < INT16_MIN or position > INT16_MAX:
        return None
    return position


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    return (_normalize_string(value) or "").lower() in {"1", "true", "yes", "y", "t"}


def _parse_nullable(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, bool):
        return value
    return (_normalize_string(value) or "").upper() not in {"NO", "NOT NULL", "FALSE", "0"}
