import pytest

from datasync.errors import SchemaDriftError
from datasync.schemas.transformers import JobMapping
from datasync.services.schema_drift import (
    are_mappings_subset_of_schemas,
    should_halt_on_schema_addition,
    validate_job_mappings,
)
from datasync.sqlmanager.shared import ColumnInfo


def _schema(**tables: list[str]) -> dict[str, dict[str, ColumnInfo]]:
    return {
        f"public.{table}": {column: ColumnInfo(ordinal_position=index + 1) for index, column in enumerate(columns)}
        for table, columns in tables.items()
    }


def _mappings(table: str, *columns: str) -> list[JobMapping]:
    return [JobMapping(schema_name="public", table_name=table, column_name=column) for column in columns]


def test_mappings_subset_of_schema():
    schema = _schema(users=["id", "created_by", "updated_by"])

    assert are_mappings_subset_of_schemas(schema, _mappings("users", "id", "created_by"))


def test_mappings_with_missing_table_are_not_subset():
    schema = _schema(users=["id", "created_by", "updated_by"])

    assert not are_mappings_subset_of_schemas(schema, _mappings("accounts", "id"))


def test_mappings_with_missing_column_are_not_subset():
    schema = _schema(users=["id", "created_by"])

    assert not are_mappings_subset_of_schemas(schema, _mappings("users", "id", "updated_by"))


def test_should_halt_when_mapped_table_gains_a_column():
    schema = _schema(users=["id", "created_by", "updated_by"])

    assert should_halt_on_schema_addition(schema, _mappings("users", "id", "created_by"))


def test_should_halt_when_column_renamed_with_same_count():
    schema = _schema(users=["id", "created_by"])

    assert should_halt_on_schema_addition(schema, _mappings("users", "id", "updated_by"))


def test_should_not_halt_for_unmapped_tables():
    schema = _schema(users=["id", "created_by"], audit_log=["id", "payload"])

    assert not should_halt_on_schema_addition(schema, _mappings("users", "id", "created_by"))


def test_should_not_halt_when_mapped_table_is_missing():
    schema = _schema(users=["id"])

    assert not should_halt_on_schema_addition(schema, _mappings("users", "id") + _mappings("accounts", "id"))


def test_validate_job_mappings_accepts_matching_schema():
    schema = _schema(users=["id", "name"])

    validate_job_mappings(schema, _mappings("users", "id", "name"))


def test_validate_job_mappings_reports_offending_columns():
    schema = _schema(users=["id", "name", "email"])

    with pytest.raises(SchemaDriftError) as excinfo:
        validate_job_mappings(schema, _mappings("users", "id", "name", "phone"))

    assert str(excinfo.value).startswith("schema has diverged from configuration")
    assert excinfo.value.unknown_columns == ["public.users.phone"]
    assert excinfo.value.unmapped_columns == ["public.users.email"]
