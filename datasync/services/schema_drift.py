from __future__ import annotations

import logging
from typing import Mapping, Sequence

from datasync.errors import SchemaDriftError
from datasync.schemas.transformers import JobMapping
from datasync.sqlmanager.shared import ColumnInfo, build_table

logger = logging.getLogger(__name__)

SCHEMA_DIVERGED_MESSAGE = "schema has diverged from configuration"


def are_mappings_subset_of_schemas(
    schema_map: Mapping[str, Mapping[str, ColumnInfo]],
    mappings: Sequence[JobMapping],
) -> bool:
    """Return True when every mapped column exists in the live schema."""

    return not _unknown_columns(schema_map, mappings)


def should_halt_on_schema_addition(
    schema_map: Mapping[str, Mapping[str, ColumnInfo]],
    mappings: Sequence[JobMapping],
) -> bool:
    """Return True when a mapped table gained, lost or renamed columns.

    Live tables with no mapping at all are treated as opted out of the job.
    """

    return bool(_unmapped_columns(schema_map, mappings)) or any(
        len(schema_map[table]) != len(columns)
        for table, columns in _mapped_columns(mappings).items()
        if table in schema_map
    )


def validate_job_mappings(
    schema_map: Mapping[str, Mapping[str, ColumnInfo]],
    mappings: Sequence[JobMapping],
) -> None:
    unknown = _unknown_columns(schema_map, mappings)
    unmapped = _unmapped_columns(schema_map, mappings)
    if not unknown and not should_halt_on_schema_addition(schema_map, mappings):
        return

    details = []
    if unknown:
        details.append(f"mapped columns missing from the database: {', '.join(unknown)}")
    if unmapped:
        details.append(f"database columns without a mapping: {', '.join(unmapped)}")
    logger.warning("Job mappings do not match the source schema (%s)", "; ".join(details) or "column count differs")

    message = SCHEMA_DIVERGED_MESSAGE
    if details:
        message = f"{message}: {'; '.join(details)}"
    raise SchemaDriftError(message, unknown_columns=unknown, unmapped_columns=unmapped)


def _mapped_columns(mappings: Sequence[JobMapping]) -> dict[str, set[str]]:
    grouped: dict[str, set[str]] = {}
    for mapping in mappings:
        grouped.setdefault(build_table(mapping.schema_name, mapping.table_name), set()).add(mapping.column_name)
    return grouped


def _unknown_columns(
    schema_map: Mapping[str, Mapping[str, ColumnInfo]],
    mappings: Sequence[JobMapping],
) -> list[str]:
    unknown: list[str] = []
    for mapping in mappings:
        table = build_table(mapping.schema_name, mapping.table_name)
        if mapping.column_name not in schema_map.get(table, {}):
            unknown.append(f"{table}.{mapping.column_name}")
    return unknown


def _unmapped_columns(
    schema_map: Mapping[str, Mapping[str, ColumnInfo]],
    mappings: Sequence[JobMapping],
) -> list[str]:
    unmapped: list[str] = []
    for table, columns in _mapped_columns(mappings).items():
        live_columns = schema_map.get(table)
        if live_columns is None:
            continue
        unmapped.extend(f"{table}.{column}" for column in live_columns if column not in columns)
    return unmapped
