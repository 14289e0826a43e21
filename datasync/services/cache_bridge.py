from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from datasync.errors import CacheBridgeError
from datasync.schemas.transformers import JobMapping
from datasync.services.mutations import column_path, column_value, quote_identifier
from datasync.services.table_dependency import ReferenceKey
from datasync.sqlmanager.shared import build_table

logger = logging.getLogger(__name__)

CACHE_READ_COMMAND = "hget"


@dataclass(frozen=True)
class CacheConfig:
    url: str
    kind: str = "simple"
    master: Optional[str] = None


@dataclass(frozen=True)
class CacheProcessorConfig:
    url: str
    command: str
    args_mapping: str
    kind: str
    master: Optional[str] = None


@dataclass(frozen=True)
class BranchConfig:
    request_map: str
    result_map: str
    processors: tuple[CacheProcessorConfig, ...]


def hash_cache_key(job_id: str, run_id: str, table: str, column: str) -> str:
    return hashlib.sha256(f"{job_id}.{run_id}.{table}.{column}".encode("utf-8")).hexdigest()


def build_branch_cache_configs(
    columns: Sequence[JobMapping],
    column_constraints: Mapping[str, Sequence[ReferenceKey]],
    job_id: str,
    run_id: str,
    cache_config: Optional[CacheConfig],
) -> list[BranchConfig]:
    """Build a cache lookup branch for every column another table references.

    ``column_constraints`` maps a column of the table being compiled to the
    columns that point at it. References from the table itself never need the
    cache because both sides are written by the same pipeline.
    """

    branches: list[BranchConfig] = []
    for mapping in columns:
        table = build_table(mapping.schema_name, mapping.table_name)
        for reference in column_constraints.get(mapping.column_name, ()):
            if reference.table == table:
                continue
            if cache_config is None:
                raise CacheBridgeError(
                    f"Column {table}.{mapping.column_name} is referenced by {reference.table}.{reference.column}"
                    " and needs a cache, but no cache is configured."
                )

            key = hash_cache_key(job_id, run_id, reference.table, reference.column)
            column = mapping.column_name
            processor = CacheProcessorConfig(
                url=cache_config.url,
                command=CACHE_READ_COMMAND,
                args_mapping=f'root = ["{key}", json({quote_identifier(column)})]',
                kind=cache_config.kind,
                master=cache_config.master,
            )
            branches.append(
                BranchConfig(
                    request_map=f"root = if {column_value(column)} == null {{ deleted() }} else {{ this }}",
                    result_map=f"{column_path(column)} = this",
                    processors=(processor,),
                )
            )

    if branches:
        logger.debug("Built %s cache branches for job %s run %s", len(branches), job_id, run_id)
    return branches


def bridged_columns(
    columns: Sequence[JobMapping],
    column_constraints: Mapping[str, Sequence[ReferenceKey]],
) -> set[str]:
    """Columns whose value comes from the cache instead of a plain mutation."""

    result: set[str] = set()
    for mapping in columns:
        table = build_table(mapping.schema_name, mapping.table_name)
        if any(reference.table != table for reference in column_constraints.get(mapping.column_name, ())):
            result.add(mapping.column_name)
    return result
