from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Mapping, Optional, Sequence

from datasync.schemas.transformers import JobMapping, JobMappingTransformer
from datasync.services.cache_bridge import (
    BranchConfig,
    CacheConfig,
    bridged_columns,
    build_branch_cache_configs,
)
from datasync.services.mutations import (
    build_javascript_code,
    build_mutation_configs,
    column_value,
    resolve_user_defined_mappings,
)
from datasync.services.table_dependency import ReferenceKey, RunConfig
from datasync.sqlmanager.shared import ColumnInfo


@dataclass(frozen=True)
class ProcessorConfig:
    """One pipeline stage; exactly one of the fields is set."""

    mutation: Optional[str] = None
    javascript: Optional[str] = None
    branch: Optional[BranchConfig] = None


def build_processor_configs(
    mappings: Sequence[JobMapping],
    column_info_map: Mapping[str, ColumnInfo],
    column_constraints: Mapping[str, Sequence[ReferenceKey]],
    run_config: RunConfig,
    job_id: str,
    run_id: str,
    cache_config: Optional[CacheConfig] = None,
    resolve: Optional[Callable[[JobMappingTransformer], JobMappingTransformer]] = None,
) -> list[ProcessorConfig]:
    # insert_columns follow ordinal position, so every stage below does too.
    mappings_by_column = {mapping.column_name: mapping for mapping in mappings}
    columns = resolve_user_defined_mappings(
        [mappings_by_column[column] for column in run_config.insert_columns if column in mappings_by_column],
        resolve,
    )
    bridged = bridged_columns(columns, column_constraints)
    plain = [mapping for mapping in columns if mapping.column_name not in bridged]

    processors: list[ProcessorConfig] = []
    mutation = build_mutation_configs(plain, column_info_map)
    if mutation:
        processors.append(ProcessorConfig(mutation=mutation))

    javascript = build_javascript_code(plain)
    if javascript:
        processors.append(ProcessorConfig(javascript=javascript))

    for branch in build_branch_cache_configs(columns, column_constraints, job_id, run_id, cache_config):
        processors.append(ProcessorConfig(branch=branch))
    return processors


def build_plain_insert_args(columns: Sequence[str]) -> str:
    if not columns:
        return ""
    return f"root = [{', '.join(column_value(column) for column in columns)}]"


def build_plain_columns(mappings: Sequence[JobMapping]) -> list[str]:
    return [mapping.column_name for mapping in mappings]
