from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Mapping, Optional, Sequence

from datasync.errors import CompilationCancelledError, TransformerConfigError
from datasync.schemas.transformers import JobMapping, JobMappingTransformer, UserDefinedTransformerConfig
from datasync.services.cache_bridge import CacheConfig
from datasync.services.processors import (
    ProcessorConfig,
    build_plain_insert_args,
    build_processor_configs,
)
from datasync.services.schema_drift import validate_job_mappings
from datasync.services.table_dependency import (
    ReferenceKey,
    RunConfig,
    RunType,
    filter_deferred_references,
    get_primary_key_dependency_map,
    get_run_configs,
)
from datasync.services.transformer_client import TransformerLookup, convert_user_defined_function_config
from datasync.sqlmanager.shared import (
    DatabaseSchemaRow,
    TableConstraints,
    build_table,
    get_table_columns_map,
    get_unique_schema_col_mappings,
)

logger = logging.getLogger(__name__)


@dataclass
class CompilationContext:
    """Everything a single plan compilation reads. Nothing here is mutated while compiling."""

    job_id: str
    run_id: str
    schema_rows: Sequence[DatabaseSchemaRow]
    constraints: TableConstraints
    mappings: Sequence[JobMapping]
    cache_config: Optional[CacheConfig] = None
    transformer_lookup: Optional[TransformerLookup] = None
    where_clauses: Mapping[str, str] = field(default_factory=dict)
    cancel_event: Optional[threading.Event] = None


@dataclass(frozen=True)
class TablePipeline:
    run_config: RunConfig
    processors: tuple[ProcessorConfig, ...]
    insert_args: str
    columns: tuple[str, ...]
    where_columns: tuple[str, ...] = ()


@dataclass(frozen=True)
class SyncPlan:
    job_id: str
    run_id: str
    pipelines: tuple[TablePipeline, ...]

    @property
    def run_configs(self) -> list[RunConfig]:
        return [pipeline.run_config for pipeline in self.pipelines]


class SyncPlanBuilder:
    """Compiles job mappings plus schema metadata into an ordered sync plan."""

    def __init__(self, context: CompilationContext) -> None:
        self.context = context
        self._resolved: dict[str, JobMappingTransformer] = {}

    def build(self) -> SyncPlan:
        context = self.context
        schema_map = get_unique_schema_col_mappings(context.schema_rows)
        validate_job_mappings(schema_map, context.mappings)

        mappings_by_table: dict[str, list[JobMapping]] = {}
        for mapping in context.mappings:
            table = build_table(mapping.schema_name, mapping.table_name)
            mappings_by_table.setdefault(table, []).append(mapping)

        table_columns_map = {
            table: columns
            for table, columns in get_table_columns_map(context.schema_rows).items()
            if table in mappings_by_table
        }
        foreign_keys = context.constraints.foreign_key_constraints
        run_configs = get_run_configs(
            {table: foreign_keys.get(table, []) for table in table_columns_map},
            context.constraints.primary_key_constraints,
            table_columns_map,
            context.where_clauses,
        )
        bridge_map = filter_deferred_references(
            get_primary_key_dependency_map({table: foreign_keys.get(table, []) for table in table_columns_map}),
            run_configs,
        )

        logger.info(
            "Compiling sync plan for job %s run %s: %s tables, %s run configs",
            context.job_id,
            context.run_id,
            len(table_columns_map),
            len(run_configs),
        )

        pipelines: list[TablePipeline] = []
        for run_config in run_configs:
            self._raise_if_cancelled(run_config.table)
            pipelines.append(
                self._build_pipeline(
                    run_config,
                    mappings_by_table.get(run_config.table, []),
                    schema_map.get(run_config.table, {}),
                    bridge_map.get(run_config.table, {}),
                )
            )

        logger.info("Compiled sync plan for job %s run %s", context.job_id, context.run_id)
        return SyncPlan(job_id=context.job_id, run_id=context.run_id, pipelines=tuple(pipelines))

    def _build_pipeline(
        self,
        run_config: RunConfig,
        mappings: Sequence[JobMapping],
        column_info_map,
        column_constraints: Mapping[str, Sequence[ReferenceKey]],
    ) -> TablePipeline:
        processors = build_processor_configs(
            mappings,
            column_info_map,
            column_constraints,
            run_config,
            self.context.job_id,
            self.context.run_id,
            self.context.cache_config,
            self._resolve if self.context.transformer_lookup is not None else None,
        )

        # insert_args binds positionally: written columns first, then the where columns.
        columns = tuple(run_config.insert_columns)
        where_columns = tuple(run_config.primary_keys) if run_config.run_type == RunType.UPDATE else ()

        logger.debug(
            "Built %s processors for %s (%s)",
            len(processors),
            run_config.table,
            run_config.run_type.value,
        )
        return TablePipeline(
            run_config=run_config,
            processors=tuple(processors),
            insert_args=build_plain_insert_args(columns + where_columns),
            columns=columns,
            where_columns=where_columns,
        )

    def _resolve(self, transformer: JobMappingTransformer) -> JobMappingTransformer:
        config = transformer.config
        if not isinstance(config, UserDefinedTransformerConfig):
            raise TransformerConfigError("User defined transformer is missing its user_defined configuration.")

        cached = self._resolved.get(config.id)
        if cached is None:
            cached = convert_user_defined_function_config(self.context.transformer_lookup, transformer)
            self._resolved[config.id] = cached
        return cached

    def _raise_if_cancelled(self, table: str) -> None:
        event = self.context.cancel_event
        if event is not None and event.is_set():
            logger.info("Sync plan compilation for job %s cancelled before %s", self.context.job_id, table)
            raise CompilationCancelledError(f"Compilation cancelled before table {table}.")


def build_sync_plan(context: CompilationContext) -> SyncPlan:
    return SyncPlanBuilder(context).build()
