from datasync.services.cache_bridge import CacheConfig, build_branch_cache_configs
from datasync.services.processors import (
    ProcessorConfig,
    build_plain_columns,
    build_plain_insert_args,
    build_processor_configs,
)
from datasync.services.schema_drift import (
    are_mappings_subset_of_schemas,
    should_halt_on_schema_addition,
    validate_job_mappings,
)
from datasync.services.sync_plan_builder import (
    CompilationContext,
    SyncPlan,
    SyncPlanBuilder,
    TablePipeline,
    build_sync_plan,
)
from datasync.services.table_dependency import (
    DependsOn,
    ReferenceKey,
    RunConfig,
    RunType,
    get_primary_key_dependency_map,
    get_run_configs,
    is_valid_run_order,
)
from datasync.services.transformer_client import (
    TransformerDefinitionClient,
    convert_user_defined_function_config,
)

__all__ = [
	"CacheConfig",
	"CompilationContext",
	"DependsOn",
	"ProcessorConfig",
	"ReferenceKey",
	"RunConfig",
	"RunType",
	"SyncPlan",
	"SyncPlanBuilder",
	"TablePipeline",
	"TransformerDefinitionClient",
	"are_mappings_subset_of_schemas",
	"build_branch_cache_configs",
	"build_plain_columns",
	"build_plain_insert_args",
	"build_processor_configs",
	"build_sync_plan",
	"convert_user_defined_function_config",
	"get_primary_key_dependency_map",
	"get_run_configs",
	"is_valid_run_order",
	"should_halt_on_schema_addition",
	"validate_job_mappings",
]
