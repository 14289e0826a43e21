from datasync.schemas.sync_plan import (
    BranchRead,
    CacheConfigPayload,
    CacheProcessorRead,
    DependsOnRead,
    ProcessorRead,
    RowCountRead,
    RowCountRequest,
    RunConfigRead,
    SchemaDriftRead,
    SchemaDriftRequest,
    SchemaSnapshot,
    SyncPlanCompileRequest,
    SyncPlanRead,
    TablePipelineRead,
)
from datasync.schemas.transformers import (
    JobMapping,
    JobMappingTransformer,
    TransformerConfig,
    TransformerSource,
    UserDefinedTransformer,
)

__all__ = [
    "BranchRead",
    "CacheConfigPayload",
    "CacheProcessorRead",
    "DependsOnRead",
    "JobMapping",
    "JobMappingTransformer",
    "ProcessorRead",
    "RowCountRead",
    "RowCountRequest",
    "RunConfigRead",
    "SchemaDriftRead",
    "SchemaDriftRequest",
    "SchemaSnapshot",
    "SyncPlanCompileRequest",
    "SyncPlanRead",
    "TablePipelineRead",
    "TransformerConfig",
    "TransformerSource",
    "UserDefinedTransformer",
]
