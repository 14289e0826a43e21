from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from datasync.schemas.transformers import JobMapping
from datasync.services.table_dependency import RunType


class CacheConfigPayload(BaseModel):
    url: str = Field(..., min_length=1)
    kind: str = Field("simple", pattern=r"^(simple|cluster|failover)$")
    master: Optional[str] = None


class SchemaSnapshot(BaseModel):
    driver: str = Field("postgres", description="Source dialect the rows were introspected from.")
    schema_rows: List[Dict[str, Any]] = Field(default_factory=list)
    constraint_rows: List[Dict[str, Any]] = Field(default_factory=list)


class SyncPlanCompileRequest(SchemaSnapshot):
    job_id: str = Field(..., min_length=1)
    run_id: str = Field(..., min_length=1)
    mappings: List[JobMapping] = Field(default_factory=list)
    cache: Optional[CacheConfigPayload] = None
    where_clauses: Dict[str, str] = Field(default_factory=dict)


class SchemaDriftRequest(SchemaSnapshot):
    mappings: List[JobMapping] = Field(default_factory=list)


class SchemaDriftRead(BaseModel):
    is_subset: bool
    should_halt: bool


class DependsOnRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    table: str
    columns: List[str]


class RunConfigRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    table: str
    run_type: RunType
    primary_keys: List[str]
    select_columns: List[str]
    insert_columns: List[str]
    depends_on: List[DependsOnRead]
    split: bool = False
    where_clause: Optional[str] = None


class CacheProcessorRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    url: str
    command: str
    args_mapping: str
    kind: str
    master: Optional[str] = None


class BranchRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    request_map: str
    result_map: str
    processors: List[CacheProcessorRead]


class ProcessorRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    mutation: Optional[str] = None
    javascript: Optional[str] = None
    branch: Optional[BranchRead] = None


class TablePipelineRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    run_config: RunConfigRead
    processors: List[ProcessorRead]
    insert_args: str
    columns: List[str]
    where_columns: List[str] = Field(default_factory=list)


class SyncPlanRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    job_id: str
    run_id: str
    pipelines: List[TablePipelineRead]


class RowCountRequest(BaseModel):
    driver: str = Field("postgres", description="Source dialect to connect with.")
    url: Optional[str] = None
    host: Optional[str] = None
    port: Optional[int] = None
    name: Optional[str] = None
    user: Optional[str] = None
    password: Optional[str] = None
    ssl_mode: Optional[str] = None
    schema_name: str = ""
    table_name: str = Field(..., min_length=1)
    where_clause: Optional[str] = None


class RowCountRead(BaseModel):
    table: str
    row_count: int
