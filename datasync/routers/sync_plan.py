import logging
from typing import Callable, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.engine import Engine

from datasync.config import get_settings
from datasync.errors import SyncPlanError, TransformerResolutionError
from datasync.schemas import (
    RowCountRead,
    RowCountRequest,
    SchemaDriftRead,
    SchemaDriftRequest,
    SchemaSnapshot,
    SyncPlanCompileRequest,
    SyncPlanRead,
)
from datasync.services import (
    CacheConfig,
    CompilationContext,
    TransformerDefinitionClient,
    are_mappings_subset_of_schemas,
    build_sync_plan,
    should_halt_on_schema_addition,
)
from datasync.services.transformer_client import TransformerLookup
from datasync.sqlmanager import (
    ConnectionDescriptor,
    SqlManager,
    SqlManagerError,
    UnsupportedConnectionError,
    build_table,
    create_source_engine,
    get_sql_manager,
)
from datasync.sqlmanager.querier import StaticSchemaQuerier

router = APIRouter(prefix="/sync-plans", tags=["Sync Plans"])

logger = logging.getLogger(__name__)


def get_transformer_lookup() -> Optional[TransformerLookup]:
    settings = get_settings()
    if not (settings.transformer_service_url or "").strip():
        return None
    return TransformerDefinitionClient()


def _build_manager(payload: SchemaSnapshot) -> SqlManager:
    querier = StaticSchemaQuerier(schema_rows=payload.schema_rows, constraint_rows=payload.constraint_rows)
    try:
        return get_sql_manager(payload.driver, querier)
    except SqlManagerError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


def _cache_config(payload: SyncPlanCompileRequest) -> Optional[CacheConfig]:
    if payload.cache is not None:
        return CacheConfig(url=payload.cache.url, kind=payload.cache.kind, master=payload.cache.master)
    settings = get_settings()
    if settings.cache_url:
        return CacheConfig(url=settings.cache_url, kind=settings.cache_kind, master=settings.cache_master)
    return None


@router.post("/compile", response_model=SyncPlanRead)
def compile_sync_plan(
    payload: SyncPlanCompileRequest,
    transformer_lookup: Optional[TransformerLookup] = Depends(get_transformer_lookup),
) -> SyncPlanRead:
    manager = _build_manager(payload)
    schemas = sorted({mapping.schema_name for mapping in payload.mappings})

    try:
        context = CompilationContext(
            job_id=payload.job_id,
            run_id=payload.run_id,
            schema_rows=manager.get_database_schema(),
            constraints=manager.get_table_constraints_by_schema(schemas),
            mappings=payload.mappings,
            cache_config=_cache_config(payload),
            transformer_lookup=transformer_lookup,
            where_clauses=payload.where_clauses,
        )
        plan = build_sync_plan(context)
    except TransformerResolutionError as exc:
        logger.warning("Transformer lookup failed for job %s: %s", payload.job_id, exc)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    except SyncPlanError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return SyncPlanRead.model_validate(plan)


@router.post("/schema-drift", response_model=SchemaDriftRead)
def check_schema_drift(payload: SchemaDriftRequest) -> SchemaDriftRead:
    schema_map = _build_manager(payload).get_schema_column_map()
    return SchemaDriftRead(
        is_subset=are_mappings_subset_of_schemas(schema_map, payload.mappings),
        should_halt=should_halt_on_schema_addition(schema_map, payload.mappings),
    )


def get_engine_factory() -> Callable[[ConnectionDescriptor], Engine]:
    return create_source_engine


@router.post("/row-count", response_model=RowCountRead)
def count_table_rows(
    payload: RowCountRequest,
    engine_factory: Callable[[ConnectionDescriptor], Engine] = Depends(get_engine_factory),
) -> RowCountRead:
    descriptor = ConnectionDescriptor(
        driver=payload.driver,
        url=payload.url,
        host=payload.host,
        port=payload.port,
        name=payload.name,
        user=payload.user,
        password=payload.password,
        ssl_mode=payload.ssl_mode,
    )
    try:
        engine = engine_factory(descriptor)
    except UnsupportedConnectionError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    try:
        manager = get_sql_manager(payload.driver, StaticSchemaQuerier(), engine=engine)
        row_count = manager.get_table_row_count(payload.schema_name, payload.table_name, payload.where_clause)
    except SqlManagerError as exc:
        logger.warning("Row count failed for %s: %s", build_table(payload.schema_name, payload.table_name), exc)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    finally:
        engine.dispose()

    return RowCountRead(table=build_table(payload.schema_name, payload.table_name), row_count=row_count)
