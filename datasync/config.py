from __future__ import annotations

from functools import lru_cache
from typing import Annotated, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    app_name: str = Field("Data Sync Planner API")
    log_level: str = Field(
        default="INFO",
        description="Python logging verbosity for application modules (e.g. INFO, DEBUG).",
    )
    transformer_service_url: Optional[str] = Field(
        default=None,
        description=(
            "Base URL of the transformer definition service used to resolve user defined"
            " transformers (e.g. https://api.example.com/v1)."
        ),
    )
    transformer_service_token: Optional[str] = Field(
        default=None,
        description="Optional bearer token sent to the transformer definition service.",
    )
    transformer_service_timeout_seconds: int = Field(
        default=30,
        description="Timeout applied to each transformer definition lookup.",
        ge=1,
        le=600,
    )
    cache_url: Optional[str] = Field(
        default=None,
        description=(
            "Connection URL of the cache that stores deferred circular foreign key values"
            " (e.g. redis://localhost:6379). When unset the circular reference bridge is disabled."
        ),
    )
    cache_kind: str = Field(
        default="simple",
        description="Cache topology passed to the streaming engine ('simple', 'cluster' or 'failover').",
        pattern=r"^(simple|cluster|failover)$",
    )
    cache_master: Optional[str] = Field(
        default=None,
        description="Master name used when cache_kind is 'failover'.",
    )
    frontend_origins: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: [
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ],
        description="Comma-separated list of allowed CORS origins for the frontend UI.",
    )

    @field_validator("frontend_origins", mode="before")
    @classmethod
    def _split_origins(cls, raw_value):
        if isinstance(raw_value, str):
            return [origin.strip() for origin in raw_value.split(",") if origin.strip()]
        return raw_value

    @field_validator("cache_kind", mode="before")
    @classmethod
    def _normalize_cache_kind(cls, raw_value):
        if isinstance(raw_value, str):
            lowered = raw_value.strip().lower()
            return lowered or "simple"
        return raw_value


@lru_cache()
def get_settings() -> Settings:
    return Settings()
