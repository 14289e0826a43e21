from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Protocol
from urllib.parse import quote

import requests
from pydantic import ValidationError

from datasync.config import get_settings
from datasync.errors import TransformerResolutionError
from datasync.schemas.transformers import (
    JobMappingTransformer,
    UserDefinedTransformer,
    UserDefinedTransformerConfig,
)

logger = logging.getLogger(__name__)

RequestFunc = Callable[[str, str, dict[str, str], dict[str, Any] | None, int], Any]


class TransformerLookup(Protocol):
    def get_user_defined_transformer(self, transformer_id: str) -> UserDefinedTransformer:
        ...


@dataclass(frozen=True)
class TransformerServiceConfig:
    base_url: str
    token: str | None = None
    timeout_seconds: int = 30


class TransformerDefinitionClient:
    """Looks up user defined transformer definitions over HTTP."""

    def __init__(
        self,
        *,
        config: TransformerServiceConfig | None = None,
        request_func: RequestFunc | None = None,
    ) -> None:
        if config is None:
            settings = get_settings()
            config = TransformerServiceConfig(
                base_url=(settings.transformer_service_url or "").strip(),
                token=settings.transformer_service_token,
                timeout_seconds=settings.transformer_service_timeout_seconds,
            )

        base_url = (config.base_url or "").strip()
        if not base_url:
            raise ValueError("Transformer service URL is required to initialize TransformerDefinitionClient.")

        self._base_url = base_url.rstrip("/")
        self._token = (config.token or "").strip() or None
        self._timeout = max(1, config.timeout_seconds)
        self._request_func = request_func

    def get_user_defined_transformer(self, transformer_id: str) -> UserDefinedTransformer:
        path = f"/transformers/user-defined/{quote(transformer_id, safe='')}"
        payload = self._request("GET", path)

        transformer = payload.get("transformer") if isinstance(payload, Mapping) else None
        if not isinstance(transformer, Mapping):
            raise TransformerResolutionError(
                f"Transformer service response for {transformer_id} did not include a transformer."
            )
        try:
            return UserDefinedTransformer.model_validate(dict(transformer))
        except ValidationError as exc:
            raise TransformerResolutionError(
                f"Transformer service returned an invalid definition for {transformer_id}: {exc}"
            ) from exc

    def _request(self, method: str, path: str, *, params: Mapping[str, Any] | None = None) -> Any:
        url = f"{self._base_url}{path}"
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"

        try:
            response = self._dispatch_request(method, url, headers, params)
        except requests.RequestException as exc:
            raise TransformerResolutionError(f"Transformer service request to {path} failed: {exc}") from exc

        if response.status_code != 200:
            raise TransformerResolutionError(
                f"Transformer service call {method} {path} failed with {response.status_code}:"
                f" {self._extract_detail(response)}"
            )

        try:
            return response.json()
        except ValueError as exc:
            raise TransformerResolutionError(f"Transformer service returned a non-JSON body for {path}.") from exc

    def _dispatch_request(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        params: Mapping[str, Any] | None,
    ):
        if self._request_func is not None:
            return self._request_func(method, url, headers, params and dict(params), self._timeout)

        return requests.request(method, url, headers=headers, params=params, timeout=self._timeout)

    @staticmethod
    def _extract_detail(response: Any) -> str:
        try:
            payload = response.json()
        except ValueError:
            payload = None

        if isinstance(payload, Mapping):
            message = payload.get("message") or payload.get("detail") or payload.get("error")
            if message:
                return str(message)
        text = getattr(response, "text", None)
        if text:
            return str(text).strip()
        reason = getattr(response, "reason", None)
        if reason:
            return str(reason)
        return "unknown error"


def convert_user_defined_function_config(
    lookup: TransformerLookup,
    transformer: JobMappingTransformer,
) -> JobMappingTransformer:
    """Replace a user defined transformer reference with the definition it points at."""

    config = transformer.config
    if not isinstance(config, UserDefinedTransformerConfig):
        return transformer

    if not config.id:
        raise TransformerResolutionError("User defined transformer is missing an id.")

    definition = lookup.get_user_defined_transformer(config.id)
    logger.debug("Resolved user defined transformer %s to %s", config.id, definition.source.value)
    return JobMappingTransformer(source=definition.source, config=definition.config)
