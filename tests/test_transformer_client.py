from __future__ import annotations

from typing import Any, Mapping

import pytest
import requests

from datasync.errors import TransformerResolutionError
from datasync.schemas.transformers import (
    JobMapping,
    JobMappingTransformer,
    NullConfig,
    TransformEmailConfig,
    TransformerSource,
    UserDefinedTransformerConfig,
)
from datasync.services.mutations import build_mutation_configs, resolve_user_defined_mappings
from datasync.services.transformer_client import (
    TransformerDefinitionClient,
    TransformerServiceConfig,
    convert_user_defined_function_config,
)
from datasync.sqlmanager.shared import ColumnInfo


class DummyResponse:
    def __init__(self, status_code: int = 200, *, payload: Mapping[str, Any] | None = None, text: str | None = None, reason: str | None = None):
        self.status_code = status_code
        self._payload = payload
        self.text = text or ""
        self.reason = reason or ""

    def json(self) -> Mapping[str, Any] | None:
        if self._payload is None:
            raise ValueError("no json payload")
        return self._payload


def _build_client(record: list[dict[str, Any]], *, response: DummyResponse | None = None, error: Exception | None = None) -> TransformerDefinitionClient:
    def _request(method: str, url: str, headers: dict[str, str], params, timeout: int):
        record.append({"method": method, "url": url, "headers": headers, "params": params, "timeout": timeout})
        if error is not None:
            raise error
        return response

    config = TransformerServiceConfig(base_url="https://transformers.example.com/v1/", token="secret", timeout_seconds=5)
    return TransformerDefinitionClient(config=config, request_func=_request)


EMAIL_DEFINITION = {
    "transformer": {
        "id": "123",
        "name": "stage",
        "description": "description",
        "data_type": "string",
        "source": "transform_email",
        "config": {
            "kind": "transform_email",
            "preserve_domain": True,
            "preserve_length": False,
            "excluded_domains": [],
        },
    }
}


def test_client_requires_base_url():
    with pytest.raises(ValueError):
        TransformerDefinitionClient(config=TransformerServiceConfig(base_url=""))


def test_get_user_defined_transformer_parses_definition():
    calls: list[dict[str, Any]] = []
    client = _build_client(calls, response=DummyResponse(payload=EMAIL_DEFINITION))

    transformer = client.get_user_defined_transformer("123")

    assert transformer.id == "123"
    assert transformer.source == TransformerSource.TRANSFORM_EMAIL
    assert transformer.config == TransformEmailConfig(preserve_domain=True)
    assert calls[0]["method"] == "GET"
    assert calls[0]["url"] == "https://transformers.example.com/v1/transformers/user-defined/123"
    assert calls[0]["headers"]["Authorization"] == "Bearer secret"
    assert calls[0]["timeout"] == 5


def test_non_success_status_raises_with_detail():
    client = _build_client([], response=DummyResponse(404, payload={"message": "transformer not found"}))

    with pytest.raises(TransformerResolutionError) as excinfo:
        client.get_user_defined_transformer("missing")

    assert "404" in str(excinfo.value)
    assert "transformer not found" in str(excinfo.value)


def test_network_failure_raises_resolution_error():
    client = _build_client([], error=requests.ConnectionError("connection refused"))

    with pytest.raises(TransformerResolutionError):
        client.get_user_defined_transformer("123")


def test_invalid_definition_raises_resolution_error():
    client = _build_client([], response=DummyResponse(payload={"transformer": {"id": "123", "source": "nope"}}))

    with pytest.raises(TransformerResolutionError):
        client.get_user_defined_transformer("123")


def test_convert_user_defined_function_config_returns_resolved_transformer():
    client = _build_client([], response=DummyResponse(payload=EMAIL_DEFINITION))
    reference = JobMappingTransformer(
        source=TransformerSource.USER_DEFINED,
        config=UserDefinedTransformerConfig(id="123"),
    )

    resolved = convert_user_defined_function_config(client, reference)

    assert resolved == JobMappingTransformer(
        source=TransformerSource.TRANSFORM_EMAIL,
        config=TransformEmailConfig(preserve_domain=True, preserve_length=False, excluded_domains=[]),
    )


def test_convert_leaves_other_transformers_untouched():
    client = _build_client([])
    transformer = JobMappingTransformer(source=TransformerSource.GENERATE_NULL, config=NullConfig())

    assert convert_user_defined_function_config(client, transformer) is transformer


def test_user_defined_email_compiles_like_the_direct_form():
    client = _build_client([], response=DummyResponse(payload=EMAIL_DEFINITION))
    column_info = {"email": ColumnInfo(ordinal_position=2, character_maximum_length=40)}
    referenced = JobMapping(
        schema_name="public",
        table_name="users",
        column_name="email",
        transformer=JobMappingTransformer(
            source=TransformerSource.USER_DEFINED,
            config=UserDefinedTransformerConfig(id="123"),
        ),
    )
    direct = JobMapping(
        schema_name="public",
        table_name="users",
        column_name="email",
        transformer=JobMappingTransformer(
            source=TransformerSource.TRANSFORM_EMAIL,
            config=TransformEmailConfig(preserve_domain=True),
        ),
    )

    resolved = resolve_user_defined_mappings(
        [referenced],
        lambda transformer: convert_user_defined_function_config(client, transformer),
    )

    assert build_mutation_configs(resolved, column_info) == build_mutation_configs([direct], column_info)
