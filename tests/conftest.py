import os
import sys
from pathlib import Path

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

os.environ.setdefault("TRANSFORMER_SERVICE_URL", "")
os.environ.setdefault("CACHE_URL", "")

from datasync.main import app  # noqa: E402
from datasync.routers.sync_plan import get_transformer_lookup  # noqa: E402


class PrefixedTestClient(TestClient):
    api_prefix = "/api"

    def request(self, method: str, url: str, *args, **kwargs):  # type: ignore[override]
        if url.startswith("/") and not url.startswith("/health"):
            url = f"{self.api_prefix}{url}"
        return super().request(method, url, *args, **kwargs)


class FakeTransformerLookup:
    """Serves user defined transformer definitions from memory and records lookups."""

    def __init__(self, definitions=None) -> None:
        self.definitions = dict(definitions or {})
        self.calls: list[str] = []

    def get_user_defined_transformer(self, transformer_id: str):
        self.calls.append(transformer_id)
        return self.definitions[transformer_id]


@pytest.fixture()
def transformer_lookup() -> FakeTransformerLookup:
    return FakeTransformerLookup()


@pytest.fixture()
def client(transformer_lookup: FakeTransformerLookup) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_transformer_lookup] = lambda: transformer_lookup

    client = PrefixedTestClient(app)
    try:
        yield client
    finally:
        app.dependency_overrides.pop(get_transformer_lookup, None)
