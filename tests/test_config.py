import pytest
from pydantic import ValidationError

from datasync.config import Settings, get_settings


def test_frontend_origins_split_on_commas(monkeypatch):
    monkeypatch.setenv("FRONTEND_ORIGINS", "https://a.example.com, https://b.example.com,")

    settings = Settings()

    assert settings.frontend_origins == ["https://a.example.com", "https://b.example.com"]


def test_cache_kind_is_normalized(monkeypatch):
    monkeypatch.setenv("CACHE_KIND", " Failover ")
    monkeypatch.setenv("CACHE_MASTER", "mymaster")

    settings = Settings()

    assert settings.cache_kind == "failover"
    assert settings.cache_master == "mymaster"


def test_unknown_cache_kind_is_rejected(monkeypatch):
    monkeypatch.setenv("CACHE_KIND", "sharded")

    with pytest.raises(ValidationError):
        Settings()


def test_transformer_timeout_bounds(monkeypatch):
    monkeypatch.setenv("TRANSFORMER_SERVICE_TIMEOUT_SECONDS", "0")

    with pytest.raises(ValidationError):
        Settings()


def test_get_settings_is_cached():
    assert get_settings() is get_settings()
