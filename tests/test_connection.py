import pytest
from sqlalchemy.engine import URL

from datasync.sqlmanager import ConnectionDescriptor, UnsupportedConnectionError, resolve_connection_url


def test_resolve_postgres_host_descriptor():
    url = resolve_connection_url(
        ConnectionDescriptor(
            driver="postgres",
            host="analytics.example.com",
            port=5432,
            name="warehouse",
            user="sync",
            password="secret",
            ssl_mode="require",
        )
    )

    assert isinstance(url, URL)
    assert url.drivername == "postgresql+psycopg"
    assert url.host == "analytics.example.com"
    assert url.port == 5432
    assert url.database == "warehouse"
    assert url.username == "sync"
    assert url.query.get("sslmode") == "require"


def test_resolve_mysql_url_descriptor():
    url = resolve_connection_url(
        ConnectionDescriptor(driver="mysql", url="mysql://app:pw@db.example.com:3306/shop?charset=utf8mb4")
    )

    assert url.drivername == "mysql+pymysql"
    assert url.host == "db.example.com"
    assert url.database == "shop"
    assert url.query.get("charset") == "utf8mb4"


def test_resolve_sqlserver_url_adds_defaults():
    url = resolve_connection_url(
        ConnectionDescriptor(driver="mssql", url="sqlserver://sa:pw@sql.example.com:1433/datahub?sslmode=disable")
    )

    assert url.drivername == "mssql+pyodbc"
    assert url.query.get("TrustServerCertificate") == "yes"
    assert url.query.get("Encrypt") == "no"
    assert "driver" in url.query


def test_url_scheme_must_match_driver():
    with pytest.raises(UnsupportedConnectionError) as excinfo:
        resolve_connection_url(ConnectionDescriptor(driver="postgres", url="mysql://db.example.com/shop"))

    assert "does not match driver" in str(excinfo.value)


def test_unsupported_driver_raises():
    try:
        resolve_connection_url(ConnectionDescriptor(driver="oracle", host="db", name="app"))
    except UnsupportedConnectionError as exc:
        assert "Unsupported driver" in str(exc)
    else:
        raise AssertionError("UnsupportedConnectionError was not raised")


def test_host_descriptor_requires_database_name():
    with pytest.raises(UnsupportedConnectionError):
        resolve_connection_url(ConnectionDescriptor(driver="postgres", host="db.example.com"))


def test_create_source_engine_uses_resolved_url(monkeypatch):
    from datasync.sqlmanager import connection

    captured = {}

    def _fake_create_engine(url, **kwargs):
        captured["url"] = url
        captured["kwargs"] = kwargs
        return "engine"

    monkeypatch.setattr(connection, "create_engine", _fake_create_engine)

    engine = connection.create_source_engine(
        ConnectionDescriptor(driver="mysql", host="db.example.com", name="shop", user="app")
    )

    assert engine == "engine"
    assert captured["url"].drivername == "mysql+pymysql"
    assert captured["kwargs"]["pool_pre_ping"] is True
