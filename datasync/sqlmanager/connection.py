from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qsl, urlparse

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine

from datasync.sqlmanager.shared import MSSQL_DRIVER, MYSQL_DRIVER, POSTGRES_DRIVER


class UnsupportedConnectionError(ValueError):
    """Raised when a connection descriptor cannot be converted into an SQLAlchemy URL."""


@dataclass(frozen=True)
class ConnectionDescriptor:
    driver: str
    url: Optional[str] = None
    host: Optional[str] = None
    port: Optional[int] = None
    name: Optional[str] = None
    user: Optional[str] = None
    password: Optional[str] = None
    ssl_mode: Optional[str] = None


_SQLALCHEMY_DRIVERS: dict[str, str] = {
    POSTGRES_DRIVER: "postgresql+psycopg",
    MYSQL_DRIVER: "mysql+pymysql",
    MSSQL_DRIVER: "mssql+pyodbc",
}

_URL_SCHEMES: dict[str, str] = {
    "postgres": POSTGRES_DRIVER,
    "postgresql": POSTGRES_DRIVER,
    "mysql": MYSQL_DRIVER,
    "sqlserver": MSSQL_DRIVER,
    "mssql": MSSQL_DRIVER,
}


def resolve_connection_url(descriptor: ConnectionDescriptor) -> URL:
    driver = (descriptor.driver or "").strip().lower()
    if driver not in _SQLALCHEMY_DRIVERS:
        raise UnsupportedConnectionError(
            f"Unsupported driver '{descriptor.driver}'. Supported drivers: {', '.join(sorted(_SQLALCHEMY_DRIVERS))}."
        )

    if descriptor.url:
        return _convert_url(driver, descriptor.url)

    if not descriptor.host:
        raise UnsupportedConnectionError("Connection must include a hostname.")
    if not descriptor.name:
        raise UnsupportedConnectionError("Connection must include a database name.")

    query: dict[str, str] = {}
    if descriptor.ssl_mode:
        query.update(_ssl_query(driver, descriptor.ssl_mode))
    _apply_driver_defaults(driver, query)

    return URL.create(
        drivername=_SQLALCHEMY_DRIVERS[driver],
        username=descriptor.user,
        password=descriptor.password,
        host=descriptor.host,
        port=descriptor.port,
        database=descriptor.name,
        query=query or None,
    )


def create_source_engine(descriptor: ConnectionDescriptor) -> Engine:
    return create_engine(resolve_connection_url(descriptor), pool_pre_ping=True, future=True)


def _convert_url(driver: str, raw_url: str) -> URL:
    parsed = urlparse(raw_url.strip())
    if not parsed.scheme:
        raise UnsupportedConnectionError("Connection URL is missing a scheme.")

    scheme = parsed.scheme.split("+", 1)[0].lower()
    if _URL_SCHEMES.get(scheme) != driver:
        raise UnsupportedConnectionError(
            f"Connection URL scheme '{parsed.scheme}' does not match driver '{driver}'."
        )
    if not parsed.hostname:
        raise UnsupportedConnectionError("Connection URL must include a hostname.")

    database = parsed.path.lstrip("/") if parsed.path else None
    if not database:
        raise UnsupportedConnectionError("Connection URL must include a database name.")

    query: dict[str, str] = {}
    for key, value in parse_qsl(parsed.query, keep_blank_values=True):
        if key.lower() == "sslmode":
            query.update(_ssl_query(driver, value))
        else:
            query[key] = value
    _apply_driver_defaults(driver, query)

    return URL.create(
        drivername=_SQLALCHEMY_DRIVERS[driver],
        username=parsed.username,
        password=parsed.password,
        host=parsed.hostname,
        port=parsed.port,
        database=database,
        query=query or None,
    )


def _ssl_query(driver: str, ssl_mode: str) -> dict[str, str]:
    mode = ssl_mode.strip()
    if not mode:
        return {}
    if driver == POSTGRES_DRIVER:
        return {"sslmode": mode}
    if driver == MSSQL_DRIVER:
        return {"Encrypt": "no" if mode.lower() == "disable" else "yes"}
    return {}


def _apply_driver_defaults(driver: str, query: dict[str, str]) -> None:
    if driver == MSSQL_DRIVER:
        query.setdefault("TrustServerCertificate", "yes")
        query.setdefault("driver", "ODBC Driver 18 for SQL Server")
