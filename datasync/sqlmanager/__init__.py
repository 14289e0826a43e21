from datasync.sqlmanager.connection import (
    ConnectionDescriptor,
    UnsupportedConnectionError,
    create_source_engine,
    resolve_connection_url,
)
from datasync.sqlmanager.manager import (
    MssqlManager,
    MysqlManager,
    PostgresManager,
    SchemaQuerier,
    SqlManager,
    SqlManagerError,
    build_table_constraints,
    get_sql_manager,
)
from datasync.sqlmanager.shared import (
    ColumnInfo,
    DatabaseSchemaRow,
    ForeignConstraint,
    ForeignKey,
    SchemaTable,
    TableConstraints,
    build_table,
    split_table,
)

__all__ = [
    "ColumnInfo",
    "ConnectionDescriptor",
    "DatabaseSchemaRow",
    "ForeignConstraint",
    "ForeignKey",
    "MssqlManager",
    "MysqlManager",
    "PostgresManager",
    "SchemaQuerier",
    "SchemaTable",
    "SqlManager",
    "SqlManagerError",
    "TableConstraints",
    "UnsupportedConnectionError",
    "build_table",
    "build_table_constraints",
    "create_source_engine",
    "get_sql_manager",
    "resolve_connection_url",
    "split_table",
]
