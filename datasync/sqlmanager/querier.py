from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional, Sequence


class StaticSchemaQuerier:
    """Serves introspection rows that were captured ahead of time (e.g. posted to the API)."""

    def __init__(
        self,
        schema_rows: Iterable[Mapping[str, Any]] = (),
        constraint_rows: Iterable[Mapping[str, Any]] = (),
        permission_rows: Iterable[Mapping[str, Any]] = (),
    ) -> None:
        self._schema_rows = [dict(row) for row in schema_rows]
        self._constraint_rows = [dict(row) for row in constraint_rows]
        self._permission_rows = [dict(row) for row in permission_rows]

    def get_database_schema(self) -> Optional[list[dict[str, Any]]]:
        return list(self._schema_rows)

    def get_table_constraints_by_schemas(self, schemas: Sequence[str]) -> Optional[list[dict[str, Any]]]:
        wanted = set(schemas)
        return [row for row in self._constraint_rows if _schema_of(row) in wanted]

    def get_role_permissions(self) -> Optional[list[dict[str, Any]]]:
        return list(self._permission_rows)


def _schema_of(row: Mapping[str, Any]) -> str:
    for key in ("schema_name", "table_schema"):
        value = row.get(key)
        if value is not None:
            return str(value).strip()
    return ""
