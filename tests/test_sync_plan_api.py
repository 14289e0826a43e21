from http import HTTPStatus

from sqlalchemy import create_engine, text
from sqlalchemy.pool import StaticPool

from datasync.errors import TransformerResolutionError
from datasync.main import app
from datasync.routers.sync_plan import get_engine_factory


def _schema_rows() -> list[dict]:
    return [
        {"table_schema": "public", "table_name": "users", "column_name": "id", "data_type": "integer", "is_nullable": "NO", "ordinal_position": 1},
        {"table_schema": "public", "table_name": "users", "column_name": "email", "data_type": "varchar", "is_nullable": "YES", "ordinal_position": 2, "character_maximum_length": 40},
        {"table_schema": "public", "table_name": "users", "column_name": "manager_id", "data_type": "integer", "is_nullable": "YES", "ordinal_position": 3},
    ]


def _constraint_rows() -> list[dict]:
    return [
        {
            "schema_name": "public",
            "table_name": "users",
            "constraint_name": "users_pkey",
            "constraint_type": "PRIMARY KEY",
            "constraint_columns": "id",
        },
        {
            "schema_name": "public",
            "table_name": "users",
            "constraint_name": "users_manager_fk",
            "constraint_type": "FOREIGN KEY",
            "constraint_columns": "manager_id",
            "constraint_columns_nullability": "NULL",
            "referenced_schema_name": "public",
            "referenced_table": "users",
            "referenced_columns": "id",
        },
    ]


def _mapping(column: str, transformer: dict) -> dict:
    return {"schema_name": "public", "table_name": "users", "column_name": column, "transformer": transformer}


def _compile_payload(**overrides) -> dict:
    payload = {
        "job_id": "job-1",
        "run_id": "run-1",
        "driver": "postgres",
        "schema_rows": _schema_rows(),
        "constraint_rows": _constraint_rows(),
        "mappings": [
            _mapping("id", {"source": "passthrough"}),
            _mapping(
                "email",
                {
                    "source": "transform_email",
                    "config": {"kind": "transform_email", "preserve_domain": True, "excluded_domains": []},
                },
            ),
            _mapping("manager_id", {"source": "passthrough"}),
        ],
    }
    payload.update(overrides)
    return payload


def test_health_check(client):
    response = client.get("/health")

    assert response.status_code == HTTPStatus.OK
    assert response.json() == {"status": "ok"}


def test_compile_sync_plan(client):
    response = client.post("/sync-plans/compile", json=_compile_payload())

    assert response.status_code == HTTPStatus.OK, response.text
    body = response.json()
    assert body["job_id"] == "job-1"
    assert [(item["run_config"]["table"], item["run_config"]["run_type"]) for item in body["pipelines"]] == [
        ("public.users", "insert"),
        ("public.users", "update"),
    ]
    insert = body["pipelines"][0]
    assert insert["run_config"]["insert_columns"] == ["id", "email"]
    assert insert["processors"][0]["mutation"] == (
        'root."email" = transform_email(value:this."email",preserve_domain:true,preserve_length:false,'
        'excluded_domains:[],max_length:40,email_type:"uuidv4",invalid_email_action:"reject")'
    )
    update = body["pipelines"][1]
    assert update["run_config"]["insert_columns"] == ["manager_id"]
    assert update["run_config"]["depends_on"] == [{"table": "public.users", "columns": ["id"]}]
    assert update["columns"] == ["manager_id"]
    assert update["where_columns"] == ["id"]
    assert update["insert_args"] == 'root = [this."manager_id", this."id"]'


def test_compile_rejects_schema_drift(client):
    payload = _compile_payload(mappings=[_mapping("id", {"source": "passthrough"})])

    response = client.post("/sync-plans/compile", json=payload)

    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert "schema has diverged from configuration" in response.json()["detail"]


def test_compile_rejects_inconsistent_constraints(client):
    rows = _constraint_rows()
    rows[1]["referenced_columns"] = "id,email"

    response = client.post("/sync-plans/compile", json=_compile_payload(constraint_rows=rows))

    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert "users_manager_fk" in response.json()["detail"]


def test_compile_rejects_unknown_driver(client):
    response = client.post("/sync-plans/compile", json=_compile_payload(driver="oracle"))

    assert response.status_code == HTTPStatus.BAD_REQUEST


def test_compile_rejects_unknown_transformer_kind(client):
    payload = _compile_payload()
    payload["mappings"][1]["transformer"] = {"source": "transform_email", "config": {"kind": "nope"}}

    response = client.post("/sync-plans/compile", json=payload)

    assert response.status_code == HTTPStatus.UNPROCESSABLE_ENTITY


def test_compile_reports_transformer_lookup_failures(client, transformer_lookup):
    def _fail(transformer_id: str):
        raise TransformerResolutionError(f"Transformer {transformer_id} could not be fetched")

    transformer_lookup.get_user_defined_transformer = _fail
    payload = _compile_payload()
    payload["mappings"][1]["transformer"] = {
        "source": "user_defined",
        "config": {"kind": "user_defined", "id": "123"},
    }

    response = client.post("/sync-plans/compile", json=payload)

    assert response.status_code == HTTPStatus.BAD_GATEWAY
    assert "123" in response.json()["detail"]


def test_schema_drift_endpoint(client):
    response = client.post(
        "/sync-plans/schema-drift",
        json={
            "driver": "postgres",
            "schema_rows": _schema_rows(),
            "mappings": [_mapping("id", {"source": "passthrough"}), _mapping("phone", {"source": "passthrough"})],
        },
    )

    assert response.status_code == HTTPStatus.OK
    assert response.json() == {"is_subset": False, "should_halt": True}


def _sqlite_engine_factory(received: list):
    def factory(descriptor):
        received.append(descriptor)
        engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            future=True,
        )
        with engine.begin() as connection:
            connection.execute(text("CREATE TABLE users (id INTEGER PRIMARY KEY, active INTEGER)"))
            connection.execute(text("INSERT INTO users (id, active) VALUES (1, 1), (2, 0), (3, 1)"))
        return engine

    return factory


def test_row_count_endpoint(client):
    received = []
    app.dependency_overrides[get_engine_factory] = lambda: _sqlite_engine_factory(received)
    try:
        response = client.post(
            "/sync-plans/row-count",
            json={
                "driver": "postgres",
                "host": "db.example.com",
                "name": "warehouse",
                "table_name": "users",
                "where_clause": "active = 1",
            },
        )
    finally:
        app.dependency_overrides.pop(get_engine_factory, None)

    assert response.status_code == HTTPStatus.OK, response.text
    assert response.json() == {"table": "users", "row_count": 2}
    assert received[0].host == "db.example.com"
    assert received[0].name == "warehouse"


def test_row_count_reports_query_failures(client):
    app.dependency_overrides[get_engine_factory] = lambda: _sqlite_engine_factory([])
    try:
        response = client.post("/sync-plans/row-count", json={"driver": "postgres", "table_name": "missing"})
    finally:
        app.dependency_overrides.pop(get_engine_factory, None)

    assert response.status_code == HTTPStatus.BAD_GATEWAY
    assert "missing" in response.json()["detail"]


def test_row_count_rejects_unsupported_driver(client):
    response = client.post(
        "/sync-plans/row-count",
        json={"driver": "oracle", "host": "db.example.com", "name": "app", "table_name": "users"},
    )

    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert "Unsupported driver" in response.json()["detail"]
