"""
API tests: the FastAPI app runs with its lifespan against a fake gateway.
"""

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from pipeline_studio.config import GatewayConfig, IdentifierConfig, Settings
from pipeline_studio.config_constants import IdStrategy
from pipeline_studio.main import create_app


@pytest.fixture
def client(fake_gateway):
    settings = Settings(
        _env_file=None,
        gateway=GatewayConfig(base_url="https://gw.test"),
        identifiers=IdentifierConfig(strategy=IdStrategy.COUNTER),
    )
    app = create_app(settings, transport=httpx.MockTransport(fake_gateway.handler))
    with TestClient(app) as test_client:
        yield test_client


def _create_connection(client, **overrides):
    body = {"name": "Local", "type": "source", "host": "localhost", "username": "root", "password": "pw"}
    body.update(overrides)
    response = client.post("/api/v1/connections", json=body)
    assert response.status_code == 201
    return response.json()["connection"]


def _main_graph_id(client):
    return client.get("/api/v1/pipelines").json()["graphs"][0]["id"]


class TestRootAndHealth:

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["message"] == "Pipeline Studio API"
        assert "X-Trace-ID" in response.headers
        assert "X-Process-Time" in response.headers

    def test_trace_id_is_echoed(self, client):
        response = client.get("/", headers={"X-Trace-ID": "trace-abc"})

        assert response.headers["X-Trace-ID"] == "trace-abc"
        assert response.json()["trace_id"] == "trace-abc"

    def test_health_healthy(self, client, fake_gateway):
        fake_gateway.route("OPTIONS", "/database/connect", lambda request: httpx.Response(200))
        _create_connection(client)

        body = client.get("/health").json()

        assert body["status"] == "healthy"
        assert body["gateway_status"] == "healthy"
        assert body["connection_count"] == 1

    def test_health_degraded(self, client):
        body = client.get("/api/v1/health").json()

        assert body["status"] == "degraded"
        assert body["gateway_status"] == "unhealthy"


class TestConnectionsApi:

    def test_create_hides_password(self, client):
        connection = _create_connection(client)

        assert connection["id"] == "conn-1"
        assert connection["status"] == "pending"
        assert connection["last_tested"] is None
        assert connection["port"] == "3306"
        assert connection["has_password"] is True
        assert "password" not in connection

    def test_create_requires_name(self, client):
        response = client.post("/api/v1/connections", json={"name": "", "type": "source"})

        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["details"]["errors"][0]["field"] == "body.name"

    def test_test_and_select_database(self, client):
        connection = _create_connection(client)

        tested = client.post(f"/api/v1/connections/{connection['id']}/test").json()
        assert tested["result"]["success"] is True
        assert tested["connection"]["status"] == "connected"

        selected = client.post(f"/api/v1/connections/{connection['id']}/database", json={"database": "airportdb"}).json()
        assert selected["result"]["success"] is True
        assert selected["connection"]["database"] == "airportdb"
        assert selected["connection"]["status"] == "selected"

    def test_failed_test_is_not_an_error(self, client):
        connection = _create_connection(client, host="unreachable.example", username="x")

        response = client.post(f"/api/v1/connections/{connection['id']}/test")

        assert response.status_code == 200
        assert response.json()["result"]["success"] is False
        assert response.json()["connection"]["status"] == "failed"

    def test_unknown_connection(self, client):
        response = client.post("/api/v1/connections/conn-404/test")

        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "not_found"
        assert body["trace_id"] == response.headers["X-Trace-ID"]

    def test_update_keeps_password(self, client):
        connection = _create_connection(client)

        response = client.patch(f"/api/v1/connections/{connection['id']}", json={"host": "db.internal", "port": "3307"})

        updated = response.json()["connection"]
        assert updated["host"] == "db.internal"
        assert updated["port"] == "3307"
        assert updated["has_password"] is True

    def test_delete(self, client):
        connection = _create_connection(client)

        assert client.delete(f"/api/v1/connections/{connection['id']}").json()["deleted"] is True
        assert client.get(f"/api/v1/connections/{connection['id']}").status_code == 404
        assert client.get("/api/v1/connections").json()["count"] == 0

    def test_export_connections(self, client):
        _create_connection(client)

        response = client.get("/api/v1/connections/export")

        assert response.headers["content-type"].startswith("application/json")
        assert 'filename="connections.json"' in response.headers["content-disposition"]
        assert json.loads(response.text)["connections"][0]["credential"]["password"] == "********"


class TestSchemasApi:

    def test_fetch_and_preview(self, client):
        connection = _create_connection(client, database="sakila")
        base = f"/api/v1/connections/{connection['id']}"

        fetched = client.post(f"{base}/schemas/fetch").json()
        assert [schema["name"] for schema in fetched["schemas"]] == ["public", "sales"]

        preview = client.get(f"{base}/tables/public/customers/preview", params={"limit": 2}).json()
        assert preview["success"] is True
        assert preview["preview"]["row_count"] == 2
        assert preview["preview"]["truncated"] is True

    def test_fetch_requires_database(self, client):
        connection = _create_connection(client)

        response = client.post(f"/api/v1/connections/{connection['id']}/schemas/fetch")

        assert response.status_code == 422

    def test_selection(self, client):
        client.put("/api/v1/selection", json={"schema_name": "public", "table_name": "orders"})

        assert client.get("/api/v1/selection").json()["selection"] == {"schema_name": "public", "table_name": "orders"}
        assert client.delete("/api/v1/selection").json()["selection"] is None


class TestTransformationsApi:

    def test_process_and_blank_guard(self, client):
        first = client.post(
            "/api/v1/transformations",
            json={"instruction": "uppercase name", "table_name": "customers", "schema_name": "public"},
        ).json()
        assert first["success"] is True

        client.post("/api/v1/transformations", json={"instruction": "", "table_name": "customers", "schema_name": "public"})

        assert client.get("/api/v1/transformations/current").json() == first

    def test_preview_requires_connection(self, client):
        response = client.post(
            "/api/v1/transformations/preview",
            json={"instruction": "trim name", "table_name": "customers", "schema_name": "public"},
        )
        assert response.status_code == 422


class TestPipelinesApi:

    def test_default_graph_exists(self, client):
        graphs = client.get("/api/v1/pipelines").json()["graphs"]
        assert [graph["name"] for graph in graphs] == ["Main pipeline"]

    def test_build_export_and_import(self, client):
        graph_id = _main_graph_id(client)
        base = f"/api/v1/pipelines/{graph_id}"

        a = client.post(f"{base}/tables", json={}).json()
        b = client.post(f"{base}/tables", json={}).json()
        c = client.post(f"{base}/transformations", json={"label": "Clean"}).json()
        assert len({a["id"], b["id"], c["id"]}) == 3
        client.post(f"{base}/edges", json={"source": a["id"], "target": b["id"]})
        client.post(f"{base}/edges", json={"source": b["id"], "target": c["id"]})

        exported = client.get(f"{base}/export")
        assert exported.text == client.get(f"{base}/export").text
        assert 'filename="schema.json"' in exported.headers["content-disposition"]

        imported = client.post("/api/v1/pipelines/import", json={"document": exported.text, "name": "Copy"})
        assert imported.status_code == 201
        body = imported.json()
        assert [node["id"] for node in body["nodes"]] == [a["id"], b["id"], c["id"]]
        assert len(body["edges"]) == 2
        assert "selectedTables" in body

    def test_connect_to_missing_node(self, client):
        graph_id = _main_graph_id(client)
        node = client.post(f"/api/v1/pipelines/{graph_id}/tables", json={}).json()

        response = client.post(f"/api/v1/pipelines/{graph_id}/edges", json={"source": node["id"], "target": "table-404"})

        assert response.status_code == 200
        assert response.json() is None
        assert client.get(f"/api/v1/pipelines/{graph_id}").json()["edges"] == []

    def test_delete_selected_without_selection(self, client):
        graph_id = _main_graph_id(client)
        client.post(f"/api/v1/pipelines/{graph_id}/tables", json={})

        notice = client.post(f"/api/v1/pipelines/{graph_id}/delete-selected").json()["notice"]

        assert notice["title"] == "No Selection"
        assert len(client.get(f"/api/v1/pipelines/{graph_id}").json()["nodes"]) == 1

    def test_invalid_import(self, client):
        response = client.post("/api/v1/pipelines/import", json={"document": "{\"nodes\": []}"})

        assert response.status_code == 422
        assert response.json()["error"] == "pipeline_graph_error"

    def test_unknown_graph(self, client):
        assert client.get("/api/v1/pipelines/graph-404").status_code == 404


class TestSessionSettingsNotices:

    def test_session_lifecycle(self, client):
        assert client.get("/api/v1/session").json()["authenticated"] is False

        user = client.post("/api/v1/session/login", json={"email": "ada@example.com", "password": "secret"}).json()
        assert user["email"] == "ada@example.com"
        assert client.get("/api/v1/session").json()["authenticated"] is True

        client.post("/api/v1/session/logout")
        assert client.get("/api/v1/session").json()["authenticated"] is False

    def test_login_rejects_blank(self, client):
        response = client.post("/api/v1/session/login", json={"email": "", "password": ""})

        assert response.status_code == 401
        assert response.json()["error"] == "authentication_error"

    def test_cors_proxy_settings(self, client):
        saved = client.put("/api/v1/settings/cors-proxy", json={"proxy_url": "https://cors.test/"}).json()
        assert saved["base_url"] == "https://cors.test/https://gw.test"

        assert client.put("/api/v1/settings/cors-proxy", json={"proxy_url": "cors.test"}).status_code == 422
        assert client.delete("/api/v1/settings/cors-proxy").json()["enabled"] is False

    def test_notices_drain(self, client):
        connection = _create_connection(client)
        client.post(f"/api/v1/connections/{connection['id']}/test")

        notices = client.get("/api/v1/notices").json()["notices"]
        assert notices[-1]["title"] == "Connection successful"
        assert client.get("/api/v1/notices").json()["notices"] == []
        assert client.delete("/api/v1/notices").status_code == 204
