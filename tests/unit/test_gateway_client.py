"""
Unit tests for GatewayClient against a mocked transport.
"""

import httpx
import pytest

from pipeline_studio.config import GatewayConfig
from pipeline_studio.domain.connections import Credential
from pipeline_studio.domain.errors import (
    GatewayConnectionError,
    GatewayResponseError,
    GatewayTimeoutError,
    ValidationError,
)
from pipeline_studio.infrastructure.gateway_client import GatewayClient


CREDENTIAL = Credential(host="db.example.com", username="etl", password="pw", database="ignored")


class TestLifecycle:

    @pytest.mark.asyncio
    async def test_connect_and_close(self, gateway_config, fake_gateway):
        client = GatewayClient(gateway_config, transport=httpx.MockTransport(fake_gateway.handler))
        assert not client.is_connected()

        await client.connect()
        assert client.is_connected()
        assert fake_gateway.requests == []

        await client.close()
        assert not client.is_connected()

    @pytest.mark.asyncio
    async def test_calls_require_connect(self, gateway_config):
        client = GatewayClient(gateway_config)
        with pytest.raises(GatewayConnectionError):
            await client.connect_database(CREDENTIAL)


class TestBaseUrl:

    def test_trailing_slash_removed(self):
        client = GatewayClient(GatewayConfig(base_url="https://gw.test/"))
        assert client.base_url() == "https://gw.test"

    def test_proxy_prefix_when_enabled(self, gateway_config, state_store):
        client = GatewayClient(gateway_config, state_store=state_store)
        state_store.set("corsProxyUrl", "https://cors.test/")
        assert client.base_url() == "https://gw.test"

        state_store.set_bool("useCorsProxy", True)
        assert client.base_url() == "https://cors.test/https://gw.test"


class TestConnectDatabase:

    @pytest.mark.asyncio
    async def test_lists_databases(self, gateway_client, fake_gateway):
        fake_gateway.databases(["airportdb", "world"])

        databases = await gateway_client.connect_database(CREDENTIAL)

        assert databases == ["airportdb", "world"]
        payload = fake_gateway.payloads("/database/connect")[0]
        assert payload == {
            "db_type": "mysql",
            "host": "db.example.com",
            "port": "3306",
            "username": "etl",
            "password": "pw",
        }

    @pytest.mark.asyncio
    async def test_non_2xx_uses_gateway_message(self, gateway_client, fake_gateway):
        fake_gateway.reply_json("POST", "/database/connect", {"message": "Access denied"}, status_code=401)

        with pytest.raises(GatewayResponseError) as exc_info:
            await gateway_client.connect_database(CREDENTIAL)
        assert exc_info.value.message == "Access denied"
        assert exc_info.value.http_status == 502

    @pytest.mark.asyncio
    async def test_non_2xx_without_message(self, gateway_client, fake_gateway):
        fake_gateway.route("POST", "/database/connect", lambda request: httpx.Response(500, text="boom"))

        with pytest.raises(GatewayResponseError) as exc_info:
            await gateway_client.connect_database(CREDENTIAL)
        assert exc_info.value.message == "Gateway responded with status 500"

    @pytest.mark.asyncio
    async def test_html_page_rejected(self, gateway_client, fake_gateway):
        fake_gateway.reply_html("POST", "/database/connect")

        with pytest.raises(GatewayResponseError) as exc_info:
            await gateway_client.connect_database(CREDENTIAL)
        assert exc_info.value.message == "Gateway returned an HTML page instead of JSON"

    @pytest.mark.asyncio
    async def test_unsuccessful_status(self, gateway_client, fake_gateway):
        fake_gateway.reply_json("POST", "/database/connect", {"status": "error", "message": "Unknown host"})

        with pytest.raises(GatewayResponseError) as exc_info:
            await gateway_client.connect_database(CREDENTIAL)
        assert exc_info.value.message == "Unknown host"

    @pytest.mark.asyncio
    async def test_missing_databases_key(self, gateway_client, fake_gateway):
        fake_gateway.reply_json("POST", "/database/connect", {"status": "success"})

        with pytest.raises(GatewayResponseError) as exc_info:
            await gateway_client.connect_database(CREDENTIAL)
        assert exc_info.value.message == "Invalid response format"

    @pytest.mark.asyncio
    async def test_network_failure(self, gateway_client, fake_gateway):
        fake_gateway.fail("POST", "/database/connect")

        with pytest.raises(GatewayConnectionError) as exc_info:
            await gateway_client.connect_database(CREDENTIAL)
        assert exc_info.value.http_status == 503

    @pytest.mark.asyncio
    async def test_timeout(self, gateway_client, fake_gateway):
        fake_gateway.fail("POST", "/database/connect", httpx.ReadTimeout)

        with pytest.raises(GatewayTimeoutError) as exc_info:
            await gateway_client.connect_database(CREDENTIAL)
        assert exc_info.value.http_status == 504

    @pytest.mark.asyncio
    async def test_goes_through_proxy(self, gateway_client, fake_gateway, state_store):
        state_store.set("corsProxyUrl", "https://cors.test/")
        state_store.set_bool("useCorsProxy", True)
        fake_gateway.reply_json(
            "POST",
            "/https://gw.test/database/connect",
            {"status": "success", "databases": ["world"]},
        )

        assert await gateway_client.connect_database(CREDENTIAL) == ["world"]
        assert fake_gateway.requests[0].url.host == "cors.test"


class TestSelectAndPreview:

    @pytest.mark.asyncio
    async def test_select_database_sends_database(self, gateway_client, fake_gateway):
        fake_gateway.tables(["airports", "flights"])

        tables = await gateway_client.select_database(CREDENTIAL.with_database("airportdb"))

        assert tables == ["airports", "flights"]
        assert fake_gateway.payloads("/database/select-database")[0]["database"] == "airportdb"

    @pytest.mark.asyncio
    async def test_select_database_requires_database(self, gateway_client):
        with pytest.raises(ValidationError):
            await gateway_client.select_database(CREDENTIAL.with_database(None))

    @pytest.mark.asyncio
    async def test_preview_table(self, gateway_client, fake_gateway):
        fake_gateway.rows([{"id": 1}, "not-a-record", {"id": 2}])

        rows = await gateway_client.preview_table("customers")

        assert rows == [{"id": 1}, {"id": 2}]
        assert fake_gateway.payloads("/database/preview-table") == [{"table_name": "customers"}]

    @pytest.mark.asyncio
    async def test_preview_requires_data_list(self, gateway_client, fake_gateway):
        fake_gateway.reply_json("POST", "/database/preview-table", {"rows": []})

        with pytest.raises(GatewayResponseError):
            await gateway_client.preview_table("customers")


class TestReachabilityAndHealth:

    @pytest.mark.asyncio
    async def test_reachability_uses_options(self, gateway_client, fake_gateway):
        fake_gateway.route("OPTIONS", "/database/connect", lambda request: httpx.Response(204))

        response = await gateway_client.check_reachability()

        assert response.status_code == 204
        assert fake_gateway.requests[0].method == "OPTIONS"

    @pytest.mark.asyncio
    async def test_health_healthy(self, gateway_client, fake_gateway):
        fake_gateway.route("OPTIONS", "/database/connect", lambda request: httpx.Response(200))

        health = await gateway_client.health_check()
        assert health["status"] == "healthy"
        assert health["base_url"] == "https://gw.test"

    @pytest.mark.asyncio
    async def test_health_degraded_on_error_status(self, gateway_client, fake_gateway):
        fake_gateway.route("OPTIONS", "/database/connect", lambda request: httpx.Response(405))

        health = await gateway_client.health_check()
        assert health["status"] == "degraded"
        assert health["status_code"] == 405

    @pytest.mark.asyncio
    async def test_health_unhealthy_when_unreachable(self, gateway_client):
        health = await gateway_client.health_check()
        assert health["status"] == "unhealthy"
        assert "error" in health

    @pytest.mark.asyncio
    async def test_health_when_not_connected(self, gateway_config):
        health = await GatewayClient(gateway_config).health_check()
        assert health == {"status": "unhealthy", "connected": False, "error": "Gateway client not connected"}
