"""
Integration tests for GatewayClient against a live database gateway.

These tests talk to the gateway configured in your .env (GATEWAY__BASE_URL)
and to the database described by the LIVE_DB_* variables. They are skipped
unless GATEWAY_LIVE_TESTS=1.

Usage:
    # Run all gateway connection tests
    GATEWAY_LIVE_TESTS=1 pytest tests/integration/test_gateway_connection.py -v

    # Run specific test
    GATEWAY_LIVE_TESTS=1 pytest tests/integration/test_gateway_connection.py::TestGatewayConnection::test_reachability -v

    # Run with output
    GATEWAY_LIVE_TESTS=1 pytest tests/integration/test_gateway_connection.py -v -s
"""

import os

import pytest

from pipeline_studio.config import get_settings
from pipeline_studio.domain.connections import Credential
from pipeline_studio.infrastructure.gateway_client import GatewayClient
from pipeline_studio.repositories.connectivity import ConnectivityChecker


pytestmark = pytest.mark.skipif(
    os.getenv("GATEWAY_LIVE_TESTS") != "1",
    reason="set GATEWAY_LIVE_TESTS=1 to run against a live gateway",
)


@pytest.fixture
def gateway_config():
    """Get gateway configuration from settings."""
    return get_settings().gateway


@pytest.fixture
def live_credential():
    """Credential of the live database, from LIVE_DB_* variables."""
    return Credential(
        host=os.getenv("LIVE_DB_HOST", "localhost"),
        port=os.getenv("LIVE_DB_PORT"),
        username=os.getenv("LIVE_DB_USER", "root"),
        password=os.getenv("LIVE_DB_PASSWORD"),
    )


@pytest.fixture
async def gateway_client(gateway_config):
    """Create and connect gateway client."""
    client = GatewayClient(gateway_config)
    await client.connect()
    yield client
    if client.is_connected():
        await client.close()


@pytest.mark.integration
class TestGatewayConnection:
    """Integration tests for gateway connectivity."""

    @pytest.mark.asyncio
    async def test_basic_connection(self, gateway_config):
        """Test client connect and close."""
        client = GatewayClient(gateway_config)

        await client.connect()
        assert client.is_connected()

        await client.close()
        assert not client.is_connected()

    @pytest.mark.asyncio
    async def test_reachability(self, gateway_client):
        """The gateway answers the OPTIONS reachability check."""
        health = await gateway_client.health_check()
        assert health["status"] in ("healthy", "degraded")
        assert health["connected"] is True

    @pytest.mark.asyncio
    async def test_connect_lists_databases(self, gateway_client, live_credential):
        """Connecting returns the database list."""
        databases = await gateway_client.connect_database(live_credential)
        assert isinstance(databases, list)
        assert all(isinstance(name, str) for name in databases)

    @pytest.mark.asyncio
    async def test_select_first_database(self, gateway_client, live_credential):
        """Selecting a database returns its tables."""
        checker = ConnectivityChecker(gateway_client)
        check = await checker.check(live_credential)
        assert check.success, check.message

        if not check.databases:
            pytest.skip("Live server has no databases")

        listing = await checker.list_tables(live_credential.model_copy(update={"database": check.databases[0]}))
        assert listing.success, listing.message
        assert listing.simulated is False
