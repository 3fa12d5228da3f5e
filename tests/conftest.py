"""
Shared fixtures.

The database gateway is replaced by FakeGateway, an httpx.MockTransport
handler with per-route responders. Unrouted requests fail the way an
offline tunnel does (httpx.ConnectError).
"""

import json
import random
from typing import Any, Callable, Dict, List, Tuple

import httpx
import pytest

from pipeline_studio.config import GatewayConfig, NotificationConfig, PipelineConfig, PreviewConfig
from pipeline_studio.config_constants import IdStrategy
from pipeline_studio.domain.base_enums import ConnectionRole
from pipeline_studio.domain.connections import ConnectionDraft, Credential
from pipeline_studio.infrastructure.gateway_client import GatewayClient
from pipeline_studio.infrastructure.state_store import ClientStateStore
from pipeline_studio.repositories.connection_registry import ConnectionRegistry
from pipeline_studio.repositories.connectivity import ConnectivityChecker
from pipeline_studio.repositories.schema_cache import SchemaCache
from pipeline_studio.services.connection_service import ConnectionService
from pipeline_studio.services.notification_service import NotificationCenter
from pipeline_studio.services.pipeline_service import PipelineService
from pipeline_studio.services.schema_service import SchemaBrowserService
from pipeline_studio.services.transformation_service import TransformationService
from pipeline_studio.utils.id_generation import IdGenerator


GATEWAY_URL = "https://gw.test"

Responder = Callable[[httpx.Request], Any]


class FakeGateway:
    """Records requests and answers them from registered responders."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self._routes: Dict[Tuple[str, str], Responder] = {}

    def route(self, method: str, path: str, responder: Responder) -> None:
        self._routes[(method.upper(), path)] = responder

    def reply_json(self, method: str, path: str, payload: Any, status_code: int = 200) -> None:
        self.route(method, path, lambda request: httpx.Response(status_code, json=payload))

    def reply_html(self, method: str, path: str) -> None:
        self.route(
            method,
            path,
            lambda request: httpx.Response(
                200,
                text="<!DOCTYPE html><html><body>Tunnel offline</body></html>",
                headers={"content-type": "text/html"},
            ),
        )

    def fail(self, method: str, path: str, error: type = httpx.ConnectError) -> None:
        def responder(request: httpx.Request) -> Any:
            raise error("simulated failure", request=request)

        self.route(method, path, responder)

    def databases(self, names: List[str]) -> None:
        self.reply_json("POST", "/database/connect", {"status": "success", "databases": names})

    def tables(self, names: List[str]) -> None:
        self.reply_json("POST", "/database/select-database", {"status": "success", "tables": names})

    def rows(self, records: List[Dict[str, Any]]) -> None:
        self.reply_json("POST", "/database/preview-table", {"data": records})

    def handler(self, request: httpx.Request) -> Any:
        self.requests.append(request)
        responder = self._routes.get((request.method, request.url.path))
        if responder is None:
            raise httpx.ConnectError("Connection refused", request=request)
        return responder(request)

    def payloads(self, path: str) -> List[Dict[str, Any]]:
        return [json.loads(request.content) for request in self.requests if request.url.path == path]


def build_draft(
    host: str = "db.example.com",
    username: str = "etl",
    name: str = "Warehouse",
    role: ConnectionRole = ConnectionRole.SOURCE,
    **credential: Any,
) -> ConnectionDraft:
    return ConnectionDraft(
        name=name,
        type=role,
        credential=Credential(host=host, username=username, **credential),
    )


@pytest.fixture
def make_draft():
    return build_draft


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
def gateway_config():
    return GatewayConfig(base_url=GATEWAY_URL, connect_timeout_seconds=2.0, request_timeout_seconds=2.0)


@pytest.fixture
def state_store():
    return ClientStateStore()


@pytest.fixture
async def gateway_client(gateway_config, state_store, fake_gateway):
    client = GatewayClient(gateway_config, state_store=state_store, transport=httpx.MockTransport(fake_gateway.handler))
    await client.connect()
    yield client
    await client.close()


@pytest.fixture
def ids():
    return IdGenerator(IdStrategy.COUNTER)


@pytest.fixture
def notifications():
    return NotificationCenter(NotificationConfig())


@pytest.fixture
def registry(ids):
    return ConnectionRegistry(ids)


@pytest.fixture
def checker(gateway_client):
    return ConnectivityChecker(gateway_client)


@pytest.fixture
def schema_browser(registry, checker, notifications):
    return SchemaBrowserService(registry, checker, SchemaCache(), notifications, PreviewConfig())


@pytest.fixture
def connection_service(registry, checker, schema_browser, notifications):
    return ConnectionService(registry, checker, schema_browser, notifications)


@pytest.fixture
def transformation_service(schema_browser, notifications):
    return TransformationService(schema_browser, notifications)


@pytest.fixture
def pipeline_service(ids, notifications):
    return PipelineService(ids, notifications, PipelineConfig(), rng=random.Random(0))
