"""
Database gateway HTTP client.

This module provides a minimal async client for the external database
gateway, the HTTP service that actually talks to customer databases:

    POST {base}/database/connect          -> {status, databases}
    POST {base}/database/select-database  -> {status, tables}
    POST {base}/database/preview-table    -> {data}
    OPTIONS {base}/database/connect       (reachability / CORS check)

The base URL is the configured gateway URL, optionally prefixed with a CORS
proxy URL stored in the client state store.
"""

from typing import Any, Dict, List, Optional

import httpx

from ..config import GatewayConfig
from ..config_constants import CORS_PROXY_URL_KEY, USE_CORS_PROXY_KEY
from ..domain.connections import Credential
from ..domain.errors import (
    GatewayConnectionError,
    GatewayResponseError,
    GatewayTimeoutError,
)
from ..utils.logging import get_module_logger
from ..utils.tracing import current_trace_id
from .state_store import ClientStateStore


logger = get_module_logger()


class GatewayClient:
    """
    Thin async client for the database gateway.

    Every call either returns the decoded payload or raises one of:
    - GatewayConnectionError: network failure, gateway unreachable
    - GatewayTimeoutError: request exceeded its timeout
    - GatewayResponseError: non-2xx, HTML/non-JSON body, or status != "success"

    Higher-level decisions (demo fallback, notices, status transitions)
    belong to the repository and service layers.

    Usage:
        client = GatewayClient(settings.gateway, state_store)
        await client.connect()

        databases = await client.connect_database(credential)
        tables = await client.select_database(credential.with_database("airportdb"))

        await client.close()
    """

    def __init__(
        self,
        config: GatewayConfig,
        state_store: Optional[ClientStateStore] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize gateway client with configuration.

        Args:
            config: Gateway configuration
            state_store: Client state holding the CORS proxy preference
            transport: Optional httpx transport (tests pass httpx.MockTransport)
        """
        self.config = config
        self.state_store = state_store
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._is_connected = False

        logger.info("GatewayClient initialized", base_url=config.base_url)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def connect(self) -> None:
        """
        Create the pooled HTTP client.

        No request is made here; the gateway is a tunnel that may be offline
        and its availability is checked per call.
        """
        if self._is_connected:
            logger.warning("Gateway client already connected")
            return

        trace_id = current_trace_id()
        logger.info("Initializing gateway client", trace_id=trace_id)

        self._client = httpx.AsyncClient(
            transport=self._transport,
            headers={"Accept": "application/json"},
            timeout=httpx.Timeout(
                self.config.request_timeout_seconds,
                connect=self.config.connect_timeout_seconds,
            ),
            limits=httpx.Limits(
                max_connections=self.config.max_connections,
                max_keepalive_connections=self.config.max_keepalive_connections,
            ),
        )
        self._is_connected = True
        logger.info("Gateway client initialized successfully", trace_id=trace_id)

    async def close(self) -> None:
        """Close HTTP client and release resources."""
        trace_id = current_trace_id()
        logger.info("Closing gateway client", trace_id=trace_id)

        if self._client:
            await self._client.aclose()
            logger.info("Gateway client closed", trace_id=trace_id)

        self._is_connected = False
        self._client = None

    def is_connected(self) -> bool:
        """Check if the HTTP client is ready."""
        return self._is_connected and self._client is not None

    def _require_client(self) -> httpx.AsyncClient:
        if not self.is_connected() or self._client is None:
            raise GatewayConnectionError("Gateway client is not connected")
        return self._client

    # -------------------------------------------------------------------------
    # URL resolution
    # -------------------------------------------------------------------------

    def base_url(self) -> str:
        """
        Gateway base URL, prefixed with the CORS proxy when one is enabled.

        Example:
            proxy "https://cors.example/" + base "https://gw.example"
            -> "https://cors.example/https://gw.example"
        """
        base = self.config.base_url.rstrip("/")
        if self.state_store is None:
            return base
        proxy = self.state_store.get(CORS_PROXY_URL_KEY) or ""
        if proxy and self.state_store.get_bool(USE_CORS_PROXY_KEY):
            return f"{proxy}{base}"
        return base

    # -------------------------------------------------------------------------
    # Response handling
    # -------------------------------------------------------------------------

    @staticmethod
    def _looks_like_html(response: httpx.Response) -> bool:
        content_type = response.headers.get("content-type", "")
        if "text/html" in content_type:
            return True
        return response.text.lstrip().startswith("<")

    @staticmethod
    def _error_message(response: httpx.Response) -> Optional[str]:
        try:
            body = response.json()
        except ValueError:
            return None
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return None

    def _decode(self, response: httpx.Response, operation: str) -> Any:
        """
        Decode a gateway response body, rejecting HTML and non-2xx replies.
        """
        trace_id = current_trace_id()

        if not response.is_success:
            message = self._error_message(response) or f"Gateway responded with status {response.status_code}"
            logger.error(
                "Gateway returned error status",
                operation=operation,
                status_code=response.status_code,
                trace_id=trace_id,
            )
            raise GatewayResponseError(
                message,
                details={"operation": operation, "status_code": response.status_code},
            )

        if self._looks_like_html(response):
            logger.error("Gateway returned HTML instead of JSON", operation=operation, trace_id=trace_id)
            raise GatewayResponseError(
                "Gateway returned an HTML page instead of JSON",
                details={"operation": operation},
            )

        try:
            return response.json()
        except ValueError as e:
            logger.error("Gateway returned invalid JSON", operation=operation, trace_id=trace_id)
            raise GatewayResponseError(
                f"Gateway returned invalid JSON: {e}",
                details={"operation": operation},
            ) from e

    async def _send(
        self,
        method: str,
        url: str,
        operation: str,
        json_body: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> httpx.Response:
        client = self._require_client()
        trace_id = current_trace_id()

        logger.info("Calling gateway", operation=operation, method=method, trace_id=trace_id)

        try:
            if timeout is not None:
                return await client.request(method, url, json=json_body, timeout=timeout)
            return await client.request(method, url, json=json_body)

        except httpx.TimeoutException as e:
            error_msg = f"Gateway request timed out: {operation}"
            logger.error(error_msg, error_type=type(e).__name__, trace_id=trace_id)
            raise GatewayTimeoutError(error_msg, details={"operation": operation}) from e

        except httpx.RequestError as e:
            error_msg = f"Cannot reach gateway: {e}"
            logger.error(error_msg, operation=operation, error_type=type(e).__name__, trace_id=trace_id)
            raise GatewayConnectionError(error_msg, details={"operation": operation}) from e

    @staticmethod
    def _require_success(payload: Any, key: str, operation: str) -> List[Any]:
        if not isinstance(payload, dict):
            raise GatewayResponseError("Invalid response format", details={"operation": operation})
        values = payload.get(key)
        if payload.get("status") != "success" or not isinstance(values, list):
            raise GatewayResponseError(
                str(payload.get("message") or "Invalid response format"),
                details={"operation": operation},
            )
        return values

    # -------------------------------------------------------------------------
    # Gateway operations
    # -------------------------------------------------------------------------

    async def connect_database(self, credential: Credential) -> List[str]:
        """
        Check credentials and list the databases visible to them.

        The request is aborted after ``connect_timeout_seconds``.

        Returns:
            Database names

        Raises:
            GatewayConnectionError, GatewayTimeoutError, GatewayResponseError
        """
        payload = credential.with_database(None).to_gateway_payload()
        response = await self._send(
            "POST",
            f"{self.base_url()}/database/connect",
            operation="connect",
            json_body=payload,
            timeout=self.config.connect_timeout_seconds,
        )
        data = self._decode(response, "connect")
        databases = [str(name) for name in self._require_success(data, "databases", "connect")]

        logger.info(
            "Gateway listed databases",
            host=credential.host,
            database_count=len(databases),
            trace_id=current_trace_id(),
        )
        return databases

    async def select_database(self, credential: Credential) -> List[str]:
        """
        List the tables of the credential's selected database.

        Raises:
            ValidationError: If no database is selected
            GatewayConnectionError, GatewayTimeoutError, GatewayResponseError
        """
        credential.require_database()
        response = await self._send(
            "POST",
            f"{self.base_url()}/database/select-database",
            operation="select-database",
            json_body=credential.to_gateway_payload(),
        )
        data = self._decode(response, "select-database")
        tables = [str(name) for name in self._require_success(data, "tables", "select-database")]

        logger.info(
            "Gateway listed tables",
            database=credential.database,
            table_count=len(tables),
            trace_id=current_trace_id(),
        )
        return tables

    async def preview_table(self, table_name: str) -> List[Dict[str, Any]]:
        """
        Fetch preview rows of one table as a list of records.

        Raises:
            GatewayConnectionError, GatewayTimeoutError, GatewayResponseError
        """
        response = await self._send(
            "POST",
            f"{self.base_url()}/database/preview-table",
            operation="preview-table",
            json_body={"table_name": table_name},
        )
        data = self._decode(response, "preview-table")
        rows = data.get("data") if isinstance(data, dict) else None
        if not isinstance(rows, list):
            raise GatewayResponseError("Invalid response format", details={"operation": "preview-table"})
        return [row for row in rows if isinstance(row, dict)]

    async def check_reachability(self) -> httpx.Response:
        """
        Send the OPTIONS reachability check to the connect endpoint.

        The raw response is returned; any status code counts as reachable.

        Raises:
            GatewayConnectionError, GatewayTimeoutError
        """
        return await self._send(
            "OPTIONS",
            f"{self.base_url()}/database/connect",
            operation="check_reachability",
            timeout=self.config.connect_timeout_seconds,
        )

    async def get_through_proxy(self, proxy_url: str) -> Any:
        """
        GET the configured proxy test URL through ``proxy_url`` and decode JSON.

        Raises:
            GatewayConnectionError, GatewayTimeoutError, GatewayResponseError
        """
        response = await self._send(
            "GET",
            f"{proxy_url}{self.config.proxy_test_url}",
            operation="proxy-test",
            timeout=self.config.connect_timeout_seconds,
        )
        return self._decode(response, "proxy-test")

    async def health_check(self) -> Dict[str, Any]:
        """
        Perform health check on the gateway.

        Example:
            {
                "status": "healthy",
                "connected": True,
                "base_url": "https://gw.example",
                "status_code": 200
            }
        """
        trace_id = current_trace_id()

        if not self.is_connected():
            return {
                "status": "unhealthy",
                "connected": False,
                "error": "Gateway client not connected",
            }

        try:
            response = await self.check_reachability()
        except (GatewayConnectionError, GatewayTimeoutError) as e:
            logger.warning("Gateway health check failed", error=e.message, trace_id=trace_id)
            return {
                "status": "unhealthy",
                "connected": True,
                "base_url": self.base_url(),
                "error": e.message,
            }

        return {
            "status": "healthy" if response.is_success else "degraded",
            "connected": True,
            "base_url": self.base_url(),
            "status_code": response.status_code,
        }
