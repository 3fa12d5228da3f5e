"""
API Check Service.

Reachability check for the database gateway and management of the optional
CORS proxy that is prefixed to the gateway base URL.
"""

from typing import Any, Dict

from ..config_constants import CORS_PROXY_URL_KEY, USE_CORS_PROXY_KEY
from ..domain.errors import GatewayError, ValidationError
from ..infrastructure.gateway_client import GatewayClient
from ..infrastructure.state_store import ClientStateStore
from ..utils.logging import get_module_logger
from ..utils.tracing import current_trace_id
from .notification_service import NotificationCenter


logger = get_module_logger()

_CORS_MARKERS = ("cors", "cross-origin", "access-control-allow-origin")


class ApiCheckService:
    """
    Usage:
        checks = ApiCheckService(gateway_client, state_store, notifications)
        status = await checks.check_api_server()
        result = await checks.test_cors_proxy("https://cors.example/")
        if result["success"]:
            checks.set_cors_proxy("https://cors.example/")
    """

    def __init__(
        self,
        gateway: GatewayClient,
        state_store: ClientStateStore,
        notifications: NotificationCenter,
    ):
        self.gateway = gateway
        self.state_store = state_store
        self.notifications = notifications

    async def check_api_server(self) -> Dict[str, Any]:
        """
        Check the gateway with OPTIONS {base}/database/connect.

        Returns:
            {"accessible": bool, "cors_issue": bool, "message": str}
            A 403 answer is flagged as a likely CORS issue.
        """
        trace_id = current_trace_id()
        try:
            response = await self.gateway.check_reachability()
        except GatewayError as e:
            cors_issue = any(marker in e.message.lower() for marker in _CORS_MARKERS)
            message = (
                "CORS issue detected: The API server is blocking cross-origin requests."
                if cors_issue
                else f"Cannot access API server: {e.message}"
            )
            logger.warning("API server not accessible", error=e.message, trace_id=trace_id)
            return {"accessible": False, "cors_issue": cors_issue, "message": message}

        if response.is_success:
            return {
                "accessible": True,
                "cors_issue": False,
                "message": "API server is accessible and CORS is properly configured.",
            }

        logger.warning("API server returned error status", status_code=response.status_code, trace_id=trace_id)
        return {
            "accessible": True,
            "cors_issue": response.status_code == 403,
            "message": f"API server responded with status: {response.status_code} {response.reason_phrase}",
        }

    async def test_cors_proxy(self, proxy_url: str) -> Dict[str, Any]:
        """
        Check that a proxy forwards requests and returns JSON objects.

        Returns:
            {"success": bool, "message": str}
        """
        if not proxy_url or not proxy_url.startswith("http"):
            return {"success": False, "message": "Invalid proxy URL. Must start with http:// or https://"}

        try:
            payload = await self.gateway.get_through_proxy(proxy_url)
        except GatewayError as e:
            logger.warning("CORS proxy test failed", proxy_url=proxy_url, error=e.message, trace_id=current_trace_id())
            return {"success": False, "message": f"CORS proxy test failed: {e.message}"}

        if not isinstance(payload, dict):
            return {"success": False, "message": "CORS proxy returned an invalid response."}
        return {"success": True, "message": "CORS proxy is working correctly."}

    def proxy_settings(self) -> Dict[str, Any]:
        return {
            "proxy_url": self.state_store.get(CORS_PROXY_URL_KEY),
            "enabled": self.state_store.get_bool(USE_CORS_PROXY_KEY),
            "base_url": self.gateway.base_url(),
        }

    def set_cors_proxy(self, proxy_url: str, enabled: bool = True) -> Dict[str, Any]:
        """
        Store the proxy URL and toggle its use.

        Raises:
            ValidationError: URL does not start with http
        """
        if not proxy_url.startswith("http"):
            raise ValidationError("Invalid proxy URL. Must start with http:// or https://", details={"field": "proxy_url"})
        self.state_store.set(CORS_PROXY_URL_KEY, proxy_url)
        self.state_store.set_bool(USE_CORS_PROXY_KEY, enabled)
        self.notifications.success("CORS proxy saved", proxy_url if enabled else "Proxy stored but disabled")
        return self.proxy_settings()

    def clear_cors_proxy(self) -> Dict[str, Any]:
        self.state_store.remove(CORS_PROXY_URL_KEY)
        self.state_store.set_bool(USE_CORS_PROXY_KEY, False)
        self.notifications.notify("CORS proxy removed")
        return self.proxy_settings()

