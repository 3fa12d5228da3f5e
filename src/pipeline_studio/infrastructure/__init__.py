"""
Infrastructure layer for external integrations.

This module contains the HTTP client for the database gateway and the
client state store that keeps user preferences between runs.
"""

from .gateway_client import GatewayClient
from .state_store import ClientStateStore

__all__ = ["GatewayClient", "ClientStateStore"]
