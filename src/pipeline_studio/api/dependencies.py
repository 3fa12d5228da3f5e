"""
FastAPI dependencies for dependency injection.

Services are built once in the application lifespan and kept on
app.state; these getters hand them to the route handlers. Routes depend on
services, never on the gateway client directly (health checks excepted).
"""

from typing import Annotated, Any

from fastapi import Depends, Request

from ..config import Settings
from ..infrastructure.gateway_client import GatewayClient
from ..services.api_check_service import ApiCheckService
from ..services.connection_service import ConnectionService
from ..services.notification_service import NotificationCenter
from ..services.pipeline_service import PipelineService
from ..services.schema_service import SchemaBrowserService
from ..services.session_service import SessionService
from ..services.transformation_service import TransformationService


def _require_state(request: Request, name: str) -> Any:
    if not hasattr(request.app.state, name):
        raise RuntimeError(f"{name} not initialized")
    return getattr(request.app.state, name)


def get_settings(request: Request) -> Settings:
    """
    Settings from app state.

    Raises:
        RuntimeError: If the lifespan has not run
    """
    return _require_state(request, "settings")


def get_gateway_client_optional(request: Request) -> GatewayClient | None:
    """Gateway client if available, None otherwise (health checks only)."""
    return getattr(request.app.state, "gateway_client", None)


def get_connection_service(request: Request) -> ConnectionService:
    return _require_state(request, "connection_service")


def get_schema_browser(request: Request) -> SchemaBrowserService:
    return _require_state(request, "schema_browser")


def get_transformation_service(request: Request) -> TransformationService:
    return _require_state(request, "transformation_service")


def get_pipeline_service(request: Request) -> PipelineService:
    return _require_state(request, "pipeline_service")


def get_session_service(request: Request) -> SessionService:
    return _require_state(request, "session_service")


def get_api_check_service(request: Request) -> ApiCheckService:
    return _require_state(request, "api_check_service")


def get_notification_center(request: Request) -> NotificationCenter:
    return _require_state(request, "notifications")


# Type aliases for cleaner dependency injection
SettingsDep = Annotated[Settings, Depends(get_settings)]
ConnectionServiceDep = Annotated[ConnectionService, Depends(get_connection_service)]
SchemaBrowserDep = Annotated[SchemaBrowserService, Depends(get_schema_browser)]
TransformationServiceDep = Annotated[TransformationService, Depends(get_transformation_service)]
PipelineServiceDep = Annotated[PipelineService, Depends(get_pipeline_service)]
SessionServiceDep = Annotated[SessionService, Depends(get_session_service)]
ApiCheckServiceDep = Annotated[ApiCheckService, Depends(get_api_check_service)]
NotificationCenterDep = Annotated[NotificationCenter, Depends(get_notification_center)]

# Optional client dependencies (used in health checks)
OptionalGatewayClientDep = Annotated[GatewayClient | None, Depends(get_gateway_client_optional)]
