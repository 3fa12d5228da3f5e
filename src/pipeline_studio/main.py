"""
Main FastAPI application for Pipeline Studio.

This module sets up the FastAPI application with logging, tracing and
error handling middleware, and wires every service once in the lifespan.
All project state (connections, cached schemas, graphs, notices) lives in
the process; only client preferences go to the client state store.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Dict, Optional, Union

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from .api.dependencies import OptionalGatewayClientDep, SettingsDep
from .api.middleware import logging_middleware, register_exception_handlers, trace_id_middleware
from .api.routes import ROUTERS
from .config import Settings, get_settings
from .domain.responses import HealthResponse
from .infrastructure.gateway_client import GatewayClient
from .infrastructure.state_store import ClientStateStore
from .repositories.connection_registry import ConnectionRegistry
from .repositories.connectivity import ConnectivityChecker
from .repositories.schema_cache import SchemaCache
from .services.api_check_service import ApiCheckService
from .services.connection_service import ConnectionService
from .services.notification_service import NotificationCenter
from .services.pipeline_service import DEFAULT_GRAPH_NAME, PipelineService
from .services.schema_service import SchemaBrowserService
from .services.session_service import SessionService
from .services.transformation_service import TransformationService
from .utils.id_generation import IdGenerator
from .utils.logging import configure_logging, get_module_logger
from .utils.tracing import get_trace_id


APP_VERSION = "0.1.0"

# Configure logging on module import
configure_logging()
logger = get_module_logger()


def build_state(
    app: FastAPI,
    settings: Settings,
    gateway_client: GatewayClient,
    state_store: ClientStateStore,
) -> None:
    """Build the service graph and store it on app.state."""
    id_generator = IdGenerator(settings.identifiers.strategy)
    notifications = NotificationCenter(settings.notifications)

    registry = ConnectionRegistry(id_generator)
    checker = ConnectivityChecker(gateway_client)
    schema_browser = SchemaBrowserService(registry, checker, SchemaCache(), notifications, settings.preview)

    pipeline_service = PipelineService(id_generator, notifications, settings.pipeline)
    pipeline_service.create_graph(DEFAULT_GRAPH_NAME)

    app.state.settings = settings
    app.state.state_store = state_store
    app.state.gateway_client = gateway_client
    app.state.notifications = notifications
    app.state.connection_registry = registry
    app.state.schema_browser = schema_browser
    app.state.connection_service = ConnectionService(registry, checker, schema_browser, notifications)
    app.state.transformation_service = TransformationService(schema_browser, notifications)
    app.state.pipeline_service = pipeline_service
    app.state.session_service = SessionService(state_store, notifications)
    app.state.api_check_service = ApiCheckService(gateway_client, state_store, notifications)


def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: Settings to use instead of the environment (tests)
        transport: httpx transport for the gateway client (tests pass httpx.MockTransport)
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan events."""
        logger.info("Starting Pipeline Studio API server", version=APP_VERSION)

        resolved = settings or get_settings()
        logger.info("Settings loaded successfully", gateway_url=resolved.gateway.base_url)

        state_store = ClientStateStore(resolved.client_state)
        gateway_client = GatewayClient(resolved.gateway, state_store=state_store, transport=transport)
        await gateway_client.connect()

        build_state(app, resolved, gateway_client, state_store)

        yield

        logger.info("Shutting down Pipeline Studio API server")

        await app.state.connection_service.wait_for_background_tasks()
        await app.state.gateway_client.close()
        logger.info("Gateway client closed")

    app = FastAPI(
        title="Pipeline Studio API",
        description="Data pipeline builder: database connections, schema browsing, transformations and pipeline graphs",
        version=APP_VERSION,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Last registered = first executed
    app.middleware("http")(logging_middleware)
    app.middleware("http")(trace_id_middleware)

    register_exception_handlers(app)

    app.add_api_route("/", root, methods=["GET"], tags=["Root"])
    app.add_api_route("/health", health, methods=["GET"], response_model=HealthResponse, tags=["Health"])
    app.add_api_route("/api/v1/health", health, methods=["GET"], response_model=HealthResponse, tags=["Health"])
    for router in ROUTERS:
        app.include_router(router)

    return app


async def root(settings: SettingsDep) -> Dict[str, Union[str, None]]:
    """
    Root endpoint returning basic API information.

    **Response**: Dict with message, version, trace_id, log_level, gateway_url
    """
    trace_id = get_trace_id()
    logger.info("Root endpoint accessed", trace_id=trace_id)

    return {
        "message": "Pipeline Studio API",
        "version": APP_VERSION,
        "trace_id": trace_id,
        "log_level": settings.app.log_level.value,
        "gateway_url": settings.gateway.base_url,
    }


async def health(request: Request, gateway_client: OptionalGatewayClientDep) -> HealthResponse:
    """
    Health check endpoint.

    **Response Model**: `HealthResponse`
    - status: "healthy" when the gateway answers, otherwise "degraded"
    - gateway_status, gateway_url, connection_count
    """
    trace_id = get_trace_id()
    logger.info("Health check endpoint accessed", trace_id=trace_id)

    gateway_status = "not_configured"
    gateway_url = None
    if gateway_client:
        gateway_health = await gateway_client.health_check()
        gateway_status = gateway_health.get("status", "unknown")
        gateway_url = gateway_health.get("base_url")

    registry = getattr(request.app.state, "connection_registry", None)
    return HealthResponse(
        status="healthy" if gateway_status == "healthy" else "degraded",
        timestamp=datetime.now(timezone.utc),
        version=APP_VERSION,
        gateway_status=gateway_status,
        gateway_url=gateway_url,
        connection_count=len(registry) if registry is not None else 0,
    )


app = create_app()
