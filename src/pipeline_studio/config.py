"""
Configuration module for the Pipeline Studio service.

This module defines all configuration classes using Pydantic BaseModel and BaseSettings.
Configuration is loaded from environment variables with nested delimiter "__".

Example .env:
    GATEWAY__BASE_URL=https://my-tunnel.ngrok-free.app
    CLIENT_STATE__STATE_FILE=.pipeline_studio_state.json
    APP__LOG_LEVEL=DEBUG

Usage:
    from pipeline_studio.config import get_settings
    settings = get_settings()
    print(settings.gateway.base_url)
"""

from functools import lru_cache
from typing import Literal, Optional

from pipeline_studio.config_constants import (
    CORS_PROXY_TEST_URL,
    DEMO_GATEWAY_URL,
    IdStrategy,
    LogLevel,
)

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict


# =============================================================================
# DATABASE GATEWAY CONFIGURATION
# =============================================================================

class GatewayConfig(BaseModel):
    """
    HTTP configuration for the external database gateway.

    The gateway exposes /database/connect, /database/select-database and
    /database/preview-table. Used by GatewayClient for every network call.
    """

    # Base URL of the gateway (demo tunnel by default)
    # A CORS proxy prefix, when enabled, is prepended at request time
    base_url: str = DEMO_GATEWAY_URL

    # Abort the connection test after this many seconds
    # Only the connect path is bounded; listing and preview use request_timeout_seconds
    connect_timeout_seconds: float = 10.0

    # Timeout for table listing and preview requests
    request_timeout_seconds: float = 30.0

    # Maximum total HTTP connections to the gateway
    max_connections: int = 20

    # Maximum idle connections kept alive
    max_keepalive_connections: int = 5

    # URL fetched through a CORS proxy to check that the proxy works
    proxy_test_url: str = CORS_PROXY_TEST_URL


# =============================================================================
# CLIENT STATE CONFIGURATION
# =============================================================================

class ClientStateConfig(BaseModel):
    """
    Durable client preferences (CORS proxy URL, authentication flag and user).

    Everything else (connections, schemas, graphs) is memory-only.
    """

    # JSON file backing the store; None keeps the state in memory
    state_file: Optional[str] = None


# =============================================================================
# PREVIEW CONFIGURATION
# =============================================================================

class PreviewConfig(BaseModel):
    """Row limits for table previews and sample data."""

    # Rows fetched when a table is opened for preview
    row_limit: int = 50

    # Rows fetched for sample data in the schema browser
    sample_row_limit: int = 10


# =============================================================================
# PIPELINE GRAPH CONFIGURATION
# =============================================================================

class PipelineConfig(BaseModel):
    """
    Defaults for the pipeline graph designer.
    """

    # Column spec used for newly added tables ("name:TYPE,name:TYPE")
    default_table_columns: str = "id:INTEGER,name:VARCHAR"

    # New nodes are dropped at a random position inside this square
    position_min: float = 100.0
    position_max: float = 400.0

    # File name suggested for graph exports
    export_file_name: str = "schema.json"


# =============================================================================
# IDENTIFIER CONFIGURATION
# =============================================================================

class IdentifierConfig(BaseModel):
    """Identifier generation for connections and graph nodes."""

    # uuid4: random, collision-free in practice
    # counter: monotonic per prefix, deterministic (useful in tests and demos)
    strategy: IdStrategy = IdStrategy.UUID4


# =============================================================================
# NOTIFICATION CONFIGURATION
# =============================================================================

class NotificationConfig(BaseModel):
    """Display durations for user-facing notices."""

    default_duration_ms: int = 3000

    # Destructive notices stay visible longer than informational ones
    destructive_duration_ms: int = 8000

    # Number of notices kept before the oldest are dropped
    max_history: int = 100


# =============================================================================
# SERVER CONFIGURATION
# =============================================================================

class ServerConfig(BaseModel):
    """
    FastAPI/Uvicorn server configuration.

    Used by run_dev.py and run_prod.py scripts.
    """

    # Network interface to bind (0.0.0.0 = all interfaces)
    host: str = "0.0.0.0"

    # Port number to listen on
    port: int = 8000

    # Python module path for FastAPI app
    app_module: str = "pipeline_studio.main:app"

    # Enable hot reload on code changes (development only)
    reload: bool = True

    # Number of worker processes (ignored with reload=True)
    # State is in-process, so more than one worker splits it
    workers: int = 1


# =============================================================================
# APPLICATION CONFIGURATION
# =============================================================================

class AppConfig(BaseModel):
    """
    General application settings.
    """

    # Logging level: DEBUG, INFO, WARNING, ERROR
    log_level: LogLevel = LogLevel.INFO

    # Log renderer: "json" (pretty JSON, default) or "console" (colored single line)
    log_format: Literal["json", "console"] = "json"


# =============================================================================
# ROOT SETTINGS (Environment Loading)
# =============================================================================

class Settings(BaseSettings):
    """
    Root settings class that loads all configuration from environment.

    Environment variables use "__" (double underscore) as nested delimiter.
    Example: GATEWAY__BASE_URL sets settings.gateway.base_url

    All sections have defaults; the service starts without any environment.
    """

    gateway: GatewayConfig = GatewayConfig()

    client_state: ClientStateConfig = ClientStateConfig()

    preview: PreviewConfig = PreviewConfig()

    pipeline: PipelineConfig = PipelineConfig()

    identifiers: IdentifierConfig = IdentifierConfig()

    notifications: NotificationConfig = NotificationConfig()

    server: ServerConfig = ServerConfig()

    app: AppConfig = AppConfig()

    model_config = SettingsConfigDict(
        env_file=".env",            # Load from .env file in project root
        env_file_encoding="utf-8",  # UTF-8 encoding for .env file
        case_sensitive=False,       # ENV_VAR and env_var are equivalent
        env_nested_delimiter="__",  # Use __ for nested config (GATEWAY__BASE_URL)
        extra="ignore",
    )


# =============================================================================
# SINGLETON ACCESSOR
# =============================================================================

@lru_cache
def get_settings() -> Settings:
    """
    Get cached Settings instance (singleton pattern).

    Settings are loaded once and cached for the lifetime of the application.

    Returns:
        Settings instance with all configuration loaded from environment
    """
    return Settings()
