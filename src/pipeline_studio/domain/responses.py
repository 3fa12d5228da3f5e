"""
API response models for Pipeline Studio.

These models define the structure for all outgoing API responses,
ensuring consistent response formats and type safety. Passwords never
appear in a response.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..config_constants import DatabaseEngine
from .base_enums import ConnectionRole, ConnectionStatus
from .connections import Connection, ConnectionCheckResult, DatabaseSelectionResult
from .notices import Notice
from .pipeline import FlowEdge, FlowNode
from .schema_nodes import SchemaNode, TableSelection


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str = Field(..., description="Health status", examples=["healthy", "degraded", "unhealthy"])
    timestamp: datetime = Field(..., description="Health check timestamp")
    version: str = Field(..., description="Application version")
    gateway_status: str = Field(..., description="Database gateway status")
    gateway_url: Optional[str] = Field(default=None, description="Effective gateway base URL")
    connection_count: int = Field(default=0, description="Registered connections")


class ErrorResponse(BaseModel):
    """Response model for error responses."""

    error: str = Field(..., description="Error type or category")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Additional error details"
    )
    trace_id: Optional[str] = Field(
        default=None,
        description="Trace ID for debugging"
    )
    timestamp: datetime = Field(..., description="Error timestamp")


# -------------------------
# Connections
# -------------------------

class ConnectionView(BaseModel):
    """Public view of a connection (no password)."""

    id: str
    name: str
    type: ConnectionRole
    connection_type: DatabaseEngine
    host: str
    port: str = Field(..., description="Effective port")
    username: Optional[str] = None
    database: Optional[str] = None
    has_password: bool = False
    status: ConnectionStatus
    last_tested: Optional[datetime] = None
    databases: List[str] = Field(default_factory=list)
    tables: List[str] = Field(default_factory=list)

    @classmethod
    def from_connection(cls, connection: Connection) -> "ConnectionView":
        credential = connection.credential
        return cls(
            id=connection.id,
            name=connection.name,
            type=connection.type,
            connection_type=credential.connection_type,
            host=credential.host,
            port=credential.effective_port,
            username=credential.username,
            database=credential.database,
            has_password=credential.password is not None,
            status=connection.status,
            last_tested=connection.last_tested,
            databases=connection.databases,
            tables=connection.tables,
        )


class ConnectionResponse(BaseModel):
    trace_id: str
    connection: ConnectionView


class ConnectionListResponse(BaseModel):
    trace_id: str
    connections: List[ConnectionView]
    count: int


class ConnectionTestResponse(BaseModel):
    trace_id: str
    connection: Optional[ConnectionView] = Field(default=None, description="State after the test")
    result: ConnectionCheckResult


class DatabaseListResponse(BaseModel):
    trace_id: str
    connection_id: str
    databases: List[str]


class DatabaseSelectionResponse(BaseModel):
    trace_id: str
    connection: Optional[ConnectionView] = None
    result: DatabaseSelectionResult


class DeleteResponse(BaseModel):
    trace_id: str
    deleted: bool


# -------------------------
# Schemas
# -------------------------

class SchemaListResponse(BaseModel):
    trace_id: str
    connection_id: str
    success: bool = True
    message: str = ""
    stale: bool = False
    schemas: List[SchemaNode] = Field(default_factory=list)


class SelectionResponse(BaseModel):
    trace_id: str
    selection: Optional[TableSelection] = None


# -------------------------
# Pipeline graphs
# -------------------------

class GraphSummary(BaseModel):
    id: str
    name: str
    node_count: int
    edge_count: int


class GraphResponse(BaseModel):
    """Full state of one pipeline graph."""

    model_config = ConfigDict(populate_by_name=True)

    trace_id: str
    id: str
    name: str
    nodes: List[FlowNode]
    edges: List[FlowEdge]
    selected_tables: List[str] = Field(default_factory=list, alias="selectedTables")


class GraphListResponse(BaseModel):
    trace_id: str
    graphs: List[GraphSummary]


class NoticeResponse(BaseModel):
    trace_id: str
    notice: Notice


class NoticeListResponse(BaseModel):
    trace_id: str
    notices: List[Notice]
