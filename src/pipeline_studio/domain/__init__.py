"""
Domain package for Pipeline Studio.

This package contains all domain models, entities, and value objects
used throughout the application for type safety and validation.
"""

from .base_enums import (
    ConnectionRole,
    ConnectionStatus,
    ExportFormat,
    FilterOperator,
    FlowEdgeType,
    FlowNodeType,
    NoticeVariant,
    TransformationOperationType,
)
from .connections import (
    Connection,
    ConnectionCheckResult,
    ConnectionDraft,
    Credential,
    DatabaseSelectionResult,
)
from .notices import Notice
from .pipeline import FlowEdge, FlowNode, GraphSnapshot, Position, TableMapping
from .schema_nodes import (
    ColumnNode,
    ForeignKey,
    SchemaFetchResult,
    SchemaNode,
    TableNode,
    TablePreview,
    TablePreviewResult,
    TableSelection,
)
from .session import User
from .transformations import TransformationOperation, TransformationPlan, TransformationResult
from .responses import ErrorResponse, HealthResponse

__all__ = [
    # Enums
    "ConnectionRole",
    "ConnectionStatus",
    "ExportFormat",
    "FilterOperator",
    "FlowEdgeType",
    "FlowNodeType",
    "NoticeVariant",
    "TransformationOperationType",

    # Connections
    "Connection",
    "ConnectionCheckResult",
    "ConnectionDraft",
    "Credential",
    "DatabaseSelectionResult",

    # Schemas
    "ColumnNode",
    "ForeignKey",
    "SchemaFetchResult",
    "SchemaNode",
    "TableNode",
    "TablePreview",
    "TablePreviewResult",
    "TableSelection",

    # Pipeline graphs
    "FlowEdge",
    "FlowNode",
    "GraphSnapshot",
    "Position",
    "TableMapping",

    # Transformations
    "TransformationOperation",
    "TransformationPlan",
    "TransformationResult",

    # Misc
    "Notice",
    "User",
    "ErrorResponse",
    "HealthResponse",
]
