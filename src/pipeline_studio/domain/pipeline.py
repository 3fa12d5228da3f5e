"""
Pipeline graph models.

Nodes and edges backing the visual pipeline designer. The JSON export of a
graph is exactly these shapes under ``{nodes, edges, selectedTables}``.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .base_enums import FlowEdgeType, FlowNodeType
from .schema_nodes import ColumnNode


class Position(BaseModel):
    x: float = Field(default=0.0, description="Horizontal canvas coordinate")
    y: float = Field(default=0.0, description="Vertical canvas coordinate")


class FlowNodeData(BaseModel):
    """Payload rendered inside a node."""

    model_config = ConfigDict(populate_by_name=True)

    label: str = Field(..., description="Display label")
    columns: List[ColumnNode] = Field(default_factory=list, description="Columns shown for table nodes")
    source: Optional[str] = Field(default=None, description="Connection or database the table comes from")
    schema_name: Optional[str] = Field(default=None, description="Schema of the table")
    table_name: Optional[str] = Field(default=None, description="Physical table name")
    operation: Optional[str] = Field(default=None, description="Operation summary for transformation nodes")
    config: Dict[str, Any] = Field(default_factory=dict, description="Transformation configuration")


class FlowNode(BaseModel):
    id: str = Field(..., description="Unique node id")
    type: FlowNodeType = Field(..., description="table, transformation or output")
    position: Position = Field(default_factory=Position, description="Canvas position")
    data: FlowNodeData = Field(..., description="Node payload")
    selected: bool = Field(default=False, description="Selection flag set by the canvas")


class FlowEdgeData(BaseModel):
    label: Optional[str] = Field(default=None, description="Edge label")
    source_column: Optional[str] = Field(default=None, description="Column on the source table")
    target_column: Optional[str] = Field(default=None, description="Column on the target table")


class FlowEdge(BaseModel):
    id: str = Field(..., description="Unique edge id")
    source: str = Field(..., description="Source node id")
    target: str = Field(..., description="Target node id")
    type: FlowEdgeType = Field(default=FlowEdgeType.RELATIONSHIP, description="Edge kind")
    data: FlowEdgeData = Field(default_factory=FlowEdgeData, description="Edge payload")
    selected: bool = Field(default=False, description="Selection flag set by the canvas")


class GraphSnapshot(BaseModel):
    """Serializable state of a whole graph."""

    model_config = ConfigDict(populate_by_name=True)

    nodes: List[FlowNode] = Field(default_factory=list)
    edges: List[FlowEdge] = Field(default_factory=list)
    selected_tables: List[str] = Field(
        default_factory=list,
        alias="selectedTables",
        description="Qualified names (schema.table) chosen as pipeline inputs",
    )


class TableMapping(BaseModel):
    """Source table to target table mapping shown in the designer."""

    id: str
    name: str
    source_db: str
    source_table: str
    target_db: str
    target_table: str
    source_node_id: str
    target_node_id: str
    edge_id: str
