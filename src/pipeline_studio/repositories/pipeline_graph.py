"""
Pipeline Graph Repository.

Node/edge collections backing the visual pipeline designer. A graph holds
table, transformation and output nodes plus relationship, mapping and flow
edges, and serializes to the {nodes, edges, selectedTables} JSON document.

Invariants:
- every edge's source and target is an existing node id
- node and edge ids are unique inside the graph
- removing a node removes the edges touching it
"""

import random
from typing import Dict, List, Optional, Sequence, Tuple

from ..domain.base_enums import FlowEdgeType, FlowNodeType
from ..domain.errors import NotFoundError, PipelineGraphError
from ..domain.pipeline import FlowEdge, FlowEdgeData, FlowNode, FlowNodeData, GraphSnapshot, Position
from ..domain.schema_nodes import ColumnNode
from ..utils.id_generation import IdGenerator
from ..utils.logging import get_module_logger
from ..utils.tracing import current_trace_id


logger = get_module_logger()

RELATIONSHIP_LABEL = "relates to"
MAPPING_LABEL = "transforms to"

# Column x-coordinate per node type used by auto_layout()
LAYOUT_COLUMNS = {
    FlowNodeType.TABLE: 150.0,
    FlowNodeType.TRANSFORMATION: 450.0,
    FlowNodeType.OUTPUT: 750.0,
}
LAYOUT_TOP = 100.0
LAYOUT_ROW_SPACING = 150.0

NODE_ID_PREFIXES = {
    FlowNodeType.TABLE: "table",
    FlowNodeType.TRANSFORMATION: "transform",
    FlowNodeType.OUTPUT: "output",
}


def parse_column_spec(spec: str) -> List[ColumnNode]:
    """
    Parse "name:TYPE,name:TYPE" into columns. A missing type means VARCHAR.
    """
    columns = []
    for part in spec.split(","):
        part = part.strip()
        if not part:
            continue
        name, _, type_ = part.partition(":")
        columns.append(ColumnNode(name=name.strip(), type=type_.strip() or "VARCHAR"))
    return columns


class PipelineGraph:
    """
    One pipeline graph.

    Usage:
        graph = PipelineGraph("graph-1", "Orders ETL", IdGenerator())
        a = graph.add_table("customers")
        b = graph.add_table("orders")
        graph.on_connect(a.id, b.id)
        graph.snapshot()
    """

    def __init__(
        self,
        graph_id: str,
        name: str,
        id_generator: IdGenerator,
        rng: Optional[random.Random] = None,
        position_range: Tuple[float, float] = (100.0, 400.0),
        default_columns: Sequence[ColumnNode] = (),
    ):
        self.id = graph_id
        self.name = name
        self.id_generator = id_generator
        self.rng = rng or random.Random()
        self.position_range = position_range
        self.default_columns = list(default_columns) or parse_column_spec("id:INTEGER,name:VARCHAR")

        self._nodes: Dict[str, FlowNode] = {}
        self._edges: Dict[str, FlowEdge] = {}
        self.selected_tables: List[str] = []

    # -------------------------------------------------------------------------
    # Read access
    # -------------------------------------------------------------------------

    @property
    def nodes(self) -> List[FlowNode]:
        return list(self._nodes.values())

    @property
    def edges(self) -> List[FlowEdge]:
        return list(self._edges.values())

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def get_node(self, node_id: str) -> FlowNode:
        node = self._nodes.get(node_id)
        if node is None:
            raise NotFoundError(f"Node not found: {node_id}", details={"graph_id": self.id, "node_id": node_id})
        return node

    def find_table_node(self, label: str, source: Optional[str] = None) -> Optional[FlowNode]:
        for node in self._nodes.values():
            if node.type != FlowNodeType.TABLE or node.data.label != label:
                continue
            if source is None or node.data.source == source:
                return node
        return None

    # -------------------------------------------------------------------------
    # Nodes
    # -------------------------------------------------------------------------

    def _random_position(self) -> Position:
        low, high = self.position_range
        return Position(x=self.rng.uniform(low, high), y=self.rng.uniform(low, high))

    def add_node(
        self,
        node_type: FlowNodeType,
        data: FlowNodeData,
        position: Optional[Position] = None,
    ) -> FlowNode:
        node = FlowNode(
            id=self.id_generator.new_id(NODE_ID_PREFIXES[node_type]),
            type=node_type,
            position=position or self._random_position(),
            data=data,
        )
        self._nodes[node.id] = node
        logger.debug("Node added", graph_id=self.id, node_id=node.id, node_type=node_type.value)
        return node

    def add_table(
        self,
        name: Optional[str] = None,
        columns: Optional[Sequence[ColumnNode]] = None,
        source: Optional[str] = None,
        schema_name: Optional[str] = None,
        position: Optional[Position] = None,
    ) -> FlowNode:
        """
        Append a table node at a random position.

        Without a name the label is "Table N" (N = number of table nodes
        after insert); without columns the default id/name columns are used.
        The node id comes from the id generator and never collides.
        """
        if name is None:
            table_count = sum(1 for node in self._nodes.values() if node.type == FlowNodeType.TABLE)
            name = f"Table {table_count + 1}"
        data = FlowNodeData(
            label=name,
            columns=[column.model_copy() for column in (columns if columns is not None else self.default_columns)],
            source=source,
            schema_name=schema_name,
            table_name=name,
        )
        return self.add_node(FlowNodeType.TABLE, data, position)

    def add_transformation(
        self,
        label: str,
        operation: Optional[str] = None,
        config: Optional[dict] = None,
        position: Optional[Position] = None,
    ) -> FlowNode:
        data = FlowNodeData(label=label, operation=operation, config=dict(config or {}))
        return self.add_node(FlowNodeType.TRANSFORMATION, data, position)

    def add_output(self, label: str, position: Optional[Position] = None) -> FlowNode:
        return self.add_node(FlowNodeType.OUTPUT, FlowNodeData(label=label), position)

    def move_node(self, node_id: str, position: Position) -> FlowNode:
        node = self.get_node(node_id).model_copy(update={"position": position})
        self._nodes[node_id] = node
        return node

    def remove_node(self, node_id: str) -> bool:
        """Remove a node and every edge touching it."""
        if self._nodes.pop(node_id, None) is None:
            return False
        incident = [edge_id for edge_id, edge in self._edges.items() if node_id in (edge.source, edge.target)]
        for edge_id in incident:
            del self._edges[edge_id]
        logger.debug("Node removed", graph_id=self.id, node_id=node_id, edges_removed=len(incident))
        return True

    # -------------------------------------------------------------------------
    # Edges
    # -------------------------------------------------------------------------

    def _edge_id(self, source_id: str, target_id: str) -> str:
        base = f"e-{source_id}-{target_id}"
        if base not in self._edges:
            return base
        suffix = 2
        while f"{base}-{suffix}" in self._edges:
            suffix += 1
        return f"{base}-{suffix}"

    def on_connect(
        self,
        source_id: str,
        target_id: str,
        label: Optional[str] = None,
        edge_type: FlowEdgeType = FlowEdgeType.RELATIONSHIP,
        source_column: Optional[str] = None,
        target_column: Optional[str] = None,
    ) -> Optional[FlowEdge]:
        """
        Connect two nodes.

        Nothing happens (None is returned) unless both ids are current nodes.
        The edge id is "e-{source}-{target}"; a repeated pair gets a numeric
        suffix. Self loops and duplicate pairs are allowed.
        """
        if source_id not in self._nodes or target_id not in self._nodes:
            logger.info(
                "Ignoring connection to unknown node",
                graph_id=self.id,
                source=source_id,
                target=target_id,
                trace_id=current_trace_id(),
            )
            return None

        edge = FlowEdge(
            id=self._edge_id(source_id, target_id),
            source=source_id,
            target=target_id,
            type=edge_type,
            data=FlowEdgeData(label=label, source_column=source_column, target_column=target_column),
        )
        self._edges[edge.id] = edge
        logger.debug("Edge added", graph_id=self.id, edge_id=edge.id)
        return edge

    def add_relationship(
        self,
        source_id: str,
        source_column: str,
        target_id: str,
        target_column: str,
    ) -> FlowEdge:
        """
        Add a "relates to" edge between two table columns.

        Raises:
            NotFoundError: Unknown node
            PipelineGraphError: Node is not a table or the column is missing
        """
        for node_id, column in ((source_id, source_column), (target_id, target_column)):
            node = self.get_node(node_id)
            if node.type != FlowNodeType.TABLE:
                raise PipelineGraphError(
                    f"Relationships connect table nodes, {node_id} is a {node.type.value} node",
                    details={"node_id": node_id},
                )
            if column not in [c.name for c in node.data.columns]:
                raise PipelineGraphError(
                    f"Column '{column}' does not exist on {node.data.label}",
                    details={"node_id": node_id, "column": column},
                )

        edge = self.on_connect(
            source_id,
            target_id,
            label=RELATIONSHIP_LABEL,
            edge_type=FlowEdgeType.RELATIONSHIP,
            source_column=source_column,
            target_column=target_column,
        )
        if edge is None:
            raise PipelineGraphError("Relationship could not be created", details={"source": source_id, "target": target_id})
        return edge

    def remove_edge(self, edge_id: str) -> bool:
        return self._edges.pop(edge_id, None) is not None

    # -------------------------------------------------------------------------
    # Selection
    # -------------------------------------------------------------------------

    def select(self, ids: Sequence[str], additive: bool = False) -> Tuple[int, int]:
        """
        Flag nodes and edges as selected. Unknown ids are ignored.

        Returns:
            (selected node count, selected edge count) after the update
        """
        wanted = set(ids)
        for node_id, node in self._nodes.items():
            flag = node_id in wanted or (additive and node.selected)
            if node.selected != flag:
                self._nodes[node_id] = node.model_copy(update={"selected": flag})
        for edge_id, edge in self._edges.items():
            flag = edge_id in wanted or (additive and edge.selected)
            if edge.selected != flag:
                self._edges[edge_id] = edge.model_copy(update={"selected": flag})
        return self.selection_counts()

    def clear_selection(self) -> None:
        self.select([])

    def selection_counts(self) -> Tuple[int, int]:
        return (
            sum(1 for node in self._nodes.values() if node.selected),
            sum(1 for edge in self._edges.values() if edge.selected),
        )

    def delete_selected(self) -> Tuple[List[str], List[str]]:
        """
        Remove selected nodes, selected edges and edges touching removed nodes.

        Returns:
            (removed node ids, removed edge ids); both empty when nothing was selected
        """
        node_ids = [node_id for node_id, node in self._nodes.items() if node.selected]
        edge_ids = [
            edge_id
            for edge_id, edge in self._edges.items()
            if edge.selected or edge.source in node_ids or edge.target in node_ids
        ]
        for edge_id in edge_ids:
            del self._edges[edge_id]
        for node_id in node_ids:
            del self._nodes[node_id]
        return node_ids, edge_ids

    # -------------------------------------------------------------------------
    # Layout
    # -------------------------------------------------------------------------

    def auto_layout(self) -> None:
        """Arrange nodes in one column per node type, top to bottom in insertion order."""
        rows: Dict[FlowNodeType, int] = {}
        for node_id, node in self._nodes.items():
            index = rows.get(node.type, 0)
            rows[node.type] = index + 1
            position = Position(x=LAYOUT_COLUMNS[node.type], y=LAYOUT_TOP + index * LAYOUT_ROW_SPACING)
            self._nodes[node_id] = node.model_copy(update={"position": position})

    # -------------------------------------------------------------------------
    # Snapshots
    # -------------------------------------------------------------------------

    def snapshot(self) -> GraphSnapshot:
        return GraphSnapshot(nodes=self.nodes, edges=self.edges, selected_tables=list(self.selected_tables))

    def load_snapshot(self, snapshot: GraphSnapshot) -> None:
        """
        Replace the graph contents with a snapshot.

        Raises:
            PipelineGraphError: Duplicate ids or an edge referencing a missing node
        """
        node_ids = [node.id for node in snapshot.nodes]
        edge_ids = [edge.id for edge in snapshot.edges]
        if len(set(node_ids)) != len(node_ids):
            raise PipelineGraphError("Imported graph contains duplicate node ids")
        if len(set(edge_ids)) != len(edge_ids):
            raise PipelineGraphError("Imported graph contains duplicate edge ids")

        known = set(node_ids)
        for edge in snapshot.edges:
            if edge.source not in known or edge.target not in known:
                raise PipelineGraphError(
                    f"Edge {edge.id} references a missing node",
                    details={"edge_id": edge.id, "source": edge.source, "target": edge.target},
                )

        self._nodes = {node.id: node for node in snapshot.nodes}
        self._edges = {edge.id: edge for edge in snapshot.edges}
        self.selected_tables = list(snapshot.selected_tables)

        for node in snapshot.nodes:
            self.id_generator.reserve(NODE_ID_PREFIXES[node.type], node.id)
