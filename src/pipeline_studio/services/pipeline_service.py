"""
Pipeline Service.

Owns the named pipeline graphs of a project and the operations that need
more than one graph call: notices on delete, JSON export/import, seeding
from cached schemas and source-to-target table mappings.
"""

import random
from typing import Dict, List, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError

from ..config import PipelineConfig
from ..domain.base_enums import ExportFormat, FlowEdgeType, NoticeVariant
from ..domain.errors import BadRequestError, NotFoundError, PipelineGraphError
from ..domain.notices import Notice
from ..domain.pipeline import FlowEdge, FlowNode, GraphSnapshot, Position, TableMapping
from ..domain.schema_nodes import ColumnNode, SchemaNode
from ..repositories.pipeline_graph import MAPPING_LABEL, RELATIONSHIP_LABEL, PipelineGraph, parse_column_spec
from ..utils.documents import dump_document, load_document
from ..utils.id_generation import IdGenerator
from ..utils.logging import get_module_logger
from ..utils.tracing import current_trace_id
from .notification_service import NotificationCenter


logger = get_module_logger()

DEFAULT_GRAPH_NAME = "Main pipeline"


class PipelineService:
    """
    Service for pipeline graph operations.

    Usage:
        pipelines = PipelineService(id_generator, notifications, settings.pipeline)
        graph = pipelines.create_graph("Orders ETL")
        node = pipelines.add_table(graph.id, "customers")
        exported = pipelines.export_schema(graph.id)
    """

    def __init__(
        self,
        id_generator: IdGenerator,
        notifications: NotificationCenter,
        config: Optional[PipelineConfig] = None,
        rng: Optional[random.Random] = None,
    ):
        self.id_generator = id_generator
        self.notifications = notifications
        self.config = config or PipelineConfig()
        self.rng = rng or random.Random()
        self.default_columns = parse_column_spec(self.config.default_table_columns)
        self._graphs: Dict[str, PipelineGraph] = {}

        logger.info("PipelineService initialized")

    # -------------------------------------------------------------------------
    # Graph management
    # -------------------------------------------------------------------------

    def _new_graph(self, name: str) -> PipelineGraph:
        return PipelineGraph(
            graph_id=self.id_generator.new_id("graph"),
            name=name,
            id_generator=self.id_generator,
            rng=self.rng,
            position_range=(self.config.position_min, self.config.position_max),
            default_columns=self.default_columns,
        )

    def create_graph(self, name: str = DEFAULT_GRAPH_NAME) -> PipelineGraph:
        graph = self._new_graph(name)
        self._graphs[graph.id] = graph
        logger.info("Pipeline graph created", graph_id=graph.id, name=name, trace_id=current_trace_id())
        return graph

    def get_graph(self, graph_id: str) -> PipelineGraph:
        graph = self._graphs.get(graph_id)
        if graph is None:
            raise NotFoundError(f"Pipeline graph not found: {graph_id}", details={"graph_id": graph_id})
        return graph

    def list_graphs(self) -> List[PipelineGraph]:
        return list(self._graphs.values())

    def delete_graph(self, graph_id: str) -> bool:
        return self._graphs.pop(graph_id, None) is not None

    # -------------------------------------------------------------------------
    # Editing
    # -------------------------------------------------------------------------

    def add_table(
        self,
        graph_id: str,
        name: Optional[str] = None,
        columns: Optional[Sequence[ColumnNode]] = None,
        source: Optional[str] = None,
    ) -> FlowNode:
        return self.get_graph(graph_id).add_table(name=name, columns=columns, source=source)

    def add_transformation(
        self,
        graph_id: str,
        label: str,
        operation: Optional[str] = None,
        config: Optional[dict] = None,
    ) -> FlowNode:
        return self.get_graph(graph_id).add_transformation(label, operation=operation, config=config)

    def on_connect(self, graph_id: str, source_id: str, target_id: str, label: Optional[str] = None) -> Optional[FlowEdge]:
        return self.get_graph(graph_id).on_connect(source_id, target_id, label=label)

    def add_relationship(
        self,
        graph_id: str,
        source_id: str,
        source_column: str,
        target_id: str,
        target_column: str,
    ) -> FlowEdge:
        edge = self.get_graph(graph_id).add_relationship(source_id, source_column, target_id, target_column)
        self.notifications.success("Relationship added", f"{source_column} {RELATIONSHIP_LABEL} {target_column}")
        return edge

    def select(self, graph_id: str, ids: Sequence[str], additive: bool = False) -> None:
        self.get_graph(graph_id).select(ids, additive=additive)

    def clear_selection(self, graph_id: str) -> None:
        self.get_graph(graph_id).clear_selection()

    def delete_selected(self, graph_id: str) -> Notice:
        """
        Delete the selected nodes and edges of a graph.

        With nothing selected the graph is unchanged and a "No Selection"
        notice is returned.
        """
        graph = self.get_graph(graph_id)
        node_ids, edge_ids = graph.delete_selected()

        if not node_ids and not edge_ids:
            return self.notifications.notify(
                "No Selection",
                "Please select nodes or edges to delete",
                NoticeVariant.INFO,
            )

        logger.info(
            "Deleted selection",
            graph_id=graph_id,
            nodes=len(node_ids),
            edges=len(edge_ids),
            trace_id=current_trace_id(),
        )
        return self.notifications.notify(
            "Deleted",
            f"Removed {len(node_ids)} node(s) and {len(edge_ids)} edge(s)",
            NoticeVariant.DEFAULT,
        )

    def remove_node(self, graph_id: str, node_id: str) -> bool:
        return self.get_graph(graph_id).remove_node(node_id)

    def remove_edge(self, graph_id: str, edge_id: str) -> bool:
        return self.get_graph(graph_id).remove_edge(edge_id)

    def auto_layout(self, graph_id: str) -> None:
        self.get_graph(graph_id).auto_layout()

    def set_selected_tables(self, graph_id: str, qualified_names: Sequence[str]) -> None:
        self.get_graph(graph_id).selected_tables = list(qualified_names)

    # -------------------------------------------------------------------------
    # Export / import
    # -------------------------------------------------------------------------

    def export_schema(self, graph_id: str, fmt: ExportFormat = ExportFormat.JSON) -> str:
        """
        Serialize {nodes, edges, selectedTables}.

        The output is a pure function of the graph state: no timestamps,
        sorted keys, 2-space indentation.
        """
        snapshot = self.get_graph(graph_id).snapshot()
        return dump_document(snapshot.model_dump(mode="json", by_alias=True), fmt)

    def import_schema(
        self,
        text: str,
        name: str = DEFAULT_GRAPH_NAME,
        fmt: ExportFormat = ExportFormat.JSON,
        graph_id: Optional[str] = None,
    ) -> PipelineGraph:
        """
        Parse an export into a graph (a new one unless ``graph_id`` is given).

        Raises:
            BadRequestError: Text is not a document
            PipelineGraphError: Document does not describe a valid graph
        """
        document = load_document(text, fmt)
        if "nodes" not in document or "edges" not in document:
            raise PipelineGraphError("Graph document must contain 'nodes' and 'edges'")
        try:
            snapshot = GraphSnapshot.model_validate(document)
        except PydanticValidationError as e:
            raise PipelineGraphError(
                "Graph document is invalid",
                details={"errors": e.errors(include_url=False, include_context=False)},
            ) from e

        if graph_id:
            graph = self.get_graph(graph_id)
            graph.load_snapshot(snapshot)
        else:
            # Registered only once the snapshot loaded
            graph = self._new_graph(name)
            graph.load_snapshot(snapshot)
            self._graphs[graph.id] = graph

        logger.info(
            "Pipeline graph imported",
            graph_id=graph.id,
            nodes=len(snapshot.nodes),
            edges=len(snapshot.edges),
            trace_id=current_trace_id(),
        )
        return graph

    # -------------------------------------------------------------------------
    # Seeding
    # -------------------------------------------------------------------------

    def seed_from_schemas(
        self,
        graph_id: str,
        schemas: Sequence[SchemaNode],
        source: Optional[str] = None,
    ) -> List[FlowNode]:
        """
        Add one table node per cached table plus "relates to" edges for
        foreign keys whose referenced table is in the graph, then lay out.
        """
        graph = self.get_graph(graph_id)
        created: List[FlowNode] = []
        by_name: Dict[str, FlowNode] = {}

        for schema in schemas:
            for table in schema.tables:
                node = graph.add_table(
                    name=table.name,
                    columns=table.columns,
                    source=source,
                    schema_name=schema.name,
                )
                created.append(node)
                by_name.setdefault(table.name, node)

        for schema in schemas:
            for table in schema.tables:
                for foreign_key in table.foreign_keys:
                    referenced = by_name.get(foreign_key.referenced_table)
                    if referenced is None:
                        continue
                    graph.on_connect(
                        by_name[table.name].id,
                        referenced.id,
                        label=RELATIONSHIP_LABEL,
                        edge_type=FlowEdgeType.RELATIONSHIP,
                        source_column=foreign_key.columns[0],
                        target_column=foreign_key.referenced_columns[0],
                    )

        graph.auto_layout()
        logger.info(
            "Pipeline graph seeded",
            graph_id=graph_id,
            tables=len(created),
            edges=len(graph.edges),
            trace_id=current_trace_id(),
        )
        return created

    def add_table_mapping(
        self,
        graph_id: str,
        source_db: str,
        source_table: str,
        target_db: str,
        target_table: str,
    ) -> TableMapping:
        """
        Map a source table to a target table: both table nodes (reused when
        already present for that database) and a "transforms to" edge.
        """
        if not all(value and value.strip() for value in (source_db, source_table, target_db, target_table)):
            raise BadRequestError("Source and target database and table are required")

        graph = self.get_graph(graph_id)
        source_node = graph.find_table_node(source_table, source_db) or graph.add_table(
            name=source_table, source=source_db, position=Position(x=150.0, y=self._next_row(graph, 150.0))
        )
        target_node = graph.find_table_node(target_table, target_db) or graph.add_table(
            name=target_table, source=target_db, position=Position(x=750.0, y=self._next_row(graph, 750.0))
        )
        edge = graph.on_connect(
            source_node.id,
            target_node.id,
            label=MAPPING_LABEL,
            edge_type=FlowEdgeType.MAPPING,
        )
        if edge is None:
            raise PipelineGraphError("Mapping edge could not be created")

        mapping = TableMapping(
            id=self.id_generator.new_id("mapping"),
            name=f"{source_db}.{source_table} to {target_db}.{target_table}",
            source_db=source_db,
            source_table=source_table,
            target_db=target_db,
            target_table=target_table,
            source_node_id=source_node.id,
            target_node_id=target_node.id,
            edge_id=edge.id,
        )
        self.notifications.success("Mapping added", mapping.name)
        return mapping

    @staticmethod
    def _next_row(graph: PipelineGraph, x: float) -> float:
        occupied = [node.position.y for node in graph.nodes if node.position.x == x]
        return max(occupied) + 150.0 if occupied else 100.0
