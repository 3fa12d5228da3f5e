"""
Unit tests for PipelineGraph.
"""

import random

import pytest

from pipeline_studio.config_constants import IdStrategy
from pipeline_studio.domain.base_enums import FlowEdgeType, FlowNodeType
from pipeline_studio.domain.errors import NotFoundError, PipelineGraphError
from pipeline_studio.domain.pipeline import FlowEdge, FlowNode, FlowNodeData, GraphSnapshot, Position
from pipeline_studio.domain.schema_nodes import ColumnNode
from pipeline_studio.repositories.pipeline_graph import PipelineGraph, parse_column_spec
from pipeline_studio.utils.id_generation import IdGenerator


@pytest.fixture
def graph():
    return PipelineGraph("graph-1", "Test", IdGenerator(IdStrategy.COUNTER), rng=random.Random(7))


def test_parse_column_spec():
    columns = parse_column_spec("id:INTEGER, name , ,total:DECIMAL")
    assert [(c.name, c.type) for c in columns] == [("id", "INTEGER"), ("name", "VARCHAR"), ("total", "DECIMAL")]


class TestNodes:

    def test_add_table_twice_gives_distinct_ids(self, graph):
        first = graph.add_table()
        second = graph.add_table()

        assert first.id != second.id
        assert [node.data.label for node in graph.nodes] == ["Table 1", "Table 2"]

    def test_default_columns_and_position(self, graph):
        node = graph.add_table()

        assert [c.name for c in node.data.columns] == ["id", "name"]
        assert 100 <= node.position.x <= 400
        assert 100 <= node.position.y <= 400

    def test_columns_are_copied(self, graph):
        columns = [ColumnNode(name="id")]
        node = graph.add_table("t", columns=columns)
        assert node.data.columns[0] is not columns[0]

    def test_ids_never_reused_after_delete(self, graph):
        first = graph.add_table()
        graph.add_table()
        graph.remove_node(first.id)

        third = graph.add_table()
        assert third.id == "table-3"
        assert len({node.id for node in graph.nodes}) == len(graph.nodes)

    def test_node_prefixes(self, graph):
        assert graph.add_table().id.startswith("table-")
        assert graph.add_transformation("Clean").id.startswith("transform-")
        assert graph.add_output("Warehouse").id.startswith("output-")

    def test_remove_node_removes_incident_edges(self, graph):
        a, b, c = graph.add_table(), graph.add_table(), graph.add_table()
        graph.on_connect(a.id, b.id)
        kept = graph.on_connect(b.id, c.id)

        assert graph.remove_node(a.id)
        assert graph.edges == [kept]
        assert graph.remove_node(a.id) is False

    def test_move_unknown_node(self, graph):
        with pytest.raises(NotFoundError):
            graph.move_node("table-99", Position(x=1, y=1))


class TestEdges:

    def test_on_connect(self, graph):
        a, b = graph.add_table(), graph.add_table()

        edge = graph.on_connect(a.id, b.id, label="feeds")

        assert edge.id == f"e-{a.id}-{b.id}"
        assert edge.data.label == "feeds"
        assert graph.edges == [edge]

    @pytest.mark.parametrize("missing", ["source", "target", "both"])
    def test_on_connect_with_missing_node_is_noop(self, graph, missing):
        a, b = graph.add_table(), graph.add_table()
        graph.on_connect(a.id, b.id)
        before = graph.edges

        source = "table-404" if missing in ("source", "both") else a.id
        target = "table-405" if missing in ("target", "both") else b.id
        assert graph.on_connect(source, target) is None
        assert graph.edges == before

    def test_duplicate_pairs_and_self_loops_allowed(self, graph):
        a, b = graph.add_table(), graph.add_table()

        first = graph.on_connect(a.id, b.id)
        second = graph.on_connect(a.id, b.id)
        loop = graph.on_connect(a.id, a.id)

        assert second.id == f"{first.id}-2"
        assert loop is not None
        assert len(graph.edges) == 3

    def test_add_relationship(self, graph):
        customers = graph.add_table("customers", columns=parse_column_spec("id:INTEGER"))
        orders = graph.add_table("orders", columns=parse_column_spec("id:INTEGER,customer_id:INTEGER"))

        edge = graph.add_relationship(orders.id, "customer_id", customers.id, "id")

        assert edge.type == FlowEdgeType.RELATIONSHIP
        assert edge.data.label == "relates to"
        assert (edge.data.source_column, edge.data.target_column) == ("customer_id", "id")

    def test_relationship_requires_columns(self, graph):
        a, b = graph.add_table(), graph.add_table()
        with pytest.raises(PipelineGraphError):
            graph.add_relationship(a.id, "missing", b.id, "id")

    def test_relationship_requires_table_nodes(self, graph):
        table = graph.add_table()
        step = graph.add_transformation("Clean")
        with pytest.raises(PipelineGraphError):
            graph.add_relationship(table.id, "id", step.id, "id")


class TestSelection:

    def test_select_and_delete(self, graph):
        a, b, c = graph.add_table(), graph.add_table(), graph.add_table()
        ab = graph.on_connect(a.id, b.id)
        bc = graph.on_connect(b.id, c.id)

        assert graph.select([a.id, bc.id]) == (1, 1)
        nodes, edges = graph.delete_selected()

        assert nodes == [a.id]
        assert set(edges) == {ab.id, bc.id}
        assert [node.id for node in graph.nodes] == [b.id, c.id]
        assert graph.edges == []

    def test_additive_selection(self, graph):
        a, b = graph.add_table(), graph.add_table()
        graph.select([a.id])
        assert graph.select([b.id], additive=True) == (2, 0)
        assert graph.select([b.id]) == (1, 0)

    def test_delete_nothing_selected(self, graph):
        graph.add_table()
        before = graph.snapshot()

        assert graph.delete_selected() == ([], [])
        assert graph.snapshot() == before


class TestLayoutAndSnapshots:

    def test_auto_layout_columns(self, graph):
        t1, t2 = graph.add_table(), graph.add_table()
        step = graph.add_transformation("Clean")
        out = graph.add_output("Warehouse")
        graph.auto_layout()

        positions = {node.id: (node.position.x, node.position.y) for node in graph.nodes}
        assert positions[t1.id] == (150.0, 100.0)
        assert positions[t2.id] == (150.0, 250.0)
        assert positions[step.id] == (450.0, 100.0)
        assert positions[out.id] == (750.0, 100.0)

    def test_load_snapshot_reserves_ids(self, graph):
        snapshot = GraphSnapshot(
            nodes=[
                FlowNode(id="table-5", type=FlowNodeType.TABLE, data=FlowNodeData(label="a")),
                FlowNode(id="table-9", type=FlowNodeType.TABLE, data=FlowNodeData(label="b")),
            ],
            edges=[FlowEdge(id="e-table-5-table-9", source="table-5", target="table-9")],
            selected_tables=["public.a"],
        )
        graph.load_snapshot(snapshot)

        assert graph.add_table().id == "table-10"
        assert graph.selected_tables == ["public.a"]

    def test_load_snapshot_rejects_dangling_edge(self, graph):
        snapshot = GraphSnapshot(
            nodes=[FlowNode(id="table-1", type=FlowNodeType.TABLE, data=FlowNodeData(label="a"))],
            edges=[FlowEdge(id="e1", source="table-1", target="table-2")],
        )
        with pytest.raises(PipelineGraphError):
            graph.load_snapshot(snapshot)
        assert graph.nodes == []

    def test_load_snapshot_rejects_duplicate_nodes(self, graph):
        node = FlowNode(id="table-1", type=FlowNodeType.TABLE, data=FlowNodeData(label="a"))
        with pytest.raises(PipelineGraphError):
            graph.load_snapshot(GraphSnapshot(nodes=[node, node], edges=[]))
