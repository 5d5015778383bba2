"""Tests for layout/base.py — node/edge construction, module boxes, bounds, routing."""

from __future__ import annotations

import pytest

from netlayout.errors import HierarchyCycleError
from netlayout.graph import Device, DevicePosition, Link, Module
from netlayout.layout.base import (
    DEFAULT_NODE_SIZE,
    MODULE_BOUNDS_PADDING,
    PLACEHOLDER_STEP,
    calculate_bounds,
    calculate_group_bounds,
    create_edges,
    create_modules,
    create_nodes,
    curved_path,
    orthogonal_path,
    route_edges,
    straight_path,
)
from netlayout.layout.options import EdgeRouting, LayoutOptions
from netlayout.layout.types import Bounds, NodeRecord, Position

# ─── Helpers ──────────────────────────────────────────────────────────────────


def make_node(node_id: str, x: float, y: float, width: float = 80.0, height: float = 60.0) -> NodeRecord:
    """A NodeRecord at (x, y) backed by a bare Device."""
    return NodeRecord(id=node_id, x=x, y=y, width=width, height=height, device=Device(id=node_id))


def make_nodes(*specs: tuple[str, float, float]) -> dict[str, NodeRecord]:
    return {node_id: make_node(node_id, x, y) for node_id, x, y in specs}


RESPECT = LayoutOptions(respect_manual_positions=True)
IGNORE = LayoutOptions(respect_manual_positions=False)


# ─── Node & Edge Construction ─────────────────────────────────────────────────


class TestCreateNodes:
    def test_placeholder_row(self):
        nodes = create_nodes([Device(id="a"), Device(id="b")], RESPECT)
        assert (nodes["a"].x, nodes["a"].y) == (0.0, 0.0)
        assert (nodes["b"].x, nodes["b"].y) == (PLACEHOLDER_STEP, 0.0)
        assert (nodes["a"].width, nodes["a"].height) == DEFAULT_NODE_SIZE

    def test_explicit_size(self):
        nodes = create_nodes([Device(id="a", size=(120.0, 40.0))], RESPECT)
        assert (nodes["a"].width, nodes["a"].height) == (120.0, 40.0)

    def test_manual_position_respected(self):
        device = Device(id="a", position=DevicePosition(x=500, y=700))
        node = create_nodes([device], RESPECT)["a"]
        assert (node.x, node.y) == (500.0, 700.0)
        assert node.pinned

    def test_manual_position_ignored_when_disabled(self):
        device = Device(id="a", position=DevicePosition(x=500, y=700))
        node = create_nodes([device], IGNORE)["a"]
        assert (node.x, node.y) == (0.0, 0.0)
        assert not node.pinned

    def test_partial_position_is_not_manual(self):
        device = Device(id="a", position=DevicePosition(x=500))
        assert not create_nodes([device], RESPECT)["a"].pinned


class TestCreateEdges:
    def test_keyed_by_link_id(self):
        edges = create_edges([Link(id="l1", source="a", target="b")])
        assert edges["l1"].source == "a"
        assert edges["l1"].target == "b"
        assert edges["l1"].points == []


# ─── Group & Overall Bounds ───────────────────────────────────────────────────


class TestGroupBounds:
    def test_padding_around_members(self):
        nodes = make_nodes(("a", 0, 0), ("b", 200, 100))
        bounds = calculate_group_bounds(["a", "b"], nodes)
        pad = MODULE_BOUNDS_PADDING
        assert bounds == Bounds(-40 - pad, -30 - pad, 280 + 2 * pad, 160 + 2 * pad)

    def test_no_resolvable_member(self):
        assert calculate_group_bounds(["ghost"], make_nodes(("a", 0, 0))) is None


class TestCreateModules:
    def test_module_box_and_label(self):
        nodes = make_nodes(("a", 0, 0), ("b", 100, 0))
        modules = create_modules([Module(id="m", name="Core", devices=["a", "b"])], nodes)
        assert modules["m"].label == "Core"
        assert modules["m"].children == ("a", "b")
        assert modules["m"].bounds.width == 180 + 2 * MODULE_BOUNDS_PADDING

    def test_empty_module_omitted(self):
        modules = create_modules([Module(id="m", devices=["ghost"])], make_nodes(("a", 0, 0)))
        assert modules == {}

    def test_nested_module_members_included(self):
        nodes = make_nodes(("a", 0, 0), ("b", 500, 0))
        modules = create_modules(
            [Module(id="outer", devices=["a"], modules=["inner"]), Module(id="inner", devices=["b"])],
            nodes,
        )
        assert modules["outer"].bounds.contains(modules["inner"].bounds)
        assert modules["inner"].parent == "outer"
        assert modules["outer"].parent is None

    def test_module_cycle_raises(self):
        with pytest.raises(HierarchyCycleError):
            create_modules(
                [Module(id="x", modules=["y"]), Module(id="y", modules=["x"])],
                make_nodes(("a", 0, 0)),
            )


class TestCalculateBounds:
    def test_extent_over_node_boxes(self):
        bounds = calculate_bounds(make_nodes(("a", 0, 0), ("b", 100, 200)))
        assert bounds == Bounds(-40, -30, 180, 260)

    def test_empty(self):
        assert calculate_bounds({}) == Bounds(0.0, 0.0, 0.0, 0.0)


# ─── Routing ──────────────────────────────────────────────────────────────────


class TestPaths:
    def test_straight(self):
        a, b = make_node("a", 0, 0), make_node("b", 100, 100)
        assert straight_path(a, b) == [Position(0, 0), Position(100, 100)]

    def test_curved_has_capped_control_point(self):
        a, b = make_node("a", 0, 0), make_node("b", 1000, 0)
        start, ctrl, end = curved_path(a, b)
        assert (start, end) == (Position(0, 0), Position(1000, 0))
        assert ctrl == Position(500, 50)

    def test_curved_short_span(self):
        a, b = make_node("a", 0, 0), make_node("b", 100, 0)
        assert curved_path(a, b)[1] == Position(50, 30)

    def test_curved_zero_length(self):
        a, b = make_node("a", 10, 10), make_node("b", 10, 10)
        assert curved_path(a, b) == [Position(10, 10)]

    def test_orthogonal_nearly_vertical(self):
        a, b = make_node("a", 0, 0), make_node("b", 20, 300)
        points = orthogonal_path(a, b)
        assert points == [Position(0, 0), Position(0, 50), Position(20, 250), Position(20, 300)]

    def test_orthogonal_with_horizontal_run(self):
        a, b = make_node("a", 0, 0), make_node("b", 300, 300)
        points = orthogonal_path(a, b)
        assert len(points) == 5
        assert points[1] == Position(0, 50)
        assert points[2] == Position(300, 50)
        assert points[3] == Position(300, 250)

    def test_orthogonal_upward(self):
        a, b = make_node("a", 0, 300), make_node("b", 0, 0)
        points = orthogonal_path(a, b)
        assert points[1] == Position(0, 250)
        assert points[2] == Position(0, 50)


class TestRouteEdges:
    def test_kind_follows_mode(self):
        nodes = make_nodes(("a", 0, 0), ("b", 100, 0))
        edges = create_edges([Link(id="l", source="a", target="b")])
        route_edges(edges, nodes, EdgeRouting.STRAIGHT)
        assert edges["l"].kind == "straight"
        assert len(edges["l"].points) == 2

    def test_none_falls_back_to_orthogonal(self):
        nodes = make_nodes(("a", 0, 0), ("b", 300, 300))
        edges = create_edges([Link(id="l", source="a", target="b")])
        route_edges(edges, nodes, None)
        assert edges["l"].kind == "orthogonal"

    def test_unresolved_edge_has_no_points(self):
        nodes = make_nodes(("a", 0, 0))
        edges = create_edges([Link(id="l", source="a", target="ghost")])
        route_edges(edges, nodes)
        assert edges["l"].points == []
