"""Tests for graph.py — model records, networkx adapters, hierarchy helpers."""

from __future__ import annotations

import pytest

from netlayout.errors import HierarchyCycleError
from netlayout.graph import (
    AUTO,
    Device,
    DevicePosition,
    Direction,
    Link,
    LinkEndpoint,
    NetworkGraph,
    collect_descendants,
    parent_chain,
)

# ─── Helpers ──────────────────────────────────────────────────────────────────


def make_network(*links: tuple[str, str], devices: tuple[str, ...] = ()) -> NetworkGraph:
    """Devices named by ``devices`` (or the link endpoints) plus the links."""
    ids = list(devices)
    for src, tgt in links:
        for device_id in (src, tgt):
            if device_id not in ids:
                ids.append(device_id)
    return NetworkGraph(
        devices=[Device(id=i) for i in ids],
        links=[Link(id=f"{s}-{t}", source=s, target=t) for s, t in links],
    )


# ─── Record Tests ─────────────────────────────────────────────────────────────


class TestDevicePosition:
    def test_default_is_auto(self):
        pos = DevicePosition()
        assert pos.x == AUTO and pos.y == AUTO
        assert not pos.is_manual()

    def test_both_numeric_is_manual(self):
        assert DevicePosition(x=10, y=20.5).is_manual()

    def test_one_axis_auto_is_not_manual(self):
        assert not DevicePosition(x=10).is_manual()

    def test_bool_is_not_a_number(self):
        assert not DevicePosition(x=True, y=1).is_manual()


class TestDevice:
    def test_label_lines(self):
        assert Device(id="a").label_lines == 1
        assert Device(id="a", label="one").label_lines == 1
        assert Device(id="a", label=["one", "two", "three"]).label_lines == 3
        assert Device(id="a", label=[]).label_lines == 1


class TestLink:
    def test_string_endpoints_promoted(self):
        link = Link(id="l", source="a", target="b")
        assert link.source == LinkEndpoint("a")
        assert link.source_id == "a"
        assert link.target_id == "b"

    def test_port_endpoint_kept(self):
        link = Link(id="l", source=LinkEndpoint("a", "eth0"), target="b")
        assert link.source.port_id == "eth0"  # type: ignore[union-attr]
        assert link.source_id == "a"


class TestDirection:
    def test_is_vertical(self):
        assert Direction.TB.is_vertical and Direction.BT.is_vertical
        assert not Direction.LR.is_vertical and not Direction.RL.is_vertical


# ─── Adapter Tests ────────────────────────────────────────────────────────────


class TestLinkGraphs:
    def test_unresolved_links_ignored(self):
        graph = NetworkGraph(
            devices=[Device(id="a"), Device(id="b")],
            links=[Link(id="ok", source="a", target="b"), Link(id="bad", source="a", target="ghost")],
        )
        assert [link.id for link in graph.resolved_links()] == ["ok"]
        assert "ghost" not in graph.link_graph()
        assert list(graph.link_digraph().edges()) == [("a", "b")]

    def test_isolated_devices_present(self):
        graph = make_network(("a", "b"), devices=("c",))
        assert set(graph.link_graph().nodes) == {"a", "b", "c"}

    def test_node_order_follows_devices(self):
        graph = make_network(("c", "a"), devices=("a", "b", "c"))
        assert list(graph.link_digraph().nodes) == ["a", "b", "c"]

    def test_device_map(self):
        graph = make_network(("a", "b"))
        assert graph.device_map()["b"].id == "b"


# ─── Hierarchy Helper Tests ───────────────────────────────────────────────────


class TestParentChain:
    def test_nearest_first(self):
        parents = {"c": "b", "b": "a", "a": None}
        assert parent_chain("c", parents, "subgraph") == ["b", "a"]

    def test_root(self):
        assert parent_chain("a", {"a": None}, "subgraph") == []

    def test_cycle_raises(self):
        parents = {"a": "b", "b": "a"}
        with pytest.raises(HierarchyCycleError) as exc_info:
            parent_chain("a", parents, "subgraph")
        assert exc_info.value.kind == "subgraph"
        assert exc_info.value.cycle == ["a", "b", "a"]


class TestCollectDescendants:
    def test_depth_first(self):
        children = {"root": ["a", "b"], "a": ["a1"], "b": []}
        assert collect_descendants("root", children, "module") == ["a", "a1", "b"]

    def test_shared_child_listed_once(self):
        children = {"root": ["a", "b"], "a": ["shared"], "b": ["shared"]}
        assert collect_descendants("root", children, "module") == ["a", "shared", "b"]

    def test_cycle_raises(self):
        children = {"root": ["a"], "a": ["root"]}
        with pytest.raises(HierarchyCycleError, match="Cyclic module hierarchy"):
            collect_descendants("root", children, "module")
