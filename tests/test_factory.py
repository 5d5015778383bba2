"""Tests for layout/factory.py — registry lookup, registration, error reporting."""

from __future__ import annotations

import random
import time

import pytest

from netlayout.errors import LayoutError, UnknownEngineError
from netlayout.graph import Device, Link, Location, Module, NetworkGraph, Subgraph
from netlayout.layout import (
    BentoLayoutEngine,
    HierarchicalLayoutEngine,
    LayoutEngineRegistry,
    LocationBasedLayoutEngine,
    SubgraphLayoutEngine,
    create_engine,
    default_registry,
)
from netlayout.layout.base import BaseLayoutEngine, calculate_bounds, create_edges, create_nodes
from netlayout.layout.options import LayoutOptions

# ─── Helpers ──────────────────────────────────────────────────────────────────


class DiagonalEngine(BaseLayoutEngine):
    """Minimal custom engine: every device on the diagonal."""

    name = "diagonal"

    def layout(self, graph, options=None):
        started = time.perf_counter()
        nodes = create_nodes(graph.devices, self.resolve_options(options))
        for index, node in enumerate(nodes.values()):
            node.x = node.y = index * 100.0
        return self._finish(started, nodes, create_edges(graph.links), calculate_bounds(nodes))


def sample_graph() -> NetworkGraph:
    return NetworkGraph(
        devices=[Device(id="a", role="core"), Device(id="b", role="access")],
        links=[Link(id="l", source="a", target="b")],
    )


def random_graph(seed: int, *, roles: bool = True, acyclic: bool = False) -> NetworkGraph:
    """Random devices and links, with disjoint module, location and subgraph groups."""
    rng = random.Random(seed)
    ids = [f"n{i}" for i in range(rng.randint(1, 12))]
    role_choices = [None, "core", "distribution", "access", "edge"] if roles else [None]
    devices = [
        Device(id=i, role=rng.choice(role_choices), type=rng.choice(["router", "switch", "server"])) for i in ids
    ]
    links = []
    for index in range(rng.randint(0, 2 * len(ids))):
        source, target = rng.sample(ids, 2) if len(ids) > 1 else (ids[0], ids[0])
        if acyclic and ids.index(source) > ids.index(target):
            source, target = target, source
        links.append(Link(id=f"l{index}", source=source, target=target))

    shuffled = ids[:]
    rng.shuffle(shuffled)
    third = max(1, len(shuffled) // 3)
    return NetworkGraph(
        devices=devices,
        links=links,
        modules=[Module(id="m", devices=shuffled[:third])],
        locations=[Location(id="site", device_ids=shuffled[third : 2 * third]), Location(id="annex")],
        subgraphs=[Subgraph(id="sg", nodes=shuffled[2 * third :])],
    )


# ─── Tests ────────────────────────────────────────────────────────────────────


class TestDefaultRegistry:
    def test_lists_builtin_engines(self):
        assert default_registry.list() == ["hierarchical", "bento", "location-based", "hierarchical-v2"]

    @pytest.mark.parametrize(
        "name,engine_cls",
        [
            ("hierarchical", HierarchicalLayoutEngine),
            ("bento", BentoLayoutEngine),
            ("location-based", LocationBasedLayoutEngine),
            ("hierarchical-v2", SubgraphLayoutEngine),
        ],
    )
    def test_create_builtin(self, name, engine_cls):
        engine = create_engine(name)
        assert isinstance(engine, engine_cls)
        assert engine.name == name

    @pytest.mark.parametrize("name", ["hierarchical", "bento", "location-based", "hierarchical-v2"])
    def test_every_engine_places_every_node(self, name):
        result = create_engine(name).layout(sample_graph())
        assert set(result.nodes) == {"a", "b"}
        for node in result.nodes.values():
            assert result.bounds.contains(node.box)
        assert result.metadata.algorithm == name

    def test_unknown_name_raises(self):
        with pytest.raises(UnknownEngineError) as exc_info:
            create_engine("force-directed")
        assert exc_info.value.name == "force-directed"
        assert "hierarchical" in str(exc_info.value)

    def test_unknown_name_is_value_error(self):
        with pytest.raises(ValueError):
            create_engine("nope")
        with pytest.raises(LayoutError):
            create_engine("nope")


class TestLayoutEngineRegistry:
    def test_register_class_creates_fresh_instances(self):
        registry = LayoutEngineRegistry()
        registry.register("diagonal", DiagonalEngine)
        first, second = registry.create("diagonal"), registry.create("diagonal")
        assert isinstance(first, DiagonalEngine)
        assert first is not second

    def test_register_instance_is_shared(self):
        registry = LayoutEngineRegistry()
        engine = SubgraphLayoutEngine(LayoutOptions(node_width=120.0))
        registry.register("compact", engine)
        assert registry.create("compact") is engine

    def test_register_factory_callable(self):
        registry = LayoutEngineRegistry()
        registry.register("wide", lambda: SubgraphLayoutEngine(LayoutOptions(node_spacing=90.0)))
        assert registry.create("wide").default_options().node_spacing == 90.0

    def test_custom_engine_runs(self):
        registry = LayoutEngineRegistry()
        registry.register("diagonal", DiagonalEngine)
        result = registry.create("diagonal").layout(sample_graph())
        assert result.nodes["b"].position.x == 100.0

    def test_contains_and_list(self):
        registry = LayoutEngineRegistry()
        assert registry.list() == []
        registry.register("diagonal", DiagonalEngine)
        assert "diagonal" in registry
        assert "other" not in registry

    def test_reregister_replaces(self):
        registry = LayoutEngineRegistry()
        registry.register("x", HierarchicalLayoutEngine)
        registry.register("x", BentoLayoutEngine)
        assert isinstance(registry.create("x"), BentoLayoutEngine)
        assert registry.list() == ["x"]

    def test_default_registry_untouched_by_local_registries(self):
        LayoutEngineRegistry().register("diagonal", DiagonalEngine)
        assert "diagonal" not in default_registry


class TestEngineCapabilities:
    def test_supports(self):
        assert create_engine("hierarchical").supports("modules")
        assert create_engine("location-based").supports("locations")
        assert create_engine("hierarchical-v2").supports("subgraphs")
        assert not create_engine("bento").supports("subgraphs")

    def test_default_options_per_engine(self):
        assert create_engine("hierarchical").default_options().node_spacing == 250.0
        assert create_engine("location-based").default_options().node_spacing == 60.0
        assert create_engine("hierarchical-v2").default_options().rank_spacing == 60.0


class TestLayoutProperties:
    @pytest.mark.parametrize("seed", range(25))
    @pytest.mark.parametrize("name", ["hierarchical", "bento", "location-based", "hierarchical-v2"])
    def test_every_node_inside_bounds(self, name, seed):
        graph = random_graph(seed)
        result = create_engine(name).layout(graph)
        assert set(result.nodes) == {d.id for d in graph.devices}
        for node in result.nodes.values():
            assert result.bounds.contains(node.box), f"{node.id} outside {result.bounds}"

    @pytest.mark.parametrize("seed", range(25))
    def test_hierarchical_ranks_follow_links(self, seed):
        graph = random_graph(seed, roles=False, acyclic=True)
        nodes = create_engine("hierarchical").layout(graph).nodes
        for link in graph.links:
            assert nodes[link.target_id].rank >= nodes[link.source_id].rank
