"""Hierarchical engine — layered layout driven by device role or connectivity.

Phases:
  1. Rank assignment (role table first, BFS over links for the rest)
  2. Layer positioning (one row per rank, wide layers wrap into two rows)
  3. Crossing minimization (barycenter sweeps)
  4. Edge routing and module boxes (shared primitives)
"""

from __future__ import annotations

import logging
import math
import time
from collections import deque
from dataclasses import dataclass, field

import networkx as nx

from netlayout.graph import NetworkGraph
from netlayout.layout.base import (
    BaseLayoutEngine,
    calculate_bounds,
    create_edges,
    create_modules,
    create_nodes,
    route_edges,
)
from netlayout.layout.options import LayoutOptions
from netlayout.layout.sugiyama import barycenter, count_crossings, propagate_ranks, remove_cycles
from netlayout.layout.types import LayoutResult, NodeRecord

logger = logging.getLogger(__name__)

# External links sit on top, access switches at the bottom.
ROLE_RANKS: dict[str, int] = {"edge": 0, "core": 1, "distribution": 2, "access": 3}

LAYER_Y_OFFSET = 100.0
DENSE_LAYER_SIZE = 4  # more nodes than this → tighter spacing
DENSE_SPACING_FACTOR = 0.8
ROW_WRAP_THRESHOLD = 6  # more nodes than this → two rows
WRAPPED_ROW_SPACING = 150.0
UNREACHED_RANK_OFFSET = 2
BARYCENTER_SWEEPS = 3
BARYCENTER_SPACING = 200.0


@dataclass
class Layer:
    """One rank tier: its rank value, the y of its first row and its node order."""

    rank: int
    nodes: list[str] = field(default_factory=list)
    y: float = 0.0


# ─── Rank Assignment ──────────────────────────────────────────────────────────


def build_adjacency(graph: NetworkGraph) -> nx.Graph:
    """Undirected device adjacency; links naming unknown devices are ignored."""
    return graph.link_graph()


def assign_ranks(graph: NetworkGraph, adjacency: nx.Graph | None = None) -> dict[str, int]:
    """Assign a rank to every device.

    Devices whose role is in ROLE_RANKS take the table value. If any device
    is left over, the connectivity pass ranks the rest. The returned dict is
    ordered: role-ranked devices, then BFS discovery order, then unreached.
    """
    if adjacency is None:
        adjacency = build_adjacency(graph)

    ranks: dict[str, int] = {}
    for device in graph.devices:
        if device.role is not None and device.role in ROLE_RANKS:
            ranks[device.id] = ROLE_RANKS[device.role]

    if len(ranks) < len(graph.devices):
        assign_ranks_by_connectivity(graph, adjacency, ranks)
    return ranks


def assign_ranks_by_connectivity(graph: NetworkGraph, adjacency: nx.Graph, ranks: dict[str, int]) -> None:
    """Rank every device not yet in ``ranks`` by BFS from the best-connected nodes.

    Roots are the unassigned nodes of maximum degree; when some of them have
    no incoming link, only those are kept. BFS starts one rank below the
    deepest existing rank. Reached nodes are then pushed down along directed
    links (cycles broken) so a link never points to a lower rank, and shifted
    back so the shallowest reached node sits on the start level. Nodes BFS
    never reaches go two levels below the start.
    """
    digraph = graph.link_digraph()
    unassigned = [device.id for device in graph.devices if device.id not in ranks]
    if not unassigned:
        return

    max_degree = max(adjacency.degree(n) for n in unassigned)
    candidates = [n for n in unassigned if adjacency.degree(n) == max_degree]
    sources = [n for n in candidates if digraph.in_degree(n) == 0]
    roots = sources or candidates

    start_level = max(ranks.values(), default=-1) + 1

    queue: deque[tuple[str, int]] = deque((root, start_level) for root in roots)
    visited: set[str] = set(roots)
    reached: dict[str, int] = {}

    while queue:
        node_id, level = queue.popleft()
        if node_id not in ranks and node_id not in reached:
            reached[node_id] = level
        for neighbor in adjacency.neighbors(node_id):
            if neighbor not in visited:
                visited.add(neighbor)
                queue.append((neighbor, level + 1))

    dag, _ = remove_cycles(digraph.subgraph(reached).copy())
    relaxed = propagate_ranks(dag, reached)
    if relaxed:
        shift = min(relaxed.values()) - start_level
        for node_id in reached:
            ranks[node_id] = relaxed[node_id] - shift

    for node_id in unassigned:
        if node_id not in ranks:
            ranks[node_id] = start_level + UNREACHED_RANK_OFFSET


def group_layers(ranks: dict[str, int]) -> list[Layer]:
    by_rank: dict[int, list[str]] = {}
    for node_id, rank in ranks.items():
        by_rank.setdefault(rank, []).append(node_id)
    return [Layer(rank=rank, nodes=by_rank[rank]) for rank in sorted(by_rank)]


# ─── Positioning ──────────────────────────────────────────────────────────────


def _place_row(layer: Layer, nodes: dict[str, NodeRecord], spacing: float) -> None:
    """Spread a layer's nodes around x=0, wrapping wide layers into two rows."""
    count = len(layer.nodes)
    if count > ROW_WRAP_THRESHOLD:
        per_row = math.ceil(count / 2)
        row_width = (per_row - 1) * spacing
        for index, node_id in enumerate(layer.nodes):
            node = nodes.get(node_id)
            if node is None or node.pinned:
                continue
            row, col = divmod(index, per_row)
            node.x = col * spacing - row_width / 2
            node.y = layer.y + row * WRAPPED_ROW_SPACING
        return

    layer_width = (count - 1) * spacing
    for index, node_id in enumerate(layer.nodes):
        node = nodes.get(node_id)
        if node is None or node.pinned:
            continue
        node.x = index * spacing - layer_width / 2
        node.y = layer.y


def position_layers(layers: list[Layer], nodes: dict[str, NodeRecord], options: LayoutOptions) -> None:
    layer_spacing = options.layer_spacing or 400.0
    node_spacing = options.node_spacing or 250.0

    for layer_index, layer in enumerate(layers):
        layer.y = layer_index * layer_spacing + LAYER_Y_OFFSET
        spacing = node_spacing * DENSE_SPACING_FACTOR if len(layer.nodes) > DENSE_LAYER_SIZE else node_spacing
        _place_row(layer, nodes, spacing)
        for node_id in layer.nodes:
            if node_id in nodes:
                nodes[node_id].rank = layer.rank


# ─── Crossing Minimization ────────────────────────────────────────────────────


def order_layer_by_barycenter(
    layer: Layer,
    reference: Layer,
    adjacency: nx.Graph,
    nodes: dict[str, NodeRecord],
) -> None:
    """Reorder ``layer`` by neighbour barycenter in ``reference`` and re-space it."""
    ref_pos: dict[str, float] = {nid: float(i) for i, nid in enumerate(reference.nodes)}
    # sorted() is stable: nodes with equal (or infinite) weight keep their order.
    layer.nodes = sorted(layer.nodes, key=lambda nid: barycenter(nid, adjacency, ref_pos))
    _place_row(layer, nodes, BARYCENTER_SPACING)


def minimize_crossings(
    layers: list[Layer],
    adjacency: nx.Graph,
    nodes: dict[str, NodeRecord],
    sweeps: int = BARYCENTER_SWEEPS,
) -> None:
    """Barycenter heuristic: ``sweeps`` rounds of a forward and a backward pass."""
    for _sweep in range(sweeps):
        for i in range(1, len(layers)):
            order_layer_by_barycenter(layers[i], layers[i - 1], adjacency, nodes)
        for i in range(len(layers) - 2, -1, -1):
            order_layer_by_barycenter(layers[i], layers[i + 1], adjacency, nodes)


# ─── Engine ───────────────────────────────────────────────────────────────────


class HierarchicalLayoutEngine(BaseLayoutEngine):
    """Layered layout (core → distribution → access)."""

    name = "hierarchical"
    version = "1.0.0"

    def layout(self, graph: NetworkGraph, options: LayoutOptions | None = None) -> LayoutResult:
        started = time.perf_counter()
        opts = self.resolve_options(options)
        logger.debug("hierarchical layout: %d devices, %d links", len(graph.devices), len(graph.links))

        nodes = create_nodes(graph.devices, opts)
        edges = create_edges(graph.links)

        adjacency = build_adjacency(graph)
        layers = group_layers(assign_ranks(graph, adjacency))

        position_layers(layers, nodes, opts)
        if logger.isEnabledFor(logging.DEBUG):
            before = count_crossings((layer.nodes for layer in layers), adjacency)
            minimize_crossings(layers, adjacency, nodes)
            after = count_crossings((layer.nodes for layer in layers), adjacency)
            logger.debug("hierarchical layout: %d layers, crossings %d -> %d", len(layers), before, after)
        else:
            minimize_crossings(layers, adjacency, nodes)

        route_edges(edges, nodes, opts.edge_routing)
        modules = create_modules(graph.modules, nodes)

        return self._finish(
            started,
            nodes,
            edges,
            calculate_bounds(nodes),
            modules=modules,
            iterations=len(layers),
        )
