"""Subgraph-aware hierarchical engine (v2) — nested groups that never overlap.

Phases:
  1. Hierarchy resolution (parents, depths, node membership)
  2. Ranking (longest path over the cycle-broken link graph)
  3. Subgraph layout, deepest first: nodes rank by rank, then already-sized
     child subgraphs as opaque boxes moved into place with their subtree
  4. Root composition: root subgraphs packed along the primary axis, then
     the ungrouped nodes
  5. Bezier link paths between facing node boundaries
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Mapping
from dataclasses import dataclass, field

from netlayout.graph import Direction, NetworkGraph, Subgraph, parent_chain
from netlayout.layout.base import BaseLayoutEngine, create_modules, node_extent
from netlayout.layout.options import LayoutOptions
from netlayout.layout.sugiyama import longest_path_ranks
from netlayout.layout.types import Bounds, EdgeRecord, LayoutGroup, LayoutResult, NodeRecord, Position

logger = logging.getLogger(__name__)

BASE_NODE_HEIGHT = 40.0
LABEL_LINE_HEIGHT = 16.0
EMPTY_SUBGRAPH_SIZE = (150.0, 80.0)
EMPTY_CANVAS_SIZE = (400.0, 300.0)
CANVAS_PADDING = 50.0
CONTROL_RATIO = 0.4


@dataclass
class SubgraphInfo:
    """Mutable per-call state of one subgraph."""

    id: str
    subgraph: Subgraph
    direction: Direction
    parent: str | None = None
    nodes: list[str] = field(default_factory=list)
    children: list[str] = field(default_factory=list)
    depth: int = 0
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @property
    def bounds(self) -> Bounds:
        return Bounds(self.x, self.y, self.width, self.height)


# ─── Hierarchy Resolution ─────────────────────────────────────────────────────


def resolve_parents(subgraphs: list[Subgraph]) -> dict[str, str | None]:
    """Parent of every subgraph.

    Taken from ``parent`` when it names another subgraph, else from the first
    subgraph listing it in ``children``, else from the longest "/"-separated
    prefix of its id that names a subgraph.
    """
    known = {sg.id for sg in subgraphs}
    listed_by: dict[str, str] = {}
    for sg in subgraphs:
        for child in sg.children:
            if child in known and child != sg.id:
                listed_by.setdefault(child, sg.id)

    parents: dict[str, str | None] = {}
    for sg in subgraphs:
        if sg.parent is not None and sg.parent in known and sg.parent != sg.id:
            parents[sg.id] = sg.parent
        elif sg.id in listed_by:
            parents[sg.id] = listed_by[sg.id]
        else:
            parents[sg.id] = None
            parts = sg.id.split("/")
            for cut in range(len(parts) - 1, 0, -1):
                prefix = "/".join(parts[:cut])
                if prefix in known:
                    parents[sg.id] = prefix
                    break
    return parents


def build_subgraph_infos(graph: NetworkGraph, direction: Direction) -> dict[str, SubgraphInfo]:
    """Resolve the subgraph tree, depths and node membership.

    A node belongs to the subgraph named by its ``parent``; failing that, to
    the first subgraph listing it. Raises HierarchyCycleError when parents
    loop.
    """
    parents = resolve_parents(graph.subgraphs)
    infos: dict[str, SubgraphInfo] = {
        sg.id: SubgraphInfo(id=sg.id, subgraph=sg, direction=sg.direction or direction, parent=parents[sg.id])
        for sg in graph.subgraphs
    }

    for info in infos.values():
        info.depth = len(parent_chain(info.id, parents, "subgraph"))
        if info.parent is not None:
            infos[info.parent].children.append(info.id)

    listed: dict[str, str] = {}
    for sg in graph.subgraphs:
        for node_id in sg.nodes:
            listed.setdefault(node_id, sg.id)
    for device in graph.devices:
        owner = device.parent if device.parent in infos else listed.get(device.id)
        if owner is not None:
            infos[owner].nodes.append(device.id)
    return infos


def membership(infos: Mapping[str, SubgraphInfo]) -> dict[str, str]:
    return {node_id: info.id for info in infos.values() for node_id in info.nodes}


# ─── Placement ────────────────────────────────────────────────────────────────


def node_height(lines: int, base: float) -> float:
    """Grow the default height by one line height per extra label line."""
    return max(base, BASE_NODE_HEIGHT + (lines - 1) * LABEL_LINE_HEIGHT)


def place_ranked_nodes(
    node_ids: list[str],
    nodes: dict[str, NodeRecord],
    vertical: bool,
    main_start: float,
    cross_start: float,
    options: LayoutOptions,
) -> float:
    """Lay nodes out rank by rank along the primary axis.

    Returns the primary-axis cursor after the last rank (spacing included).
    """
    by_rank: dict[int, list[NodeRecord]] = {}
    for node_id in node_ids:
        node = nodes[node_id]
        by_rank.setdefault(node.rank or 0, []).append(node)

    main = main_start
    for rank in sorted(by_rank):
        cross = cross_start
        extent = 0.0
        for node in by_rank[rank]:
            if vertical:
                node.x = cross + node.width / 2
                node.y = main + node.height / 2
                cross += node.width + options.node_spacing
                extent = max(extent, node.height)
            else:
                node.x = main + node.width / 2
                node.y = cross + node.height / 2
                cross += node.height + options.node_spacing
                extent = max(extent, node.width)
        main += extent + options.rank_spacing
    return main


def offset_subgraph(
    info: SubgraphInfo,
    infos: Mapping[str, SubgraphInfo],
    nodes: dict[str, NodeRecord],
    dx: float,
    dy: float,
) -> None:
    """Translate a subgraph, its nodes and every nested subgraph."""
    info.x += dx
    info.y += dy
    for node_id in info.nodes:
        nodes[node_id].x += dx
        nodes[node_id].y += dy
    for child_id in info.children:
        offset_subgraph(infos[child_id], infos, nodes, dx, dy)


def layout_subgraph(
    info: SubgraphInfo,
    infos: Mapping[str, SubgraphInfo],
    nodes: dict[str, NodeRecord],
    options: LayoutOptions,
) -> None:
    """Lay out one subgraph whose children are already laid out."""
    padding = options.subgraph_padding
    label_height = options.subgraph_label_height
    vertical = info.direction.is_vertical

    if not info.nodes and not info.children:
        info.x = info.y = 0.0
        info.width, info.height = EMPTY_SUBGRAPH_SIZE
        return

    main = place_ranked_nodes(info.nodes, nodes, vertical, padding + label_height, padding, options)

    for child_id in info.children:
        child = infos[child_id]
        if vertical:
            dx, dy = padding - child.x, main - child.y
            main += child.height + options.subgraph_spacing
        else:
            dx, dy = main - child.x, padding + label_height - child.y
            main += child.width + options.subgraph_spacing
        offset_subgraph(child, infos, nodes, dx, dy)

    extent = node_extent(nodes[i] for i in info.nodes)
    min_x, min_y, max_x, max_y = extent if extent is not None else (math.inf, math.inf, -math.inf, -math.inf)
    for child_id in info.children:
        child = infos[child_id]
        min_x = min(min_x, child.x)
        min_y = min(min_y, child.y)
        max_x = max(max_x, child.x + child.width)
        max_y = max(max_y, child.y + child.height)

    info.x = min_x - padding
    info.y = min_y - padding - label_height
    info.width = max_x - min_x + padding * 2
    info.height = max_y - min_y + padding * 2 + label_height


def layout_root_level(
    infos: Mapping[str, SubgraphInfo],
    nodes: dict[str, NodeRecord],
    root_nodes: list[str],
    vertical: bool,
    options: LayoutOptions,
) -> None:
    """Pack root subgraphs along the primary axis, then the ungrouped nodes."""
    cursor = 0.0
    for info in infos.values():
        if info.parent is not None:
            continue
        if vertical:
            offset_subgraph(info, infos, nodes, 0.0, cursor - info.y)
            cursor += info.height + options.subgraph_spacing
        else:
            offset_subgraph(info, infos, nodes, cursor - info.x, 0.0)
            cursor += info.width + options.subgraph_spacing

    if root_nodes:
        place_ranked_nodes(root_nodes, nodes, vertical, cursor, 0.0, options)


def mirror_primary_axis(
    infos: Mapping[str, SubgraphInfo],
    nodes: dict[str, NodeRecord],
    vertical: bool,
) -> None:
    """Flip the finished layout so ranks flow bottom-to-top or right-to-left."""
    for node in nodes.values():
        if vertical:
            node.y = -node.y
        else:
            node.x = -node.x
    for info in infos.values():
        if vertical:
            info.y = -(info.y + info.height)
        else:
            info.x = -(info.x + info.width)


# ─── Link Paths ───────────────────────────────────────────────────────────────


def _sign(value: float) -> float:
    return math.copysign(1.0, value) if value else 0.0


def bezier_path(source: NodeRecord, target: NodeRecord, vertical: bool) -> list[Position]:
    """[anchor, ctrl1, ctrl2, anchor] between the facing node boundaries.

    Control points sit 40% of the anchor distance along the primary axis
    from each anchor and keep the anchor's cross-axis coordinate.
    """
    if vertical:
        if source.y < target.y:
            start = Position(source.x, source.y + source.height / 2)
            end = Position(target.x, target.y - target.height / 2)
        else:
            start = Position(source.x, source.y - source.height / 2)
            end = Position(target.x, target.y + target.height / 2)
        dy = end.y - start.y
        reach = abs(dy) * CONTROL_RATIO
        ctrl1 = Position(start.x, start.y + _sign(dy) * reach)
        ctrl2 = Position(end.x, end.y - _sign(dy) * reach)
    else:
        if source.x < target.x:
            start = Position(source.x + source.width / 2, source.y)
            end = Position(target.x - target.width / 2, target.y)
        else:
            start = Position(source.x - source.width / 2, source.y)
            end = Position(target.x + target.width / 2, target.y)
        dx = end.x - start.x
        reach = abs(dx) * CONTROL_RATIO
        ctrl1 = Position(start.x + _sign(dx) * reach, start.y)
        ctrl2 = Position(end.x - _sign(dx) * reach, end.y)
    return [start, ctrl1, ctrl2, end]


def total_bounds(nodes: Mapping[str, NodeRecord], infos: Mapping[str, SubgraphInfo]) -> Bounds:
    extent = node_extent(nodes.values())
    min_x, min_y, max_x, max_y = extent if extent is not None else (math.inf, math.inf, -math.inf, -math.inf)
    for info in infos.values():
        min_x = min(min_x, info.x)
        min_y = min(min_y, info.y)
        max_x = max(max_x, info.x + info.width)
        max_y = max(max_y, info.y + info.height)

    if min_x == math.inf:
        return Bounds(0.0, 0.0, *EMPTY_CANVAS_SIZE)
    return Bounds(
        x=min_x - CANVAS_PADDING,
        y=min_y - CANVAS_PADDING,
        width=max_x - min_x + CANVAS_PADDING * 2,
        height=max_y - min_y + CANVAS_PADDING * 2,
    )


# ─── Engine ───────────────────────────────────────────────────────────────────


class SubgraphLayoutEngine(BaseLayoutEngine):
    """Mermaid-style layered layout with nested, non-overlapping subgraphs.

    Options passed to the constructor replace the engine defaults for every
    call; options passed to ``layout()`` override both.
    """

    name = "hierarchical-v2"
    version = "2.0.0"

    def __init__(self, options: LayoutOptions | None = None):
        self._base_options = options

    def supports(self, feature: str) -> bool:
        return feature in ("subgraphs", "direction") or super().supports(feature)

    def default_options(self) -> LayoutOptions:
        defaults = LayoutOptions(
            direction=Direction.TB,
            node_width=180.0,
            node_height=60.0,
            node_spacing=30.0,
            rank_spacing=60.0,
            subgraph_padding=25.0,
            subgraph_label_height=28.0,
            subgraph_spacing=40.0,
            module_padding=40.0,
        )
        if self._base_options is None:
            return defaults
        return self._base_options.merged_over(defaults)

    def layout(self, graph: NetworkGraph, options: LayoutOptions | None = None) -> LayoutResult:
        started = time.perf_counter()
        opts = self.resolve_options(options)
        direction = graph.direction or opts.direction or Direction.TB
        vertical = direction.is_vertical
        logger.debug(
            "hierarchical-v2 layout: %d devices, %d subgraphs, direction %s",
            len(graph.devices),
            len(graph.subgraphs),
            direction.value,
        )

        ranks = longest_path_ranks(graph.link_digraph())
        nodes: dict[str, NodeRecord] = {}
        for device in graph.devices:
            if device.size is not None:
                width, height = device.size
            else:
                width, height = opts.node_width, node_height(device.label_lines, opts.node_height)
            nodes[device.id] = NodeRecord(
                id=device.id, x=0.0, y=0.0, width=width, height=height, device=device, rank=ranks.get(device.id, 0)
            )

        infos = build_subgraph_infos(graph, direction)
        for info in sorted(infos.values(), key=lambda i: i.depth, reverse=True):
            layout_subgraph(info, infos, nodes, opts)

        owners = membership(infos)
        layout_root_level(infos, nodes, [d.id for d in graph.devices if d.id not in owners], vertical, opts)
        if direction in (Direction.BT, Direction.RL):
            mirror_primary_axis(infos, nodes, vertical)

        edges: dict[str, EdgeRecord] = {}
        for index, link in enumerate(graph.links):
            edge_id = link.id or f"link-{index}"
            edge = EdgeRecord(id=edge_id, source=link.source_id, target=link.target_id, link=link, kind="bezier")
            source = nodes.get(edge.source)
            target = nodes.get(edge.target)
            if source is None or target is None:
                logger.debug("Skipping edge %s: unresolved endpoint", edge_id)
            else:
                edge.points = bezier_path(source, target, vertical)
            edges[edge_id] = edge

        subgraphs = {
            info.id: LayoutGroup(
                id=info.id,
                bounds=info.bounds,
                children=tuple(info.nodes) + tuple(info.children),
                parent=info.parent,
                label=info.subgraph.label,
            )
            for info in infos.values()
        }
        depth = max((info.depth for info in infos.values()), default=-1) + 1

        return self._finish(
            started,
            nodes,
            edges,
            total_bounds(nodes, infos),
            modules=create_modules(graph.modules, nodes, opts.module_padding),
            subgraphs=subgraphs,
            iterations=depth,
        )
