"""Base engine — primitives shared by every layout algorithm.

Node construction, edge construction, module boxes, overall bounds and the
three generic edge-routing strategies live here. Concrete engines call these
functions from their own ``layout()`` and keep all state local to the call.
"""

from __future__ import annotations

import logging
import math
import time
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping

from netlayout.graph import Device, Link, Module, NetworkGraph, collect_descendants
from netlayout.layout.options import EdgeRouting, LayoutOptions
from netlayout.layout.types import (
    Bounds,
    EdgeRecord,
    LayoutGroup,
    LayoutMetadata,
    LayoutResult,
    NodeRecord,
    Position,
)

logger = logging.getLogger(__name__)

DEFAULT_NODE_SIZE: tuple[float, float] = (80.0, 60.0)
PLACEHOLDER_STEP = 100.0  # x step of the pre-layout placeholder row
MODULE_BOUNDS_PADDING = 40.0

MAX_CURVATURE = 50.0
CURVATURE_RATIO = 0.3
VERTICAL_SNAP = 50.0  # |dx| below this routes an orthogonal edge as vertical
ORTHOGONAL_CLEARANCE = 20.0

SUPPORTED_FEATURES = frozenset({"nodes", "edges", "modules", "constraints", "manual-positions"})


# ─── Nodes, Edges, Modules ────────────────────────────────────────────────────


def create_nodes(devices: Iterable[Device], options: LayoutOptions) -> dict[str, NodeRecord]:
    """Seed one NodeRecord per device.

    A manual position is used verbatim (and the node pinned) only when both
    axes are numeric and ``respect_manual_positions`` is set. Every other
    node gets a placeholder on a row at y=0 that the algorithm overwrites.
    """
    nodes: dict[str, NodeRecord] = {}
    for index, device in enumerate(devices):
        width, height = device.size or DEFAULT_NODE_SIZE
        manual = device.position is not None and device.position.is_manual()
        pinned = bool(manual and options.respect_manual_positions)
        if pinned:
            x, y = float(device.position.x), float(device.position.y)  # type: ignore[union-attr, arg-type]
        else:
            x, y = index * PLACEHOLDER_STEP, 0.0
        nodes[device.id] = NodeRecord(
            id=device.id, x=x, y=y, width=width, height=height, device=device, pinned=pinned
        )
    return nodes


def create_edges(links: Iterable[Link]) -> dict[str, EdgeRecord]:
    return {
        link.id: EdgeRecord(id=link.id, source=link.source_id, target=link.target_id, link=link)
        for link in links
    }


def node_extent(nodes: Iterable[NodeRecord]) -> tuple[float, float, float, float] | None:
    """(min_x, min_y, max_x, max_y) over node boxes, or None when empty."""
    min_x = min_y = math.inf
    max_x = max_y = -math.inf
    for node in nodes:
        min_x = min(min_x, node.x - node.width / 2)
        min_y = min(min_y, node.y - node.height / 2)
        max_x = max(max_x, node.x + node.width / 2)
        max_y = max(max_y, node.y + node.height / 2)
    if min_x == math.inf:
        return None
    return min_x, min_y, max_x, max_y


def calculate_group_bounds(
    member_ids: Iterable[str],
    nodes: Mapping[str, NodeRecord],
    padding: float = MODULE_BOUNDS_PADDING,
) -> Bounds | None:
    """Box around the given members plus ``padding``; None if no member resolves."""
    extent = node_extent(nodes[i] for i in member_ids if i in nodes)
    if extent is None:
        return None
    min_x, min_y, max_x, max_y = extent
    return Bounds(
        x=min_x - padding,
        y=min_y - padding,
        width=max_x - min_x + padding * 2,
        height=max_y - min_y + padding * 2,
    )


def create_modules(
    modules: list[Module],
    nodes: Mapping[str, NodeRecord],
    padding: float = MODULE_BOUNDS_PADDING,
) -> dict[str, LayoutGroup]:
    """Bounding boxes for modules; members of nested modules count too.

    Modules with no resolvable member are omitted.
    """
    by_id = {module.id: module for module in modules}
    children_of = {module.id: [m for m in module.modules if m in by_id] for module in modules}
    parent_of = {child: module.id for module in modules for child in children_of[module.id]}

    result: dict[str, LayoutGroup] = {}
    for module in modules:
        member_ids = list(module.devices)
        for nested in collect_descendants(module.id, children_of, "module"):
            member_ids.extend(by_id[nested].devices)
        bounds = calculate_group_bounds(member_ids, nodes, padding)
        if bounds is None:
            continue
        result[module.id] = LayoutGroup(
            id=module.id,
            bounds=bounds,
            children=tuple(module.devices),
            parent=parent_of.get(module.id),
            label=module.name,
        )
    return result


def calculate_bounds(nodes: Mapping[str, NodeRecord]) -> Bounds:
    """Extent over all node boxes; an empty node set yields a zero box at the origin."""
    extent = node_extent(nodes.values())
    if extent is None:
        return Bounds(0.0, 0.0, 0.0, 0.0)
    min_x, min_y, max_x, max_y = extent
    return Bounds(x=min_x, y=min_y, width=max_x - min_x, height=max_y - min_y)


# ─── Edge Routing ─────────────────────────────────────────────────────────────


def straight_path(source: NodeRecord, target: NodeRecord) -> list[Position]:
    return [source.position, target.position]


def curved_path(source: NodeRecord, target: NodeRecord) -> list[Position]:
    """Single control point at the midpoint, pushed off the source→target line.

    The offset is perpendicular to the connection and capped at
    MAX_CURVATURE. Coincident endpoints collapse to a one-point track.
    """
    dx = target.x - source.x
    dy = target.y - source.y
    distance = math.hypot(dx, dy)
    if distance == 0:
        return [source.position]

    curvature = min(MAX_CURVATURE, distance * CURVATURE_RATIO)
    mid_x = (source.x + target.x) / 2
    mid_y = (source.y + target.y) / 2
    perp_x = (-dy / distance) * curvature
    perp_y = (dx / distance) * curvature
    return [source.position, Position(mid_x + perp_x, mid_y + perp_y), target.position]


def orthogonal_path(source: NodeRecord, target: NodeRecord) -> list[Position]:
    """Vertical exit, horizontal run, vertical entry.

    Nearly vertical pairs (|dx| < VERTICAL_SNAP) get a 4-point path leaving
    and entering half a node height plus clearance away from each centre;
    the rest get a 5-point path turning at the source's exit height.
    """
    dx = target.x - source.x
    dy = target.y - source.y
    sign = 1.0 if dy > 0 else -1.0
    source_offset = source.height / 2 + ORTHOGONAL_CLEARANCE
    target_offset = target.height / 2 + ORTHOGONAL_CLEARANCE

    if abs(dx) < VERTICAL_SNAP:
        return [
            source.position,
            Position(source.x, source.y + sign * source_offset),
            Position(target.x, target.y - sign * target_offset),
            target.position,
        ]

    turn_y = source.y + sign * source_offset
    return [
        source.position,
        Position(source.x, turn_y),
        Position(target.x, turn_y),
        Position(target.x, target.y - sign * target_offset),
        target.position,
    ]


_ROUTERS = {
    EdgeRouting.STRAIGHT: straight_path,
    EdgeRouting.CURVED: curved_path,
    EdgeRouting.ORTHOGONAL: orthogonal_path,
}


def route_edges(
    edges: Mapping[str, EdgeRecord],
    nodes: Mapping[str, NodeRecord],
    routing: EdgeRouting | None = EdgeRouting.CURVED,
) -> None:
    """Fill ``points`` of every edge whose two endpoints resolve.

    Edges naming an unknown node are left without points. An unset routing
    falls back to orthogonal.
    """
    mode = routing or EdgeRouting.ORTHOGONAL
    router = _ROUTERS[mode]
    for edge in edges.values():
        source = nodes.get(edge.source)
        target = nodes.get(edge.target)
        if source is None or target is None:
            logger.debug("Skipping edge %s: unresolved endpoint", edge.id)
            continue
        edge.points = router(source, target)
        edge.kind = mode.value


# ─── Engine Base ──────────────────────────────────────────────────────────────


class BaseLayoutEngine(ABC):
    """Shared behaviour of the concrete engines.

    Subclasses must not store anything on ``self`` during ``layout()``; one
    instance may be shared by the registry across callers.
    """

    name: str = "base"
    version: str = "1.0.0"

    @abstractmethod
    def layout(self, graph: NetworkGraph, options: LayoutOptions | None = None) -> LayoutResult:
        """Compute a fresh layout for ``graph``."""
        ...

    def supports(self, feature: str) -> bool:
        return feature in SUPPORTED_FEATURES

    def default_options(self) -> LayoutOptions:
        return LayoutOptions(
            node_spacing=250.0,
            layer_spacing=400.0,
            module_padding=80.0,
            edge_routing=EdgeRouting.STRAIGHT,
            respect_manual_positions=True,
        )

    def resolve_options(self, options: LayoutOptions | None) -> LayoutOptions:
        defaults = self.default_options()
        return defaults if options is None else options.merged_over(defaults)

    def _finish(
        self,
        started: float,
        nodes: Mapping[str, NodeRecord],
        edges: Mapping[str, EdgeRecord],
        bounds: Bounds,
        *,
        modules: dict[str, LayoutGroup] | None = None,
        locations: dict[str, LayoutGroup] | None = None,
        subgraphs: dict[str, LayoutGroup] | None = None,
        iterations: int | None = None,
    ) -> LayoutResult:
        """Snapshot the scratch state into an immutable LayoutResult."""
        duration = (time.perf_counter() - started) * 1000.0
        logger.debug("%s layout finished in %.2f ms", self.name, duration)
        return LayoutResult(
            nodes={node_id: node.snapshot() for node_id, node in nodes.items()},
            edges={edge_id: edge.snapshot() for edge_id, edge in edges.items()},
            bounds=bounds,
            metadata=LayoutMetadata(algorithm=self.name, duration=duration, iterations=iterations),
            modules=modules or {},
            locations=locations or {},
            subgraphs=subgraphs or {},
        )
