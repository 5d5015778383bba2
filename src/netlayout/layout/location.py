"""Location-based engine — devices grouped by physical location.

Design: content-first sizing.
  1. Size every location from its device count (and its child locations).
  2. Pack root locations left-to-right in rows; nest children inside parents.
  3. Place devices on a centred grid inside their location.
  4. Route links: curves inside a location, orthogonal gap routes across.
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Mapping
from dataclasses import dataclass

from netlayout.graph import Location, NetworkGraph, parent_chain
from netlayout.layout.base import (
    BaseLayoutEngine,
    create_edges,
    create_modules,
    create_nodes,
    node_extent,
    route_edges,
)
from netlayout.layout.options import EdgeRouting, LayoutOptions
from netlayout.layout.types import Bounds, EdgeRecord, LayoutGroup, LayoutResult, NodeRecord, Position

logger = logging.getLogger(__name__)

MAX_ROW_WIDTH = 1800.0
LABEL_ALLOWANCE = 30.0  # room for the location label above its box
CANVAS_PADDING = 50.0
MAX_CURVATURE = 50.0
CURVATURE_RATIO = 0.3


@dataclass
class _Box:
    """Mutable location box used while sizing and packing."""

    x: float
    y: float
    width: float
    height: float

    def freeze(self) -> Bounds:
        return Bounds(self.x, self.y, self.width, self.height)


@dataclass
class _LocationTree:
    locations: dict[str, Location]
    parent_of: dict[str, str | None]
    children_of: dict[str, list[str]]
    members: dict[str, list[str]]
    device_location: dict[str, str]

    @property
    def roots(self) -> list[str]:
        return [loc_id for loc_id, parent in self.parent_of.items() if parent is None]


# ─── Membership & Tree ────────────────────────────────────────────────────────


def build_location_tree(graph: NetworkGraph) -> _LocationTree:
    """Resolve parents, children and device membership.

    ``Location.device_ids`` claim devices first (first claim wins, unknown
    ids are ignored); devices still unclaimed join the location named by
    their ``location_id``. A parent id that names no location makes the
    location a root. Cyclic parents raise HierarchyCycleError.
    """
    locations = {loc.id: loc for loc in graph.locations}
    parent_of: dict[str, str | None] = {
        loc.id: loc.parent_id if loc.parent_id in locations and loc.parent_id != loc.id else None
        for loc in graph.locations
    }
    for loc_id in locations:
        parent_chain(loc_id, parent_of, "location")

    children_of: dict[str, list[str]] = {loc_id: [] for loc_id in locations}
    for loc_id, parent in parent_of.items():
        if parent is not None:
            children_of[parent].append(loc_id)

    known = {device.id for device in graph.devices}
    members: dict[str, list[str]] = {loc_id: [] for loc_id in locations}
    device_location: dict[str, str] = {}
    for loc in graph.locations:
        for device_id in loc.device_ids:
            if device_id in known and device_id not in device_location:
                device_location[device_id] = loc.id
                members[loc.id].append(device_id)
    for device in graph.devices:
        if device.id not in device_location and device.location_id in locations:
            device_location[device.id] = device.location_id  # type: ignore[assignment]
            members[device.location_id].append(device.id)  # type: ignore[index]

    return _LocationTree(locations, parent_of, children_of, members, device_location)


# ─── Sizing ───────────────────────────────────────────────────────────────────


def device_grid(count: int, columns: int) -> tuple[int, int]:
    """(columns, rows) of the device grid for ``count`` devices."""
    if count <= 0:
        return (0, 0)
    cols = min(columns, count)
    return (cols, math.ceil(count / cols))


def pack_row_layout(
    items: list[tuple[str, float, float, Location]],
    spacing: float,
    max_row_width: float = MAX_ROW_WIDTH,
) -> tuple[dict[str, tuple[float, float]], float, float]:
    """Pack (id, width, height, location) items left-to-right, wrapping rows.

    A row wraps once the running x is non-zero and the next item would pass
    ``max_row_width``. An explicit ``position.x``/``position.y`` replaces the
    packed coordinate on that axis only; items with an explicit x do not
    advance the cursor.

    Returns id → (x, y) relative to the packing origin, plus the (width,
    height) extent covering every item, explicitly positioned ones included.
    """
    placed: dict[str, tuple[float, float]] = {}
    current_x = current_y = row_max_height = 0.0
    extent_w = extent_h = 0.0

    for item_id, width, height, location in items:
        if current_x > 0 and current_x + width > max_row_width:
            current_x = 0.0
            current_y += row_max_height + spacing
            row_max_height = 0.0

        override = location.position
        explicit_x = override.x if override is not None else None
        explicit_y = override.y if override is not None else None
        x = current_x if explicit_x is None else explicit_x
        y = current_y if explicit_y is None else explicit_y
        placed[item_id] = (x, y)
        extent_w = max(extent_w, x + width)
        extent_h = max(extent_h, y + height)

        if explicit_x is None:
            current_x += width + spacing
            row_max_height = max(row_max_height, height)

    return placed, extent_w, extent_h


def calculate_location_sizes(tree: _LocationTree, options: LayoutOptions) -> dict[str, tuple[float, float]]:
    """Content-first size of every location, children before parents.

    size = max(required, explicit override, minimum). ``required`` is the
    device grid plus the packed block of child locations, plus padding on
    every side. A location with neither devices nor children gets the
    minimum size outright.
    """
    columns = options.device_columns or 3
    cell = (options.node_size or 60.0) + (options.node_spacing or 60.0)
    padding = options.location_padding if options.location_padding is not None else 40.0
    spacing = options.location_spacing if options.location_spacing is not None else 40.0
    min_w, min_h = options.min_location_size or (200.0, 150.0)

    sizes: dict[str, tuple[float, float]] = {}

    def size_of(loc_id: str) -> tuple[float, float]:
        if loc_id in sizes:
            return sizes[loc_id]
        location = tree.locations[loc_id]
        children = tree.children_of[loc_id]
        count = len(tree.members[loc_id])

        if count == 0 and not children:
            sizes[loc_id] = (min_w, min_h)
            return sizes[loc_id]

        cols, rows = device_grid(count, columns)
        content_w = cols * cell
        content_h = rows * cell
        if children:
            items = [(c, *size_of(c), tree.locations[c]) for c in children]
            _, block_w, block_h = pack_row_layout(items, spacing)
            content_w = max(content_w, block_w)
            content_h += (spacing if count else 0.0) + block_h

        override = location.position
        explicit_w = (override.width if override is not None else None) or 0.0
        explicit_h = (override.height if override is not None else None) or 0.0
        sizes[loc_id] = (
            max(content_w + padding * 2, explicit_w, min_w),
            max(content_h + padding * 2, explicit_h, min_h),
        )
        return sizes[loc_id]

    for loc_id in tree.locations:
        size_of(loc_id)
    return sizes


# ─── Placement ────────────────────────────────────────────────────────────────


def position_locations(
    tree: _LocationTree,
    sizes: Mapping[str, tuple[float, float]],
    options: LayoutOptions,
) -> dict[str, _Box]:
    """Pack root locations from the origin, then each child block inside its parent.

    Explicit coordinates are offsets from the packing origin: absolute for
    root locations, relative to the child block for nested ones.
    """
    columns = options.device_columns or 3
    cell = (options.node_size or 60.0) + (options.node_spacing or 60.0)
    padding = options.location_padding if options.location_padding is not None else 40.0
    spacing = options.location_spacing if options.location_spacing is not None else 40.0

    boxes: dict[str, _Box] = {}

    def place(group: list[str], origin_x: float, origin_y: float) -> None:
        items = [(loc_id, *sizes[loc_id], tree.locations[loc_id]) for loc_id in group]
        placed, _, _ = pack_row_layout(items, spacing)
        for loc_id in group:
            rel_x, rel_y = placed[loc_id]
            x, y = origin_x + rel_x, origin_y + rel_y
            width, height = sizes[loc_id]
            boxes[loc_id] = _Box(x, y, width, height)

            children = tree.children_of[loc_id]
            if children:
                _, rows = device_grid(len(tree.members[loc_id]), columns)
                block_top = y + padding + rows * cell + (spacing if rows else 0.0)
                place(children, x + padding, block_top)

    place(tree.roots, 0.0, 0.0)
    return boxes


def position_devices_in_location(
    device_ids: list[str],
    nodes: dict[str, NodeRecord],
    box: _Box,
    options: LayoutOptions,
) -> None:
    """Row-major grid, horizontally centred, starting one padding below the top."""
    cell = (options.node_size or 60.0) + (options.node_spacing or 60.0)
    padding = options.location_padding if options.location_padding is not None else 40.0
    cols, _ = device_grid(len(device_ids), options.device_columns or 3)
    if cols == 0:
        return

    start_x = box.x + (box.width - cols * cell) / 2 + cell / 2
    start_y = box.y + padding + cell / 2
    for index, device_id in enumerate(device_ids):
        node = nodes.get(device_id)
        if node is None or node.pinned:
            continue
        row, col = divmod(index, cols)
        node.x = start_x + col * cell
        node.y = start_y + row * cell


def position_unlocated_devices(
    device_ids: list[str],
    nodes: dict[str, NodeRecord],
    top: float,
    options: LayoutOptions,
) -> None:
    """Rows of devices that belong to no location, below everything else."""
    cell = (options.node_size or 60.0) + (options.node_spacing or 60.0)
    per_row = max(1, int(MAX_ROW_WIDTH // cell))
    for index, device_id in enumerate(device_ids):
        node = nodes[device_id]
        if node.pinned:
            continue
        row, col = divmod(index, per_row)
        node.x = col * cell + cell / 2
        node.y = top + row * cell + cell / 2


# ─── Edge Routing ─────────────────────────────────────────────────────────────


def curved_route(source: Position, target: Position) -> list[Position]:
    """Cubic bezier [start, ctrl1, ctrl2, end] bowed away from the connection.

    Mostly horizontal spans bow vertically, mostly vertical spans bow
    horizontally. Coincident endpoints collapse to a one-point track.
    """
    dx = target.x - source.x
    dy = target.y - source.y
    distance = math.hypot(dx, dy)
    if distance == 0:
        return [source]

    curvature = min(distance * CURVATURE_RATIO, MAX_CURVATURE)
    if abs(dx) > abs(dy):
        bow = -1.0 if dy >= 0 else 1.0
        ctrl1 = Position(source.x + dx * 0.3, source.y + bow * curvature)
        ctrl2 = Position(source.x + dx * 0.7, target.y + bow * curvature)
    else:
        bow = -1.0 if dx >= 0 else 1.0
        ctrl1 = Position(source.x + bow * curvature, source.y + dy * 0.3)
        ctrl2 = Position(target.x + bow * curvature, source.y + dy * 0.7)
    return [source, ctrl1, ctrl2, target]


def cross_location_route(
    source: Position,
    target: Position,
    source_box: Bounds,
    target_box: Bounds,
) -> list[Position]:
    """Orthogonal route through the gap between two location boxes.

    Target strictly right/left (and vertically overlapping): leave through the
    facing side, turn in the middle of the horizontal gap. Target below/above:
    same through the vertical gap. Diagonal or overlapping boxes fall back to
    the horizontal gap on the side the target lies towards.
    """
    right_of = target_box.x > source_box.right
    left_of = target_box.right < source_box.x
    below = target_box.y > source_box.bottom
    above = target_box.bottom < source_box.y

    def horizontal(toward_right: bool) -> list[Position]:
        if toward_right:
            gap_x = (source_box.right + target_box.x) / 2
            exit_x, entry_x = source_box.right, target_box.x
        else:
            gap_x = (target_box.right + source_box.x) / 2
            exit_x, entry_x = source_box.x, target_box.right
        return [
            Position(exit_x, source.y),
            Position(gap_x, source.y),
            Position(gap_x, target.y),
            Position(entry_x, target.y),
        ]

    def vertical(toward_bottom: bool) -> list[Position]:
        if toward_bottom:
            gap_y = (source_box.bottom + target_box.y) / 2
            exit_y, entry_y = source_box.bottom, target_box.y
        else:
            gap_y = (target_box.bottom + source_box.y) / 2
            exit_y, entry_y = source_box.y, target_box.bottom
        return [
            Position(source.x, exit_y),
            Position(source.x, gap_y),
            Position(target.x, gap_y),
            Position(target.x, entry_y),
        ]

    if right_of and not below and not above:
        middle = horizontal(True)
    elif left_of and not below and not above:
        middle = horizontal(False)
    elif below:
        middle = vertical(True)
    elif above:
        middle = vertical(False)
    else:
        middle = horizontal(target_box.x > source_box.x)

    return [source, *middle, target]


def route_edges_with_locations(
    edges: Mapping[str, EdgeRecord],
    nodes: Mapping[str, NodeRecord],
    boxes: Mapping[str, Bounds],
    device_location: Mapping[str, str],
) -> None:
    for edge in edges.values():
        source = nodes.get(edge.source)
        target = nodes.get(edge.target)
        if source is None or target is None:
            logger.debug("Skipping edge %s: unresolved endpoint", edge.id)
            continue

        source_loc = device_location.get(edge.source)
        target_loc = device_location.get(edge.target)
        if source_loc and target_loc and source_loc != target_loc and source_loc in boxes and target_loc in boxes:
            edge.points = cross_location_route(
                source.position, target.position, boxes[source_loc], boxes[target_loc]
            )
            edge.kind = "cross-location"
        else:
            edge.points = curved_route(source.position, target.position)
            edge.kind = "curved"


def calculate_bounds_with_locations(
    nodes: Mapping[str, NodeRecord],
    boxes: Mapping[str, Bounds],
) -> Bounds:
    """Extent over nodes and location boxes (label room included), padded."""
    extent = node_extent(nodes.values())
    min_x, min_y, max_x, max_y = extent if extent is not None else (math.inf, math.inf, -math.inf, -math.inf)
    for box in boxes.values():
        min_x = min(min_x, box.x)
        min_y = min(min_y, box.y - LABEL_ALLOWANCE)
        max_x = max(max_x, box.right)
        max_y = max(max_y, box.bottom)

    if min_x == math.inf:
        return Bounds(0.0, 0.0, 0.0, 0.0)
    return Bounds(
        x=min_x - CANVAS_PADDING,
        y=min_y - CANVAS_PADDING,
        width=max_x - min_x + CANVAS_PADDING * 2,
        height=max_y - min_y + CANVAS_PADDING * 2,
    )


# ─── Engine ───────────────────────────────────────────────────────────────────


class LocationBasedLayoutEngine(BaseLayoutEngine):
    """Groups devices by rooms, racks and other physical locations."""

    name = "location-based"
    version = "1.0.0"

    def supports(self, feature: str) -> bool:
        return feature == "locations" or super().supports(feature)

    def default_options(self) -> LayoutOptions:
        return LayoutOptions(
            node_spacing=60.0,
            node_size=60.0,
            edge_routing=EdgeRouting.STRAIGHT,
            respect_manual_positions=False,
            location_spacing=40.0,
            location_padding=40.0,
            device_columns=3,
            min_location_size=(200.0, 150.0),
            module_padding=40.0,
        )

    def layout(self, graph: NetworkGraph, options: LayoutOptions | None = None) -> LayoutResult:
        started = time.perf_counter()
        opts = self.resolve_options(options)
        logger.debug(
            "location layout: %d devices, %d locations", len(graph.devices), len(graph.locations)
        )

        nodes = create_nodes(graph.devices, opts)
        edges = create_edges(graph.links)

        tree = build_location_tree(graph)
        sizes = calculate_location_sizes(tree, opts)
        boxes = position_locations(tree, sizes, opts)
        for loc_id, box in boxes.items():
            position_devices_in_location(tree.members[loc_id], nodes, box, opts)

        unlocated = [d.id for d in graph.devices if d.id not in tree.device_location]
        if unlocated:
            top = max((box.y + box.height for box in boxes.values()), default=-opts.location_spacing)
            position_unlocated_devices(unlocated, nodes, top + opts.location_spacing, opts)

        frozen = {loc_id: box.freeze() for loc_id, box in boxes.items()}
        locations = {
            loc_id: LayoutGroup(
                id=loc_id,
                bounds=frozen[loc_id],
                children=tuple(tree.members[loc_id]),
                parent=tree.parent_of[loc_id],
                label=tree.locations[loc_id].name,
            )
            for loc_id in frozen
        }

        if frozen:
            route_edges_with_locations(edges, nodes, frozen, tree.device_location)
        else:
            route_edges(edges, nodes, opts.edge_routing)

        modules = create_modules(graph.modules, nodes, opts.module_padding)

        return self._finish(
            started,
            nodes,
            edges,
            calculate_bounds_with_locations(nodes, frozen),
            modules=modules,
            locations=locations,
        )
