"""Graph model — devices, links and the three group families.

The records here are the input side of every layout engine. They are built
by an upstream parser (YAML/JSON loading is not part of this package) and are
never mutated by the engines.

Coordinates follow the screen convention: x grows to the right, y grows
downward.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import networkx as nx

from netlayout.errors import HierarchyCycleError

AUTO = "auto"


class Direction(Enum):
    """Primary flow direction of a layered layout."""

    TB = "TB"
    BT = "BT"
    LR = "LR"
    RL = "RL"

    @property
    def is_vertical(self) -> bool:
        return self in (Direction.TB, Direction.BT)


# ─── Devices & Links ──────────────────────────────────────────────────────────


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass
class DevicePosition:
    """A manual position hint; each axis is a number or the sentinel "auto"."""

    x: float | str = AUTO
    y: float | str = AUTO
    locked: bool = False

    def is_manual(self) -> bool:
        """True when both axes carry a concrete number."""
        return _is_number(self.x) and _is_number(self.y)


@dataclass
class Device:
    """A network device (a node of the diagram).

    ``role`` and ``type`` are layout hints only; ``id`` is the identity.
    ``parent`` names the subgraph the device belongs to, ``location_id`` the
    physical location (used when no location lists the device explicitly).
    """

    id: str
    name: str = ""
    type: str = "unknown"
    role: str | None = None
    position: DevicePosition | None = None
    size: tuple[float, float] | None = None
    label: str | list[str] | None = None
    parent: str | None = None
    location_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def label_lines(self) -> int:
        if isinstance(self.label, list):
            return max(1, len(self.label))
        return 1


@dataclass
class LinkEndpoint:
    device_id: str
    port_id: str | None = None


@dataclass
class Link:
    """A connection between two devices.

    ``source``/``target`` accept a bare device id, which is promoted to a
    ``LinkEndpoint``. Bandwidth only affects stroke weight downstream.
    """

    id: str
    source: LinkEndpoint | str
    target: LinkEndpoint | str
    bandwidth: str | None = None
    label: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if isinstance(self.source, str):
            self.source = LinkEndpoint(self.source)
        if isinstance(self.target, str):
            self.target = LinkEndpoint(self.target)

    @property
    def source_id(self) -> str:
        return self.source.device_id  # type: ignore[union-attr]

    @property
    def target_id(self) -> str:
        return self.target.device_id  # type: ignore[union-attr]


# ─── Groups ───────────────────────────────────────────────────────────────────


@dataclass
class ModuleSpan:
    columns: int = 1
    rows: int = 1


@dataclass
class ModuleLayout:
    """Explicit grid hints for a module (used by the bento engine)."""

    column: int | None = None
    row: int | None = None
    span: ModuleSpan | None = None


@dataclass
class Module:
    id: str
    name: str = ""
    devices: list[str] = field(default_factory=list)
    modules: list[str] = field(default_factory=list)
    layout: ModuleLayout | None = None


@dataclass
class Subgraph:
    """A nested group for the subgraph-aware engine.

    The parent is taken from ``parent``, else from another subgraph listing
    this one in ``children``, else from the longest "/"-separated id prefix
    that names an existing subgraph.
    """

    id: str
    label: str = ""
    nodes: list[str] = field(default_factory=list)
    children: list[str] = field(default_factory=list)
    parent: str | None = None
    direction: Direction | None = None


@dataclass
class LocationPosition:
    """Explicit placement/size override for a location; every field optional."""

    x: float | None = None
    y: float | None = None
    width: float | None = None
    height: float | None = None


@dataclass
class Location:
    id: str
    name: str = ""
    type: str = "custom"
    parent_id: str | None = None
    device_ids: list[str] = field(default_factory=list)
    position: LocationPosition | None = None


# ─── Network Graph ────────────────────────────────────────────────────────────


@dataclass
class NetworkGraph:
    """The complete input to a layout call."""

    devices: list[Device] = field(default_factory=list)
    links: list[Link] = field(default_factory=list)
    modules: list[Module] = field(default_factory=list)
    subgraphs: list[Subgraph] = field(default_factory=list)
    locations: list[Location] = field(default_factory=list)
    direction: Direction | None = None

    def device_map(self) -> dict[str, Device]:
        return {device.id: device for device in self.devices}

    def resolved_links(self) -> Iterable[Link]:
        """Links whose two endpoints both name a known device."""
        known = {device.id for device in self.devices}
        return (link for link in self.links if link.source_id in known and link.target_id in known)

    def link_graph(self) -> nx.Graph:
        """Undirected adjacency over devices, in device then link order."""
        g: nx.Graph = nx.Graph()
        for device in self.devices:
            g.add_node(device.id)
        for link in self.resolved_links():
            g.add_edge(link.source_id, link.target_id)
        return g

    def link_digraph(self) -> nx.DiGraph:
        """Directed link graph over devices (source → target)."""
        g: nx.DiGraph = nx.DiGraph()
        for device in self.devices:
            g.add_node(device.id)
        for link in self.resolved_links():
            g.add_edge(link.source_id, link.target_id)
        return g


# ─── Hierarchy Helpers ────────────────────────────────────────────────────────


def parent_chain(start: str, parent_of: Mapping[str, str | None], kind: str) -> list[str]:
    """Return the ancestors of ``start``, nearest first.

    Raises HierarchyCycleError if the walk revisits an id.
    """
    seen: list[str] = [start]
    chain: list[str] = []
    current = parent_of.get(start)
    while current is not None:
        if current in seen:
            loop = seen[seen.index(current) :] + [current]
            raise HierarchyCycleError(kind, loop)
        seen.append(current)
        chain.append(current)
        current = parent_of.get(current)
    return chain


def collect_descendants(root: str, children_of: Mapping[str, list[str]], kind: str) -> list[str]:
    """Depth-first list of every id below ``root`` (root excluded).

    A child shared by two branches is listed once. A child that appears on
    its own ancestor path raises HierarchyCycleError.
    """
    result: list[str] = []
    done: set[str] = set()

    def visit(node_id: str, path: list[str]) -> None:
        for child in children_of.get(node_id, []):
            if child in path:
                raise HierarchyCycleError(kind, path[path.index(child) :] + [child])
            if child in done:
                continue
            result.append(child)
            visit(child, path + [child])
            done.add(child)

    visit(root, [root])
    return result
