"""Layout types shared across layout engines and their consumers.

Public result records are frozen: a ``LayoutResult`` is a snapshot built at
the end of one ``layout()`` call and owned by the caller. Engines work on the
mutable ``NodeRecord``/``EdgeRecord`` scratch structures while they run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

from netlayout.graph import Device, Link, NetworkGraph
from netlayout.layout.options import LayoutOptions

# Bounds store min + (max - min), so right/bottom can miss the true max by an ULP.
CONTAINS_TOLERANCE = 1e-6


@dataclass(frozen=True)
class Position:
    x: float
    y: float


@dataclass(frozen=True)
class Size:
    width: float
    height: float


@dataclass(frozen=True)
class Bounds:
    """Axis-aligned box: top-left corner plus extent."""

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def contains(self, other: Bounds, tolerance: float = CONTAINS_TOLERANCE) -> bool:
        """True when ``other`` lies inside this box, give or take ``tolerance`` px."""
        return (
            other.x >= self.x - tolerance
            and other.y >= self.y - tolerance
            and other.right <= self.right + tolerance
            and other.bottom <= self.bottom + tolerance
        )


@dataclass(frozen=True)
class LayoutNode:
    """A positioned node. ``position`` is the centre of the node box."""

    id: str
    position: Position
    size: Size
    rank: int | None = None

    @property
    def box(self) -> Bounds:
        return Bounds(
            x=self.position.x - self.size.width / 2,
            y=self.position.y - self.size.height / 2,
            width=self.size.width,
            height=self.size.height,
        )


@dataclass(frozen=True)
class LayoutEdge:
    """A routed edge.

    ``points`` is empty when an endpoint could not be resolved. ``kind`` tells
    the renderer how to read the points: "straight" and "orthogonal" are
    polylines, "curved" is one quadratic control point (three points) or two
    cubic control points (four points), "bezier" is a cubic curve, and
    "cross-location" an orthogonal polyline through location gaps.
    """

    id: str
    source: str
    target: str
    points: tuple[Position, ...] = ()
    kind: str = "straight"


@dataclass(frozen=True)
class LayoutGroup:
    """Bounding box of a module, location or subgraph."""

    id: str
    bounds: Bounds
    children: tuple[str, ...] = ()
    parent: str | None = None
    label: str = ""


@dataclass(frozen=True)
class LayoutMetadata:
    algorithm: str
    duration: float
    iterations: int | None = None


@dataclass(frozen=True)
class LayoutResult:
    """Self-contained layout output — everything renderers need."""

    nodes: dict[str, LayoutNode]
    edges: dict[str, LayoutEdge]
    bounds: Bounds
    metadata: LayoutMetadata
    modules: dict[str, LayoutGroup] = field(default_factory=dict)
    locations: dict[str, LayoutGroup] = field(default_factory=dict)
    subgraphs: dict[str, LayoutGroup] = field(default_factory=dict)

    def geometry(self) -> tuple[Any, ...]:
        """Everything except timing, for determinism comparisons."""
        return (
            self.nodes,
            self.edges,
            self.bounds,
            self.modules,
            self.locations,
            self.subgraphs,
            self.metadata.algorithm,
            self.metadata.iterations,
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready mapping using the camelCase keys renderers expect."""

        def point(p: Position) -> dict[str, float]:
            return {"x": p.x, "y": p.y}

        def box(b: Bounds) -> dict[str, float]:
            return {"x": b.x, "y": b.y, "width": b.width, "height": b.height}

        def group(g: LayoutGroup) -> dict[str, Any]:
            return {"id": g.id, "bounds": box(g.bounds), "children": list(g.children), "parent": g.parent}

        return {
            "nodes": {
                n.id: {
                    "id": n.id,
                    "position": point(n.position),
                    "size": {"width": n.size.width, "height": n.size.height},
                    "rank": n.rank,
                }
                for n in self.nodes.values()
            },
            "edges": {
                e.id: {
                    "id": e.id,
                    "source": e.source,
                    "target": e.target,
                    "points": [point(p) for p in e.points],
                    "kind": e.kind,
                }
                for e in self.edges.values()
            },
            "modules": {k: group(v) for k, v in self.modules.items()},
            "locations": {k: group(v) for k, v in self.locations.items()},
            "subgraphs": {k: group(v) for k, v in self.subgraphs.items()},
            "bounds": box(self.bounds),
            "metadata": {
                "algorithm": self.metadata.algorithm,
                "duration": self.metadata.duration,
                "iterations": self.metadata.iterations,
            },
        }


class LayoutEngine(Protocol):
    """Protocol that all layout engines must implement."""

    name: str
    version: str

    def layout(self, graph: NetworkGraph, options: LayoutOptions | None = None) -> LayoutResult:
        """Position every node, route every edge and box every group."""
        ...

    def supports(self, feature: str) -> bool: ...

    def default_options(self) -> LayoutOptions: ...


# ─── Per-call Scratch State ───────────────────────────────────────────────────


@dataclass
class NodeRecord:
    """Mutable node state used while one ``layout()`` call runs.

    ``pinned`` nodes carry a manual position that no algorithm may move.
    """

    id: str
    x: float
    y: float
    width: float
    height: float
    device: Device
    pinned: bool = False
    rank: int | None = None

    @property
    def position(self) -> Position:
        return Position(self.x, self.y)

    def snapshot(self) -> LayoutNode:
        return LayoutNode(
            id=self.id,
            position=Position(self.x, self.y),
            size=Size(self.width, self.height),
            rank=self.rank,
        )


@dataclass
class EdgeRecord:
    id: str
    source: str
    target: str
    link: Link
    points: list[Position] = field(default_factory=list)
    kind: str = "straight"

    def snapshot(self) -> LayoutEdge:
        return LayoutEdge(
            id=self.id,
            source=self.source,
            target=self.target,
            points=tuple(self.points),
            kind=self.kind,
        )
