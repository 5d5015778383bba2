"""Layout engines for network diagrams.

Every engine turns a ``NetworkGraph`` plus ``LayoutOptions`` into an
immutable ``LayoutResult``. Engines are looked up by name through the
registry in ``netlayout.layout.factory``.
"""

from netlayout.layout.base import BaseLayoutEngine
from netlayout.layout.bento import BentoLayoutEngine
from netlayout.layout.factory import LayoutEngineRegistry, create_engine, default_registry
from netlayout.layout.hierarchical import HierarchicalLayoutEngine
from netlayout.layout.location import LocationBasedLayoutEngine
from netlayout.layout.options import EdgeRouting, LayoutConstraint, LayoutOptions
from netlayout.layout.subgraph import SubgraphLayoutEngine
from netlayout.layout.types import (
    Bounds,
    LayoutEdge,
    LayoutEngine,
    LayoutGroup,
    LayoutMetadata,
    LayoutNode,
    LayoutResult,
    Position,
    Size,
)

__all__ = [
    "BaseLayoutEngine",
    "BentoLayoutEngine",
    "Bounds",
    "EdgeRouting",
    "HierarchicalLayoutEngine",
    "LayoutConstraint",
    "LayoutEdge",
    "LayoutEngine",
    "LayoutEngineRegistry",
    "LayoutGroup",
    "LayoutMetadata",
    "LayoutNode",
    "LayoutOptions",
    "LayoutResult",
    "LocationBasedLayoutEngine",
    "Position",
    "Size",
    "SubgraphLayoutEngine",
    "create_engine",
    "default_registry",
]
