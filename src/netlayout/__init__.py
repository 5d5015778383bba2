"""netlayout — layout engines for network topology diagrams."""

import logging

from netlayout.errors import HierarchyCycleError, InvalidOptionError, LayoutError, UnknownEngineError
from netlayout.graph import (
    AUTO,
    Device,
    DevicePosition,
    Direction,
    Link,
    LinkEndpoint,
    Location,
    LocationPosition,
    Module,
    ModuleLayout,
    ModuleSpan,
    NetworkGraph,
    Subgraph,
)
from netlayout.layout import EdgeRouting, LayoutOptions, LayoutResult, create_engine

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    "AUTO",
    "Device",
    "DevicePosition",
    "Direction",
    "EdgeRouting",
    "HierarchyCycleError",
    "InvalidOptionError",
    "LayoutError",
    "LayoutOptions",
    "LayoutResult",
    "Link",
    "LinkEndpoint",
    "Location",
    "LocationPosition",
    "Module",
    "ModuleLayout",
    "ModuleSpan",
    "NetworkGraph",
    "Subgraph",
    "UnknownEngineError",
    "create_engine",
]
