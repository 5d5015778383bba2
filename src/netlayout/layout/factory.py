"""Layout engine registry.

Available engines:
- hierarchical: role/connectivity layers with barycenter ordering
- bento: module cells packed into a golden-ratio grid
- location-based: devices grouped by physical location
- hierarchical-v2: layered layout with nested subgraphs
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from netlayout.errors import UnknownEngineError
from netlayout.layout.bento import BentoLayoutEngine
from netlayout.layout.hierarchical import HierarchicalLayoutEngine
from netlayout.layout.location import LocationBasedLayoutEngine
from netlayout.layout.subgraph import SubgraphLayoutEngine
from netlayout.layout.types import LayoutEngine

logger = logging.getLogger(__name__)

EngineFactory = Callable[[], LayoutEngine]


class LayoutEngineRegistry:
    """Name-keyed map of engine factories.

    ``register`` accepts either a factory (an engine class or any zero-arg
    callable returning an engine) or a ready engine instance. Instances are
    shared between ``create`` calls, which is safe because engines keep no
    state across ``layout()`` calls.
    """

    def __init__(self) -> None:
        self._factories: dict[str, EngineFactory] = {}

    def register(self, name: str, engine: LayoutEngine | EngineFactory) -> None:
        if isinstance(engine, type) or not hasattr(engine, "layout"):
            factory = engine
        else:
            instance = engine

            def factory() -> LayoutEngine:
                return instance

        if name in self._factories:
            logger.info("Replacing layout engine %r", name)
        self._factories[name] = factory  # type: ignore[assignment]

    def create(self, name: str) -> LayoutEngine:
        """Build the engine registered as ``name``.

        Raises:
            UnknownEngineError: If no engine is registered under ``name``.
        """
        if name not in self._factories:
            raise UnknownEngineError(name, self.list())
        return self._factories[name]()

    def list(self) -> list[str]:
        return list(self._factories)

    def __contains__(self, name: object) -> bool:
        return name in self._factories


def build_default_registry() -> LayoutEngineRegistry:
    registry = LayoutEngineRegistry()
    registry.register("hierarchical", HierarchicalLayoutEngine)
    registry.register("bento", BentoLayoutEngine)
    registry.register("location-based", LocationBasedLayoutEngine)
    registry.register("hierarchical-v2", SubgraphLayoutEngine)
    return registry


default_registry = build_default_registry()


def create_engine(name: str) -> LayoutEngine:
    """Create an engine from the default registry."""
    return default_registry.create(name)
