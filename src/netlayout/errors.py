"""Exceptions raised by the layout engines.

Only caller configuration errors and malformed group hierarchies raise.
Data conditions such as links naming unknown devices are tolerated by the
engines and never reach this module.
"""

from __future__ import annotations


class LayoutError(Exception):
    """Base class for every error raised by netlayout."""


class UnknownEngineError(LayoutError, ValueError):
    """Raised when the registry is asked for an engine name it does not hold."""

    def __init__(self, name: str, available: list[str]) -> None:
        self.name = name
        self.available = list(available)
        super().__init__(f"Unknown layout engine: {name}. Available: {self.available}")


class HierarchyCycleError(LayoutError, ValueError):
    """Raised when a group parent/child chain loops back on itself.

    Attributes:
        kind:  The group family the cycle was found in ("subgraph", "module",
               "location").
        cycle: The ids along the loop, first id repeated at the end.
    """

    def __init__(self, kind: str, cycle: list[str]) -> None:
        self.kind = kind
        self.cycle = list(cycle)
        path = " -> ".join(self.cycle)
        super().__init__(f"Cyclic {kind} hierarchy: {path}")


class InvalidOptionError(LayoutError, ValueError):
    """Raised when a layout option carries a value of the wrong kind."""

    def __init__(self, key: str, value: object, reason: str) -> None:
        self.key = key
        self.value = value
        super().__init__(f"Invalid layout option {key}={value!r}: {reason}")
