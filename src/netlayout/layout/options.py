"""Layout options — the configuration layer shared by all engines.

Every field defaults to ``None`` meaning "unset"; an engine fills unset
fields from its own ``default_options()`` via ``merged_over``. Options can
also be loaded from the camelCase mapping used by the external JSON/YAML
contract with ``from_mapping``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any

from netlayout.errors import InvalidOptionError
from netlayout.graph import Direction

logger = logging.getLogger(__name__)


class EdgeRouting(Enum):
    STRAIGHT = "straight"
    CURVED = "curved"
    ORTHOGONAL = "orthogonal"


@dataclass(frozen=True)
class LayoutConstraint:
    """A layout constraint. Reserved: accepted and carried, not yet applied."""

    type: str
    nodes: tuple[str, ...]
    options: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class LayoutOptions:
    """Tuning knobs recognised by the engines (all lengths in px)."""

    node_spacing: float | None = None
    layer_spacing: float | None = None
    rank_spacing: float | None = None
    module_padding: float | None = None
    location_padding: float | None = None
    location_spacing: float | None = None
    edge_routing: EdgeRouting | None = None
    respect_manual_positions: bool | None = None
    device_columns: int | None = None
    min_location_size: tuple[float, float] | None = None
    node_size: float | None = None
    direction: Direction | None = None
    node_width: float | None = None
    node_height: float | None = None
    subgraph_padding: float | None = None
    subgraph_label_height: float | None = None
    subgraph_spacing: float | None = None
    seed: int | None = None
    constraints: tuple[LayoutConstraint, ...] = ()

    def merged_over(self, defaults: LayoutOptions) -> LayoutOptions:
        """Return a copy where every unset field takes the value from ``defaults``."""
        overrides = {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None and f.name != "constraints"
        }
        merged = replace(defaults, **overrides)
        if self.constraints:
            merged = replace(merged, constraints=self.constraints)
        return merged

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> LayoutOptions:
        """Build options from a camelCase (or snake_case) mapping.

        Unknown keys are logged and ignored. Enum-valued keys accept their
        string form; ``minLocationSize`` accepts ``{"width": w, "height": h}`` or a
        ``[w, h]`` pair. Malformed values raise ``InvalidOptionError``.
        """
        values: dict[str, Any] = {}
        for key, value in data.items():
            name = _FIELD_ALIASES.get(key, key)
            if name not in _FIELD_NAMES:
                logger.warning("Ignoring unknown layout option %r", key)
                continue
            if value is None:
                continue
            values[name] = _coerce(name, key, value)
        return cls(**values)


# ─── Mapping Conversion ───────────────────────────────────────────────────────

_FIELD_NAMES = {f.name for f in fields(LayoutOptions)}

_FIELD_ALIASES: dict[str, str] = {
    "nodeSpacing": "node_spacing",
    "layerSpacing": "layer_spacing",
    "rankSpacing": "rank_spacing",
    "modulePadding": "module_padding",
    "locationPadding": "location_padding",
    "locationSpacing": "location_spacing",
    "edgeRouting": "edge_routing",
    "respectManualPositions": "respect_manual_positions",
    "deviceColumns": "device_columns",
    "minLocationSize": "min_location_size",
    "nodeSize": "node_size",
    "nodeWidth": "node_width",
    "nodeHeight": "node_height",
    "subgraphPadding": "subgraph_padding",
    "subgraphLabelHeight": "subgraph_label_height",
    "subgraphSpacing": "subgraph_spacing",
}


def _coerce(name: str, key: str, value: Any) -> Any:
    if name == "edge_routing":
        return _enum_value(EdgeRouting, key, value)
    if name == "direction":
        return _enum_value(Direction, key, value)
    if name == "min_location_size":
        return _size_value(key, value)
    if name == "constraints":
        if not isinstance(value, (list, tuple)):
            raise InvalidOptionError(key, value, "expected a list of constraints")
        return tuple(_constraint_value(key, c) for c in value)
    if name == "respect_manual_positions":
        if not isinstance(value, bool):
            raise InvalidOptionError(key, value, "expected a boolean")
        return value
    if name in ("device_columns", "seed"):
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidOptionError(key, value, "expected an integer")
        if name == "device_columns" and value < 1:
            raise InvalidOptionError(key, value, "must be at least 1")
        return value
    if not _is_number(value):
        raise InvalidOptionError(key, value, "expected a number")
    return value


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _size_value(key: str, value: Any) -> tuple[float, float]:
    if isinstance(value, Mapping):
        missing = [k for k in ("width", "height") if k not in value]
        if missing:
            raise InvalidOptionError(key, value, f"missing {missing[0]!r}")
        width, height = value["width"], value["height"]
    elif isinstance(value, (list, tuple)) and len(value) == 2:
        width, height = value
    else:
        raise InvalidOptionError(key, value, "expected {width, height} or a (width, height) pair")
    if not (_is_number(width) and _is_number(height)):
        raise InvalidOptionError(key, value, "width and height must be numbers")
    return (float(width), float(height))


def _constraint_value(key: str, value: Any) -> LayoutConstraint:
    if isinstance(value, LayoutConstraint):
        return value
    if not isinstance(value, Mapping) or not isinstance(value.get("type"), str):
        raise InvalidOptionError(key, value, "each constraint needs a string 'type'")
    nodes = value.get("nodes", ())
    options = value.get("options", {})
    if isinstance(nodes, str) or not all(isinstance(n, str) for n in nodes):
        raise InvalidOptionError(key, value, "constraint 'nodes' must be a list of ids")
    if not isinstance(options, Mapping):
        raise InvalidOptionError(key, value, "constraint 'options' must be a mapping")
    return LayoutConstraint(type=value["type"], nodes=tuple(nodes), options=dict(options))


def _enum_value(enum_cls: type[Enum], key: str, value: Any) -> Enum:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError as exc:
        allowed = [member.value for member in enum_cls]
        raise InvalidOptionError(key, value, f"expected one of {allowed}") from exc
