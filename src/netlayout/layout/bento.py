"""Bento engine — module cells packed into a golden-ratio grid.

Each cell holds a module's devices (or an auto-detected role/type group).
The grid shape is the (columns, rows) pair closest to the golden ratio;
cells are placed largest first into the first free slot.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field

from netlayout.graph import Device, NetworkGraph
from netlayout.layout.base import (
    BaseLayoutEngine,
    calculate_bounds,
    create_edges,
    create_modules,
    create_nodes,
    route_edges,
)
from netlayout.layout.options import LayoutOptions
from netlayout.layout.types import LayoutResult, NodeRecord

logger = logging.getLogger(__name__)

GOLDEN_RATIO = 1.618
CELL_SIZE = 300.0
MIN_ROLE_GROUP = 2


@dataclass
class BentoCell:
    devices: list[str]
    column: int = 0
    row: int = 0
    colspan: int = 1
    rowspan: int = 1
    module_id: str | None = None
    hinted: tuple[int, int] | None = None  # explicit (column, row)

    @property
    def area(self) -> int:
        return self.colspan * self.rowspan


@dataclass
class BentoGrid:
    columns: int
    rows: int
    cells: list[list[str | None]] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.cells:
            self.cells = [[None] * self.columns for _ in range(self.rows)]

    def is_free(self, column: int, row: int, colspan: int, rowspan: int) -> bool:
        if column < 0 or row < 0 or column + colspan > self.columns or row + rowspan > self.rows:
            return False
        return all(
            self.cells[row + r][column + c] is None for r in range(rowspan) for c in range(colspan)
        )

    def occupy(self, cell: BentoCell, column: int, row: int) -> None:
        cell.column = column
        cell.row = row
        for r in range(cell.rowspan):
            for c in range(cell.colspan):
                self.cells[row + r][column + c] = cell.module_id or "cell"

    def add_rows(self, count: int = 1) -> None:
        for _ in range(count):
            self.cells.append([None] * self.columns)
        self.rows += count


# ─── Cell Detection ───────────────────────────────────────────────────────────


def auto_detect_groups(devices: list[Device]) -> list[list[Device]]:
    """Group devices by role (groups of two or more), then the rest by type.

    Every leftover type group becomes its own cell, singletons included.
    """
    role_groups: dict[str, list[Device]] = {}
    for device in devices:
        if device.role:
            role_groups.setdefault(device.role, []).append(device)

    groups: list[list[Device]] = []
    grouped: set[str] = set()
    for group in role_groups.values():
        if len(group) >= MIN_ROLE_GROUP:
            groups.append(group)
            grouped.update(d.id for d in group)

    type_groups: dict[str, list[Device]] = {}
    for device in devices:
        if device.id not in grouped:
            type_groups.setdefault(device.type, []).append(device)
    groups.extend(type_groups.values())
    return groups


def organize_cells(graph: NetworkGraph) -> list[BentoCell]:
    """Cells from declared modules (plus a cell of leftovers), else auto-detected."""
    if not graph.modules:
        return [BentoCell(devices=[d.id for d in group]) for group in auto_detect_groups(graph.devices)]

    cells: list[BentoCell] = []
    for module in graph.modules:
        cell = BentoCell(devices=list(module.devices), module_id=module.id)
        hints = module.layout
        if hints is not None:
            if hints.span is not None:
                cell.colspan = max(1, hints.span.columns or 1)
                cell.rowspan = max(1, hints.span.rows or 1)
            if hints.column is not None and hints.row is not None:
                cell.hinted = (hints.column, hints.row)
        cells.append(cell)

    assigned = {device_id for cell in cells for device_id in cell.devices}
    unassigned = [d.id for d in graph.devices if d.id not in assigned]
    if unassigned:
        cells.append(BentoCell(devices=unassigned))
    return cells


# ─── Grid Packing ─────────────────────────────────────────────────────────────


def optimal_grid(cells: list[BentoCell]) -> BentoGrid:
    """Pick the grid whose columns/rows ratio is closest to GOLDEN_RATIO.

    Column counts 1..ceil(sqrt(total area)) are scanned; the first best wins.
    The grid is never narrower than the widest cell span.
    """
    total_area = sum(cell.area for cell in cells)
    best_columns, best_rows = 1, 1
    best_diff = math.inf
    for cols in range(1, math.ceil(math.sqrt(total_area)) + 1):
        rows = math.ceil(total_area / cols)
        diff = abs(cols / rows - GOLDEN_RATIO)
        if diff < best_diff:
            best_diff = diff
            best_columns, best_rows = cols, rows

    widest = max((cell.colspan for cell in cells), default=1)
    return BentoGrid(columns=max(best_columns, widest), rows=best_rows)


def pack_cells(cells: list[BentoCell], grid: BentoGrid) -> list[BentoCell]:
    """Place every cell on the grid and return them largest-area first.

    Hinted cells are placed first, at their hint, when the span is free there.
    The rest keep that order and take the first free slot in
    row-major order; a cell that fits nowhere opens new rows at the bottom.
    """
    ordered = sorted(cells, key=lambda c: c.area, reverse=True)
    pending: list[BentoCell] = []

    for cell in ordered:
        if cell.hinted is None:
            pending.append(cell)
            continue
        column, row = cell.hinted
        if row + cell.rowspan > grid.rows and column + cell.colspan <= grid.columns:
            grid.add_rows(row + cell.rowspan - grid.rows)
        if grid.is_free(column, row, cell.colspan, cell.rowspan):
            grid.occupy(cell, column, row)
        else:
            pending.append(cell)

    for cell in pending:
        slot = next(
            (
                (col, row)
                for row in range(grid.rows - cell.rowspan + 1)
                for col in range(grid.columns - cell.colspan + 1)
                if grid.is_free(col, row, cell.colspan, cell.rowspan)
            ),
            None,
        )
        if slot is None:
            first_new_row = grid.rows
            grid.add_rows(cell.rowspan)
            slot = (0, first_new_row)
        grid.occupy(cell, *slot)

    return ordered


def inner_grid(count: int) -> tuple[int, int]:
    """(columns, rows) of the sub-grid used for ``count`` devices in one cell."""
    if count <= 0:
        return (0, 0)
    cols = math.ceil(math.sqrt(count))
    return (cols, math.ceil(count / cols))


def position_devices_in_cells(
    cells: list[BentoCell],
    nodes: dict[str, NodeRecord],
    options: LayoutOptions,
) -> None:
    """Centre a lone device; spread several on an evenly spaced sub-grid.

    A device listed by two cells is placed by the first one. ``options`` must
    already be merged over the engine defaults.
    """
    padding = options.module_padding
    placed: set[str] = set()

    for cell in cells:
        cell_x = cell.column * CELL_SIZE + CELL_SIZE * cell.colspan / 2
        cell_y = cell.row * CELL_SIZE + CELL_SIZE * cell.rowspan / 2
        cell_width = CELL_SIZE * cell.colspan - padding * 2
        cell_height = CELL_SIZE * cell.rowspan - padding * 2

        members = [nodes[i] for i in cell.devices if i in nodes and i not in placed]
        placed.update(node.id for node in members)
        if not members:
            continue

        if len(members) == 1:
            node = members[0]
            if not node.pinned:
                node.x, node.y = cell_x, cell_y
            continue

        cols, rows = inner_grid(len(members))
        spacing_x = cell_width / (cols + 1)
        spacing_y = cell_height / (rows + 1)
        for index, node in enumerate(members):
            if node.pinned:
                continue
            row, col = divmod(index, cols)
            node.x = cell_x - cell_width / 2 + spacing_x * (col + 1)
            node.y = cell_y - cell_height / 2 + spacing_y * (row + 1)


# ─── Engine ───────────────────────────────────────────────────────────────────


class BentoLayoutEngine(BaseLayoutEngine):
    """Grid-packing layout for module-oriented diagrams."""

    name = "bento"
    version = "1.0.0"

    def layout(self, graph: NetworkGraph, options: LayoutOptions | None = None) -> LayoutResult:
        started = time.perf_counter()
        opts = self.resolve_options(options)

        nodes = create_nodes(graph.devices, opts)
        edges = create_edges(graph.links)

        cells = organize_cells(graph)
        grid = optimal_grid(cells)
        placed = pack_cells(cells, grid)
        logger.debug("bento layout: %d cells on a %dx%d grid", len(cells), grid.columns, grid.rows)

        position_devices_in_cells(placed, nodes, opts)
        route_edges(edges, nodes, opts.edge_routing)
        modules = create_modules(graph.modules, nodes)

        return self._finish(started, nodes, edges, calculate_bounds(nodes), modules=modules)
