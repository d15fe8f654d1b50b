"""Cell-key math, centerline sampling and debug views for the spatial index."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

if TYPE_CHECKING:  # pragma: no cover
    from .grid import OccupancyGrid

# Sample counts use ceil(); absorb float noise such as 10.000000000000002
_STEP_EPSILON = 1e-9


def cell_coord(value: float, cell_size: float) -> int:
    """Discretize one world coordinate.

    Rounds half-way values up (``floor(v + 0.5)``) rather than to even, so
    ``2.5 → 3`` and ``-2.5 → -2``. Equal world positions always land in the
    same cell.
    """
    return int(math.floor(value / cell_size + 0.5))


def cell_key(x: float, z: float, cell_size: float) -> Tuple[int, int]:
    return (cell_coord(x, cell_size), cell_coord(z, cell_size))


def sample_segment(
    start: Sequence[float],
    end: Sequence[float],
    step: float,
) -> List[Tuple[float, float]]:
    """Evenly spaced ``(x, z)`` points from ``start`` to ``end`` inclusive.

    Produces ``ceil(length / step) + 1`` points where length is measured on
    the ground plane; a zero-length segment yields the single start point.
    """
    a = np.array([start[0], start[2]], dtype=float)
    b = np.array([end[0], end[2]], dtype=float)
    length = float(np.linalg.norm(b - a))
    steps = math.ceil(length / step - _STEP_EPSILON) if length > 0 else 0
    if steps <= 0:
        return [(float(a[0]), float(a[1]))]
    points = a + np.outer(np.linspace(0.0, 1.0, steps + 1), b - a)
    return [(float(x), float(z)) for x, z in points]


def unique_cells(points: Iterable[Tuple[float, float]], cell_size: float) -> List[Tuple[int, int]]:
    """Map points to cells, keeping first-seen order and dropping repeats."""
    seen: Dict[Tuple[int, int], None] = {}
    for x, z in points:
        seen.setdefault(cell_key(x, z, cell_size), None)
    return list(seen)


_DEFAULT_CELL_SYMBOLS: Dict[str, str] = {
    "road": "##",
    "groundTile": "..",
}


def render_occupancy_window(
    grid: "OccupancyGrid",
    center: Tuple[int, int],
    *,
    radius: int,
    symbols: Optional[Dict[str, str]] = None,
) -> str:
    """Render coarse occupancy around ``center`` as ASCII, +Z at the top.

    Handy when eyeballing whether a fill respected the roads. Unknown kinds
    fall back to ``??``; empty cells render as blanks.
    """

    radius = max(int(radius), 0)
    mapping = {**_DEFAULT_CELL_SYMBOLS}
    if symbols:
        mapping.update(symbols)

    cx, cz = center
    lines: List[str] = []
    for z in range(cz + radius, cz - radius - 1, -1):
        row: List[str] = []
        for x in range(cx - radius, cx + radius + 1):
            entry = grid.get((x, z))
            if entry is None:
                row.append("  ")
            else:
                row.append(mapping.get(entry.kind.value, "??"))
        lines.append("".join(row))
    return "\n".join(lines)
