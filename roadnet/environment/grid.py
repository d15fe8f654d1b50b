"""Grid-indexed occupancy for road generation.

Two independent resolutions are tracked and never mixed:

- ``CollisionGrid`` (fine cells) holds every cell claimed by committed road
  centerlines. Cells are only added during a run; the whole set is cleared
  when a generator restarts.
- ``OccupancyGrid`` (coarse cells) maps each whole-tile cell to at most one
  ``OccupancyEntry`` tagged ``road`` or ``groundTile``.

``SpatialIndex`` owns one of each. It is created explicitly and passed by
reference to every component that reads or writes occupancy.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from .helpers import cell_key

GridCell = Tuple[int, int]


class CellKind(str, Enum):
    ROAD = "road"
    GROUND_TILE = "groundTile"


@dataclass
class OccupancyEntry:
    """Metadata stored for one coarse cell."""

    kind: CellKind
    owner: Any = None


@dataclass
class OccupancyGrid:
    """Sparse coarse-cell map: (cellX, cellZ) → entry."""

    cell_size: float
    entries: Dict[GridCell, OccupancyEntry] = field(default_factory=dict)

    def cell_for(self, x: float, z: float) -> GridCell:
        return cell_key(x, z, self.cell_size)

    def occupy(self, cell: GridCell, entry: OccupancyEntry) -> None:
        self.entries[cell] = entry

    def is_occupied(self, cell: GridCell) -> bool:
        return cell in self.entries

    def get(self, cell: GridCell) -> Optional[OccupancyEntry]:
        return self.entries.get(cell)

    def remove(self, cell: GridCell) -> bool:
        """Drop the entry at ``cell``. Returns False if nothing was there."""
        return self.entries.pop(cell, None) is not None

    def clear(self) -> None:
        self.entries.clear()

    def cells_of_kind(self, kind: CellKind) -> List[GridCell]:
        return [cell for cell, entry in self.entries.items() if entry.kind == kind]

    def __len__(self) -> int:
        return len(self.entries)


@dataclass
class CollisionGrid:
    """Set of fine cells claimed by committed road geometry."""

    cell_size: float
    cells: Set[GridCell] = field(default_factory=set)

    def cell_for(self, x: float, z: float) -> GridCell:
        return cell_key(x, z, self.cell_size)

    def occupy(self, cell: GridCell) -> None:
        self.cells.add(cell)

    def occupy_many(self, cells: Iterable[GridCell]) -> None:
        self.cells.update(cells)

    def is_occupied(self, cell: GridCell) -> bool:
        return cell in self.cells

    def conflicts(self, cells: Iterable[GridCell], exclude: Iterable[GridCell] = ()) -> List[GridCell]:
        """Return the cells already claimed, ignoring any in ``exclude``."""
        excluded = exclude if isinstance(exclude, (set, frozenset)) else set(exclude)
        return [cell for cell in cells if cell in self.cells and cell not in excluded]

    def clear(self) -> None:
        self.cells.clear()

    def __len__(self) -> int:
        return len(self.cells)


class SpatialIndex:
    """Single source of truth for "is this space free".

    Written only by the placement engine and the ground filler, always in
    sequence (roads first, then fill), so no locking is involved.
    """

    def __init__(self, fine_cell_size: float = 2.0, coarse_cell_size: float = 10.0):
        self.collision = CollisionGrid(cell_size=fine_cell_size)
        self.tiles = OccupancyGrid(cell_size=coarse_cell_size)

    @property
    def fine_cell_size(self) -> float:
        return self.collision.cell_size

    @property
    def coarse_cell_size(self) -> float:
        return self.tiles.cell_size

    def clear_roads(self) -> None:
        """Forget all road state; ground tiles stay where they are."""
        self.collision.clear()
        for cell in self.tiles.cells_of_kind(CellKind.ROAD):
            self.tiles.remove(cell)

    def clear(self) -> None:
        self.collision.clear()
        self.tiles.clear()
