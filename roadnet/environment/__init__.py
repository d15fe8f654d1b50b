"""Spatial occupancy for Roadnet: fine collision cells and coarse tile cells."""

from .grid import (
    CellKind,
    CollisionGrid,
    GridCell,
    OccupancyEntry,
    OccupancyGrid,
    SpatialIndex,
)
from .helpers import (
    cell_coord,
    cell_key,
    render_occupancy_window,
    sample_segment,
    unique_cells,
)

__all__ = [
    "CellKind",
    "CollisionGrid",
    "GridCell",
    "OccupancyEntry",
    "OccupancyGrid",
    "SpatialIndex",
    "cell_coord",
    "cell_key",
    "render_occupancy_window",
    "sample_segment",
    "unique_cells",
]
