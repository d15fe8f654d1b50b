"""
GroundFiller: cover a centred rectangle of coarse cells with ground tiles.

Tiles only go where the coarse occupancy map has no entry, so running the
fill after road generation leaves every road cell bare. ``fill`` always
starts by disposing of the tiles it created last time; repeated calls never
accumulate geometry.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from .environment import CellKind, GridCell, OccupancyEntry, SpatialIndex
from .geometry import SceneNode
from .logging_utils import log_info, log_success


@dataclass(eq=False)
class GroundTile:
    cell: GridCell
    position: tuple
    size: float
    node: Optional[SceneNode] = None

    def dispose(self) -> None:
        """Release the tile's scene node."""
        if self.node is not None:
            self.node.detach()
            self.node.payload = None
            self.node = None


class GroundFiller:
    """Owns the ground tiles it places in the shared index's coarse grid."""

    def __init__(self, index: SpatialIndex, *, tile_height: float = -0.01, root: Optional[SceneNode] = None):
        self.index = index
        self.tile_height = tile_height
        self.root = root or SceneNode(name="ground")
        self.tiles: List[GroundTile] = []

    @property
    def tile_size(self) -> float:
        return self.index.coarse_cell_size

    def fill(self, width: int, depth: int) -> int:
        """Tile every free cell in x in [-(width//2), width - width//2), same for z.

        Returns:
            Number of tiles placed.
        """
        self.clear()
        skipped = 0
        for cx in range(-(width // 2), width - width // 2):
            for cz in range(-(depth // 2), depth - depth // 2):
                if self.index.tiles.is_occupied((cx, cz)):
                    skipped += 1
                    continue
                self.spawn_tile((cx, cz))
        log_success(f"[Ground] Filled {len(self.tiles)} tiles ({width}x{depth}, {skipped} occupied)")
        return len(self.tiles)

    def spawn_tile(self, cell: GridCell) -> GroundTile:
        size = self.tile_size
        position = (cell[0] * size, self.tile_height, cell[1] * size)
        node = self.root.add(
            SceneNode(
                name=f"tile_{cell[0]}_{cell[1]}",
                position=position,
                scale=(size, 1.0, size),
                metadata={"kind": CellKind.GROUND_TILE.value},
            )
        )
        tile = GroundTile(cell=cell, position=position, size=size, node=node)
        self.index.tiles.occupy(cell, OccupancyEntry(kind=CellKind.GROUND_TILE, owner=tile))
        self.tiles.append(tile)
        return tile

    def remove_at(self, cell: GridCell) -> bool:
        """Remove the ground tile at ``cell``. Road entries are left alone."""
        entry = self.index.tiles.get(cell)
        if entry is None or entry.kind != CellKind.GROUND_TILE:
            return False
        tile = entry.owner
        tile.dispose()
        self.index.tiles.remove(cell)
        if tile in self.tiles:
            self.tiles.remove(tile)
        log_info(f"[Ground] Removed tile at {cell} for road")
        return True

    def clear(self) -> None:
        for tile in self.tiles:
            tile.dispose()
            entry = self.index.tiles.get(tile.cell)
            if entry is not None and entry.owner is tile:
                self.index.tiles.remove(tile.cell)
        self.tiles = []
