"""
PlacementEngine: instantiate a piece at a target frame, test it, commit or reject.

The snap contract: a piece's local origin is its attachment point, so it is
placed with its origin exactly on the target (usually the previous piece's
exit socket). Its footprint is the centerline from origin to each socket,
sampled every ``sample_step`` units and mapped to fine cells.

Rejection (``try_place`` returning None) is an ordinary outcome, not an
error: the caller moves on to its next candidate. Nothing is written to the
spatial index for a rejected piece, so failed trials leave no trace.

On commit:
1. every sampled fine cell joins the collision set (permanently for the run);
2. the centerline is resampled at ``tile_sample_step`` onto the coarse grid;
   any ground tile found there is removed (roads win over ground fill) and
   the cell is claimed with a ``road`` entry;
3. placement listeners are notified.
"""

from __future__ import annotations

from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from .catalog import PieceCatalog, PlacedPiece
from .connectors import SocketRole
from .environment import (
    CellKind,
    GridCell,
    OccupancyEntry,
    SpatialIndex,
    sample_segment,
    unique_cells,
)
from .geometry import Quaternion, Vector3
from .logging_utils import log_error

PlacementListener = Callable[[PlacedPiece], None]


class PlacementEngine:
    """Collision-checked placement against a shared ``SpatialIndex``."""

    def __init__(
        self,
        catalog: PieceCatalog,
        index: SpatialIndex,
        *,
        ground=None,
        sample_step: float = 1.0,
        tile_sample_step: float = 2.0,
        piece_scale: float = 1.0,
        listeners: Optional[List[PlacementListener]] = None,
    ):
        """
        Args:
            catalog: Source of piece instances (templates must be loaded)
            index: Shared occupancy index
            ground: Optional GroundFiller; tiles under new roads are removed
                through it so its tile list stays in sync
            sample_step: Centerline spacing for fine-cell sampling
            tile_sample_step: Centerline spacing for coarse-cell sampling
            piece_scale: Uniform scale applied to every placed piece
            listeners: Callables invoked with each committed piece
        """
        self.catalog = catalog
        self.index = index
        self.ground = ground
        self.sample_step = sample_step
        self.tile_sample_step = tile_sample_step
        self.piece_scale = piece_scale
        self.listeners = listeners or []

    # ------------------------------------------------------------------
    # Footprint sampling
    # ------------------------------------------------------------------

    def sample_centerline(self, piece: PlacedPiece, step: Optional[float] = None) -> List[Tuple[float, float]]:
        """Ground-plane points from the piece origin to each of its sockets.

        Straights and curves contribute one segment (origin → out);
        intersections add one segment per branch socket. A piece without
        sockets covers only its origin.
        """
        step = step or self.sample_step
        origin = piece.position
        transforms = piece.socket_transforms()
        if not transforms:
            return [(origin[0], origin[2])]
        samples: List[Tuple[float, float]] = []
        for transform in transforms.values():
            samples.extend(sample_segment(origin, transform.position, step))
        return samples

    def fine_cells(self, piece: PlacedPiece) -> List[GridCell]:
        return unique_cells(self.sample_centerline(piece), self.index.fine_cell_size)

    def tile_cells(self, piece: PlacedPiece) -> List[GridCell]:
        return unique_cells(
            self.sample_centerline(piece, self.tile_sample_step),
            self.index.coarse_cell_size,
        )

    # ------------------------------------------------------------------
    # Placement
    # ------------------------------------------------------------------

    def _instantiate(
        self,
        type_id: str,
        position: Vector3,
        orientation: Quaternion,
        mirrored: bool,
        scale: Optional[float] = None,
    ) -> PlacedPiece:
        piece = self.catalog.instantiate(type_id)
        piece.place(position, orientation, scale or self.piece_scale, mirrored)
        return piece

    def try_place(
        self,
        type_id: str,
        position: Vector3,
        orientation: Quaternion,
        *,
        exclude: Iterable[GridCell] = (),
        mirrored: bool = False,
    ) -> Optional[PlacedPiece]:
        """Place ``type_id`` at the target frame if its footprint is free.

        Args:
            exclude: Fine cells ignored during the check (the seam-tolerance
                window) so a piece may touch its predecessors at the shared
                boundary

        Returns:
            The committed piece, or None if any non-excluded cell is taken.
        """
        piece = self._instantiate(type_id, position, orientation, mirrored)
        cells = self.fine_cells(piece)
        if self.index.collision.conflicts(cells, exclude):
            # Discard the instance; nothing was registered
            return None
        self.commit(piece, cells)
        return piece

    def force_place(
        self,
        type_id: str,
        position: Vector3,
        orientation: Quaternion,
        *,
        exclude: Iterable[GridCell] = (),
        mirrored: bool = False,
        scale: Optional[float] = None,
    ) -> Tuple[PlacedPiece, List[GridCell]]:
        """Commit without rejecting; also report cells that were already taken.

        Used where the layout itself is trusted (seeded spine-and-branch,
        snapshot restore). ``scale`` overrides the engine-wide piece scale.
        """
        piece = self._instantiate(type_id, position, orientation, mirrored, scale)
        cells = self.fine_cells(piece)
        conflicts = self.index.collision.conflicts(cells, exclude)
        self.commit(piece, cells)
        return piece, conflicts

    def commit(self, piece: PlacedPiece, cells: Optional[Sequence[GridCell]] = None) -> None:
        cells = list(cells) if cells is not None else self.fine_cells(piece)
        self.index.collision.occupy_many(cells)

        tile_cells = self.tile_cells(piece)
        for cell in tile_cells:
            entry = self.index.tiles.get(cell)
            if entry is not None and entry.kind == CellKind.GROUND_TILE:
                self._remove_tile(cell)
                entry = None
            if entry is None:
                self.index.tiles.occupy(cell, OccupancyEntry(kind=CellKind.ROAD, owner=piece))

        piece.fine_cells = tuple(cells)
        piece.tile_cells = tuple(tile_cells)

        for listener in self.listeners:
            try:
                listener(piece)
            except Exception as exc:  # pragma: no cover - diagnostic hook
                log_error(f"[Placement] Listener failed: {exc}")

    def _remove_tile(self, cell: GridCell) -> None:
        if self.ground is not None:
            self.ground.remove_at(cell)
        else:
            self.index.tiles.remove(cell)

    def exit_transform(self, piece: PlacedPiece):
        """World frame of the piece's ``out`` socket, or None."""
        return piece.socket_transform(SocketRole.OUT)

    def reset(self, pieces: Iterable[PlacedPiece] = ()) -> None:
        """Tear down a previous run: detach its pieces and forget road occupancy."""
        for piece in pieces:
            piece.root.detach()
        self.index.clear_roads()
