"""
NetworkBuilder: the end-to-end pipeline for one road network.

Order is fixed: load piece templates → place roads (generate, or restore a
snapshot) → fill ground → decorate → optionally save a snapshot. Ground fill
always runs after roads so it sees their final occupancy.

All collaborators are injected; the builder owns the ``SpatialIndex`` it
passes to the placement engine and ground filler unless one is supplied.
"""

from __future__ import annotations

import random

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Set
from uuid import UUID

import numpy as np

from .catalog import AssetMissing, PieceCatalog, PlacedPiece
from .config import Config
from .decor import Decoration, PathDecorator
from .environment import GridCell, SpatialIndex
from .generators import RoadGenerator, make_generator
from .geometry import SceneNode
from .ground import GroundFiller
from .logging_utils import log_deterministic, log_error, log_info, log_success
from .persistence import SnapshotStore
from .placement import PlacementEngine
from .schemas import (
    GenerationResult,
    GenerationSettings,
    GenerationStatus,
    NetworkSnapshot,
)


@dataclass
class BuildReport:
    """What one ``build()`` produced."""

    source: str  # "generated" or "snapshot"
    result: GenerationResult
    tiles: int
    decoration: Optional[Decoration] = None
    snapshot_id: Optional[UUID] = None


class NetworkBuilder:
    def __init__(
        self,
        catalog: Optional[PieceCatalog] = None,
        settings: Optional[GenerationSettings] = None,
        *,
        strategy: str = "spine_branch",
        index: Optional[SpatialIndex] = None,
        ground_size: Optional[int] = None,
        decorator: Optional[PathDecorator] = None,
        snapshot_store: Optional[SnapshotStore] = None,
        rng: Optional[random.Random] = None,
        placement_listeners: Optional[List[Callable[[PlacedPiece], None]]] = None,
        generator_options: Optional[Dict[str, Any]] = None,
    ):
        """
        Args:
            catalog: Piece catalog (defaults to the built-in blueprint set)
            settings: Generation parameters; defaults come from ``Config``
            strategy: "spine_branch", "random_walk" or "frontier"
            index: Shared occupancy index; built from the settings' cell sizes
            ground_size: Square ground extent in tiles (default Config.GROUND_SIZE)
            decorator: Optional pole/cable decorator run after ground fill
            snapshot_store: Optional store; each build saves a snapshot to it
            rng: PRNG override handed to the generator
            placement_listeners: Extra callables invoked per committed piece
            generator_options: Extra keyword arguments for the generator
        """
        self._explicit_settings = settings is not None
        self.settings = settings or GenerationSettings.from_config()
        self.catalog = catalog or PieceCatalog()
        self.index = index or SpatialIndex(
            self.settings.fine_cell_size, self.settings.coarse_cell_size
        )
        self.ground_size = Config.GROUND_SIZE if ground_size is None else ground_size
        self.decorator = decorator
        self.snapshot_store = snapshot_store

        # Everything placed ends up under one scene root
        self.scene = SceneNode(name="network")
        self.roads = self.scene.add(SceneNode(name="roads"))
        self.ground = GroundFiller(self.index, root=self.scene.add(SceneNode(name="ground")))
        if self.decorator is not None:
            self.scene.add(self.decorator.root)

        self.engine = PlacementEngine(
            self.catalog,
            self.index,
            ground=self.ground,
            sample_step=self.settings.sample_step,
            tile_sample_step=self.settings.tile_sample_step,
            piece_scale=self.settings.piece_scale,
            listeners=[self._attach] + list(placement_listeners or []),
        )
        self.strategy = strategy
        self.generator: RoadGenerator = make_generator(
            strategy, self.engine, self.settings, rng=rng, **(generator_options or {})
        )
        self.pieces: List[PlacedPiece] = []
        self.source: Optional[str] = None
        self._restored_from: Optional[NetworkSnapshot] = None

    def _attach(self, piece: PlacedPiece) -> None:
        self.roads.add(piece.root)

    async def build(self, snapshot: Optional[NetworkSnapshot] = None) -> BuildReport:
        """Run the whole pipeline once.

        If ``snapshot`` is given its transforms are replayed and no generator
        runs. A snapshot takes precedence over explicitly supplied settings.
        """
        if self.snapshot_store is not None:
            await self.snapshot_store.initialize()

        try:
            wanted = list(self.catalog.definitions)
            if snapshot is not None:
                wanted += [r.type_id for r in snapshot.records if r.type_id not in wanted]
            available = await self.catalog.load_all(wanted)
            if not available:
                log_error("[Builder] No piece types could be loaded")

            if snapshot is not None:
                if self._explicit_settings:
                    log_error(
                        f"[Builder] Both settings and snapshot {snapshot.id} supplied; "
                        "restoring the snapshot and ignoring the settings"
                    )
                result = self.restore(snapshot)
            else:
                result = self.generate()

            tiles = self.ground.fill(self.ground_size, self.ground_size)

            decoration = None
            if self.decorator is not None:
                decoration = self.decorator.decorate()

            snapshot_id = None
            if self.snapshot_store is not None:
                captured = self.capture()
                await self.snapshot_store.save(captured)
                snapshot_id = captured.id
                log_info(f"[Builder] Saved snapshot {snapshot_id}")

            return BuildReport(
                source=self.source,
                result=result,
                tiles=tiles,
                decoration=decoration,
                snapshot_id=snapshot_id,
            )
        finally:
            if self.snapshot_store is not None:
                await self.snapshot_store.close()

    def generate(self) -> GenerationResult:
        if self.source == "snapshot":
            self.engine.reset(self.pieces)
        result = self.generator.generate()
        self.pieces = list(self.generator.pieces)
        self.source = "generated"
        self._restored_from = None
        return result

    def restore(self, snapshot: NetworkSnapshot) -> GenerationResult:
        """Replay a snapshot's transforms. Templates must already be loaded.

        Records whose type is unavailable are skipped and reported as a
        shortfall, the same way a stalled generator would be.
        """
        self.engine.reset(self.pieces + self.generator.pieces)
        log_deterministic(
            f"[Builder] Restoring {len(snapshot.records)} pieces from snapshot {snapshot.id}"
        )

        pieces: List[PlacedPiece] = []
        overlaps = 0
        for record in snapshot.records:
            try:
                piece, conflicts = self.engine.force_place(
                    record.type_id,
                    record.position,
                    record.orientation,
                    mirrored=record.mirrored,
                    scale=record.scale,
                )
            except AssetMissing as exc:
                log_error(f"[Builder] Skipping {record.type_id}: {exc.reason}")
                continue
            # Cells shared with the piece this one is attached to are seams, not overlaps
            if conflicts:
                seams = self._seam_cells(pieces, piece)
                conflicts = [c for c in conflicts if c not in seams]
            overlaps += len(conflicts)
            pieces.append(piece)

        self.pieces = pieces
        self.source = "snapshot"
        self._restored_from = snapshot

        status = (
            GenerationStatus.DONE
            if len(pieces) == len(snapshot.records)
            else GenerationStatus.STALLED
        )
        result = GenerationResult(
            strategy=snapshot.strategy,
            status=status,
            requested=len(snapshot.records),
            placed=len(pieces),
            attempts=len(snapshot.records),
            overlaps=overlaps,
            records=[piece.to_record() for piece in pieces],
        )
        if status == GenerationStatus.DONE:
            log_success(f"[Builder] Restored {result.placed} pieces")
        else:
            log_error(
                f"[Builder] Restored {result.placed}/{result.requested} pieces "
                f"(shortfall {result.shortfall})"
            )
        return result

    @staticmethod
    def _seam_cells(placed: List[PlacedPiece], piece: PlacedPiece) -> Set[GridCell]:
        """Fine cells of every earlier piece with a socket on ``piece``'s origin."""
        origin = np.asarray(piece.position)
        seams: Set[GridCell] = set()
        for other in placed:
            for frame in other.socket_transforms().values():
                if np.allclose(frame.position, origin, atol=1e-6):
                    seams.update(other.fine_cells)
                    break
        return seams

    def capture(self) -> NetworkSnapshot:
        """Snapshot the current network's transforms and generation inputs."""
        if self._restored_from is not None:
            strategy = self._restored_from.strategy
            settings = self._restored_from.settings
        else:
            strategy, settings = self.strategy, self.settings
        return NetworkSnapshot(
            strategy=strategy,
            settings=settings,
            records=[piece.to_record() for piece in self.pieces],
        )
