"""Deterministic spine-and-branch layout.

1. Build a spine of ``spine_length`` pieces by chaining each piece's ``out``
   socket. At every interior step (never the first or last) a seeded draw
   picks an intersection instead of a straight with probability
   ``intersection_probability``; its left and right sockets are recorded.
2. Extend every recorded branch socket with ``branch_length`` straights.

The PRNG is ``Mulberry32(seed)``, so a fixed seed always reproduces the same
network. Pieces are force-placed: nothing is ever rejected, but fine cells
that land on existing road are counted into ``overlaps`` so callers can see
when the piece set or seed produces crossing streets.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional

from ..catalog import PlacedPiece
from ..connectors import SocketRole
from ..environment import GridCell
from ..geometry import IDENTITY_QUATERNION, Quaternion, Vector3
from ..logging_utils import log_deterministic, log_error
from ..schemas import GenerationStatus, PieceKind
from .base import GenerationRun, RoadGenerator
from .rng import Mulberry32


@dataclass
class BranchStart:
    position: Vector3
    orientation: Quaternion
    role: SocketRole
    parent: PlacedPiece


class SpineBranchGenerator(RoadGenerator):
    strategy = "spine_branch"
    label = "SpineBranch"

    def __init__(
        self,
        engine,
        settings=None,
        *,
        rng=None,
        straight_type: Optional[str] = None,
        intersection_type: Optional[str] = None,
    ):
        super().__init__(engine, settings, rng=rng)
        self.straight_type = straight_type
        self.intersection_type = intersection_type
        self.branch_starts: List[BranchStart] = []

    def _make_rng(self):
        return Mulberry32(self.settings.seed)

    def generate(self):
        # Branches from the last run must not count toward the new request
        self.branch_starts = []
        return super().generate()

    def requested(self) -> int:
        # Branch count is only known once the spine exists
        return self.settings.spine_length + len(self.branch_starts) * self.settings.branch_length

    def _resolve_type(self, preferred: Optional[str], kind: PieceKind) -> Optional[str]:
        catalog = self.engine.catalog
        if preferred is not None:
            return preferred if catalog.is_available(preferred) else None
        available = catalog.available(kind)
        return available[0] if available else None

    def _place(
        self,
        run: GenerationRun,
        type_id: str,
        position: Vector3,
        orientation: Quaternion,
        exclude: Iterable[GridCell],
    ) -> PlacedPiece:
        run.attempts += 1
        piece, conflicts = self.engine.force_place(type_id, position, orientation, exclude=exclude)
        if conflicts:
            run.overlaps += len(conflicts)
            log_error(
                f"[{self.label}] {type_id} #{len(run.pieces)} overlaps {len(conflicts)} road cell(s)"
            )
        run.pieces.append(piece)
        return piece

    def _run(self, run: GenerationRun) -> None:
        settings = self.settings
        self.branch_starts = []

        straight = self._resolve_type(self.straight_type, PieceKind.STRAIGHT)
        junction = self._resolve_type(self.intersection_type, PieceKind.INTERSECTION)
        if straight is None:
            log_error(f"[{self.label}] No straight piece available; nothing to build")
            run.status = GenerationStatus.STALLED
            return
        if junction is None and settings.intersection_probability > 0:
            log_error(f"[{self.label}] No intersection piece available; spine will not branch")

        position, orientation = settings.origin, IDENTITY_QUATERNION
        previous: Optional[PlacedPiece] = None

        for i in range(settings.spine_length):
            run.step = i
            interior = 0 < i < settings.spine_length - 1
            # Always draw on interior steps so the stream does not depend on availability
            use_junction = interior and run.rng.random() < settings.intersection_probability
            type_id = junction if use_junction and junction is not None else straight

            exclude = previous.fine_cells if previous is not None else ()
            piece = self._place(run, type_id, position, orientation, exclude)

            if piece.kind == PieceKind.INTERSECTION:
                for role in (SocketRole.BRANCH_LEFT, SocketRole.BRANCH_RIGHT):
                    transform = piece.socket_transform(role)
                    if transform is not None:
                        self.branch_starts.append(
                            BranchStart(transform.position, transform.orientation, role, piece)
                        )

            exit_frame = self.engine.exit_transform(piece)
            if exit_frame is None:
                log_error(f"[{self.label}] {type_id} has no socket_out; spine ends at {i + 1}")
                run.status = GenerationStatus.STALLED
                return
            position, orientation = exit_frame.position, exit_frame.orientation
            previous = piece

        run.branches = len(self.branch_starts)
        log_deterministic(
            f"[{self.label}] Spine complete ({settings.spine_length} pieces, "
            f"{run.branches} branches)"
        )

        for start in self.branch_starts:
            self._extend_branch(run, start, straight)
            if run.status == GenerationStatus.STALLED:
                return

        run.status = GenerationStatus.DONE

    def _extend_branch(self, run: GenerationRun, start: BranchStart, straight: str) -> None:
        position, orientation = start.position, start.orientation
        previous = start.parent
        for _ in range(self.settings.branch_length):
            piece = self._place(run, straight, position, orientation, previous.fine_cells)
            exit_frame = self.engine.exit_transform(piece)
            if exit_frame is None:
                log_error(f"[{self.label}] {straight} has no socket_out; branch cut short")
                run.status = GenerationStatus.STALLED
                return
            position, orientation = exit_frame.position, exit_frame.orientation
            previous = piece
