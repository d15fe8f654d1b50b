"""Bounded random walk: one cursor, one accepted piece per step.

Each step offers every straight and curve type (curves both plain and
mirrored) in shuffled order and keeps the first that fits. The opening
steps offer straights only to establish a heading, and a direction-balance
rule drops curve candidates before they ever reach the placement engine:

- a curve needs at least ``min_straights_after_curve`` straights since the
  previous curve;
- the same turn direction may repeat at most ``max_same_direction_curves``
  times in a row, which keeps the path from spiralling back into itself.

Collision checks exclude the last ``seam_tolerance_window`` pieces so a new
piece may share boundary cells with its predecessors.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from ..catalog import PlacedPiece
from ..geometry import IDENTITY_QUATERNION
from ..logging_utils import log_error
from ..schemas import GenerationStatus, PieceKind
from .base import Candidate, GenerationRun, RoadGenerator


class DirectionBalance:
    """Tracks recent turns and vetoes curves that would break the balance rule."""

    def __init__(self, min_straights_after_curve: int = 1, max_same_direction: int = 2):
        self.min_straights_after_curve = min_straights_after_curve
        self.max_same_direction = max_same_direction
        self.last_direction = 0
        self.same_direction_count = 0
        # Curves are allowed right away; only warmup holds them back
        self.straights_since_curve = min_straights_after_curve

    def allows(self, candidate: Candidate) -> bool:
        if not candidate.is_curve:
            return True
        if self.straights_since_curve < self.min_straights_after_curve:
            return False
        if (
            candidate.direction == self.last_direction
            and self.same_direction_count >= self.max_same_direction
        ):
            return False
        return True

    def record(self, candidate: Candidate) -> None:
        if not candidate.is_curve:
            self.straights_since_curve += 1
            return
        if candidate.direction == self.last_direction:
            self.same_direction_count += 1
        else:
            self.same_direction_count = 1
        self.last_direction = candidate.direction
        self.straights_since_curve = 0


class RandomWalkGenerator(RoadGenerator):
    strategy = "random_walk"
    label = "RandomWalk"

    def __init__(self, engine, settings=None, *, rng=None, piece_types: Optional[Sequence[str]] = None):
        super().__init__(engine, settings, rng=rng)
        self.piece_types = list(piece_types) if piece_types is not None else None
        self.balance: Optional[DirectionBalance] = None
        # (type_id, mirrored) per committed piece, in order
        self.chosen: List[Candidate] = []

    def requested(self) -> int:
        return self.settings.piece_count

    def _base_candidates(self) -> List[Candidate]:
        candidates = self._candidates_of((PieceKind.STRAIGHT, PieceKind.CURVE))
        if self.piece_types is not None:
            candidates = [c for c in candidates if c.type_id in self.piece_types]
        return candidates

    def candidates(self, step: int) -> List[Candidate]:
        """Unshuffled, rule-filtered options for ``step``."""
        offered: List[Candidate] = []
        for candidate in self._base_candidates():
            if step < self.settings.warmup_straights and candidate.is_curve:
                continue
            offered.append(candidate)
            if candidate.is_curve and step >= self.settings.warmup_straights:
                offered.append(Candidate(candidate.type_id, candidate.kind, mirrored=True))
        return [c for c in offered if self.balance.allows(c)]

    def _run(self, run: GenerationRun) -> None:
        settings = self.settings
        self.balance = DirectionBalance(
            settings.min_straights_after_curve,
            settings.max_same_direction_curves,
        )
        self.chosen = []
        position, orientation = settings.origin, IDENTITY_QUATERNION

        for step in range(settings.piece_count):
            run.step = step
            exclude = run.recent_cells(settings.seam_tolerance_window)
            options = self.candidates(step)
            run.rng.shuffle(options)

            piece: Optional[PlacedPiece] = None
            for candidate in options:
                run.attempts += 1
                piece = self.engine.try_place(
                    candidate.type_id,
                    position,
                    orientation,
                    exclude=exclude,
                    mirrored=candidate.mirrored,
                )
                if piece is not None:
                    break

            if piece is None:
                log_error(f"[{self.label}] Dead end at segment {step}. Stopping.")
                run.status = GenerationStatus.STALLED
                return

            run.pieces.append(piece)
            self.balance.record(candidate)
            self.chosen.append(candidate)

            exit_frame = self.engine.exit_transform(piece)
            if exit_frame is None:
                log_error(f"[{self.label}] No socket_out on {piece.type_id}, stopping walk")
                run.status = GenerationStatus.STALLED
                return
            position, orientation = exit_frame.position, exit_frame.orientation

        run.status = GenerationStatus.DONE
