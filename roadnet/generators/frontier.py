"""Frontier expansion: grow a network from a queue of open sockets."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from ..catalog import PlacedPiece
from ..connectors import SocketRole
from ..geometry import IDENTITY_QUATERNION, Quaternion, Vector3
from ..logging_utils import log_deterministic, log_error
from ..schemas import GenerationStatus, PieceKind
from .base import GenerationRun, RoadGenerator


@dataclass
class OpenSocket:
    """An unconsumed exit on a committed piece."""

    position: Vector3
    orientation: Quaternion
    role: SocketRole
    owner: PlacedPiece


class FrontierGenerator(RoadGenerator):
    """Pops a random open socket each iteration and tries to build on it.

    Piece choice is weighted: an intersection with probability
    ``intersection_weight`` (when one is loaded), otherwise a straight. A
    socket whose attempt fails is dropped for good. The run ends when the
    requested count is reached (DONE), the queue empties (STALLED) or the
    attempt ceiling ``piece_count * attempt_multiplier`` is hit (EXHAUSTED).

    Collision checks ignore the fine cells of the piece that owns the popped
    socket, since the new piece starts exactly on its boundary.
    """

    strategy = "frontier"
    label = "Frontier"

    def __init__(self, engine, settings=None, *, rng=None):
        super().__init__(engine, settings, rng=rng)
        self.queue: List[OpenSocket] = []

    def requested(self) -> int:
        return self.settings.piece_count

    def _pick_type(self, run: GenerationRun) -> Optional[str]:
        catalog = self.engine.catalog
        straights = catalog.available(PieceKind.STRAIGHT)
        intersections = catalog.available(PieceKind.INTERSECTION)
        if intersections and (not straights or run.rng.random() < self.settings.intersection_weight):
            return run.rng.choice(intersections)
        if straights:
            return run.rng.choice(straights)
        return None

    def _open_sockets(self, piece: PlacedPiece) -> List[OpenSocket]:
        return [
            OpenSocket(transform.position, transform.orientation, role, piece)
            for role, transform in piece.socket_transforms().items()
        ]

    def _run(self, run: GenerationRun) -> None:
        settings = self.settings
        self.queue = []
        if settings.piece_count == 0:
            run.status = GenerationStatus.DONE
            return

        first_type = self._pick_first(run)
        if first_type is None:
            log_error(f"[{self.label}] No straight or intersection pieces available")
            run.status = GenerationStatus.STALLED
            return

        run.attempts += 1
        first = self.engine.try_place(first_type, settings.origin, IDENTITY_QUATERNION)
        if first is None:
            log_error(f"[{self.label}] Origin is blocked, nothing placed")
            run.status = GenerationStatus.STALLED
            return
        run.pieces.append(first)
        self.queue.extend(self._open_sockets(first))

        ceiling = settings.piece_count * settings.attempt_multiplier
        while len(run.pieces) < settings.piece_count:
            if not self.queue:
                log_error(f"[{self.label}] No open sockets left at {len(run.pieces)} pieces")
                run.status = GenerationStatus.STALLED
                return
            if run.attempts >= ceiling:
                log_error(f"[{self.label}] Attempt ceiling {ceiling} reached")
                run.status = GenerationStatus.EXHAUSTED
                return

            run.step = len(run.pieces)
            socket = self.queue.pop(run.rng.randrange(len(self.queue)))
            type_id = self._pick_type(run)
            run.attempts += 1
            piece = self.engine.try_place(
                type_id,
                socket.position,
                socket.orientation,
                exclude=socket.owner.fine_cells,
            )
            if piece is None:
                continue

            piece.metadata["parent"] = socket.owner
            piece.metadata["socket"] = socket.role
            run.pieces.append(piece)
            if piece.kind == PieceKind.INTERSECTION:
                run.branches += 1
                log_deterministic(f"[{self.label}] Junction {type_id} at piece {len(run.pieces)}")
            self.queue.extend(self._open_sockets(piece))

        run.status = GenerationStatus.DONE

    def _pick_first(self, run: GenerationRun) -> Optional[str]:
        catalog = self.engine.catalog
        straights = catalog.available(PieceKind.STRAIGHT)
        if straights:
            return straights[0]
        intersections = catalog.available(PieceKind.INTERSECTION)
        return intersections[0] if intersections else None
