"""Shared generator scaffolding.

All strategies run the same state machine::

    IDLE -> PLACING(i) -> PLACING(i+1) | STALLED | DONE

``DONE`` once the requested number of pieces is committed; ``STALLED`` when
no offered candidate fits at the current frontier (the run ends early and the
result reports the shortfall). The frontier strategy can also end
``EXHAUSTED`` when its attempt ceiling is hit.

Each call to ``generate()`` starts a fresh ``GenerationRun``: the previous
run's pieces are removed and road occupancy is cleared before anything new
is placed. Placement is synchronous, so pieces commit in strict order.
"""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import ClassVar, Iterable, List, Optional, Set

from ..catalog import PlacedPiece
from ..environment import GridCell
from ..logging_utils import log_deterministic, log_error, log_success
from ..placement import PlacementEngine
from ..schemas import GenerationResult, GenerationSettings, GenerationStatus, PieceKind


@dataclass(frozen=True)
class Candidate:
    """One trial option: a piece type, optionally mirrored."""

    type_id: str
    kind: PieceKind
    mirrored: bool = False

    @property
    def is_curve(self) -> bool:
        return self.kind == PieceKind.CURVE

    @property
    def direction(self) -> int:
        """+1 for a right-hand curve, -1 for a mirrored (left) curve, 0 otherwise."""
        if not self.is_curve:
            return 0
        return -1 if self.mirrored else 1


@dataclass
class GenerationRun:
    """State owned by one execution of a generator."""

    strategy: str
    rng: random.Random
    pieces: List[PlacedPiece] = field(default_factory=list)
    status: GenerationStatus = GenerationStatus.IDLE
    step: int = 0
    attempts: int = 0
    branches: int = 0
    overlaps: int = 0

    def recent_cells(self, window: int) -> Set[GridCell]:
        """Union of fine cells of the last ``window`` committed pieces."""
        cells: Set[GridCell] = set()
        if window <= 0:
            return cells
        for piece in self.pieces[-window:]:
            cells.update(piece.fine_cells)
        return cells


class RoadGenerator(ABC):
    """Base class for network-building strategies.

    Subclasses implement ``_run`` and set ``run.status`` before returning.
    """

    strategy: ClassVar[str] = "generator"
    label: ClassVar[str] = "Generator"

    def __init__(
        self,
        engine: PlacementEngine,
        settings: Optional[GenerationSettings] = None,
        *,
        rng: Optional[random.Random] = None,
    ):
        self.engine = engine
        self.settings = settings or GenerationSettings()
        self._rng = rng
        self.run: Optional[GenerationRun] = None

    @property
    def pieces(self) -> List[PlacedPiece]:
        return self.run.pieces if self.run else []

    def _make_rng(self) -> random.Random:
        """PRNG for a new run. Unseeded strategies draw fresh entropy."""
        return random.Random()

    @abstractmethod
    def requested(self) -> int:
        """How many pieces this run is asked to place."""

    @abstractmethod
    def _run(self, run: GenerationRun) -> None:
        """Drive the placement engine until done, stalled or exhausted."""

    def generate(self) -> GenerationResult:
        previous = self.run.pieces if self.run else []
        self.engine.reset(previous)

        run = GenerationRun(strategy=self.strategy, rng=self._rng or self._make_rng())
        self.run = run
        log_deterministic(f"[{self.label}] Generating {self.requested()} pieces...")

        run.status = GenerationStatus.PLACING
        self._run(run)

        result = self.result()
        if result.status == GenerationStatus.DONE:
            log_success(f"[{self.label}] Complete: {result.placed} pieces")
        else:
            log_error(
                f"[{self.label}] {result.status.value.title()} after {result.placed}/"
                f"{result.requested} pieces (shortfall {result.shortfall})"
            )
        return result

    def result(self) -> GenerationResult:
        run = self.run
        if run is None:
            return GenerationResult(
                strategy=self.strategy,
                status=GenerationStatus.IDLE,
                requested=self.requested(),
                placed=0,
            )
        return GenerationResult(
            strategy=self.strategy,
            status=run.status,
            requested=self.requested(),
            placed=len(run.pieces),
            attempts=run.attempts,
            branches=run.branches,
            overlaps=run.overlaps,
            records=[piece.to_record() for piece in run.pieces],
        )

    def _candidates_of(self, kinds: Iterable[PieceKind]) -> List[Candidate]:
        catalog = self.engine.catalog
        candidates: List[Candidate] = []
        for kind in kinds:
            candidates.extend(Candidate(type_id, kind) for type_id in catalog.available(kind))
        return candidates
