"""
Pydantic schemas for Roadnet.

Settings, piece definitions and the records a generation run produces are
plain data so they can be validated on the way in and written to JSON
snapshots on the way out. Live scene objects (``SceneNode``, ``PlacedPiece``)
stay out of these models.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Tuple
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator

from .config import Config


class PieceKind(str, Enum):
    STRAIGHT = "straight"
    CURVE = "curve"
    INTERSECTION = "intersection"


class GenerationStatus(str, Enum):
    """Generator state machine: IDLE → PLACING → DONE | STALLED | EXHAUSTED."""

    IDLE = "idle"
    PLACING = "placing"
    DONE = "done"
    STALLED = "stalled"
    EXHAUSTED = "exhausted"


# ============================================================================
# Piece definitions
# ============================================================================

class SocketBlueprint(BaseModel):
    """Local placement of one socket inside a piece."""

    position: Tuple[float, float, float]
    yaw: float = Field(0.0, description="Rotation about +Y in degrees; +90 faces +X")


class PieceBlueprint(BaseModel):
    """Mesh-free description of a piece: just its named sockets."""

    sockets: Dict[str, SocketBlueprint] = Field(
        default_factory=dict,
        description="Map of socket node name → local transform",
    )


class PieceDefinition(BaseModel):
    """Binds a piece type id to an asset and a kind."""

    type_id: str
    kind: PieceKind = PieceKind.STRAIGHT
    asset: Optional[str] = Field(
        None, description="Asset path handed to the loader; defaults to the type id",
    )
    blueprint: Optional[PieceBlueprint] = Field(
        None, description="Inline sockets, used instead of a mesh file",
    )

    @property
    def asset_path(self) -> str:
        return self.asset or self.type_id


# ============================================================================
# Settings
# ============================================================================

class GenerationSettings(BaseModel):
    """Recognized generation parameters.

    Out-of-range values fail validation at construction rather than
    surfacing as odd networks later.
    """

    piece_count: int = Field(50, ge=0, description="Pieces to attempt (random walk, frontier)")
    spine_length: int = Field(20, ge=0, description="Spine pieces (spine-and-branch)")
    branch_length: int = Field(5, ge=0, description="Straight pieces per side street")
    intersection_probability: float = Field(0.2, ge=0.0, le=1.0)
    seed: int = 12345

    fine_cell_size: float = Field(2.0, gt=0)
    coarse_cell_size: float = Field(10.0, gt=0)
    seam_tolerance_window: int = Field(
        3,
        ge=0,
        description=(
            "Trailing pieces excluded from collision checks (random walk). "
            "Frontier excludes only the parent piece it attaches to; spine-and-branch "
            "excludes the previous piece"
        ),
    )

    sample_step: float = Field(1.0, gt=0, description="Centerline sample spacing (fine grid)")
    tile_sample_step: float = Field(2.0, gt=0, description="Centerline sample spacing (coarse grid)")
    piece_scale: float = Field(1.0, gt=0)

    warmup_straights: int = Field(3, ge=0, description="Opening steps limited to straights")
    min_straights_after_curve: int = Field(1, ge=0)
    max_same_direction_curves: int = Field(2, ge=1)

    intersection_weight: float = Field(0.2, ge=0.0, le=1.0, description="Frontier share of intersections")
    attempt_multiplier: int = Field(3, ge=1, description="Frontier attempt ceiling = piece_count * this")

    origin: Tuple[float, float, float] = (0.0, 0.0, 0.0)

    @classmethod
    def from_config(cls, **overrides) -> "GenerationSettings":
        """Defaults from environment-backed ``Config``, then explicit overrides."""
        values = {
            "piece_count": Config.PIECE_COUNT,
            "spine_length": Config.SPINE_LENGTH,
            "branch_length": Config.BRANCH_LENGTH,
            "intersection_probability": Config.INTERSECTION_PROBABILITY,
            "seed": Config.SEED,
            "fine_cell_size": Config.FINE_CELL_SIZE,
            "coarse_cell_size": Config.COARSE_CELL_SIZE,
            "seam_tolerance_window": Config.SEAM_TOLERANCE_WINDOW,
        }
        values.update(overrides)
        return cls(**values)


# ============================================================================
# Results and snapshots
# ============================================================================

class PlacementRecord(BaseModel):
    """Final transform of one committed piece."""

    type_id: str
    position: Tuple[float, float, float]
    orientation: Tuple[float, float, float, float]
    scale: float = 1.0
    mirrored: bool = False


class GenerationResult(BaseModel):
    """Outcome of one generator run.

    A stall is not an error: callers compare ``placed`` with ``requested``
    (or read ``shortfall``) instead of assuming the request was met.
    """

    strategy: str
    status: GenerationStatus
    requested: int
    placed: int
    attempts: int = 0
    branches: int = 0
    overlaps: int = Field(0, description="Fine cells placed over existing road (unchecked strategies)")
    records: List[PlacementRecord] = Field(default_factory=list)

    @property
    def shortfall(self) -> int:
        return max(self.requested - self.placed, 0)


class NetworkSnapshot(BaseModel):
    """Saved road network: generation inputs plus every piece's transform."""

    id: UUID = Field(default_factory=uuid4)
    strategy: str
    settings: GenerationSettings
    records: List[PlacementRecord] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("records")
    @classmethod
    def _records_have_types(cls, records: List[PlacementRecord]) -> List[PlacementRecord]:
        for record in records:
            if not record.type_id:
                raise ValueError("Snapshot records must name a piece type")
        return records
