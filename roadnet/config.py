"""
Roadnet Configuration

Loads configuration from environment variables with sensible defaults.
Defaults reproduce the reference town layout (seed 12345, 20-piece spine,
5-piece side streets, 2m collision cells, 10m ground tiles).
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()


class Config:
    """Application configuration loaded from environment variables."""

    # Generation
    SEED: int = int(os.getenv("ROADNET_SEED", "12345"))
    PIECE_COUNT: int = int(os.getenv("ROADNET_PIECE_COUNT", "50"))
    SPINE_LENGTH: int = int(os.getenv("ROADNET_SPINE_LENGTH", "20"))
    BRANCH_LENGTH: int = int(os.getenv("ROADNET_BRANCH_LENGTH", "5"))
    INTERSECTION_PROBABILITY: float = float(
        os.getenv("ROADNET_INTERSECTION_PROBABILITY", "0.2")
    )

    # Grid resolutions (world units per cell)
    FINE_CELL_SIZE: float = float(os.getenv("ROADNET_FINE_CELL_SIZE", "2"))
    COARSE_CELL_SIZE: float = float(os.getenv("ROADNET_COARSE_CELL_SIZE", "10"))

    # Number of trailing pieces excluded from self-collision checks
    SEAM_TOLERANCE_WINDOW: int = int(os.getenv("ROADNET_SEAM_TOLERANCE_WINDOW", "3"))

    # Ground fill extent in tiles (square)
    GROUND_SIZE: int = int(os.getenv("ROADNET_GROUND_SIZE", "20"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Project Paths
    PROJECT_ROOT: Path = Path(__file__).parent.parent
    ASSET_ROOT: Path = Path(os.getenv("ROADNET_ASSET_ROOT", str(PROJECT_ROOT / "assets")))
    LAYOUTS_DIR: Path = PROJECT_ROOT / "examples" / "layouts"

    @classmethod
    def validate(cls) -> None:
        """Validate configuration and raise errors if values are out of range."""
        if not 0.0 <= cls.INTERSECTION_PROBABILITY <= 1.0:
            raise ValueError(
                "ROADNET_INTERSECTION_PROBABILITY must be between 0 and 1 "
                f"(got {cls.INTERSECTION_PROBABILITY})"
            )

        if cls.FINE_CELL_SIZE <= 0 or cls.COARSE_CELL_SIZE <= 0:
            raise ValueError(
                "ROADNET_FINE_CELL_SIZE and ROADNET_COARSE_CELL_SIZE must be positive. "
                "The fine grid drives centerline collision, the coarse grid ground tiles."
            )

        if cls.SEAM_TOLERANCE_WINDOW < 0:
            raise ValueError("ROADNET_SEAM_TOLERANCE_WINDOW cannot be negative")

        for name in ("PIECE_COUNT", "SPINE_LENGTH", "BRANCH_LENGTH", "GROUND_SIZE"):
            if getattr(cls, name) < 0:
                raise ValueError(f"ROADNET_{name} cannot be negative")

    @classmethod
    def display(cls) -> str:
        """Return a formatted string showing current configuration."""
        lines = [
            "Roadnet Configuration:",
            f"  Seed: {cls.SEED}",
            f"  Spine: {cls.SPINE_LENGTH} pieces, branches of {cls.BRANCH_LENGTH}",
            f"  Intersection Probability: {cls.INTERSECTION_PROBABILITY}",
            f"  Piece Count: {cls.PIECE_COUNT}",
            f"  Cells: fine={cls.FINE_CELL_SIZE}, coarse={cls.COARSE_CELL_SIZE}",
            f"  Seam Tolerance: {cls.SEAM_TOLERANCE_WINDOW} pieces",
            f"  Ground: {cls.GROUND_SIZE}x{cls.GROUND_SIZE} tiles",
        ]
        return "\n".join(lines)
