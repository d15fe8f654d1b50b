"""
Roadnet - procedural road networks on a grid-indexed occupancy model.

Prefabricated road pieces snap together socket to socket; a shared spatial
index keeps roads from overlapping each other and keeps ground tiles off
the roads.

All collaborators (asset loader, snapshot store, index) are injected.
"""

__version__ = "0.1.0"

# Pipeline
from .builder import BuildReport, NetworkBuilder

# Core components
from .environment import (
    CellKind,
    CollisionGrid,
    OccupancyEntry,
    OccupancyGrid,
    SpatialIndex,
    render_occupancy_window,
)
from .connectors import SocketRole, find_all_sockets, find_socket, resolve_world_transform
from .catalog import (
    AssetLoader,
    AssetMissing,
    BlueprintAssetLoader,
    PieceCatalog,
    PlacedPiece,
    TrimeshAssetLoader,
)
from .placement import PlacementEngine
from .generators import (
    FrontierGenerator,
    Mulberry32,
    RandomWalkGenerator,
    RoadGenerator,
    SpineBranchGenerator,
    make_generator,
)
from .ground import GroundFiller
from .decor import PathDecorator
from .persistence import InMemorySnapshotStore, JsonSnapshotStore, SnapshotStore
from .geometry import SceneNode

# Core schemas
from .schemas import (
    GenerationResult,
    GenerationSettings,
    GenerationStatus,
    NetworkSnapshot,
    PieceDefinition,
    PieceKind,
    PlacementRecord,
)

# Layout loader helpers
from .scenario import Layout, LayoutLoader, build_catalog, load_layout

__all__ = [
    # Pipeline
    "NetworkBuilder",
    "BuildReport",
    # Core components
    "SpatialIndex",
    "CollisionGrid",
    "OccupancyGrid",
    "OccupancyEntry",
    "CellKind",
    "render_occupancy_window",
    "SocketRole",
    "find_socket",
    "find_all_sockets",
    "resolve_world_transform",
    "AssetLoader",
    "AssetMissing",
    "BlueprintAssetLoader",
    "TrimeshAssetLoader",
    "PieceCatalog",
    "PlacedPiece",
    "PlacementEngine",
    "RoadGenerator",
    "RandomWalkGenerator",
    "FrontierGenerator",
    "SpineBranchGenerator",
    "Mulberry32",
    "make_generator",
    "GroundFiller",
    "PathDecorator",
    "SceneNode",
    # Persistence
    "SnapshotStore",
    "InMemorySnapshotStore",
    "JsonSnapshotStore",
    # Schemas
    "GenerationSettings",
    "GenerationResult",
    "GenerationStatus",
    "NetworkSnapshot",
    "PieceDefinition",
    "PieceKind",
    "PlacementRecord",
    # Layout helpers
    "Layout",
    "LayoutLoader",
    "load_layout",
    "build_catalog",
]
