"""
Piece catalog: type id → reusable template → independent placed instances.

Templates are fetched once through an ``AssetLoader`` collaborator and cached.
``instantiate`` clones the template hierarchy so every placed piece has its
own transform and sockets; ownership of the clone passes to whoever placed it.

Two loaders ship with the package:
- ``BlueprintAssetLoader`` builds socket-only hierarchies from
  ``PieceBlueprint`` data (the default piece set lives here).
- ``TrimeshAssetLoader`` reads glTF/GLB scenes with trimesh and converts the
  scene graph into ``SceneNode`` trees.

A type that fails to load is logged and marked unavailable for the rest of
the run; it never aborts generation.
"""

from __future__ import annotations

import asyncio
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np
import trimesh

from .config import Config
from .connectors import (
    SocketPath,
    SocketRole,
    SocketTransform,
    bind_sockets,
    node_at,
    resolve_world_transform,
)
from .environment import GridCell
from .geometry import Quaternion, SceneNode, Vector3, decompose, yaw_quaternion
from .logging_utils import log_error, log_info
from .schemas import (
    PieceBlueprint,
    PieceDefinition,
    PieceKind,
    PlacementRecord,
    SocketBlueprint,
)


# =============================
# Module-level Exceptions
# =============================

class AssetMissing(Exception):
    """Raised when instantiating a piece type that was never loaded or failed to load."""

    def __init__(self, type_id: str, reason: Optional[str] = None) -> None:
        self.type_id = type_id
        self.reason = reason
        message = (
            f"Piece type '{type_id}' is not available"
            + (f": {reason}" if reason else "")
            + "\n\nRemediation tips:\n"
            "  - Register a PieceDefinition for the type before loading\n"
            "  - await catalog.load(type_id) before instantiating\n"
            "  - Check ROADNET_ASSET_ROOT when using mesh assets"
        )
        super().__init__(message)


# =============================
# Asset loaders
# =============================

class AssetLoader(ABC):
    """Collaborator that turns an asset path into a piece hierarchy."""

    @abstractmethod
    async def load_asset(self, path: str) -> SceneNode:
        """Fetch and parse ``path``. Raises on network or parse errors."""


def build_blueprint(name: str, blueprint: PieceBlueprint) -> SceneNode:
    root = SceneNode(name=name)
    for socket_name, socket in blueprint.sockets.items():
        root.add(
            SceneNode(
                name=socket_name,
                position=tuple(socket.position),
                orientation=yaw_quaternion(socket.yaw),
            )
        )
    return root


def straight_blueprint(length: float) -> PieceBlueprint:
    return PieceBlueprint(sockets={"socket_out": SocketBlueprint(position=(0.0, 0.0, length))})


def curve_blueprint(radius: float, angle: float) -> PieceBlueprint:
    """Arc turning toward +X (right) by ``angle`` degrees."""
    theta = math.radians(angle)
    end = (radius * (1.0 - math.cos(theta)), 0.0, radius * math.sin(theta))
    return PieceBlueprint(sockets={"socket_out": SocketBlueprint(position=end, yaw=angle)})


def intersection_blueprint(length: float) -> PieceBlueprint:
    """Four-way crossing; side exits sit half-way along, facing ±X."""
    half = length / 2.0
    return PieceBlueprint(
        sockets={
            "socket_out": SocketBlueprint(position=(0.0, 0.0, length)),
            "socket_left": SocketBlueprint(position=(-half, 0.0, half), yaw=-90.0),
            "socket_right": SocketBlueprint(position=(half, 0.0, half), yaw=90.0),
        }
    )


DEFAULT_BLUEPRINTS: Dict[str, PieceBlueprint] = {
    "road_long": straight_blueprint(10.0),
    "road_short": straight_blueprint(5.0),
    "road_curve_wide": curve_blueprint(10.0, 45.0),
    "road_curve_tight": curve_blueprint(5.0, 90.0),
    "Road1": straight_blueprint(10.0),
    "RoadX": intersection_blueprint(10.0),
}

DEFAULT_PIECES: List[PieceDefinition] = [
    PieceDefinition(type_id="road_long", kind=PieceKind.STRAIGHT),
    PieceDefinition(type_id="road_short", kind=PieceKind.STRAIGHT),
    PieceDefinition(type_id="road_curve_wide", kind=PieceKind.CURVE),
    PieceDefinition(type_id="road_curve_tight", kind=PieceKind.CURVE),
    PieceDefinition(type_id="Road1", kind=PieceKind.STRAIGHT),
    PieceDefinition(type_id="RoadX", kind=PieceKind.INTERSECTION),
]


class BlueprintAssetLoader(AssetLoader):
    """Builds hierarchies from socket blueprints keyed by asset path."""

    def __init__(self, blueprints: Optional[Dict[str, PieceBlueprint]] = None):
        self.blueprints: Dict[str, PieceBlueprint] = dict(
            DEFAULT_BLUEPRINTS if blueprints is None else blueprints
        )

    def register(self, path: str, blueprint: PieceBlueprint) -> None:
        self.blueprints[path] = blueprint

    async def load_asset(self, path: str) -> SceneNode:
        blueprint = self.blueprints.get(path)
        if blueprint is None:
            raise FileNotFoundError(f"No blueprint registered for '{path}'")
        return build_blueprint(Path(path).stem or path, blueprint)


def scene_to_node(scene: trimesh.Scene, name: str) -> SceneNode:
    """Convert a trimesh scene graph into a ``SceneNode`` tree."""
    graph = scene.graph
    children: Dict[str, List[str]] = {}
    for parent, child, _ in graph.to_edgelist():
        children.setdefault(parent, []).append(child)

    def _build(frame: str, node: SceneNode) -> None:
        for child in children.get(frame, []):
            matrix, geometry = graph.get(frame_to=child, frame_from=frame)
            position, orientation, scale = decompose(np.asarray(matrix, dtype=float))
            payload = scene.geometry.get(geometry) if geometry else None
            _build(child, node.add(SceneNode(
                name=str(child),
                position=position,
                orientation=orientation,
                scale=scale,
                payload=payload,
            )))

    root = SceneNode(name=name)
    _build(graph.base_frame, root)
    return root


class TrimeshAssetLoader(AssetLoader):
    """Loads glTF/GLB files relative to an asset root.

    Parsing is CPU-bound, so it runs in a worker thread to keep the event
    loop free while other templates are fetched.
    """

    def __init__(self, root: Optional[Path | str] = None):
        self.root = Path(root) if root is not None else Config.ASSET_ROOT

    async def load_asset(self, path: str) -> SceneNode:
        full_path = self.root / path
        if not full_path.exists():
            raise FileNotFoundError(f"Asset not found at {full_path}")
        scene = await asyncio.to_thread(trimesh.load, str(full_path), force="scene")
        return scene_to_node(scene, name=full_path.stem)


# =============================
# Templates and instances
# =============================

@dataclass
class PieceTemplate:
    type_id: str
    kind: PieceKind
    root: SceneNode
    sockets: Dict[SocketRole, SocketPath]


@dataclass(eq=False)
class PlacedPiece:
    """An instantiated piece.

    ``fine_cells`` and ``tile_cells`` are filled in when the placement engine
    commits the piece and are not changed afterwards.
    """

    type_id: str
    kind: PieceKind
    root: SceneNode
    sockets: Dict[SocketRole, SocketPath]
    mirrored: bool = False
    fine_cells: Tuple[GridCell, ...] = ()
    tile_cells: Tuple[GridCell, ...] = ()
    metadata: Dict[str, object] = field(default_factory=dict)

    @property
    def position(self) -> Vector3:
        return self.root.position

    @property
    def orientation(self) -> Quaternion:
        return self.root.orientation

    @property
    def scale(self) -> float:
        return abs(self.root.scale[1])

    @property
    def is_curve(self) -> bool:
        return self.kind == PieceKind.CURVE

    def place(
        self,
        position: Vector3,
        orientation: Quaternion,
        scale: float = 1.0,
        mirrored: bool = False,
    ) -> None:
        """Snap the piece origin onto ``position``/``orientation``.

        Mirroring negates the local x scale, which flips which way a curve
        turns.
        """
        self.mirrored = mirrored
        self.root.set_transform(position, orientation, (-scale if mirrored else scale, scale, scale))

    def socket(self, role: SocketRole) -> Optional[SceneNode]:
        path = self.sockets.get(role)
        return node_at(self.root, path) if path is not None else None

    def socket_transform(self, role: SocketRole) -> Optional[SocketTransform]:
        node = self.socket(role)
        return resolve_world_transform(node) if node is not None else None

    def socket_transforms(self) -> Dict[SocketRole, SocketTransform]:
        """World transforms of every socket, in role order (out, left, right)."""
        transforms: Dict[SocketRole, SocketTransform] = {}
        for role in SocketRole:
            transform = self.socket_transform(role)
            if transform is not None:
                transforms[role] = transform
        return transforms

    def to_record(self) -> PlacementRecord:
        return PlacementRecord(
            type_id=self.type_id,
            position=self.position,
            orientation=self.orientation,
            scale=self.scale,
            mirrored=self.mirrored,
        )


class PieceCatalog:
    """Registry of piece definitions plus a cache of loaded templates."""

    def __init__(
        self,
        loader: Optional[AssetLoader] = None,
        definitions: Optional[Iterable[PieceDefinition]] = None,
    ):
        self.loader = loader or BlueprintAssetLoader()
        self.definitions: Dict[str, PieceDefinition] = {}
        for definition in definitions if definitions is not None else DEFAULT_PIECES:
            self.register(definition)
        self._templates: Dict[str, PieceTemplate] = {}
        self._pending: Dict[str, asyncio.Future] = {}
        # type_id -> reason; consulted before every fetch
        self.unavailable: Dict[str, str] = {}

    def register(self, definition: PieceDefinition) -> None:
        self.definitions[definition.type_id] = definition
        if definition.blueprint is not None and isinstance(self.loader, BlueprintAssetLoader):
            self.loader.register(definition.asset_path, definition.blueprint)

    async def load(self, type_id: str) -> Optional[PieceTemplate]:
        """Fetch and cache the template for ``type_id``.

        Idempotent: cached, in-flight and previously failed types are never
        fetched twice. Returns None when the type is unavailable.
        """
        if type_id in self._templates:
            return self._templates[type_id]
        if type_id in self.unavailable:
            return None
        if type_id not in self._pending:
            self._pending[type_id] = asyncio.ensure_future(self._fetch(type_id))
        try:
            return await self._pending[type_id]
        finally:
            self._pending.pop(type_id, None)

    async def _fetch(self, type_id: str) -> Optional[PieceTemplate]:
        definition = self.definitions.get(type_id)
        if definition is None:
            self.unavailable[type_id] = "no piece definition registered"
            log_error(f"[Catalog] Unknown piece type '{type_id}'")
            return None

        try:
            root = await self.loader.load_asset(definition.asset_path)
        except Exception as exc:
            self.unavailable[type_id] = str(exc)
            log_error(f"[Catalog] Failed to load '{type_id}' from {definition.asset_path}: {exc}")
            return None

        template = PieceTemplate(
            type_id=type_id,
            kind=definition.kind,
            root=root,
            sockets=bind_sockets(root),
        )
        self._templates[type_id] = template
        roles = ", ".join(role.value for role in template.sockets) or "none"
        log_info(f"[Catalog] Loaded {type_id} ({definition.kind.value}; sockets: {roles})")
        return template

    async def load_all(self, type_ids: Optional[Iterable[str]] = None) -> List[str]:
        """Load several types concurrently; returns the ones now available."""
        wanted = list(type_ids) if type_ids is not None else list(self.definitions)
        await asyncio.gather(*(self.load(type_id) for type_id in wanted))
        return [type_id for type_id in wanted if type_id in self._templates]

    def is_available(self, type_id: str) -> bool:
        return type_id in self._templates

    def available(self, kind: Optional[PieceKind] = None) -> List[str]:
        """Loaded type ids in registration order, optionally of one kind."""
        return [
            type_id
            for type_id in self.definitions
            if type_id in self._templates
            and (kind is None or self._templates[type_id].kind == kind)
        ]

    def kind_of(self, type_id: str) -> PieceKind:
        if type_id in self._templates:
            return self._templates[type_id].kind
        if type_id in self.definitions:
            return self.definitions[type_id].kind
        raise AssetMissing(type_id, "no piece definition registered")

    def instantiate(self, type_id: str) -> PlacedPiece:
        template = self._templates.get(type_id)
        if template is None:
            raise AssetMissing(type_id, self.unavailable.get(type_id, "template was never loaded"))
        return PlacedPiece(
            type_id=type_id,
            kind=template.kind,
            root=template.root.clone(),
            sockets=template.sockets,
        )
