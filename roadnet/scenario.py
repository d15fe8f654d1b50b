"""
Layout loading for JSON-defined road networks.

A layout names a generation strategy, its settings and the piece set to use.
Pieces either point at a mesh asset (loaded with trimesh) or carry inline
socket blueprints, so a layout can be tried without any asset files.

Layout file structure:
```json
{
  "name": "Town",
  "description": "...",
  "strategy": "spine_branch",
  "settings": {"seed": 12345, "spine_length": 20, "branch_length": 5},
  "ground_size": 20,
  "decorate": true,
  "pieces": [
    {"type_id": "Road1", "kind": "straight",
     "blueprint": {"sockets": {"socket_out": {"position": [0, 0, 10]}}}},
    {"type_id": "RoadX", "kind": "intersection", "asset": "RoadX.glb"}
  ]
}
```

Usage:
    loader = LayoutLoader()
    layout = loader.load("town")
    catalog = build_catalog(layout)
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

from .catalog import AssetLoader, BlueprintAssetLoader, PieceCatalog, TrimeshAssetLoader
from .config import Config
from .generators import GENERATORS
from .schemas import GenerationSettings, PieceDefinition


class Layout(BaseModel):
    name: str
    description: str = ""
    strategy: str = "spine_branch"
    settings: GenerationSettings = Field(default_factory=GenerationSettings)
    pieces: List[PieceDefinition] = Field(default_factory=list)
    ground_size: int = Field(default_factory=lambda: Config.GROUND_SIZE, ge=0)
    decorate: bool = False


class LayoutLoader:
    """Load and validate layouts from ``{layouts_dir}/{name}.json``.

    Validation:
    - Required fields: name, strategy, pieces
    - ``strategy`` must be a registered generator
    - At least one piece, and no duplicate type ids
    - Raises ValueError if validation fails
    """

    def __init__(self, layouts_dir: Optional[Path] = None):
        self.layouts_dir = layouts_dir or Config.LAYOUTS_DIR

    def load(self, layout_name: str) -> Layout:
        """Load a layout by name.

        Raises:
            FileNotFoundError: If the layout file doesn't exist
            ValueError: If the layout is missing fields or malformed
            json.JSONDecodeError: If the file contains invalid JSON
        """
        layout_path = self.layouts_dir / f"{layout_name}.json"

        if not layout_path.exists():
            raise FileNotFoundError(f"Layout '{layout_name}' not found at {layout_path}")

        data = json.loads(layout_path.read_text())
        return self.parse(data)

    def parse(self, data: Dict[str, Any]) -> Layout:
        self._validate_layout(data)
        try:
            return Layout.model_validate(data)
        except ValidationError as exc:
            raise ValueError(f"Layout '{data.get('name')}' is malformed:\n{exc}") from exc

    def _validate_layout(self, data: Dict[str, Any]) -> None:
        required = ["name", "strategy", "pieces"]
        missing = [field for field in required if field not in data]
        if missing:
            raise ValueError(f"Layout missing required fields: {missing}")

        if data["strategy"] not in GENERATORS:
            known = ", ".join(sorted(GENERATORS))
            raise ValueError(f"Unknown strategy '{data['strategy']}' (expected one of: {known})")

        if not data["pieces"]:
            raise ValueError("Layout must define at least one piece")

        seen = set()
        for piece in data["pieces"]:
            if "type_id" not in piece:
                raise ValueError("Each piece entry must include a 'type_id'")
            if piece["type_id"] in seen:
                raise ValueError(f"Duplicate piece type '{piece['type_id']}'")
            seen.add(piece["type_id"])


def load_layout(name: str, layouts_dir: Optional[Path] = None) -> Layout:
    return LayoutLoader(layouts_dir).load(name)


class LayoutAssetLoader(AssetLoader):
    """Routes inline blueprints and mesh paths to the matching loader."""

    def __init__(self, blueprints: BlueprintAssetLoader, meshes: AssetLoader):
        self.blueprints = blueprints
        self.meshes = meshes

    async def load_asset(self, path: str):
        if path in self.blueprints.blueprints:
            return await self.blueprints.load_asset(path)
        return await self.meshes.load_asset(path)


def build_catalog(layout: Layout, mesh_loader: Optional[AssetLoader] = None) -> PieceCatalog:
    """Catalog for a layout's piece set.

    Pieces with inline blueprints are built directly; the rest are read by
    ``mesh_loader`` (a ``TrimeshAssetLoader`` over ``Config.ASSET_ROOT`` by
    default).
    """
    blueprints = BlueprintAssetLoader(blueprints={})
    for piece in layout.pieces:
        if piece.blueprint is not None:
            blueprints.register(piece.asset_path, piece.blueprint)
    loader = LayoutAssetLoader(blueprints, mesh_loader or TrimeshAssetLoader())
    return PieceCatalog(loader=loader, definitions=layout.pieces)
