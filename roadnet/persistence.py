"""
Snapshot stores for generated road networks.

A ``NetworkSnapshot`` holds the strategy and settings a network was generated
with plus the final transform of every piece. Stores only move snapshots in
and out of storage; replaying one onto a scene is ``NetworkBuilder.restore``.

Two implementations ship:
1. InMemorySnapshotStore - dict-backed, lost on exit (tests, prototyping)
2. JsonSnapshotStore - one pretty-printed ``{id}.json`` file per snapshot

Persistence is optional: a builder without a store never writes anything.

Usage pattern:
    store = JsonSnapshotStore("snapshots")
    await store.initialize()
    await store.save(snapshot)
    restored = await store.load(snapshot.id)
    await store.close()
"""

import asyncio
import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional
from uuid import UUID

from .schemas import NetworkSnapshot


class SnapshotStore(ABC):
    """Async storage interface for network snapshots."""

    @abstractmethod
    async def initialize(self) -> None:
        """Prepare the backend (create directories, open connections)."""
        pass

    @abstractmethod
    async def close(self) -> None:
        pass

    @abstractmethod
    async def save(self, snapshot: NetworkSnapshot) -> None:
        """Store ``snapshot``, replacing any snapshot with the same id."""
        pass

    @abstractmethod
    async def load(self, snapshot_id: UUID) -> Optional[NetworkSnapshot]:
        """Return the snapshot, or None if it does not exist."""
        pass

    @abstractmethod
    async def list_ids(self) -> List[UUID]:
        pass

    @abstractmethod
    async def delete(self, snapshot_id: UUID) -> bool:
        """Remove a snapshot. Returns False if there was nothing to remove."""
        pass


class InMemorySnapshotStore(SnapshotStore):
    """Dict-based store; snapshots are copied in and out so callers cannot mutate them."""

    def __init__(self):
        self.snapshots: Dict[UUID, NetworkSnapshot] = {}

    async def initialize(self) -> None:
        return None

    async def close(self) -> None:
        return None

    async def save(self, snapshot: NetworkSnapshot) -> None:
        self.snapshots[snapshot.id] = snapshot.model_copy(deep=True)

    async def load(self, snapshot_id: UUID) -> Optional[NetworkSnapshot]:
        snapshot = self.snapshots.get(snapshot_id)
        return snapshot.model_copy(deep=True) if snapshot else None

    async def list_ids(self) -> List[UUID]:
        return sorted(self.snapshots, key=lambda sid: self.snapshots[sid].created_at)

    async def delete(self, snapshot_id: UUID) -> bool:
        return self.snapshots.pop(snapshot_id, None) is not None


class JsonSnapshotStore(SnapshotStore):
    """File-based store: ``{base_path}/{snapshot_id}.json``.

    File I/O runs in a worker thread via ``asyncio.to_thread``.
    """

    def __init__(self, base_path: Path | str = "snapshots"):
        self.base_path = Path(base_path)

    def _path(self, snapshot_id: UUID) -> Path:
        return self.base_path / f"{snapshot_id}.json"

    async def initialize(self) -> None:
        await asyncio.to_thread(self.base_path.mkdir, parents=True, exist_ok=True)

    async def close(self) -> None:
        # Nothing to clean up for JSON files
        return None

    async def save(self, snapshot: NetworkSnapshot) -> None:
        await asyncio.to_thread(self.base_path.mkdir, parents=True, exist_ok=True)
        payload = snapshot.model_dump(mode="json")
        await asyncio.to_thread(
            self._path(snapshot.id).write_text, json.dumps(payload, indent=2), "utf-8"
        )

    async def load(self, snapshot_id: UUID) -> Optional[NetworkSnapshot]:
        path = self._path(snapshot_id)
        if not path.exists():
            return None
        text = await asyncio.to_thread(path.read_text, "utf-8")
        return NetworkSnapshot.model_validate(json.loads(text))

    async def list_ids(self) -> List[UUID]:
        if not self.base_path.exists():
            return []
        paths = await asyncio.to_thread(lambda: sorted(self.base_path.glob("*.json")))
        ids: List[UUID] = []
        for path in paths:
            try:
                ids.append(UUID(path.stem))
            except ValueError:
                continue  # Not a snapshot file
        return ids

    async def delete(self, snapshot_id: UUID) -> bool:
        path = self._path(snapshot_id)
        if not path.exists():
            return False
        await asyncio.to_thread(path.unlink)
        return True
