"""Tests for in-memory and JSON snapshot stores."""

from uuid import uuid4

import pytest

from roadnet.persistence import InMemorySnapshotStore, JsonSnapshotStore
from roadnet.schemas import GenerationSettings, NetworkSnapshot, PlacementRecord


def make_snapshot() -> NetworkSnapshot:
    return NetworkSnapshot(
        strategy="spine_branch",
        settings=GenerationSettings(seed=7, spine_length=3),
        records=[
            PlacementRecord(type_id="Road1", position=(0.0, 0.0, 0.0), orientation=(0.0, 0.0, 0.0, 1.0)),
            PlacementRecord(
                type_id="road_curve_tight",
                position=(0.0, 0.0, 10.0),
                orientation=(0.0, 0.0, 0.0, 1.0),
                mirrored=True,
            ),
        ],
    )


@pytest.mark.asyncio
async def test_in_memory_store_round_trip():
    store = InMemorySnapshotStore()
    await store.initialize()

    snapshot = make_snapshot()
    await store.save(snapshot)
    loaded = await store.load(snapshot.id)

    assert loaded == snapshot
    assert loaded is not snapshot
    assert await store.list_ids() == [snapshot.id]
    assert await store.load(uuid4()) is None

    assert await store.delete(snapshot.id) is True
    assert await store.delete(snapshot.id) is False
    await store.close()


@pytest.mark.asyncio
async def test_json_store_writes_one_file_per_snapshot(tmp_path):
    store = JsonSnapshotStore(tmp_path / "snapshots")
    await store.initialize()

    first, second = make_snapshot(), make_snapshot()
    await store.save(first)
    await store.save(second)
    (tmp_path / "snapshots" / "notes.json").write_text("{}", "utf-8")

    assert (tmp_path / "snapshots" / f"{first.id}.json").exists()
    assert set(await store.list_ids()) == {first.id, second.id}

    loaded = await store.load(first.id)
    assert loaded == first
    assert loaded.records[1].mirrored is True
    assert loaded.settings.seed == 7

    assert await store.delete(second.id) is True
    assert await store.load(second.id) is None
    await store.close()


@pytest.mark.asyncio
async def test_json_store_missing_directory_lists_nothing(tmp_path):
    store = JsonSnapshotStore(tmp_path / "never-created")
    assert await store.list_ids() == []
    assert await store.load(uuid4()) is None
