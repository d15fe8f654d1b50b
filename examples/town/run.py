"""
Town: seeded main street with side streets, ground fill and utility poles
=========================================================================

WHAT THIS SHOWS:
- Loading a JSON layout (piece set + settings)
- Spine-and-branch generation (same seed, same town)
- Ground fill after roads, so no tile sits under a road
- Saving and replaying a transform snapshot

RUN:
    python -m examples.town.run
    python -m examples.town.run country_road
"""

import asyncio
import sys
import tempfile

from roadnet import (
    JsonSnapshotStore,
    NetworkBuilder,
    PathDecorator,
    build_catalog,
    load_layout,
    render_occupancy_window,
)
from roadnet.config import Config


async def main(layout_name: str = "town") -> None:
    Config.validate()
    print(Config.display())
    print()

    layout = load_layout(layout_name)
    print(f"Layout: {layout.name} ({layout.strategy})")
    print(f"  {layout.description}\n")

    with tempfile.TemporaryDirectory() as snapshot_dir:
        store = JsonSnapshotStore(snapshot_dir)
        builder = NetworkBuilder(
            build_catalog(layout),
            layout.settings,
            strategy=layout.strategy,
            ground_size=layout.ground_size,
            decorator=PathDecorator() if layout.decorate else None,
            snapshot_store=store,
        )
        report = await builder.build()

        result = report.result
        print()
        print(f"Placed {result.placed}/{result.requested} pieces ({result.status.value})")
        print(f"Branches: {result.branches}, overlapping cells: {result.overlaps}")
        print(f"Ground tiles: {report.tiles}")
        print()
        print(render_occupancy_window(builder.index.tiles, (0, 0), radius=6))

        # Replay the saved transforms into a fresh builder
        snapshot = await store.load(report.snapshot_id)
        replay = NetworkBuilder(build_catalog(layout), strategy=layout.strategy, ground_size=layout.ground_size)
        replayed = await replay.build(snapshot=snapshot)
        same = [r.model_dump() for r in replayed.result.records] == [r.model_dump() for r in result.records]
        print(f"\nSnapshot replay matches: {same}")


if __name__ == "__main__":
    asyncio.run(main(*sys.argv[1:2]))
