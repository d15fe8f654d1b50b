"""Tests for ground-tile filling around roads."""

import contextlib
import io
import random

from roadnet.environment import CellKind, OccupancyEntry, SpatialIndex
from roadnet.generators import RandomWalkGenerator, SpineBranchGenerator
from roadnet.ground import GroundFiller
from roadnet.schemas import GenerationSettings


def test_fill_four_by_four_on_empty_index():
    index = SpatialIndex()
    filler = GroundFiller(index)

    with contextlib.redirect_stdout(io.StringIO()):
        count = filler.fill(4, 4)

    assert count == 16
    assert sorted(tile.cell for tile in filler.tiles) == [
        (x, z) for x in range(-2, 2) for z in range(-2, 2)
    ]
    tile = next(t for t in filler.tiles if t.cell == (1, -2))
    assert tile.position == (10.0, -0.01, -20.0)
    assert len(filler.root.children) == 16


def test_fill_is_idempotent():
    index = SpatialIndex()
    filler = GroundFiller(index)
    index.tiles.occupy((0, 0), OccupancyEntry(kind=CellKind.ROAD))

    with contextlib.redirect_stdout(io.StringIO()):
        filler.fill(6, 6)
        first = sorted(t.cell for t in filler.tiles)
        filler.fill(6, 6)

    assert sorted(t.cell for t in filler.tiles) == first
    assert len(first) == 35
    assert len(index.tiles.cells_of_kind(CellKind.GROUND_TILE)) == 35
    assert len(filler.root.children) == 35


def test_odd_extent_is_centred():
    filler = GroundFiller(SpatialIndex())
    with contextlib.redirect_stdout(io.StringIO()):
        filler.fill(3, 1)
    assert sorted(t.cell for t in filler.tiles) == [(-1, 0), (0, 0), (1, 0)]


def test_remove_at_only_touches_ground_tiles():
    index = SpatialIndex()
    filler = GroundFiller(index)
    with contextlib.redirect_stdout(io.StringIO()):
        filler.fill(2, 2)
        index.tiles.occupy((5, 5), OccupancyEntry(kind=CellKind.ROAD))

        tile = next(t for t in filler.tiles if t.cell == (0, 0))
        assert filler.remove_at((0, 0)) is True
        assert filler.remove_at((0, 0)) is False
        assert filler.remove_at((5, 5)) is False

    assert tile.node is None
    assert tile not in filler.tiles
    assert index.tiles.get((0, 0)) is None
    assert index.tiles.get((5, 5)).kind == CellKind.ROAD


def test_no_tile_under_any_road_after_fill(engine, index, ground):
    settings = GenerationSettings(piece_count=25, spine_length=12, intersection_probability=0.4)
    with contextlib.redirect_stdout(io.StringIO()):
        SpineBranchGenerator(engine, settings).generate()
        ground.fill(20, 20)

    road_cells = set(index.tiles.cells_of_kind(CellKind.ROAD))
    assert road_cells
    assert not road_cells & {tile.cell for tile in ground.tiles}
    assert len(ground.tiles) + len(road_cells & _square(20)) == 400


def test_roads_placed_after_fill_evict_tiles(engine, index, ground):
    with contextlib.redirect_stdout(io.StringIO()):
        ground.fill(10, 10)
        generator = RandomWalkGenerator(engine, GenerationSettings(piece_count=15), rng=random.Random(8))
        generator.generate()

    for piece in generator.pieces:
        for cell in piece.tile_cells:
            assert index.tiles.get(cell).kind == CellKind.ROAD
    tile_cells = {tile.cell for tile in ground.tiles}
    assert tile_cells == set(index.tiles.cells_of_kind(CellKind.GROUND_TILE))


def _square(size):
    half = size // 2
    return {(x, z) for x in range(-half, size - half) for z in range(-half, size - half)}
