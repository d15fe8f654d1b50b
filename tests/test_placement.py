"""Tests for collision-checked placement and road/tile interaction."""

import pytest

from roadnet.catalog import PieceCatalog
from roadnet.environment import CellKind, SpatialIndex
from roadnet.geometry import IDENTITY_QUATERNION, yaw_quaternion
from roadnet.ground import GroundFiller
from roadnet.placement import PlacementEngine

from conftest import load_catalog


def test_short_straight_claims_four_fine_cells(engine, index):
    piece = engine.try_place("road_short", (0.0, 0.0, 0.0), IDENTITY_QUATERNION)

    assert piece is not None
    assert len(engine.sample_centerline(piece)) == 6
    assert list(piece.fine_cells) == [(0, 0), (0, 1), (0, 2), (0, 3)]
    assert index.collision.cells == {(0, 0), (0, 1), (0, 2), (0, 3)}


def test_overlapping_piece_is_rejected_without_side_effects(engine, index):
    engine.try_place("road_long", (0.0, 0.0, 0.0), IDENTITY_QUATERNION)
    before = set(index.collision.cells)
    tiles_before = dict(index.tiles.entries)

    crossing = engine.try_place("road_long", (-5.0, 0.0, 4.0), yaw_quaternion(90))

    assert crossing is None
    assert index.collision.cells == before
    assert index.tiles.entries == tiles_before


def test_seam_exclusion_lets_next_piece_touch_previous(engine):
    first = engine.try_place("road_long", (0.0, 0.0, 0.0), IDENTITY_QUATERNION)
    exit_frame = engine.exit_transform(first)

    # The next piece's origin sits on the last cell of the first piece
    blocked = engine.try_place("road_long", exit_frame.position, exit_frame.orientation)
    assert blocked is None

    second = engine.try_place(
        "road_long", exit_frame.position, exit_frame.orientation, exclude=first.fine_cells
    )
    assert second is not None
    assert second.position == pytest.approx(exit_frame.position)


def test_force_place_reports_conflicts(engine):
    engine.try_place("road_long", (0.0, 0.0, 0.0), IDENTITY_QUATERNION)
    piece, conflicts = engine.force_place("road_long", (0.0, 0.0, 0.0), IDENTITY_QUATERNION)

    assert piece is not None
    assert len(conflicts) == len(piece.fine_cells)


def test_commit_replaces_ground_tiles_with_road_entries(catalog):
    index = SpatialIndex()
    ground = GroundFiller(index)
    engine = PlacementEngine(catalog, index, ground=ground)
    ground.fill(4, 4)
    assert len(ground.tiles) == 16

    piece = engine.try_place("road_long", (0.0, 0.0, 0.0), IDENTITY_QUATERNION)

    # Samples at z = 0, 2, ..., 10 fall in coarse cells (0, 0) and (0, 1)
    assert list(piece.tile_cells) == [(0, 0), (0, 1)]
    for cell in piece.tile_cells:
        entry = index.tiles.get(cell)
        assert entry.kind == CellKind.ROAD
        assert entry.owner is piece
    assert len(ground.tiles) == 14
    assert all(tile.cell not in piece.tile_cells for tile in ground.tiles)


def test_commit_without_ground_filler_still_clears_tiles(catalog):
    index = SpatialIndex()
    GroundFiller(index).fill(2, 2)
    engine = PlacementEngine(catalog, index)

    engine.try_place("road_short", (0.0, 0.0, 0.0), IDENTITY_QUATERNION)
    assert index.tiles.get((0, 0)).kind == CellKind.ROAD


def test_mirrored_curve_turns_left(engine):
    right = engine.try_place("road_curve_tight", (0.0, 0.0, 0.0), IDENTITY_QUATERNION)
    engine.reset([right])
    left = engine.try_place("road_curve_tight", (0.0, 0.0, 0.0), IDENTITY_QUATERNION, mirrored=True)

    assert engine.exit_transform(right).position == pytest.approx((5.0, 0.0, 5.0), abs=1e-9)
    assert engine.exit_transform(left).position == pytest.approx((-5.0, 0.0, 5.0), abs=1e-9)
    assert left.to_record().mirrored is True
    assert left.scale == pytest.approx(1.0)


def test_listeners_receive_committed_pieces():
    seen = []
    catalog = load_catalog(PieceCatalog())
    engine = PlacementEngine(catalog, SpatialIndex(), listeners=[seen.append])

    piece = engine.try_place("road_long", (0.0, 0.0, 0.0), IDENTITY_QUATERNION)
    engine.try_place("road_long", (0.0, 0.0, 0.0), IDENTITY_QUATERNION)

    assert seen == [piece]


def test_reset_clears_roads_but_keeps_tiles(engine, index, ground):
    ground.fill(4, 4)
    piece = engine.try_place("road_long", (0.0, 0.0, 0.0), IDENTITY_QUATERNION)
    engine.reset([piece])

    assert len(index.collision) == 0
    assert index.tiles.cells_of_kind(CellKind.ROAD) == []
    assert len(index.tiles.cells_of_kind(CellKind.GROUND_TILE)) == 14
