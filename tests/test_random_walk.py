"""Tests for the bounded random walk generator."""

import contextlib
import io
import random

import pytest

from roadnet.generators import Candidate, DirectionBalance, RandomWalkGenerator
from roadnet.geometry import IDENTITY_QUATERNION
from roadnet.schemas import GenerationSettings, GenerationStatus, PieceKind


class CurvesFirst(random.Random):
    """Shuffle that always puts curves first, right-hand before mirrored."""

    def shuffle(self, x):
        x.sort(key=lambda c: (not c.is_curve, c.mirrored))


def walk(engine, rng=None, **overrides) -> RandomWalkGenerator:
    settings = GenerationSettings(**{"piece_count": 30, **overrides})
    return RandomWalkGenerator(engine, settings, rng=rng or random.Random(7))


def run_quietly(generator):
    with contextlib.redirect_stdout(io.StringIO()):
        return generator.generate()


def test_direction_balance_rules():
    balance = DirectionBalance(min_straights_after_curve=1, max_same_direction=2)
    right = Candidate("bend", PieceKind.CURVE)
    left = Candidate("bend", PieceKind.CURVE, mirrored=True)
    straight = Candidate("road", PieceKind.STRAIGHT)

    assert balance.allows(right)
    balance.record(right)
    assert not balance.allows(right)  # needs a straight first
    assert balance.allows(straight)
    balance.record(straight)
    balance.record(right)
    balance.record(straight)

    assert not balance.allows(right)  # third right in a row
    assert balance.allows(left)
    balance.record(left)
    balance.record(straight)
    assert balance.allows(right)


def test_third_same_direction_curve_rejected_even_when_it_fits(engine):
    generator = walk(
        engine,
        rng=CurvesFirst(),
        piece_count=6,
        warmup_straights=0,
        min_straights_after_curve=0,
        max_same_direction_curves=2,
    )
    generator.piece_types = ["road_curve_wide", "road_long"]
    result = run_quietly(generator)

    assert result.status == GenerationStatus.DONE
    assert [c.direction for c in generator.chosen] == [1, 1, -1, 1, 1, -1]

    # The vetoed third right-hand curve would have fit geometrically
    engine.reset(generator.pieces)
    position, orientation, recent = (0.0, 0.0, 0.0), IDENTITY_QUATERNION, []
    for _ in range(3):
        piece = engine.try_place(
            "road_curve_wide", position, orientation, exclude={c for p in recent for c in p.fine_cells}
        )
        assert piece is not None
        recent.append(piece)
        frame = engine.exit_transform(piece)
        position, orientation = frame.position, frame.orientation


def test_warmup_and_spacing_rules_hold(engine):
    generator = walk(engine, rng=random.Random(3))
    run_quietly(generator)
    chosen = generator.chosen

    assert all(not c.is_curve for c in chosen[:3])
    for a, b in zip(chosen, chosen[1:]):
        assert not (a.is_curve and b.is_curve)
    directions = [c.direction for c in chosen if c.is_curve]
    for i in range(len(directions) - 2):
        assert len(set(directions[i : i + 3])) > 1


@pytest.mark.parametrize("seed", [1, 7, 42])
def test_no_self_overlap_outside_seam_window(engine, seed):
    window = 3
    generator = walk(engine, rng=random.Random(seed), seam_tolerance_window=window)
    run_quietly(generator)
    pieces = generator.pieces

    for j, later in enumerate(pieces):
        recent = {c for p in pieces[max(j - window, 0) : j] for c in p.fine_cells}
        for earlier in pieces[: max(j - window, 0)]:
            shared = set(later.fine_cells) & set(earlier.fine_cells)
            assert shared <= recent


def test_socket_continuity(engine):
    generator = walk(engine, rng=random.Random(11))
    run_quietly(generator)

    for a, b in zip(generator.pieces, generator.pieces[1:]):
        exit_frame = engine.exit_transform(a)
        assert b.position == pytest.approx(exit_frame.position, abs=1e-9)


def test_dead_end_stalls_and_reports_shortfall(engine, index):
    index.collision.occupy((0, 6))
    generator = walk(engine, piece_count=5)
    generator.piece_types = ["road_long"]

    buffer = io.StringIO()
    with contextlib.redirect_stdout(buffer):
        result = generator.generate()

    assert result.status == GenerationStatus.STALLED
    assert (result.placed, result.requested, result.shortfall) == (1, 5, 4)
    assert "[!] [RandomWalk] Dead end at segment 1" in buffer.getvalue()


def test_restart_replaces_previous_run(engine, index):
    generator = walk(engine, piece_count=10)
    run_quietly(generator)
    first_pieces = list(generator.pieces)

    run_quietly(generator)

    assert all(piece.root.parent is None for piece in first_pieces)
    expected = {c for p in generator.pieces for c in p.fine_cells}
    assert index.collision.cells == expected
