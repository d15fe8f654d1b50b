"""Tests for the frontier (open-socket queue) generator."""

import contextlib
import io
import random

import pytest

from roadnet.catalog import PieceCatalog
from roadnet.connectors import SocketRole
from roadnet.environment import SpatialIndex
from roadnet.generators import FrontierGenerator
from roadnet.placement import PlacementEngine
from roadnet.schemas import GenerationSettings, GenerationStatus, PieceDefinition, PieceKind

from conftest import load_catalog


class FirstSocket(random.Random):
    """Always pops the oldest open socket."""

    def randrange(self, start, stop=None, step=1):
        return 0


def generate(generator):
    buffer = io.StringIO()
    with contextlib.redirect_stdout(buffer):
        result = generator.generate()
    return result, buffer.getvalue()


def junction_only_engine(index):
    catalog = load_catalog(
        PieceCatalog(definitions=[PieceDefinition(type_id="RoadX", kind=PieceKind.INTERSECTION)])
    )
    return PlacementEngine(catalog, index)


@pytest.mark.parametrize("seed", [2, 5, 9])
def test_network_respects_collision_and_counts(engine, seed):
    settings = GenerationSettings(piece_count=20, attempt_multiplier=10)
    generator = FrontierGenerator(engine, settings, rng=random.Random(seed))
    result, _ = generate(generator)

    pieces = generator.pieces
    assert result.placed == len(pieces) >= 1
    assert result.attempts <= 20 * 10
    if result.status == GenerationStatus.DONE:
        assert result.placed == 20
    assert result.branches == sum(1 for p in pieces if p.kind == PieceKind.INTERSECTION)

    # A piece may only share cells with the piece whose socket it grew from
    for j, later in enumerate(pieces[1:], start=1):
        parent = later.metadata["parent"]
        for earlier in pieces[:j]:
            shared = set(later.fine_cells) & set(earlier.fine_cells)
            assert shared <= set(parent.fine_cells)


def test_children_start_on_parent_sockets(engine):
    generator = FrontierGenerator(engine, GenerationSettings(piece_count=15), rng=random.Random(4))
    generate(generator)

    for piece in generator.pieces[1:]:
        parent = piece.metadata["parent"]
        frame = parent.socket_transform(piece.metadata["socket"])
        assert piece.position == pytest.approx(frame.position, abs=1e-9)


def test_empty_queue_stalls(engine, index):
    index.collision.occupy((0, 6))  # blocks anything attached at z = 10
    generator = FrontierGenerator(engine, GenerationSettings(piece_count=5, intersection_weight=0.0))

    result, output = generate(generator)

    assert result.status == GenerationStatus.STALLED
    assert result.placed == 1
    assert result.shortfall == 4
    assert "No open sockets left" in output


def test_attempt_ceiling_exhausts():
    index = SpatialIndex()
    engine = junction_only_engine(index)
    index.collision.occupy((0, 8))  # the first junction's straight-ahead exit is blocked

    settings = GenerationSettings(piece_count=3, attempt_multiplier=1)
    generator = FrontierGenerator(engine, settings, rng=FirstSocket())
    result, output = generate(generator)

    assert result.status == GenerationStatus.EXHAUSTED
    assert result.attempts == 3
    assert result.placed == 2
    assert generator.pieces[1].metadata["socket"] == SocketRole.BRANCH_LEFT
    assert "Attempt ceiling 3 reached" in output


def test_no_usable_pieces_stalls_immediately():
    catalog = load_catalog(PieceCatalog(definitions=[PieceDefinition(type_id="ghost", asset="ghost.glb")]))
    generator = FrontierGenerator(PlacementEngine(catalog, SpatialIndex()), GenerationSettings(piece_count=4))

    result, _ = generate(generator)

    assert result.status == GenerationStatus.STALLED
    assert result.placed == 0
