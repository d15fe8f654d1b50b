"""Shared fixtures: a loaded default catalog and a placement engine over a fresh index."""

from __future__ import annotations

import asyncio

import pytest

from roadnet.catalog import PieceCatalog
from roadnet.environment import SpatialIndex
from roadnet.ground import GroundFiller
from roadnet.placement import PlacementEngine


def load_catalog(catalog: PieceCatalog | None = None) -> PieceCatalog:
    catalog = catalog or PieceCatalog()
    asyncio.run(catalog.load_all())
    return catalog


@pytest.fixture(autouse=True)
def no_color(monkeypatch):
    monkeypatch.setenv("ROADNET_NO_COLOR", "1")


@pytest.fixture
def catalog() -> PieceCatalog:
    return load_catalog()


@pytest.fixture
def index() -> SpatialIndex:
    return SpatialIndex(fine_cell_size=2.0, coarse_cell_size=10.0)


@pytest.fixture
def ground(index) -> GroundFiller:
    return GroundFiller(index)


@pytest.fixture
def engine(catalog, index, ground) -> PlacementEngine:
    return PlacementEngine(catalog, index, ground=ground)
