"""Road network generation strategies."""

from typing import Dict, Type

from .base import Candidate, GenerationRun, RoadGenerator
from .frontier import FrontierGenerator, OpenSocket
from .random_walk import DirectionBalance, RandomWalkGenerator
from .rng import Mulberry32
from .spine_branch import BranchStart, SpineBranchGenerator

GENERATORS: Dict[str, Type[RoadGenerator]] = {
    RandomWalkGenerator.strategy: RandomWalkGenerator,
    FrontierGenerator.strategy: FrontierGenerator,
    SpineBranchGenerator.strategy: SpineBranchGenerator,
}


def make_generator(strategy: str, engine, settings=None, **kwargs) -> RoadGenerator:
    """Instantiate the generator registered under ``strategy``."""
    try:
        generator_cls = GENERATORS[strategy]
    except KeyError:
        known = ", ".join(sorted(GENERATORS))
        raise ValueError(f"Unknown strategy '{strategy}' (expected one of: {known})") from None
    return generator_cls(engine, settings, **kwargs)


__all__ = [
    "BranchStart",
    "Candidate",
    "DirectionBalance",
    "FrontierGenerator",
    "GENERATORS",
    "GenerationRun",
    "Mulberry32",
    "OpenSocket",
    "RandomWalkGenerator",
    "RoadGenerator",
    "SpineBranchGenerator",
    "make_generator",
]
