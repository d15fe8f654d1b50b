"""Seeded PRNG for reproducible layouts.

``Mulberry32`` is a 32-bit integer mixing generator. It is tiny, fast and
gives the same stream on every platform for a given seed, which is what the
seeded strategies need. It subclasses ``random.Random`` so ``shuffle``,
``randrange`` and ``choice`` all draw from the same stream.
"""

from __future__ import annotations

import random

_MASK = 0xFFFFFFFF
_INCREMENT = 0x6D2B79F5
_SCALE = 4294967296.0  # 2**32


def _imul(a: int, b: int) -> int:
    """Low 32 bits of a 32x32-bit product."""
    return (a * b) & _MASK


class Mulberry32(random.Random):
    """Mulberry32 stream; ``random()`` returns floats in [0, 1)."""

    def __init__(self, seed: int = 0):
        self._state = 0
        super().__init__(seed)

    def seed(self, a=None, version=2) -> None:  # noqa: D401 - random.Random API
        if a is None:
            a = random.SystemRandom().getrandbits(32)
        self._state = int(a) & _MASK

    def random(self) -> float:
        self._state = (self._state + _INCREMENT) & _MASK
        t = self._state
        t = _imul(t ^ (t >> 15), t | 1)
        t = ((t + _imul(t ^ (t >> 7), t | 61)) & _MASK) ^ t
        return ((t ^ (t >> 14)) & _MASK) / _SCALE

    def getstate(self):
        return self._state

    def setstate(self, state) -> None:
        self._state = int(state) & _MASK
