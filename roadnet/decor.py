"""
PathDecorator: utility poles along a straight path with sagging cables.

Poles are spaced every ``spacing`` units, offset to one side of the path.
Between each consecutive pair of poles a group of parallel cables is strung,
one per crossarm insulator, each sampled as a parabola::

    height(t) = base_height - sag_amount * 4t(1 - t),   t in [0, 1]

so every cable droops by exactly ``sag_amount`` at mid-span.

Decoration is additive only. It never reads or writes the ``SpatialIndex``,
so poles do not block roads and roads do not move poles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence

import numpy as np

from .geometry import SceneNode, Vector3, yaw_quaternion
from .logging_utils import log_success

UP = np.array([0.0, 1.0, 0.0])


def sag_height(t: float, base_height: float, sag_amount: float) -> float:
    return base_height - sag_amount * 4.0 * t * (1.0 - t)


@dataclass
class CableSpan:
    """The cables hung between two neighbouring poles."""

    start_pole: int
    end_pole: int
    cables: List[List[Vector3]] = field(default_factory=list)

    def midpoint_heights(self) -> List[float]:
        return [cable[len(cable) // 2][1] for cable in self.cables]


@dataclass
class Decoration:
    props: List[SceneNode]
    spans: List[CableSpan]


class PathDecorator:
    def __init__(
        self,
        spacing: float = 20.0,
        side_offset: float = 3.5,
        base_height: float = 7.6,
        sag_amount: float = 1.2,
        cable_offsets: Sequence[float] = (-0.7, 0.0, 0.7),
        segments: int = 24,
        pole_height: float = 8.0,
    ):
        if spacing <= 0:
            raise ValueError("spacing must be positive")
        # Even counts keep a cable vertex at t = 0.5, the lowest point of the sag
        if segments < 2 or segments % 2:
            raise ValueError(f"segments must be a positive even number (got {segments})")
        self.spacing = spacing
        self.side_offset = side_offset
        self.base_height = base_height
        self.sag_amount = sag_amount
        self.cable_offsets = tuple(cable_offsets)
        self.segments = segments
        self.pole_height = pole_height
        self.root = SceneNode(name="decorations")
        self.decoration = Decoration(props=[], spans=[])

    def pole_positions(
        self,
        start: Vector3 = (0.0, 0.0, 0.0),
        length: float = 80.0,
        direction: Vector3 = (0.0, 0.0, -1.0),
    ) -> List[np.ndarray]:
        """One pole per spacing interval, starting at the path start."""
        forward = np.asarray(direction, dtype=float)
        forward = forward / np.linalg.norm(forward)
        lateral = np.cross(forward, UP)
        base = np.asarray(start, dtype=float) + lateral * self.side_offset
        count = int(np.ceil(length / self.spacing - 1e-9))
        return [base + forward * (k * self.spacing) for k in range(max(count, 0))]

    def make_pole(self, position: np.ndarray, lateral: np.ndarray, index: int) -> SceneNode:
        # Crossarm runs along local x, which must line up with the lateral axis
        yaw = float(np.degrees(np.arctan2(-lateral[2], lateral[0])))
        pole = SceneNode(
            name=f"pole_{index}",
            position=(float(position[0]), 0.0, float(position[2])),
            orientation=yaw_quaternion(yaw),
            metadata={"kind": "utility_pole"},
        )
        pole.add(SceneNode(name="shaft", position=(0.0, self.pole_height / 2.0, 0.0)))
        pole.add(SceneNode(name="crossarm", position=(0.0, self.base_height - 0.1, 0.0)))
        for j, offset in enumerate(self.cable_offsets):
            pole.add(SceneNode(name=f"insulator_{j}", position=(offset, self.base_height, 0.0)))
        return pole

    def string_cables(self, a: np.ndarray, b: np.ndarray, lateral: np.ndarray) -> List[List[Vector3]]:
        cables: List[List[Vector3]] = []
        for offset in self.cable_offsets:
            shift = lateral * offset
            points: List[Vector3] = []
            for j in range(self.segments + 1):
                t = j / self.segments
                x, _, z = a + (b - a) * t + shift
                points.append((float(x), sag_height(t, self.base_height, self.sag_amount), float(z)))
            cables.append(points)
        return cables

    def decorate(
        self,
        start: Vector3 = (0.0, 0.0, 0.0),
        length: float = 80.0,
        direction: Vector3 = (0.0, 0.0, -1.0),
    ) -> Decoration:
        """Replace any previous decoration with poles and cables along the path."""
        self.clear()
        forward = np.asarray(direction, dtype=float)
        lateral = np.cross(forward / np.linalg.norm(forward), UP)

        positions = self.pole_positions(start, length, direction)
        props = [self.root.add(self.make_pole(p, lateral, i)) for i, p in enumerate(positions)]
        spans = [
            CableSpan(i, i + 1, self.string_cables(positions[i], positions[i + 1], lateral))
            for i in range(len(positions) - 1)
        ]
        self.decoration = Decoration(props=props, spans=spans)
        log_success(f"[Decor] Spawned {len(props)} utility poles with {len(spans)} cable spans")
        return self.decoration

    def clear(self) -> None:
        for child in list(self.root.children):
            child.detach()
        self.decoration = Decoration(props=[], spans=[])

    def cable_count(self) -> int:
        return sum(len(span.cables) for span in self.decoration.spans)

