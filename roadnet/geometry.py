"""Transform math and the hierarchical placed-object abstraction.

Conventions:
- +Y is up, the ground plane is XZ, and an identity orientation faces +Z.
- Orientations are unit quaternions in scalar-last ``(x, y, z, w)`` order,
  the order scipy's ``Rotation`` uses.
- A node's local transform is ``T * R * S``; world transforms compose from
  the root down, so ``world = parent.world @ local``.

``SceneNode`` is the generic placed object the rest of an application sees:
generated pieces, ground tiles and decorations are all trees of nodes with a
position, orientation, scale and children.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np
from scipy.spatial.transform import Rotation

Vector3 = Tuple[float, float, float]
Quaternion = Tuple[float, float, float, float]

ORIGIN: Vector3 = (0.0, 0.0, 0.0)
IDENTITY_QUATERNION: Quaternion = (0.0, 0.0, 0.0, 1.0)
UNIT_SCALE: Vector3 = (1.0, 1.0, 1.0)


def _vec3(values: Sequence[float]) -> Vector3:
    return (float(values[0]), float(values[1]), float(values[2]))


def _quat(values: Sequence[float]) -> Quaternion:
    return (float(values[0]), float(values[1]), float(values[2]), float(values[3]))


def yaw_quaternion(degrees: float) -> Quaternion:
    """Quaternion for a rotation of ``degrees`` about +Y (positive turns +Z toward +X)."""
    return _quat(Rotation.from_euler("y", degrees, degrees=True).as_quat())


def compose(position: Sequence[float], orientation: Sequence[float], scale: Sequence[float]) -> np.ndarray:
    """Build a 4x4 matrix from translation, rotation and (possibly negative) scale."""
    matrix = np.eye(4)
    # Broadcasting scales the rotation's columns, i.e. R @ diag(scale)
    matrix[:3, :3] = Rotation.from_quat(orientation).as_matrix() * np.asarray(scale, dtype=float)
    matrix[:3, 3] = np.asarray(position, dtype=float)
    return matrix


def decompose(matrix: np.ndarray) -> Tuple[Vector3, Quaternion, Vector3]:
    """Split a 4x4 matrix into position, orientation and scale.

    A reflection (negative determinant) is folded into the x scale so the
    remaining basis is a proper rotation. Mirrored pieces therefore resolve
    their sockets to ordinary orientations with the turn direction flipped.
    """
    basis = np.asarray(matrix[:3, :3], dtype=float)
    scale = np.linalg.norm(basis, axis=0)
    if np.linalg.det(basis) < 0:
        scale[0] = -scale[0]
    rotation = Rotation.from_matrix(basis / scale)
    return _vec3(matrix[:3, 3]), _quat(rotation.as_quat()), _vec3(scale)


def quaternions_close(a: Sequence[float], b: Sequence[float], atol: float = 1e-6) -> bool:
    """True when two quaternions describe the same rotation (q and -q are equal)."""
    return abs(float(np.dot(np.asarray(a, dtype=float), np.asarray(b, dtype=float)))) >= 1.0 - atol


def heading_of(orientation: Sequence[float]) -> Vector3:
    """World-space forward (+Z) direction for an orientation."""
    return _vec3(Rotation.from_quat(orientation).apply([0.0, 0.0, 1.0]))


@dataclass(eq=False)
class SceneNode:
    """A named node in a placed-object hierarchy.

    ``payload`` carries renderer-side data (a mesh, a material handle). It is
    shared between clones; the hierarchy and transforms are not.
    """

    name: str
    position: Vector3 = ORIGIN
    orientation: Quaternion = IDENTITY_QUATERNION
    scale: Vector3 = UNIT_SCALE
    payload: Any = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    children: List["SceneNode"] = field(default_factory=list)
    parent: Optional["SceneNode"] = field(default=None, repr=False)

    def add(self, child: "SceneNode") -> "SceneNode":
        child.parent = self
        self.children.append(child)
        return child

    def detach(self) -> None:
        if self.parent is not None:
            self.parent.children.remove(self)
            self.parent = None

    def traverse(self) -> Iterator["SceneNode"]:
        """Depth-first, pre-order walk starting at this node."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            # Reverse so the first child is visited first
            stack.extend(reversed(node.children))

    def set_transform(
        self,
        position: Sequence[float],
        orientation: Sequence[float],
        scale: Sequence[float] = UNIT_SCALE,
    ) -> None:
        self.position = _vec3(position)
        self.orientation = _quat(orientation)
        self.scale = _vec3(scale)

    def local_matrix(self) -> np.ndarray:
        return compose(self.position, self.orientation, self.scale)

    def world_matrix(self) -> np.ndarray:
        matrix = self.local_matrix()
        node = self.parent
        while node is not None:
            matrix = node.local_matrix() @ matrix
            node = node.parent
        return matrix

    def clone(self) -> "SceneNode":
        """Copy this subtree. The copy is detached from any parent."""
        copy = SceneNode(
            name=self.name,
            position=self.position,
            orientation=self.orientation,
            scale=self.scale,
            payload=self.payload,
            metadata=dict(self.metadata),
        )
        for child in self.children:
            copy.add(child.clone())
        return copy
