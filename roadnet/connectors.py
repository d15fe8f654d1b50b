"""Connector sockets: named anchors that let pieces snap together.

A piece template carries empty child nodes named ``socket_out``,
``socket_left`` and ``socket_right``. A piece's own origin is its entry
point, so there is no ``socket_in``; the next piece is placed with its
origin on the previous piece's exit socket.

Name matching happens once per template (``bind_sockets``), producing a
role → child-index path table. Instances are clones with the same shape, so
placement-time lookups walk that path instead of searching names again.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .geometry import Quaternion, SceneNode, Vector3, decompose


class SocketRole(str, Enum):
    OUT = "out"
    BRANCH_LEFT = "left"
    BRANCH_RIGHT = "right"


SOCKET_NAMES: Dict[SocketRole, str] = {
    SocketRole.OUT: "socket_out",
    SocketRole.BRANCH_LEFT: "socket_left",
    SocketRole.BRANCH_RIGHT: "socket_right",
}

SocketPath = Tuple[int, ...]


@dataclass(frozen=True)
class SocketTransform:
    """World-space attachment frame of a socket."""

    position: Vector3
    orientation: Quaternion


@dataclass(frozen=True)
class Socket:
    role: SocketRole
    node: SceneNode


def classify_socket(name: str) -> Optional[SocketRole]:
    """Map a node name to a socket role, or None if it is not a socket.

    Any other node with "socket" in its name counts as an exit unless it
    also mentions "in" (entry markers are ignored).
    """
    lowered = name.lower()
    for role in (SocketRole.OUT, SocketRole.BRANCH_RIGHT, SocketRole.BRANCH_LEFT):
        if SOCKET_NAMES[role] in lowered:
            return role
    if "socket" in lowered and "in" not in lowered:
        return SocketRole.OUT
    return None


def find_socket(root: SceneNode, pattern: str) -> Optional[SceneNode]:
    """First node (depth-first, pre-order) whose name contains ``pattern``, case-insensitively."""
    needle = pattern.lower()
    for node in root.traverse():
        if needle in node.name.lower():
            return node
    return None


def find_all_sockets(root: SceneNode) -> List[Socket]:
    """Every socket under ``root`` in traversal order."""
    sockets: List[Socket] = []
    for node in root.traverse():
        if node is root:
            continue
        role = classify_socket(node.name)
        if role is not None:
            sockets.append(Socket(role=role, node=node))
    return sockets


def _path_to(root: SceneNode, target: SceneNode) -> SocketPath:
    indices: List[int] = []
    node = target
    while node is not root:
        parent = node.parent
        if parent is None:
            raise ValueError(f"{target.name!r} is not under {root.name!r}")
        indices.append(next(i for i, child in enumerate(parent.children) if child is node))
        node = parent
    return tuple(reversed(indices))


def bind_sockets(root: SceneNode) -> Dict[SocketRole, SocketPath]:
    """Resolve each role to the child-index path of its first matching node."""
    table: Dict[SocketRole, SocketPath] = {}
    for socket in find_all_sockets(root):
        table.setdefault(socket.role, _path_to(root, socket.node))
    return table


def node_at(root: SceneNode, path: SocketPath) -> SceneNode:
    node = root
    for index in path:
        node = node.children[index]
    return node


def resolve_world_transform(node: SceneNode) -> SocketTransform:
    """Compose every ancestor transform down to ``node``.

    A pure function of the transform chain: resolving twice without moving
    anything gives identical results.
    """
    position, orientation, _ = decompose(node.world_matrix())
    return SocketTransform(position=position, orientation=orientation)
