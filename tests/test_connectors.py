"""Tests for socket discovery and world-transform resolution."""

import pytest

from roadnet.catalog import build_blueprint, intersection_blueprint
from roadnet.connectors import (
    SocketRole,
    bind_sockets,
    classify_socket,
    find_all_sockets,
    find_socket,
    node_at,
    resolve_world_transform,
)
from roadnet.geometry import SceneNode, heading_of, quaternions_close, yaw_quaternion


def nested_piece() -> SceneNode:
    root = SceneNode(name="RoadX")
    body = root.add(SceneNode(name="Body", position=(0.0, 0.0, 2.0)))
    body.add(SceneNode(name="Socket_Out", position=(0.0, 0.0, 8.0)))
    root.add(SceneNode(name="socket_left", position=(-5.0, 0.0, 5.0), orientation=yaw_quaternion(-90)))
    root.add(SceneNode(name="socket_in"))
    return root


def test_find_socket_is_case_insensitive_depth_first():
    root = nested_piece()
    assert find_socket(root, "SOCKET_OUT").name == "Socket_Out"
    # "socket" first matches inside Body before the later siblings
    assert find_socket(root, "socket").name == "Socket_Out"
    assert find_socket(root, "socket_right") is None


def test_classify_and_bind_sockets():
    assert classify_socket("socket_out_01") == SocketRole.OUT
    assert classify_socket("Socket_Right") == SocketRole.BRANCH_RIGHT
    assert classify_socket("socket_in") is None
    assert classify_socket("Body") is None

    root = nested_piece()
    roles = [socket.role for socket in find_all_sockets(root)]
    assert roles == [SocketRole.OUT, SocketRole.BRANCH_LEFT]

    table = bind_sockets(root)
    assert table == {SocketRole.OUT: (0, 0), SocketRole.BRANCH_LEFT: (1,)}
    assert node_at(root, table[SocketRole.OUT]).name == "Socket_Out"


def test_resolve_world_transform_composes_ancestors():
    root = nested_piece()
    root.set_transform((10.0, 0.0, 0.0), yaw_quaternion(90))
    socket = find_socket(root, "socket_out")

    frame = resolve_world_transform(socket)
    # Local +Z (distance 10) now points along +X
    assert frame.position == pytest.approx((20.0, 0.0, 0.0), abs=1e-9)
    assert quaternions_close(frame.orientation, yaw_quaternion(90))

    again = resolve_world_transform(socket)
    assert again == frame


def test_mirrored_piece_resolves_left_turn():
    root = build_blueprint("RoadX", intersection_blueprint(10.0))
    root.set_transform((0.0, 0.0, 0.0), yaw_quaternion(0), (-1.0, 1.0, 1.0))
    right = node_at(root, bind_sockets(root)[SocketRole.BRANCH_RIGHT])

    frame = resolve_world_transform(right)
    assert frame.position == pytest.approx((-5.0, 0.0, 5.0), abs=1e-9)
    assert heading_of(frame.orientation) == pytest.approx((-1.0, 0.0, 0.0), abs=1e-9)
    assert quaternions_close(frame.orientation, yaw_quaternion(-90))
