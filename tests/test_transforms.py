"""Tests for batched rotation and matrix helpers."""

import math

import numpy as np

from transforms import compose, decompose_positions, euler_xyz, look_at, rot_x, rot_y, rot_z


def is_rotation(m):
    eye = np.broadcast_to(np.eye(3), m.shape)
    return np.allclose(m @ np.swapaxes(m, -1, -2), eye, atol=1e-5) and np.allclose(np.linalg.det(m), 1.0, atol=1e-5)


class TestRotations:
    """Single-axis and euler rotations."""

    def test_batched_shapes(self):
        """One matrix per angle."""
        a = np.linspace(0, 3, 5)
        for fn in (rot_x, rot_y, rot_z):
            m = fn(a)
            assert m.shape == (5, 3, 3)
            assert is_rotation(m)

    def test_rot_y_quarter_turn(self):
        """+90 deg about Y maps +Z to +X."""
        m = rot_y(np.float32(math.pi / 2))
        assert np.allclose(m @ np.array([0, 0, 1.0]), [1, 0, 0], atol=1e-6)

    def test_euler_zero_is_identity(self):
        """Zero angles -> identity."""
        assert np.allclose(euler_xyz(np.zeros((3, 3))), np.eye(3))

    def test_euler_orthonormal(self):
        """Random angles still give rotations."""
        rng = np.random.default_rng(1)
        assert is_rotation(euler_xyz(rng.uniform(-3, 3, (20, 3))))


class TestLookAt:
    """Local +Z aims at the target."""

    def test_forward_points_at_target(self):
        """Column 2 is the unit direction to the target."""
        pos = np.array([[3.0, 1.0, 0.0], [0.0, -2.0, 5.0]], dtype=np.float32)
        m = look_at(pos)
        assert is_rotation(m)
        fwd = -pos / np.linalg.norm(pos, axis=1, keepdims=True)
        assert np.allclose(m[:, :, 2], fwd, atol=1e-5)

    def test_degenerate_rows(self):
        """Points on the target or straight above it still get a valid basis."""
        m = look_at(np.array([[0.0, 0.0, 0.0], [0.0, 5.0, 0.0]], dtype=np.float32))
        assert np.all(np.isfinite(m))
        assert is_rotation(m)


class TestCompose:
    """T * R * S packing."""

    def test_scalar_scale(self):
        """Uniform scale on every column, translation in the last column."""
        pos = np.array([[1.0, 2.0, 3.0]], dtype=np.float32)
        m = compose(pos, np.eye(3, dtype=np.float32)[None], 2.0)
        assert m.shape == (1, 4, 4)
        assert np.allclose(m[0, :3, :3], 2.0 * np.eye(3))
        assert np.allclose(decompose_positions(m), pos)
        assert m[0, 3, 3] == 1.0

    def test_per_axis_scale(self):
        """(n, 3) scales stretch the matching axes."""
        m = compose(np.zeros((1, 3)), np.eye(3, dtype=np.float32)[None], np.array([[1.0, 2.0, 3.0]]))
        assert np.allclose(np.diag(m[0, :3, :3]), [1.0, 2.0, 3.0])

    def test_per_instance_scale(self):
        """(n,) scales apply uniformly per instance."""
        m = compose(np.zeros((2, 3)), np.stack([np.eye(3)] * 2), np.array([0.5, 3.0]))
        assert np.allclose(m[:, 0, 0], [0.5, 3.0])
