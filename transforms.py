from __future__ import annotations
import numpy as np


def rot_x(a: np.ndarray) -> np.ndarray:
    a = np.asarray(a, dtype=np.float32)
    c, s = np.cos(a), np.sin(a)
    o, z = np.ones_like(a), np.zeros_like(a)
    return np.stack([
        np.stack([o, z, z], -1),
        np.stack([z, c, -s], -1),
        np.stack([z, s, c], -1),
    ], -2)


def rot_y(a: np.ndarray) -> np.ndarray:
    a = np.asarray(a, dtype=np.float32)
    c, s = np.cos(a), np.sin(a)
    o, z = np.ones_like(a), np.zeros_like(a)
    return np.stack([
        np.stack([c, z, s], -1),
        np.stack([z, o, z], -1),
        np.stack([-s, z, c], -1),
    ], -2)


def rot_z(a: np.ndarray) -> np.ndarray:
    a = np.asarray(a, dtype=np.float32)
    c, s = np.cos(a), np.sin(a)
    o, z = np.ones_like(a), np.zeros_like(a)
    return np.stack([
        np.stack([c, -s, z], -1),
        np.stack([s, c, z], -1),
        np.stack([z, z, o], -1),
    ], -2)


def euler_xyz(angles: np.ndarray) -> np.ndarray:
    """(n, 3) euler angles -> (n, 3, 3), X then Y then Z applied in local frame."""
    angles = np.asarray(angles, dtype=np.float32)
    return rot_x(angles[:, 0]) @ rot_y(angles[:, 1]) @ rot_z(angles[:, 2])


def look_at(positions: np.ndarray, target=(0.0, 0.0, 0.0), up=(0.0, 1.0, 0.0)) -> np.ndarray:
    """
    Rotations whose local +Z axis points from each position to `target`.
    Degenerate rows (on the target, or facing straight along `up`) keep a
    valid orthonormal basis.
    """
    positions = np.asarray(positions, dtype=np.float32)
    n = len(positions)
    fwd = np.asarray(target, dtype=np.float32)[None, :] - positions
    length = np.linalg.norm(fwd, axis=1, keepdims=True)
    fwd = np.where(length > 1e-6, fwd / np.maximum(length, 1e-6), np.array([0.0, 0.0, 1.0], dtype=np.float32))

    up_v = np.broadcast_to(np.asarray(up, dtype=np.float32), (n, 3))
    right = np.cross(up_v, fwd)
    rlen = np.linalg.norm(right, axis=1, keepdims=True)
    # forward parallel to up: nudge with the z axis like three.js does
    alt = np.cross(up_v, fwd + np.array([0.0, 0.0, 1e-4], dtype=np.float32))
    alt = np.where(np.linalg.norm(alt, axis=1, keepdims=True) > 1e-9, alt, np.array([1.0, 0.0, 0.0], dtype=np.float32))
    right = np.where(rlen > 1e-6, right, alt)
    right /= np.linalg.norm(right, axis=1, keepdims=True)
    true_up = np.cross(fwd, right)
    return np.stack([right, true_up, fwd], axis=-1).astype(np.float32)


def compose(positions: np.ndarray, rotations: np.ndarray, scales) -> np.ndarray:
    """Build (n, 4, 4) matrices = T * R * S. `scales` is scalar, (n,) or (n, 3)."""
    positions = np.asarray(positions, dtype=np.float32)
    n = len(positions)
    s = np.asarray(scales, dtype=np.float32)
    if s.ndim == 0:
        s = np.full((n, 3), s, dtype=np.float32)
    elif s.ndim == 1:
        s = np.repeat(s[:, None], 3, axis=1)
    out = np.zeros((n, 4, 4), dtype=np.float32)
    out[:, :3, :3] = rotations * s[:, None, :]
    out[:, :3, 3] = positions
    out[:, 3, 3] = 1.0
    return out


def decompose_positions(matrices: np.ndarray) -> np.ndarray:
    return np.asarray(matrices)[:, :3, 3]
