# geometry.py
# Point distributions for each formation. Every generator returns exactly
# `count` rows (float32, shape (count, 3)) and draws from its own Generator.

from __future__ import annotations
import math
import numpy as np

TWO_PI = 2.0 * math.pi


def _rng(rng):
    return rng if rng is not None else np.random.default_rng()


def _check_count(count) -> int:
    n = int(count)
    if n < 0:
        raise ValueError(f"count must be >= 0, got {count}")
    return n


def _cone(y, d, theta, height):
    x = d * np.cos(theta)
    z = d * np.sin(theta)
    actual_y = y * height - height / 2.0
    return np.stack([x, actual_y, z], axis=1).astype(np.float32)


def tree_points(count: int, radius: float, height: float, rng=None) -> np.ndarray:
    """Filled cone. Area-uniform within each height slice."""
    n = _check_count(count)
    g = _rng(rng)
    y = g.random(n)
    r = radius * (1.0 - y)
    theta = g.random(n) * TWO_PI
    d = np.sqrt(g.random(n)) * r
    return _cone(y, d, theta, height)


def cone_surface_points(count: int, radius: float, height: float, rng=None) -> np.ndarray:
    """Shell of the cone (sequins, sparkles, snow)."""
    n = _check_count(count)
    g = _rng(rng)
    y = g.random(n)
    r = radius * (1.0 - y)
    theta = g.random(n) * TWO_PI
    return _cone(y, r, theta, height)


def irregular_cone_points(count: int, radius: float, height: float, offset: float = 0.5, rng=None) -> np.ndarray:
    """Slightly wider than the tree, biased towards the shell."""
    n = _check_count(count)
    g = _rng(rng)
    y = g.random(n)
    r = radius * (1.0 - y) + offset
    theta = g.random(n) * TWO_PI
    d = r * (0.8 + g.random(n) * 0.2)
    return _cone(y, d, theta, height)


def lower_biased_cone_points(count: int, radius: float, height: float, power: float = 1.8,
                             offset: float = 0.5, rng=None) -> np.ndarray:
    n = _check_count(count)
    g = _rng(rng)
    # power curve pushes y towards 0 (the base)
    y = g.random(n) ** float(power)
    r = radius * (1.0 - y) + offset
    theta = g.random(n) * TWO_PI
    d = r * (0.8 + g.random(n) * 0.2)
    return _cone(y, d, theta, height)


def spiral_points(count: int, radius: float, height: float, turns: float) -> np.ndarray:
    """Deterministic garland, ordered bottom to top."""
    n = _check_count(count)
    if n == 0:
        return np.zeros((0, 3), dtype=np.float32)
    t = np.arange(n, dtype=np.float64) / n
    y = t * height - height / 2.0
    r = radius * (1.0 - t)
    theta = t * TWO_PI * turns
    return np.stack([r * np.cos(theta), y, r * np.sin(theta)], axis=1).astype(np.float32)


def sphere_points(count: int, radius: float, rng=None) -> np.ndarray:
    """Volume-uniform ball (cube-root radius)."""
    n = _check_count(count)
    g = _rng(rng)
    theta = TWO_PI * g.random(n)
    phi = np.arccos(2.0 * g.random(n) - 1.0)
    r = radius * np.cbrt(g.random(n))
    x = r * np.sin(phi) * np.cos(theta)
    y = r * np.sin(phi) * np.sin(theta)
    z = r * np.cos(phi)
    return np.stack([x, y, z], axis=1).astype(np.float32)


def disc_points(count: int, radius: float, y_level: float, rng=None) -> np.ndarray:
    n = _check_count(count)
    g = _rng(rng)
    r = np.sqrt(g.random(n)) * radius
    theta = g.random(n) * TWO_PI
    y = np.full(n, float(y_level))
    return np.stack([r * np.cos(theta), y, r * np.sin(theta)], axis=1).astype(np.float32)


def ring_positions(count: int, radius: float):
    """
    Evenly spaced slots on a horizontal circle.

    Returns (positions (count, 3), yaw (count,)); yaw turns each slot's
    front face towards the ring center.
    """
    n = _check_count(count)
    if n == 0:
        return np.zeros((0, 3), dtype=np.float32), np.zeros(0, dtype=np.float32)
    theta = np.arange(n, dtype=np.float64) * (TWO_PI / n)
    pos = np.stack([radius * np.cos(theta), np.zeros(n), radius * np.sin(theta)], axis=1)
    yaw = -theta + math.pi / 2.0
    return pos.astype(np.float32), yaw.astype(np.float32)


def star_outline(points: int = 5, outer: float = 0.7, inner: float = 0.35) -> np.ndarray:
    """2D polygon (2*points, 2) of the tree topper, first tip straight up."""
    k = np.arange(points * 2)
    r = np.where(k % 2 == 0, outer, inner)
    a = math.pi / 2.0 + k * (math.pi / points)
    return np.stack([np.cos(a) * r, np.sin(a) * r], axis=1).astype(np.float32)
