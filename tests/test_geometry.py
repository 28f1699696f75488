"""Tests for formation point generators."""

import math

import numpy as np
import pytest

import geometry

RANDOM_CONES = [
    geometry.tree_points,
    geometry.cone_surface_points,
    geometry.irregular_cone_points,
    geometry.lower_biased_cone_points,
]


class TestCounts:
    """Every generator returns exactly `count` points."""

    @pytest.mark.parametrize("count", [0, 1, 7, 500])
    def test_cone_generators(self, count):
        """Cone variants honor the requested count."""
        for gen in RANDOM_CONES:
            pts = gen(count, 4.0, 12.0)
            assert pts.shape == (count, 3)

    @pytest.mark.parametrize("count", [0, 1, 7, 500])
    def test_other_generators(self, count):
        """Spiral, sphere, disc and ring honor the requested count."""
        assert geometry.spiral_points(count, 4.0, 12.0, 4).shape == (count, 3)
        assert geometry.sphere_points(count, 15.0).shape == (count, 3)
        assert geometry.disc_points(count, 4.0, -5.6).shape == (count, 3)
        pos, yaw = geometry.ring_positions(count, 12.0)
        assert pos.shape == (count, 3)
        assert yaw.shape == (count,)

    def test_negative_count_rejected(self):
        """A negative count is a programming error."""
        with pytest.raises(ValueError):
            geometry.tree_points(-1, 4.0, 12.0)


class TestConeShapes:
    """Cone distributions stay inside their radius profile."""

    def test_tree_points_inside_cone(self):
        """Volume points satisfy r <= R * (1 - y_fraction)."""
        R, H = 4.0, 12.0
        pts = geometry.tree_points(5000, R, H, rng=np.random.default_rng(1))
        frac = (pts[:, 1] + H / 2) / H
        planar = np.hypot(pts[:, 0], pts[:, 2])
        assert np.all(planar <= R * (1 - frac) + 1e-4)

    def test_tree_points_height_range(self):
        """Heights stay in [-H/2, H/2]."""
        pts = geometry.tree_points(2000, 4.0, 12.0)
        assert pts[:, 1].min() >= -6.0
        assert pts[:, 1].max() <= 6.0

    def test_small_tree(self):
        """100 points for a 4 x 12 tree, all within the height range."""
        pts = geometry.tree_points(100, 4.0, 12.0)
        assert pts.shape == (100, 3)
        assert np.all((pts[:, 1] >= -6.0) & (pts[:, 1] <= 6.0))

    def test_tree_points_fill_the_volume(self):
        """Area-uniform sampling puts a real share of points well inside the shell."""
        R, H = 4.0, 12.0
        pts = geometry.tree_points(5000, R, H, rng=np.random.default_rng(2))
        frac = (pts[:, 1] + H / 2) / H
        rel = np.hypot(pts[:, 0], pts[:, 2]) / np.maximum(R * (1 - frac), 1e-6)
        assert 0.15 < np.mean(rel < 0.5) < 0.35

    def test_surface_points_on_shell(self):
        """Surface points sit exactly on r(y)."""
        R, H = 4.3, 12.0
        pts = geometry.cone_surface_points(1000, R, H)
        frac = (pts[:, 1] + H / 2) / H
        planar = np.hypot(pts[:, 0], pts[:, 2])
        np.testing.assert_allclose(planar, R * (1 - frac), atol=1e-3)

    def test_irregular_points_near_shell(self):
        """Irregular cone points lie between 80% and 100% of the widened radius."""
        R, H, off = 4.0, 12.0, 0.5
        pts = geometry.irregular_cone_points(2000, R, H, offset=off)
        frac = (pts[:, 1] + H / 2) / H
        r = R * (1 - frac) + off
        planar = np.hypot(pts[:, 0], pts[:, 2])
        assert np.all(planar <= r + 1e-3)
        assert np.all(planar >= 0.8 * r - 1e-3)

    def test_lower_biased_points_cluster_low(self):
        """The power curve puts most points in the lower half."""
        H = 12.0
        pts = geometry.lower_biased_cone_points(4000, 4.0, H, rng=np.random.default_rng(3))
        assert np.mean(pts[:, 1] < 0.0) > 0.6


class TestSpiral:
    """Spiral is deterministic and ordered."""

    def test_deterministic(self):
        """Two calls give identical points."""
        a = geometry.spiral_points(150, 4.4, 12.0, 4)
        b = geometry.spiral_points(150, 4.4, 12.0, 4)
        np.testing.assert_array_equal(a, b)

    def test_first_point_at_base(self):
        """Index 0 sits at the bottom on the +x axis at full radius."""
        pts = geometry.spiral_points(10, 4.0, 12.0, 4)
        np.testing.assert_allclose(pts[0], [4.0, -6.0, 0.0], atol=1e-5)

    def test_heights_increase(self):
        """Heights grow with the index."""
        pts = geometry.spiral_points(50, 4.0, 12.0, 3)
        assert np.all(np.diff(pts[:, 1]) > 0)


class TestSphere:
    """Sphere cloud is volume-uniform within the radius."""

    def test_points_within_radius(self):
        """No point lies outside the radius."""
        pts = geometry.sphere_points(5000, 15.0)
        assert np.all(np.linalg.norm(pts, axis=1) <= 15.0 + 1e-3)

    def test_volume_uniform(self):
        """Half the volume lies within R * cbrt(0.5), so about half the points do too."""
        pts = geometry.sphere_points(8000, 10.0, rng=np.random.default_rng(4))
        inner = np.linalg.norm(pts, axis=1) < 10.0 * np.cbrt(0.5)
        assert 0.45 < inner.mean() < 0.55


class TestDiscAndRing:
    """Flat placements."""

    def test_disc_fixed_level(self):
        """Disc points share one height and stay inside the radius."""
        pts = geometry.disc_points(300, 4.0, -5.6)
        np.testing.assert_allclose(pts[:, 1], -5.6, atol=1e-5)
        assert np.all(np.hypot(pts[:, 0], pts[:, 2]) <= 4.0 + 1e-4)

    def test_ring_even_spacing(self):
        """Ring slots are evenly spaced on the circle."""
        pos, _ = geometry.ring_positions(12, 12.0)
        np.testing.assert_allclose(np.linalg.norm(pos, axis=1), 12.0, atol=1e-4)
        angles = np.unwrap(np.arctan2(pos[:, 2], pos[:, 0]))
        np.testing.assert_allclose(np.diff(angles), 2 * math.pi / 12, atol=1e-5)

    def test_ring_yaw(self):
        """Slot i is turned by -theta + pi/2."""
        _, yaw = geometry.ring_positions(4, 12.0)
        np.testing.assert_allclose(yaw, [math.pi / 2, 0.0, -math.pi / 2, -math.pi], atol=1e-5)


class TestStar:
    """Topper outline."""

    def test_star_alternates_radii(self):
        """Ten vertices alternating outer and inner radius, first one pointing up."""
        star = geometry.star_outline()
        assert star.shape == (10, 2)
        r = np.linalg.norm(star, axis=1)
        np.testing.assert_allclose(r[0::2], 0.7, atol=1e-5)
        np.testing.assert_allclose(r[1::2], 0.35, atol=1e-5)
        np.testing.assert_allclose(star[0], [0.0, 0.7], atol=1e-5)
