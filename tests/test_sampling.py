"""Tests for hemisphere and light-cone direction sampling."""

import math

import numpy as np
import pytest

from pathtracer.core.ray import dot, length_squared, normalize, vec3
from pathtracer.core.sampling import (
    TAU,
    RandomSource,
    SequenceSource,
    cos_dir,
    sample_light,
    tangent_frame,
)
from pathtracer.geometry.sphere import Sphere

NORMALS = [
    vec3(0.0, 0.0, 1.0),
    vec3(0.0, 0.0, -1.0),
    vec3(0.0, 1.0, 0.0),
    vec3(1.0, 0.0, 0.0),
    normalize(vec3(0.3, -0.5, 0.8)),
    normalize(vec3(-0.2, 0.1, -0.97)),
]


class TestRandomSources:
    """Tests for the injectable random sources."""

    def test_numpy_generator_is_a_random_source(self):
        assert isinstance(np.random.default_rng(0), RandomSource)

    def test_sequence_source_cycles(self):
        source = SequenceSource([0.1, 0.2])
        assert [source.random() for _ in range(5)] == [0.1, 0.2, 0.1, 0.2, 0.1]
        assert source.draws == 5

    def test_sequence_source_rejects_empty(self):
        with pytest.raises(ValueError):
            SequenceSource([])

    def test_sequence_source_rejects_out_of_range(self):
        with pytest.raises(ValueError, match=r"\[0, 1\)"):
            SequenceSource([0.5, 1.0])


class TestTangentFrame:
    """Tests for orthonormal frame construction."""

    @pytest.mark.parametrize("normal", NORMALS)
    def test_orthonormal(self, normal):
        u, v = tangent_frame(normal)
        assert math.isclose(length_squared(u), 1.0, rel_tol=1e-12)
        assert math.isclose(length_squared(v), 1.0, rel_tol=1e-12)
        assert abs(dot(u, v)) < 1e-12
        assert abs(dot(u, normal)) < 1e-12
        assert abs(dot(v, normal)) < 1e-12

    def test_pole_is_finite(self):
        """The (0, 0, -1) normal uses the fallback frame instead of dividing by zero."""
        u, v = tangent_frame(vec3(0.0, 0.0, -1.0))
        assert np.all(np.isfinite(u))
        assert np.all(np.isfinite(v))


class TestCosDir:
    """Tests for cosine-weighted hemisphere sampling."""

    @pytest.mark.parametrize("normal", NORMALS)
    def test_unit_length_in_hemisphere(self, normal, rng):
        for _ in range(500):
            d = cos_dir(normal, rng)
            assert math.isclose(length_squared(d), 1.0, rel_tol=1e-9)
            assert dot(d, normal) >= -1e-12

    def test_zero_radius_sample_is_the_normal(self):
        normal = normalize(vec3(0.3, -0.5, 0.8))
        d = cos_dir(normal, SequenceSource([0.0, 0.25]))
        np.testing.assert_allclose(d, normal, atol=1e-15)

    def test_draws_two_values(self):
        source = SequenceSource([0.3, 0.7])
        cos_dir(vec3(0.0, 1.0, 0.0), source)
        assert source.draws == 2

    def test_cos_squared_is_uniform(self, rng):
        """cos^2 of the angle from the normal is uniform on [0, 1]."""
        normal = normalize(vec3(0.3, -0.5, 0.8))
        n = 20000
        cos_theta = np.array([dot(cos_dir(normal, rng), normal) for _ in range(n)])

        counts, _ = np.histogram(cos_theta**2, bins=10, range=(0.0, 1.0))
        expected = n / 10
        chi_square = float(np.sum((counts - expected) ** 2 / expected))
        # 99.9th percentile of chi-square with 9 degrees of freedom
        assert chi_square < 27.88

        # E[cos] = 2/3 under a cos/pi density
        assert abs(cos_theta.mean() - 2.0 / 3.0) < 0.01


class TestSampleLight:
    """Tests for light-cone sampling."""

    @pytest.fixture
    def light(self):
        return Sphere(radius=0.2, center=(0.0, 2.0, 0.0), color=(1, 1, 1), light=True)

    def test_omega(self, light):
        _, omega = sample_light(vec3(0.0, 0.0, 0.0), light, SequenceSource([0.5]))
        assert math.isclose(omega, TAU * (1.0 - math.sqrt(1.0 - 0.01)))

    def test_draws_two_values(self, light):
        source = SequenceSource([0.3, 0.7])
        sample_light(vec3(0.0, 0.0, 0.0), light, source)
        assert source.draws == 2

    def test_directions_stay_in_cone(self, light, rng):
        cos_a_max = math.sqrt(1.0 - 0.01)
        axis = vec3(0.0, 1.0, 0.0)
        for _ in range(1000):
            d, _ = sample_light(vec3(0.0, 0.0, 0.0), light, rng)
            assert math.isclose(length_squared(d), 1.0, rel_tol=1e-12)
            assert dot(d, axis) >= cos_a_max - 1e-12

    def test_first_draw_zero_points_at_center(self, light):
        d, _ = sample_light(vec3(0.0, 0.0, 0.0), light, SequenceSource([0.0, 0.3]))
        np.testing.assert_allclose(d, [0.0, 1.0, 0.0], atol=1e-15)

    def test_uses_light_center_and_radius(self):
        """The cone depends on the light passed in, not a fixed position."""
        light = Sphere(radius=1.0, center=(4.0, 0.0, 0.0), color=(1, 1, 1), light=True)
        d, omega = sample_light(vec3(0.0, 0.0, 0.0), light, SequenceSource([0.0, 0.0]))
        np.testing.assert_allclose(d, [1.0, 0.0, 0.0], atol=1e-15)
        assert math.isclose(omega, TAU * (1.0 - math.sqrt(1.0 - 1.0 / 16.0)))

    def test_point_inside_light(self, light):
        """Inside the light the cone opens to the full hemisphere."""
        d, omega = sample_light(vec3(0.0, 1.9, 0.0), light, SequenceSource([0.5]))
        assert math.isclose(omega, TAU)
        assert math.isclose(length_squared(d), 1.0)
