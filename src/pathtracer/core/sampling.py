"""Random direction sampling for Monte Carlo light transport.

Two sampling strategies are provided:

- ``cos_dir``: cosine-weighted hemisphere sampling around a surface normal.
  The PDF is cos(theta) / pi, which cancels the cosine term of the rendering
  equation for a Lambertian surface, so a diffuse bounce is weighted by the
  albedo alone.
- ``sample_light``: uniform sampling of the cone of directions subtended by a
  spherical light, returning the direction together with the cone's solid
  angle ``omega = 2 * pi * (1 - cos_a_max)``.

All randomness comes from an injected ``RandomSource`` so that every sample
can own an independent stream and tests can substitute fixed sequences.

Example:
    >>> import numpy as np
    >>> from pathtracer.core.ray import vec3
    >>> rng = np.random.default_rng(7)
    >>> direction = cos_dir(vec3(0.0, 1.0, 0.0), rng)
"""

from __future__ import annotations

import itertools
import math
from collections.abc import Iterable
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from pathtracer.core.ray import Vec3, length_squared, normalize, ray_to, vec3

if TYPE_CHECKING:
    from pathtracer.geometry.sphere import Sphere

TAU = 2.0 * math.pi

# Normals closer than this to (0, 0, -1) use a fixed fallback frame
_FRAME_SINGULARITY = 1e-9


@runtime_checkable
class RandomSource(Protocol):
    """Source of uniform random numbers.

    ``numpy.random.Generator`` satisfies this protocol directly.
    """

    def random(self) -> float:
        """Return the next uniform real in [0, 1)."""
        ...


class SequenceSource:
    """Deterministic source that cycles through a fixed list of values.

    Used for regression tests that need exactly reproducible paths.

    Args:
        values: The values to return, in order. Each must lie in [0, 1).

    Raises:
        ValueError: If values is empty or contains a value outside [0, 1).
    """

    def __init__(self, values: Iterable[float]) -> None:
        self._values = [float(v) for v in values]
        if not self._values:
            raise ValueError("SequenceSource needs at least one value")
        for v in self._values:
            if not 0.0 <= v < 1.0:
                raise ValueError(f"Random values must lie in [0, 1), got {v}")
        self._cycle = itertools.cycle(self._values)
        self.draws = 0

    def random(self) -> float:
        self.draws += 1
        return next(self._cycle)


def tangent_frame(normal: Vec3) -> tuple[Vec3, Vec3]:
    """Build two tangent vectors completing an orthonormal frame with normal.

    Uses the branchless construction

        u = (1 - nx^2 / (1 + nz), -nx*ny / (1 + nz), -nx)
        v = (-nx*ny / (1 + nz), 1 - ny^2 / (1 + nz), -ny)

    which is undefined at normal = (0, 0, -1). Normals within 1e-9 of that
    pole get a fixed frame instead.

    Args:
        normal: A unit vector.

    Returns:
        A tuple (u, v) of unit vectors perpendicular to normal and each other.
    """
    nx, ny, nz = float(normal[0]), float(normal[1]), float(normal[2])
    denom = 1.0 + nz
    if denom < _FRAME_SINGULARITY:
        return vec3(0.0, -1.0, 0.0), vec3(-1.0, 0.0, 0.0)

    cross_term = -nx * ny / denom
    u = vec3((denom - nx * nx) / denom, cross_term, -nx)
    v = vec3(cross_term, (denom - ny * ny) / denom, -ny)
    return u, v


def cos_dir(normal: Vec3, rng: RandomSource) -> Vec3:
    """Cosine-weighted hemisphere sampling around a normal.

    Draws two uniforms (u1, u2) and maps them to

        phi = 2*pi*u2,  r = sqrt(u1)
        d = u*cos(phi)*r + v*sin(phi)*r + n*sqrt(1 - u1)

    so that cos^2 of the angle from the normal is uniform on [0, 1] and the
    direction density is cos(theta) / pi.

    Args:
        normal: The unit surface normal defining the hemisphere.
        rng: The random source (two draws).

    Returns:
        A unit direction in the hemisphere around normal.
    """
    u, v = tangent_frame(normal)

    u1 = rng.random()
    u2 = rng.random()

    phi = TAU * u2
    r = math.sqrt(u1)
    return (u * math.cos(phi) + v * math.sin(phi)) * r + normal * math.sqrt(1.0 - u1)


def sample_light(point: Vec3, light: Sphere, rng: RandomSource) -> tuple[Vec3, float]:
    """Sample a direction toward a spherical light, uniform in solid angle.

    The light subtends a cone of half-angle a_max as seen from point, with

        cos_a_max = sqrt(1 - r^2 / |c - p|^2)

    Two uniforms (e1, e2) pick ``cos_a = 1 - e1 + e1*cos_a_max`` and
    ``phi = 2*pi*e2``; the direction is rotated by (sin_a, cos_a, phi) about
    the point-to-light axis. When point lies inside the light's radius the
    cone opens to the full hemisphere (cos_a_max = 0).

    Args:
        point: The shading point.
        light: The light sphere; its own center and radius are used.
        rng: The random source (two draws).

    Returns:
        A tuple (direction, omega) of the unit sampled direction and the
        solid angle of the cone.
    """
    to_light = ray_to(point, light.position)
    dist2 = length_squared(to_light)

    ratio = light.radius * light.radius / dist2
    cos_a_max = math.sqrt(1.0 - ratio) if ratio < 1.0 else 0.0

    eps1 = rng.random()
    eps2 = rng.random()
    cos_a = 1.0 - eps1 + eps1 * cos_a_max
    sin_a = math.sqrt(max(0.0, 1.0 - cos_a * cos_a))
    phi = TAU * eps2

    axis = to_light / math.sqrt(dist2)
    u, v = tangent_frame(axis)
    direction = normalize((u * math.cos(phi) + v * math.sin(phi)) * sin_a + axis * cos_a)

    omega = TAU * (1.0 - cos_a_max)
    return direction, omega
