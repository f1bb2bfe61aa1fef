"""Sphere primitive with robust ray-sphere intersection.

This module provides the immutable Sphere record used by scenes and the
intersection routine used by the reference integrator. The quadratic is solved
with the numerically stable formulation from Ray Tracing Gems to avoid
catastrophic cancellation, which matters for very large spheres such as the
reference floor (radius 20000.25).

Example:
    >>> from pathtracer.core.ray import vec3
    >>> from pathtracer.geometry.sphere import Sphere, intersect_sphere
    >>> sphere = Sphere(radius=1.0, center=(0.0, 0.0, 0.0), color=(0.5, 0.5, 0.5))
    >>> hit = intersect_sphere(vec3(0, 0, 5), vec3(0, 0, -1), sphere)
    >>> hit.t
    4.0
"""

import math
from dataclasses import dataclass, field
from typing import NamedTuple

import numpy as np

from pathtracer.core.ray import Color, Vec3, dot, is_white

# t_min for ray intersection; hits closer than this are self-intersections
T_MIN = 1e-6
T_MAX = math.inf


@dataclass(frozen=True)
class Sphere:
    """A sphere with a diffuse/specular material.

    Attributes:
        radius: The radius of the sphere (positive).
        center: The center point (x, y, z).
        color: The albedo (r, g, b). The light is conventionally (1, 1, 1).
        diffuseness: Probability in [0, 1] of a diffuse bounce; the rest of
            the time the surface reflects specularly.
        light: Explicit light tag. A sphere whose color is white within
            0.001 per channel is treated as a light even without the tag.
    """

    radius: float
    center: tuple[float, float, float]
    color: tuple[float, float, float]
    diffuseness: float = 1.0
    light: bool = False
    _position: Vec3 = field(init=False, repr=False, compare=False)
    _albedo: Color = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "center", tuple(float(c) for c in self.center))
        object.__setattr__(self, "color", tuple(float(c) for c in self.color))
        object.__setattr__(self, "_position", np.array(self.center, dtype=np.float64))
        object.__setattr__(self, "_albedo", np.array(self.color, dtype=np.float64))

    @property
    def position(self) -> Vec3:
        """The center as a vector."""
        return self._position

    @property
    def albedo(self) -> Color:
        """The color as an RGB array."""
        return self._albedo

    @property
    def emits(self) -> bool:
        """Whether hitting this sphere terminates a path with its color."""
        return self.light or is_white(self._albedo)


class Hit(NamedTuple):
    """A ray-sphere intersection."""

    sphere: Sphere
    point: Vec3
    t: float


def _solve_quadratic_robust(h: float, a: float, c: float, sqrt_d: float) -> tuple[float, float]:
    """Solve a*t^2 + 2*h*t + c = 0, returning (t0, t1) with t0 <= t1."""
    q = -(h + math.copysign(sqrt_d, h))

    if abs(q) < 1e-12:
        t0 = (-h - sqrt_d) / a
        t1 = (-h + sqrt_d) / a
    else:
        t0 = q / a
        t1 = c / q

    if t0 > t1:
        t0, t1 = t1, t0
    return t0, t1


def intersect_sphere(
    origin: Vec3,
    direction: Vec3,
    sphere: Sphere,
    t_min: float = T_MIN,
    t_max: float = T_MAX,
) -> Hit | None:
    """Test for ray-sphere intersection.

    Solves |origin + t*direction - center|^2 = radius^2 for the smallest root
    in (t_min, t_max). A ray starting inside the sphere reports the exit
    point. The direction need not be normalized, in which case t is in units
    of the direction's length.

    Args:
        origin: The starting point of the ray.
        direction: The direction vector of the ray.
        sphere: The sphere to test.
        t_min: Minimum t value to consider a valid hit (avoids self-intersection).
        t_max: Maximum t value to consider a valid hit.

    Returns:
        The Hit, or None if the ray misses.
    """
    oc = origin - sphere.position

    a = dot(direction, direction)
    h = dot(direction, oc)
    c = dot(oc, oc) - sphere.radius * sphere.radius

    discriminant = h * h - a * c
    if discriminant < 0.0:
        return None

    t0, t1 = _solve_quadratic_robust(h, a, c, math.sqrt(discriminant))

    for t in (t0, t1):
        if t_min < t < t_max:
            return Hit(sphere, origin + direction * t, t)
    return None
