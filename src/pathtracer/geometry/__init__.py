"""Geometry module for shape primitives.

Components:
    sphere: Sphere record with ray-sphere intersection

The Taichi counterpart of the intersection routine lives in
pathtracer.kernels.scene so that importing this module never touches the
Taichi runtime.
"""

from .sphere import T_MAX, T_MIN, Hit, Sphere, intersect_sphere

__all__ = [
    "Sphere",
    "Hit",
    "intersect_sphere",
    "T_MIN",
    "T_MAX",
]
