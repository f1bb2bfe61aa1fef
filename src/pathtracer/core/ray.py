"""Vector and color utilities for the reference path tracer.

Vectors and colors are both plain float64 NumPy arrays of length 3. Vectors
are (x, y, z) positions or directions; colors are linear (r, g, b) radiance
or reflectance values that are never clamped here.

Example:
    >>> from pathtracer.core.ray import vec3, normalize, ray_to
    >>> eye = vec3(0.5, 0.5, -1.0)
    >>> direction = normalize(ray_to(eye, vec3(0.0, 1.0, 0.0)))
"""

import math

import numpy as np
import numpy.typing as npt

Vec3 = npt.NDArray[np.float64]
Color = npt.NDArray[np.float64]

# Per-channel tolerance used to recognise the white light sphere
WHITE_EPSILON = 1e-3


def vec3(x: float, y: float, z: float) -> Vec3:
    """Create a 3D vector."""
    return np.array((x, y, z), dtype=np.float64)


def rgb(r: float, g: float, b: float) -> Color:
    """Create a linear RGB color."""
    return np.array((r, g, b), dtype=np.float64)


def black() -> Color:
    """The additive identity, also used for "no contribution"."""
    return np.zeros(3, dtype=np.float64)


def white() -> Color:
    """The neutral multiplier (1, 1, 1)."""
    return np.ones(3, dtype=np.float64)


# =============================================================================
# Vector Utility Functions
# =============================================================================


def dot(a: Vec3, b: Vec3) -> float:
    """Compute the dot product of two vectors."""
    return float(a[0] * b[0] + a[1] * b[1] + a[2] * b[2])


def length_squared(v: Vec3) -> float:
    """Compute the squared length of a vector.

    Cheaper than the length when only comparing magnitudes.
    """
    return dot(v, v)


def normalize(v: Vec3) -> Vec3:
    """Normalize a vector to unit length.

    The zero vector has no direction; callers must not pass it.

    Args:
        v: The input vector.

    Returns:
        A unit vector in the same direction as v.
    """
    return v / math.sqrt(length_squared(v))


def ray_to(origin: Vec3, target: Vec3) -> Vec3:
    """Direction from origin toward target.

    The result is not normalized.
    """
    return target - origin


def reflect(incident: Vec3, normal: Vec3) -> Vec3:
    """Reflect an incident vector about a unit normal.

    Args:
        incident: The incoming direction vector (pointing toward the surface).
        normal: The surface normal (should be normalized).

    Returns:
        The mirrored direction d - 2(n.d)n.
    """
    return incident - normal * (2.0 * dot(normal, incident))


def is_white(color: Color, epsilon: float = WHITE_EPSILON) -> bool:
    """Check whether every channel of a color is within epsilon of 1."""
    return bool(np.all(np.abs(np.asarray(color, dtype=np.float64) - 1.0) < epsilon))
