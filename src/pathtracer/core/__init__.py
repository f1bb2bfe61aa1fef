"""Core rendering module.

Components:
    ray: Vector and color helpers on float64 NumPy arrays
    sampling: Random sources and direction sampling strategies
    integrator: Recursive radiance estimator and the per-pixel driver

Note: integrator is NOT imported here because it depends on the scene and
camera packages, which in turn import from core.
"""

from .ray import (
    black,
    dot,
    is_white,
    length_squared,
    normalize,
    ray_to,
    reflect,
    rgb,
    vec3,
    white,
)
from .sampling import RandomSource, SequenceSource, cos_dir, sample_light, tangent_frame

__all__ = [
    "vec3",
    "rgb",
    "black",
    "white",
    "dot",
    "length_squared",
    "normalize",
    "ray_to",
    "reflect",
    "is_white",
    "RandomSource",
    "SequenceSource",
    "tangent_frame",
    "cos_dir",
    "sample_light",
]
