"""Camera module for primary ray generation.

Components:
    lens: Lens camera with anti-aliasing and lens-blur jitter
"""

from .lens import LensCamera, primary_ray

__all__ = [
    "LensCamera",
    "primary_ray",
]
