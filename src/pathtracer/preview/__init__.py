"""Output utilities for rendered images.

Components:
    display: Tone mapping and gamma correction
    export: Writing PPM/PNG files through Pillow
"""

from .display import (
    TONE_MAP_METHODS,
    ToneMapMethod,
    apply_gamma,
    process_image_for_display,
    tone_map_exposure,
    tone_map_reinhard,
)
from .export import compute_rmse, image_to_uint8, save_image

__all__ = [
    "ToneMapMethod",
    "TONE_MAP_METHODS",
    "tone_map_reinhard",
    "tone_map_exposure",
    "apply_gamma",
    "process_image_for_display",
    "image_to_uint8",
    "save_image",
    "compute_rmse",
]
