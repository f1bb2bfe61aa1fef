"""Tone mapping and gamma correction for rendered images.

The integrators return linear radiance that is neither clamped nor tone
mapped; these functions turn it into displayable values in [0, 1].

Example:
    >>> from pathtracer.preview.display import process_image_for_display
    >>> display = process_image_for_display(image, tone_map="reinhard", gamma=2.2)
"""

from typing import Literal

import numpy as np
import numpy.typing as npt

ToneMapMethod = Literal["none", "reinhard", "exposure"]

TONE_MAP_METHODS: tuple[ToneMapMethod, ...] = ("none", "reinhard", "exposure")

FloatImage = npt.NDArray[np.floating]


def tone_map_reinhard(image: FloatImage) -> npt.NDArray[np.float64]:
    """Apply Reinhard tone mapping: L / (1 + L)."""
    image = np.maximum(image, 0.0)
    return image / (1.0 + image)


def tone_map_exposure(image: FloatImage, exposure: float = 1.0) -> npt.NDArray[np.float64]:
    """Apply exposure tone mapping: 1 - exp(-L * exposure)."""
    image = np.maximum(image, 0.0)
    return 1.0 - np.exp(-image * exposure)


def apply_gamma(image: FloatImage, gamma: float = 2.2) -> npt.NDArray[np.float64]:
    """Gamma-encode an image, clamping to [0, 1] first.

    A gamma of 1.0 leaves values unchanged apart from the clamp.
    """
    # Clamp first so negative values cannot produce NaN
    image = np.clip(image, 0.0, 1.0)
    if gamma == 1.0:
        return image
    return np.power(image, 1.0 / gamma)


def process_image_for_display(
    image: FloatImage,
    tone_map: ToneMapMethod = "none",
    gamma: float = 1.0,
    exposure: float = 1.0,
) -> npt.NDArray[np.float64]:
    """Tone map, gamma-encode and clamp a linear image.

    Args:
        image: Linear image array of shape (H, W, 3).
        tone_map: Tone mapping method ("none", "reinhard", or "exposure").
        gamma: Gamma correction value (1.0 writes linear values).
        exposure: Exposure value for exposure tone mapping.

    Returns:
        Float64 image in [0, 1] of the same shape.

    Raises:
        ValueError: If tone_map is unknown or gamma is not positive.
    """
    if gamma <= 0.0:
        raise ValueError(f"gamma must be positive, got {gamma}")

    result = np.asarray(image, dtype=np.float64)

    if tone_map == "reinhard":
        result = tone_map_reinhard(result)
    elif tone_map == "exposure":
        result = tone_map_exposure(result, exposure)
    elif tone_map != "none":
        raise ValueError(f"Unknown tone mapping method: {tone_map}")

    return apply_gamma(result, gamma)
