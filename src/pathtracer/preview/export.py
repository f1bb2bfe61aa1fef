"""Image export for rendered images.

Supported formats (chosen from the file extension, written by Pillow):
    - PPM (binary portable pixmap, the renderer's native output)
    - PNG

Example:
    >>> from pathtracer.preview.export import save_image
    >>> save_image(image, "out.ppm")
"""

from __future__ import annotations

from pathlib import Path

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

from pathtracer.preview.display import ToneMapMethod, process_image_for_display

FORMATS = {
    ".ppm": "PPM",
    ".png": "PNG",
}


def image_to_uint8(
    image: npt.NDArray[np.floating],
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 1.0,
    exposure: float = 1.0,
) -> npt.NDArray[np.uint8]:
    """Convert a linear float image to 8 bits per channel.

    Values are tone mapped, gamma-encoded and clamped to [0, 1], then scaled
    to [0, 255] with rounding.

    Args:
        image: Linear image array of shape (H, W, 3).
        tone_map: Tone mapping method ("none", "reinhard", or "exposure").
        gamma: Gamma correction value (1.0 keeps values linear).
        exposure: Exposure value for exposure tone mapping.

    Returns:
        8-bit image array of shape (H, W, 3).
    """
    processed = process_image_for_display(image, tone_map=tone_map, gamma=gamma, exposure=exposure)
    return np.rint(processed * 255.0).astype(np.uint8)


def save_image(
    image: npt.NDArray[np.floating],
    filepath: str | Path,
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 1.0,
    exposure: float = 1.0,
) -> Path:
    """Save a linear image as PPM or PNG.

    Args:
        image: Linear image array of shape (H, W, 3), row 0 at the top.
        filepath: Output path ending in .ppm or .png.
        tone_map: Tone mapping method ("none", "reinhard", or "exposure").
        gamma: Gamma correction value (1.0 keeps values linear).
        exposure: Exposure value for exposure tone mapping.

    Returns:
        The path written.

    Raises:
        ValueError: If the extension is not supported or the image is not
            of shape (H, W, 3).
        OSError: If the file cannot be written.
    """
    path = Path(filepath)
    image_format = FORMATS.get(path.suffix.lower())
    if image_format is None:
        raise ValueError(
            f"Unsupported image format {path.suffix!r}, expected one of {sorted(FORMATS)}"
        )
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected an image of shape (H, W, 3), got {image.shape}")

    image_uint8 = image_to_uint8(image, tone_map=tone_map, gamma=gamma, exposure=exposure)
    PILImage.fromarray(image_uint8).save(path, format=image_format)
    return path


def compute_rmse(
    image_a: npt.NDArray[np.floating],
    image_b: npt.NDArray[np.floating],
) -> float:
    """Compute root mean squared error between two images.

    Raises:
        ValueError: If image shapes don't match.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(f"Image shapes must match: {image_a.shape} vs {image_b.shape}")

    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))
