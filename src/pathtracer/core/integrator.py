"""Reference path tracing integrator for Monte Carlo light transport.

This module implements the recursive radiance estimator in float64 NumPy and
the per-pixel driver that averages many jittered samples.

At each bounce the nearest sphere along the ray is found and one of three
things happens:

- The sphere is the light: its color is returned and the path ends.
- Specular bounce (probability 1 - diffuseness): the ray is mirrored about
  the normal and the result is ``albedo * L_reflected``. A reflected ray that
  contributes nothing counts as black.
- Diffuse bounce (probability diffuseness): the result is the sum of an
  explicit term, from one shadow-tested sample over the light's solid angle,
  and an implicit term ``albedo * L_indirect`` from a cosine-weighted bounce.
  A diffuse bounce that contributes nothing counts as white, standing in for
  ambient fill light from outside the scene.

Paths stop at a fixed maximum depth, not by Russian roulette. Every call
recurses exactly once, so the cost of a sample is linear in the depth.

Example:
    >>> import numpy as np
    >>> from pathtracer.core.integrator import RenderSettings, render_image
    >>> from pathtracer.scene.reference import create_reference_scene
    >>> settings = RenderSettings(width=32, height=18, samples=4, seed=1)
    >>> image = render_image(create_reference_scene(), settings)
    >>> image.shape
    (18, 32, 3)
"""

from __future__ import annotations

import logging
import math
import multiprocessing
import time
from collections.abc import Callable
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt

from pathtracer.camera.lens import LensCamera, primary_ray
from pathtracer.core.ray import (
    Color,
    Vec3,
    black,
    dot,
    length_squared,
    normalize,
    reflect,
    white,
)
from pathtracer.core.sampling import RandomSource, cos_dir, sample_light
from pathtracer.geometry.sphere import Sphere
from pathtracer.scene.scene import Scene

logger = logging.getLogger(__name__)

# =============================================================================
# Rendering Constants
# =============================================================================

# Maximum ray bounces (path length)
MAX_DEPTH = 20

# Anti-aliasing samples per pixel
SAMPLES_PER_PIXEL = 256

# Callback receives (rows_done, total_rows)
ProgressCallback = Callable[[int, int], None]


@dataclass
class RenderSettings:
    """Image and sampling parameters for a render.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        samples: Primary samples averaged per pixel.
        max_depth: Number of bounces after which a path contributes nothing.
        seed: Seed for the per-pixel random streams. None draws fresh
            entropy, so the render is not reproducible.

    Raises:
        ValueError: If a dimension or the sample count is not positive, or
            max_depth is negative.
    """

    width: int = 1920
    height: int = 1080
    samples: int = SAMPLES_PER_PIXEL
    max_depth: int = MAX_DEPTH
    seed: int | None = None

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Image dimensions must be positive, got {self.width}x{self.height}")
        if self.samples <= 0:
            raise ValueError(f"samples must be positive, got {self.samples}")
        if self.max_depth < 0:
            raise ValueError(f"max_depth must be non-negative, got {self.max_depth}")


# =============================================================================
# Path Tracing Core
# =============================================================================


def _explicit_light(
    point: Vec3,
    normal: Vec3,
    sphere: Sphere,
    scene: Scene,
    rng: RandomSource,
) -> Color:
    """Direct light reaching a diffuse point, from one sample of the light's cone.

    Returns ``albedo * cos * omega / pi`` if the sampled direction reaches
    the light without hitting another sphere, and black otherwise.
    """
    light = scene.light
    light_direction, omega = sample_light(point, light, rng)

    distance = math.sqrt(length_squared(light.position - point))
    if scene.occluded(point, light_direction, distance):
        return black()

    cosine = dot(light_direction, normal)
    if cosine <= 0.0:
        return black()

    return sphere.albedo * (cosine * omega / math.pi)


def get_color(
    origin: Vec3,
    direction: Vec3,
    scene: Scene,
    rng: RandomSource,
    depth: int = 0,
    max_depth: int = MAX_DEPTH,
) -> Color | None:
    """Estimate the radiance arriving at origin from direction.

    Args:
        origin: The ray origin.
        direction: The unit ray direction.
        scene: The scene; element 0 is the light.
        rng: Source of uniform random numbers for this sample.
        depth: The current bounce count.
        max_depth: Bounce count at which the path stops contributing.

    Returns:
        The estimated radiance, or None if the ray leaves the scene or the
        path reached max_depth.
    """
    if depth >= max_depth:
        return None

    hit = scene.nearest_hit(origin, direction)
    if hit is None:
        return None

    sphere, point, _ = hit

    if sphere.emits:
        return sphere.albedo.copy()

    normal = normalize(point - sphere.position)

    if rng.random() > sphere.diffuseness:
        # Ideal specular reflection
        specular_direction = reflect(direction, normal)
        reflected = get_color(point, specular_direction, scene, rng, depth + 1, max_depth)
        return sphere.albedo * (black() if reflected is None else reflected)

    explicit = _explicit_light(point, normal, sphere, scene, rng)

    # Cosine-weighted bounce; the albedo alone is the estimator weight
    diffuse_direction = cos_dir(normal, rng)
    indirect = get_color(point, diffuse_direction, scene, rng, depth + 1, max_depth)
    return explicit + sphere.albedo * (white() if indirect is None else indirect)


# =============================================================================
# Pixel Driver
# =============================================================================


def render_pixel(
    x: int,
    y: int,
    scene: Scene,
    settings: RenderSettings,
    camera: LensCamera,
    rng: RandomSource,
) -> Color:
    """Average settings.samples jittered path samples for one pixel.

    Samples that contribute nothing count as black. No clamping or tone
    mapping is applied.

    Args:
        x: Pixel column (0 = left).
        y: Pixel row (0 = top).
        scene: The scene to render.
        settings: Image and sampling parameters.
        camera: The camera configuration.
        rng: Source of uniform random numbers for this pixel.

    Returns:
        The mean color of the samples.
    """
    total = black()
    for _ in range(settings.samples):
        origin, direction = primary_ray(camera, x, y, settings.height, rng)
        color = get_color(origin, direction, scene, rng, 0, settings.max_depth)
        if color is not None:
            total += color
    return total / settings.samples


def pixel_rng(entropy: int, x: int, y: int) -> np.random.Generator:
    """Independent random stream for one pixel, derived from the render entropy."""
    return np.random.default_rng([entropy, y, x])


def _render_rows(
    scene: Scene,
    settings: RenderSettings,
    camera: LensCamera,
    entropy: int,
    rows: range,
) -> tuple[range, npt.NDArray[np.float64]]:
    """Render a band of rows. Each pixel is written by exactly one call."""
    band = np.zeros((len(rows), settings.width, 3), dtype=np.float64)
    for i, y in enumerate(rows):
        for x in range(settings.width):
            band[i, x] = render_pixel(x, y, scene, settings, camera, pixel_rng(entropy, x, y))
    return rows, band


def render_image(
    scene: Scene,
    settings: RenderSettings | None = None,
    camera: LensCamera | None = None,
    *,
    workers: int = 1,
    callback: ProgressCallback | None = None,
) -> npt.NDArray[np.float64]:
    """Render a full image with the reference integrator.

    Every pixel draws from its own stream seeded by (seed, y, x), so the
    result for a given seed does not depend on the number of workers or the
    order in which rows complete.

    Args:
        scene: The scene to render.
        settings: Image and sampling parameters (defaults to RenderSettings()).
        camera: The camera configuration (defaults to LensCamera()).
        workers: Number of processes to spread row bands across. 1 renders
            in the calling process.
        callback: Optional callback called as bands complete with
            (rows_done, total_rows).

    Returns:
        Linear float64 image of shape (height, width, 3), row 0 at the top.
    """
    settings = settings or RenderSettings()
    camera = camera or LensCamera()

    entropy = settings.seed
    if entropy is None:
        entropy = int(np.random.SeedSequence().entropy)
        logger.debug("Render entropy %d", entropy)

    image = np.zeros((settings.height, settings.width, 3), dtype=np.float64)
    start_time = time.perf_counter()

    band_size = max(1, settings.height // (workers * 4)) if workers > 1 else 1
    bands = [
        range(start, min(start + band_size, settings.height))
        for start in range(0, settings.height, band_size)
    ]

    rows_done = 0
    if workers > 1:
        context = multiprocessing.get_context("spawn")
        with ProcessPoolExecutor(max_workers=workers, mp_context=context) as pool:
            futures = [
                pool.submit(_render_rows, scene, settings, camera, entropy, rows)
                for rows in bands
            ]
            for future in futures:
                rows, band = future.result()
                image[rows.start : rows.stop] = band
                rows_done += len(rows)
                if callback is not None:
                    callback(rows_done, settings.height)
    else:
        for rows in bands:
            _, band = _render_rows(scene, settings, camera, entropy, rows)
            image[rows.start : rows.stop] = band
            rows_done += len(rows)
            if callback is not None:
                callback(rows_done, settings.height)

    logger.debug(
        "Rendered %dx%d at %d spp in %.3fs",
        settings.width,
        settings.height,
        settings.samples,
        time.perf_counter() - start_time,
    )
    return image
