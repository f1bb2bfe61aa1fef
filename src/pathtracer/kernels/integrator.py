"""Path tracing kernels for parallel rendering.

This module runs the same estimator as pathtracer.core.integrator inside
Taichi kernels. Taichi functions cannot recurse, so the single recursive call
per bounce is unrolled into a loop that carries a throughput. Each bounce
multiplies the throughput by the hit sphere's albedo, and diffuse bounces add
their explicit light term first. When the path ends by escaping or by reaching
max_depth, the fallback of the last bounce is added: black after a specular
bounce, white after a diffuse one. This matches the recursive form exactly.

The render kernel loops over pixels in parallel; each pixel's samples run
sequentially in one thread that alone writes that pixel.

Example:
    >>> from pathtracer import kernels
    >>> kernels.init(arch="cpu", random_seed=1)
    >>> from pathtracer.kernels.integrator import render_image
    >>> from pathtracer.core.integrator import RenderSettings
    >>> from pathtracer.scene.reference import create_reference_scene
    >>> image = render_image(create_reference_scene(), RenderSettings(64, 36, samples=16))
"""

import logging
import time
from collections.abc import Callable

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from pathtracer.camera.lens import LensCamera
from pathtracer.core.integrator import RenderSettings
from pathtracer.kernels.sampling import cos_dir, sample_light
from pathtracer.kernels.scene import (
    T_MAX,
    T_MIN,
    intersect_scene,
    intersect_scene_any,
    sphere_centers,
    sphere_colors,
    sphere_diffuseness,
    sphere_emits,
    sphere_radii,
    upload_scene,
)
from pathtracer.scene.scene import Scene

logger = logging.getLogger(__name__)

real = ti.f64
vec3 = ti.types.vector(3, real)
vec4 = ti.types.vector(4, real)

# Callback receives (samples_done, total_samples)
ProgressCallback = Callable[[int, int], None]

# =============================================================================
# Camera State
# =============================================================================

_eye = ti.Vector.field(3, dtype=real, shape=())
_blur = ti.field(dtype=real, shape=())
_blend = ti.field(dtype=real, shape=())
_shift = ti.field(dtype=real, shape=())


def setup_camera(camera: LensCamera) -> None:
    """Copy the camera configuration into Taichi fields."""
    _eye[None] = camera.eye
    _blur[None] = camera.blur
    _blend[None] = camera.blend
    _shift[None] = camera.shift


@ti.func
def primary_ray(x: ti.i32, y: ti.i32, height: ti.i32):
    """Jittered primary ray for pixel (x, y), row 0 at the top.

    Returns:
        A tuple (origin, direction) with a unit direction.
    """
    h = ti.cast(height, real)
    px = _shift[None] + (ti.cast(x, real) + ti.random(real)) / h
    py = (ti.cast(height - y, real) + ti.random(real)) / h

    eye = _eye[None]
    d = vec3(px, py, 0.0) - eye

    go_x = (ti.random(real) * 2.0 - 1.0) * _blur[None]
    go_y = (ti.random(real) * 2.0 - 1.0) * _blur[None]

    origin = eye + vec3(go_x, go_y, 0.0)
    blend = _blend[None]
    direction = vec3(d.x + d.x * blend - go_x, d.y + d.y * blend - go_y, d.z)
    return origin, tm.normalize(direction)


# =============================================================================
# Path Tracing Core
# =============================================================================


@ti.func
def _explicit_light(point: vec3, normal: vec3, albedo: vec3) -> vec3:
    """Direct light from one shadow-tested sample of the light's cone."""
    center = sphere_centers[0]
    light_direction, omega = sample_light(point, center, sphere_radii[0])
    distance = tm.length(center - point)

    result = vec3(0.0, 0.0, 0.0)
    if intersect_scene_any(point, light_direction, T_MIN, distance) == 0:
        cosine = tm.dot(light_direction, normal)
        if cosine > 0.0:
            result = albedo * (cosine * omega / tm.pi)
    return result


@ti.func
def trace_path(origin: vec3, direction: vec3, max_depth: ti.i32):
    """Trace a single path from origin along direction.

    Returns:
        A tuple (valid, radiance). valid is 0 when the path contributes
        nothing (max_depth of 0, or the first ray escapes).
    """
    ray_origin = origin
    ray_direction = direction

    radiance = vec3(0.0, 0.0, 0.0)
    throughput = vec3(1.0, 1.0, 1.0)
    # Stand-in for the next bounce if it contributes nothing
    fallback = vec3(0.0, 0.0, 0.0)

    valid = 0
    lit = 0
    # Active flag for path continuation (Taichi doesn't support break in ti.func loops)
    active = 1

    for _ in range(max_depth):
        if active == 1:
            rec = intersect_scene(ray_origin, ray_direction, T_MIN, T_MAX)

            if rec.hit == 0:
                active = 0
            else:
                valid = 1
                i = rec.index
                albedo = sphere_colors[i]

                if sphere_emits[i] == 1:
                    radiance += throughput * albedo
                    lit = 1
                    active = 0
                else:
                    normal = tm.normalize(rec.point - sphere_centers[i])

                    if ti.random(real) > sphere_diffuseness[i]:
                        # Ideal specular reflection
                        ray_direction = ray_direction - 2.0 * tm.dot(normal, ray_direction) * normal
                        fallback = vec3(0.0, 0.0, 0.0)
                    else:
                        radiance += throughput * _explicit_light(rec.point, normal, albedo)
                        ray_direction = cos_dir(normal)
                        fallback = vec3(1.0, 1.0, 1.0)

                    throughput *= albedo
                    ray_origin = rec.point

    if valid == 1 and lit == 0:
        radiance += throughput * fallback

    return valid, radiance


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.kernel
def _accumulate(
    image: ti.template(),
    width: ti.i32,
    height: ti.i32,
    samples: ti.i32,
    max_depth: ti.i32,
):
    """Add the sum of `samples` path samples to every pixel of image."""
    for y, x in ti.ndrange(height, width):
        total = vec3(0.0, 0.0, 0.0)
        for _ in range(samples):
            origin, direction = primary_ray(x, y, height)
            valid, color = trace_path(origin, direction, max_depth)
            if valid == 1:
                total += color
        image[y, x] += total


@ti.kernel
def _trace_single(
    ox: real,
    oy: real,
    oz: real,
    dx: real,
    dy: real,
    dz: real,
    max_depth: ti.i32,
) -> vec4:
    """Trace one path; the w component is the valid flag."""
    valid, color = trace_path(vec3(ox, oy, oz), vec3(dx, dy, dz), max_depth)
    return vec4(color.x, color.y, color.z, ti.cast(valid, real))


# =============================================================================
# Public Rendering API
# =============================================================================


def _accumulation_buffer(height: int, width: int):
    """Allocate a zeroed (height, width) color field in its own SNode tree.

    Returns:
        A tuple (field, tree). Destroy the tree to free the field.
    """
    builder = ti.FieldsBuilder()
    image = ti.Vector.field(3, dtype=real)
    builder.dense(ti.ij, (height, width)).place(image)
    tree = builder.finalize()
    image.fill(0.0)
    return image, tree


def trace_ray(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    max_depth: int,
) -> npt.NDArray[np.float64] | None:
    """Trace one path through the uploaded scene.

    This is a Python-callable function for testing; use render_image() for
    production rendering.

    Returns:
        The radiance of the path, or None if it contributes nothing.
    """
    result = _trace_single(
        origin[0], origin[1], origin[2], direction[0], direction[1], direction[2], max_depth
    )
    if result[3] == 0.0:
        return None
    return np.array([result[0], result[1], result[2]], dtype=np.float64)


def render_image(
    scene: Scene,
    settings: RenderSettings | None = None,
    camera: LensCamera | None = None,
    *,
    batch_size: int | None = None,
    callback: ProgressCallback | None = None,
) -> npt.NDArray[np.float64]:
    """Render a full image with the Taichi kernels.

    Samples are accumulated per pixel in batches, then divided by the total
    sample count. The random streams come from the seed given to
    pathtracer.kernels.init(); settings.seed is not used here.

    Args:
        scene: The scene to render.
        settings: Image and sampling parameters (defaults to RenderSettings()).
        camera: The camera configuration (defaults to LensCamera()).
        batch_size: Samples per kernel launch. Defaults to all samples at once.
        callback: Optional callback called after each batch with
            (samples_done, total_samples).

    Returns:
        Linear float64 image of shape (height, width, 3), row 0 at the top.

    Raises:
        RuntimeError: If the scene does not fit in the kernel scene fields.
    """
    settings = settings or RenderSettings()
    camera = camera or LensCamera()

    upload_scene(scene)
    setup_camera(camera)

    image, tree = _accumulation_buffer(settings.height, settings.width)
    batch_size = batch_size or settings.samples
    start_time = time.perf_counter()

    try:
        done = 0
        while done < settings.samples:
            batch = min(batch_size, settings.samples - done)
            _accumulate(image, settings.width, settings.height, batch, settings.max_depth)
            done += batch
            if callback is not None:
                callback(done, settings.samples)

        result = image.to_numpy().astype(np.float64) / settings.samples
    finally:
        tree.destroy()

    logger.debug(
        "Rendered %dx%d at %d spp in %.3fs",
        settings.width,
        settings.height,
        settings.samples,
        time.perf_counter() - start_time,
    )
    return result
