"""Lens camera with jittered primary rays.

The camera looks from an eye point through an image plane at z = 0. Pixel
coordinates are scaled by the image height so that pixels are square, and
the horizontal range is shifted so the scene sits in the middle of a wide
image:

    px = shift + (x + j1) / height
    py = ((height - y) + j2) / height

Row 0 is the top of the image. Each sample jitters the point inside its pixel
for anti-aliasing, and jitters the ray origin in the xy plane by up to
``blur`` for lens blur. The direction's x and y components are blended with
``blend`` times themselves minus that origin offset, which widens the field of
view and refocuses the blurred rays.

Example:
    >>> import numpy as np
    >>> from pathtracer.camera.lens import LensCamera, primary_ray
    >>> camera = LensCamera()
    >>> origin, direction = primary_ray(camera, 960, 540, 1080, np.random.default_rng(0))
"""

from dataclasses import dataclass

from pathtracer.core.ray import Vec3, normalize, ray_to, vec3
from pathtracer.core.sampling import RandomSource


@dataclass
class LensCamera:
    """Configuration for the lens camera.

    Attributes:
        eye: Camera position in world space (x, y, z).
        blur: Maximum lens-blur offset of the ray origin in x and y.
        blend: Weight of the direction added back onto its own x and y
            components.
        shift: Horizontal offset of the image plane's left edge.
    """

    eye: tuple[float, float, float] = (0.5, 0.5, -1.0)
    blur: float = 0.0015
    blend: float = 0.6
    shift: float = -0.25


def primary_ray(
    camera: LensCamera,
    x: int,
    y: int,
    height: int,
    rng: RandomSource,
) -> tuple[Vec3, Vec3]:
    """Generate a jittered primary ray for a pixel.

    Draws four uniforms: two for the position inside the pixel, then two for
    the lens offset.

    Args:
        camera: The camera configuration.
        x: Pixel column (0 = left).
        y: Pixel row (0 = top).
        height: Image height in pixels.
        rng: The random source.

    Returns:
        A tuple (origin, direction) with a unit direction.
    """
    px = camera.shift + (x + rng.random()) / height
    py = ((height - y) + rng.random()) / height

    eye = vec3(*camera.eye)
    direction = ray_to(eye, vec3(px, py, 0.0))

    go_x = (rng.random() * 2.0 - 1.0) * camera.blur
    go_y = (rng.random() * 2.0 - 1.0) * camera.blur

    origin = eye.copy()
    origin[0] += go_x
    origin[1] += go_y

    direction[0] += direction[0] * camera.blend - go_x
    direction[1] += direction[1] * camera.blend - go_y

    return origin, normalize(direction)
