"""Scene storage and intersection for the Taichi backend.

Spheres are copied from a validated Scene into Structure-of-Arrays Taichi
fields, preserving order so that index 0 is the light. The intersection
functions mirror Scene.nearest_hit and Scene.occluded.

Example:
    >>> from pathtracer import kernels
    >>> kernels.init()
    >>> from pathtracer.kernels.scene import upload_scene
    >>> from pathtracer.scene.reference import create_reference_scene
    >>> upload_scene(create_reference_scene())
    5
"""

import logging

import taichi as ti
import taichi.math as tm

from pathtracer.geometry.sphere import T_MIN
from pathtracer.scene.scene import Scene

logger = logging.getLogger(__name__)

real = ti.f64
vec3 = ti.types.vector(3, real)

T_MAX = 1e30


@ti.dataclass
class SceneHitRecord:
    """Record of a ray-scene intersection.

    Attributes:
        hit: Whether the ray intersected any sphere (1 if hit, 0 if miss).
        t: The parameter value along the ray. Only valid if hit == 1.
        point: The intersection point. Only valid if hit == 1.
        index: Scene index of the hit sphere, -1 on a miss.
    """

    hit: ti.i32
    t: real
    point: vec3
    index: ti.i32


# Maximum number of spheres supported in the scene
MAX_SPHERES = 256

# Sphere storage: Structure of Arrays layout for GPU efficiency
sphere_centers = ti.Vector.field(3, dtype=real, shape=MAX_SPHERES)
sphere_radii = ti.field(dtype=real, shape=MAX_SPHERES)
sphere_colors = ti.Vector.field(3, dtype=real, shape=MAX_SPHERES)
sphere_diffuseness = ti.field(dtype=real, shape=MAX_SPHERES)
sphere_emits = ti.field(dtype=ti.i32, shape=MAX_SPHERES)
num_spheres = ti.field(dtype=ti.i32, shape=())


def clear_scene() -> None:
    """Remove all spheres from the kernel scene."""
    num_spheres[None] = 0


def upload_scene(scene: Scene) -> int:
    """Copy a scene into the Taichi fields, replacing any previous one.

    Args:
        scene: The validated scene, light first.

    Returns:
        The number of spheres uploaded.

    Raises:
        RuntimeError: If the scene has more than MAX_SPHERES spheres.
    """
    if len(scene) > MAX_SPHERES:
        raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")

    for i, sphere in enumerate(scene):
        sphere_centers[i] = sphere.center
        sphere_radii[i] = sphere.radius
        sphere_colors[i] = sphere.color
        sphere_diffuseness[i] = sphere.diffuseness
        sphere_emits[i] = int(sphere.emits)
    num_spheres[None] = len(scene)

    logger.debug("Uploaded %d spheres", len(scene))
    return len(scene)


def get_sphere_count() -> int:
    """Get the number of spheres in the kernel scene."""
    return int(num_spheres[None])


@ti.func
def hit_sphere(origin: vec3, direction: vec3, index: ti.i32, t_min: real, t_max: real):
    """Smallest root of the ray-sphere quadratic in (t_min, t_max).

    Uses the same robust formulation as the reference intersection.

    Returns:
        A tuple (hit, t) where hit is 1 if a valid root exists.
    """
    oc = origin - sphere_centers[index]
    radius = sphere_radii[index]

    a = tm.dot(direction, direction)
    h = tm.dot(direction, oc)
    c = tm.dot(oc, oc) - radius * radius
    discriminant = h * h - a * c

    did_hit = 0
    hit_t = 0.0

    if discriminant >= 0.0:
        sqrt_d = ti.sqrt(discriminant)
        sign_h = ti.select(h < 0.0, -1.0, 1.0)
        q = -(h + sign_h * sqrt_d)

        t0 = 0.0
        t1 = 0.0
        if ti.abs(q) < 1e-12:
            t0 = (-h - sqrt_d) / a
            t1 = (-h + sqrt_d) / a
        else:
            t0 = q / a
            t1 = c / q

        if t0 > t1:
            temp = t0
            t0 = t1
            t1 = temp

        if (t0 > t_min) and (t0 < t_max):
            did_hit = 1
            hit_t = t0
        elif (t1 > t_min) and (t1 < t_max):
            did_hit = 1
            hit_t = t1

    return did_hit, hit_t


@ti.func
def intersect_scene(origin: vec3, direction: vec3, t_min: real, t_max: real) -> SceneHitRecord:
    """Closest intersection over every sphere in the scene.

    Returns:
        A SceneHitRecord for the smallest t in (t_min, t_max), or a miss.
    """
    closest_t = t_max
    closest_index = -1

    for i in range(num_spheres[None]):
        did_hit, t = hit_sphere(origin, direction, i, t_min, closest_t)
        if did_hit == 1:
            closest_t = t
            closest_index = i

    result = SceneHitRecord(hit=0, t=0.0, point=vec3(0.0, 0.0, 0.0), index=-1)
    if closest_index >= 0:
        result = SceneHitRecord(
            hit=1,
            t=closest_t,
            point=origin + closest_t * direction,
            index=closest_index,
        )
    return result


@ti.func
def intersect_scene_any(origin: vec3, direction: vec3, t_min: real, t_max: real) -> ti.i32:
    """Shadow ray query: 1 if any sphere other than the light (index 0) is hit."""
    hit_any = 0
    for i in range(1, num_spheres[None]):
        if hit_any == 0:
            did_hit, _ = hit_sphere(origin, direction, i, t_min, t_max)
            if did_hit == 1:
                hit_any = 1
    return hit_any
