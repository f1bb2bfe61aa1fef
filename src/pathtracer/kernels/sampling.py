"""Direction sampling as Taichi functions.

Taichi versions of pathtracer.core.sampling; the random numbers come from
ti.random() instead of an injected source.
"""

import taichi as ti
import taichi.math as tm

real = ti.f64
vec3 = ti.types.vector(3, real)


@ti.func
def tangent_frame(normal: vec3):
    """Two unit tangents completing an orthonormal frame with normal.

    Normals at the (0, 0, -1) pole, where the branchless formula divides by
    zero, get a fixed frame.
    """
    u = vec3(0.0, -1.0, 0.0)
    v = vec3(-1.0, 0.0, 0.0)
    denom = 1.0 + normal.z
    if denom >= 1e-9:
        cross_term = -normal.x * normal.y / denom
        u = vec3((denom - normal.x * normal.x) / denom, cross_term, -normal.x)
        v = vec3(cross_term, (denom - normal.y * normal.y) / denom, -normal.y)
    return u, v


@ti.func
def cos_dir(normal: vec3) -> vec3:
    """Cosine-weighted hemisphere sampling around a unit normal (PDF cos/pi)."""
    u, v = tangent_frame(normal)

    u1 = ti.random(real)
    u2 = ti.random(real)

    phi = 2.0 * tm.pi * u2
    r = ti.sqrt(u1)
    return (u * ti.cos(phi) + v * ti.sin(phi)) * r + normal * ti.sqrt(1.0 - u1)


@ti.func
def sample_light(point: vec3, center: vec3, radius: real):
    """Sample a direction uniformly over the cone subtended by a spherical light.

    Returns:
        A tuple (direction, omega) of the unit direction and the cone's solid
        angle 2*pi*(1 - cos_a_max).
    """
    to_light = center - point
    dist2 = tm.dot(to_light, to_light)

    ratio = radius * radius / dist2
    cos_a_max = 0.0
    if ratio < 1.0:
        cos_a_max = ti.sqrt(1.0 - ratio)

    eps1 = ti.random(real)
    eps2 = ti.random(real)
    cos_a = 1.0 - eps1 + eps1 * cos_a_max
    sin_a = ti.sqrt(ti.max(0.0, 1.0 - cos_a * cos_a))
    phi = 2.0 * tm.pi * eps2

    axis = to_light / ti.sqrt(dist2)
    u, v = tangent_frame(axis)
    direction = tm.normalize((u * ti.cos(phi) + v * ti.sin(phi)) * sin_a + axis * cos_a)

    omega = 2.0 * tm.pi * (1.0 - cos_a_max)
    return direction, omega
