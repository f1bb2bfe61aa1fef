"""Taichi-accelerated rendering backend.

This package mirrors the reference integrator as Taichi kernels for parallel
rendering on CPU or GPU:

Components:
    sampling: Cosine-weighted and light-cone direction sampling (@ti.func)
    scene: Sphere storage in Taichi fields and scene intersection
    integrator: Unrolled path tracing loop and the per-pixel render kernel

All kernels work in float64; the sphere floor of the reference scene is far
too large for single precision. Call ``init()`` before importing the scene or
integrator modules, since they allocate Taichi fields at import time.

Example:
    >>> from pathtracer import kernels
    >>> kernels.init(arch="cpu", random_seed=7)
    >>> from pathtracer.kernels.integrator import render_image
"""

import taichi as ti

ARCHES = {
    "cpu": ti.cpu,
    "gpu": ti.gpu,
}


def init(arch: str = "cpu", random_seed: int = 0) -> None:
    """Initialize the Taichi runtime for the kernels in this package.

    Args:
        arch: "cpu" or "gpu".
        random_seed: Seed for ti.random() streams.

    Raises:
        ValueError: If arch is not recognised.
    """
    if arch not in ARCHES:
        raise ValueError(f"Unknown arch {arch!r}, expected one of {sorted(ARCHES)}")
    ti.init(arch=ARCHES[arch], default_fp=ti.f64, random_seed=random_seed)
