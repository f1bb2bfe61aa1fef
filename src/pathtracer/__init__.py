"""Monte Carlo path tracer for small sphere scenes.

This package renders a fixed list of spheres lit by a single spherical light
by recursively sampling light transport paths, with support for:
- Cosine-weighted diffuse bounces and ideal specular reflection
- Explicit light sampling over the solid angle of the light
- Anti-aliasing and lens blur through jittered primary rays
- A float64 reference integrator and a Taichi-accelerated backend

Subpackages:
    core: Vector/color helpers, direction sampling and the path integrator
    geometry: Sphere primitive and ray-sphere intersection
    scene: Ordered sphere collections and the reference scene
    camera: Lens camera with jittered primary ray generation
    kernels: Taichi fields and kernels for parallel rendering
    preview: Tone mapping and image export
"""

__version__ = "0.1.0"
