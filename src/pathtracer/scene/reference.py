"""The reference five-sphere scene.

A small spherical light hangs above a huge sphere acting as the floor, with a
blue diffuse sphere in the middle, a half-diffuse green sphere on the right
and an almost perfect mirror on the left.

Example:
    >>> from pathtracer.scene.reference import create_reference_scene
    >>> scene = create_reference_scene()
    >>> scene.light.radius
    0.2
"""

from pathtracer.geometry.sphere import Sphere
from pathtracer.scene.scene import Scene

LIGHT_POSITION = (0.0, 1.25, -0.5)
LIGHT_RADIUS = 0.2

FLOOR_COLOR = (234.0 / 255.0, 21.0 / 255.0, 81.0 / 255.0)


def create_reference_scene() -> Scene:
    """Create the reference scene, light first."""
    return Scene(
        [
            Sphere(
                radius=LIGHT_RADIUS,
                center=LIGHT_POSITION,
                color=(1.0, 1.0, 1.0),
                diffuseness=1.0,
                light=True,
            ),
            # Floor
            Sphere(
                radius=20000.25,
                center=(0.5, -20000.0, 0.5),
                color=FLOOR_COLOR,
                diffuseness=1.0,
            ),
            # Blue sphere in middle
            Sphere(radius=0.25, center=(0.5, 0.5, 0.5), color=(0.0, 0.0, 1.0), diffuseness=1.0),
            # Green sphere on right
            Sphere(radius=0.25, center=(1.0, 0.5, 1.0), color=(0.0, 1.0, 0.0), diffuseness=0.5),
            # Mirror sphere on left
            Sphere(
                radius=0.5,
                center=(0.0, 0.75, 1.25),
                color=(0.999, 0.999, 0.999),
                diffuseness=0.01,
            ),
        ]
    )
