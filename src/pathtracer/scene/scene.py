"""Ordered sphere scenes with nearest-hit and shadow queries.

A Scene is an immutable, ordered collection of spheres. Element 0 is always
the light: its center and radius drive explicit light sampling and it is
skipped when testing shadow rays. Order is otherwise irrelevant; nearest-hit
selection depends only on the ray parameter t.

Scenes are validated once at construction so that degenerate geometry is
reported at load time instead of deep inside a render.

Example:
    >>> from pathtracer.scene.scene import Scene
    >>> scene = Scene.from_dict({
    ...     "spheres": [
    ...         {"radius": 0.2, "center": [0, 1.25, -0.5], "color": [1, 1, 1], "light": True},
    ...         {"radius": 0.25, "center": [0.5, 0.5, 0.5], "color": [0, 0, 1]},
    ...     ]
    ... })
    >>> len(scene)
    2
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator, Sequence
from pathlib import Path
from typing import Any

from pathtracer.core.ray import Vec3
from pathtracer.geometry.sphere import T_MAX, T_MIN, Hit, Sphere, intersect_sphere

logger = logging.getLogger(__name__)


class Scene(Sequence[Sphere]):
    """An immutable ordered list of spheres whose first element is the light.

    Args:
        spheres: The spheres, light first.

    Raises:
        ValueError: If the scene is empty, the first sphere is not a light,
            or any sphere has a non-positive radius or a diffuseness outside
            [0, 1].
    """

    def __init__(self, spheres: Iterable[Sphere]) -> None:
        self._spheres: tuple[Sphere, ...] = tuple(spheres)
        self.validate()

    def validate(self) -> None:
        """Check the scene invariants.

        Raises:
            ValueError: If an invariant is violated.
        """
        if not self._spheres:
            raise ValueError("Scene must contain at least the light sphere")

        for i, sphere in enumerate(self._spheres):
            if not sphere.radius > 0.0:
                raise ValueError(f"Sphere {i} must have a positive radius, got {sphere.radius}")
            if not 0.0 <= sphere.diffuseness <= 1.0:
                raise ValueError(
                    f"Sphere {i} diffuseness must be in [0, 1], got {sphere.diffuseness}"
                )
            if i > 0 and sphere.emits:
                logger.warning(
                    "Sphere %d has color %s and will terminate paths like a light, "
                    "but only sphere 0 is sampled as the light",
                    i,
                    sphere.color,
                )

        if not self._spheres[0].emits:
            raise ValueError(
                "Sphere 0 must be the light (tagged light=True or colored (1, 1, 1))"
            )

    def __getitem__(self, index):  # type: ignore[override]
        return self._spheres[index]

    def __len__(self) -> int:
        return len(self._spheres)

    def __iter__(self) -> Iterator[Sphere]:
        return iter(self._spheres)

    def __repr__(self) -> str:
        return f"Scene({len(self._spheres)} spheres)"

    @property
    def light(self) -> Sphere:
        """The light sphere (element 0)."""
        return self._spheres[0]

    # =========================================================================
    # Ray Queries
    # =========================================================================

    def nearest_hit(
        self,
        origin: Vec3,
        direction: Vec3,
        t_min: float = T_MIN,
        t_max: float = T_MAX,
    ) -> Hit | None:
        """Find the closest intersection along a ray.

        Args:
            origin: The starting point of the ray.
            direction: The direction vector of the ray.
            t_min: Minimum t value to consider a valid hit.
            t_max: Maximum t value to consider a valid hit.

        Returns:
            The hit with the smallest t, or None if every sphere is missed.
            Hits with a NaN t are never reported.
        """
        closest: Hit | None = None
        for sphere in self._spheres:
            hit = intersect_sphere(origin, direction, sphere, t_min, t_max)
            if hit is not None and (closest is None or hit.t < closest.t):
                closest = hit
        return closest

    def occluded(
        self,
        origin: Vec3,
        direction: Vec3,
        t_max: float = T_MAX,
    ) -> bool:
        """Test a shadow ray against every sphere except the light.

        Args:
            origin: The shading point.
            direction: The direction toward the light.
            t_max: Only hits closer than this block the light.

        Returns:
            True if any non-light sphere is hit in (T_MIN, t_max).
        """
        return any(
            intersect_sphere(origin, direction, sphere, T_MIN, t_max) is not None
            for sphere in self._spheres[1:]
        )

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_dict(self) -> dict[str, Any]:
        """Export the scene to a dictionary (for JSON serialization)."""
        return {
            "spheres": [
                {
                    "radius": s.radius,
                    "center": list(s.center),
                    "color": list(s.color),
                    "diffuseness": s.diffuseness,
                    "light": s.light,
                }
                for s in self._spheres
            ]
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Scene:
        """Load a scene from a dictionary.

        Args:
            data: Dictionary with a 'spheres' list. Each entry needs radius,
                center and color; diffuseness defaults to 1 and light to
                False.

        Raises:
            ValueError: If an entry is malformed or the scene is invalid.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Scene data must be an object, got {type(data).__name__}")
        entries = data.get("spheres", [])
        if not isinstance(entries, list):
            raise ValueError(f"'spheres' must be a list, got {type(entries).__name__}")

        spheres = []
        for i, entry in enumerate(entries):
            try:
                center = entry["center"]
                color = entry["color"]
                if len(center) != 3 or len(color) != 3:
                    raise ValueError(f"Sphere {i} center and color must have 3 components")
                sphere = Sphere(
                    radius=float(entry["radius"]),
                    center=(center[0], center[1], center[2]),
                    color=(color[0], color[1], color[2]),
                    diffuseness=float(entry.get("diffuseness", 1.0)),
                    light=bool(entry.get("light", False)),
                )
            except KeyError as e:
                raise ValueError(f"Sphere {i} is missing {e}") from e
            except TypeError as e:
                raise ValueError(f"Sphere {i} is malformed: {e}") from e
            spheres.append(sphere)
        return cls(spheres)


def load_scene(path: str | Path) -> Scene:
    """Load a scene from a JSON file.

    Raises:
        OSError: If the file cannot be read.
        ValueError: If the file is not valid JSON or describes an invalid scene.
    """
    with open(path, encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid scene file {path}: {e}") from e

    scene = Scene.from_dict(data)
    logger.debug("Loaded %r from %s", scene, path)
    return scene
