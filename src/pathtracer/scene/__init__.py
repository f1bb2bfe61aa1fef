"""Scene module for sphere collections.

Components:
    scene: Ordered, validated sphere lists with nearest-hit and shadow queries
    reference: The reference five-sphere scene
"""

from .reference import LIGHT_POSITION, LIGHT_RADIUS, create_reference_scene
from .scene import Scene, load_scene

__all__ = [
    "Scene",
    "load_scene",
    "create_reference_scene",
    "LIGHT_POSITION",
    "LIGHT_RADIUS",
]
