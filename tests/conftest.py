"""Pytest configuration for path tracer tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import sys

import numpy as np
import pytest


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Taichi kernel modules allocate fields at import time, so tests import them
    inside test functions, after this fixture has run.
    """
    from pathtracer import kernels

    kernels.init(arch="cpu", random_seed=42)
    yield


@pytest.fixture(autouse=True)
def clear_kernel_scene():
    """Clear the kernel scene after each test that uploaded one."""
    yield
    module = sys.modules.get("pathtracer.kernels.scene")
    if module is not None:
        module.clear_scene()


@pytest.fixture
def far_light():
    """A light well away from the test geometry near the origin."""
    from pathtracer.geometry.sphere import Sphere

    return Sphere(radius=0.2, center=(50.0, 50.0, 50.0), color=(1.0, 1.0, 1.0), light=True)


@pytest.fixture
def reference_scene():
    """The reference five-sphere scene."""
    from pathtracer.scene.reference import create_reference_scene

    return create_reference_scene()


@pytest.fixture
def rng():
    """A seeded NumPy generator."""
    return np.random.default_rng(1234)
