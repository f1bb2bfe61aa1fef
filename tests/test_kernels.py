"""Tests for the Taichi rendering backend.

Kernel modules allocate Taichi fields at import time, so they are imported
inside each test, after the session fixture has initialized Taichi.
"""

import numpy as np
import pytest

from pathtracer.core.integrator import RenderSettings
from pathtracer.core.integrator import render_image as render_reference
from pathtracer.geometry.sphere import Sphere
from pathtracer.scene.scene import Scene

ALBEDO = (0.5, 0.25, 0.125)


class TestSceneUpload:
    """Tests for copying scenes into Taichi fields."""

    def test_upload_count(self, reference_scene):
        from pathtracer.kernels.scene import get_sphere_count, upload_scene

        assert upload_scene(reference_scene) == 5
        assert get_sphere_count() == 5

    def test_upload_replaces_previous_scene(self, reference_scene, far_light):
        from pathtracer.kernels.scene import get_sphere_count, upload_scene

        upload_scene(reference_scene)
        upload_scene(Scene([far_light]))
        assert get_sphere_count() == 1

    def test_fields_follow_scene_order(self, reference_scene):
        from pathtracer.kernels.scene import sphere_emits, sphere_radii, upload_scene

        upload_scene(reference_scene)
        assert sphere_radii[0] == pytest.approx(0.2)
        assert sphere_radii[1] == pytest.approx(20000.25)
        assert sphere_emits[0] == 1
        assert sphere_emits[4] == 0

    def test_capacity(self, far_light):
        from pathtracer.kernels.scene import MAX_SPHERES, upload_scene

        spheres = [far_light] + [
            Sphere(radius=0.1, center=(float(i), 0.0, 0.0), color=(0.5, 0.5, 0.5))
            for i in range(MAX_SPHERES)
        ]
        with pytest.raises(RuntimeError, match="Maximum number of spheres"):
            upload_scene(Scene(spheres))

    def test_clear(self, reference_scene):
        from pathtracer.kernels.scene import clear_scene, get_sphere_count, upload_scene

        upload_scene(reference_scene)
        clear_scene()
        assert get_sphere_count() == 0


class TestTraceRay:
    """Tests for single paths traced in a kernel."""

    def test_zero_depth(self, reference_scene):
        from pathtracer.kernels.integrator import trace_ray
        from pathtracer.kernels.scene import upload_scene

        upload_scene(reference_scene)
        assert trace_ray((0.0, 1.25, -2.0), (0.0, 0.0, 1.0), 0) is None

    def test_light_hit(self, reference_scene):
        from pathtracer.kernels.integrator import trace_ray
        from pathtracer.kernels.scene import upload_scene

        upload_scene(reference_scene)
        color = trace_ray((0.0, 1.25, -2.0), (0.0, 0.0, 1.0), 20)
        np.testing.assert_array_equal(color, [1.0, 1.0, 1.0])

    def test_miss(self, reference_scene):
        from pathtracer.kernels.integrator import trace_ray
        from pathtracer.kernels.scene import upload_scene

        upload_scene(reference_scene)
        assert trace_ray((0.0, 1.25, -2.0), (0.0, 0.0, -1.0), 20) is None

    def test_specular_escape_is_black(self, far_light):
        from pathtracer.kernels.integrator import trace_ray
        from pathtracer.kernels.scene import upload_scene

        mirror = Sphere(radius=1.0, center=(0.0, 0.0, -3.0), color=(0.9, 0.9, 0.9), diffuseness=0.0)
        upload_scene(Scene([far_light, mirror]))
        color = trace_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), 20)
        np.testing.assert_allclose(color, [0.0, 0.0, 0.0])

    def test_diffuse_escape_is_white(self):
        from pathtracer.kernels.integrator import trace_ray
        from pathtracer.kernels.scene import upload_scene

        light = Sphere(radius=0.2, center=(0.0, 3.0, -3.0), color=(1, 1, 1), light=True)
        sphere = Sphere(radius=1.0, center=(0.0, 0.0, -3.0), color=ALBEDO)
        upload_scene(Scene([light, sphere]))
        color = trace_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), 1)
        np.testing.assert_allclose(color, ALBEDO, rtol=1e-12)

    def test_occluded_light_adds_nothing(self):
        from pathtracer.kernels.integrator import trace_ray
        from pathtracer.kernels.scene import upload_scene

        light = Sphere(radius=0.2, center=(0.0, 3.0, 0.0), color=(1, 1, 1), light=True)
        sphere = Sphere(radius=1.0, center=(0.0, 0.0, -3.0), color=ALBEDO)
        blocker = Sphere(radius=0.5, center=(0.0, 1.5, -1.0), color=(0.3, 0.3, 0.3))
        upload_scene(Scene([light, sphere, blocker]))
        for _ in range(10):
            color = trace_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), 1)
            np.testing.assert_allclose(color, ALBEDO, rtol=1e-12)

    def test_light_below_horizon_adds_nothing(self):
        from pathtracer.kernels.integrator import trace_ray
        from pathtracer.kernels.scene import upload_scene

        light = Sphere(radius=0.2, center=(0.0, 0.3, -2.4), color=(1, 1, 1), light=True)
        sphere = Sphere(radius=1.0, center=(0.0, 0.0, -3.0), color=ALBEDO)
        upload_scene(Scene([light, sphere]))
        for _ in range(10):
            color = trace_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), 1)
            np.testing.assert_allclose(color, ALBEDO, rtol=1e-12)

    def test_unoccluded_light_adds_to_albedo(self):
        from pathtracer.kernels.integrator import trace_ray
        from pathtracer.kernels.scene import upload_scene

        light = Sphere(radius=0.2, center=(0.0, 3.0, 0.0), color=(1, 1, 1), light=True)
        sphere = Sphere(radius=1.0, center=(0.0, 0.0, -3.0), color=ALBEDO)
        upload_scene(Scene([light, sphere]))
        color = trace_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), 1)
        albedo = np.array(ALBEDO)
        assert np.all(color > albedo)
        assert np.all(color < albedo * 1.01)


class TestRenderImage:
    """Tests for the Taichi render kernel."""

    def test_inside_light_renders_white(self):
        """Every primary ray starts inside a huge light and hits it."""
        from pathtracer.kernels.integrator import render_image

        scene = Scene([Sphere(radius=10.0, center=(0.5, 0.5, -1.0), color=(1, 1, 1), light=True)])
        image = render_image(scene, RenderSettings(width=4, height=3, samples=4))
        assert image.shape == (3, 4, 3)
        np.testing.assert_allclose(image, 1.0, rtol=1e-12)

    def test_zero_depth_renders_black(self, reference_scene):
        from pathtracer.kernels.integrator import render_image

        image = render_image(reference_scene, RenderSettings(width=4, height=3, samples=2, max_depth=0))
        np.testing.assert_array_equal(image, 0.0)

    def test_callback_reports_batches(self, reference_scene):
        from pathtracer.kernels.integrator import render_image

        calls = []
        render_image(
            reference_scene,
            RenderSettings(width=4, height=3, samples=5, max_depth=3),
            batch_size=2,
            callback=lambda done, total: calls.append((done, total)),
        )
        assert calls == [(2, 5), (4, 5), (5, 5)]

    def test_reference_scene_is_finite(self, reference_scene):
        from pathtracer.kernels.integrator import render_image

        image = render_image(reference_scene, RenderSettings(width=8, height=6, samples=4))
        assert np.all(np.isfinite(image))
        assert np.all(image >= 0.0)

    def test_matches_reference_integrator(self):
        """Both backends estimate the same mean brightness."""
        from pathtracer.kernels.integrator import render_image

        light = Sphere(radius=0.5, center=(0.5, 3.0, -1.0), color=(1, 1, 1), light=True)
        backdrop = Sphere(radius=98.0, center=(0.5, 0.5, 100.0), color=(0.6, 0.6, 0.6))
        scene = Scene([light, backdrop])

        kernel_image = render_image(scene, RenderSettings(width=8, height=6, samples=64))
        reference_image = render_reference(
            scene, RenderSettings(width=8, height=6, samples=16, seed=9)
        )
        assert kernel_image.mean() == pytest.approx(reference_image.mean(), abs=0.01)


class TestAccumulationBuffer:
    """Tests for freeing the per-render accumulation field."""

    @pytest.fixture
    def trees(self, monkeypatch):
        """Record the SNode tree allocated by each render."""
        from pathtracer.kernels import integrator

        allocated = []
        original = integrator._accumulation_buffer

        def recording(height, width):
            image, tree = original(height, width)
            allocated.append(tree)
            return image, tree

        monkeypatch.setattr(integrator, "_accumulation_buffer", recording)
        return allocated

    def test_buffer_freed_after_render(self, reference_scene, trees):
        from pathtracer.kernels.integrator import render_image

        for width in (4, 5):
            render_image(reference_scene, RenderSettings(width=width, height=3, samples=1))
        assert len(trees) == 2
        assert all(tree.destroyed for tree in trees)

    def test_buffer_freed_when_callback_raises(self, reference_scene, trees):
        from pathtracer.kernels.integrator import render_image

        def interrupt(done, total):
            raise KeyboardInterrupt

        with pytest.raises(KeyboardInterrupt):
            render_image(reference_scene, RenderSettings(width=4, height=3, samples=1), callback=interrupt)
        assert trees[0].destroyed

    def test_fresh_buffer_starts_at_zero(self):
        """Repeated renders do not accumulate into each other."""
        from pathtracer.kernels.integrator import render_image

        scene = Scene([Sphere(radius=10.0, center=(0.5, 0.5, -1.0), color=(1, 1, 1), light=True)])
        for _ in range(3):
            image = render_image(scene, RenderSettings(width=4, height=3, samples=2))
            np.testing.assert_allclose(image, 1.0, rtol=1e-12)
