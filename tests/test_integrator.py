"""Unit tests for the path integrator.

Tests cover:
- Depth limits (depth 0 is black, running out of depth is black)
- Sky gradient for rays that miss
- Attenuation through Lambertian, metal and dielectric bounces
- Render target setup, accumulation and errors
- Gamma correction
"""

import logging

import numpy as np
import pytest


def _sky(direction):
    """Reference sky color for a direction."""
    d = np.asarray(direction, dtype=np.float64)
    a = 0.5 * (d[1] / np.linalg.norm(d) + 1.0)
    return (1.0 - a) * np.array([1.0, 1.0, 1.0]) + a * np.array([0.5, 0.7, 1.0])


def _assert_color(actual, expected, tol=1e-4):
    assert np.allclose(actual, expected, atol=tol), f"{actual} != {expected}"


class TestRayColor:
    """Tests for ray_color()."""

    def test_depth_zero_is_black(self):
        """No segments may be traced at depth 0."""
        from spheretrace.core.integrator import ray_color

        _assert_color(ray_color((0.0, 0.0, 0.0), (0.0, 1.0, 0.0), 0), (0.0, 0.0, 0.0))

    @pytest.mark.parametrize(
        "direction",
        [(0.0, 1.0, 0.0), (0.0, -1.0, 0.0), (1.0, 0.0, 0.0), (0.3, 0.4, -2.0)],
    )
    def test_miss_returns_sky(self, direction):
        """Rays into an empty scene see the sky gradient."""
        from spheretrace.core.integrator import ray_color

        _assert_color(ray_color((0.0, 0.0, 0.0), direction, 5), _sky(direction))

    def test_sky_endpoints(self):
        """Straight down is white, straight up is light blue."""
        from spheretrace.core.integrator import ray_color

        _assert_color(ray_color((0.0, 0.0, 0.0), (0.0, -3.0, 0.0), 1), (1.0, 1.0, 1.0))
        _assert_color(ray_color((0.0, 0.0, 0.0), (0.0, 0.2, 0.0), 1), (0.5, 0.7, 1.0))

    def test_hit_at_last_depth_is_black(self):
        """A hit on the final allowed segment contributes nothing."""
        from spheretrace.core.integrator import ray_color
        from spheretrace.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_lambertian_sphere((0.0, -1000.0, 0.0), 1000.0, (0.5, 0.5, 0.5))
        _assert_color(ray_color((0.0, 1.0, 0.0), (0.0, -1.0, 0.0), 1), (0.0, 0.0, 0.0))

    def test_lambertian_bounce_to_sky(self):
        """One diffuse bounce straight up gives albedo times the zenith color."""
        from spheretrace.core.integrator import ray_color
        from spheretrace.core.rng import use_fixed_sequence
        from spheretrace.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_lambertian_sphere((0.0, -1000.0, 0.0), 1000.0, (0.5, 0.5, 0.5))
        # Unit vector (0, 1, 0): normal + offset points straight up
        use_fixed_sequence([0.5, 0.75, 0.5])
        color = ray_color((0.0, 1.0, 0.0), (0.0, -1.0, 0.0), 2)
        _assert_color(color, (0.25, 0.35, 0.5))

    def test_metal_mirror_bounce(self):
        """A mirror reflects the ray back up with its albedo."""
        from spheretrace.core.integrator import ray_color
        from spheretrace.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_metal_sphere((0.0, -1000.0, 0.0), 1000.0, (0.8, 0.6, 0.2), 0.0)
        color = ray_color((0.0, 1.0, 0.0), (0.0, -1.0, 0.0), 3)
        _assert_color(color, (0.8 * 0.5, 0.6 * 0.7, 0.2 * 1.0))

    def test_dielectric_needs_depth_to_pass_through(self):
        """A ray through a sphere of IOR 1 needs three segments to reach the sky."""
        from spheretrace.core.integrator import ray_color
        from spheretrace.core.rng import use_fixed_sequence
        from spheretrace.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_dielectric_sphere((0.0, 0.0, -1.0), 0.5, 1.0)
        use_fixed_sequence([0.5])

        origin, direction = (0.0, 0.0, 0.0), (0.0, 0.0, -1.0)
        _assert_color(ray_color(origin, direction, 2), (0.0, 0.0, 0.0))
        _assert_color(ray_color(origin, direction, 3), _sky(direction))

    def test_absorbing_materials_attenuate(self):
        """Colors stay within [0, 1] for physically valid albedos."""
        from spheretrace.core.integrator import ray_color
        from spheretrace.scene.presets import create_three_spheres_scene

        create_three_spheres_scene()
        for k in range(16):
            color = ray_color((0.0, 0.0, 0.0), (0.1 * k - 0.8, -0.3, -1.0), 10, k, k)
            assert all(0.0 <= c <= 1.0 for c in color)


class TestRenderTarget:
    """Tests for the render target and accumulation."""

    def test_render_without_setup(self):
        """Rendering before setup_render_target() raises RuntimeError."""
        from spheretrace.core.integrator import get_image_numpy, render_image

        with pytest.raises(RuntimeError, match="not set up"):
            render_image(1)
        with pytest.raises(RuntimeError, match="not set up"):
            get_image_numpy()

    @pytest.mark.parametrize("width, height", [(0, 10), (10, -1), (4096, 10), (10, 4096)])
    def test_invalid_dimensions(self, width, height):
        """Invalid sizes raise ConfigurationError."""
        from spheretrace.config import ConfigurationError
        from spheretrace.core.integrator import setup_render_target

        with pytest.raises(ConfigurationError):
            setup_render_target(width, height)

    def test_invalid_render_arguments(self):
        """Zero samples or negative depth raise ValueError."""
        from spheretrace.core.integrator import render_image, setup_render_target

        setup_render_target(4, 2)
        with pytest.raises(ValueError, match="num_samples"):
            render_image(0)
        with pytest.raises(ValueError, match="max_depth"):
            render_image(1, max_depth=-1)

    def test_sky_image(self, analytic_camera):
        """An empty scene renders the gamma-corrected sky per pixel."""
        from spheretrace.camera.thin_lens import setup_camera
        from spheretrace.core.integrator import get_image_numpy, render_image, setup_render_target
        from spheretrace.core.rng import use_fixed_sequence

        setup_camera(analytic_camera)
        setup_render_target(4, 2)
        # Jitter 0.5 puts every sample at the pixel center
        use_fixed_sequence([0.5])
        render_image(num_samples=3, max_depth=5)

        image = get_image_numpy()
        assert image.shape == (2, 4, 3)
        assert image.dtype == np.float32
        for j, y in enumerate((0.5, -0.5)):
            for i, x in enumerate((-1.5, -0.5, 0.5, 1.5)):
                expected = np.sqrt(_sky((x, y, -1.0)))
                _assert_color(image[j, i], expected)

    def test_depth_zero_render_is_black(self, analytic_camera):
        """max_depth = 0 produces a black image."""
        from spheretrace.camera.thin_lens import setup_camera
        from spheretrace.core.integrator import get_image_numpy, render_image, setup_render_target

        setup_camera(analytic_camera)
        setup_render_target(4, 2)
        render_image(num_samples=2, max_depth=0)
        assert not get_image_numpy().any()

    def test_samples_accumulate(self, analytic_camera):
        """Sample counts add up across calls and reset with the target."""
        from spheretrace.camera.thin_lens import setup_camera
        from spheretrace.core.integrator import (
            clear_render_target,
            get_invalid_sample_count,
            get_total_samples,
            render_image,
            setup_render_target,
        )

        setup_camera(analytic_camera)
        setup_render_target(8, 4)
        render_image(num_samples=3, max_depth=2)
        render_image(num_samples=2, max_depth=2)
        assert get_total_samples() == 5
        assert get_invalid_sample_count() == 0

        clear_render_target()
        assert get_total_samples() == 0

    def test_linear_image_is_average(self, analytic_camera):
        """The linear image averages samples; gamma is applied on top."""
        from spheretrace.camera.thin_lens import setup_camera
        from spheretrace.core.integrator import (
            get_image_numpy,
            get_linear_image_numpy,
            render_image,
            setup_render_target,
        )

        setup_camera(analytic_camera)
        setup_render_target(6, 3)
        render_image(num_samples=4, max_depth=3)

        linear = get_linear_image_numpy()
        assert linear.shape == (3, 6, 3)
        assert np.allclose(get_image_numpy(), np.sqrt(np.clip(linear, 0.0, 1.0)), atol=1e-6)

    def test_no_warning_for_valid_samples(self, analytic_camera, caplog):
        """Ordinary renders log no invalid-sample warning."""
        from spheretrace.camera.thin_lens import setup_camera
        from spheretrace.core.integrator import render_image, setup_render_target

        setup_camera(analytic_camera)
        setup_render_target(4, 2)
        with caplog.at_level(logging.WARNING, logger="spheretrace.core.integrator"):
            render_image(num_samples=1, max_depth=3)
        assert not caplog.records

    def test_nan_samples_are_zeroed_counted_and_logged(self, analytic_camera, caplog):
        """Samples with NaN components contribute black and are reported once."""
        from spheretrace.camera import thin_lens
        from spheretrace.core.integrator import (
            get_image_numpy,
            get_invalid_sample_count,
            get_linear_image_numpy,
            render_image,
            setup_render_target,
        )

        thin_lens.setup_camera(analytic_camera)
        nan = float("nan")
        thin_lens._lower_left_corner[None] = [nan, nan, nan]
        try:
            setup_render_target(4, 2)
            with caplog.at_level(logging.WARNING, logger="spheretrace.core.integrator"):
                render_image(num_samples=2, max_depth=3)
        finally:
            thin_lens.setup_camera(analytic_camera)

        assert get_invalid_sample_count() == 4 * 2 * 2
        linear = get_linear_image_numpy()
        assert np.isfinite(linear).all()
        assert not linear.any()
        assert not get_image_numpy().any()
        assert len(caplog.records) == 1
        assert "16 of 16 samples" in caplog.records[0].getMessage()


class TestGammaCorrect:
    """Tests for gamma_correct()."""

    def test_square_root(self):
        """Gamma 2 takes the square root."""
        from spheretrace.core.integrator import gamma_correct

        result = gamma_correct(np.array([0.0, 0.25, 0.81, 1.0]))
        assert np.allclose(result, [0.0, 0.5, 0.9, 1.0])

    def test_clamped(self):
        """Values above 1 clamp to 1 and negative values to 0."""
        from spheretrace.core.integrator import gamma_correct

        result = gamma_correct(np.array([4.0, -1.0]))
        assert np.allclose(result, [1.0, 0.0])
        assert result.dtype == np.float32
