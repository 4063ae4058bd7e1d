"""Unit tests for the progressive renderer.

Tests cover:
- Construction from a RenderConfig (validation, seed, render target)
- Batched rendering with callbacks and generators
- Independence of the result from the batch split
- Reset and image accessors
"""

import numpy as np
import pytest


def _small_config(**overrides):
    from spheretrace.config import RenderConfig

    params = {
        "image_width": 16,
        "aspect_ratio": 2.0,
        "samples_per_pixel": 4,
        "max_depth": 5,
        "seed": 7,
    }
    params.update(overrides)
    return RenderConfig(**params)


@pytest.fixture
def three_spheres():
    """The three-sphere scene with its camera set up at aspect 2."""
    from spheretrace.camera.thin_lens import setup_camera
    from spheretrace.scene.presets import create_three_spheres_scene

    scene, camera = create_three_spheres_scene(aspect_ratio=2.0)
    setup_camera(camera)
    return scene


class TestConstruction:
    """Tests for ProgressiveRenderer construction."""

    def test_dimensions_from_config(self):
        """Width and height follow the configuration."""
        from spheretrace.core.integrator import get_image_dimensions
        from spheretrace.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(_small_config())
        assert renderer.width == 16
        assert renderer.height == 8
        assert get_image_dimensions() == (16, 8)
        assert renderer.sample_count == 0

    def test_seed_applied(self):
        """The configured seed becomes the global stream seed."""
        from spheretrace.core.progressive import ProgressiveRenderer
        from spheretrace.core.rng import get_seed

        ProgressiveRenderer(_small_config(seed=1234))
        assert get_seed() == 1234

    def test_invalid_config_rejected(self):
        """Invalid configurations raise ConfigurationError before any setup."""
        from spheretrace.config import ConfigurationError
        from spheretrace.core.progressive import ProgressiveRenderer

        with pytest.raises(ConfigurationError):
            ProgressiveRenderer(_small_config(samples_per_pixel=0))

    def test_repr(self):
        """repr() shows size and sample count."""
        from spheretrace.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(_small_config())
        assert repr(renderer) == "ProgressiveRenderer(width=16, height=8, samples=0)"


class TestRendering:
    """Tests for render() and render_progressive()."""

    def test_render_default_samples(self, three_spheres):
        """render() without arguments renders samples_per_pixel samples."""
        from spheretrace.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(_small_config())
        renderer.render()
        assert renderer.sample_count == 4

    def test_callback_progress(self, three_spheres):
        """The callback sees the running total after every batch."""
        from spheretrace.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(_small_config())
        calls = []
        renderer.render(num_samples=5, batch_size=2, callback=lambda c, t: calls.append((c, t)))
        assert calls == [(2, 5), (4, 5), (5, 5)]

    def test_generator_continues_from_previous_total(self, three_spheres):
        """Further calls add to the existing samples."""
        from spheretrace.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(_small_config())
        renderer.render(num_samples=2)
        progress = list(renderer.render_progressive(num_samples=3, batch_size=3))
        assert progress == [(5, 5)]

    def test_invalid_batch_size(self, three_spheres):
        """batch_size < 1 raises ValueError."""
        from spheretrace.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(_small_config())
        with pytest.raises(ValueError, match="batch_size"):
            renderer.render(num_samples=2, batch_size=0)

    def test_zero_samples_is_noop(self, three_spheres):
        """Asking for no samples renders nothing."""
        from spheretrace.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(_small_config())
        assert list(renderer.render_progressive(num_samples=0)) == []
        assert renderer.sample_count == 0

    def test_batch_split_does_not_change_image(self, three_spheres):
        """One pass and several batches give bit-identical images."""
        from spheretrace.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(_small_config(samples_per_pixel=6))
        renderer.render(batch_size=6)
        single = renderer.get_image_uint8()

        renderer.reset()
        assert renderer.sample_count == 0
        renderer.render(batch_size=4)
        batched = renderer.get_image_uint8()

        np.testing.assert_array_equal(single, batched)

    def test_reset_clears_image(self, three_spheres):
        """reset() zeroes the accumulated image."""
        from spheretrace.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(_small_config())
        renderer.render(num_samples=1)
        assert renderer.get_image_numpy().any()
        renderer.reset()
        assert not renderer.get_linear_image_numpy().any()


class TestImageAccess:
    """Tests for image accessors and saving."""

    def test_image_types(self, three_spheres):
        """Images have the expected shapes, types and ranges."""
        from spheretrace.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(_small_config())
        renderer.render(num_samples=2)

        image = renderer.get_image_numpy()
        assert image.shape == (8, 16, 3)
        assert image.dtype == np.float32
        assert image.min() >= 0.0
        assert image.max() <= 1.0

        image_u8 = renderer.get_image_uint8()
        assert image_u8.shape == (8, 16, 3)
        assert image_u8.dtype == np.uint8

    def test_save_ppm(self, three_spheres, tmp_path):
        """save_image() with a .ppm suffix writes a P3 file."""
        from spheretrace.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(_small_config())
        renderer.render(num_samples=1)
        path = tmp_path / "out.ppm"
        renderer.save_image(path)

        lines = path.read_text().splitlines()
        assert lines[:3] == ["P3", "16 8", "255"]
        assert len(lines) == 3 + 16 * 8

    def test_save_png(self, three_spheres, tmp_path):
        """Other suffixes are written by Pillow."""
        from PIL import Image

        from spheretrace.core.progressive import ProgressiveRenderer

        renderer = ProgressiveRenderer(_small_config())
        renderer.render(num_samples=1)
        path = tmp_path / "out.png"
        renderer.save_image(path)

        with Image.open(path) as img:
            assert img.size == (16, 8)
            assert img.mode == "RGB"
            np.testing.assert_array_equal(np.asarray(img), renderer.get_image_uint8())
