"""Progressive renderer for iterative sample accumulation.

This module provides a convenient wrapper around the core integrator that supports:
- Progressive rendering that refines over time
- Batch rendering (multiple SPP in one call)
- Progress callbacks for UI updates
- Easy reset and re-render functionality

Because every sample draws from its own seeded random stream, the final
image does not depend on how the samples are split into batches.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretrace.config import RenderConfig
    >>> from spheretrace.core.progressive import ProgressiveRenderer
    >>> from spheretrace.scene.presets import create_three_spheres_scene
    >>> from spheretrace.camera.thin_lens import setup_camera
    >>>
    >>> scene, camera = create_three_spheres_scene()
    >>> setup_camera(camera)
    >>>
    >>> renderer = ProgressiveRenderer(RenderConfig(image_width=400, samples_per_pixel=50))
    >>> renderer.render(batch_size=10)
    >>> image = renderer.get_image_numpy()
"""

import logging
import time
from collections.abc import Callable, Generator
from pathlib import Path

import numpy as np
import numpy.typing as npt

from spheretrace.config import RenderConfig
from spheretrace.core.integrator import (
    clear_render_target,
    get_image_numpy,
    get_linear_image_numpy,
    get_total_samples,
    render_image,
    setup_render_target,
)
from spheretrace.core.rng import set_seed
from spheretrace.preview.export import image_to_uint8, save_image

logger = logging.getLogger(__name__)

# Type alias for progress callback
# Callback receives (current_samples, total_target_samples)
ProgressCallback = Callable[[int, int], None]


class ProgressiveRenderer:
    """A progressive renderer that accumulates samples over time.

    The renderer validates its RenderConfig, sets the global seed and sets up
    the render target on construction, then delegates to the global
    integrator buffers (which are Taichi fields). The camera and scene must
    be set up separately before rendering.

    Attributes:
        config: The render configuration.
    """

    def __init__(self, config: RenderConfig) -> None:
        """Initialize the progressive renderer.

        Args:
            config: Image size, sampling parameters and seed.

        Raises:
            ConfigurationError: If the configuration is invalid.
        """
        config.validate()
        self.config = config
        set_seed(config.seed)
        setup_render_target(config.image_width, config.image_height)

    @property
    def width(self) -> int:
        """Get the image width."""
        return self.config.image_width

    @property
    def height(self) -> int:
        """Get the image height."""
        return self.config.image_height

    @property
    def sample_count(self) -> int:
        """Get the current number of accumulated samples per pixel."""
        return get_total_samples()

    def reset(self) -> None:
        """Reset the accumulator for a new render.

        Clears the color buffer and sample count. The sample indices restart
        at zero, so the same samples are drawn again.
        """
        clear_render_target()

    def render(
        self,
        num_samples: int | None = None,
        batch_size: int = 1,
        callback: ProgressCallback | None = None,
    ) -> None:
        """Render samples progressively with optional progress callback.

        Accumulates the specified number of samples into the existing buffer.
        Can be called multiple times to continue refining the image.

        Args:
            num_samples: Number of samples to add. Defaults to
                config.samples_per_pixel.
            batch_size: Number of samples to render before each callback.
                A larger batch size reduces callback overhead but provides
                less frequent updates.
            callback: Optional callback function called after each batch.
                Receives (current_total_samples, target_total_samples).

        Raises:
            ValueError: If batch_size < 1.

        Example:
            >>> def progress(current, target):
            ...     print(f"Progress: {current}/{target} samples")
            >>> renderer.render(100, batch_size=10, callback=progress)
        """
        for current, target in self.render_progressive(num_samples, batch_size):
            if callback is not None:
                callback(current, target)

    def render_progressive(
        self,
        num_samples: int | None = None,
        batch_size: int = 1,
    ) -> Generator[tuple[int, int], None, None]:
        """Render samples progressively, yielding progress after each batch.

        This is a generator-based alternative to render() with callbacks.

        Args:
            num_samples: Number of samples to add. Defaults to
                config.samples_per_pixel.
            batch_size: Number of samples to render before each yield.

        Yields:
            Tuple of (current_total_samples, target_total_samples).

        Raises:
            ValueError: If batch_size < 1.
        """
        if num_samples is None:
            num_samples = self.config.samples_per_pixel
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        if num_samples <= 0:
            return

        start_samples = self.sample_count
        target_samples = start_samples + num_samples
        logger.info(
            "Rendering %dx%d, %d samples per pixel, max depth %d",
            self.width,
            self.height,
            num_samples,
            self.config.max_depth,
        )
        start_time = time.perf_counter()

        remaining = num_samples
        while remaining > 0:
            batch = min(batch_size, remaining)
            render_image(batch, self.config.max_depth)
            remaining -= batch
            yield (self.sample_count, target_samples)

        logger.info(
            "Rendered %d samples per pixel in %.2f s",
            num_samples,
            time.perf_counter() - start_time,
        )

    def get_linear_image_numpy(self) -> npt.NDArray[np.float32]:
        """Get the averaged linear colors, shape (height, width, 3)."""
        return get_linear_image_numpy()

    def get_image_numpy(self) -> npt.NDArray[np.float32]:
        """Get the final gamma-corrected image, shape (height, width, 3), in [0, 1]."""
        return get_image_numpy()

    def get_image_uint8(self) -> npt.NDArray[np.uint8]:
        """Get the final image quantized to 8 bits per channel."""
        return image_to_uint8(self.get_image_numpy())

    def save_image(self, filepath: str | Path) -> None:
        """Save the final image; ".ppm" writes a P3 PPM, other extensions use Pillow."""
        save_image(self.get_image_numpy(), filepath)

    def __repr__(self) -> str:
        """Return a string representation of the renderer state."""
        return (
            f"ProgressiveRenderer(width={self.width}, height={self.height}, "
            f"samples={self.sample_count})"
        )
