"""Recursive ray color integrator and render loop.

This module implements the main rendering kernel: for every pixel it shoots
jittered camera rays, follows each ray through the scene by scattering it off
the materials it hits, and accumulates the resulting colors into an image
buffer.

The color of a ray is defined recursively:

    color(ray, depth) = black                                  if depth <= 0
                      = attenuation * color(scattered, depth - 1)  on scatter
                      = black                                  on absorption
                      = sky gradient(ray direction)            on a miss

and is evaluated here with an explicit loop and a throughput accumulator,
which produces the same result without recursion.

Key features:
    - Material dispatch (Lambertian, Metal, Dielectric)
    - Deterministic per-sample random streams (see spheretrace.core.rng)
    - Sample accumulation across render calls
    - NaN/Inf sample rejection with a logged count

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretrace.core.integrator import (
    ...     render_image, setup_render_target, get_image_numpy
    ... )
    >>> from spheretrace.scene.presets import create_three_spheres_scene
    >>> from spheretrace.camera.thin_lens import setup_camera
    >>>
    >>> scene, camera = create_three_spheres_scene()
    >>> setup_camera(camera)
    >>> setup_render_target(400, 225)
    >>> render_image(num_samples=100, max_depth=50)
    >>> image = get_image_numpy()
"""

import logging

import numpy as np
import taichi as ti
import taichi.math as tm

from spheretrace.camera.thin_lens import get_ray
from spheretrace.config import MAX_IMAGE_HEIGHT, MAX_IMAGE_WIDTH, ConfigurationError
from spheretrace.core.ray import normalize
from spheretrace.core.rng import rng_init, rng_next
from spheretrace.materials.dielectric import (
    get_dielectric_ior,
    scatter_dielectric,
)
from spheretrace.materials.lambertian import (
    get_lambertian_albedo,
    scatter_lambertian,
)
from spheretrace.materials.metal import (
    get_metal_albedo,
    get_metal_fuzz,
    scatter_metal,
)
from spheretrace.scene.intersection import intersect_scene
from spheretrace.scene.manager import (
    MaterialType,
    get_material_type,
    get_material_type_index,
)

logger = logging.getLogger(__name__)

# Type alias for 3D vectors
vec3 = tm.vec3

# =============================================================================
# Rendering Constants
# =============================================================================

# Default maximum number of ray segments per camera sample
MAX_DEPTH = 50

# Accepted ray parameter interval; T_MIN avoids self-intersection ("acne")
T_MIN = 0.001
T_MAX = tm.inf

# Sky gradient endpoints
SKY_HORIZON_COLOR = vec3(1.0, 1.0, 1.0)
SKY_ZENITH_COLOR = vec3(0.5, 0.7, 1.0)

# =============================================================================
# Render Target (Image Buffer)
# =============================================================================

# Image dimensions (actual active size)
_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# Buffers are indexed [row, column] with row 0 at the top of the image and
# preallocated to the maximum size to avoid kernel recompilation.
_color_sum = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_IMAGE_HEIGHT, MAX_IMAGE_WIDTH))
_sample_count = ti.field(dtype=ti.i32, shape=(MAX_IMAGE_HEIGHT, MAX_IMAGE_WIDTH))

# Samples per pixel accumulated so far; also the index of the next sample
_samples_done = ti.field(dtype=ti.i32, shape=())

# Samples that produced NaN, Inf or negative components
_invalid_samples = ti.field(dtype=ti.i32, shape=())

# Flag to track if render target is initialized
_render_target_initialized = ti.field(dtype=ti.i32, shape=())


def setup_render_target(width: int, height: int) -> None:
    """Initialize the render target buffers.

    Sets the active image dimensions and clears the buffers.

    Args:
        width: Image width in pixels (max MAX_IMAGE_WIDTH).
        height: Image height in pixels (max MAX_IMAGE_HEIGHT).

    Raises:
        ConfigurationError: If dimensions are not positive or exceed the
            maximum supported size.
    """
    if width <= 0 or height <= 0:
        raise ConfigurationError(f"Image dimensions ({width}x{height}) must be positive")
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ConfigurationError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )

    _image_width[None] = width
    _image_height[None] = height
    _render_target_initialized[None] = 1

    clear_render_target()


def clear_render_target() -> None:
    """Clear the render target buffers and counters to zero."""
    _color_sum.fill(0.0)
    _sample_count.fill(0)
    _samples_done[None] = 0
    _invalid_samples[None] = 0


def reset_render_target() -> None:
    """Clear the buffers and mark the render target as not set up."""
    clear_render_target()
    _render_target_initialized[None] = 0


def get_image_dimensions() -> tuple[int, int]:
    """Get the current render target dimensions.

    Returns:
        Tuple of (width, height).
    """
    return int(_image_width[None]), int(_image_height[None])


def _check_render_target_initialized() -> None:
    """Check if render target is initialized and raise if not."""
    if _render_target_initialized[None] == 0:
        raise RuntimeError("Render target not set up. Call setup_render_target() first.")


# =============================================================================
# Material Dispatch
# =============================================================================


@ti.func
def _scatter_material(
    material_id: ti.i32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
    state: ti.u32,
):
    """Dispatch to the appropriate material scattering function.

    Args:
        material_id: The unified material ID.
        incident_direction: The incoming ray direction (any length).
        normal: The surface normal (unit length, facing the incoming ray).
        front_face: 1 if the outside of the surface was hit, 0 otherwise.
        state: The random stream state.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter, new_state).
        Unknown material IDs absorb the ray.
    """
    mat_type = get_material_type(material_id)
    type_index = get_material_type_index(material_id)

    scattered_direction = vec3(0.0, 0.0, 0.0)
    attenuation = vec3(0.0, 0.0, 0.0)
    did_scatter = 0
    s = state

    if mat_type == int(MaterialType.LAMBERTIAN):
        albedo = get_lambertian_albedo(type_index)
        scattered_direction, attenuation, s = scatter_lambertian(albedo, normal, s)
        did_scatter = 1

    elif mat_type == int(MaterialType.METAL):
        albedo = get_metal_albedo(type_index)
        fuzz = get_metal_fuzz(type_index)
        scattered_direction, attenuation, did_scatter, s = scatter_metal(
            albedo, fuzz, incident_direction, normal, s
        )

    elif mat_type == int(MaterialType.DIELECTRIC):
        ior = get_dielectric_ior(type_index)
        scattered_direction, attenuation, did_scatter, s = scatter_dielectric(
            ior, incident_direction, normal, front_face, s
        )

    return scattered_direction, attenuation, did_scatter, s


# =============================================================================
# Ray Color
# =============================================================================


@ti.func
def background_color(direction: vec3) -> vec3:
    """Sky color seen along a ray that hits nothing.

    Blends linearly from white at the bottom (unit y = -1) to light blue at
    the top (unit y = +1).
    """
    unit_direction = normalize(direction)
    a = 0.5 * (unit_direction.y + 1.0)
    return (1.0 - a) * SKY_HORIZON_COLOR + a * SKY_ZENITH_COLOR


@ti.func
def trace_path(origin: vec3, direction: vec3, max_depth: ti.i32, state: ti.u32):
    """Compute the color carried back along a ray.

    Follows the ray for at most max_depth segments. Each scatter multiplies
    the throughput by the material attenuation; a miss adds the attenuated
    sky color and ends the path. Absorption and running out of depth end the
    path with no contribution.

    Args:
        origin: The ray origin.
        direction: The ray direction (any non-zero length).
        max_depth: Maximum number of ray segments. 0 or less yields black.
        state: The random stream state.

    Returns:
        A tuple (color, new_state).
    """
    color = vec3(0.0, 0.0, 0.0)
    throughput = vec3(1.0, 1.0, 1.0)
    ray_origin = origin
    ray_direction = direction
    s = state

    # Active flag for path continuation (no break in ti.func loops)
    active = 1

    for _ in range(max_depth):
        if active == 1:
            rec = intersect_scene(ray_origin, ray_direction, T_MIN, T_MAX)

            if rec.hit == 0:
                color = throughput * background_color(ray_direction)
                active = 0
            else:
                scattered_direction, attenuation, did_scatter, s = _scatter_material(
                    rec.material_id, ray_direction, rec.normal, rec.front_face, s
                )

                if did_scatter == 0:
                    active = 0
                else:
                    throughput *= attenuation
                    ray_origin = rec.point
                    ray_direction = scattered_direction

    return color, s


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.kernel
def _render_pass(
    width: ti.i32,
    height: ti.i32,
    max_depth: ti.i32,
    sample_start: ti.i32,
    num_samples: ti.i32,
):
    """Trace num_samples camera samples through every pixel and accumulate.

    Pixels are processed in parallel; the samples of one pixel run in order,
    so the per-pixel sums do not depend on the thread count.
    """
    for j, i in ti.ndrange(height, width):
        pixel_index = ti.cast(j * width + i, ti.u32)

        for k in range(num_samples):
            state = rng_init(pixel_index, ti.cast(sample_start + k, ti.u32))
            jitter_x, state = rng_next(state)
            jitter_y, state = rng_next(state)

            # Row 0 is the top of the image, t = 0 the bottom of the viewport
            s = (ti.cast(i, ti.f32) + jitter_x) / ti.cast(width, ti.f32)
            t = (ti.cast(height - 1 - j, ti.f32) + jitter_y) / ti.cast(height, ti.f32)

            origin, direction, state = get_ray(s, t, state)
            color, state = trace_path(origin, direction, max_depth, state)

            invalid = 0
            for c in ti.static(range(3)):
                if tm.isnan(color[c]) or tm.isinf(color[c]):
                    color[c] = 0.0
                    invalid = 1
                elif color[c] < 0.0:
                    color[c] = 0.0
                    invalid = 1
            if invalid == 1:
                _invalid_samples[None] += 1

            _color_sum[j, i] += color
            _sample_count[j, i] += 1


@ti.kernel
def _trace_single_ray(
    origin: vec3,
    direction: vec3,
    max_depth: ti.i32,
    pixel_index: ti.u32,
    sample_index: ti.u32,
) -> vec3:
    """Trace one ray with the stream of the given pixel sample."""
    state = rng_init(pixel_index, sample_index)
    color, _ = trace_path(origin, direction, max_depth, state)
    return color


# =============================================================================
# Public Rendering API
# =============================================================================


def ray_color(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    depth: int,
    pixel_index: int = 0,
    sample_index: int = 0,
) -> tuple[float, float, float]:
    """Compute the color carried back along a single ray.

    This is a Python-callable function for testing. For production rendering,
    use render_image() which processes all pixels in parallel.

    Args:
        origin: The ray origin.
        direction: The ray direction.
        depth: Maximum number of ray segments.
        pixel_index: Pixel whose random stream is used.
        sample_index: Sample whose random stream is used.

    Returns:
        Tuple of (R, G, B) linear color values.
    """
    color = _trace_single_ray(
        vec3(origin[0], origin[1], origin[2]),
        vec3(direction[0], direction[1], direction[2]),
        depth,
        pixel_index,
        sample_index,
    )
    return (float(color[0]), float(color[1]), float(color[2]))


def render_image(num_samples: int = 1, max_depth: int = MAX_DEPTH) -> None:
    """Render the given number of samples per pixel into the image buffer.

    Samples accumulate across calls: the sample indices continue where the
    previous call stopped, so rendering 10 samples at once and rendering
    them in two batches of 5 produce the same image.

    Args:
        num_samples: Number of samples to render per pixel.
        max_depth: Maximum number of ray segments per sample.

    Raises:
        RuntimeError: If render target has not been set up.
        ValueError: If num_samples < 1 or max_depth < 0.
    """
    _check_render_target_initialized()

    if num_samples < 1:
        raise ValueError(f"num_samples must be at least 1, got {num_samples}")
    if max_depth < 0:
        raise ValueError(f"max_depth must be non-negative, got {max_depth}")

    width, height = get_image_dimensions()
    sample_start = int(_samples_done[None])
    invalid_before = int(_invalid_samples[None])

    _render_pass(width, height, max_depth, sample_start, num_samples)
    _samples_done[None] = sample_start + num_samples

    invalid = int(_invalid_samples[None]) - invalid_before
    if invalid > 0:
        logger.warning(
            "%d of %d samples produced NaN, Inf or negative values and were zeroed",
            invalid,
            width * height * num_samples,
        )


def get_total_samples() -> int:
    """Get the number of samples per pixel rendered so far.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()
    return int(_samples_done[None])


def get_invalid_sample_count() -> int:
    """Get the number of rejected NaN/Inf/negative samples so far."""
    return int(_invalid_samples[None])


def gamma_correct(linear: np.ndarray) -> np.ndarray:
    """Apply gamma 2 correction and clamp to [0, 1].

    Args:
        linear: Array of linear color values.

    Returns:
        clamp(sqrt(linear), 0, 1) as float32. Negative inputs map to 0.
    """
    return np.clip(np.sqrt(np.maximum(linear, 0.0)), 0.0, 1.0).astype(np.float32)


def get_linear_image_numpy() -> np.ndarray:
    """Get the averaged linear colors as a NumPy array.

    Returns:
        Array of shape (height, width, 3), rows top to bottom, holding
        sum / sample_count per pixel (zero for pixels without samples).

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()

    width, height = get_image_dimensions()
    color_sum = _color_sum.to_numpy()[:height, :width, :]
    counts = _sample_count.to_numpy()[:height, :width]
    return (color_sum / np.maximum(counts, 1)[:, :, np.newaxis]).astype(np.float32)


def get_image_numpy() -> np.ndarray:
    """Get the final, gamma-corrected image as a NumPy array.

    Returns:
        Float32 array of shape (height, width, 3), rows top to bottom, values
        clamp(sqrt(sum / n), 0, 1).

    Raises:
        RuntimeError: If render target has not been set up.
    """
    return gamma_correct(get_linear_image_numpy())
