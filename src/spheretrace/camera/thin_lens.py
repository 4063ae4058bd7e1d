"""Thin-lens camera model for perspective ray generation with depth of field.

This module implements a positionable camera that generates primary rays for
rendering. The camera supports:
- Look-at positioning (lookfrom, lookat, vup)
- Vertical field of view in degrees
- Arbitrary aspect ratios
- Defocus blur through a circular lens aperture

The camera builds an orthonormal basis (u, v, w) from the view parameters:
- w: points from lookat toward lookfrom (opposite view direction)
- u: points right in the image plane
- v: points up in the image plane

The viewport sits on the plane of perfect focus, focus_dist units in front of
the camera. Rays start at a random point on the lens disk and pass through
the requested viewport point, so objects off the focus plane blur. With an
aperture of 0 every ray starts at lookfrom and the camera is a pinhole.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretrace.camera.thin_lens import ThinLensCamera, setup_camera
    >>>
    >>> camera = ThinLensCamera(
    ...     lookfrom=(13.0, 2.0, 3.0),
    ...     lookat=(0.0, 0.0, 0.0),
    ...     vup=(0.0, 1.0, 0.0),
    ...     vfov=20.0,
    ...     aspect_ratio=16.0 / 9.0,
    ...     aperture=0.1,
    ...     focus_dist=10.0,
    ... )
    >>> setup_camera(camera)
    >>>
    >>> @ti.kernel
    ... def render():
    ...     origin, direction, state = get_ray(0.5, 0.5, state)
"""

import math
from dataclasses import asdict, dataclass
from typing import Any

import numpy as np
import taichi as ti

from spheretrace.config import CameraSection, ConfigurationError, validate_section
from spheretrace.core.ray import random_in_unit_disk, vec3

# Minimum length of cross(vup, w) before vup counts as parallel to the view
_PARALLEL_EPSILON = 1e-8

# =============================================================================
# Camera Data Structures
# =============================================================================


@dataclass
class ThinLensCamera:
    """Configuration for a thin-lens (perspective) camera.

    Attributes:
        lookfrom: Camera position in world space (x, y, z).
        lookat: Point the camera is looking at in world space (x, y, z).
        vup: Up direction vector for camera orientation (typically (0, 1, 0)).
        vfov: Vertical field of view in degrees, in (0, 180).
        aspect_ratio: Width divided by height of the output image.
        aperture: Lens diameter. 0 disables depth of field.
        focus_dist: Distance from the camera to the plane of perfect focus.
    """

    lookfrom: tuple[float, float, float]
    lookat: tuple[float, float, float]
    vup: tuple[float, float, float]
    vfov: float
    aspect_ratio: float
    aperture: float = 0.0
    focus_dist: float = 1.0

    def validate(self) -> None:
        """Check the camera parameters.

        Raises:
            ConfigurationError: If any parameter would produce a degenerate
                camera basis or viewport.
        """
        if not 0.0 < self.vfov < 180.0:
            raise ConfigurationError(f"vfov must be in (0, 180) degrees, got {self.vfov}")
        if self.aspect_ratio <= 0.0:
            raise ConfigurationError(f"aspect_ratio must be positive, got {self.aspect_ratio}")
        if self.aperture < 0.0:
            raise ConfigurationError(f"aperture must be non-negative, got {self.aperture}")
        if self.focus_dist <= 0.0:
            raise ConfigurationError(f"focus_dist must be positive, got {self.focus_dist}")

        view = np.asarray(self.lookfrom, dtype=np.float64) - np.asarray(
            self.lookat, dtype=np.float64
        )
        view_length = np.linalg.norm(view)
        if view_length == 0.0:
            raise ConfigurationError("lookfrom and lookat must be different points")

        side = np.cross(np.asarray(self.vup, dtype=np.float64), view / view_length)
        if np.linalg.norm(side) < _PARALLEL_EPSILON:
            raise ConfigurationError("vup must not be parallel to the view direction")

    def to_dict(self) -> dict[str, Any]:
        """Export the camera parameters to a dictionary."""
        data = asdict(self)
        for key in ("lookfrom", "lookat", "vup"):
            data[key] = list(data[key])
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "ThinLensCamera":
        """Create a camera from a dictionary, as found in scene files.

        Keys not given fall back to the default camera.

        Raises:
            ConfigurationError: If a key is unknown or a value has the wrong shape.
        """
        section = validate_section(CameraSection, data, "camera parameters")
        return cls(**section.model_dump())


def default_camera(aspect_ratio: float = 16.0 / 9.0) -> ThinLensCamera:
    """Camera of the random sphere scene: slightly above ground, 20 degree FOV."""
    return ThinLensCamera(**CameraSection(aspect_ratio=aspect_ratio).model_dump())


# =============================================================================
# Taichi Fields for Camera State
# =============================================================================

_camera_origin = ti.Vector.field(3, dtype=ti.f32, shape=())

# Orthonormal basis vectors
_camera_u = ti.Vector.field(3, dtype=ti.f32, shape=())  # Right
_camera_v = ti.Vector.field(3, dtype=ti.f32, shape=())  # Up
_camera_w = ti.Vector.field(3, dtype=ti.f32, shape=())  # Backward (opposite view)

# Viewport vectors, scaled to the focus plane
_viewport_horizontal = ti.Vector.field(3, dtype=ti.f32, shape=())
_viewport_vertical = ti.Vector.field(3, dtype=ti.f32, shape=())
_lower_left_corner = ti.Vector.field(3, dtype=ti.f32, shape=())

_lens_radius = ti.field(dtype=ti.f32, shape=())


# =============================================================================
# Camera Setup (Python-side, called once per camera configuration)
# =============================================================================


def setup_camera(camera: ThinLensCamera) -> None:
    """Validate the camera and compute its derived parameters.

    Computes the orthonormal basis (u, v, w), the viewport vectors on the focus
    plane and the lens radius, then stores them in Taichi fields. Must be
    called before rendering, from Python (not from within a kernel).

    Args:
        camera: Camera configuration.

    Raises:
        ConfigurationError: If the camera parameters are invalid.
    """
    camera.validate()

    theta = math.radians(camera.vfov)
    h = math.tan(theta / 2.0)
    viewport_height = 2.0 * h
    viewport_width = camera.aspect_ratio * viewport_height

    lookfrom = np.array(camera.lookfrom, dtype=np.float64)
    lookat = np.array(camera.lookat, dtype=np.float64)
    vup = np.array(camera.vup, dtype=np.float64)

    w = lookfrom - lookat
    w = w / np.linalg.norm(w)
    u = np.cross(vup, w)
    u = u / np.linalg.norm(u)
    v = np.cross(w, u)

    horizontal = camera.focus_dist * viewport_width * u
    vertical = camera.focus_dist * viewport_height * v
    lower_left = lookfrom - horizontal / 2.0 - vertical / 2.0 - camera.focus_dist * w

    _camera_origin[None] = lookfrom.tolist()
    _camera_u[None] = u.tolist()
    _camera_v[None] = v.tolist()
    _camera_w[None] = w.tolist()
    _viewport_horizontal[None] = horizontal.tolist()
    _viewport_vertical[None] = vertical.tolist()
    _lower_left_corner[None] = lower_left.tolist()
    _lens_radius[None] = camera.aperture / 2.0


# =============================================================================
# Ray Generation (Taichi-compatible)
# =============================================================================


@ti.func
def get_ray(s: ti.f32, t: ti.f32, state: ti.u32):
    """Generate a ray through normalized viewport coordinates (s, t).

    Coordinates are normalized so that (0, 0) is the bottom-left and (1, 1)
    the top-right corner of the viewport. The lens disk is only sampled when
    the lens radius is positive, so a pinhole camera consumes no random draws.

    Args:
        s: Horizontal coordinate (left to right).
        t: Vertical coordinate (bottom to top).
        state: The random stream state.

    Returns:
        A tuple (origin, direction, new_state). The direction is not
        normalized.
    """
    origin = _camera_origin[None]
    offset = vec3(0.0, 0.0, 0.0)
    s_state = state
    lens_radius = _lens_radius[None]
    if lens_radius > 0.0:
        rd, s_state = random_in_unit_disk(s_state)
        rd = lens_radius * rd
        offset = _camera_u[None] * rd.x + _camera_v[None] * rd.y

    direction = (
        _lower_left_corner[None]
        + s * _viewport_horizontal[None]
        + t * _viewport_vertical[None]
        - origin
        - offset
    )
    return origin + offset, direction, s_state


# =============================================================================
# Utility Functions
# =============================================================================


def get_camera_info() -> dict[str, Any]:
    """Get current camera state for debugging.

    Returns:
        Dictionary with origin, u, v, w, horizontal, vertical, lower_left
        (as 3-tuples) and lens_radius.
    """

    def _tuple(field: Any) -> tuple[float, float, float]:
        value = field[None]
        return (float(value[0]), float(value[1]), float(value[2]))

    return {
        "origin": _tuple(_camera_origin),
        "u": _tuple(_camera_u),
        "v": _tuple(_camera_v),
        "w": _tuple(_camera_w),
        "horizontal": _tuple(_viewport_horizontal),
        "vertical": _tuple(_viewport_vertical),
        "lower_left": _tuple(_lower_left_corner),
        "lens_radius": float(_lens_radius[None]),
    }
