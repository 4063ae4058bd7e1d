"""Camera module for view and ray generation.

Components:
    thin_lens: Positionable camera with vertical FOV and defocus blur

Ray generation uses normalized viewport coordinates:
    s in [0, 1]: left to right across image
    t in [0, 1]: bottom to top across image
"""

from .thin_lens import (
    ThinLensCamera,
    default_camera,
    get_camera_info,
    get_ray,
    setup_camera,
)

__all__ = [
    "ThinLensCamera",
    "default_camera",
    "setup_camera",
    "get_ray",
    "get_camera_info",
]
