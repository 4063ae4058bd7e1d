"""Core rendering module.

Components:
    rng: Deterministic per-sample random streams and fixed-sequence injection
    ray: Ray data structure, vector utilities and random vector generators
    integrator: Ray color tracing, render kernels and the image buffer
    progressive: Batched, progressive rendering on top of the integrator

All compute-intensive operations run in Taichi kernels. Every sample draws
from its own random stream, derived from the global seed, the pixel index and
the sample index, so renders are reproducible regardless of thread count.
"""

from .ray import (
    Ray,
    cross,
    dot,
    length,
    length_squared,
    make_ray,
    near_zero,
    normalize,
    random_in_unit_disk,
    random_in_unit_sphere,
    random_unit_vector,
    ray_at,
    reflect,
    refract,
    schlick_reflectance,
    vec3,
)

# Note: integrator and progressive are NOT imported here to avoid circular imports.
# Import directly from spheretrace.core.integrator or spheretrace.core.progressive.

__all__ = [
    "Ray",
    "ray_at",
    "make_ray",
    "vec3",
    "length",
    "length_squared",
    "normalize",
    "dot",
    "cross",
    "reflect",
    "refract",
    "schlick_reflectance",
    "near_zero",
    "random_in_unit_sphere",
    "random_unit_vector",
    "random_in_unit_disk",
]
