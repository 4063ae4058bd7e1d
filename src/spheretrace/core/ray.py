"""Ray data structure and vector utilities for ray tracing.

This module provides the fundamental Ray dataclass, vector utility functions
and the random vector generators used by the camera and the materials. All
operations are Taichi functions for use inside kernels.

Random generators take the caller's random stream state and return the
advanced state together with the sample (see spheretrace.core.rng).

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> origin = ti.math.vec3(0.0, 0.0, 0.0)
    >>> direction = ti.math.vec3(0.0, 0.0, -1.0)
    >>> ray = Ray(origin=origin, direction=direction)
    >>> point = ray_at(ray, 5.0)  # Point 5 units along the ray
"""

import taichi as ti
import taichi.math as tm

from spheretrace.core.rng import rng_next

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Rejection sampling gives up after this many draws
MAX_REJECTION_ATTEMPTS = 64

# Squared length below which a unit-sphere sample is rejected as degenerate
DEGENERATE_LENGTH_SQUARED = 1e-12


@ti.dataclass
class Ray:
    """A ray with an origin point and direction vector.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction vector of the ray (vec3). Not required to be
            unit length; scattered rays are normalized when they are built.
    """

    origin: vec3
    direction: vec3


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Compute the point along the ray at parameter t.

    Args:
        ray: The ray to evaluate.
        t: The parameter value. Positive values are in front of the origin.

    Returns:
        The point ray.origin + t * ray.direction.
    """
    return ray.origin + t * ray.direction


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    """Create a ray from origin and direction."""
    return Ray(origin=origin, direction=direction)


# =============================================================================
# Vector Utility Functions
# =============================================================================


@ti.func
def length(v: vec3) -> ti.f32:
    """Compute the Euclidean length of a vector."""
    return tm.length(v)


@ti.func
def length_squared(v: vec3) -> ti.f32:
    """Compute the squared length of a vector.

    Cheaper than length() when only comparing magnitudes.
    """
    return tm.dot(v, v)


@ti.func
def normalize(v: vec3) -> vec3:
    """Normalize a vector to unit length.

    The caller must guarantee a non-zero vector; a zero vector yields NaN
    components.
    """
    return v / tm.length(v)


@ti.func
def dot(a: vec3, b: vec3) -> ti.f32:
    """Compute the dot product a . b."""
    return tm.dot(a, b)


@ti.func
def cross(a: vec3, b: vec3) -> vec3:
    """Compute the cross product a x b."""
    return tm.cross(a, b)


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Reflect an incident vector about a normal.

    Args:
        incident: The incoming direction vector (pointing toward the surface).
        normal: The surface normal (unit length).

    Returns:
        The reflected direction incident - 2 * dot(incident, normal) * normal.
    """
    return incident - 2.0 * tm.dot(incident, normal) * normal


@ti.func
def refract(incident: vec3, normal: vec3, eta_ratio: ti.f32) -> vec3:
    """Refract a unit incident vector through a surface using Snell's law.

    The refracted direction is split into the components perpendicular and
    parallel to the normal. The caller must rule out total internal
    reflection beforehand (eta_ratio * sin_theta > 1).

    Args:
        incident: The incoming direction (unit length).
        normal: The surface normal (unit length, facing the incident ray).
        eta_ratio: Ratio of refractive indices (n_incident / n_transmitted).

    Returns:
        The refracted direction.
    """
    cos_theta = tm.min(tm.dot(-incident, normal), 1.0)
    r_out_perp = eta_ratio * (incident + cos_theta * normal)
    r_out_parallel = -ti.sqrt(ti.abs(1.0 - length_squared(r_out_perp))) * normal
    return r_out_perp + r_out_parallel


@ti.func
def schlick_reflectance(cosine: ti.f32, eta_ratio: ti.f32) -> ti.f32:
    """Compute the reflectance using Schlick's approximation.

    Args:
        cosine: Cosine of the angle between the incident ray and the normal.
        eta_ratio: Ratio of refractive indices.

    Returns:
        The approximate reflectance, rising sharply toward 1 at grazing angles.
    """
    r0 = (1.0 - eta_ratio) / (1.0 + eta_ratio)
    r0 = r0 * r0
    return r0 + (1.0 - r0) * ((1.0 - cosine) ** 5)


@ti.func
def near_zero(v: vec3) -> ti.i32:
    """Check if a vector is near zero in all components.

    Returns:
        1 if all components are smaller than 1e-8 in magnitude, 0 otherwise.
    """
    s = 1e-8
    return ti.abs(v.x) < s and ti.abs(v.y) < s and ti.abs(v.z) < s


# =============================================================================
# Random Vector Generators
# =============================================================================


@ti.func
def random_in_unit_sphere(state: ti.u32):
    """Generate a random point inside the unit sphere.

    Uses rejection sampling: components are drawn in [-1, 1) and the point is
    redrawn while its squared length is >= 1 or degenerately small. If every
    attempt is rejected the origin is returned.

    Args:
        state: The random stream state.

    Returns:
        A tuple (point, new_state).
    """
    p = vec3(0.0, 0.0, 0.0)
    s = state
    found = 0
    for _ in range(MAX_REJECTION_ATTEMPTS):
        if found == 0:
            rx, s = rng_next(s)
            ry, s = rng_next(s)
            rz, s = rng_next(s)
            candidate = vec3(2.0 * rx - 1.0, 2.0 * ry - 1.0, 2.0 * rz - 1.0)
            lensq = length_squared(candidate)
            if lensq < 1.0 and lensq >= DEGENERATE_LENGTH_SQUARED:
                p = candidate
                found = 1
    return p, s


@ti.func
def random_unit_vector(state: ti.u32):
    """Generate a random unit vector uniformly distributed on the sphere.

    This is the normalized version of random_in_unit_sphere(). Falls back to
    +y when rejection sampling was exhausted.

    Returns:
        A tuple (unit_vector, new_state).
    """
    p, s = random_in_unit_sphere(state)
    result = vec3(0.0, 1.0, 0.0)
    if length_squared(p) >= DEGENERATE_LENGTH_SQUARED:
        result = normalize(p)
    return result, s


@ti.func
def random_in_unit_disk(state: ti.u32):
    """Generate a random point inside the unit disk in the xy-plane.

    Used for lens sampling (depth of field).

    Returns:
        A tuple (point, new_state) with point = (x, y, 0), x^2 + y^2 < 1.
    """
    p = vec3(0.0, 0.0, 0.0)
    s = state
    found = 0
    for _ in range(MAX_REJECTION_ATTEMPTS):
        if found == 0:
            rx, s = rng_next(s)
            ry, s = rng_next(s)
            candidate = vec3(2.0 * rx - 1.0, 2.0 * ry - 1.0, 0.0)
            if length_squared(candidate) < 1.0:
                p = candidate
                found = 1
    return p, s
