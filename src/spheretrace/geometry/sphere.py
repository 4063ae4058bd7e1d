"""Sphere primitive with ray-sphere intersection.

The intersection solves the quadratic obtained by substituting the ray
equation into the implicit sphere equation, using the half-b formulation:

    a*t^2 + 2*h*t + c = 0
    a = dot(direction, direction)
    h = dot(direction, origin - center)
    c = dot(origin - center, origin - center) - radius^2

The quadratic is solved in double precision. In single precision the
cancellation in c is about 0.06 for the radius 1000 ground sphere, enough
for rays leaving its surface to hit it again beyond the acne threshold.
Hit points and normals are stored in single precision.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretrace.geometry.sphere import Sphere, hit_sphere
    >>> sphere = Sphere(center=ti.math.vec3(0, 0, -1), radius=0.5)
    >>> # Use hit_sphere within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

from spheretrace.core.ray import make_ray, ray_at

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class Sphere:
    """A sphere defined by center point and radius.

    Attributes:
        center: The center point of the sphere (vec3).
        radius: The radius of the sphere (positive float).
    """

    center: vec3
    radius: ti.f32


@ti.dataclass
class HitRecord:
    """Record of a ray-sphere intersection.

    Attributes:
        hit: 1 if the ray intersected the sphere, 0 on a miss.
        t: The ray parameter of the intersection. Only valid if hit == 1.
        point: The intersection point. Only valid if hit == 1.
        normal: The unit surface normal, always facing against the incoming
            ray (flipped for back-face hits). Only valid if hit == 1.
        front_face: 1 if the ray hit the outside of the sphere, 0 if it hit
            the inside. Only valid if hit == 1.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    front_face: ti.i32


@ti.func
def hit_sphere(
    ray_origin: vec3,
    ray_direction: vec3,
    sphere: Sphere,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Test for ray-sphere intersection.

    The nearer root is accepted if it lies strictly inside (t_min, t_max);
    otherwise the farther root is tried. If neither is in range the ray
    misses.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray (need not be normalized,
            must not be zero).
        sphere: The sphere to test intersection against.
        t_min: Lower bound of accepted ray parameters (exclusive).
        t_max: Upper bound of accepted ray parameters (exclusive).

    Returns:
        A HitRecord. Check the hit field to determine if intersection occurred.
    """
    # |oc|^2 - r^2 cancels badly in f32 for large spheres
    oc = ti.cast(ray_origin, ti.f64) - ti.cast(sphere.center, ti.f64)
    d = ti.cast(ray_direction, ti.f64)
    r = ti.cast(sphere.radius, ti.f64)
    a = tm.dot(d, d)
    h = tm.dot(d, oc)  # half of the traditional 'b'
    c = tm.dot(oc, oc) - r * r
    discriminant = h * h - a * c

    # Taichi requires outer-scope declaration
    did_hit = 0
    hit_t = ti.cast(0.0, ti.f32)
    hit_point = vec3(0.0, 0.0, 0.0)
    hit_normal = vec3(0.0, 0.0, 0.0)
    is_front_face = 0

    if discriminant >= 0.0:
        sqrt_d = ti.sqrt(discriminant)

        t = (-h - sqrt_d) / a
        valid = t > t_min and t < t_max
        if not valid:
            t = (-h + sqrt_d) / a
            valid = t > t_min and t < t_max

        if valid:
            did_hit = 1
            hit_t = ti.cast(t, ti.f32)
            hit_point = ray_at(make_ray(ray_origin, ray_direction), hit_t)

            outward_normal = (hit_point - sphere.center) / sphere.radius
            if tm.dot(ray_direction, outward_normal) < 0.0:
                is_front_face = 1
                hit_normal = outward_normal
            else:
                # Ray is inside the sphere, hitting the back face
                is_front_face = 0
                hit_normal = -outward_normal

    return HitRecord(
        hit=did_hit,
        t=hit_t,
        point=hit_point,
        normal=hit_normal,
        front_face=is_front_face,
    )


@ti.func
def make_sphere(center: vec3, radius: ti.f32) -> Sphere:
    """Create a sphere from center and radius."""
    return Sphere(center=center, radius=radius)
