"""Sphere primitive with robust ray-sphere intersection and light sampling.

This module provides the Sphere dataclass, the shared HitRecord, the
intersection routine (using the robust quadratic formula from Ray Tracing Gems
to avoid catastrophic cancellation when b^2 is nearly equal to 4ac), and the
solid-angle density / sampling routines that let a sphere act as an importance
sampled light.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from mistrace.geometry.sphere import Sphere, HitRecord, hit_sphere
    >>> sphere = Sphere(center=ti.math.vec3(0, 0, -1), radius=0.5)
    >>> # Use hit_sphere within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

from mistrace.core.ray import (
    build_onb_from_normal,
    local_to_world,
    random_to_sphere,
)

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class Sphere:
    """A sphere defined by center point and radius.

    Moving spheres are resolved to a static Sphere at the ray's time before
    intersection, so this struct only carries the instantaneous center.

    Attributes:
        center: The center point of the sphere (vec3).
        radius: The radius of the sphere (non-negative float).
    """

    center: vec3
    radius: ti.f32


@ti.dataclass
class HitRecord:
    """Record of a ray-primitive intersection.

    Attributes:
        hit: Whether the ray intersected the primitive (1 if hit, 0 if miss).
        t: The parameter value along the ray where intersection occurred.
        point: The 3D point where the ray intersected the surface.
        normal: The unit surface normal, always facing against the ray.
        u: First surface coordinate in [0, 1].
        v: Second surface coordinate in [0, 1].
        front_face: Whether the ray hit the outward side (1) or inside (0).

    All fields except ``hit`` are only valid if hit == 1.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    u: ti.f32
    v: ti.f32
    front_face: ti.i32


@ti.func
def _solve_quadratic_robust(h: ti.f32, a: ti.f32, c: ti.f32, sqrt_d: ti.f32):
    """Solve a*t^2 + 2*h*t + c = 0 using a numerically stable method.

    Args:
        h: Half of the linear coefficient.
        a: Quadratic coefficient.
        c: Constant term.
        sqrt_d: Square root of discriminant (h^2 - a*c).

    Returns:
        Tuple of (t0, t1) where t0 <= t1.
    """
    sign_h = ti.select(h < 0.0, -1.0, 1.0)
    q = -(h + sign_h * sqrt_d)

    t0 = 0.0
    t1 = 0.0
    if ti.abs(q) < 1e-10:
        # Tangent ray: fall back to the textbook formula
        t0 = (-h - sqrt_d) / a
        t1 = (-h + sqrt_d) / a
    else:
        t0 = q / a
        t1 = c / q

    if t0 > t1:
        temp = t0
        t0 = t1
        t1 = temp

    return t0, t1


@ti.func
def sphere_uv(unit_point: vec3):
    """Map a point on the unit sphere to (u, v) surface coordinates.

    u is the angle around the y axis starting at x = -1, v is the angle from
    y = -1 up to y = +1, both normalized to [0, 1].

    Args:
        unit_point: A point on the unit sphere centered at the origin.

    Returns:
        Tuple of (u, v).
    """
    theta = ti.acos(tm.clamp(-unit_point.y, -1.0, 1.0))
    phi = ti.atan2(-unit_point.z, unit_point.x) + tm.pi
    return phi / (2.0 * tm.pi), theta / tm.pi


@ti.func
def hit_sphere(
    ray_origin: vec3,
    ray_direction: vec3,
    sphere: Sphere,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Test for ray-sphere intersection using the robust quadratic formula.

    The intersection solves |o + t*d - c|^2 = r^2 as a*t^2 + 2*h*t + c = 0
    with a = d.d, h = d.(o - c) and c = |o - c|^2 - r^2. The first root inside
    the open interval (t_min, t_max) is reported.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray (need not be normalized).
        sphere: The sphere to test intersection against.
        t_min: Minimum t value to consider a valid hit.
        t_max: Maximum t value to consider a valid hit.

    Returns:
        A HitRecord containing intersection information.
    """
    oc = ray_origin - sphere.center

    a = tm.dot(ray_direction, ray_direction)
    h = tm.dot(ray_direction, oc)
    c = tm.dot(oc, oc) - sphere.radius * sphere.radius

    discriminant = h * h - a * c

    did_hit = 0
    hit_t = 0.0
    hit_point = vec3(0.0, 0.0, 0.0)
    hit_normal = vec3(0.0, 0.0, 0.0)
    hit_u = 0.0
    hit_v = 0.0
    is_front_face = 0

    if discriminant >= 0.0 and sphere.radius > 0.0:
        sqrt_d = ti.sqrt(discriminant)
        t0, t1 = _solve_quadratic_robust(h, a, c, sqrt_d)

        t = t0
        valid = (t > t_min) and (t < t_max)
        if not valid:
            t = t1
            valid = (t > t_min) and (t < t_max)

        if valid:
            did_hit = 1
            hit_t = t
            hit_point = ray_origin + t * ray_direction
            outward_normal = (hit_point - sphere.center) / sphere.radius
            hit_u, hit_v = sphere_uv(outward_normal)

            if tm.dot(ray_direction, outward_normal) > 0.0:
                # Ray is inside the sphere, hitting back face
                is_front_face = 0
                hit_normal = -outward_normal
            else:
                is_front_face = 1
                hit_normal = outward_normal

    return HitRecord(
        hit=did_hit,
        t=hit_t,
        point=hit_point,
        normal=hit_normal,
        u=hit_u,
        v=hit_v,
        front_face=is_front_face,
    )


@ti.func
def pdf_value_sphere(sphere: Sphere, origin: vec3, direction: vec3) -> ti.f32:
    """Solid-angle density of sampling ``direction`` toward a sphere.

    Directions are sampled uniformly inside the cone the sphere subtends as
    seen from ``origin``, so the density is 1 / (2 pi (1 - cos_theta_max))
    for directions that hit the sphere and 0 otherwise.

    Args:
        sphere: The light sphere.
        origin: The shading point the direction starts from.
        direction: The query direction (any length).

    Returns:
        The density with respect to solid angle.
    """
    value = 0.0
    rec = hit_sphere(origin, direction, sphere, 0.001, tm.inf)
    if rec.hit == 1:
        to_center = sphere.center - origin
        dist_squared = tm.dot(to_center, to_center)
        ratio = tm.max(0.0, 1.0 - sphere.radius * sphere.radius / dist_squared)
        cos_theta_max = ti.sqrt(ratio)
        solid_angle = 2.0 * tm.pi * (1.0 - cos_theta_max)
        if solid_angle > 0.0:
            value = 1.0 / solid_angle
    return value


@ti.func
def random_toward_sphere(sphere: Sphere, origin: vec3) -> vec3:
    """Sample a direction from ``origin`` toward a sphere.

    Args:
        sphere: The light sphere.
        origin: The shading point.

    Returns:
        A unit direction inside the cone subtended by the sphere.
    """
    direction = sphere.center - origin
    dist_squared = tm.dot(direction, direction)
    tangent, bitangent, axis = build_onb_from_normal(tm.normalize(direction))
    return local_to_world(
        random_to_sphere(sphere.radius, dist_squared), tangent, bitangent, axis
    )
