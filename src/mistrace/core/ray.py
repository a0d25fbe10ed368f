"""Ray data structure and sampling utilities for the Monte Carlo estimator.

This module provides the time-stamped Ray dataclass, the reflection and
refraction helpers used by the specular materials, and the random direction
generators shared by the camera, the materials and the light sampler. All
functions are Taichi ``ti.func`` helpers meant to be called from kernels; the
random numbers come from Taichi's per-thread generator, seeded through
``ti.init(random_seed=...)``.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from mistrace.core.ray import Ray, ray_at, vec3
    >>> # Inside a kernel:
    >>> # ray = Ray(origin=vec3(0.0), direction=vec3(0.0, 0.0, -1.0), time=0.5)
    >>> # point = ray_at(ray, 5.0)
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class Ray:
    """A ray with an origin point, a direction vector and a time stamp.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction vector of the ray (vec3). Camera rays are not
            normalized; the length carries no meaning beyond scaling t.
        time: Instant in [0, 1) at which the ray samples the scene. Moving
            primitives are evaluated at this time (motion blur).
    """

    origin: vec3
    direction: vec3
    time: ti.f32


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
def make_ray(origin: vec3, direction: vec3, time: ti.f32) -> Ray:
    """Create a ray from origin, direction and time inside a kernel.

    Secondary rays inherit the time of the ray that spawned them, so the whole
    path sees the scene at one instant.

    Args:
        origin: The starting point of the ray.
        direction: The direction vector.
        time: The sampling instant in [0, 1).

    Returns:
        A new Ray instance.
    """
    return Ray(origin=origin, direction=direction, time=time)


# =============================================================================
# Vector Utility Functions
# =============================================================================


@ti.func
def length_squared(v: vec3) -> ti.f32:
    """Compute the squared length of a vector."""
    return tm.dot(v, v)


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Reflect an incident vector about a normal.

    Args:
        incident: The incoming direction vector (pointing toward the surface).
        normal: The surface normal (should be normalized).

    Returns:
        The reflected direction vector.
    """
    return incident - 2.0 * tm.dot(incident, normal) * normal


@ti.func
def refract(incident: vec3, normal: vec3, etai_over_etat: ti.f32) -> vec3:
    """Refract a unit incident vector through a surface using Snell's law.

    The caller decides between reflection and refraction beforehand, so the
    discriminant is clamped instead of signalling total internal reflection.

    Args:
        incident: The incoming direction vector (must be normalized).
        normal: The surface normal facing against the incident direction.
        etai_over_etat: Ratio of refractive indices (n_incident / n_transmitted).

    Returns:
        The refracted direction vector.
    """
    cos_theta = tm.min(-tm.dot(incident, normal), 1.0)
    r_out_perp = etai_over_etat * (incident + cos_theta * normal)
    r_out_parallel = -ti.sqrt(ti.abs(1.0 - length_squared(r_out_perp))) * normal
    return r_out_perp + r_out_parallel


@ti.func
def schlick_fresnel(cosine: ti.f32, ref_idx: ti.f32) -> ti.f32:
    """Compute Fresnel reflectance using Schlick's approximation.

    Args:
        cosine: Cosine of the angle between incident direction and normal.
        ref_idx: Ratio of refractive indices.

    Returns:
        The approximate Fresnel reflectance coefficient.
    """
    r0 = ((1.0 - ref_idx) / (1.0 + ref_idx)) ** 2
    return r0 + (1.0 - r0) * ((1.0 - cosine) ** 5)


@ti.func
def near_zero(v: vec3) -> ti.i32:
    """Check if a vector is near zero in all components.

    Args:
        v: The vector to check.

    Returns:
        1 if all components are near zero, 0 otherwise.
    """
    s = 1e-8
    return ti.abs(v.x) < s and ti.abs(v.y) < s and ti.abs(v.z) < s


# =============================================================================
# Random Sampling Utilities for Monte Carlo
# =============================================================================


@ti.func
def random_in_unit_sphere() -> vec3:
    """Generate a random point inside the unit sphere by rejection sampling.

    Returns:
        A random point with length < 1.
    """
    p = vec3(0.0, 0.0, 0.0)
    found = False
    for _ in range(100):  # Max iterations to avoid infinite loops
        if not found:
            p = vec3(
                ti.random(ti.f32) * 2.0 - 1.0,
                ti.random(ti.f32) * 2.0 - 1.0,
                ti.random(ti.f32) * 2.0 - 1.0,
            )
            len_sq = length_squared(p)
            if len_sq < 1.0 and len_sq > 1e-12:
                found = True
    return p


@ti.func
def random_unit_vector() -> vec3:
    """Generate a random unit vector uniformly distributed on the sphere."""
    return tm.normalize(random_in_unit_sphere())


@ti.func
def random_in_unit_disk() -> vec3:
    """Generate a random point inside the unit disk in the xy-plane.

    Used by the thin-lens camera to sample the defocus disk.

    Returns:
        A random point (x, y, 0) with x^2 + y^2 < 1.
    """
    p = vec3(0.0, 0.0, 0.0)
    found = False
    for _ in range(100):  # Max iterations to avoid infinite loops
        if not found:
            p = vec3(
                ti.random(ti.f32) * 2.0 - 1.0,
                ti.random(ti.f32) * 2.0 - 1.0,
                0.0,
            )
            if p.x * p.x + p.y * p.y < 1.0:
                found = True
    return p


@ti.func
def random_cosine_direction() -> vec3:
    """Generate a random direction with cosine-weighted distribution.

    The distribution has PDF = cos(theta) / pi in the local z-up frame.

    Returns:
        A random direction in the local coordinate frame (z-up).
    """
    r1 = ti.random(ti.f32)
    r2 = ti.random(ti.f32)
    phi = 2.0 * tm.pi * r1
    sqrt_r2 = ti.sqrt(r2)
    x = ti.cos(phi) * sqrt_r2
    y = ti.sin(phi) * sqrt_r2
    z = ti.sqrt(1.0 - r2)
    return vec3(x, y, z)


@ti.func
def random_to_sphere(radius: ti.f32, distance_squared: ti.f32) -> vec3:
    """Sample a direction inside the cone subtended by a sphere.

    The directions are uniform in solid angle over the cone whose apex is the
    shading point and whose axis is the local z axis pointing at the sphere
    center.

    Args:
        radius: Radius of the target sphere.
        distance_squared: Squared distance from the apex to the sphere center.

    Returns:
        A unit direction in the local z-up frame.
    """
    r1 = ti.random(ti.f32)
    r2 = ti.random(ti.f32)
    cos_theta_max = ti.sqrt(tm.max(0.0, 1.0 - radius * radius / distance_squared))
    z = 1.0 + r2 * (cos_theta_max - 1.0)
    phi = 2.0 * tm.pi * r1
    sin_theta = ti.sqrt(tm.max(0.0, 1.0 - z * z))
    x = ti.cos(phi) * sin_theta
    y = ti.sin(phi) * sin_theta
    return vec3(x, y, z)


@ti.func
def build_onb_from_normal(normal: vec3):
    """Build an orthonormal basis from a normal vector.

    Creates a local coordinate frame where the normal is the z-axis.

    Args:
        normal: The surface normal (should be normalized).

    Returns:
        A tuple (tangent, bitangent, normal) forming an orthonormal basis.
    """
    # Choose a vector not parallel to normal
    a = vec3(1.0, 0.0, 0.0)
    if ti.abs(normal.x) > 0.9:
        a = vec3(0.0, 1.0, 0.0)
    tangent = tm.normalize(tm.cross(a, normal))
    bitangent = tm.cross(normal, tangent)
    return tangent, bitangent, normal


@ti.func
def local_to_world(local_dir: vec3, tangent: vec3, bitangent: vec3, normal: vec3) -> vec3:
    """Transform a direction from local to world coordinates.

    Args:
        local_dir: Direction in local coordinates (z-up).
        tangent: The x-axis of the local frame in world coordinates.
        bitangent: The y-axis of the local frame in world coordinates.
        normal: The z-axis of the local frame in world coordinates.

    Returns:
        The direction in world coordinates.
    """
    return local_dir.x * tangent + local_dir.y * bitangent + local_dir.z * normal
