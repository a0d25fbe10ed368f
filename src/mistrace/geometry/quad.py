"""Quad primitive with ray-quad intersection and area-light sampling.

A quad is defined by:
- Q: A corner point of the quad
- u: Edge vector from Q to adjacent corner
- v: Edge vector from Q to other adjacent corner

The quad spans the parallelogram from Q to Q+u+v. The normal is computed as
normalize(cross(u, v)), pointing in the direction determined by the right-hand
rule. The local coordinates (alpha, beta) of the hit point are reported as the
surface (u, v) coordinates.

Besides intersection, a quad can act as an importance sampled area light:
``random_toward_quad`` picks a uniform point on its surface and
``pdf_value_quad`` returns the matching solid-angle density.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from mistrace.geometry.quad import Quad, hit_quad
    >>> quad = Quad(
    ...     Q=ti.math.vec3(0, 0, 0),
    ...     u=ti.math.vec3(1, 0, 0),
    ...     v=ti.math.vec3(0, 0, 1)
    ... )
    >>> # Use hit_quad within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

from .sphere import HitRecord

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class Quad:
    """A quad (parallelogram) defined by a corner point and two edge vectors.

    Attributes:
        Q: The corner point of the quad (vec3).
        u: Edge vector from Q to adjacent corner (vec3).
        v: Edge vector from Q to other adjacent corner (vec3).
    """

    Q: vec3
    u: vec3
    v: vec3


@ti.func
def _compute_quad_frame(quad: Quad):
    """Compute the quad's plane normal and basis vectors for intersection.

    The hit point is expressed as P = Q + alpha * u + beta * v, with
    alpha = dot(w_u, P - Q) and beta = dot(w_v, P - Q).

    Args:
        quad: The quad to compute frame for.

    Returns:
        Tuple of (normal, d, w_u, w_v) where:
        - normal: Unit normal vector of the quad plane
        - d: Plane constant (distance from origin along normal)
        - w_u: Helper vector for computing alpha coordinate
        - w_v: Helper vector for computing beta coordinate
    """
    n = tm.cross(quad.u, quad.v)
    normal = tm.normalize(n)
    d = tm.dot(normal, quad.Q)

    n_dot_n = tm.dot(n, n)

    # Degenerate quad (u parallel to v) never reports a hit
    w_u = vec3(0.0, 0.0, 0.0)
    w_v = vec3(0.0, 0.0, 0.0)
    if n_dot_n > 1e-10:
        w_u = tm.cross(quad.v, n) / n_dot_n
        w_v = tm.cross(n, quad.u) / n_dot_n

    return normal, d, w_u, w_v


@ti.func
def hit_quad(
    ray_origin: vec3,
    ray_direction: vec3,
    quad: Quad,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Test for ray-quad intersection.

    Computes where the ray hits the plane containing the quad, expresses the
    hit point in the quad's local coordinates (alpha, beta) and accepts it
    when both lie in [0, 1].

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray (need not be normalized).
        quad: The quad to test intersection against.
        t_min: Minimum t value to consider a valid hit.
        t_max: Maximum t value to consider a valid hit.

    Returns:
        A HitRecord containing intersection information, with u = alpha and
        v = beta.
    """
    normal, d, w_u, w_v = _compute_quad_frame(quad)

    denom = tm.dot(normal, ray_direction)

    did_hit = 0
    hit_t = 0.0
    hit_point = vec3(0.0, 0.0, 0.0)
    hit_normal = vec3(0.0, 0.0, 0.0)
    hit_u = 0.0
    hit_v = 0.0
    is_front_face = 0

    if ti.abs(denom) > 1e-8:
        t = (d - tm.dot(normal, ray_origin)) / denom

        if t > t_min and t < t_max:
            point = ray_origin + t * ray_direction

            p_minus_q = point - quad.Q
            alpha = tm.dot(w_u, p_minus_q)
            beta = tm.dot(w_v, p_minus_q)

            if alpha >= 0.0 and alpha <= 1.0 and beta >= 0.0 and beta <= 1.0:
                did_hit = 1
                hit_t = t
                hit_point = point
                hit_u = alpha
                hit_v = beta

                if denom > 0.0:
                    # Ray and normal point the same way: back face
                    is_front_face = 0
                    hit_normal = -normal
                else:
                    is_front_face = 1
                    hit_normal = normal

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
def quad_normal(quad: Quad) -> vec3:
    """Compute the unit surface normal of a quad (right-hand rule on u, v)."""
    return tm.normalize(tm.cross(quad.u, quad.v))


@ti.func
def quad_area(quad: Quad) -> ti.f32:
    """Compute the area of a quad as |u x v|."""
    return tm.length(tm.cross(quad.u, quad.v))


@ti.func
def pdf_value_quad(quad: Quad, origin: vec3, direction: vec3) -> ti.f32:
    """Solid-angle density of sampling ``direction`` toward a quad light.

    Converts the uniform area density 1/A into solid angle:
        pdf = distance^2 / (|cos(theta)| * A)
    where theta is the angle between the direction and the quad normal.
    Directions that miss the quad have zero density.

    Args:
        quad: The light quad.
        origin: The shading point the direction starts from.
        direction: The query direction (any length).

    Returns:
        The density with respect to solid angle.
    """
    value = 0.0
    rec = hit_quad(origin, direction, quad, 0.001, tm.inf)
    if rec.hit == 1:
        dir_len_sq = tm.dot(direction, direction)
        distance_squared = rec.t * rec.t * dir_len_sq
        cosine = ti.abs(tm.dot(direction, quad_normal(quad))) / ti.sqrt(dir_len_sq)
        area = quad_area(quad)
        if cosine > 0.0 and area > 0.0:
            value = distance_squared / (cosine * area)
    return value


@ti.func
def random_toward_quad(quad: Quad, origin: vec3) -> vec3:
    """Sample a direction from ``origin`` toward a uniform point on a quad.

    Args:
        quad: The light quad.
        origin: The shading point.

    Returns:
        The (unnormalized) vector from ``origin`` to the sampled point.
    """
    p = quad.Q + ti.random(ti.f32) * quad.u + ti.random(ti.f32) * quad.v
    return p - origin
