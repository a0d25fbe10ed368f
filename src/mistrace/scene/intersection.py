"""Scene-level primitive intersection testing.

This module is the intersection oracle of the renderer: it stores every
primitive in Taichi fields and answers closest-hit queries with a linear scan
over spheres and quads, returning the hit plus its material ID.

Spheres may move linearly during the shutter interval. A moving sphere stores
its center at time 0 and a motion vector; the center seen by a ray is
``center + ray.time * motion``.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from mistrace.scene.intersection import (
    ...     SceneHitRecord, add_sphere, add_quad, intersect_scene, clear_scene
    ... )
    >>> clear_scene()
    >>> add_sphere((0, 0, -1), 0.5, material_id=0)
    >>> add_quad((-1, -0.5, -2), (2, 0, 0), (0, 1, 0), material_id=1)
    >>> # Use intersect_scene within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

from mistrace.core.ray import Ray
from mistrace.geometry.quad import Quad, hit_quad
from mistrace.geometry.sphere import HitRecord, Sphere, hit_sphere

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class SceneHitRecord:
    """Record of a ray-scene intersection with material information.

    Extends the primitive HitRecord with material_id for scene-level queries.

    Attributes:
        hit: Whether the ray intersected any primitive (1 if hit, 0 if miss).
        t: The parameter value along the ray where intersection occurred.
        point: The 3D point where the ray intersected the surface.
        normal: The unit surface normal, facing against the ray.
        u: First surface coordinate of the hit.
        v: Second surface coordinate of the hit.
        front_face: Whether the ray hit the front face (1) or back face (0).
        material_id: The material ID of the hit primitive, -1 on a miss.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    u: ti.f32
    v: ti.f32
    front_face: ti.i32
    material_id: ti.i32


# Maximum number of primitives supported in the scene
MAX_SPHERES = 1024
MAX_QUADS = 1024

# Sphere storage: Structure of Arrays layout
sphere_centers = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SPHERES)
sphere_motions = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SPHERES)
sphere_radii = ti.field(dtype=ti.f32, shape=MAX_SPHERES)
sphere_material_ids = ti.field(dtype=ti.i32, shape=MAX_SPHERES)
num_spheres = ti.field(dtype=ti.i32, shape=())

# Quad storage: Structure of Arrays layout
quad_corners = ti.Vector.field(3, dtype=ti.f32, shape=MAX_QUADS)
quad_edge_u = ti.Vector.field(3, dtype=ti.f32, shape=MAX_QUADS)
quad_edge_v = ti.Vector.field(3, dtype=ti.f32, shape=MAX_QUADS)
quad_material_ids = ti.field(dtype=ti.i32, shape=MAX_QUADS)
num_quads = ti.field(dtype=ti.i32, shape=())


def clear_scene() -> None:
    """Clear all primitives from the scene.

    Resets the primitive counts to zero. The field data is overwritten when
    new primitives are added.
    """
    num_spheres[None] = 0
    num_quads[None] = 0


def add_sphere(
    center: tuple[float, float, float],
    radius: float,
    material_id: int = 0,
    motion: tuple[float, float, float] = (0.0, 0.0, 0.0),
) -> int:
    """Add a sphere to the scene.

    Args:
        center: The center point of the sphere at time 0.
        radius: The radius of the sphere. Negative values are clamped to 0.
        material_id: The material ID to associate with this sphere.
        motion: Displacement of the center between time 0 and time 1.

    Returns:
        The index of the added sphere.

    Raises:
        RuntimeError: If the maximum number of spheres is exceeded.
    """
    idx = num_spheres[None]
    if idx >= MAX_SPHERES:
        raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")
    sphere_centers[idx] = [center[0], center[1], center[2]]
    sphere_motions[idx] = [motion[0], motion[1], motion[2]]
    sphere_radii[idx] = max(0.0, radius)
    sphere_material_ids[idx] = material_id
    num_spheres[None] = idx + 1
    return idx


def add_quad(
    q: tuple[float, float, float],
    u: tuple[float, float, float],
    v: tuple[float, float, float],
    material_id: int = 0,
) -> int:
    """Add a quad to the scene.

    The quad represents a parallelogram with vertices at Q, Q+u, Q+v, Q+u+v.

    Args:
        q: The corner point of the quad.
        u: Edge vector from q to adjacent corner.
        v: Edge vector from q to other adjacent corner.
        material_id: The material ID to associate with this quad.

    Returns:
        The index of the added quad.

    Raises:
        RuntimeError: If the maximum number of quads is exceeded.
    """
    idx = num_quads[None]
    if idx >= MAX_QUADS:
        raise RuntimeError(f"Maximum number of quads ({MAX_QUADS}) exceeded")
    quad_corners[idx] = [q[0], q[1], q[2]]
    quad_edge_u[idx] = [u[0], u[1], u[2]]
    quad_edge_v[idx] = [v[0], v[1], v[2]]
    quad_material_ids[idx] = material_id
    num_quads[None] = idx + 1
    return idx


def get_sphere_count() -> int:
    """Get the number of spheres in the scene."""
    return int(num_spheres[None])


def get_quad_count() -> int:
    """Get the number of quads in the scene."""
    return int(num_quads[None])


@ti.func
def sphere_at_time(idx: ti.i32, time: ti.f32) -> Sphere:
    """Resolve stored sphere ``idx`` to its position at ``time``."""
    return Sphere(
        center=sphere_centers[idx] + time * sphere_motions[idx],
        radius=sphere_radii[idx],
    )


@ti.func
def _hit_record_to_scene_hit_record(rec: HitRecord, material_id: ti.i32) -> SceneHitRecord:
    """Attach a material ID to a primitive hit record."""
    return SceneHitRecord(
        hit=rec.hit,
        t=rec.t,
        point=rec.point,
        normal=rec.normal,
        u=rec.u,
        v=rec.v,
        front_face=rec.front_face,
        material_id=material_id,
    )


@ti.func
def _make_miss_record() -> SceneHitRecord:
    """Create a SceneHitRecord indicating no intersection."""
    return SceneHitRecord(
        hit=0,
        t=0.0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        u=0.0,
        v=0.0,
        front_face=0,
        material_id=-1,
    )


@ti.func
def intersect_scene(ray: Ray, t_min: ti.f32, t_max: ti.f32) -> SceneHitRecord:
    """Find the closest primitive hit by ``ray`` inside (t_min, t_max).

    Iterates through all spheres (at the ray's time) and quads, shrinking the
    upper bound after every hit so the surviving record is the nearest one.

    Args:
        ray: The query ray.
        t_min: Minimum t value to consider a valid hit.
        t_max: Maximum t value to consider a valid hit.

    Returns:
        A SceneHitRecord containing the closest intersection, or a miss
        record if no intersection was found.
    """
    closest_t = t_max
    result = _make_miss_record()

    n_spheres = num_spheres[None]
    for i in range(n_spheres):
        sphere = sphere_at_time(i, ray.time)
        rec = hit_sphere(ray.origin, ray.direction, sphere, t_min, closest_t)
        if rec.hit == 1:
            closest_t = rec.t
            result = _hit_record_to_scene_hit_record(rec, sphere_material_ids[i])

    n_quads = num_quads[None]
    for i in range(n_quads):
        quad = Quad(Q=quad_corners[i], u=quad_edge_u[i], v=quad_edge_v[i])
        rec = hit_quad(ray.origin, ray.direction, quad, t_min, closest_t)
        if rec.hit == 1:
            closest_t = rec.t
            result = _hit_record_to_scene_hit_record(rec, quad_material_ids[i])

    return result
