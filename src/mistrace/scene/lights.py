"""Light list used for importance sampling directions toward emitters.

The light list is separate from the renderable scene: a primitive registered
here is only used to steer samples and is never intersected through this
module. A scene normally registers its emissive quads and, as a hint, any
glass sphere whose caustics would otherwise be noisy.

The distribution defined by the list is:

    value(origin, w) = (1 / N) * sum_k pdf_k(origin, w)
    generate(origin) = pick light k uniformly, sample a direction toward it

With no lights registered the distribution degrades to the uniform sphere,
so the mixture that consumes it stays a valid density.
"""

import taichi as ti
import taichi.math as tm

from mistrace.core.pdf import UNIFORM_SPHERE_DENSITY
from mistrace.core.ray import random_unit_vector
from mistrace.geometry.quad import Quad, pdf_value_quad, random_toward_quad
from mistrace.geometry.sphere import Sphere, pdf_value_sphere, random_toward_sphere

# Type alias for 3D vectors
vec3 = tm.vec3

MAX_LIGHT_QUADS = 64
MAX_LIGHT_SPHERES = 64

light_quad_corners = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHT_QUADS)
light_quad_edge_u = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHT_QUADS)
light_quad_edge_v = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHT_QUADS)
num_light_quads = ti.field(dtype=ti.i32, shape=())

light_sphere_centers = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHT_SPHERES)
light_sphere_radii = ti.field(dtype=ti.f32, shape=MAX_LIGHT_SPHERES)
num_light_spheres = ti.field(dtype=ti.i32, shape=())


def clear_lights() -> None:
    """Remove every registered light."""
    num_light_quads[None] = 0
    num_light_spheres[None] = 0


def add_light_quad(
    q: tuple[float, float, float],
    u: tuple[float, float, float],
    v: tuple[float, float, float],
) -> int:
    """Register a quad as a sampling target.

    Args:
        q: Corner point of the quad.
        u: First edge vector.
        v: Second edge vector.

    Returns:
        The index of the light quad.

    Raises:
        RuntimeError: If the maximum number of light quads is exceeded.
    """
    idx = num_light_quads[None]
    if idx >= MAX_LIGHT_QUADS:
        raise RuntimeError(f"Maximum number of light quads ({MAX_LIGHT_QUADS}) exceeded")
    light_quad_corners[idx] = [q[0], q[1], q[2]]
    light_quad_edge_u[idx] = [u[0], u[1], u[2]]
    light_quad_edge_v[idx] = [v[0], v[1], v[2]]
    num_light_quads[None] = idx + 1
    return idx


def add_light_sphere(center: tuple[float, float, float], radius: float) -> int:
    """Register a sphere as a sampling target.

    Args:
        center: Center of the sphere.
        radius: Radius of the sphere (must be positive).

    Returns:
        The index of the light sphere.

    Raises:
        ValueError: If the radius is not positive.
        RuntimeError: If the maximum number of light spheres is exceeded.
    """
    if radius <= 0.0:
        raise ValueError(f"Light sphere radius must be positive, got {radius}")
    idx = num_light_spheres[None]
    if idx >= MAX_LIGHT_SPHERES:
        raise RuntimeError(f"Maximum number of light spheres ({MAX_LIGHT_SPHERES}) exceeded")
    light_sphere_centers[idx] = [center[0], center[1], center[2]]
    light_sphere_radii[idx] = radius
    num_light_spheres[None] = idx + 1
    return idx


def get_light_count() -> int:
    """Get the total number of registered lights."""
    return int(num_light_quads[None]) + int(num_light_spheres[None])


@ti.func
def _light_quad(idx: ti.i32) -> Quad:
    return Quad(Q=light_quad_corners[idx], u=light_quad_edge_u[idx], v=light_quad_edge_v[idx])


@ti.func
def _light_sphere(idx: ti.i32) -> Sphere:
    return Sphere(center=light_sphere_centers[idx], radius=light_sphere_radii[idx])


@ti.func
def lights_pdf_value(origin: vec3, direction: vec3) -> ti.f32:
    """Density of the light distribution for ``direction`` leaving ``origin``.

    Args:
        origin: The shading point.
        direction: The query direction (any length).

    Returns:
        The average of the per-light solid-angle densities, or the uniform
        sphere density when no light is registered.
    """
    n_quads = num_light_quads[None]
    n_spheres = num_light_spheres[None]
    total = n_quads + n_spheres

    value = UNIFORM_SPHERE_DENSITY
    if total > 0:
        acc = 0.0
        for i in range(n_quads):
            acc += pdf_value_quad(_light_quad(i), origin, direction)
        for i in range(n_spheres):
            acc += pdf_value_sphere(_light_sphere(i), origin, direction)
        value = acc / ti.cast(total, ti.f32)
    return value


@ti.func
def lights_random_direction(origin: vec3) -> vec3:
    """Sample a direction from ``origin`` toward a uniformly chosen light.

    Args:
        origin: The shading point.

    Returns:
        A direction (not necessarily unit length) toward the chosen light, or
        a uniform random unit vector when no light is registered.
    """
    n_quads = num_light_quads[None]
    n_spheres = num_light_spheres[None]
    total = n_quads + n_spheres

    direction = vec3(0.0, 0.0, 0.0)
    if total == 0:
        direction = random_unit_vector()
    else:
        k = ti.min(ti.cast(ti.random(ti.f32) * total, ti.i32), total - 1)
        if k < n_quads:
            direction = random_toward_quad(_light_quad(k), origin)
        else:
            direction = random_toward_sphere(_light_sphere(k - n_quads), origin)
    return direction
