"""Dielectric (glass/water) material implementation.

Dielectrics reflect or refract the incoming ray:

    - Snell's law for refraction: n1 * sin(theta1) = n2 * sin(theta2)
    - Schlick's approximation for Fresnel reflectance
    - Total internal reflection when sin(theta_t) > 1

The choice between reflection and refraction is random, weighted by the
Fresnel reflectance. Like metals, dielectrics bypass mixture sampling and
return their continuation ray directly (skip_pdf) with white attenuation.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from mistrace.materials.dielectric import scatter_dielectric
    >>> # Use within a Taichi kernel:
    >>> # srec = scatter_dielectric(ior, ray_in, hit_point, normal, front_face)
"""

import taichi as ti
import taichi.math as tm

from mistrace.core.ray import (
    Ray,
    make_ray,
    reflect,
    refract,
    schlick_fresnel,
)
from mistrace.materials.scatter_record import ScatterRecord, make_specular_record

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.func
def will_reflect(refraction_ratio: ti.f32, cos_theta: ti.f32) -> ti.i32:
    """Decide whether a ray reflects instead of refracting.

    Args:
        refraction_ratio: n_incident / n_transmitted.
        cos_theta: Cosine between the reversed incident direction and normal.

    Returns:
        1 on total internal reflection or when a uniform draw falls below
        the Schlick reflectance, 0 otherwise.
    """
    sin_theta = ti.sqrt(tm.max(0.0, 1.0 - cos_theta * cos_theta))
    cannot_refract = refraction_ratio * sin_theta > 1.0
    result = 0
    if cannot_refract or ti.random(ti.f32) < schlick_fresnel(cos_theta, refraction_ratio):
        result = 1
    return result


@ti.func
def scatter_dielectric(
    ior: ti.f32,
    ray_in: Ray,
    hit_point: vec3,
    normal: vec3,
    front_face: ti.i32,
) -> ScatterRecord:
    """Reflect or refract the incoming ray through a dielectric surface.

    Args:
        ior: Index of refraction of the material.
        ray_in: The incoming ray.
        hit_point: The intersection point.
        normal: The surface normal, facing the incoming ray.
        front_face: 1 if the ray enters the material, 0 if it leaves it.

    Returns:
        A skip-pdf ScatterRecord with white attenuation.
    """
    refraction_ratio = 1.0 / ior
    if front_face == 0:
        refraction_ratio = ior

    unit_direction = tm.normalize(ray_in.direction)
    cos_theta = tm.min(-tm.dot(unit_direction, normal), 1.0)

    scattered_direction = vec3(0.0, 0.0, 0.0)
    if will_reflect(refraction_ratio, cos_theta) == 1:
        scattered_direction = reflect(unit_direction, normal)
    else:
        scattered_direction = refract(unit_direction, normal, refraction_ratio)

    return make_specular_record(
        vec3(1.0, 1.0, 1.0), make_ray(hit_point, scattered_direction, ray_in.time)
    )


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

# Maximum number of dielectric materials in the scene
MAX_DIELECTRIC_MATERIALS = 256

dielectric_iors = ti.field(dtype=ti.f32, shape=MAX_DIELECTRIC_MATERIALS)
num_dielectric_materials = ti.field(dtype=ti.i32, shape=())


def clear_dielectric_materials() -> None:
    """Clear all dielectric materials."""
    num_dielectric_materials[None] = 0


def add_dielectric_material(ior: float = 1.5) -> int:
    """Add a dielectric material to the material registry.

    Args:
        ior: Index of refraction. Default is 1.5 (typical glass).
            Must be >= 1.0.

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If IOR is less than 1.0.
    """
    if ior < 1.0:
        raise ValueError(
            f"Index of refraction = {ior} is less than 1.0. "
            "IOR must be >= 1.0 for physically meaningful materials."
        )

    idx = num_dielectric_materials[None]
    if idx >= MAX_DIELECTRIC_MATERIALS:
        raise RuntimeError(
            f"Maximum number of dielectric materials ({MAX_DIELECTRIC_MATERIALS}) exceeded"
        )

    dielectric_iors[idx] = ior
    num_dielectric_materials[None] = idx + 1
    return idx


def get_dielectric_material_count() -> int:
    """Get the number of dielectric materials in the registry."""
    return int(num_dielectric_materials[None])


@ti.func
def get_dielectric_ior(material_idx: ti.i32) -> ti.f32:
    """Get the index of refraction for a dielectric material by index."""
    return dielectric_iors[material_idx]
