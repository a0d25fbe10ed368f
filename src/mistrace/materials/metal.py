"""Metal (specular reflective) material implementation.

Perfect metals (fuzz = 0) produce mirror reflections; rougher metals perturb
the mirror direction by a random vector scaled by the fuzz factor:

    scattered = normalize(reflect(I, N)) + fuzz * random_unit_vector()

The ray is absorbed when the perturbed direction points into the surface.
Metals bypass mixture sampling: the scatter record carries the continuation
ray directly (skip_pdf).

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from mistrace.materials.metal import scatter_metal
    >>> # Use within a Taichi kernel:
    >>> # srec = scatter_metal(albedo, fuzz, ray_in, hit_point, normal)
"""

import taichi as ti
import taichi.math as tm

from mistrace.core.ray import Ray, make_ray, random_unit_vector, reflect
from mistrace.materials.scatter_record import (
    ScatterRecord,
    make_absorbed_record,
    make_specular_record,
)

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.func
def scatter_metal(
    albedo: vec3,
    fuzz: ti.f32,
    ray_in: Ray,
    hit_point: vec3,
    normal: vec3,
) -> ScatterRecord:
    """Reflect the incoming ray off a metal surface.

    Args:
        albedo: The reflective color.
        fuzz: The surface fuzziness in [0, 1].
        ray_in: The incoming ray.
        hit_point: The intersection point.
        normal: The surface normal, facing the incoming ray.

    Returns:
        A skip-pdf ScatterRecord along the fuzzed reflection, or an absorbed
        record if the reflection points below the surface.
    """
    reflected = tm.normalize(reflect(ray_in.direction, normal))
    scattered_direction = reflected + fuzz * random_unit_vector()

    result = make_absorbed_record()
    if tm.dot(scattered_direction, normal) > 0.0:
        result = make_specular_record(
            albedo, make_ray(hit_point, scattered_direction, ray_in.time)
        )
    return result


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

# Maximum number of metal materials in the scene
MAX_METAL_MATERIALS = 256

# Storage for metal material properties
metal_albedos = ti.Vector.field(3, dtype=ti.f32, shape=MAX_METAL_MATERIALS)
metal_fuzzes = ti.field(dtype=ti.f32, shape=MAX_METAL_MATERIALS)
num_metal_materials = ti.field(dtype=ti.i32, shape=())


def clear_metal_materials() -> None:
    """Clear all metal materials."""
    num_metal_materials[None] = 0


def add_metal_material(
    albedo: tuple[float, float, float],
    fuzz: float = 0.0,
) -> int:
    """Add a metal material to the material registry.

    Args:
        albedo: The reflective color as (R, G, B) tuple.
            Each component should be in [0, 1].
        fuzz: The surface fuzziness in [0, 1]. Default is 0 (perfect mirror).

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If any albedo component is outside [0, 1].
        ValueError: If fuzz is outside [0, 1].
    """
    for i, component in enumerate(albedo):
        if component < 0.0 or component > 1.0:
            raise ValueError(
                f"Albedo component {i} = {component} is outside [0, 1]. "
                "This would violate energy conservation."
            )

    if fuzz < 0.0 or fuzz > 1.0:
        raise ValueError(
            f"Fuzz = {fuzz} is outside [0, 1]. "
            "Fuzz must be between 0 (perfect mirror) and 1 (maximum fuzz)."
        )

    idx = num_metal_materials[None]
    if idx >= MAX_METAL_MATERIALS:
        raise RuntimeError(
            f"Maximum number of metal materials ({MAX_METAL_MATERIALS}) exceeded"
        )

    metal_albedos[idx] = vec3(albedo[0], albedo[1], albedo[2])
    metal_fuzzes[idx] = fuzz
    num_metal_materials[None] = idx + 1
    return idx


def get_metal_material_count() -> int:
    """Get the number of metal materials in the registry."""
    return int(num_metal_materials[None])


@ti.func
def get_metal_albedo(material_idx: ti.i32) -> vec3:
    """Get the albedo for a metal material by index."""
    return metal_albedos[material_idx]


@ti.func
def get_metal_fuzz(material_idx: ti.i32) -> ti.f32:
    """Get the fuzz factor for a metal material by index."""
    return metal_fuzzes[material_idx]
