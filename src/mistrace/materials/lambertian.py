"""Lambertian (ideal diffuse) material implementation.

The Lambertian BRDF is constant, f_r = albedo / pi, and its scattering density
with respect to solid angle is

    scattering_pdf(w) = max(0, cos(theta)) / pi

where theta is the angle between w and the surface normal. A Lambertian
surface does not pick its own outgoing direction: it returns a cosine-lobe
DirectionPdf that the estimator mixes 50/50 with the light distribution, and
the estimator divides by the mixture density afterwards.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from mistrace.materials.lambertian import (
    ...     scatter_lambertian, scattering_pdf_lambertian
    ... )
    >>> # Use within a Taichi kernel:
    >>> # srec = scatter_lambertian(albedo, normal)
"""

import taichi as ti
import taichi.math as tm

from mistrace.core.pdf import make_cosine_pdf
from mistrace.materials.scatter_record import ScatterRecord, make_pdf_record

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.func
def scattering_pdf_lambertian(normal: vec3, scattered_direction: vec3) -> ti.f32:
    """Compute the Lambertian scattering density for a direction.

    Args:
        normal: The surface normal (should be normalized).
        scattered_direction: The outgoing direction (any length).

    Returns:
        cos(theta) / pi, or 0 if the direction is below the surface.
    """
    cos_theta = tm.dot(normal, tm.normalize(scattered_direction))
    pdf = 0.0
    if cos_theta > 0.0:
        pdf = cos_theta / tm.pi
    return pdf


@ti.func
def scatter_lambertian(albedo: vec3, normal: vec3) -> ScatterRecord:
    """Scatter off a Lambertian surface.

    Args:
        albedo: The diffuse reflectance color.
        normal: The surface normal at the hit point, facing the incoming ray.

    Returns:
        A ScatterRecord with attenuation = albedo and a cosine-lobe pdf
        around the normal.
    """
    return make_pdf_record(albedo, make_cosine_pdf(normal))


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

# Maximum number of Lambertian materials in the scene
MAX_LAMBERTIAN_MATERIALS = 512

# Storage for Lambertian material properties
lambertian_albedos = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LAMBERTIAN_MATERIALS)
num_lambertian_materials = ti.field(dtype=ti.i32, shape=())


def clear_lambertian_materials() -> None:
    """Clear all Lambertian materials.

    Resets the material count to zero. Existing data in the field will be
    overwritten when new materials are added.
    """
    num_lambertian_materials[None] = 0


def add_lambertian_material(albedo: tuple[float, float, float]) -> int:
    """Add a Lambertian material to the material registry.

    Args:
        albedo: The diffuse reflectance color as (R, G, B) tuple.
            Each component should be in [0, 1] for energy conservation.

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If any albedo component is outside [0, 1].
    """
    for i, component in enumerate(albedo):
        if component < 0.0 or component > 1.0:
            raise ValueError(
                f"Albedo component {i} = {component} is outside [0, 1]. "
                "This would violate energy conservation."
            )

    idx = num_lambertian_materials[None]
    if idx >= MAX_LAMBERTIAN_MATERIALS:
        raise RuntimeError(
            f"Maximum number of Lambertian materials ({MAX_LAMBERTIAN_MATERIALS}) exceeded"
        )

    lambertian_albedos[idx] = vec3(albedo[0], albedo[1], albedo[2])
    num_lambertian_materials[None] = idx + 1
    return idx


def get_lambertian_material_count() -> int:
    """Get the number of Lambertian materials in the registry."""
    return int(num_lambertian_materials[None])


@ti.func
def get_lambertian_albedo(material_idx: ti.i32) -> vec3:
    """Get the albedo for a Lambertian material by index."""
    return lambertian_albedos[material_idx]
