"""Diffuse area light material.

An emitter never scatters: the estimator adds its emission and stops. Light
leaves only the front face of the surface, so the back of a ceiling quad
stays dark.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from mistrace.materials.diffuse_light import add_diffuse_light_material
    >>> light_idx = add_diffuse_light_material((15.0, 15.0, 15.0))
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.func
def emitted_diffuse_light(emission: vec3, front_face: ti.i32) -> vec3:
    """Radiance leaving a diffuse light toward the viewer.

    Args:
        emission: The emitter's radiance.
        front_face: 1 if the ray hit the emitting side.

    Returns:
        ``emission`` on the front face, black on the back face.
    """
    result = vec3(0.0, 0.0, 0.0)
    if front_face == 1:
        result = emission
    return result


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

MAX_DIFFUSE_LIGHT_MATERIALS = 64

diffuse_light_emissions = ti.Vector.field(3, dtype=ti.f32, shape=MAX_DIFFUSE_LIGHT_MATERIALS)
num_diffuse_light_materials = ti.field(dtype=ti.i32, shape=())


def clear_diffuse_light_materials() -> None:
    """Clear all diffuse light materials."""
    num_diffuse_light_materials[None] = 0


def add_diffuse_light_material(emission: tuple[float, float, float]) -> int:
    """Add a diffuse light material to the material registry.

    Args:
        emission: The emitted radiance as (R, G, B). Components must be
            non-negative; values above 1 are expected for lights.

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If any emission component is negative.
    """
    for i, component in enumerate(emission):
        if component < 0.0:
            raise ValueError(f"Emission component {i} = {component} is negative.")

    idx = num_diffuse_light_materials[None]
    if idx >= MAX_DIFFUSE_LIGHT_MATERIALS:
        raise RuntimeError(
            f"Maximum number of diffuse light materials ({MAX_DIFFUSE_LIGHT_MATERIALS}) exceeded"
        )

    diffuse_light_emissions[idx] = vec3(emission[0], emission[1], emission[2])
    num_diffuse_light_materials[None] = idx + 1
    return idx


def get_diffuse_light_material_count() -> int:
    """Get the number of diffuse light materials in the registry."""
    return int(num_diffuse_light_materials[None])


@ti.func
def get_diffuse_light_emission(material_idx: ti.i32) -> vec3:
    """Get the emitted radiance for a diffuse light material by index."""
    return diffuse_light_emissions[material_idx]
