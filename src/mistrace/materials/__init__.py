"""Materials module.

Components:
    scatter_record: The ScatterRecord returned by every scatter function
    lambertian: Ideal diffuse reflection, sampled through the mixture
    metal: Fuzzy mirror reflection (skip-pdf)
    dielectric: Glass-like reflection/refraction (skip-pdf)
    diffuse_light: Front-face area emitter that never scatters

Each material kind keeps its parameters in its own Taichi field registry;
the scene manager maps a unified material ID to (kind, index).
"""

from .dielectric import (
    add_dielectric_material,
    clear_dielectric_materials,
    get_dielectric_ior,
    get_dielectric_material_count,
    scatter_dielectric,
    will_reflect,
)
from .diffuse_light import (
    add_diffuse_light_material,
    clear_diffuse_light_materials,
    emitted_diffuse_light,
    get_diffuse_light_emission,
    get_diffuse_light_material_count,
)
from .lambertian import (
    add_lambertian_material,
    clear_lambertian_materials,
    get_lambertian_albedo,
    get_lambertian_material_count,
    scatter_lambertian,
    scattering_pdf_lambertian,
)
from .metal import (
    add_metal_material,
    clear_metal_materials,
    get_metal_albedo,
    get_metal_fuzz,
    get_metal_material_count,
    scatter_metal,
)
from .scatter_record import (
    ScatterRecord,
    make_absorbed_record,
    make_pdf_record,
    make_specular_record,
)

__all__ = [
    # Scatter record
    "ScatterRecord",
    "make_absorbed_record",
    "make_pdf_record",
    "make_specular_record",
    # Lambertian
    "scatter_lambertian",
    "scattering_pdf_lambertian",
    "add_lambertian_material",
    "clear_lambertian_materials",
    "get_lambertian_material_count",
    "get_lambertian_albedo",
    # Metal
    "scatter_metal",
    "add_metal_material",
    "clear_metal_materials",
    "get_metal_material_count",
    "get_metal_albedo",
    "get_metal_fuzz",
    # Dielectric
    "scatter_dielectric",
    "will_reflect",
    "add_dielectric_material",
    "clear_dielectric_materials",
    "get_dielectric_material_count",
    "get_dielectric_ior",
    # Diffuse light
    "emitted_diffuse_light",
    "add_diffuse_light_material",
    "clear_diffuse_light_materials",
    "get_diffuse_light_material_count",
    "get_diffuse_light_emission",
]
