"""Scene module: primitives, material tracking, light list and built-in scenes.

Components:
    intersection: Sphere/quad storage and the closest-hit scene query
    lights: The importance sampling light list and its direction density
    manager: Unified scene manager coordinating primitives, materials and lights
    cornell_box: The Cornell box scene
    random_spheres: The random spheres scene

Scene data lives in module-level Taichi fields (Structure-of-Arrays), filled
from Python before a render and read-only while the kernels run.
"""

from .cornell_box import (
    BOX_SIZE,
    CornellBoxParams,
    create_cornell_box_scene,
    get_cornell_box_bounds,
    get_light_quad_info,
)
from .intersection import (
    MAX_QUADS,
    MAX_SPHERES,
    SceneHitRecord,
    add_quad,
    add_sphere,
    clear_scene,
    get_quad_count,
    get_sphere_count,
    intersect_scene,
)
from .lights import (
    MAX_LIGHT_QUADS,
    MAX_LIGHT_SPHERES,
    add_light_quad,
    add_light_sphere,
    clear_lights,
    get_light_count,
    lights_pdf_value,
    lights_random_direction,
)
from .manager import (
    MAX_MATERIALS,
    LightInfo,
    MaterialInfo,
    MaterialType,
    QuadInfo,
    SceneConfig,
    SceneManager,
    SphereInfo,
    box_quads,
    get_material_type,
    get_material_type_index,
    rotate_y,
)
from .random_spheres import create_random_spheres_scene

__all__ = [
    # Intersection module
    "SceneHitRecord",
    "add_sphere",
    "add_quad",
    "clear_scene",
    "get_sphere_count",
    "get_quad_count",
    "intersect_scene",
    "MAX_SPHERES",
    "MAX_QUADS",
    # Light list
    "add_light_quad",
    "add_light_sphere",
    "clear_lights",
    "get_light_count",
    "lights_pdf_value",
    "lights_random_direction",
    "MAX_LIGHT_QUADS",
    "MAX_LIGHT_SPHERES",
    # Manager module
    "SceneManager",
    "MaterialType",
    "MaterialInfo",
    "SphereInfo",
    "QuadInfo",
    "LightInfo",
    "SceneConfig",
    "MAX_MATERIALS",
    "get_material_type",
    "get_material_type_index",
    "rotate_y",
    "box_quads",
    # Built-in scenes
    "create_cornell_box_scene",
    "create_random_spheres_scene",
    "CornellBoxParams",
    "get_cornell_box_bounds",
    "get_light_quad_info",
    "BOX_SIZE",
]
