"""Geometry module for shape primitives.

This module provides the geometric primitives the scene is built from:

Components:
    sphere: Sphere primitive, shared HitRecord, sphere-light sampling
    quad: Parallelogram primitive and area-light sampling

All intersection routines are implemented as Taichi functions (@ti.func)
called from the scene's linear intersection scan. Each primitive that can
act as a light also exposes a solid-angle density and a direction sampler
used by the light importance distribution.

Ray-object intersection follows the pattern:
    rec = hit_shape(ray_origin, ray_direction, shape, t_min, t_max)
"""

from .quad import (
    Quad,
    hit_quad,
    pdf_value_quad,
    quad_area,
    quad_normal,
    random_toward_quad,
)
from .sphere import (
    HitRecord,
    Sphere,
    hit_sphere,
    pdf_value_sphere,
    random_toward_sphere,
    sphere_uv,
)

__all__ = [
    "Sphere",
    "HitRecord",
    "hit_sphere",
    "sphere_uv",
    "pdf_value_sphere",
    "random_toward_sphere",
    "Quad",
    "hit_quad",
    "quad_area",
    "quad_normal",
    "pdf_value_quad",
    "random_toward_quad",
]
