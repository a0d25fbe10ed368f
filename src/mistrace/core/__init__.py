"""Core rendering module.

This module contains the fundamental building blocks of the estimator:

Components:
    ray: Time-stamped ray, vector helpers and random direction samplers
    pdf: Material-side direction densities (cosine lobe, uniform sphere)
    mixture: Fixed 50/50 mixture of light and material sampling
    integrator: Recursive radiance estimator
    renderer: Stratified per-pixel accumulation into a pixel buffer

All compute-intensive operations use Taichi kernels.
"""

from .ray import (
    Ray,
    build_onb_from_normal,
    length_squared,
    local_to_world,
    make_ray,
    near_zero,
    random_cosine_direction,
    random_in_unit_disk,
    random_in_unit_sphere,
    random_to_sphere,
    random_unit_vector,
    ray_at,
    reflect,
    refract,
    schlick_fresnel,
    vec3,
)

# Note: mixture, integrator and renderer are NOT imported here because they
# allocate scene fields on import. Import them directly, e.g.
#   from mistrace.core.renderer import Renderer

__all__ = [
    "Ray",
    "ray_at",
    "make_ray",
    "vec3",
    "length_squared",
    "reflect",
    "refract",
    "schlick_fresnel",
    "near_zero",
    "random_in_unit_sphere",
    "random_unit_vector",
    "random_in_unit_disk",
    "random_cosine_direction",
    "random_to_sphere",
    "build_onb_from_normal",
    "local_to_world",
]
