"""Recursive radiance estimator with mixture importance sampling.

The estimator computes, for a ray r and a remaining depth d:

    estimate(r, 0) = 0
    estimate(r, d) = background                       if r misses the scene
                   = Le                                if the surface does not scatter
                   = Le + attenuation * estimate(r', d - 1)
                                                       if the material is specular
                   = Le + attenuation * scattering_pdf(r, r')
                          * estimate(r', d - 1) / p_mix(r')
                                                       otherwise

where r' is drawn from the 50/50 light/material mixture and p_mix is the
mixture density. Because each level recurses exactly once, the recursion is
evaluated as a loop carrying the running product of the factors in front of
estimate(r', d - 1); iteration k of the loop is recursion level k, so the
result is the same as the recursive form and the loop runs at most d times.

A mixture density that is not strictly positive (zero, or NaN from a
degenerate direction) ends the path: the scattered term of that level
contributes zero, the emission already collected is kept.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu, random_seed=42)
    >>> from mistrace.core.integrator import estimate_radiance, set_background
    >>> set_background((0.7, 0.8, 1.0))
    >>> result = estimate_radiance((0, 0, 0), (0, 0, -1), depth=10)
    >>> result.color  # empty scene: the background
    (0.7..., 0.8..., 1.0)
"""

from dataclasses import dataclass

import taichi as ti
import taichi.math as tm

from mistrace.core.mixture import mixture_pdf_generate, mixture_pdf_value
from mistrace.core.ray import Ray, make_ray
from mistrace.materials.dielectric import get_dielectric_ior, scatter_dielectric
from mistrace.materials.diffuse_light import (
    emitted_diffuse_light,
    get_diffuse_light_emission,
)
from mistrace.materials.lambertian import (
    get_lambertian_albedo,
    scatter_lambertian,
    scattering_pdf_lambertian,
)
from mistrace.materials.metal import get_metal_albedo, get_metal_fuzz, scatter_metal
from mistrace.materials.scatter_record import ScatterRecord, make_absorbed_record
from mistrace.scene.intersection import SceneHitRecord, intersect_scene
from mistrace.scene.manager import (
    MaterialType,
    get_material_type,
    get_material_type_index,
)

# Type alias for 3D vectors
vec3 = tm.vec3

# =============================================================================
# Estimator Constants
# =============================================================================

# Intersection interval for every scene query; the lower bound avoids
# re-hitting the surface a secondary ray starts on
T_MIN = 0.001
T_MAX = tm.inf

# Mixture densities at or below this value end the path
PDF_EPSILON = 1e-12

# Default recursion bound
DEFAULT_MAX_DEPTH = 10

# =============================================================================
# Background
# =============================================================================

_background = ti.Vector.field(3, dtype=ti.f32, shape=())

# Result and intersection query count of the last estimate_radiance() call
_last_estimate = ti.Vector.field(3, dtype=ti.f32, shape=())
_last_scene_queries = ti.field(dtype=ti.i32, shape=())


def set_background(color: tuple[float, float, float]) -> None:
    """Set the radiance returned for rays that miss the scene."""
    _background[None] = [color[0], color[1], color[2]]


def get_background() -> tuple[float, float, float]:
    """Get the radiance returned for rays that miss the scene."""
    bg = _background[None]
    return (float(bg[0]), float(bg[1]), float(bg[2]))


# =============================================================================
# Material Dispatch
# =============================================================================


@ti.func
def _scatter(ray_in: Ray, rec: SceneHitRecord) -> ScatterRecord:
    """Dispatch a scatter query to the hit surface's material.

    Args:
        ray_in: The incoming ray.
        rec: The hit record.

    Returns:
        The material's ScatterRecord. Diffuse lights and unknown materials
        return an absorbed record.
    """
    mat_type = get_material_type(rec.material_id)
    type_index = get_material_type_index(rec.material_id)

    result = make_absorbed_record()

    if mat_type == int(MaterialType.LAMBERTIAN):
        result = scatter_lambertian(get_lambertian_albedo(type_index), rec.normal)

    elif mat_type == int(MaterialType.METAL):
        result = scatter_metal(
            get_metal_albedo(type_index),
            get_metal_fuzz(type_index),
            ray_in,
            rec.point,
            rec.normal,
        )

    elif mat_type == int(MaterialType.DIELECTRIC):
        result = scatter_dielectric(
            get_dielectric_ior(type_index), ray_in, rec.point, rec.normal, rec.front_face
        )

    return result


@ti.func
def _emitted(ray_in: Ray, rec: SceneHitRecord) -> vec3:
    """Radiance emitted by the hit surface toward the incoming ray."""
    mat_type = get_material_type(rec.material_id)
    emission = vec3(0.0, 0.0, 0.0)
    if mat_type == int(MaterialType.DIFFUSE_LIGHT):
        type_index = get_material_type_index(rec.material_id)
        emission = emitted_diffuse_light(get_diffuse_light_emission(type_index), rec.front_face)
    return emission


@ti.func
def _scattering_pdf(ray_in: Ray, rec: SceneHitRecord, scattered: Ray) -> ti.f32:
    """Scattering density of the hit material for the scattered ray.

    Only materials that sample through the mixture have a density; every
    other kind returns 0.
    """
    mat_type = get_material_type(rec.material_id)
    value = 0.0
    if mat_type == int(MaterialType.LAMBERTIAN):
        value = scattering_pdf_lambertian(rec.normal, scattered.direction)
    return value


# =============================================================================
# Estimator Core
# =============================================================================


@ti.func
def trace(ray: Ray, depth: ti.i32):
    """Estimate the radiance arriving along ``ray``.

    Args:
        ray: The query ray.
        depth: Remaining recursion levels. 0 or less returns black without
            querying the scene.

    Returns:
        A tuple (radiance, scene_queries) where scene_queries is the number
        of intersection queries made.
    """
    radiance = vec3(0.0, 0.0, 0.0)
    throughput = vec3(1.0, 1.0, 1.0)
    scene_queries = 0
    current = ray

    # Taichi has no break inside ti.func loops; inactive iterations are no-ops
    active = 1

    for _ in range(depth):
        if active == 1:
            rec = intersect_scene(current, T_MIN, T_MAX)
            scene_queries += 1

            if rec.hit == 0:
                radiance += throughput * _background[None]
                active = 0
            else:
                radiance += throughput * _emitted(current, rec)

                srec = _scatter(current, rec)

                if srec.did_scatter == 0:
                    active = 0
                elif srec.skip_pdf == 1:
                    throughput *= srec.attenuation
                    current = srec.skip_pdf_ray
                else:
                    direction = mixture_pdf_generate(rec.point, srec.pdf)
                    scattered = make_ray(rec.point, direction, current.time)
                    pdf_val = mixture_pdf_value(rec.point, srec.pdf, direction)

                    # NaN fails this comparison too
                    if not (pdf_val > PDF_EPSILON):
                        active = 0
                    else:
                        scattering_pdf = _scattering_pdf(current, rec, scattered)
                        throughput *= srec.attenuation * scattering_pdf / pdf_val
                        current = scattered

    return radiance, scene_queries


@ti.func
def ray_color(ray: Ray, depth: ti.i32) -> vec3:
    """Estimate the radiance arriving along ``ray`` (color only)."""
    radiance, _ = trace(ray, depth)
    return radiance


# =============================================================================
# Python Entry Point
# =============================================================================


@dataclass
class RadianceEstimate:
    """Result of a single estimator call from Python.

    Attributes:
        color: The estimated radiance (R, G, B).
        scene_queries: The number of intersection queries the call made.
    """

    color: tuple[float, float, float]
    scene_queries: int


@ti.kernel
def _estimate_kernel(
    origin: vec3,
    direction: vec3,
    time: ti.f32,
    depth: ti.i32,
) -> vec3:
    """Evaluate one estimator sample and record its query count."""
    # Single-iteration outer loop keeps the estimator's own loops serial
    for _ in range(1):
        radiance, queries = trace(make_ray(origin, direction, time), depth)
        _last_estimate[None] = radiance
        _last_scene_queries[None] = queries
    return _last_estimate[None]


def estimate_radiance(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    depth: int = DEFAULT_MAX_DEPTH,
    time: float = 0.0,
) -> RadianceEstimate:
    """Evaluate the estimator for a single ray against the current scene.

    This is a Python-callable entry point for testing and debugging. For
    images, use mistrace.core.renderer which evaluates all pixels in parallel.

    Args:
        origin: Ray origin.
        direction: Ray direction (any non-zero length).
        depth: Recursion bound.
        time: Ray time in [0, 1).

    Returns:
        The estimated radiance and the number of scene queries made.
    """
    color = _estimate_kernel(
        vec3(origin[0], origin[1], origin[2]),
        vec3(direction[0], direction[1], direction[2]),
        time,
        depth,
    )
    return RadianceEstimate(
        color=(float(color[0]), float(color[1]), float(color[2])),
        scene_queries=int(_last_scene_queries[None]),
    )
