"""Scatter record returned by every material's scatter function.

A material answers a scatter query in one of three ways:

    did_scatter == 0:              the path ends here (absorbed or an emitter)
    did_scatter == 1, skip_pdf == 1: follow ``skip_pdf_ray`` deterministically
                                     (specular materials)
    did_scatter == 1, skip_pdf == 0: sample the next direction from the
                                     light/material mixture, using ``pdf`` as
                                     the material component
"""

import taichi as ti
import taichi.math as tm

from mistrace.core.pdf import DirectionPdf, make_uniform_sphere_pdf
from mistrace.core.ray import Ray

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.dataclass
class ScatterRecord:
    """Outcome of a material scatter query.

    Attributes:
        did_scatter: 1 if the path continues, 0 if it terminates.
        attenuation: Color multiplier applied to the continued radiance.
        skip_pdf: 1 if the continuation is the fixed ``skip_pdf_ray``.
        skip_pdf_ray: The specular continuation ray (valid if skip_pdf == 1).
        pdf: The material's direction distribution (valid if skip_pdf == 0).
    """

    did_scatter: ti.i32
    attenuation: vec3
    skip_pdf: ti.i32
    skip_pdf_ray: Ray
    pdf: DirectionPdf


@ti.func
def make_absorbed_record() -> ScatterRecord:
    """Create a record for a path that does not continue."""
    return ScatterRecord(
        did_scatter=0,
        attenuation=vec3(0.0, 0.0, 0.0),
        skip_pdf=0,
        skip_pdf_ray=Ray(origin=vec3(0.0, 0.0, 0.0), direction=vec3(0.0, 0.0, 0.0), time=0.0),
        pdf=make_uniform_sphere_pdf(),
    )


@ti.func
def make_specular_record(attenuation: vec3, ray: Ray) -> ScatterRecord:
    """Create a record that continues along a fixed ray."""
    return ScatterRecord(
        did_scatter=1,
        attenuation=attenuation,
        skip_pdf=1,
        skip_pdf_ray=ray,
        pdf=make_uniform_sphere_pdf(),
    )


@ti.func
def make_pdf_record(attenuation: vec3, pdf: DirectionPdf) -> ScatterRecord:
    """Create a record that continues by sampling the mixture."""
    return ScatterRecord(
        did_scatter=1,
        attenuation=attenuation,
        skip_pdf=0,
        skip_pdf_ray=Ray(origin=vec3(0.0, 0.0, 0.0), direction=vec3(0.0, 0.0, 0.0), time=0.0),
        pdf=pdf,
    )
