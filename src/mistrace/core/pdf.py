"""Direction probability densities used by materials.

A material that scatters diffusely hands the estimator a ``DirectionPdf``: a
small tagged variant describing the distribution it would like directions to
be drawn from. Two kinds exist:

    PDF_COSINE:          pdf(w) = max(0, cos(theta)) / pi around ``axis``
    PDF_UNIFORM_SPHERE:  pdf(w) = 1 / (4 pi)

Both can be evaluated (``pdf_value``) and sampled (``pdf_generate``). The
light-side distribution lives in ``mistrace.scene.lights`` and the mixture of
the two in ``mistrace.core.mixture``.
"""

import taichi as ti
import taichi.math as tm

from mistrace.core.ray import (
    build_onb_from_normal,
    local_to_world,
    random_cosine_direction,
    random_unit_vector,
)

# Type alias for 3D vectors
vec3 = tm.vec3

PDF_COSINE = 0
PDF_UNIFORM_SPHERE = 1

UNIFORM_SPHERE_DENSITY = 1.0 / (4.0 * 3.141592653589793)


@ti.dataclass
class DirectionPdf:
    """A direction distribution over the unit sphere.

    Attributes:
        kind: One of PDF_COSINE or PDF_UNIFORM_SPHERE.
        axis: Unit lobe axis for PDF_COSINE (the surface normal). Ignored by
            PDF_UNIFORM_SPHERE.
    """

    kind: ti.i32
    axis: vec3


@ti.func
def make_cosine_pdf(normal: vec3) -> DirectionPdf:
    """Create a cosine-lobe distribution around a surface normal."""
    return DirectionPdf(kind=PDF_COSINE, axis=normal)


@ti.func
def make_uniform_sphere_pdf() -> DirectionPdf:
    """Create the uniform distribution over all directions."""
    return DirectionPdf(kind=PDF_UNIFORM_SPHERE, axis=vec3(0.0, 0.0, 1.0))


@ti.func
def cosine_pdf_value(axis: vec3, direction: vec3) -> ti.f32:
    """Evaluate the cosine-lobe density.

    Args:
        axis: The lobe axis (unit length).
        direction: The query direction (any length).

    Returns:
        cos(theta) / pi, or 0 when the direction is below the horizon.
    """
    cosine_theta = tm.dot(tm.normalize(direction), axis)
    return tm.max(0.0, cosine_theta / tm.pi)


@ti.func
def cosine_pdf_generate(axis: vec3) -> vec3:
    """Draw a cosine-weighted direction around ``axis``."""
    tangent, bitangent, n = build_onb_from_normal(axis)
    return local_to_world(random_cosine_direction(), tangent, bitangent, n)


@ti.func
def pdf_value(pdf: DirectionPdf, direction: vec3) -> ti.f32:
    """Evaluate a DirectionPdf at ``direction``.

    Args:
        pdf: The distribution.
        direction: The query direction.

    Returns:
        The density with respect to solid angle.
    """
    value = UNIFORM_SPHERE_DENSITY
    if pdf.kind == PDF_COSINE:
        value = cosine_pdf_value(pdf.axis, direction)
    return value


@ti.func
def pdf_generate(pdf: DirectionPdf) -> vec3:
    """Draw a direction from a DirectionPdf."""
    direction = vec3(0.0, 0.0, 0.0)
    if pdf.kind == PDF_COSINE:
        direction = cosine_pdf_generate(pdf.axis)
    else:
        direction = random_unit_vector()
    return direction
