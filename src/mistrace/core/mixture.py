"""Fixed 50/50 mixture of light and material direction sampling.

At every diffuse bounce the estimator draws the next direction from

    p(w) = 0.5 * p_lights(w) + 0.5 * p_material(w)

and divides by that same mixture density. Sampling toward lights cuts noise
from small bright emitters; sampling the material lobe keeps the estimator
unbiased where the light distribution has no support (for example when the
lights are occluded or absent). The weight is a constant, not a setting.
"""

import taichi as ti
import taichi.math as tm

from mistrace.core.pdf import DirectionPdf, pdf_generate, pdf_value
from mistrace.scene.lights import lights_pdf_value, lights_random_direction

# Type alias for 3D vectors
vec3 = tm.vec3

# Probability of drawing from the light distribution
MIXTURE_LIGHT_WEIGHT = 0.5


@ti.func
def mixture_pdf_value(origin: vec3, material_pdf: DirectionPdf, direction: vec3) -> ti.f32:
    """Density of the mixture at ``direction``.

    Args:
        origin: The shading point (anchor of the light distribution).
        material_pdf: The material's direction distribution.
        direction: The query direction.

    Returns:
        0.5 * lights density + 0.5 * material density. Either component may
        be zero.
    """
    light_value = lights_pdf_value(origin, direction)
    material_value = pdf_value(material_pdf, direction)
    return MIXTURE_LIGHT_WEIGHT * light_value + (1.0 - MIXTURE_LIGHT_WEIGHT) * material_value


@ti.func
def mixture_pdf_generate(origin: vec3, material_pdf: DirectionPdf) -> vec3:
    """Draw a direction from the mixture.

    Args:
        origin: The shading point.
        material_pdf: The material's direction distribution.

    Returns:
        A direction from the light distribution with probability 0.5,
        otherwise from the material distribution.
    """
    direction = vec3(0.0, 0.0, 0.0)
    if ti.random(ti.f32) < MIXTURE_LIGHT_WEIGHT:
        direction = lights_random_direction(origin)
    else:
        direction = pdf_generate(material_pdf)
    return direction
