"""Cornell box scene configuration.

This module provides a factory function to create the Cornell box scene,
a standard test scene used in computer graphics for evaluating global
illumination algorithms.

The Cornell box consists of:
- 5 walls forming an open box (left, right, back, floor, ceiling)
- Red and green side walls, white back wall, floor and ceiling
- Area light on the ceiling (emissive quad)
- A tall white box, rotated 15 degrees about +y
- A glass sphere

The box spans 0 to 555 in each dimension, with the camera positioned outside
looking in through the open front. The importance sampling light list holds
the ceiling light and the glass sphere, so both the light and the caustic
through the sphere are sampled directly.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from mistrace.scene.cornell_box import create_cornell_box_scene
    >>>
    >>> scene, camera, background = create_cornell_box_scene()
    >>> scene.get_quad_count(), scene.get_sphere_count(), scene.get_light_count()
    (12, 1, 2)
"""

from dataclasses import dataclass

from mistrace.camera.thin_lens import ThinLensCamera
from mistrace.scene.manager import SceneManager

Vec3Tuple = tuple[float, float, float]

# =============================================================================
# Cornell Box Parameters
# =============================================================================


@dataclass
class CornellBoxParams:
    """Parameters for configuring a Cornell box scene.

    All parameters have defaults matching the classic configuration.

    Attributes:
        light_intensity: Scalar multiplier of the light color.
        light_color: RGB color of the light.
        red_wall_color: RGB albedo of the wall at x = 0.
        green_wall_color: RGB albedo of the wall at x = box_size.
        white_color: RGB albedo of the back wall, floor, ceiling and box.
        glass_ior: Index of refraction of the sphere.

    Example:
        >>> params = CornellBoxParams(light_intensity=7.0)
        >>> scene, camera, background = create_cornell_box_scene(params)
    """

    light_intensity: float = 15.0
    light_color: Vec3Tuple = (1.0, 1.0, 1.0)
    red_wall_color: Vec3Tuple = (0.65, 0.05, 0.05)
    green_wall_color: Vec3Tuple = (0.12, 0.45, 0.15)
    white_color: Vec3Tuple = (0.73, 0.73, 0.73)
    glass_ior: float = 1.5


# =============================================================================
# Cornell Box Constants
# =============================================================================

BOX_SIZE = 555.0

BACKGROUND = (0.0, 0.0, 0.0)
ASPECT_RATIO = 1.0

# Ceiling light: 130 x 105, one unit below the ceiling
LIGHT_CORNER = (213.0, 554.0, 227.0)
LIGHT_EDGE_U = (130.0, 0.0, 0.0)
LIGHT_EDGE_V = (0.0, 0.0, 105.0)

# Tall box, built at the origin then rotated and moved into place
BOX_MIN = (0.0, 0.0, 0.0)
BOX_MAX = (165.0, 330.0, 165.0)
BOX_ROTATION_DEGREES = 15.0
BOX_OFFSET = (265.0, 0.0, 295.0)

GLASS_SPHERE_CENTER = (190.0, 90.0, 190.0)
GLASS_SPHERE_RADIUS = 90.0


# =============================================================================
# Cornell Box Factory
# =============================================================================


def create_cornell_box_scene(
    params: CornellBoxParams | None = None,
) -> tuple[SceneManager, ThinLensCamera, Vec3Tuple]:
    """Create the Cornell box scene.

    The coordinate system places the box origin at (0, 0, 0) with:
    - X-axis: 0 to 555, the green wall at x = 555 (screen left)
    - Y-axis: floor to ceiling
    - Z-axis: front to back, the camera looks toward +Z

    Args:
        params: Optional CornellBoxParams for customizing colors and the
            light. If None, uses default CornellBoxParams().

    Returns:
        A tuple of (SceneManager, ThinLensCamera, background).
    """
    if params is None:
        params = CornellBoxParams()

    scene = SceneManager()

    # =========================================================================
    # Materials
    # =========================================================================

    red = scene.add_lambertian_material(albedo=params.red_wall_color)
    white = scene.add_lambertian_material(albedo=params.white_color)
    green = scene.add_lambertian_material(albedo=params.green_wall_color)
    emission = (
        params.light_color[0] * params.light_intensity,
        params.light_color[1] * params.light_intensity,
        params.light_color[2] * params.light_intensity,
    )
    light = scene.add_diffuse_light_material(emission=emission)
    glass = scene.add_dielectric_material(ior=params.glass_ior)

    # =========================================================================
    # Walls
    # =========================================================================

    s = BOX_SIZE
    scene.add_quad((s, 0.0, 0.0), (0.0, 0.0, s), (0.0, s, 0.0), green)
    scene.add_quad((0.0, 0.0, s), (0.0, 0.0, -s), (0.0, s, 0.0), red)
    scene.add_quad((0.0, s, 0.0), (s, 0.0, 0.0), (0.0, 0.0, s), white)
    scene.add_quad((0.0, 0.0, s), (s, 0.0, 0.0), (0.0, 0.0, -s), white)
    scene.add_quad((s, 0.0, s), (-s, 0.0, 0.0), (0.0, s, 0.0), white)

    # Ceiling light faces down: cross(edge_u, edge_v) points toward -y
    scene.add_quad(LIGHT_CORNER, LIGHT_EDGE_U, LIGHT_EDGE_V, light)

    # =========================================================================
    # Contents
    # =========================================================================

    scene.add_box(
        BOX_MIN,
        BOX_MAX,
        white,
        rotate_y_degrees=BOX_ROTATION_DEGREES,
        translate=BOX_OFFSET,
    )
    scene.add_sphere(GLASS_SPHERE_CENTER, GLASS_SPHERE_RADIUS, glass)

    # =========================================================================
    # Light List
    # =========================================================================

    light_info = get_light_quad_info()
    scene.add_light_quad(light_info["corner"], light_info["edge_u"], light_info["edge_v"])
    scene.add_light_sphere(GLASS_SPHERE_CENTER, GLASS_SPHERE_RADIUS)

    camera = ThinLensCamera(
        lookfrom=(278.0, 278.0, -800.0),
        lookat=(278.0, 278.0, 0.0),
        vup=(0.0, 1.0, 0.0),
        vfov=40.0,
        defocus_angle=0.0,
        focus_dist=10.0,
    )

    return scene, camera, BACKGROUND


def get_light_quad_info() -> dict[str, Vec3Tuple]:
    """Get the light-list quad of the ceiling light.

    It covers the same rectangle as the emissive quad, described from the
    opposite corner so its edges point back toward LIGHT_CORNER.

    Returns:
        A dictionary with keys 'corner', 'edge_u', 'edge_v' and 'center'.
    """
    corner = (
        LIGHT_CORNER[0] + LIGHT_EDGE_U[0],
        LIGHT_CORNER[1],
        LIGHT_CORNER[2] + LIGHT_EDGE_V[2],
    )
    return {
        "corner": corner,
        "edge_u": (-LIGHT_EDGE_U[0], 0.0, 0.0),
        "edge_v": (0.0, 0.0, -LIGHT_EDGE_V[2]),
        "center": (
            LIGHT_CORNER[0] + LIGHT_EDGE_U[0] / 2.0,
            LIGHT_CORNER[1],
            LIGHT_CORNER[2] + LIGHT_EDGE_V[2] / 2.0,
        ),
    }


def get_cornell_box_bounds(box_size: float = BOX_SIZE) -> dict[str, Vec3Tuple]:
    """Get the bounding box of the Cornell box scene.

    Args:
        box_size: The size of the box. Default is 555.0.

    Returns:
        A dictionary with keys 'min', 'max', 'center' and 'size'.
    """
    return {
        "min": (0.0, 0.0, 0.0),
        "max": (box_size, box_size, box_size),
        "center": (box_size / 2.0, box_size / 2.0, box_size / 2.0),
        "size": (box_size, box_size, box_size),
    }
