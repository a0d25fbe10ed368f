"""Random spheres scene: a field of small spheres around three large ones.

The scene holds a large ground sphere, a grid of small spheres with randomly
chosen materials (80% Lambertian, 15% metal, 5% glass) and three large
spheres: glass in the middle, Lambertian brown on the left and polished metal
on the right. The camera uses a defocus blur focused 10 units away and the
background is a light sky blue. The glass sphere is the only entry of the
light list.

Sphere placement and material choice use a NumPy generator, so a seed fixes
the scene layout independently of the Taichi RNG used while rendering.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from mistrace.scene.random_spheres import create_random_spheres_scene
    >>> scene, camera, background = create_random_spheres_scene(seed=7)
    >>> background
    (0.7, 0.8, 1.0)
"""

import numpy as np

from mistrace.camera.thin_lens import ThinLensCamera
from mistrace.scene.manager import SceneManager

Vec3Tuple = tuple[float, float, float]

BACKGROUND = (0.7, 0.8, 1.0)
ASPECT_RATIO = 16.0 / 9.0

# Small spheres are placed on a (2 * GRID_EXTENT)^2 grid of unit cells
GRID_EXTENT = 11
SMALL_RADIUS = 0.2

# Keep small spheres from overlapping the metal sphere
CLEARANCE_POINT = np.array([4.0, 0.2, 0.0])
CLEARANCE_DISTANCE = 0.9

GLASS_CENTER = (0.0, 1.0, 0.0)
LARGE_RADIUS = 1.0


def _triple(values: np.ndarray) -> Vec3Tuple:
    return (float(values[0]), float(values[1]), float(values[2]))


def create_random_spheres_scene(
    seed: int | None = None,
    grid_extent: int = GRID_EXTENT,
    motion_blur: bool = False,
) -> tuple[SceneManager, ThinLensCamera, Vec3Tuple]:
    """Create the random spheres scene.

    Args:
        seed: Seed of the layout generator. None picks a fresh layout.
        grid_extent: Small spheres are placed for a, b in
            [-grid_extent, grid_extent). 0 leaves only the large spheres.
        motion_blur: If True, the Lambertian small spheres bounce upward by
            up to 0.5 units over the shutter interval.

    Returns:
        A tuple of (SceneManager, ThinLensCamera, background).
    """
    rng = np.random.default_rng(seed)
    scene = SceneManager()

    ground = scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5))
    scene.add_sphere((0.0, -1000.0, 0.0), 1000.0, ground)

    for a in range(-grid_extent, grid_extent):
        for b in range(-grid_extent, grid_extent):
            choose_mat = rng.random()
            center = np.array([a + 0.9 * rng.random(), SMALL_RADIUS, b + 0.9 * rng.random()])

            if np.linalg.norm(center - CLEARANCE_POINT) <= CLEARANCE_DISTANCE:
                continue

            if choose_mat < 0.8:
                albedo = rng.random(3) * rng.random(3)
                material = scene.add_lambertian_material(albedo=_triple(albedo))
                if motion_blur:
                    center1 = center + np.array([0.0, rng.uniform(0.0, 0.5), 0.0])
                    scene.add_moving_sphere(
                        _triple(center), _triple(center1), SMALL_RADIUS, material
                    )
                    continue
            elif choose_mat < 0.95:
                albedo = rng.uniform(0.5, 1.0, 3)
                fuzz = rng.uniform(0.0, 0.5)
                material = scene.add_metal_material(albedo=_triple(albedo), fuzz=float(fuzz))
            else:
                material = scene.add_dielectric_material(ior=1.5)

            scene.add_sphere(_triple(center), SMALL_RADIUS, material)

    glass = scene.add_dielectric_material(ior=1.5)
    scene.add_sphere(GLASS_CENTER, LARGE_RADIUS, glass)

    brown = scene.add_lambertian_material(albedo=(0.4, 0.2, 0.1))
    scene.add_sphere((-4.0, 1.0, 0.0), LARGE_RADIUS, brown)

    polished = scene.add_metal_material(albedo=(0.7, 0.6, 0.5), fuzz=0.0)
    scene.add_sphere((4.0, 1.0, 0.0), LARGE_RADIUS, polished)

    scene.add_light_sphere(GLASS_CENTER, LARGE_RADIUS)

    camera = ThinLensCamera(
        lookfrom=(13.0, 2.0, 3.0),
        lookat=(0.0, 0.0, 0.0),
        vup=(0.0, 1.0, 0.0),
        vfov=20.0,
        defocus_angle=0.6,
        focus_dist=10.0,
    )

    return scene, camera, BACKGROUND
