"""Monte Carlo renderer with mixture importance sampling and denoising.

This package renders scenes with a recursive radiance estimator written in
Taichi, sampling each bounce from a fixed 50/50 mixture of light-directed and
material-directed distributions, and optionally denoises the result with one
of three edge-aware filters.

Subpackages:
    core: Rays, direction densities, the mixture, estimator and renderer
    camera: Thin-lens camera rig with stratified pixel sampling
    geometry: Sphere and quad primitives
    materials: Lambertian, metal, dielectric and diffuse light
    scene: Scene storage, light list, scene manager and built-in scenes
    denoise: Bilateral, median and threshold filters
    preview: PNG/PPM output and matplotlib preview

Taichi fields are allocated when the submodules are imported, so call
``ti.init`` before importing anything below this package.
"""

__version__ = "0.1.0"
