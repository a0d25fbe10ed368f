"""Pytest configuration for mistrace tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Clear primitives, materials and lights before and after each test."""
    # Import here so the Taichi fields are created after ti.init()
    from mistrace.core.integrator import set_background
    from mistrace.materials.dielectric import clear_dielectric_materials
    from mistrace.materials.diffuse_light import clear_diffuse_light_materials
    from mistrace.materials.lambertian import clear_lambertian_materials
    from mistrace.materials.metal import clear_metal_materials
    from mistrace.scene.intersection import clear_scene
    from mistrace.scene.lights import clear_lights
    from mistrace.scene.manager import _clear_material_tracking

    def _clear_all():
        clear_scene()
        clear_lights()
        clear_lambertian_materials()
        clear_metal_materials()
        clear_dielectric_materials()
        clear_diffuse_light_materials()
        _clear_material_tracking()
        set_background((0.0, 0.0, 0.0))

    _clear_all()
    yield
    _clear_all()
