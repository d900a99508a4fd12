"""Pytest configuration for lumen tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts.
    """
    from src.lumen.core.runtime import init_taichi

    init_taichi("cpu")
    yield
    # Note: We don't call ti.reset() here as it can cause issues
    # with subsequent tests if any cleanup happens after


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Clear scene data before each test.

    This ensures tests are isolated from each other.
    """
    # Import here to avoid circular imports and ensure Taichi is initialized
    from src.lumen.camera.thin_lens import clear_camera
    from src.lumen.core.integrator import reset_render_target, set_background
    from src.lumen.materials.dielectric import clear_dielectric_materials
    from src.lumen.materials.diffuse_light import clear_diffuse_light_materials
    from src.lumen.materials.lambertian import clear_lambertian_materials
    from src.lumen.materials.metal import clear_metal_materials
    from src.lumen.materials.texture import clear_textures
    from src.lumen.scene.intersection import clear_scene
    from src.lumen.scene.manager import _clear_material_tracking

    def _clear_all():
        clear_scene()
        clear_textures()
        clear_lambertian_materials()
        clear_metal_materials()
        clear_dielectric_materials()
        clear_diffuse_light_materials()
        _clear_material_tracking()
        clear_camera()
        reset_render_target()
        set_background("sky")

    # Clear everything before test
    _clear_all()

    yield

    # Clear everything after test
    _clear_all()
