"""Diffuse area light material.

Emitters never scatter: every path that reaches one ends there, picking up
the light's texture colour. Colours above 1 are allowed and make the light
brighter than a white diffuse surface under a white sky.
"""

import taichi as ti
import taichi.math as tm

from src.lumen.materials.texture import get_texture_count, texture_value

vec3 = tm.vec3

MAX_DIFFUSE_LIGHT_MATERIALS = 256

diffuse_light_texture_ids = ti.field(dtype=ti.i32, shape=MAX_DIFFUSE_LIGHT_MATERIALS)
num_diffuse_light_materials = ti.field(dtype=ti.i32, shape=())


def clear_diffuse_light_materials() -> None:
    """Clear all diffuse light materials."""
    num_diffuse_light_materials[None] = 0


def add_diffuse_light_material(texture_id: int) -> int:
    """Add a diffuse light emitting the given texture.

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If texture_id is not a registered texture.
    """
    if not 0 <= texture_id < get_texture_count():
        raise ValueError(f"Invalid texture_id: {texture_id}")

    idx = num_diffuse_light_materials[None]
    if idx >= MAX_DIFFUSE_LIGHT_MATERIALS:
        raise RuntimeError(
            f"Maximum number of diffuse light materials ({MAX_DIFFUSE_LIGHT_MATERIALS}) exceeded"
        )

    diffuse_light_texture_ids[idx] = texture_id
    num_diffuse_light_materials[None] = idx + 1
    return idx


def get_diffuse_light_material_count() -> int:
    """Get the number of diffuse light materials in the registry."""
    return int(num_diffuse_light_materials[None])


@ti.func
def emit_diffuse_light_by_id(material_idx: ti.i32, u: ti.f32, v: ti.f32, point: vec3) -> vec3:
    """Radiance emitted by the light stored at material_idx."""
    return texture_value(diffuse_light_texture_ids[material_idx], u, v, point)
