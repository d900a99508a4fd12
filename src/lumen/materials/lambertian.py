"""Lambertian (ideal diffuse) material implementation.

Scattered directions are the surface normal plus a point drawn uniformly
inside the unit sphere. The resulting distribution favours directions near
the normal, a cheap approximation of cosine-weighted hemisphere sampling.
The attenuation is the material's texture evaluated at the hit point.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.lumen.materials.lambertian import add_lambertian_material
    >>> from src.lumen.materials.texture import add_constant_texture
    >>> idx = add_lambertian_material(add_constant_texture((0.8, 0.3, 0.3)))
    >>> # Inside a kernel:
    >>> # direction, attenuation, did_scatter = scatter_lambertian_by_id(idx, rec, stream)
"""

import taichi as ti
import taichi.math as tm

from src.lumen.core.ray import near_zero, random_in_unit_sphere
from src.lumen.geometry.sphere import HitRecord
from src.lumen.materials.texture import get_texture_count, texture_value

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.func
def scatter_lambertian(texture_id: ti.i32, rec: HitRecord, stream: ti.i32):
    """Sample a diffuse bounce.

    Args:
        texture_id: The albedo texture.
        rec: The hit being shaded.
        stream: The random stream owned by the calling worker.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter). Diffuse
        surfaces always scatter.
    """
    scattered_direction = rec.normal + random_in_unit_sphere(stream)

    # The random point can land almost exactly opposite the normal
    if near_zero(scattered_direction):
        scattered_direction = rec.normal

    attenuation = texture_value(texture_id, rec.u, rec.v, rec.point)
    return scattered_direction, attenuation, 1


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

# Maximum number of Lambertian materials in the scene
MAX_LAMBERTIAN_MATERIALS = 2048

# Texture id of each Lambertian material
lambertian_texture_ids = ti.field(dtype=ti.i32, shape=MAX_LAMBERTIAN_MATERIALS)
num_lambertian_materials = ti.field(dtype=ti.i32, shape=())


def clear_lambertian_materials() -> None:
    """Clear all Lambertian materials."""
    num_lambertian_materials[None] = 0


def add_lambertian_material(texture_id: int) -> int:
    """Add a Lambertian material to the material registry.

    Args:
        texture_id: The id of a registered texture giving the albedo.

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If texture_id is not a registered texture.
    """
    if not 0 <= texture_id < get_texture_count():
        raise ValueError(f"Invalid texture_id: {texture_id}")

    idx = num_lambertian_materials[None]
    if idx >= MAX_LAMBERTIAN_MATERIALS:
        raise RuntimeError(
            f"Maximum number of Lambertian materials ({MAX_LAMBERTIAN_MATERIALS}) exceeded"
        )

    lambertian_texture_ids[idx] = texture_id
    num_lambertian_materials[None] = idx + 1
    return idx


def get_lambertian_material_count() -> int:
    """Get the number of Lambertian materials in the registry."""
    return int(num_lambertian_materials[None])


@ti.func
def scatter_lambertian_by_id(material_idx: ti.i32, rec: HitRecord, stream: ti.i32):
    """Scatter off the Lambertian material stored at material_idx."""
    return scatter_lambertian(lambertian_texture_ids[material_idx], rec, stream)
