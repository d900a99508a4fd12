"""Materials module: textures and scatter models.

Components:
    texture: Constant, checker and Perlin noise textures
    lambertian: Ideal diffuse reflection
    metal: Specular reflection with optional fuzz
    dielectric: Glass-like materials with refraction (Schlick Fresnel)
    diffuse_light: Area light emitter

Each material type keeps its parameters in its own registry of Taichi
fields. The scene manager maps unified material ids onto these registries.
Scatter functions return (direction, attenuation, did_scatter) and draw
their random numbers from an explicit stream id.
"""

from .dielectric import (
    add_dielectric_material,
    clear_dielectric_materials,
    fresnel_reflectance,
    get_dielectric_material_count,
    scatter_dielectric,
    scatter_dielectric_by_id,
    will_reflect,
)
from .diffuse_light import (
    add_diffuse_light_material,
    clear_diffuse_light_materials,
    emit_diffuse_light_by_id,
    get_diffuse_light_material_count,
)
from .lambertian import (
    add_lambertian_material,
    clear_lambertian_materials,
    get_lambertian_material_count,
    scatter_lambertian,
    scatter_lambertian_by_id,
)
from .metal import (
    add_metal_material,
    clear_metal_materials,
    get_metal_material_count,
    scatter_metal,
    scatter_metal_by_id,
)
from .texture import (
    TextureType,
    add_checker_texture,
    add_constant_texture,
    add_noise_texture,
    clear_textures,
    get_texture_count,
    texture_value,
)

__all__ = [
    # Textures
    "TextureType",
    "add_constant_texture",
    "add_checker_texture",
    "add_noise_texture",
    "clear_textures",
    "get_texture_count",
    "texture_value",
    # Lambertian
    "scatter_lambertian",
    "scatter_lambertian_by_id",
    "add_lambertian_material",
    "clear_lambertian_materials",
    "get_lambertian_material_count",
    # Metal
    "scatter_metal",
    "scatter_metal_by_id",
    "add_metal_material",
    "clear_metal_materials",
    "get_metal_material_count",
    # Dielectric
    "scatter_dielectric",
    "scatter_dielectric_by_id",
    "add_dielectric_material",
    "clear_dielectric_materials",
    "get_dielectric_material_count",
    "fresnel_reflectance",
    "will_reflect",
    # Diffuse light
    "emit_diffuse_light_by_id",
    "add_diffuse_light_material",
    "clear_diffuse_light_materials",
    "get_diffuse_light_material_count",
]
