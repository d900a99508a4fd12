"""Dielectric (glass/water) material implementation.

Dielectrics either reflect or refract each incoming ray. Entering the
material (front face) the refraction ratio is 1/ior, leaving it the ratio is
ior. Total internal reflection happens when ratio * sin(theta) > 1; otherwise
the ray reflects with probability given by Schlick's approximation of the
Fresnel reflectance and refracts the rest of the time.

Clear dielectrics absorb nothing, so the attenuation is always white.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.lumen.materials.dielectric import add_dielectric_material
    >>> glass = add_dielectric_material(1.5)
"""

import taichi as ti
import taichi.math as tm

from src.lumen.core.ray import reflect, refract, schlick_fresnel
from src.lumen.core.rng import rng_float

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.func
def refraction_ratio(ior: ti.f32, front_face: ti.i32) -> ti.f32:
    """Ratio n_incident / n_transmitted for a ray entering or leaving."""
    ratio = 1.0 / ior
    if front_face == 0:
        ratio = ior
    return ratio


@ti.func
def will_reflect(
    ior: ti.f32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
) -> ti.i32:
    """Determine if total internal reflection will occur.

    Args:
        ior: Index of refraction of the material.
        incident_direction: The incoming ray direction (should be normalized).
        normal: The surface normal facing the incoming ray (normalized).
        front_face: 1 if the ray hits from outside, 0 from inside.

    Returns:
        1 if refraction is impossible, 0 otherwise.
    """
    ratio = refraction_ratio(ior, front_face)
    cos_theta = tm.min(-tm.dot(incident_direction, normal), 1.0)
    sin_theta = tm.sqrt(tm.max(0.0, 1.0 - cos_theta * cos_theta))
    return 1 if ratio * sin_theta > 1.0 else 0


@ti.func
def fresnel_reflectance(
    ior: ti.f32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
) -> ti.f32:
    """Schlick reflectance for the given incidence, using the refraction ratio."""
    cos_theta = tm.min(-tm.dot(incident_direction, normal), 1.0)
    return schlick_fresnel(cos_theta, refraction_ratio(ior, front_face))


@ti.func
def scatter_dielectric(
    ior: ti.f32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
    stream: ti.i32,
):
    """Compute the scattered ray direction for a dielectric material.

    Args:
        ior: Index of refraction of the material.
        incident_direction: The incoming ray direction (any length).
        normal: The surface normal facing the incoming ray (normalized).
        front_face: 1 if the ray hits from outside, 0 from inside.
        stream: The random stream owned by the calling worker.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter).
        Dielectrics always scatter.
    """
    unit_direction = tm.normalize(incident_direction)

    cannot_refract = will_reflect(ior, unit_direction, normal, front_face)
    reflectance = fresnel_reflectance(ior, unit_direction, normal, front_face)

    scattered_direction = vec3(0.0, 0.0, 0.0)
    if cannot_refract == 1 or reflectance > rng_float(stream):
        scattered_direction = reflect(unit_direction, normal)
    else:
        scattered_direction = refract(unit_direction, normal, refraction_ratio(ior, front_face))

    return scattered_direction, vec3(1.0, 1.0, 1.0), 1


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

# Maximum number of dielectric materials in the scene
MAX_DIELECTRIC_MATERIALS = 1024

# Storage for dielectric material properties
dielectric_iors = ti.field(dtype=ti.f32, shape=MAX_DIELECTRIC_MATERIALS)
num_dielectric_materials = ti.field(dtype=ti.i32, shape=())


def clear_dielectric_materials() -> None:
    """Clear all dielectric materials."""
    num_dielectric_materials[None] = 0


def add_dielectric_material(ior: float = 1.5) -> int:
    """Add a dielectric material to the material registry.

    Args:
        ior: Index of refraction. Default is 1.5 (typical glass).
            Common values: Air=1.0, Water=1.33, Glass=1.5, Diamond=2.4

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If IOR is less than 1.0.
    """
    if ior < 1.0:
        raise ValueError(f"Index of refraction = {ior} must be >= 1.0.")

    idx = num_dielectric_materials[None]
    if idx >= MAX_DIELECTRIC_MATERIALS:
        raise RuntimeError(
            f"Maximum number of dielectric materials ({MAX_DIELECTRIC_MATERIALS}) exceeded"
        )

    dielectric_iors[idx] = ior
    num_dielectric_materials[None] = idx + 1
    return idx


def get_dielectric_material_count() -> int:
    """Get the number of dielectric materials in the registry."""
    return int(num_dielectric_materials[None])


@ti.func
def scatter_dielectric_by_id(
    material_idx: ti.i32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
    stream: ti.i32,
):
    """Scatter off the dielectric material stored at material_idx."""
    return scatter_dielectric(
        dielectric_iors[material_idx], incident_direction, normal, front_face, stream
    )
