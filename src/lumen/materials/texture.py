"""Textures: colour as a function of surface coordinates and position.

Three texture types are supported:

- Constant: a single colour everywhere.
- Checker: chooses between two other textures by the sign of
  sin(s*x) * sin(s*y) * sin(s*z), odd where the product is negative.
- Noise: a marble-like pattern driven by Perlin turbulence.

Textures live in a registry of Taichi fields and are referenced by id.
Checker textures may reference any earlier texture, including another
checker, so the texture graph is always acyclic.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.lumen.materials.texture import add_checker_texture, add_constant_texture
    >>> dark = add_constant_texture((0.2, 0.3, 0.1))
    >>> light = add_constant_texture((0.9, 0.9, 0.9))
    >>> checker = add_checker_texture(dark, light)
    >>> # Inside a kernel: color = texture_value(checker, u, v, point)
"""

from enum import IntEnum

import numpy as np
import taichi as ti
import taichi.math as tm

vec3 = tm.vec3


class TextureType(IntEnum):
    """Enumeration of supported texture types."""

    CONSTANT = 0
    CHECKER = 1
    NOISE = 2


MAX_TEXTURES = 4096

# Checker textures can wrap other checkers this many levels deep
MAX_TEXTURE_NESTING = 8

DEFAULT_CHECKER_SCALE = 10.0

# Perlin lattice size, must be a power of two
PERLIN_POINT_COUNT = 256
TURBULENCE_DEPTH = 7

texture_types = ti.field(dtype=ti.i32, shape=MAX_TEXTURES)
texture_colors = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TEXTURES)
texture_even = ti.field(dtype=ti.i32, shape=MAX_TEXTURES)
texture_odd = ti.field(dtype=ti.i32, shape=MAX_TEXTURES)
texture_scales = ti.field(dtype=ti.f32, shape=MAX_TEXTURES)
num_textures = ti.field(dtype=ti.i32, shape=())

perlin_vectors = ti.Vector.field(3, dtype=ti.f32, shape=PERLIN_POINT_COUNT)
perlin_perm_x = ti.field(dtype=ti.i32, shape=PERLIN_POINT_COUNT)
perlin_perm_y = ti.field(dtype=ti.i32, shape=PERLIN_POINT_COUNT)
perlin_perm_z = ti.field(dtype=ti.i32, shape=PERLIN_POINT_COUNT)

# Host-side nesting depth of each texture, used to reject too-deep checkers
_texture_depths: list[int] = []
_perlin_ready = False


def clear_textures() -> None:
    """Clear the texture registry and forget the Perlin tables."""
    global _perlin_ready
    num_textures[None] = 0
    _texture_depths.clear()
    _perlin_ready = False


def get_texture_count() -> int:
    """Get the number of registered textures."""
    return int(num_textures[None])


def seed_perlin(rng: np.random.Generator) -> None:
    """Fill the Perlin gradient and permutation tables.

    Args:
        rng: Source of the random gradients and permutations.
    """
    global _perlin_ready
    vectors = rng.uniform(-1.0, 1.0, size=(PERLIN_POINT_COUNT, 3))
    lengths = np.linalg.norm(vectors, axis=1, keepdims=True)
    # A zero gradient would divide by zero; replace it with a unit vector
    vectors = np.where(lengths > 1e-12, vectors / np.maximum(lengths, 1e-12), [1.0, 0.0, 0.0])
    perlin_vectors.from_numpy(vectors.astype(np.float32))
    for perm in (perlin_perm_x, perlin_perm_y, perlin_perm_z):
        perm.from_numpy(rng.permutation(PERLIN_POINT_COUNT).astype(np.int32))
    _perlin_ready = True


def _next_texture_index() -> int:
    idx = num_textures[None]
    if idx >= MAX_TEXTURES:
        raise RuntimeError(f"Maximum number of textures ({MAX_TEXTURES}) exceeded")
    return idx


def _validate_color(color: tuple[float, float, float]) -> None:
    if len(color) != 3:
        raise ValueError(f"Colour must have 3 components, got {len(color)}")
    for i, component in enumerate(color):
        if component < 0.0:
            raise ValueError(f"Colour component {i} = {component} is negative")


def add_constant_texture(color: tuple[float, float, float]) -> int:
    """Register a constant texture.

    Args:
        color: The colour as (R, G, B). Components may exceed 1 for emitters.

    Returns:
        The texture id.

    Raises:
        RuntimeError: If the maximum number of textures is exceeded.
        ValueError: If any component is negative.
    """
    _validate_color(color)
    idx = _next_texture_index()
    texture_types[idx] = int(TextureType.CONSTANT)
    texture_colors[idx] = vec3(color[0], color[1], color[2])
    texture_even[idx] = -1
    texture_odd[idx] = -1
    texture_scales[idx] = 0.0
    _texture_depths.append(0)
    num_textures[None] = idx + 1
    return idx


def add_checker_texture(even: int, odd: int, scale: float = DEFAULT_CHECKER_SCALE) -> int:
    """Register a 3D checker pattern alternating between two textures.

    Args:
        even: Texture id used where sin(s*x) sin(s*y) sin(s*z) >= 0.
        odd: Texture id used where the product is negative.
        scale: Spatial frequency s of the pattern.

    Returns:
        The texture id.

    Raises:
        ValueError: If even or odd is not a registered texture id, or the
            nesting limit would be exceeded.
    """
    count = num_textures[None]
    for name, tex_id in (("even", even), ("odd", odd)):
        if not 0 <= tex_id < count:
            raise ValueError(f"Invalid {name} texture id: {tex_id}")
    depth = 1 + max(_texture_depths[even], _texture_depths[odd])
    if depth > MAX_TEXTURE_NESTING:
        raise ValueError(f"Checker textures nest deeper than {MAX_TEXTURE_NESTING} levels")

    idx = _next_texture_index()
    texture_types[idx] = int(TextureType.CHECKER)
    texture_colors[idx] = vec3(0.0, 0.0, 0.0)
    texture_even[idx] = even
    texture_odd[idx] = odd
    texture_scales[idx] = scale
    _texture_depths.append(depth)
    num_textures[None] = idx + 1
    return idx


def add_noise_texture(
    color: tuple[float, float, float] = (1.0, 1.0, 1.0),
    scale: float = 4.0,
    rng: np.random.Generator | None = None,
) -> int:
    """Register a Perlin turbulence (marble) texture.

    The first noise texture seeds the shared Perlin tables from rng.

    Args:
        color: Colour at full intensity.
        scale: Frequency of the stripes along z.
        rng: Generator for the Perlin tables. Defaults to an unseeded one.

    Returns:
        The texture id.
    """
    _validate_color(color)
    if not _perlin_ready:
        seed_perlin(rng if rng is not None else np.random.default_rng())

    idx = _next_texture_index()
    texture_types[idx] = int(TextureType.NOISE)
    texture_colors[idx] = vec3(color[0], color[1], color[2])
    texture_even[idx] = -1
    texture_odd[idx] = -1
    texture_scales[idx] = scale
    _texture_depths.append(0)
    num_textures[None] = idx + 1
    return idx


@ti.func
def perlin_noise(p: vec3) -> ti.f32:
    """Gradient noise with Hermite-smoothed trilinear interpolation."""
    cell = tm.floor(p)
    f = p - cell
    i = ti.cast(cell.x, ti.i32)
    j = ti.cast(cell.y, ti.i32)
    k = ti.cast(cell.z, ti.i32)
    smooth = f * f * (3.0 - 2.0 * f)
    mask = PERLIN_POINT_COUNT - 1

    accumulator = 0.0
    for di in ti.static(range(2)):
        for dj in ti.static(range(2)):
            for dk in ti.static(range(2)):
                index = (
                    perlin_perm_x[(i + di) & mask]
                    ^ perlin_perm_y[(j + dj) & mask]
                    ^ perlin_perm_z[(k + dk) & mask]
                )
                weight = vec3(f.x - di, f.y - dj, f.z - dk)
                wx = di * smooth.x + (1 - di) * (1.0 - smooth.x)
                wy = dj * smooth.y + (1 - dj) * (1.0 - smooth.y)
                wz = dk * smooth.z + (1 - dk) * (1.0 - smooth.z)
                accumulator += wx * wy * wz * tm.dot(perlin_vectors[index], weight)
    return accumulator


@ti.func
def turbulence(p: vec3) -> ti.f32:
    """Sum of TURBULENCE_DEPTH octaves of noise, each half as strong."""
    accumulator = 0.0
    weight = 1.0
    current = p
    for _ in ti.static(range(TURBULENCE_DEPTH)):
        accumulator += weight * perlin_noise(current)
        weight *= 0.5
        current *= 2.0
    return ti.abs(accumulator)


@ti.func
def texture_value(tex_id: ti.i32, u: ti.f32, v: ti.f32, p: vec3) -> vec3:
    """Evaluate a texture at surface coordinates (u, v) and point p.

    Checker textures are resolved first, walking down to a non-checker leaf.

    Args:
        tex_id: The texture id.
        u: Surface texture coordinate.
        v: Surface texture coordinate.
        p: World-space point.

    Returns:
        The texture colour.
    """
    tid = tex_id
    for _ in ti.static(range(MAX_TEXTURE_NESTING)):
        if texture_types[tid] == int(TextureType.CHECKER):
            s = texture_scales[tid]
            sines = ti.sin(s * p.x) * ti.sin(s * p.y) * ti.sin(s * p.z)
            if sines < 0.0:
                tid = texture_odd[tid]
            else:
                tid = texture_even[tid]

    color = texture_colors[tid]
    if texture_types[tid] == int(TextureType.NOISE):
        phase = texture_scales[tid] * p.z + 10.0 * turbulence(p)
        color = color * 0.5 * (1.0 + ti.sin(phase))
    return color
