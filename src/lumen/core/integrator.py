"""Path tracing integrator for Monte Carlo light transport.

This module implements the radiance estimator and the rendering kernel.

The estimator follows a path from the camera through the scene. At every
hit it adds the surface's emission weighted by the current throughput, then
asks the material to scatter. An absorbed path ends; a scattered path
multiplies its throughput by the attenuation and continues. A path that
leaves the scene picks up the background. Paths are cut off after
max_depth bounces, and max_depth == 0 always yields black.

This is the iterative form of

    L(ray, d) = 0                                   if d == 0
              = background(ray)                     on a miss
              = emit + attenuation * L(scattered, d - 1)   on a scatter
              = emit                                on absorption

Rendering is parallel over pixels. Pixel (row, col) owns random stream
row * width + col, so no random state is shared between workers.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.lumen.core.integrator import render_samples, setup_render_target
    >>> from src.lumen.camera.thin_lens import default_camera, setup_camera
    >>>
    >>> setup_camera(default_camera(2.0))
    >>> setup_render_target(200, 100)
    >>> render_samples(num_samples=16, max_depth=50)
"""

import logging
from enum import IntEnum

import numpy as np
import taichi as ti
import taichi.math as tm

from src.lumen.camera.thin_lens import get_ray, is_camera_ready
from src.lumen.core.rng import MAX_STREAMS, rng_float
from src.lumen.geometry.sphere import HitRecord
from src.lumen.materials.dielectric import scatter_dielectric_by_id
from src.lumen.materials.diffuse_light import emit_diffuse_light_by_id
from src.lumen.materials.lambertian import scatter_lambertian_by_id
from src.lumen.materials.metal import scatter_metal_by_id
from src.lumen.scene.intersection import intersect_scene, is_scene_ready
from src.lumen.scene.manager import MaterialType, get_material_type, get_material_type_index

logger = logging.getLogger(__name__)

# Type alias for 3D vectors
vec3 = tm.vec3

# =============================================================================
# Rendering Constants
# =============================================================================

# Default maximum path length
DEFAULT_MAX_DEPTH = 50

# t_min and t_max for ray intersection; t_min keeps a scattered ray from
# hitting the surface it just left
T_MIN = 1e-3
T_MAX = tm.inf

SKY_HORIZON_COLOR = (1.0, 1.0, 1.0)
SKY_ZENITH_COLOR = (0.5, 0.7, 1.0)


# =============================================================================
# Background
# =============================================================================


class BackgroundMode(IntEnum):
    """How rays that leave the scene are coloured."""

    SKY = 0
    SOLID = 1


_background_mode = ti.field(dtype=ti.i32, shape=())
_background_color = ti.Vector.field(3, dtype=ti.f32, shape=())


def set_background(background: str | tuple[float, float, float] = "sky") -> None:
    """Select the background.

    Args:
        background: "sky" for the white-to-blue gradient, or an RGB colour
            for a solid background.

    Raises:
        ValueError: If background is an unknown name or an invalid colour.
    """
    if isinstance(background, str):
        if background.lower() != "sky":
            raise ValueError(f"Unknown background {background!r}; use 'sky' or an RGB colour")
        _background_mode[None] = int(BackgroundMode.SKY)
        _background_color[None] = [0.0, 0.0, 0.0]
        return

    color = tuple(float(c) for c in background)
    if len(color) != 3 or any(c < 0.0 for c in color):
        raise ValueError(f"Background colour must be 3 non-negative values, got {background}")
    _background_mode[None] = int(BackgroundMode.SOLID)
    _background_color[None] = list(color)


def get_background() -> str | tuple[float, float, float]:
    """Return "sky" or the solid background colour."""
    if _background_mode[None] == int(BackgroundMode.SKY):
        return "sky"
    color = _background_color[None]
    return (float(color[0]), float(color[1]), float(color[2]))


@ti.func
def background(direction: vec3) -> vec3:
    """Radiance arriving along a ray that left the scene."""
    color = _background_color[None]
    if _background_mode[None] == int(BackgroundMode.SKY):
        unit_direction = tm.normalize(direction)
        t = 0.5 * (unit_direction.y + 1.0)
        color = (1.0 - t) * vec3(SKY_HORIZON_COLOR) + t * vec3(SKY_ZENITH_COLOR)
    return color


# =============================================================================
# Render Target (Image Buffer)
# =============================================================================

# Maximum supported image dimensions (preallocated to avoid kernel recompilation)
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

# Image dimensions (actual active size)
_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# Radiance sum per pixel, indexed [row, column] with row 0 at the top
_color_buffer = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_IMAGE_HEIGHT, MAX_IMAGE_WIDTH))

# Samples accumulated into every pixel so far
_sample_count = ti.field(dtype=ti.i32, shape=())

# Flag to track if render target is initialized
_render_target_initialized = ti.field(dtype=ti.i32, shape=())


def setup_render_target(width: int, height: int) -> None:
    """Set the active image size and clear the buffers.

    Args:
        width: Image width in pixels (max MAX_IMAGE_WIDTH).
        height: Image height in pixels (max MAX_IMAGE_HEIGHT).

    Raises:
        ValueError: If a dimension is not positive or exceeds the maximum.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Image dimensions ({width}x{height}) must be positive")
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )
    if width * height > MAX_STREAMS:
        raise ValueError(f"Image has more pixels than random streams ({MAX_STREAMS})")

    _image_width[None] = width
    _image_height[None] = height
    _render_target_initialized[None] = 1
    clear_render_target()


def clear_render_target() -> None:
    """Clear the accumulated samples."""
    _color_buffer.fill(0.0)
    _sample_count[None] = 0


def reset_render_target() -> None:
    """Forget the render target entirely; rendering then requires setup again."""
    clear_render_target()
    _render_target_initialized[None] = 0


def get_image_dimensions() -> tuple[int, int]:
    """Get the current render target dimensions as (width, height)."""
    return int(_image_width[None]), int(_image_height[None])


def _check_render_target_initialized() -> None:
    """Check if render target is initialized and raise if not."""
    if _render_target_initialized[None] == 0:
        raise RuntimeError("Render target not set up. Call setup_render_target() first.")


def get_total_samples() -> int:
    """Get the number of samples accumulated per pixel."""
    _check_render_target_initialized()
    return int(_sample_count[None])


# =============================================================================
# Material Dispatch
# =============================================================================


@ti.func
def scatter_material(rec: HitRecord, incident_direction: vec3, stream: ti.i32):
    """Dispatch to the scatter function of the hit surface's material.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter).
        Emitters and unknown materials never scatter.
    """
    mat_type = get_material_type(rec.material_id)
    type_index = get_material_type_index(rec.material_id)

    scattered_direction = vec3(0.0, 0.0, 0.0)
    attenuation = vec3(0.0, 0.0, 0.0)
    did_scatter = 0

    if mat_type == int(MaterialType.LAMBERTIAN):
        scattered_direction, attenuation, did_scatter = scatter_lambertian_by_id(
            type_index, rec, stream
        )
    elif mat_type == int(MaterialType.METAL):
        scattered_direction, attenuation, did_scatter = scatter_metal_by_id(
            type_index, incident_direction, rec.normal, stream
        )
    elif mat_type == int(MaterialType.DIELECTRIC):
        scattered_direction, attenuation, did_scatter = scatter_dielectric_by_id(
            type_index, incident_direction, rec.normal, rec.front_face, stream
        )

    return scattered_direction, attenuation, did_scatter


@ti.func
def emit_material(rec: HitRecord) -> vec3:
    """Radiance emitted by the hit surface; zero for everything but lights."""
    emission = vec3(0.0, 0.0, 0.0)
    if get_material_type(rec.material_id) == int(MaterialType.DIFFUSE_LIGHT):
        emission = emit_diffuse_light_by_id(
            get_material_type_index(rec.material_id), rec.u, rec.v, rec.point
        )
    return emission


# =============================================================================
# Path Tracing Core
# =============================================================================


@ti.func
def radiance(
    origin: vec3,
    direction: vec3,
    time: ti.f32,
    max_depth: ti.i32,
    stream: ti.i32,
) -> vec3:
    """Estimate the radiance arriving along a ray.

    Args:
        origin: The ray origin.
        direction: The ray direction.
        time: The ray's shutter time.
        max_depth: Maximum number of surface interactions.
        stream: The random stream owned by the calling worker.

    Returns:
        The estimated radiance (RGB).
    """
    result = vec3(0.0, 0.0, 0.0)
    throughput = vec3(1.0, 1.0, 1.0)
    ray_origin = origin
    ray_direction = direction

    # Active flag for path continuation (Taichi doesn't support break in ti.func loops)
    active = 1

    for _ in range(max_depth):
        if active == 1:
            rec = intersect_scene(ray_origin, ray_direction, time, T_MIN, T_MAX)

            if rec.hit == 0:
                result += throughput * background(ray_direction)
                active = 0
            else:
                result += throughput * emit_material(rec)

                scattered_direction, attenuation, did_scatter = scatter_material(
                    rec, ray_direction, stream
                )
                if did_scatter == 0:
                    active = 0
                else:
                    throughput *= attenuation
                    ray_origin = rec.point
                    ray_direction = scattered_direction

    return result


@ti.func
def sanitize(color: vec3) -> vec3:
    """Replace NaN and infinite channels with zero."""
    result = color
    for c in ti.static(range(3)):
        if tm.isnan(result[c]) or tm.isinf(result[c]):
            result[c] = 0.0
    return result


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.kernel
def _render_pass(width: ti.i32, height: ti.i32, num_samples: ti.i32, max_depth: ti.i32):
    """Trace num_samples paths through every pixel and accumulate their sum."""
    for row, col in ti.ndrange(height, width):
        stream = row * width + col
        # Image rows run top to bottom, the viewport's t runs bottom to top
        j = height - 1 - row

        total = vec3(0.0, 0.0, 0.0)
        for _ in range(num_samples):
            s = (ti.cast(col, ti.f32) + rng_float(stream)) / ti.cast(width, ti.f32)
            t = (ti.cast(j, ti.f32) + rng_float(stream)) / ti.cast(height, ti.f32)
            ray = get_ray(s, t, stream)
            total += sanitize(radiance(ray.origin, ray.direction, ray.time, max_depth, stream))

        _color_buffer[row, col] += total


_single_ray_result = ti.Vector.field(3, dtype=ti.f32, shape=())


@ti.kernel
def _trace_single_ray(
    origin: vec3,
    direction: vec3,
    time: ti.f32,
    max_depth: ti.i32,
    stream: ti.i32,
):
    for _ in range(1):
        _single_ray_result[None] = sanitize(radiance(origin, direction, time, max_depth, stream))


# =============================================================================
# Public Rendering API
# =============================================================================


def render_samples(num_samples: int = 1, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
    """Add num_samples samples to every pixel of the render target.

    Can be called repeatedly; samples accumulate until the target is cleared.
    Random streams must be seeded for the current image size first.

    Args:
        num_samples: Number of samples to add per pixel.
        max_depth: Maximum path length.

    Raises:
        RuntimeError: If render target has not been set up, the camera
            has not been set up, or the scene holds shapes without a BVH.
        ValueError: If num_samples is not positive or max_depth is negative.
    """
    _check_render_target_initialized()
    if not is_camera_ready():
        raise RuntimeError("Camera not set up. Call setup_camera() first.")
    if not is_scene_ready():
        raise RuntimeError("Scene has shapes but no BVH. Call SceneManager.build() first.")
    if num_samples <= 0:
        raise ValueError(f"num_samples = {num_samples} must be positive")
    if max_depth < 0:
        raise ValueError(f"max_depth = {max_depth} must be non-negative")

    width, height = get_image_dimensions()
    _render_pass(width, height, num_samples, max_depth)
    _sample_count[None] += num_samples
    logger.debug("Accumulated %d samples (%d total)", num_samples, int(_sample_count[None]))


def trace_ray_radiance(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    time: float = 0.0,
    max_depth: int = DEFAULT_MAX_DEPTH,
    stream: int = 0,
) -> tuple[float, float, float]:
    """Estimate the radiance along a single ray (one sample).

    This is a Python-callable function for testing and debugging.
    """
    _trace_single_ray(vec3(origin), vec3(direction), time, max_depth, stream)
    color = _single_ray_result[None]
    return (float(color[0]), float(color[1]), float(color[2]))


def get_image_numpy() -> np.ndarray:
    """Get the average radiance per pixel in linear space.

    Returns:
        float32 array of shape (height, width, 3), top row first.

    Raises:
        RuntimeError: If render target has not been set up or nothing has
            been rendered yet.
    """
    _check_render_target_initialized()
    count = int(_sample_count[None])
    if count == 0:
        raise RuntimeError("No samples rendered yet. Call render_samples() first.")

    width, height = get_image_dimensions()
    image = _color_buffer.to_numpy()[:height, :width, :]
    return (image / np.float32(count)).astype(np.float32)


def to_framebuffer(image: np.ndarray) -> np.ndarray:
    """Convert linear radiance to 8-bit pixels.

    Applies gamma 2 (per-channel square root) and maps each channel c to
    min(int(255.99 * c), 255).

    Args:
        image: Linear radiance, shape (height, width, 3).

    Returns:
        uint8 array of the same shape.
    """
    corrected = np.sqrt(np.maximum(image, 0.0))
    return np.minimum(np.floor(255.99 * corrected), 255).astype(np.uint8)
