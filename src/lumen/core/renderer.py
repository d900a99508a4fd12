"""Progressive renderer for iterative sample accumulation.

This module provides a convenient wrapper around the core integrator that supports:
- Progressive rendering that refines over time
- Batch rendering (multiple SPP in one call)
- Progress callbacks for UI updates
- Reproducible output from a fixed seed

It also holds the one-call entry points that turn a RenderConfig into a
scene, a camera and a finished image.

Example:
    >>> from src.lumen.core.runtime import init_taichi
    >>> init_taichi("cpu")
    >>> from src.lumen.camera.thin_lens import default_camera, setup_camera
    >>> from src.lumen.core.renderer import ProgressiveRenderer
    >>> from src.lumen.scene.manager import SceneManager
    >>> from src.lumen.scene.worlds import static_world
    >>>
    >>> scene = SceneManager()
    >>> static_world(scene)
    >>> scene.build()
    >>> setup_camera(default_camera(2.0))
    >>>
    >>> renderer = ProgressiveRenderer(200, 100, seed=1)
    >>> renderer.render(100)
    >>> renderer.save_ppm("out.ppm")
"""

import logging
from collections.abc import Callable, Generator
from pathlib import Path

import numpy as np
import numpy.typing as npt

from src.lumen.camera.thin_lens import ThinLensCamera, setup_camera
from src.lumen.config import RenderConfig
from src.lumen.core.integrator import (
    DEFAULT_MAX_DEPTH,
    clear_render_target,
    get_image_numpy,
    get_total_samples,
    render_samples,
    set_background,
    setup_render_target,
    to_framebuffer,
)
from src.lumen.core.rng import seed_streams
from src.lumen.preview.export import save_image, save_png, save_ppm
from src.lumen.scene.manager import SceneManager
from src.lumen.scene.worlds import WORLD_VIEWS, build_world

logger = logging.getLogger(__name__)

# Type alias for progress callback
# Callback receives (current_samples, total_target_samples)
ProgressCallback = Callable[[int, int], None]


class ProgressiveRenderer:
    """A progressive renderer that accumulates samples over time.

    The renderer owns the size, path length and seed of a render and
    delegates to the global integrator buffers (which are Taichi fields).
    Only one renderer is active at a time; creating or resizing one resets
    the shared buffers.

    The random streams are seeded once per reset, so two renderers created
    with the same seed over the same scene and camera produce identical
    images.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        max_depth: Maximum path length.
        seed: The root seed actually used (drawn from OS entropy when None
            was passed).
    """

    def __init__(
        self,
        width: int,
        height: int,
        max_depth: int = DEFAULT_MAX_DEPTH,
        seed: int | None = None,
    ) -> None:
        """Initialize the progressive renderer.

        Args:
            width: Image width in pixels (max 2048).
            height: Image height in pixels (max 2048).
            max_depth: Maximum path length.
            seed: Root seed for the per-pixel random streams.

        Raises:
            ValueError: If dimensions are invalid or max_depth is negative.
        """
        if max_depth < 0:
            raise ValueError(f"max_depth = {max_depth} must be non-negative")
        self._width = width
        self._height = height
        self._max_depth = max_depth
        self._requested_seed = seed
        self._seed = 0
        setup_render_target(width, height)
        self._seed_streams()

    def _seed_streams(self) -> None:
        self._seed = seed_streams(self._requested_seed, self._width * self._height)
        if self._requested_seed is None:
            # Keep the drawn entropy so that reset() repeats the same render
            self._requested_seed = self._seed

    @property
    def width(self) -> int:
        """Get the image width."""
        return self._width

    @property
    def height(self) -> int:
        """Get the image height."""
        return self._height

    @property
    def max_depth(self) -> int:
        return self._max_depth

    @property
    def seed(self) -> int:
        return self._seed

    @property
    def sample_count(self) -> int:
        """Get the current number of accumulated samples per pixel."""
        return get_total_samples()

    def reset(self) -> None:
        """Reset the accumulator and reseed the random streams.

        Rendering the same number of samples after a reset reproduces the
        previous image.
        """
        clear_render_target()
        self._seed_streams()

    def resize(self, width: int, height: int) -> None:
        """Resize the render target and reset accumulator.

        Args:
            width: New image width in pixels.
            height: New image height in pixels.

        Raises:
            ValueError: If dimensions are invalid.
        """
        setup_render_target(width, height)
        self._width = width
        self._height = height
        self._seed_streams()

    def render(
        self,
        num_samples: int = 1,
        batch_size: int = 1,
        callback: ProgressCallback | None = None,
    ) -> None:
        """Render samples progressively with optional progress callback.

        Accumulates the specified number of samples into the existing buffer.
        Can be called multiple times to continue refining the image.

        Args:
            num_samples: Total number of samples to add.
            batch_size: Number of samples to render before each callback.
            callback: Optional callback function called after each batch.
                Receives (current_total_samples, target_total_samples).

        Raises:
            ValueError: If num_samples or batch_size is not positive.
            RuntimeError: If the camera or scene is not set up.

        Example:
            >>> def progress(current, target):
            ...     print(f"Progress: {current}/{target} samples")
            >>> renderer.render(100, batch_size=10, callback=progress)
        """
        for current, target in self.render_progressive(num_samples, batch_size):
            if callback is not None:
                callback(current, target)

    def render_progressive(
        self,
        num_samples: int = 1,
        batch_size: int = 1,
    ) -> Generator[tuple[int, int], None, None]:
        """Render samples progressively, yielding progress after each batch.

        Args:
            num_samples: Total number of samples to add.
            batch_size: Number of samples to render before each yield.

        Yields:
            Tuple of (current_total_samples, target_total_samples).

        Raises:
            ValueError: If num_samples or batch_size is not positive.
        """
        if num_samples <= 0:
            raise ValueError(f"num_samples = {num_samples} must be positive")
        if batch_size <= 0:
            raise ValueError(f"batch_size = {batch_size} must be positive")

        target_samples = self.sample_count + num_samples

        remaining = num_samples
        while remaining > 0:
            batch = min(batch_size, remaining)
            render_samples(batch, self._max_depth)
            remaining -= batch
            yield (self.sample_count, target_samples)

    def get_image_numpy(self) -> npt.NDArray[np.float32]:
        """Get the average radiance per pixel, linear, shape (height, width, 3)."""
        return get_image_numpy()

    def get_framebuffer(self) -> npt.NDArray[np.uint8]:
        """Get the gamma-corrected 8-bit image, shape (height, width, 3), top row first."""
        return to_framebuffer(self.get_image_numpy())

    def get_pixel_bytes(self) -> bytes:
        """Get the framebuffer as row-major interleaved RGB bytes."""
        return self.get_framebuffer().tobytes()

    def save_ppm(self, filepath: str | Path) -> Path:
        """Save the framebuffer as a plain-text PPM file."""
        return save_ppm(self.get_framebuffer(), filepath)

    def save_png(self, filepath: str | Path) -> Path:
        """Save the framebuffer as a PNG file."""
        return save_png(self.get_framebuffer(), filepath)

    def __repr__(self) -> str:
        """Return a string representation of the renderer state."""
        return (
            f"ProgressiveRenderer(width={self.width}, height={self.height}, "
            f"max_depth={self.max_depth}, samples={self.sample_count})"
        )


# =============================================================================
# Config-driven entry points
# =============================================================================


def camera_from_config(config: RenderConfig) -> ThinLensCamera:
    """Build the camera for config's world, applying any overrides it sets."""
    view = WORLD_VIEWS[config.world_name]

    def pick(value, default):
        return default if value is None else value

    return ThinLensCamera(
        lookfrom=pick(config.lookfrom, view.lookfrom),
        lookat=pick(config.lookat, view.lookat),
        vup=(0.0, 1.0, 0.0),
        vfov=pick(config.vfov, view.vfov),
        aspect_ratio=config.aspect_ratio,
        aperture=pick(config.aperture, view.aperture),
        focus_dist=pick(config.focus_dist, view.focus_dist),
        time0=config.time_start,
        time1=config.time_end,
    )


def scene_from_config(config: RenderConfig) -> tuple[SceneManager, ThinLensCamera]:
    """Generate and build config's world, and the camera to view it with.

    Raises:
        ValueError: If the config is invalid.
    """
    config.validate()
    rng = np.random.default_rng(config.seed)

    scene = SceneManager()
    build_world(scene, config.world_name, rng, config.time_start, config.time_end)
    scene.build(config.time_start, config.time_end, rng)
    return scene, camera_from_config(config)


def render_scene(
    scene: SceneManager,
    camera: ThinLensCamera,
    config: RenderConfig,
    callback: ProgressCallback | None = None,
    batch_size: int = 1,
) -> ProgressiveRenderer:
    """Render a scene with the given camera and save it to config.output_path.

    The scene is built first if it has not been already.

    Args:
        scene: The scene to render.
        camera: The camera to view it with.
        config: Image size, sample count, path length, seed, background and
            output path.
        callback: Optional progress callback, see ProgressiveRenderer.render.
        batch_size: Samples per callback.

    Returns:
        The renderer holding the finished image.

    Raises:
        ValueError: If the config or camera is invalid.
    """
    config.validate()
    if not scene.is_built:
        scene.build(config.time_start, config.time_end, np.random.default_rng(config.seed))

    background = config.background
    if background is None:
        background = WORLD_VIEWS[config.world_name].background
    set_background(background)
    setup_camera(camera)

    renderer = ProgressiveRenderer(
        config.screen_width,
        config.screen_height,
        max_depth=config.max_depth,
        seed=config.seed,
    )
    logger.info(
        "Rendering %dx%d at %d spp (max depth %d, seed %d)",
        renderer.width,
        renderer.height,
        config.antialias_iterations,
        renderer.max_depth,
        renderer.seed,
    )
    renderer.render(config.antialias_iterations, batch_size=batch_size, callback=callback)
    save_image(renderer.get_framebuffer(), config.output_path)
    return renderer
