"""Render configuration.

A RenderConfig describes one render: image size, sample count, path
length, which world to build and how to view it. Configurations are
usually read from a TOML file:

    output_path = "random.ppm"
    screen_width = 400
    screen_height = 200
    antialias_iterations = 50
    world = "random"
    seed = 7

Camera keys left unset (vfov, aperture, focus_dist, lookfrom, lookat,
background) fall back to the view the chosen world is meant to be seen with.
"""

import logging
import tomllib
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

Point3 = tuple[float, float, float]

KNOWN_WORLDS = ("static", "random", "cornell", "perlin")


@dataclass
class RenderConfig:
    """Settings for a single render.

    Attributes:
        output_path: Where to write the image; ".png" writes a PNG, anything
            else a plain-text PPM.
        screen_width: Image width in pixels.
        screen_height: Image height in pixels.
        antialias_iterations: Samples per pixel.
        max_depth: Maximum path length.
        dynamic_world: Generate the random world when world is not set.
        world: Name of the world to build, or None.
        seed: Root seed for all randomness; None draws OS entropy.
        time_start: Shutter open time.
        time_end: Shutter close time.
        vfov: Vertical field of view in degrees, or None for the world's.
        aperture: Lens diameter, or None for the world's.
        focus_dist: Focus distance, or None for the world's.
        lookfrom: Camera position, or None for the world's.
        lookat: Camera target, or None for the world's.
        background: "sky", an RGB colour, or None for the world's.
    """

    output_path: str = "out.ppm"
    screen_width: int = 200
    screen_height: int = 100
    antialias_iterations: int = 100
    max_depth: int = 50
    dynamic_world: bool = False
    world: str | None = None
    seed: int | None = None
    time_start: float = 0.0
    time_end: float = 1.0
    vfov: float | None = None
    aperture: float | None = None
    focus_dist: float | None = None
    lookfrom: Point3 | None = None
    lookat: Point3 | None = None
    background: str | Point3 | None = None

    @property
    def world_name(self) -> str:
        """The world to build once dynamic_world has been taken into account."""
        if self.world is not None:
            return self.world
        return "random" if self.dynamic_world else "static"

    @property
    def aspect_ratio(self) -> float:
        return self.screen_width / self.screen_height

    def validate(self) -> None:
        """Check every setting.

        Raises:
            ValueError: On the first invalid value found.
        """
        if self.screen_width <= 0 or self.screen_height <= 0:
            raise ValueError(
                f"Image size {self.screen_width}x{self.screen_height} must be positive"
            )
        if self.antialias_iterations <= 0:
            raise ValueError(
                f"antialias_iterations = {self.antialias_iterations} must be positive"
            )
        if self.max_depth < 0:
            raise ValueError(f"max_depth = {self.max_depth} must be non-negative")
        if self.world_name not in KNOWN_WORLDS:
            raise ValueError(f"Unknown world {self.world_name!r}; expected one of {KNOWN_WORLDS}")
        if self.time_end < self.time_start:
            raise ValueError(f"time_end = {self.time_end} is before time_start = {self.time_start}")
        if self.vfov is not None and not 0.0 < self.vfov < 180.0:
            raise ValueError(f"vfov = {self.vfov} must be in (0, 180) degrees")
        if self.aperture is not None and self.aperture < 0.0:
            raise ValueError(f"aperture = {self.aperture} must be non-negative")
        if self.focus_dist is not None and self.focus_dist <= 0.0:
            raise ValueError(f"focus_dist = {self.focus_dist} must be positive")
        for name in ("lookfrom", "lookat"):
            value = getattr(self, name)
            if value is not None and len(value) != 3:
                raise ValueError(f"{name} must have 3 components, got {value}")
        if isinstance(self.background, str):
            if self.background != "sky":
                raise ValueError(f"background must be 'sky' or an RGB colour, got {self.background!r}")
        elif self.background is not None:
            if len(self.background) != 3 or any(c < 0.0 for c in self.background):
                raise ValueError(f"background must be 3 non-negative values, got {self.background}")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RenderConfig":
        """Build a config from a mapping, ignoring (and logging) unknown keys."""
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in data.items():
            if key not in known:
                logger.warning("Ignoring unknown config key %r", key)
                continue
            if key in ("lookfrom", "lookat") or (key == "background" and not isinstance(value, str)):
                value = tuple(float(c) for c in value)
            values[key] = value
        return cls(**values)


def load_config(path: str | Path) -> RenderConfig:
    """Read and validate a TOML render configuration.

    Args:
        path: Path to the TOML file.

    Returns:
        The validated configuration; missing keys take their defaults.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not valid TOML or holds invalid values.
    """
    path = Path(path)
    with path.open("rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"Invalid TOML in {path}: {e}") from e

    config = RenderConfig.from_dict(data)
    config.validate()
    logger.debug("Loaded config from %s: %s", path, config)
    return config
