"""Preview module for rendered output.

Components:
    export: PPM and PNG export of 8-bit framebuffers, plus image comparison

Example:
    >>> from src.lumen.preview import save_ppm
    >>> save_ppm(renderer.get_framebuffer(), "out.ppm")
"""

from src.lumen.preview.export import (
    compute_rmse,
    framebuffer_to_ppm,
    parse_ppm,
    save_image,
    save_png,
    save_ppm,
)

__all__ = [
    "compute_rmse",
    "framebuffer_to_ppm",
    "parse_ppm",
    "save_image",
    "save_png",
    "save_ppm",
]
