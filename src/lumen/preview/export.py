"""Image export utilities for rendered framebuffers.

A framebuffer is a uint8 array of shape (height, width, 3), top row first,
as produced by ProgressiveRenderer.get_framebuffer().

Supported formats:
    - Plain-text PPM (P3), one "r g b" line per pixel
    - PNG (8-bit via Pillow)

Example:
    >>> from src.lumen.preview.export import save_ppm
    >>> renderer.render(100)
    >>> save_ppm(renderer.get_framebuffer(), "out.ppm")
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

logger = logging.getLogger(__name__)


def _check_framebuffer(framebuffer: npt.NDArray[np.uint8]) -> None:
    if framebuffer.ndim != 3 or framebuffer.shape[2] != 3:
        raise ValueError(f"Framebuffer must have shape (height, width, 3), got {framebuffer.shape}")
    if framebuffer.dtype != np.uint8:
        raise ValueError(f"Framebuffer must be uint8, got {framebuffer.dtype}")


def framebuffer_to_ppm(framebuffer: npt.NDArray[np.uint8]) -> str:
    """Format a framebuffer as plain-text PPM.

    The header is "P3", then "<width> <height>", then "255", each on its
    own line, followed by one "r g b" line per pixel in row-major order
    from the top-left corner.

    Raises:
        ValueError: If the array is not a (height, width, 3) uint8 image.
    """
    _check_framebuffer(framebuffer)
    height, width, _ = framebuffer.shape
    lines = ["P3", f"{width} {height}", "255"]
    lines.extend(f"{r} {g} {b}" for r, g, b in framebuffer.reshape(-1, 3).tolist())
    return "\n".join(lines) + "\n"


def parse_ppm(text: str) -> npt.NDArray[np.uint8]:
    """Read a plain-text PPM back into a framebuffer.

    Raises:
        ValueError: If the text is not a P3 image with maxval 255.
    """
    tokens = [t for line in text.splitlines() for t in line.split("#", 1)[0].split()]
    if len(tokens) < 4 or tokens[0] != "P3":
        raise ValueError("Not a plain-text (P3) PPM image")
    width, height, maxval = int(tokens[1]), int(tokens[2]), int(tokens[3])
    if maxval != 255:
        raise ValueError(f"Unsupported PPM maxval {maxval}")
    values = np.array(tokens[4:], dtype=np.int64)
    if values.size != width * height * 3:
        raise ValueError(f"Expected {width * height * 3} samples, found {values.size}")
    return values.reshape(height, width, 3).astype(np.uint8)


def save_ppm(framebuffer: npt.NDArray[np.uint8], filepath: str | Path) -> Path:
    """Write a framebuffer as a plain-text PPM file.

    Returns:
        The path written.
    """
    path = Path(filepath)
    path.write_text(framebuffer_to_ppm(framebuffer), encoding="ascii")
    logger.info("Wrote %s", path)
    return path


def save_png(framebuffer: npt.NDArray[np.uint8], filepath: str | Path) -> Path:
    """Write a framebuffer as an 8-bit PNG file.

    Returns:
        The path written.
    """
    _check_framebuffer(framebuffer)
    path = Path(filepath)
    PILImage.fromarray(framebuffer).save(path)
    logger.info("Wrote %s", path)
    return path


def save_image(framebuffer: npt.NDArray[np.uint8], filepath: str | Path) -> Path:
    """Write a framebuffer, choosing PPM or PNG from the file suffix."""
    path = Path(filepath)
    if path.suffix.lower() == ".ppm":
        return save_ppm(framebuffer, path)
    return save_png(framebuffer, path)


def compute_rmse(
    image_a: npt.NDArray[np.generic],
    image_b: npt.NDArray[np.generic],
) -> float:
    """Compute root mean squared error between two images.

    Args:
        image_a: First image array.
        image_b: Second image array (must have same shape as image_a).

    Returns:
        RMSE value (lower is more similar).

    Raises:
        ValueError: If image shapes don't match.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(f"Image shapes must match: {image_a.shape} vs {image_b.shape}")

    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))
