"""Taichi runtime initialization.

Taichi must be initialized before any module that declares fields is
imported, so this module imports nothing from the rest of the package.
Call init_taichi() first, then import the renderer.

Example:
    >>> from src.lumen.core.runtime import init_taichi
    >>> init_taichi("cpu")
    >>> from src.lumen.core.renderer import ProgressiveRenderer
"""

import logging

import taichi as ti

logger = logging.getLogger(__name__)

ARCHITECTURES = {
    "cpu": ti.cpu,
    "gpu": ti.gpu,
    "cuda": ti.cuda,
    "vulkan": ti.vulkan,
    "metal": ti.metal,
}


def init_taichi(arch: str = "gpu", debug: bool = False) -> str:
    """Initialize Taichi on the requested backend.

    IEEE semantics are kept (fast_math=False) so that the NaN and infinity
    checks in the integrator behave. A GPU request falls back to the CPU
    when no GPU backend can be started. Random numbers come from the
    per-pixel streams in core/rng.py, so Taichi's own seed is left alone.

    Args:
        arch: One of "cpu", "gpu", "cuda", "vulkan" or "metal".
        debug: Enable Taichi bounds checking.

    Returns:
        The name of the backend actually started.

    Raises:
        ValueError: If arch is not a known backend name.
    """
    if arch not in ARCHITECTURES:
        raise ValueError(f"Unknown arch {arch!r}; expected one of {sorted(ARCHITECTURES)}")

    if arch == "cpu":
        ti.init(arch=ti.cpu, fast_math=False, debug=debug)
        return "cpu"

    try:
        ti.init(arch=ARCHITECTURES[arch], fast_math=False, debug=debug)
    except RuntimeError as e:
        logger.warning("Could not start %s backend (%s); using cpu", arch, e)
        ti.init(arch=ti.cpu, fast_math=False, debug=debug)
        return "cpu"
    return arch
