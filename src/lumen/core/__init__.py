"""Core rendering module.

Components:
    runtime: Taichi initialization (call before importing anything else)
    rng: Per-pixel PCG32 random streams
    ray: Ray data structure and vector utilities
    integrator: Radiance estimator, render kernel and render target
    renderer: ProgressiveRenderer and the config-driven entry points

Every module except runtime declares Taichi fields at import time, so
nothing is imported here. Import directly from the submodules once
Taichi has been initialized:

    from src.lumen.core.runtime import init_taichi
    init_taichi("cpu")
    from src.lumen.core.renderer import ProgressiveRenderer
"""
