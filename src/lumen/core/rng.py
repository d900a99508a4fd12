"""Independent random number streams for parallel Monte Carlo sampling.

Every render worker (one per pixel) owns its own PCG32 generator state, kept
in a Taichi field and addressed by an integer stream id. Sampling functions
take the stream id explicitly, so no random state is ever shared between
workers and a fixed seed reproduces the same image no matter how the kernel
is scheduled across threads.

Streams are seeded on the host from a NumPy ``SeedSequence``.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.lumen.core.rng import rng_float, seed_streams
    >>> seed_streams(1234, count=16)
    >>> # Inside a kernel: value = rng_float(stream)
"""

import numpy as np
import taichi as ti

# One stream per pixel of the largest supported render target
MAX_STREAMS = 2048 * 2048

# PCG32 (RXS-M-XS output) constants. The increment only needs to be odd for
# the underlying LCG to have full period.
_PCG_MULTIPLIER = 747796405
_PCG_INCREMENT = 1013904223
_PCG_OUTPUT_MULTIPLIER = 277803737

# 2^-24: maps the top 24 bits of a draw onto [0, 1)
_INV_2_24 = 1.0 / 16777216.0

_rng_state = ti.field(dtype=ti.u32, shape=MAX_STREAMS)


def seed_streams(seed: int | None, count: int) -> int:
    """Seed the first ``count`` random streams.

    Args:
        seed: Root seed. ``None`` draws fresh OS entropy, which makes the
            render non-reproducible.
        count: Number of streams to seed (usually width * height).

    Returns:
        The root entropy actually used, so a non-seeded run can be repeated.

    Raises:
        ValueError: If count is not in [1, MAX_STREAMS].
    """
    if count <= 0 or count > MAX_STREAMS:
        raise ValueError(f"Stream count {count} must be in [1, {MAX_STREAMS}]")

    sequence = np.random.SeedSequence(seed)
    states = np.zeros(MAX_STREAMS, dtype=np.uint32)
    states[:count] = sequence.generate_state(count, dtype=np.uint32)
    _rng_state.from_numpy(states)
    return int(sequence.entropy)


def get_stream_states(count: int) -> np.ndarray:
    """Return a copy of the first ``count`` generator states."""
    return _rng_state.to_numpy()[:count].copy()


@ti.func
def _pcg_step(state: ti.u32) -> ti.u32:
    return state * ti.u32(_PCG_MULTIPLIER) + ti.u32(_PCG_INCREMENT)


@ti.func
def _pcg_output(state: ti.u32) -> ti.u32:
    shift = (state >> ti.u32(28)) + ti.u32(4)
    word = ((state >> shift) ^ state) * ti.u32(_PCG_OUTPUT_MULTIPLIER)
    return (word >> ti.u32(22)) ^ word


@ti.func
def rng_u32(stream: ti.i32) -> ti.u32:
    """Advance a stream and return 32 random bits.

    Args:
        stream: The stream id owned by the calling worker.

    Returns:
        A uniformly distributed 32-bit unsigned integer.
    """
    state = _pcg_step(_rng_state[stream])
    _rng_state[stream] = state
    return _pcg_output(state)


@ti.func
def rng_float(stream: ti.i32) -> ti.f32:
    """Draw a uniform float in [0, 1) from a stream.

    Args:
        stream: The stream id owned by the calling worker.

    Returns:
        A float in [0, 1) with 24 bits of randomness.
    """
    return ti.cast(rng_u32(stream) >> ti.u32(8), ti.f32) * _INV_2_24


@ti.func
def rng_range(stream: ti.i32, low: ti.f32, high: ti.f32) -> ti.f32:
    """Draw a uniform float in [low, high) from a stream."""
    return low + (high - low) * rng_float(stream)
