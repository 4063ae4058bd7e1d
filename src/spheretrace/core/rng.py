"""Deterministic random streams for Monte Carlo sampling.

Every camera sample owns an independent random stream. The stream state is a
32-bit unsigned integer that is passed into and returned from every Taichi
function that consumes randomness, so no random state is shared between
parallel pixel workers.

The initial state is derived by hashing the global seed, the pixel index and
the sample index (Wang hash); successive values come from a xorshift32
generator. This makes a render bit-identical across runs, thread counts and
progressive batch splits, given the same seed.

For tests the stream can be replaced by a fixed sequence of values. In that
mode every sample restarts at the beginning of the sequence and reads it
cyclically, which makes the output of the whole pipeline predictable.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretrace.core.rng import rng_init, rng_next, set_seed
    >>> set_seed(1234)
    >>> # Within a Taichi kernel:
    >>> # state = rng_init(pixel_index, sample_index)
    >>> # value, state = rng_next(state)
"""

from collections.abc import Sequence

import taichi as ti

# Stream modes
RNG_MODE_SEEDED = 0
RNG_MODE_FIXED = 1

# Maximum length of an injected fixed sequence
MAX_FIXED_VALUES = 1024

DEFAULT_SEED = 0

_seed = ti.field(dtype=ti.u32, shape=())
_rng_mode = ti.field(dtype=ti.i32, shape=())
_fixed_values = ti.field(dtype=ti.f32, shape=MAX_FIXED_VALUES)
_fixed_count = ti.field(dtype=ti.i32, shape=())


def set_seed(seed: int) -> None:
    """Set the global seed mixed into every per-sample stream.

    Args:
        seed: Any integer. Only the low 32 bits are used.
    """
    _seed[None] = seed & 0xFFFFFFFF


def get_seed() -> int:
    """Get the current global seed."""
    return int(_seed[None])


def use_fixed_sequence(values: Sequence[float]) -> None:
    """Replace the random stream with a fixed, cyclic sequence of values.

    Each sample starts reading at the first value, so every sample of every
    pixel sees the same draws in the same order.

    Args:
        values: Values in [0, 1) returned in order by rng_next().

    Raises:
        ValueError: If the sequence is empty, too long, or has values
            outside [0, 1).
    """
    if len(values) == 0:
        raise ValueError("Fixed random sequence must not be empty")
    if len(values) > MAX_FIXED_VALUES:
        raise ValueError(
            f"Fixed random sequence has {len(values)} values, "
            f"maximum is {MAX_FIXED_VALUES}"
        )
    for i, value in enumerate(values):
        if value < 0.0 or value >= 1.0:
            raise ValueError(f"Fixed random value {i} = {value} is outside [0, 1)")

    for i, value in enumerate(values):
        _fixed_values[i] = value
    _fixed_count[None] = len(values)
    _rng_mode[None] = RNG_MODE_FIXED


def use_seeded_stream() -> None:
    """Restore the hashed, seeded random stream."""
    _rng_mode[None] = RNG_MODE_SEEDED


def is_fixed_sequence() -> bool:
    """Check whether the fixed-sequence mode is active."""
    return _rng_mode[None] == RNG_MODE_FIXED


def reset_rng() -> None:
    """Restore the seeded stream with the default seed."""
    set_seed(DEFAULT_SEED)
    use_seeded_stream()


@ti.func
def wang_hash(value: ti.u32) -> ti.u32:
    """Scramble a 32-bit integer (Thomas Wang's integer hash)."""
    h = value
    h = (h ^ ti.u32(61)) ^ (h >> 16)
    h = h * ti.u32(9)
    h = h ^ (h >> 4)
    h = h * ti.u32(0x27D4EB2D)
    h = h ^ (h >> 15)
    return h


@ti.func
def rng_init(pixel_index: ti.u32, sample_index: ti.u32) -> ti.u32:
    """Derive the initial stream state for one sample of one pixel.

    Args:
        pixel_index: Flattened pixel index (row * width + column).
        sample_index: Index of the sample within the pixel.

    Returns:
        A non-zero stream state, or 0 in fixed-sequence mode (the position
        in the injected sequence).
    """
    state = ti.u32(0)
    if _rng_mode[None] == RNG_MODE_SEEDED:
        state = wang_hash(_seed[None])
        state = wang_hash(state ^ pixel_index)
        state = wang_hash(state ^ sample_index)
        # xorshift32 has a fixed point at zero
        if state == ti.u32(0):
            state = ti.u32(1)
    return state


@ti.func
def rng_next(state: ti.u32):
    """Draw a uniform value in [0, 1) and advance the stream.

    Args:
        state: The current stream state.

    Returns:
        A tuple (value, new_state).
    """
    value = 0.0
    new_state = state
    if _rng_mode[None] == RNG_MODE_FIXED:
        count = ti.cast(ti.max(_fixed_count[None], 1), ti.u32)
        value = _fixed_values[ti.cast(state % count, ti.i32)]
        new_state = state + ti.u32(1)
    else:
        x = state
        x = x ^ (x << 13)
        x = x ^ (x >> 17)
        x = x ^ (x << 5)
        new_state = x
        # Top 24 bits give an exactly representable f32 in [0, 1)
        value = ti.cast(x >> 8, ti.f32) * (1.0 / 16777216.0)
    return value, new_state


@ti.func
def rng_range(low: ti.f32, high: ti.f32, state: ti.u32):
    """Draw a uniform value in [low, high) and advance the stream."""
    value, new_state = rng_next(state)
    return low + (high - low) * value, new_state
