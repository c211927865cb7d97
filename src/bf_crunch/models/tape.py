"""Byte arithmetic shared by every stage of the search."""
from typing import Tuple

CELL_MODULUS = 256
CELL_MASK = 0xFF

# Offset of the outer loop cell (s0) inside a trace frame. Offset 1 receives the
# first j-segment copy and offset 0 is left untouched as a zip anchor.
LOOP_ORIGIN = 2

# Symbols of a zip route: `[<]` or `[>]`.
ZIP_COST = 3

# Symbols of a roll loop: `[.<]` or `[.>]`, output symbol included.
ROLL_COST = 4


def wrap(value: int) -> int:
    """Reduce any integer to a tape value."""
    return value & CELL_MASK


def add_byte(value: int, delta: int) -> int:
    return (value + delta) & CELL_MASK


def negate_byte(value: int) -> int:
    return -value & CELL_MASK


def adjust_cost(current: int, target: int) -> int:
    """Number of `+` or `-` symbols needed to turn `current` into `target`."""
    up = (target - current) & CELL_MASK
    down = (current - target) & CELL_MASK
    return up if up <= down else down


def adjust_delta(current: int, target: int) -> int:
    """Signed shortest adjustment from `current` to `target`; ties go upwards."""
    up = (target - current) & CELL_MASK
    down = (current - target) & CELL_MASK
    return up if up <= down else -down


def move_cost(source: int, target: int) -> int:
    return abs(target - source)


def split_counter_step(step: int) -> Tuple[int, int]:
    """Split a positive counter decrement into (shift, odd) with step == odd << shift."""
    if step <= 0:
        raise ValueError(f"Counter step must be positive, got {step}")
    shift = (step & -step).bit_length() - 1
    return shift, step >> shift


def inverse_odd(odd: int) -> int:
    """Multiplicative inverse of an odd value modulo 256."""
    if odd % 2 == 0:
        raise ValueError(f"Only odd values are invertible modulo {CELL_MODULUS}, got {odd}")
    return pow(odd, -1, CELL_MODULUS)


def repeat_count(counter: int, step: int) -> int | None:
    """
    How many times a `[...-{step}...]` loop runs when entered with `counter`.

    Returns None when the counter never reaches zero (it cycles through a residue
    class that excludes zero).
    """
    if counter == 0:
        return 0
    shift, odd = split_counter_step(step)
    if counter & ((1 << shift) - 1):
        return None
    period = CELL_MODULUS >> shift
    return ((counter >> shift) * inverse_odd(odd)) % period
