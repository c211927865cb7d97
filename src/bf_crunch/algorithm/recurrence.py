"""
Closed-form unrolling of a shape's outer loop.

The outer loop advances the pointer by one cell every pass, so a pass never
revisits an earlier tape snapshot. The inner loop is the only place a program of
this family can spin forever, and that is decided arithmetically per pass.
"""
from dataclasses import dataclass, field
from typing import Optional, Tuple

from bf_crunch.models.shape import Shape
from bf_crunch.models.tape import CELL_MASK, LOOP_ORIGIN, repeat_count


@dataclass(frozen=True, slots=True)
class LoopSnapshot:
    """Tape state right after pass `iteration` (0 is the seeded tape)."""

    iteration: int
    pointer: int
    counter: int
    repeats: int
    cells: Tuple[int, ...] = field(default_factory=tuple)

    def value(self, offset: int) -> int:
        """Cell value at `offset`; cells past the touched frontier are zero."""
        if 0 <= offset < len(self.cells):
            return self.cells[offset]
        return 0


@dataclass(frozen=True, slots=True)
class LoopTrace:
    shape: Shape
    passes: int
    exit_pointer: int
    window_end: int
    tape: Tuple[int, ...]
    snapshots: Tuple[LoopSnapshot, ...] = field(default_factory=tuple)

    def value(self, offset: int) -> int:
        return self.tape[offset]


def unroll(
    shape: Shape,
    *,
    max_tape: int,
    min_tape: int,
    max_loops: int,
    snapshots: bool = False,
) -> Optional[LoopTrace]:
    """
    Run the outer loop of `shape` to completion.

    Returns None when the shape never terminates, runs off the tape window, takes
    more than `max_loops` passes, or leaves a window shorter than `min_tape`.
    With `snapshots` every pass is recorded along with the touched tape frontier.
    """
    c = shape.c
    seeds = len(shape.s)
    limit = max_tape - len(c)
    if LOOP_ORIGIN + seeds > max_tape + 1:
        return None

    tape = bytearray(max_tape + 1)
    for i, term in enumerate(shape.s):
        tape[LOOP_ORIGIN + i] = term & CELL_MASK

    pointer = LOOP_ORIGIN
    frontier = LOOP_ORIGIN + seeds
    passes = 0
    history = []
    if snapshots:
        history.append(LoopSnapshot(0, pointer, 0, 0, tuple(tape[:frontier])))

    k0 = shape.k0
    k1 = shape.k1
    j0 = shape.j0
    j1 = shape.j1
    h = shape.h & CELL_MASK

    while True:
        if pointer >= limit:
            return None
        if tape[pointer] == 0:
            break
        if passes >= max_loops:
            return None

        counter = (tape[pointer] + k0) & CELL_MASK
        repeats = repeat_count(counter, j1)
        if repeats is None:
            return None
        if repeats:
            for t, term in enumerate(c, start=pointer + 1):
                tape[t] = (tape[t] + repeats * term) & CELL_MASK
            tape[pointer - 1] = (tape[pointer - 1] + repeats * j0) & CELL_MASK

        tape[pointer] = h
        pointer += 1
        tape[pointer] = (tape[pointer] + k1) & CELL_MASK
        passes += 1

        if snapshots:
            frontier = max(frontier, pointer + len(c) + 1)
            history.append(LoopSnapshot(passes, pointer, counter, repeats, tuple(tape[:frontier])))

    window_end = pointer + len(c) + 1
    if window_end < min_tape or window_end > max_tape:
        return None

    return LoopTrace(
        shape=shape,
        passes=passes,
        exit_pointer=pointer,
        window_end=window_end,
        tape=tuple(tape[: window_end + 1]),
        snapshots=tuple(history),
    )
