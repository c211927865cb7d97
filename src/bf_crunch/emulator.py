"""
A reference machine for the tape language.

The tape is unbounded in both directions and starts zeroed unless seeded. Input
(`,`) is not part of the crunched programs and is rejected.
"""
from collections import defaultdict
from typing import Dict, List, Mapping, Optional

from bf_crunch.models.tape import CELL_MASK

DEFAULT_MAX_STEPS = 10_000_000


class EmulatorError(RuntimeError):
    pass


def match_brackets(program: str) -> Dict[int, int]:
    """Map every bracket position to its partner."""
    pairs: Dict[int, int] = {}
    opened: List[int] = []
    for position, symbol in enumerate(program):
        if symbol == "[":
            opened.append(position)
        elif symbol == "]":
            if not opened:
                raise EmulatorError(f"Unmatched ']' at position {position}")
            partner = opened.pop()
            pairs[partner] = position
            pairs[position] = partner
    if opened:
        raise EmulatorError(f"Unmatched '[' at position {opened[-1]}")
    return pairs


class Machine:
    def __init__(
        self,
        cells: Optional[Mapping[int, int]] = None,
        pointer: int = 0,
        *,
        max_steps: int = DEFAULT_MAX_STEPS,
        min_pointer: Optional[int] = None,
    ) -> None:
        self.tape: Dict[int, int] = defaultdict(int)
        for offset, value in (cells or {}).items():
            self.tape[offset] = value & CELL_MASK
        self.pointer = pointer
        self.max_steps = max_steps
        self.min_pointer = min_pointer
        self.steps = 0

    def cell(self, offset: int) -> int:
        return self.tape.get(offset, 0)

    def cells(self, start: int, stop: int) -> List[int]:
        """Values of the half-open range [start, stop)."""
        return [self.tape.get(offset, 0) for offset in range(start, stop)]

    def run(self, program: str) -> bytes:
        """Execute `program` from the current state and return everything it printed."""
        if "," in program:
            raise EmulatorError("Input is not supported")
        pairs = match_brackets(program)
        output = bytearray()
        tape = self.tape
        position = 0

        while position < len(program):
            symbol = program[position]
            if symbol == "+":
                tape[self.pointer] = (tape[self.pointer] + 1) & CELL_MASK
            elif symbol == "-":
                tape[self.pointer] = (tape[self.pointer] - 1) & CELL_MASK
            elif symbol == ">":
                self.pointer += 1
            elif symbol == "<":
                self.pointer -= 1
                if self.min_pointer is not None and self.pointer < self.min_pointer:
                    raise EmulatorError(f"Pointer ran off the tape at position {position}")
            elif symbol == "[":
                if tape[self.pointer] == 0:
                    position = pairs[position]
            elif symbol == "]":
                if tape[self.pointer] != 0:
                    position = pairs[position]
            elif symbol == ".":
                output.append(tape[self.pointer])

            position += 1
            self.steps += 1
            if self.steps > self.max_steps:
                raise EmulatorError(f"Step limit of {self.max_steps} exceeded")

        return bytes(output)


def run(program: str, max_steps: int = DEFAULT_MAX_STEPS) -> bytes:
    return Machine(max_steps=max_steps).run(program)
