from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from bf_crunch.algorithm.recurrence import LoopTrace
from bf_crunch.models.tape import adjust_cost


@dataclass(frozen=True, slots=True)
class CandidateState:
    """A cell of the final tape that can serve as an emission node."""

    iteration: int
    offset: int
    value: int


class StateCatalog:
    """
    Admissible states of one trace, indexed by value and by offset.

    Zero cells are recorded for the whole window whether or not they are
    admissible nodes, since zip moves land on them.
    """

    def __init__(self, states: Iterable[CandidateState], window_end: int, zeros: Iterable[int]):
        self.window_end = window_end
        self.zeros: Tuple[int, ...] = tuple(sorted(zeros))
        self._by_offset: Dict[int, CandidateState] = {}
        self._by_value: List[List[CandidateState]] = [[] for _ in range(256)]
        for state in states:
            if not 0 <= state.offset <= window_end:
                raise ValueError(f"State offset {state.offset} is outside the window [0, {window_end}]")
            self._by_offset[state.offset] = state
            self._by_value[state.value].append(state)

    @classmethod
    def from_cells(cls, cells: Sequence[int], goal: bytes, max_node_cost: int, passes: Optional[int] = None) -> StateCatalog:
        """Catalog of raw cell values laid out from offset 0 to len(cells) - 1."""
        if not cells:
            raise ValueError("A catalog needs at least one cell")
        window_end = len(cells) - 1
        if passes is None:
            passes = window_end
        allowance = max_node_cost - 1
        targets = set(goal)
        states = []
        for offset, value in enumerate(cells):
            value &= 0xFF
            if any(adjust_cost(value, target) <= allowance for target in targets):
                states.append(CandidateState(max(min(offset, passes), 0), offset, value))
        zeros = [offset for offset, value in enumerate(cells) if value & 0xFF == 0]
        return cls(states, window_end, zeros)

    def with_value(self, value: int) -> List[CandidateState]:
        return self._by_value[value & 0xFF]

    def at(self, offset: int) -> Optional[CandidateState]:
        return self._by_offset.get(offset)

    def iteration(self, offset: int) -> Optional[int]:
        state = self._by_offset.get(offset)
        return None if state is None else state.iteration

    def __len__(self) -> int:
        return len(self._by_offset)

    def __iter__(self):
        return iter(sorted(self._by_offset.values(), key=lambda state: state.offset))

    def __contains__(self, offset: int) -> bool:
        return offset in self._by_offset


def build_catalog(trace: LoopTrace, goal: bytes, max_node_cost: int) -> StateCatalog:
    """Index the admissible states of a finished trace for `goal`."""
    return StateCatalog.from_cells(trace.tape, goal, max_node_cost, passes=trace.passes)
