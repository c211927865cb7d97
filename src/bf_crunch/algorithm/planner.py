"""
Minimum-cost emission of a goal text from the cells of one catalog.

Nodes are visited in text order. Writing a byte leaves it in its cell, so later
nodes at the same offset start from that byte instead of the catalog value and
zero cells appear and disappear as the plan goes. The search is a depth-first
branch and bound: candidates of every character are tried cheapest first, and
the first complete plan becomes the incumbent whose cost every later branch has
to beat.

Besides printing one character per node, a roll prints a run of characters from
neighbouring cells next to a zero with a single `[.<]` or `[.>]` loop. The lower
bound of the remaining text only counts single-character nodes, so with rolls
enabled the search is exact over plain nodes and takes rolls wherever they fit
under that bound.
"""
from __future__ import annotations

import threading
from bisect import bisect_left, bisect_right, insort
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, TypeAlias

from bf_crunch.algorithm.catalog import StateCatalog
from bf_crunch.models.plan import EmissionPlan, PlanStep, Route
from bf_crunch.models.tape import ROLL_COST, ZIP_COST, adjust_cost, adjust_delta

# Shortest run of characters printed by one roll loop.
MIN_ROLL = 4


class PlannerInvariantError(RuntimeError):
    pass


@dataclass(frozen=True, slots=True)
class Found:
    plan: EmissionPlan


@dataclass(frozen=True, slots=True)
class Pruned:
    """The text cannot be emitted within the budget whatever the tape holds."""


@dataclass(frozen=True, slots=True)
class Exhausted:
    """No plan for this catalog fits under the budget."""


PlanOutcome: TypeAlias = "Found | Pruned | Exhausted"


def lower_bounds(goal: bytes) -> List[int]:
    """
    Suffix sums of the cheapest possible node cost per character.

    A character costs at least its output symbol. When it differs from the one
    before it, the pointer either moves or adjusts the cell it just printed.
    """
    costs = [1 + (index > 0 and goal[index] != goal[index - 1]) for index in range(len(goal))]
    suffix = [0] * (len(goal) + 1)
    for index in range(len(goal) - 1, -1, -1):
        suffix[index] = suffix[index + 1] + costs[index]
    return suffix


def non_zero_runs(goal: bytes) -> List[int]:
    """Number of consecutive non-zero characters starting at each index."""
    runs = [0] * (len(goal) + 1)
    for index in range(len(goal) - 1, -1, -1):
        runs[index] = runs[index + 1] + 1 if goal[index] else 0
    return runs


def zip_left(pointer: int, target: int, zeros: Sequence[int]) -> Optional[Route]:
    """Cheapest route to `target` through a `[<]` landing, if any zero allows one."""
    best = None
    left = bisect_right(zeros, pointer - 1)
    if left == 0:
        return None
    # Zeros bracketing the target, restricted to those left of the pointer.
    at = min(bisect_right(zeros, target), left)
    for index in (at - 1, at):
        if not 0 <= index < left:
            continue
        landing = zeros[index]
        # The zip starts on the nearest non-zero cell at or left of the pointer
        # that has `landing` as its next zero.
        start = pointer if index + 1 >= len(zeros) else min(zeros[index + 1] - 1, pointer)
        if start <= landing:
            continue
        route = Route(pre=start - pointer, zip=-1, post=target - landing)
        if best is None or route.cost < best.cost:
            best = route
    return best


def zip_right(pointer: int, target: int, zeros: Sequence[int]) -> Optional[Route]:
    """Cheapest route to `target` through a `[>]` landing, if any zero allows one."""
    best = None
    right = bisect_left(zeros, pointer + 1)
    if right == len(zeros):
        return None
    at = max(bisect_left(zeros, target), right)
    for index in (at - 1, at):
        if not right <= index < len(zeros):
            continue
        landing = zeros[index]
        start = pointer if index == 0 else max(zeros[index - 1] + 1, pointer)
        if start >= landing:
            continue
        route = Route(pre=start - pointer, zip=1, post=target - landing)
        if best is None or route.cost < best.cost:
            best = route
    return best


def best_route(pointer: int, target: int, zeros: Sequence[int], zip_moves: bool = True) -> Route:
    """Cheapest pointer travel from `pointer` to `target`; plain moves win ties."""
    route = Route(pre=target - pointer)
    if not zip_moves or abs(target - pointer) <= ZIP_COST:
        return route
    for zipped in (zip_left(pointer, target, zeros), zip_right(pointer, target, zeros)):
        if zipped is not None and zipped.cost < route.cost:
            route = zipped
    return route


# (key, offset, cost, steps, pointer afterwards). The key is the cost so far plus
# the option's cost plus the lower bound of the characters it leaves.
_Option = Tuple[int, int, int, Tuple[PlanStep, ...], int]


@dataclass(slots=True)
class _Frame:
    index: int
    cost: int
    pointer: int
    cells: Dict[int, int]
    zeros: Tuple[int, ...]
    options: List[_Option] = field(default_factory=list)
    next: int = 0


class _Search:
    def __init__(
        self,
        goal: bytes,
        catalog: StateCatalog,
        budget: int,
        max_node_cost: int,
        unique_cells: bool,
        zip_moves: bool,
        roll_moves: bool,
    ):
        self.goal = goal
        self.catalog = catalog
        self.limit = budget
        self.max_node_cost = max_node_cost
        self.unique_cells = unique_cells
        self.zip_moves = zip_moves
        self.roll_moves = roll_moves
        self.rest = lower_bounds(goal)
        self.runs = non_zero_runs(goal)

    def value(self, frame: _Frame, offset: int) -> Optional[int]:
        if offset in frame.cells:
            return frame.cells[offset]
        state = self.catalog.at(offset)
        return None if state is None else state.value

    def options(self, frame: _Frame) -> List[_Option]:
        """Every admissible move for the next character, most promising first."""
        index = frame.index
        target = self.goal[index]
        after = self.rest[index + 1]
        cap = min(self.max_node_cost, self.limit - frame.cost - after - 1)
        allowance = cap - 1

        options: List[_Option] = []

        def consider(offset: int, value: int):
            adjust = adjust_cost(value, target)
            if adjust > allowance:
                return
            route = best_route(frame.pointer, offset, frame.zeros, self.zip_moves)
            node = route.cost + adjust + 1
            if node <= cap:
                step = PlanStep(offset=offset, cost=node, delta=adjust_delta(value, target), route=route)
                options.append((frame.cost + node + after, offset, node, (step,), offset))

        if cap >= 1:
            if not self.unique_cells:
                for offset, value in frame.cells.items():
                    consider(offset, value)

            for distance in range(min(allowance, 128) + 1):
                for value in {(target + distance) & 0xFF, (target - distance) & 0xFF}:
                    for state in self.catalog.with_value(value):
                        if state.offset not in frame.cells:
                            consider(state.offset, state.value)

        if self.roll_moves and self.runs[index] >= MIN_ROLL:
            at = bisect_right(frame.zeros, frame.pointer)
            for zero in frame.zeros[max(at - 1, 0):at + 1]:
                for direction in (-1, 1):
                    options.extend(self.rolls(frame, zero, direction))

        options.sort(key=lambda option: (option[0], option[1]))
        return options

    def rolls(self, frame: _Frame, zero: int, direction: int) -> List[_Option]:
        """
        Every roll printing the next characters from the cells next to `zero`,
        in the order a `[.<]` (direction -1) or `[.>]` (+1) loop reaches them.
        """
        index = frame.index
        values = []
        for distance in range(1, self.runs[index] + 1):
            offset = zero - direction * distance
            if not 0 <= offset <= self.catalog.window_end:
                break
            if self.unique_cells and offset in frame.cells:
                break
            value = self.value(frame, offset)
            if value is None:
                break
            values.append(value)
        if len(values) < MIN_ROLL:
            return []

        route = best_route(frame.pointer, zero - direction, frame.zeros, self.zip_moves)
        if route.cost + ROLL_COST > self.max_node_cost:
            return []

        options: List[_Option] = []
        for length in range(MIN_ROLL, len(values) + 1):
            steps = []
            total = 0
            for position in range(length):
                distance = length - position
                value = values[distance - 1]
                target = self.goal[index + position]
                adjust = adjust_cost(value, target)
                if position == 0:
                    cost = route.cost + adjust + ROLL_COST
                    step = PlanStep(
                        offset=zero - direction * distance,
                        cost=cost,
                        delta=adjust_delta(value, target),
                        route=route,
                        roll=direction,
                    )
                else:
                    cost = adjust + 1
                    step = PlanStep(
                        offset=zero - direction * distance,
                        cost=cost,
                        delta=adjust_delta(value, target),
                        route=Route(pre=direction),
                        rolled=True,
                    )
                if cost > self.max_node_cost:
                    break
                steps.append(step)
                total += cost
            if len(steps) < length:
                continue
            key = frame.cost + total + self.rest[index + length]
            if key < self.limit:
                options.append((key, steps[0].offset, total, tuple(steps), zero))
        return options

    def child(self, frame: _Frame, steps: Tuple[PlanStep, ...], cost: int, pointer: int) -> _Frame:
        cells = dict(frame.cells)
        zeros = frame.zeros
        for step, written in zip(steps, self.goal[frame.index:]):
            was_zero = self.value(frame, step.offset) == 0
            cells[step.offset] = written
            if was_zero and written:
                zeros = tuple(zero for zero in zeros if zero != step.offset)
            elif not was_zero and not written:
                updated = list(zeros)
                insort(updated, step.offset)
                zeros = tuple(updated)

        return _Frame(frame.index + len(steps), frame.cost + cost, pointer, cells, zeros)

    def run(self, start: int, cancel: Optional[threading.Event]) -> Optional[EmissionPlan]:
        best = None
        root = _Frame(0, 0, start, {}, self.catalog.zeros)
        root.options = self.options(root)
        stack = [root]
        path: List[PlanStep] = []

        while stack:
            if cancel is not None and cancel.is_set():
                break

            frame = stack[-1]
            if frame.next >= len(frame.options):
                stack.pop()
                continue

            key, _, cost, steps, pointer = frame.options[frame.next]
            frame.next += 1
            if key >= self.limit:
                # Options are sorted, so none of the remaining ones fit either.
                stack.pop()
                continue

            del path[frame.index:]
            path.extend(steps)

            if frame.index + len(steps) == len(self.goal):
                best = EmissionPlan(start=start, steps=tuple(path))
                self.limit = frame.cost + cost
                continue

            child = self.child(frame, steps, cost, pointer)
            child.options = self.options(child)
            stack.append(child)

        return best


def plan_emission(
    goal: bytes,
    catalog: StateCatalog,
    start: int,
    budget: int,
    *,
    max_node_cost: int,
    unique_cells: bool = False,
    zip_moves: bool = True,
    roll_moves: bool = True,
    cancel: Optional[threading.Event] = None,
) -> PlanOutcome:
    """
    Find the cheapest plan emitting `goal` from `catalog` with cost below `budget`.

    `start` is the pointer when the tail begins (the loop exit). A plan is only
    returned when its cost is strictly below `budget`. When `cancel` is set the
    best plan found so far is returned. `roll_moves` and `zip_moves` switch the
    loop-based shortcuts on or off.
    """
    if not 0 <= start <= catalog.window_end:
        raise PlannerInvariantError(f"Start pointer {start} is outside the window [0, {catalog.window_end}]")
    for state in catalog:
        if not 0 <= state.offset <= catalog.window_end:
            raise PlannerInvariantError(f"Catalog state {state} is outside the window [0, {catalog.window_end}]")

    search = _Search(goal, catalog, budget, max_node_cost, unique_cells, zip_moves, roll_moves)
    if search.rest[0] >= budget:
        return Pruned()
    if not goal:
        return Found(EmissionPlan(start=start))

    plan = search.run(start, cancel)
    if plan is None:
        return Exhausted()
    return Found(plan)
