from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Tuple

from bf_crunch.models.tape import ZIP_COST


def adjustment(delta: int) -> str:
    return ("+" if delta > 0 else "-") * abs(delta)


@dataclass(frozen=True, slots=True)
class Route:
    """
    Pointer travel to a node: `pre` plain moves, an optional zip (`[<]` is -1,
    `[>]` is +1, none is 0), then `post` plain moves.
    """

    pre: int
    zip: int = 0
    post: int = 0

    @property
    def cost(self) -> int:
        return abs(self.pre) + (ZIP_COST if self.zip else 0) + abs(self.post)

    def render(self) -> str:
        text = ("<" if self.pre < 0 else ">") * abs(self.pre)
        if self.zip:
            text += "[<]" if self.zip < 0 else "[>]"
        text += ("<" if self.post < 0 else ">") * abs(self.post)
        return text


@dataclass(frozen=True, slots=True)
class PlanStep:
    """
    One emitted character: where it is printed from and what it costs.

    A step with `roll` set opens a `[.<]` (-1) or `[.>]` (+1) loop that also
    prints the `rolled` steps following it from the neighbouring cells. Its
    route leads to the far end of that run, where the walk adjusting every cell
    of the run starts; each rolled step pays its adjustment plus one walk move.
    """

    offset: int
    cost: int
    delta: int
    route: Route
    roll: int = 0
    rolled: bool = False

    def render(self) -> str:
        return f"{self.route.render()}{adjustment(self.delta)}."

    def __str__(self) -> str:
        return f"({self.offset} {self.cost})"


@dataclass(frozen=True, slots=True)
class EmissionPlan:
    """Ordered nodes realizing the goal text, starting from the loop exit pointer."""

    start: int
    steps: Tuple[PlanStep, ...] = field(default_factory=tuple)

    @property
    def cost(self) -> int:
        return sum(step.cost for step in self.steps)

    @property
    def offsets(self) -> List[int]:
        return [step.offset for step in self.steps]

    def pairs(self) -> List[Tuple[int, int]]:
        return [(step.offset, step.cost) for step in self.steps]

    def touched(self) -> List[int]:
        """Distinct offsets used for output, in increasing order."""
        return sorted(set(self.offsets))

    def __len__(self) -> int:
        return len(self.steps)

    def __str__(self) -> str:
        return ", ".join(str(step) for step in self.steps)
