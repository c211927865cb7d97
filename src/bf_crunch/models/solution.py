from dataclasses import dataclass
from typing import List, Tuple

from bf_crunch.models.plan import EmissionPlan
from bf_crunch.models.shape import Shape
from bf_crunch.render import render_program


@dataclass(frozen=True, slots=True)
class Solution:
    """A complete program found by the search."""

    shape: Shape
    plan: EmissionPlan
    exit_pointer: int
    length: int

    @property
    def prefix(self) -> str:
        return self.shape.render()

    def pairs(self) -> List[Tuple[int, int]]:
        return self.plan.pairs()

    def touched(self) -> List[int]:
        return self.plan.touched()

    def program(self) -> str:
        return render_program(self.shape, self.plan)
