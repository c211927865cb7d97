from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

# Symbols every shape carries regardless of its parameters: the outer `[`, the
# inner `[<`, the `>` after j0, the inner `]`, the `>` before k1, the outer `]`
# and the extra `<` that balances the first c term.
FIXED_LENGTH = 8


def run(value: int, positive: str = "+", negative: str = "-") -> str:
    """A run of |value| adjustment symbols."""
    return (positive if value >= 0 else negative) * abs(value)


@dataclass(frozen=True, slots=True)
class Shape:
    """
    One initialization prefix of the form

        {s[n-1]}<...<{s0}[{k0}[<{j0}>{j1}>{c0}>{c1}...<<<]{h}>{k1}]

    The outer loop walks right along the tape; every pass copies the counter
    cell into its left neighbour (scaled by j0) and into the cells to its right
    (scaled by each c term).
    """

    s: Tuple[int, ...]
    k0: int
    k1: int
    j0: int
    j1: int
    c: Tuple[int, ...]
    h: int

    def __post_init__(self):
        if not self.s or self.s[0] == 0:
            raise ValueError("The loop cell s0 must be non-zero")
        if not self.c:
            raise ValueError("A shape needs at least one c term")
        if self.j1 < 1:
            raise ValueError(f"j1 must be positive, got {self.j1}")
        if self.j0 == 0:
            raise ValueError("j0 must be non-zero")

    @property
    def s_length(self) -> int:
        return sum(abs(term) for term in self.s) + len(self.s) - 1

    @property
    def c_length(self) -> int:
        return sum(abs(term) + 2 for term in self.c) - 1

    @property
    def k_length(self) -> int:
        return abs(self.k0) + abs(self.k1)

    @property
    def j_length(self) -> int:
        return abs(self.j0) + self.j1

    @property
    def length(self) -> int:
        """Rendered length, computed without rendering."""
        return (
            self.s_length
            + self.c_length
            + self.k_length
            + self.j_length
            + abs(self.h)
            + FIXED_LENGTH
        )

    def mirrored(self) -> Shape:
        """
        The twin with every sign flipped except j1.

        It exits at the same pointer with every cell ahead of the loop negated,
        while the cells left behind keep their j-copies with the opposite h.
        """
        return Shape(
            s=tuple(-term for term in self.s),
            k0=-self.k0,
            k1=-self.k1,
            j0=-self.j0,
            j1=self.j1,
            c=self.c,
            h=-self.h,
        )

    def render(self) -> str:
        """Literal prefix text."""
        # s[n-1] is written first, walking left onto the loop cell s0.
        seeds = "<".join(run(term) for term in reversed(self.s))
        body = "".join(">" + run(term) for term in self.c)
        return (
            f"{seeds}[{run(self.k0)}[<{run(self.j0)}>{'-' * self.j1}"
            f"{body}{'<' * len(self.c)}]{run(self.h)}>{run(self.k1)}]"
        )

    def __str__(self) -> str:
        return self.render()
