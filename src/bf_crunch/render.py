"""Literal program text for a shape and an emission plan."""
from typing import List, Sequence

from bf_crunch.models.plan import EmissionPlan, PlanStep, adjustment
from bf_crunch.models.shape import Shape


def render_prefix(shape: Shape) -> str:
    return shape.render()


def render_roll(run: Sequence[PlanStep]) -> str:
    """
    A roll: travel to the cell printed last, walk back over the run adjusting
    every cell, then let the loop print them all on its way to the zero.
    """
    opening = run[0]
    walk = ">" if opening.roll < 0 else "<"
    adjusts = walk.join(adjustment(step.delta) for step in reversed(run))
    return opening.route.render() + adjusts + ("[.<]" if opening.roll < 0 else "[.>]")


def render_tail(plan: EmissionPlan) -> str:
    parts: List[str] = []
    steps = plan.steps
    index = 0
    while index < len(steps):
        step = steps[index]
        if not step.roll:
            parts.append(step.render())
            index += 1
            continue
        end = index + 1
        while end < len(steps) and steps[end].rolled:
            end += 1
        parts.append(render_roll(steps[index:end]))
        index = end
    return "".join(parts)


def render_program(shape: Shape, plan: EmissionPlan) -> str:
    """The complete program: initialization prefix followed by the emission tail."""
    return render_prefix(shape) + render_tail(plan)
