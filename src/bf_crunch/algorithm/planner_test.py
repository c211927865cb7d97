import itertools
import random
import threading

import pytest
from bf_crunch.algorithm.catalog import StateCatalog, build_catalog
from bf_crunch.algorithm.planner import (
    Exhausted,
    Found,
    PlannerInvariantError,
    Pruned,
    best_route,
    lower_bounds,
    non_zero_runs,
    plan_emission,
)
from bf_crunch.algorithm.recurrence import unroll
from bf_crunch.emulator import Machine
from bf_crunch.models.plan import Route
from bf_crunch.models.shape import Shape
from bf_crunch.models.tape import adjust_cost
from bf_crunch.render import render_tail

HUGE_BUDGET = 10**6


def powers_of_two_catalog(goal: bytes, max_node_cost: int = 20) -> StateCatalog:
    shape = Shape(s=(1,), k0=0, k1=0, j0=1, j1=1, c=(2,), h=0)
    trace = unroll(shape, max_tape=1250, min_tape=1, max_loops=30_000)
    return build_catalog(trace, goal, max_node_cost)


def brute_force(cells, goal, start, unique):
    """Cheapest plain-move plan over every ordered choice of cells."""
    best = None
    if unique:
        choices = itertools.permutations(range(len(cells)), len(goal))
    else:
        choices = itertools.product(range(len(cells)), repeat=len(goal))
    for offsets in choices:
        values = list(cells)
        pointer = start
        cost = 0
        for offset, target in zip(offsets, goal):
            cost += abs(offset - pointer) + adjust_cost(values[offset], target) + 1
            values[offset] = target
            pointer = offset
        if best is None or cost < best:
            best = cost
    return best


def emit(cells, start, plan) -> bytes:
    machine = Machine(dict(enumerate(cells)), start, min_pointer=0)
    return machine.run(render_tail(plan))


class TestLowerBounds:
    """Test suite for lower_bounds"""

    def test_suffix_sums(self):
        """Test that repeated characters only pay for their output symbol"""
        assert lower_bounds(b"aab") == [4, 3, 2, 0]

    def test_empty(self):
        assert lower_bounds(b"") == [0]

    def test_non_zero_runs(self):
        assert non_zero_runs(b"ab\x00cde") == [2, 1, 0, 3, 2, 1, 0]


class TestBestRoute:
    """Test suite for best_route"""

    def test_plain(self):
        assert best_route(5, 2, (0,)) == Route(pre=-3)

    def test_short_moves_never_zip(self):
        assert best_route(10, 7, (0, 8, 9)) == Route(pre=-3)

    def test_zip_left(self):
        route = best_route(22, 1, (0, 22))
        assert route == Route(pre=-1, zip=-1, post=1)
        assert route.cost == 5

    def test_zip_right(self):
        route = best_route(0, 21, (0, 22))
        assert route == Route(pre=1, zip=1, post=-1)
        assert route.cost == 5

    def test_zip_without_moves_from_non_zero_cell(self):
        """Test a zip straight from a non-zero cell onto the target"""
        route = best_route(10, 2, (2, 11))
        assert route == Route(pre=0, zip=-1, post=0)

    def test_disabled(self):
        assert best_route(22, 1, (0, 22), zip_moves=False) == Route(pre=-21)


class TestPlanEmission:
    """Test suite for plan_emission"""

    def test_reuses_written_cell(self):
        """Test that a written byte is adjusted in place for the next character"""
        catalog = powers_of_two_catalog(b"@A")
        outcome = plan_emission(b"@A", catalog, 10, HUGE_BUDGET, max_node_cost=20)
        assert isinstance(outcome, Found)
        assert outcome.plan.pairs() == [(7, 4), (7, 2)]
        assert outcome.plan.cost == 6
        assert outcome.plan.touched() == [7]
        assert render_tail(outcome.plan) == "<<<.+."

    def test_unique_cells(self):
        """Test that unique cells mode never prints from one offset twice"""
        catalog = powers_of_two_catalog(b"@A", max_node_cost=100)
        outcome = plan_emission(b"@A", catalog, 10, HUGE_BUDGET, max_node_cost=100, unique_cells=True)
        assert isinstance(outcome, Found)
        assert outcome.plan.offsets == [7, 6]
        assert outcome.plan.cost == 39

    def test_unique_cells_node_cost(self):
        """Test that no plan is found when every unique node is too expensive"""
        catalog = powers_of_two_catalog(b"@A")
        outcome = plan_emission(b"@A", catalog, 10, HUGE_BUDGET, max_node_cost=20, unique_cells=True)
        assert outcome == Exhausted()

    def test_budget_is_strict(self):
        """Test that a plan must cost strictly less than the budget"""
        catalog = powers_of_two_catalog(b"@A")
        assert plan_emission(b"@A", catalog, 10, 6, max_node_cost=20) == Exhausted()
        outcome = plan_emission(b"@A", catalog, 10, 7, max_node_cost=20)
        assert isinstance(outcome, Found)
        assert outcome.plan.cost == 6

    def test_pruned(self):
        """Test that a budget below the text's lower bound is pruned outright"""
        catalog = powers_of_two_catalog(b"@A")
        assert plan_emission(b"@A", catalog, 10, 3, max_node_cost=20) == Pruned()
        assert plan_emission(b"@A", catalog, 10, 4, max_node_cost=20) == Exhausted()

    def test_empty_goal(self):
        catalog = StateCatalog.from_cells([0, 1], b"", max_node_cost=5)
        outcome = plan_emission(b"", catalog, 0, 1, max_node_cost=5)
        assert isinstance(outcome, Found)
        assert len(outcome.plan) == 0

    def test_zip_left(self):
        """Test reaching a far cell with a left zip"""
        cells = [0, 72] + [50] * 20 + [0]
        catalog = StateCatalog.from_cells(cells, b"H", max_node_cost=20)
        outcome = plan_emission(b"H", catalog, 22, HUGE_BUDGET, max_node_cost=20)
        assert isinstance(outcome, Found)
        assert outcome.plan.cost == 6
        assert outcome.plan.steps[0].route == Route(pre=-1, zip=-1, post=1)
        assert render_tail(outcome.plan) == "<[<]>."
        assert emit(cells, 22, outcome.plan) == b"H"

    def test_zip_right(self):
        """Test reaching a far cell with a right zip"""
        cells = [0] + [50] * 20 + [72, 0]
        catalog = StateCatalog.from_cells(cells, b"H", max_node_cost=20)
        outcome = plan_emission(b"H", catalog, 0, HUGE_BUDGET, max_node_cost=20)
        assert isinstance(outcome, Found)
        assert outcome.plan.cost == 6
        assert render_tail(outcome.plan) == ">[>]<."
        assert emit(cells, 0, outcome.plan) == b"H"

    def test_far_cell_without_zips(self):
        """Test that the node cost cap applies when zips are disabled"""
        cells = [0, 72] + [50] * 20 + [0]
        catalog = StateCatalog.from_cells(cells, b"H", max_node_cost=20)
        outcome = plan_emission(b"H", catalog, 22, HUGE_BUDGET, max_node_cost=20, zip_moves=False)
        assert outcome == Exhausted()

    def test_zero_bytes_round_trip(self):
        """Test printing a zero byte and moving on from it"""
        cells = [0, 5] + [50] * 10 + [9, 1, 0]
        goal = b"\x00\x09"
        catalog = StateCatalog.from_cells(cells, goal, max_node_cost=30)
        outcome = plan_emission(goal, catalog, 1, HUGE_BUDGET, max_node_cost=30)
        assert isinstance(outcome, Found)
        assert emit(cells, 1, outcome.plan) == goal

    def test_start_outside_window(self):
        catalog = powers_of_two_catalog(b"@A")
        with pytest.raises(PlannerInvariantError, match="outside the window"):
            plan_emission(b"@A", catalog, 13, HUGE_BUDGET, max_node_cost=20)
        with pytest.raises(PlannerInvariantError, match="outside the window"):
            plan_emission(b"@A", catalog, -1, HUGE_BUDGET, max_node_cost=20)

    def test_cancelled(self):
        """Test that a cancelled search stops without a plan"""
        catalog = powers_of_two_catalog(b"@A")
        cancel = threading.Event()
        cancel.set()
        outcome = plan_emission(b"@A", catalog, 10, HUGE_BUDGET, max_node_cost=20, cancel=cancel)
        assert outcome == Exhausted()


class TestPlanOptimality:
    """The planner has to match an exhaustive search on small catalogs"""

    @pytest.mark.parametrize("unique", [False, True])
    def test_against_brute_force(self, unique):
        rng = random.Random(1234 + unique)
        for _ in range(25):
            size = rng.randint(2, 7)
            cells = [rng.randrange(256) for _ in range(size)]
            length = rng.randint(1, min(5, size) if unique else 5)
            goal = bytes(rng.choice(cells + [rng.randrange(256)]) ^ rng.randrange(4) for _ in range(length))
            start = rng.randrange(size)

            catalog = StateCatalog.from_cells(cells, goal, max_node_cost=1000)
            outcome = plan_emission(
                goal, catalog, start, HUGE_BUDGET, max_node_cost=1000, unique_cells=unique, zip_moves=False, roll_moves=False
            )
            assert isinstance(outcome, Found)
            assert outcome.plan.cost == brute_force(cells, goal, start, unique)
            assert emit(cells, start, outcome.plan) == goal
            if unique:
                assert len(set(outcome.plan.offsets)) == len(goal)

    def test_zips_never_cost_more(self):
        """Test that enabling zips keeps plans valid and never more expensive"""
        rng = random.Random(99)
        for _ in range(15):
            size = rng.randint(8, 30)
            cells = [rng.choice([0, 0, rng.randrange(256)]) for _ in range(size)]
            goal = bytes(rng.choice([0, rng.randrange(256)]) for _ in range(rng.randint(1, 3)))
            start = rng.randrange(size)

            catalog = StateCatalog.from_cells(cells, goal, max_node_cost=1000)
            plain = plan_emission(goal, catalog, start, HUGE_BUDGET, max_node_cost=1000, zip_moves=False)
            zipped = plan_emission(goal, catalog, start, HUGE_BUDGET, max_node_cost=1000)
            assert isinstance(plain, Found)
            assert isinstance(zipped, Found)
            assert zipped.plan.cost <= plain.plan.cost
            assert emit(cells, start, zipped.plan) == goal


class TestRolls:
    """Test suite for runs printed by a single loop"""

    def test_roll_left(self):
        """Test that a `[.<]` loop beats visiting every cell"""
        cells = [0, 97, 98, 99, 100, 0]
        goal = b"dcba"
        catalog = StateCatalog.from_cells(cells, goal, max_node_cost=20)

        plain = plan_emission(goal, catalog, 0, HUGE_BUDGET, max_node_cost=20, roll_moves=False)
        assert isinstance(plain, Found)
        assert plain.plan.cost == 11

        outcome = plan_emission(goal, catalog, 0, HUGE_BUDGET, max_node_cost=20)
        assert isinstance(outcome, Found)
        assert outcome.plan.cost == 8
        assert outcome.plan.pairs() == [(4, 5), (3, 1), (2, 1), (1, 1)]
        assert outcome.plan.steps[0].roll == -1
        assert all(step.rolled for step in outcome.plan.steps[1:])
        assert render_tail(outcome.plan) == ">>>>[.<]"
        assert emit(cells, 0, outcome.plan) == goal

    def test_roll_right(self):
        cells = [0, 100, 99, 98, 97, 0]
        goal = b"dcba"
        catalog = StateCatalog.from_cells(cells, goal, max_node_cost=20)
        outcome = plan_emission(goal, catalog, 5, HUGE_BUDGET, max_node_cost=20)
        assert isinstance(outcome, Found)
        assert outcome.plan.cost == 8
        assert outcome.plan.offsets == [1, 2, 3, 4]
        assert render_tail(outcome.plan) == "<<<<[.>]"
        assert emit(cells, 5, outcome.plan) == goal

    def test_roll_then_plain_node(self):
        """Test continuing from the zero a roll lands on"""
        cells = [0, 97, 98, 99, 100, 0]
        goal = b"dcba\x00"
        catalog = StateCatalog.from_cells(cells, goal, max_node_cost=20)
        outcome = plan_emission(goal, catalog, 0, HUGE_BUDGET, max_node_cost=20)
        assert isinstance(outcome, Found)
        assert outcome.plan.cost == 9
        assert render_tail(outcome.plan) == ">>>>[.<]."
        assert emit(cells, 0, outcome.plan) == goal

    def test_roll_needs_non_zero_text(self):
        """Test that a zero byte inside the run would stop the loop, so no roll is taken"""
        cells = [0, 97, 98, 99, 100, 0]
        goal = b"dc\x00a"
        catalog = StateCatalog.from_cells(cells, goal, max_node_cost=20)
        outcome = plan_emission(goal, catalog, 0, HUGE_BUDGET, max_node_cost=20)
        assert isinstance(outcome, Found)
        assert not any(step.roll or step.rolled for step in outcome.plan.steps)
        assert emit(cells, 0, outcome.plan) == goal

    def test_unique_cells(self):
        """Test that a roll never reuses a cell in unique cells mode"""
        cells = [0, 97, 98, 99, 100, 0, 101]
        goal = b"edcba"
        catalog = StateCatalog.from_cells(cells, goal, max_node_cost=20)
        outcome = plan_emission(goal, catalog, 0, HUGE_BUDGET, max_node_cost=20, unique_cells=True)
        assert isinstance(outcome, Found)
        assert len(set(outcome.plan.offsets)) == len(goal)
        assert emit(cells, 0, outcome.plan) == goal

    def test_rolls_keep_plans_valid(self):
        """Test that plans with rolls print the goal and never cost more"""
        rng = random.Random(7)
        for _ in range(20):
            size = rng.randint(6, 14)
            cells = [rng.choice([0, rng.randrange(90, 110)]) for _ in range(size)]
            goal = bytes(rng.randrange(95, 105) for _ in range(rng.randint(4, 6)))
            start = rng.randrange(size)

            catalog = StateCatalog.from_cells(cells, goal, max_node_cost=1000)
            plain = plan_emission(goal, catalog, start, HUGE_BUDGET, max_node_cost=1000, roll_moves=False)
            rolled = plan_emission(goal, catalog, start, HUGE_BUDGET, max_node_cost=1000)
            assert isinstance(plain, Found)
            assert isinstance(rolled, Found)
            assert rolled.plan.cost <= plain.plan.cost
            assert len(render_tail(rolled.plan)) == rolled.plan.cost
            assert emit(cells, start, rolled.plan) == goal
