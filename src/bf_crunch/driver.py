import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Callable, List, Optional, Set

import structlog

from bf_crunch.algorithm.catalog import build_catalog
from bf_crunch.algorithm.planner import Found, lower_bounds, plan_emission
from bf_crunch.algorithm.recurrence import unroll
from bf_crunch.algorithm.segments import shape_pairs
from bf_crunch.bound import SearchBound
from bf_crunch.config import SearchConfig
from bf_crunch.models.shape import Shape
from bf_crunch.models.solution import Solution
from bf_crunch.progress import ProgressChannel, SearchSnapshot

log = structlog.get_logger(__name__)

# Shapes evaluated between two progress snapshots.
PROGRESS_INTERVAL = 500

# In-flight shapes per worker.
QUEUE_DEPTH = 4

SolutionCallback = Callable[[Solution], None]


class SearchDriver:
    """
    Runs the whole pipeline over increasing initialization lengths.

    Every shape goes through the recurrence engine, the catalog and the planner
    on its own; the only state shared between shapes is the bound.
    """

    def __init__(
        self,
        config: SearchConfig,
        goal: bytes,
        *,
        bound: Optional[SearchBound] = None,
        cancel: Optional[threading.Event] = None,
        on_solution: Optional[SolutionCallback] = None,
        progress: Optional[ProgressChannel] = None,
    ) -> None:
        self.config = config
        self.goal = goal
        self.limit, self.rolling = config.initial_limit(goal)
        self.bound = bound if bound is not None else SearchBound.from_limit(self.limit)
        self.cancel = cancel if cancel is not None else threading.Event()
        self.on_solution = on_solution
        self.progress = progress
        self.solutions: List[Solution] = []

        self._floor = lower_bounds(goal)[0]
        self._lock = threading.Lock()
        self._length = config.min_init
        self._shapes = 0
        self._traces = 0
        self._version = 0
        self._started = time.monotonic()

    def run(self) -> List[Solution]:
        """Crunch every length from min_init until max_init, the bound, or cancellation."""
        log.info(
            "search started",
            goal=self.goal.decode("latin-1"),
            limit=self.limit,
            rolling=self.rolling,
            workers=self.config.workers,
        )
        length = self.config.min_init
        try:
            while not self.cancel.is_set():
                if self.config.max_init is not None and length > self.config.max_init:
                    break
                if length + self._floor >= self.bound.current:
                    log.info("bound reached", length=length, bound=self.bound.current)
                    break
                self.crunch(length)
                length += 1
        finally:
            self._publish(complete=True)
            if self.progress is not None:
                self.progress.close()

        if self.cancel.is_set():
            log.warning("search cancelled", length=length, solutions=len(self.solutions))
        else:
            log.info("search finished", solutions=len(self.solutions), bound=self.bound.current)
        return list(self.solutions)

    def crunch(self, length: int) -> None:
        """Evaluate every shape of one initialization length."""
        with self._lock:
            self._length = length
            self._shapes = 0
            self._traces = 0
        log.info("crunching", length=length, bound=self.bound.current)
        self._publish()

        pairs = shape_pairs(length, self.config)
        if self.config.workers == 1:
            for shape, twin in pairs:
                if self.cancel.is_set():
                    break
                self.evaluate_pair(shape, twin)
            return

        with ThreadPoolExecutor(max_workers=self.config.workers) as executor:
            pending: Set[Future] = set()
            for shape, twin in pairs:
                if self.cancel.is_set():
                    break
                pending.add(executor.submit(self.evaluate_pair, shape, twin))
                if len(pending) >= self.config.workers * QUEUE_DEPTH:
                    done, pending = wait(pending, return_when=FIRST_COMPLETED)
                    for future in done:
                        future.result()
            for future in pending:
                future.result()

    def evaluate_pair(self, shape: Shape, twin: Optional[Shape]) -> List[Solution]:
        """
        Evaluate a shape and then its mirrored twin. The twin only counts when
        it beats the program of its source shape.
        """
        solutions = []
        solution = self.evaluate(shape)
        if solution is not None:
            solutions.append(solution)
        if twin is not None and not self.cancel.is_set():
            mirrored = self.evaluate(twin, ceiling=None if solution is None else solution.length)
            if mirrored is not None:
                solutions.append(mirrored)
        return solutions

    def evaluate(self, shape: Shape, ceiling: Optional[int] = None) -> Optional[Solution]:
        """
        Run one shape through the pipeline. Returns the solution it produced, if any.

        A solution has to be shorter than the current bound and than `ceiling`.
        """
        bound = self.bound.current
        if ceiling is not None:
            bound = min(bound, ceiling)
        if shape.length + self._floor >= bound:
            self._count(traced=False)
            return None

        trace = unroll(
            shape,
            max_tape=self.config.max_tape,
            min_tape=self.config.min_tape,
            max_loops=self.config.max_loops,
        )
        self._count(traced=trace is not None)
        if trace is None:
            return None

        catalog = build_catalog(trace, self.goal, self.config.max_node_cost)
        outcome = plan_emission(
            self.goal,
            catalog,
            trace.exit_pointer,
            bound - shape.length,
            max_node_cost=self.config.max_node_cost,
            unique_cells=self.config.unique_cells,
            cancel=self.cancel,
        )
        if not isinstance(outcome, Found):
            return None

        total = shape.length + outcome.plan.cost
        if self.rolling and not self.bound.try_decrease(total):
            return None

        solution = Solution(shape=shape, plan=outcome.plan, exit_pointer=trace.exit_pointer, length=total)
        self._surface(solution)
        return solution

    def _count(self, traced: bool) -> None:
        with self._lock:
            self._shapes += 1
            if traced:
                self._traces += 1
            due = self._shapes % PROGRESS_INTERVAL == 0
        if due:
            self._publish()

    def _surface(self, solution: Solution) -> None:
        with self._lock:
            self.solutions.append(solution)
        log.info(
            "solution found",
            length=solution.length,
            prefix=solution.prefix,
            exit=solution.exit_pointer,
            cost=solution.plan.cost,
        )
        if self.on_solution is not None:
            self.on_solution(solution)
        self._publish()

    def _publish(self, complete: bool = False) -> None:
        if self.progress is None:
            return
        with self._lock:
            self._version += 1
            snapshot = SearchSnapshot(
                version=self._version,
                length=self._length,
                shapes=self._shapes,
                traces=self._traces,
                bound=self.bound.current,
                elapsed=time.monotonic() - self._started,
                complete=complete,
                solutions=tuple(self.solutions),
            )
        self.progress.publish(snapshot)
