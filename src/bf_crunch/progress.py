import threading
from dataclasses import dataclass, field
from typing import Optional, Tuple

from bf_crunch.models.solution import Solution


@dataclass(frozen=True, slots=True)
class SearchSnapshot:
    """Minimal immutable snapshot of search progress."""

    version: int
    length: int
    shapes: int
    traces: int
    bound: int
    elapsed: float
    complete: bool = False
    solutions: Tuple[Solution, ...] = field(default_factory=tuple)


class ProgressChannel:
    """
    Thread-safe single-slot channel of search snapshots.

    Workers number their snapshots under the driver lock but publish them
    outside it, so a snapshot can arrive after a newer one. The channel keeps
    only the highest version it has seen and drops everything older, and
    nothing is accepted once the search has closed it.
    """

    def __init__(self) -> None:
        self._condition = threading.Condition()
        self._pending: Optional[SearchSnapshot] = None
        self._latest = 0
        self._closed = False

    def publish(self, snapshot: SearchSnapshot) -> bool:
        """Offer a snapshot. Returns False when it is stale or the channel is closed."""
        with self._condition:
            if self._closed or snapshot.version <= self._latest:
                return False
            self._pending = snapshot
            self._latest = snapshot.version
            self._condition.notify()
            return True

    def close(self) -> None:
        """Close the channel. A pending snapshot is still delivered."""
        with self._condition:
            self._closed = True
            self._condition.notify_all()

    @property
    def closed(self) -> bool:
        with self._condition:
            return self._closed

    @property
    def latest(self) -> int:
        """Version of the newest snapshot accepted so far."""
        with self._condition:
            return self._latest

    def get(self, timeout: Optional[float] = None) -> Optional[SearchSnapshot]:
        """Wait for an undelivered snapshot. Returns None once closed and drained."""
        with self._condition:
            ready = self._condition.wait_for(lambda: self._pending is not None or self._closed, timeout)
            if not ready:
                raise TimeoutError("No snapshot within the timeout")
            snapshot, self._pending = self._pending, None
            return snapshot
