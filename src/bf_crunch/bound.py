import threading
from typing import List


class SearchBound:
    """
    Shared best program length. Only ever decreases.

    A program is an improvement when its length is strictly below `current`.
    """

    def __init__(self, initial: int) -> None:
        self._lock = threading.Lock()
        self._value = initial
        self._updates: List[int] = []

    @classmethod
    def from_limit(cls, limit: int) -> "SearchBound":
        """Bound admitting programs of at most `limit` symbols."""
        return cls(limit + 1)

    @property
    def current(self) -> int:
        with self._lock:
            return self._value

    def try_decrease(self, value: int) -> bool:
        """Compare-and-decrease. Returns True when `value` replaced the bound."""
        with self._lock:
            if value >= self._value:
                return False
            self._value = value
            self._updates.append(value)
            return True

    @property
    def updates(self) -> List[int]:
        """Every accepted value, in the order they were applied."""
        with self._lock:
            return list(self._updates)
