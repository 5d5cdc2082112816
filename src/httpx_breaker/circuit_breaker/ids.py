"""Identity generators for breakers constructed without an explicit id."""

import itertools
import threading
from collections.abc import Callable

IdGenerator = Callable[[], str]


class SequentialIdGenerator:
    """Thread-safe generator yielding ``"0"``, ``"1"``, ``"2"``, ..."""

    def __init__(self, start: int = 0) -> None:
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def __call__(self) -> str:
        with self._lock:
            return str(next(self._counter))


# Shared by every breaker that gets neither an id nor a generator. Never reset.
default_id_generator = SequentialIdGenerator()
