import threading
import time
from typing import Protocol


class IdGenerator(Protocol):
    def __call__(self) -> int:
        ...


class MillisIdGenerator:
    """
    Millisecond-timestamp ids that never repeat within one process.
    Two calls in the same millisecond get consecutive values instead of colliding.
    """

    def __init__(self, clock=time.time):
        self._clock = clock
        self._last = 0
        self._lock = threading.Lock()

    def __call__(self) -> int:
        now = int(self._clock() * 1000)
        with self._lock:
            self._last = max(now, self._last + 1)
            return self._last


class SequenceIdGenerator:
    # deterministic ids, handy for tests and seeding
    def __init__(self, start: int = 1, step: int = 1):
        self._next = start
        self._step = step
        self._lock = threading.Lock()

    def __call__(self) -> int:
        with self._lock:
            value = self._next
            self._next += self._step
            return value
