"""Per-key single-flight registry for rank computations."""

from __future__ import annotations

import threading
from concurrent.futures import Future
from typing import Callable, Generic, TypeVar

T = TypeVar("T")


class InFlightRegistry(Generic[T]):
    """Lets concurrent callers for the same key share one computation.

    The first caller for a key runs ``compute``; callers arriving while it
    runs block on the same future and receive its result or exception. The
    key is released once the computation finishes, so later calls compute
    again.
    """

    def __init__(self) -> None:
        self._futures: dict[str, Future[T]] = {}
        self._lock = threading.Lock()

    def run(self, key: str, compute: Callable[[], T]) -> tuple[T, bool]:
        """Return ``(result, joined)``; ``joined`` is True for waiters."""
        with self._lock:
            existing = self._futures.get(key)
            if existing is None:
                future: Future[T] = Future()
                self._futures[key] = future
        if existing is not None:
            return existing.result(), True

        try:
            result = compute()
        except BaseException as exc:
            future.set_exception(exc)
            raise
        else:
            future.set_result(result)
            return result, False
        finally:
            with self._lock:
                self._futures.pop(key, None)

    def pending(self) -> int:
        with self._lock:
            return len(self._futures)
