"""Thread pool used to fan out one page of items at a time."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from threading import Lock
from typing import Callable, Iterable, TypeVar

T = TypeVar("T")
R = TypeVar("R")


class ThreadPoolManager:
    """Own a lazily created executor and run item batches to completion."""

    def __init__(self, default_workers: int = 16) -> None:
        self.default_workers = default_workers
        self._executor: ThreadPoolExecutor | None = None
        self._lock = Lock()

    def get(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.default_workers, thread_name_prefix="filesweep"
                )
            return self._executor

    def run_batch(self, func: Callable[[T], R], items: Iterable[T]) -> list[R]:
        """Run ``func`` over ``items`` concurrently and wait for every call.

        Results come back in completion order. If any call raised, the first
        error (in completion order) is re-raised once the whole batch settled.
        """

        executor = self.get()
        futures: list[Future[R]] = [executor.submit(func, item) for item in items]
        results: list[R] = []
        first_error: BaseException | None = None
        for future in as_completed(futures):
            error = future.exception()
            if error is not None:
                if first_error is None:
                    first_error = error
                continue
            results.append(future.result())
        if first_error is not None:
            raise first_error
        return results

    def shutdown(self) -> None:
        with self._lock:
            if self._executor is not None:
                self._executor.shutdown(wait=True)
                self._executor = None


__all__ = ["ThreadPoolManager"]
