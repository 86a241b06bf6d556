"""Fixed-size worker pool for chunk computation, with an in-process fallback."""

from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class ChunkProcessingError(RuntimeError):
    """A chunk function raised; the whole comparison is abandoned."""

    def __init__(self, index: int, cause: BaseException):
        super().__init__(f"chunk {index} failed: {cause}")
        self.index = index
        self.cause = cause


def default_worker_count() -> int:
    return os.cpu_count() or 1


class ChunkExecutor:
    """Runs one function over a list of tasks, in parallel when possible.

    The pool is created on first use and reused across calls. If it cannot be
    created, or refuses work, the same function runs sequentially in the
    calling thread. Results always come back in task order.
    """

    def __init__(self, max_workers: Optional[int] = None, use_workers: bool = True):
        self.max_workers = max_workers or default_worker_count()
        self.use_workers = use_workers
        self._pool: Optional[ThreadPoolExecutor] = None
        self._lock = threading.Lock()
        self.parallel_runs = 0
        self.sequential_runs = 0

    @property
    def active(self) -> bool:
        return self._pool is not None

    def _get_pool(self) -> Optional[ThreadPoolExecutor]:
        if not self.use_workers or self.max_workers < 2:
            return None
        with self._lock:
            if self._pool is None:
                try:
                    self._pool = ThreadPoolExecutor(
                        max_workers=self.max_workers, thread_name_prefix="visreg-diff",
                    )
                except (RuntimeError, ValueError) as e:
                    logger.warning("Worker pool unavailable, diffing in-process: %s", e)
                    self.use_workers = False
                    return None
            return self._pool

    def run(self, fn: Callable[[T], R], tasks: Sequence[T]) -> list[R]:
        if len(tasks) > 1:
            pool = self._get_pool()
            if pool is not None:
                try:
                    futures = [pool.submit(fn, task) for task in tasks]
                except RuntimeError as e:
                    logger.warning("Worker pool rejected tasks, diffing in-process: %s", e)
                else:
                    self.parallel_runs += 1
                    return self._join(futures)
        self.sequential_runs += 1
        return self.run_sequential(fn, tasks)

    @staticmethod
    def run_sequential(fn: Callable[[T], R], tasks: Sequence[T]) -> list[R]:
        results = []
        for index, task in enumerate(tasks):
            try:
                results.append(fn(task))
            except Exception as e:
                raise ChunkProcessingError(index, e) from e
        return results

    @staticmethod
    def _join(futures: list[Future]) -> list[R]:
        # Wait for every chunk before reporting, even when one has failed
        results, failure = [], None
        for index, future in enumerate(futures):
            try:
                results.append(future.result())
            except Exception as e:
                if failure is None:
                    failure = ChunkProcessingError(index, e)
        if failure is not None:
            raise failure from failure.cause
        return results

    def status(self) -> dict:
        return {
            "max_workers": self.max_workers,
            "use_workers": self.use_workers,
            "pool_active": self.active,
            "parallel_runs": self.parallel_runs,
            "sequential_runs": self.sequential_runs,
        }

    def shutdown(self) -> None:
        with self._lock:
            if self._pool is not None:
                self._pool.shutdown(wait=True)
                self._pool = None
