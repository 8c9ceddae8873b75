"""Bounded work queues for the pipeline stages.

Each stage of the sync pipeline runs its operations on its own
``BoundedWorkQueue``. A queue admits tasks in arrival order and never runs
more than ``max_concurrent`` of them at once. The backlog of pending tasks is
not bounded.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable

from .config import ConcurrencyLimits

logger = logging.getLogger(__name__)


class BoundedWorkQueue:
    """FIFO executor with a fixed concurrency ceiling.

    Backed by a ``ThreadPoolExecutor`` with ``max_concurrent`` workers: the
    executor's work queue gives arrival-order admission and the worker count
    is the ceiling. Every task, including one that raises, releases its slot
    when it returns. A task's exception is delivered only through its own
    ``Future``; the queue stays in service.
    """

    def __init__(self, max_concurrent: int, name: str = "queue"):
        """Create a queue.

        Args:
            max_concurrent: Maximum number of tasks running at the same time
            name: Name used for worker threads and log messages
        """
        if max_concurrent < 1:
            raise ValueError(f"max_concurrent must be at least 1, got {max_concurrent}")

        self.max_concurrent = max_concurrent
        self.name = name
        self._executor = ThreadPoolExecutor(
            max_workers=max_concurrent,
            thread_name_prefix=f"blob-mirror-{name}",
        )
        self._lock = threading.Lock()
        self._submitted = 0
        self._running = 0
        self._peak = 0
        self._completed = 0

    def submit(self, fn: Callable[..., Any], *args, **kwargs) -> Future:
        """Queue a task for execution.

        Returns:
            Future resolving to the task's return value or exception
        """
        with self._lock:
            self._submitted += 1
        return self._executor.submit(self._run, fn, args, kwargs)

    def _run(self, fn: Callable[..., Any], args, kwargs) -> Any:
        with self._lock:
            self._running += 1
            self._peak = max(self._peak, self._running)
        try:
            return fn(*args, **kwargs)
        finally:
            with self._lock:
                self._running -= 1
                self._completed += 1

    @property
    def running(self) -> int:
        """Number of tasks running right now."""
        with self._lock:
            return self._running

    @property
    def peak(self) -> int:
        """Highest number of tasks observed running at the same time."""
        with self._lock:
            return self._peak

    @property
    def submitted(self) -> int:
        with self._lock:
            return self._submitted

    @property
    def completed(self) -> int:
        """Number of tasks that ran to completion or failure."""
        with self._lock:
            return self._completed

    def shutdown(self, wait: bool = True, cancel_pending: bool = False) -> None:
        """Stop accepting tasks.

        Args:
            wait: Block until running tasks finish
            cancel_pending: Cancel tasks that have not started yet
        """
        logger.debug(
            f"Shutting down {self.name} queue "
            f"(completed={self.completed}, peak={self.peak}/{self.max_concurrent})"
        )
        self._executor.shutdown(wait=wait, cancel_futures=cancel_pending)

    def __enter__(self) -> "BoundedWorkQueue":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown(wait=True, cancel_pending=exc_type is not None)

    def __repr__(self) -> str:
        return f"BoundedWorkQueue(name={self.name!r}, max_concurrent={self.max_concurrent})"


@dataclass
class StageQueues:
    """The four independent queues of one sync run."""
    container_creation: BoundedWorkQueue
    existence_check: BoundedWorkQueue
    stream_copy: BoundedWorkQueue
    container_sync: BoundedWorkQueue

    @classmethod
    def from_limits(cls, limits: ConcurrencyLimits) -> "StageQueues":
        return cls(
            container_creation=BoundedWorkQueue(limits.container_creation, "create"),
            existence_check=BoundedWorkQueue(limits.existence_check, "check"),
            stream_copy=BoundedWorkQueue(limits.stream_copy, "stream"),
            container_sync=BoundedWorkQueue(limits.container_sync, "sync"),
        )

    def shutdown(self, wait: bool = True, cancel_pending: bool = False) -> None:
        # Outermost stage first so no container job submits to a closed queue
        for queue in (
            self.container_sync,
            self.container_creation,
            self.existence_check,
            self.stream_copy,
        ):
            queue.shutdown(wait=wait, cancel_pending=cancel_pending)
