"""Fan-in primitives: count down from N, resolve on zero."""

import logging
import threading
from concurrent.futures import Future
from functools import partial
from typing import Any, Callable, Iterable, List, Optional, TypeVar

from .errors import StageError
from .work_queue import BoundedWorkQueue

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CountdownLatch:
    """Completion counter that resolves once when it reaches zero.

    ``count_down`` decrements and compares under one lock, so under
    concurrent completions exactly one caller observes the zero transition.
    ``fail`` records the first failure and releases waiters at once, without
    waiting for the remaining count.
    """

    def __init__(self, count: int):
        if count < 0:
            raise ValueError(f"count must be non-negative, got {count}")
        self._count = count
        self._lock = threading.Lock()
        self._done = threading.Event()
        self._error: Optional[BaseException] = None
        if count == 0:
            self._done.set()

    @property
    def count(self) -> int:
        """Completions still outstanding."""
        with self._lock:
            return self._count

    @property
    def error(self) -> Optional[BaseException]:
        """First recorded failure, if any."""
        with self._lock:
            return self._error

    def count_down(self) -> bool:
        """Record one completion.

        Returns:
            True for the single call that brought the count to zero

        Raises:
            ValueError: If called more times than the initial count
        """
        with self._lock:
            if self._count == 0:
                raise ValueError("count_down called on a latch that already reached zero")
            self._count -= 1
            reached_zero = self._count == 0
        if reached_zero:
            self._done.set()
        return reached_zero

    def fail(self, error: BaseException) -> bool:
        """Record a failure and release waiters.

        Returns:
            True if this was the first failure recorded
        """
        with self._lock:
            if self._error is not None:
                return False
            self._error = error
        self._done.set()
        return True

    def wait(self, timeout: Optional[float] = None) -> None:
        """Block until the count reaches zero or a failure is recorded.

        Raises:
            TimeoutError: If the timeout expires first
            BaseException: The first recorded failure
        """
        if not self._done.wait(timeout):
            raise TimeoutError(f"Latch still waiting on {self.count} completions")
        error = self.error
        if error is not None:
            raise error


def fan_out(
    queue: BoundedWorkQueue,
    items: Iterable[T],
    task: Callable[[T], Any],
    stage: str,
    identify: Callable[[T], str] = str,
    on_result: Optional[Callable[[T, Any], None]] = None,
) -> int:
    """Run ``task(item)`` for every item on ``queue`` and wait for all of them.

    ``on_result`` runs in the worker's completion callback before the latch
    is counted down, so every result has been applied when this returns.

    On the first failure the stage stops waiting, cancels its tasks that have
    not started yet and raises a ``StageError`` chained to the task's
    exception. Tasks already running finish on their own; their results are
    discarded.

    Args:
        queue: Queue the tasks run on
        items: Work items, submitted in order
        task: Callable run once per item
        stage: Stage name for errors and logs
        identify: Maps an item to its identity for error messages
        on_result: Optional callback receiving (item, result)

    Returns:
        Number of items processed

    Raises:
        StageError: If any task or ``on_result`` call fails
    """
    items = list(items)
    latch = CountdownLatch(len(items))
    futures: List[Future] = []

    for item in items:
        future = queue.submit(task, item)
        future.add_done_callback(
            partial(_settle, latch, item, stage, identify, on_result)
        )
        futures.append(future)

    try:
        latch.wait()
    except BaseException:
        cancelled = sum(1 for f in futures if f.cancel())
        if cancelled:
            logger.info(f"{stage}: cancelled {cancelled} queued task(s) after failure")
        raise

    return len(items)


def _settle(
    latch: CountdownLatch,
    item: Any,
    stage: str,
    identify: Callable[[Any], str],
    on_result: Optional[Callable[[Any, Any], None]],
    future: Future,
) -> None:
    """Completion callback: apply the result or fail the latch."""
    if future.cancelled():
        return

    exc = future.exception()
    if exc is None and on_result is not None:
        try:
            on_result(item, future.result())
        except Exception as e:
            exc = e

    if exc is not None:
        identity = identify(item)
        error = StageError(stage, identity, exc)
        error.__cause__ = exc
        if latch.fail(error):
            logger.error(f"{stage} failed for {identity}: {exc}")
        return

    latch.count_down()
