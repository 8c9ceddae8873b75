"""Tests for the countdown latch and stage fan-out."""

import threading
import time

import pytest

from blob_mirror.errors import StageError
from blob_mirror.latch import CountdownLatch, fan_out
from blob_mirror.work_queue import BoundedWorkQueue


class TestCountdownLatch:
    """Test the fan-in counter."""

    def test_zero_transition_observed_once(self):
        """Under concurrent completions exactly one caller sees zero."""
        n = 200
        latch = CountdownLatch(n)
        hits = []
        barrier = threading.Barrier(8)

        def worker(count):
            barrier.wait()
            for _ in range(count):
                if latch.count_down():
                    hits.append(threading.get_ident())

        threads = [threading.Thread(target=worker, args=(n // 8,)) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(hits) == 1
        assert latch.count == 0

    def test_wait_blocks_until_last_completion(self):
        latch = CountdownLatch(3)
        released = threading.Event()

        def waiter():
            latch.wait(timeout=5)
            released.set()

        t = threading.Thread(target=waiter)
        t.start()

        latch.count_down()
        latch.count_down()
        assert not released.wait(0.05)

        latch.count_down()
        assert released.wait(5)
        t.join()

    def test_zero_count_is_already_resolved(self):
        latch = CountdownLatch(0)
        latch.wait(timeout=0.1)
        assert latch.count == 0

    def test_count_down_past_zero(self):
        latch = CountdownLatch(1)
        assert latch.count_down() is True
        with pytest.raises(ValueError):
            latch.count_down()

    def test_negative_count(self):
        with pytest.raises(ValueError):
            CountdownLatch(-1)

    def test_fail_releases_waiters_early(self):
        """A failure resolves the latch without the remaining completions."""
        latch = CountdownLatch(5)
        latch.count_down()

        assert latch.fail(RuntimeError("first")) is True
        assert latch.fail(RuntimeError("second")) is False

        with pytest.raises(RuntimeError, match="first"):
            latch.wait(timeout=1)
        assert latch.count == 4

    def test_wait_timeout(self):
        latch = CountdownLatch(1)
        with pytest.raises(TimeoutError):
            latch.wait(timeout=0.01)


class TestFanOut:
    """Test running a stage's tasks on a queue and waiting for all of them."""

    def test_all_results_applied_before_return(self, queue):
        results = {}

        def record(item, value):
            results[item] = value

        processed = fan_out(queue, range(20), lambda i: i * i, stage="square", on_result=record)

        assert processed == 20
        assert results == {i: i * i for i in range(20)}

    def test_empty_items(self, queue):
        calls = []
        assert fan_out(queue, [], calls.append, stage="noop") == 0
        assert calls == []

    def test_failure_raises_stage_error_with_cause(self, queue):
        def task(item):
            if item == "bad":
                raise OSError("disk on fire")
            return item

        with pytest.raises(StageError) as exc_info:
            fan_out(queue, ["a", "bad", "c"], task, stage="unit", identify=lambda i: f"item:{i}")

        error = exc_info.value
        assert error.stage == "unit"
        assert error.identity == "item:bad"
        assert isinstance(error.__cause__, OSError)
        assert "unit failed for item:bad" in str(error)

    def test_on_result_failure_fails_stage(self, queue):
        def record(item, value):
            raise KeyError(item)

        with pytest.raises(StageError) as exc_info:
            fan_out(queue, [1], lambda i: i, stage="record", on_result=record)

        assert isinstance(exc_info.value.__cause__, KeyError)

    def test_failure_cancels_queued_tasks(self):
        """Tasks still waiting for a slot are cancelled after a failure."""
        started = []
        lock = threading.Lock()

        def task(item):
            with lock:
                started.append(item)
            if item == 0:
                raise ValueError("first task fails")
            time.sleep(0.01)
            return item

        with BoundedWorkQueue(1, "serial") as queue:
            with pytest.raises(StageError):
                fan_out(queue, range(50), task, stage="serial")

        assert 0 in started
        assert len(started) < 50
