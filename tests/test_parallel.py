"""Tests for bounded batch execution."""

import threading
import time

from photo_offloader.errors import BatchError
from photo_offloader.parallel import run_batch


class TestRunBatch:

    def test_collects_results(self):
        batch = run_batch(lambda x: x * 2, [1, 2, 3, 4], max_workers=2)

        assert sorted(batch.results) == [2, 4, 6, 8]
        assert batch.errors == []
        assert batch.error is None

    def test_empty_items(self):
        batch = run_batch(lambda x: x, [], max_workers=4)

        assert batch.results == []
        assert batch.error is None

    def test_failure_does_not_cancel_siblings(self):
        finished = []

        def work(n):
            if n == 0:
                raise ValueError("first item broke")
            time.sleep(0.01)
            finished.append(n)
            return n

        batch = run_batch(work, range(6), max_workers=3)

        assert sorted(finished) == [1, 2, 3, 4, 5]
        assert len(batch.errors) == 1
        assert isinstance(batch.error, BatchError)
        assert "first item broke" in str(batch.error)

    def test_every_error_is_kept(self):
        def work(n):
            raise RuntimeError(f"failed {n}")

        batch = run_batch(work, range(20), max_workers=4)

        assert len(batch.error) == 20
        assert sorted(str(e) for e in batch.errors) == sorted(f"failed {n}" for n in range(20))

    def test_concurrency_is_bounded(self):
        lock = threading.Lock()
        active = [0]
        peak = [0]

        def work(n):
            with lock:
                active[0] += 1
                peak[0] = max(peak[0], active[0])
            time.sleep(0.01)
            with lock:
                active[0] -= 1
            return n

        batch = run_batch(work, range(30), max_workers=3)

        assert len(batch.results) == 30
        assert peak[0] <= 3

    def test_all_tasks_finish_before_return(self):
        done = []

        def work(n):
            time.sleep(0.02)
            done.append(n)
            return n

        run_batch(work, range(8), max_workers=8)

        assert len(done) == 8

