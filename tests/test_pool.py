"""
Tests for the bounded ANPR worker pool.
"""

import threading

import pytest

from models.errors import CapacityExceeded, DetectorFailure
from pipeline.pool import AnprWorkerPool


class TestAnprWorkerPool:
    def test_run_returns_result(self):
        with AnprWorkerPool(max_workers=2, max_pending=2, timeout_s=5.0) as pool:
            assert pool.run(lambda a, b: a + b, 2, 3) == 5
            assert pool.submitted == 1

    def test_back_to_back_calls_reuse_the_slot(self):
        with AnprWorkerPool(max_workers=1, max_pending=1, timeout_s=5.0) as pool:
            results = [pool.run(lambda i=i: i) for i in range(50)]

        assert results == list(range(50))
        assert pool.rejected == 0

    def test_errors_propagate(self):
        def fail():
            raise DetectorFailure("recognizer down")

        with AnprWorkerPool(max_workers=1, max_pending=1, timeout_s=5.0) as pool:
            with pytest.raises(DetectorFailure):
                pool.run(fail)

    def test_saturated_pool_rejects(self):
        started = threading.Event()
        release = threading.Event()
        results = []

        def slow():
            started.set()
            release.wait(5.0)
            return "done"

        pool = AnprWorkerPool(max_workers=1, max_pending=1, timeout_s=5.0)
        caller = threading.Thread(target=lambda: results.append(pool.run(slow)))
        caller.start()
        assert started.wait(5.0)

        with pytest.raises(CapacityExceeded):
            pool.run(lambda: "never")

        release.set()
        caller.join(5.0)
        pool.shutdown()

        assert results == ["done"]
        assert pool.rejected == 1

    def test_timeout_is_detector_failure(self):
        release = threading.Event()
        pool = AnprWorkerPool(max_workers=1, max_pending=2, timeout_s=0.05)

        with pytest.raises(DetectorFailure):
            pool.run(release.wait, 5.0)

        release.set()
        pool.shutdown()
        assert pool.timeouts == 1

    def test_shutdown_pool_rejects(self):
        pool = AnprWorkerPool(max_workers=1, max_pending=1)
        pool.shutdown()
        with pytest.raises(CapacityExceeded):
            pool.run(lambda: None)

    @pytest.mark.parametrize("kwargs", [
        {"max_workers": 0},
        {"max_workers": 4, "max_pending": 2},
    ])
    def test_invalid_sizes(self, kwargs):
        with pytest.raises(ValueError):
            AnprWorkerPool(**kwargs)
