"""
Bounded ANPR worker pool shared across streams.

ANPR is the dominant latency cost, so recognition calls from all stream
controllers run on one thread pool with a cap on in-flight calls. The
calling controller waits for its own result inside its serialized frame
path, which keeps per-stream ordering intact.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeout
from typing import Any, Callable, Optional, TypeVar

from models.errors import CapacityExceeded, DetectorFailure


T = TypeVar("T")


class AnprWorkerPool:
    """
    Thread pool with a bounded number of pending calls and a per-call timeout.

    Example:
        pool = AnprWorkerPool(max_workers=2, max_pending=8, timeout_s=2.0)
        candidates = pool.run(detector.process_frame, frame, region)
    """

    def __init__(
        self,
        max_workers: int = 2,
        max_pending: int = 8,
        timeout_s: Optional[float] = 2.0,
    ):
        """
        Args:
            max_workers: Threads running recognition concurrently.
            max_pending: Calls allowed in flight (running or queued) at once.
            timeout_s: Seconds to wait for a result; None waits indefinitely.
        """
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if max_pending < max_workers:
            raise ValueError("max_pending must be at least max_workers")
        self.max_workers = max_workers
        self.max_pending = max_pending
        self.timeout_s = timeout_s
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="anpr")
        self._slots = threading.BoundedSemaphore(max_pending)
        self._lock = threading.Lock()
        self._closed = False
        self.submitted = 0
        self.rejected = 0
        self.timeouts = 0

    def run(self, fn: Callable[..., T], *args: Any) -> T:
        """
        Run `fn(*args)` on the pool and wait for its result.

        Raises:
            CapacityExceeded: If max_pending calls are already in flight or
                the pool has been shut down.
            DetectorFailure: If the call overruns timeout_s. The overrunning
                call is not cancelled; its slot frees when it finishes.
            Exception: Whatever `fn` raises.
        """
        if self._closed or not self._slots.acquire(blocking=False):
            with self._lock:
                self.rejected += 1
            raise CapacityExceeded("ANPR worker pool is saturated")

        try:
            future: Future = self._executor.submit(self._call, fn, *args)
        except RuntimeError as e:
            self._slots.release()
            with self._lock:
                self.rejected += 1
            raise CapacityExceeded(f"ANPR worker pool unavailable: {e}") from e

        with self._lock:
            self.submitted += 1

        try:
            return future.result(timeout=self.timeout_s)
        except FuturesTimeout:
            with self._lock:
                self.timeouts += 1
            raise DetectorFailure(f"ANPR call exceeded {self.timeout_s}s") from None

    def _call(self, fn: Callable[..., T], *args: Any) -> T:
        # Free the slot before the future resolves so the caller can submit again at once
        try:
            return fn(*args)
        finally:
            self._slots.release()

    def shutdown(self, wait: bool = True) -> None:
        self._closed = True
        self._executor.shutdown(wait=wait)
        logging.info(
            f"ANPR worker pool stopped (submitted={self.submitted}, "
            f"rejected={self.rejected}, timeouts={self.timeouts})"
        )

    def __enter__(self) -> "AnprWorkerPool":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown()
