"""
Per-stream worker thread with a bounded drop-oldest queue.

Decouples acquisition from processing: offer() never blocks the caller.
When the queue is full the oldest not-yet-processed frame is dropped and
counted, so load shedding is always visible in the stream's stats.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Deque, Optional

from models.errors import AnalyticsError
from models.frame import Frame
from pipeline.controller import PipelineController


class StreamWorker:
    """
    Single-threaded execution for one stream's controller.

    Example:
        worker = StreamWorker(controller, capacity=8)
        worker.start()
        worker.offer(frame)
        ...
        worker.stop()
    """

    def __init__(self, controller: PipelineController, capacity: int):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.controller = controller
        self.capacity = capacity
        self._queue: Deque[Frame] = deque()
        self._cond = threading.Condition()
        self._running = False
        self._busy = False
        self._thread: Optional[threading.Thread] = None
        self.frames_dropped = 0
        self.frames_processed = 0

    @property
    def is_running(self) -> bool:
        return self._running

    def __len__(self) -> int:
        with self._cond:
            return len(self._queue)

    def start(self) -> None:
        with self._cond:
            if self._running:
                return
            self._running = True
        self._thread = threading.Thread(
            target=self._run,
            name=f"stream-{self.controller.stream_id}",
            daemon=True,
        )
        self._thread.start()
        logging.info(f"[{self.controller.stream_id}] Stream worker started")

    def offer(self, frame: Frame) -> bool:
        """
        Queue a frame without blocking.

        Returns:
            False only if the worker is not running. A full queue drops its
            oldest frame and still accepts the new one.
        """
        with self._cond:
            if not self._running:
                return False
            if len(self._queue) >= self.capacity:
                self._queue.popleft()
                self.frames_dropped += 1
                self.controller.stats.frames_dropped = self.frames_dropped
                logging.debug(
                    f"[{self.controller.stream_id}] Queue full, dropped oldest frame "
                    f"(dropped={self.frames_dropped})"
                )
            self._queue.append(frame)
            self._cond.notify_all()
            return True

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until the queue is empty and no frame is in progress."""
        with self._cond:
            return self._cond.wait_for(lambda: not self._queue and not self._busy, timeout=timeout)

    def stop(self, drain: bool = True, timeout: Optional[float] = 5.0) -> None:
        """
        Stop the worker thread.

        Args:
            drain: Process frames still queued before stopping; otherwise
                   they are discarded and counted as dropped.
            timeout: Seconds to wait for the thread to exit.
        """
        if drain:
            self.wait_idle(timeout=timeout)
        with self._cond:
            if not drain and self._queue:
                self.frames_dropped += len(self._queue)
                self.controller.stats.frames_dropped = self.frames_dropped
                self._queue.clear()
            self._running = False
            self._cond.notify_all()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
        logging.info(
            f"[{self.controller.stream_id}] Stream worker stopped "
            f"(processed={self.frames_processed}, dropped={self.frames_dropped})"
        )

    def _run(self) -> None:
        while True:
            with self._cond:
                self._cond.wait_for(lambda: self._queue or not self._running)
                if not self._queue:
                    # Stopped and empty
                    self._cond.notify_all()
                    return
                frame = self._queue.popleft()
                self._busy = True

            try:
                self.controller.submit(frame)
            except AnalyticsError as e:
                logging.error(f"[{self.controller.stream_id}] Frame not processed: {e}")
            except Exception as e:
                logging.exception(f"[{self.controller.stream_id}] Unexpected pipeline error: {e}")
            finally:
                with self._cond:
                    self._busy = False
                    self.frames_processed += 1
                    self._cond.notify_all()
