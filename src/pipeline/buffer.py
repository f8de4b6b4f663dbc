"""
Fixed-capacity per-stream frame buffer.

Holds the most recent frame plus a short history. The buffer owns the
frames it holds; everything else only borrows the read-only view.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Deque, List, Optional

from models.frame import Frame


class FrameBuffer:
    """
    Bounded FIFO of frames for a single stream.

    All operations are O(1) amortized and never block.

    Example:
        buffer = FrameBuffer("cam-01", capacity=8)
        if buffer.submit(frame):
            latest = buffer.latest()
    """

    def __init__(self, stream_id: str, capacity: int, allow_eviction: bool = True):
        """
        Args:
            stream_id: The only stream id this buffer accepts.
            capacity: Maximum number of frames held.
            allow_eviction: When False, a full buffer rejects new frames
                while every held frame is still pending; released frames
                are history and make room as usual.
        """
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._stream_id = stream_id
        self._capacity = capacity
        self._allow_eviction = allow_eviction
        self._frames: Deque[Frame] = deque()
        self._pending = 0
        self.evicted = 0
        self.rejected = 0

    @property
    def stream_id(self) -> str:
        return self._stream_id

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._frames)

    def submit(self, frame: Frame) -> bool:
        """
        Store a frame, evicting the oldest when over capacity.

        Returns:
            False (with no side effect besides the reject counter) when the
            frame has non-positive dimensions, belongs to another stream, or
            the buffer is full of pending frames and eviction is disallowed.
        """
        if frame.width <= 0 or frame.height <= 0:
            self.rejected += 1
            logging.debug(f"[{self._stream_id}] rejected frame with size {frame.width}x{frame.height}")
            return False

        if frame.stream_id != self._stream_id:
            self.rejected += 1
            logging.debug(f"[{self._stream_id}] rejected frame for unknown stream {frame.stream_id!r}")
            return False

        if len(self._frames) >= self._capacity:
            if not self._allow_eviction and self._pending >= len(self._frames):
                self.rejected += 1
                logging.debug(f"[{self._stream_id}] rejected frame, buffer full of pending frames")
                return False
            if self._pending >= len(self._frames):
                self._pending -= 1
            self._frames.popleft()
            self.evicted += 1

        self._frames.append(frame)
        self._pending += 1
        return True

    def release(self) -> None:
        """Mark the oldest pending frame as processed. It stays in history."""
        if self._pending > 0:
            self._pending -= 1

    @property
    def pending(self) -> int:
        """Frames stored but not yet released by the consumer."""
        return self._pending

    def latest(self) -> Optional[Frame]:
        """Most recent frame, or None if nothing has been submitted."""
        if not self._frames:
            return None
        return self._frames[-1]

    def history(self) -> List[Frame]:
        """Held frames, oldest first."""
        return list(self._frames)

    def clear(self) -> None:
        self._frames.clear()
        self._pending = 0
