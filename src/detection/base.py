"""
Detection interfaces.

Motion and ANPR stages both "process a frame" but return different result
types, so they share a structural protocol rather than a base class:
- MotionDetector.process(frame) -> MotionResult
- AnprDetector.process(frame) -> List[PlateCandidate]
"""

from __future__ import annotations

from typing import Protocol, TypeVar

from models.frame import Frame


ResultT = TypeVar("ResultT", covariant=True)


class FrameProcessor(Protocol[ResultT]):
    """A stage that consumes one borrowed frame and returns a result."""

    @property
    def is_initialized(self) -> bool:
        ...

    def process(self, frame: Frame) -> ResultT:
        ...
