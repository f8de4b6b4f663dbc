"""
SightingEvent model for plate sighting start/end events.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .track import PlateTrack


SIGHTING_START = "start"
SIGHTING_END = "end"


@dataclass(frozen=True)
class SightingEvent:
    """
    An event emitted to the downstream sink when a track starts or ends.

    Attributes:
        kind: "start" or "end".
        stream_id: Stream the plate was seen on.
        plate_text: Normalized plate text.
        start_time: Timestamp of the first detection.
        end_time: Timestamp of the ending update; None on start events.
        peak_confidence: Highest confidence observed up to emission.
    """
    kind: str
    stream_id: str
    plate_text: str
    start_time: float
    end_time: Optional[float]
    peak_confidence: float

    @property
    def is_start(self) -> bool:
        return self.kind == SIGHTING_START

    @property
    def is_end(self) -> bool:
        return self.kind == SIGHTING_END

    @classmethod
    def start(cls, track: PlateTrack) -> "SightingEvent":
        return cls(
            kind=SIGHTING_START,
            stream_id=track.stream_id,
            plate_text=track.plate_text,
            start_time=track.first_seen,
            end_time=None,
            peak_confidence=track.best_confidence,
        )

    @classmethod
    def end(cls, track: PlateTrack, end_time: float) -> "SightingEvent":
        return cls(
            kind=SIGHTING_END,
            stream_id=track.stream_id,
            plate_text=track.plate_text,
            start_time=track.first_seen,
            end_time=end_time,
            peak_confidence=track.best_confidence,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "kind": self.kind,
            "stream_id": self.stream_id,
            "plate_text": self.plate_text,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "peak_confidence": self.peak_confidence,
        }
