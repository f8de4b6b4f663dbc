"""
Plate track model for tracker state.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .detection import PlateCandidate, Region


@dataclass
class PlateTrack:
    """
    One continuous appearance of a plate in a stream.

    Attributes:
        stream_id: Stream the track belongs to.
        plate_text: Normalized plate text (the track's identity).
        raw_text: Text of the best reading seen so far.
        first_seen: Timestamp of the creating detection.
        last_seen: Timestamp of the latest matching detection.
        best_confidence: Highest confidence observed.
        misses: Consecutive updates without a matching detection.
        hits: Number of matching detections (including the first).
        region: Bounding box of the latest matching detection.
    """
    stream_id: str
    plate_text: str
    raw_text: str
    first_seen: float
    last_seen: float
    best_confidence: float
    misses: int = 0
    hits: int = 1
    region: Optional[Region] = None

    @classmethod
    def from_candidate(
        cls,
        stream_id: str,
        plate_text: str,
        candidate: PlateCandidate,
    ) -> "PlateTrack":
        return cls(
            stream_id=stream_id,
            plate_text=plate_text,
            raw_text=candidate.text,
            first_seen=candidate.timestamp,
            last_seen=candidate.timestamp,
            best_confidence=candidate.confidence,
            region=candidate.region,
        )

    def confirm(self, candidate: PlateCandidate) -> None:
        """Apply a matching detection: refresh, reset misses, raise the peak."""
        self.last_seen = candidate.timestamp
        self.misses = 0
        self.hits += 1
        self.region = candidate.region
        if candidate.confidence > self.best_confidence:
            self.best_confidence = candidate.confidence
            self.raw_text = candidate.text

    def miss(self) -> int:
        """Record an update without a match. Returns the new miss count."""
        self.misses += 1
        return self.misses

    @property
    def duration(self) -> float:
        return self.last_seen - self.first_seen
