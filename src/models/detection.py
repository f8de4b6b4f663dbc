"""
Detection models: regions, motion results and plate candidates.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple


@dataclass(frozen=True)
class Region:
    """
    A rectangle in frame pixel coordinates.

    Attributes:
        x: Left edge.
        y: Top edge.
        w: Width in pixels.
        h: Height in pixels.
    """
    x: int
    y: int
    w: int
    h: int

    @property
    def x2(self) -> int:
        return self.x + self.w

    @property
    def y2(self) -> int:
        return self.y + self.h

    @property
    def area(self) -> int:
        if self.w <= 0 or self.h <= 0:
            return 0
        return self.w * self.h

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x + self.w / 2, self.y + self.h / 2)

    def as_tuple(self) -> Tuple[int, int, int, int]:
        """Return as (x, y, w, h) tuple."""
        return (self.x, self.y, self.w, self.h)

    def as_xyxy(self) -> Tuple[int, int, int, int]:
        """Return as (x1, y1, x2, y2) tuple."""
        return (self.x, self.y, self.x2, self.y2)

    def intersects(self, other: "Region") -> bool:
        return (
            self.x < other.x2 and other.x < self.x2
            and self.y < other.y2 and other.y < self.y2
        )

    def pad(self, pixels: int) -> "Region":
        """Grow the region by `pixels` on every side."""
        return Region(
            x=self.x - pixels,
            y=self.y - pixels,
            w=self.w + 2 * pixels,
            h=self.h + 2 * pixels,
        )

    def clip(self, width: int, height: int) -> "Region":
        """Clip to a width x height frame. The result may have zero area."""
        x1 = min(max(self.x, 0), width)
        y1 = min(max(self.y, 0), height)
        x2 = min(max(self.x2, 0), width)
        y2 = min(max(self.y2, 0), height)
        return Region(x=x1, y=y1, w=max(0, x2 - x1), h=max(0, y2 - y1))

    def translate(self, dx: int, dy: int) -> "Region":
        return Region(x=self.x + dx, y=self.y + dy, w=self.w, h=self.h)

    @classmethod
    def from_xyxy(cls, x1: float, y1: float, x2: float, y2: float) -> "Region":
        """Create from (x1, y1, x2, y2) corner coordinates."""
        return cls(x=int(x1), y=int(y1), w=int(x2) - int(x1), h=int(y2) - int(y1))

    @classmethod
    def full_frame(cls, width: int, height: int) -> "Region":
        return cls(x=0, y=0, w=width, h=height)


def union_region(regions: Iterable[Region]) -> Optional[Region]:
    """
    Bounding rectangle of all regions.

    Returns None for an empty input.
    """
    regions = list(regions)
    if not regions:
        return None
    x1 = min(r.x for r in regions)
    y1 = min(r.y for r in regions)
    x2 = max(r.x2 for r in regions)
    y2 = max(r.y2 for r in regions)
    return Region(x=x1, y=y1, w=x2 - x1, h=y2 - y1)


@dataclass(frozen=True)
class MotionResult:
    """
    Output of one MotionDetector.process_frame call.

    Attributes:
        score: Normalized motion score (0-1).
        regions: Changed regions, ordered; overlap is possible.
        timestamp: Timestamp copied from the source frame.
    """
    score: float
    regions: Tuple[Region, ...] = field(default_factory=tuple)
    timestamp: float = 0.0

    @property
    def has_motion(self) -> bool:
        return self.score > 0.0 and len(self.regions) > 0

    @classmethod
    def empty(cls, timestamp: float) -> "MotionResult":
        """Zero-motion result, used for priming frames and detector failures."""
        return cls(score=0.0, regions=(), timestamp=timestamp)


@dataclass(frozen=True)
class PlateCandidate:
    """
    A plate reading returned by the ANPR detector.

    Attributes:
        region: Bounding box in frame pixel coordinates.
        text: Recognized text as read, before normalization.
        confidence: Recognition confidence (0-1).
        timestamp: Timestamp of the source frame.
    """
    region: Region
    text: str
    confidence: float
    timestamp: float

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "region": list(self.region.as_tuple()),
            "text": self.text,
            "confidence": self.confidence,
            "timestamp": self.timestamp,
        }


def regions_from_boxes(boxes: List[List[int]]) -> List[Region]:
    """
    Adapter: Convert [x1, y1, x2, y2] boxes to Regions.
    """
    return [Region.from_xyxy(*box[:4]) for box in boxes]
