"""
Typed models for the ANPR gate analytics pipeline.
"""

from .errors import (
    AnalyticsError,
    ConfigInvalid,
    NotInitialized,
    DimensionMismatch,
    InvalidRegion,
    DetectorFailure,
    CapacityExceeded,
)
from .frame import Frame, PIXEL_FORMAT_BGR24, PIXEL_FORMAT_GRAY8
from .detection import Region, MotionResult, PlateCandidate, union_region
from .track import PlateTrack
from .sighting import SightingEvent, SIGHTING_START, SIGHTING_END
from .config import (
    Config,
    AnalyticsConfig,
    RecognizerConfig,
    WorkerConfig,
    RegionPolicy,
)

__all__ = [
    # Errors
    "AnalyticsError",
    "ConfigInvalid",
    "NotInitialized",
    "DimensionMismatch",
    "InvalidRegion",
    "DetectorFailure",
    "CapacityExceeded",
    # Frame
    "Frame",
    "PIXEL_FORMAT_BGR24",
    "PIXEL_FORMAT_GRAY8",
    # Detection
    "Region",
    "MotionResult",
    "PlateCandidate",
    "union_region",
    # Tracking
    "PlateTrack",
    "SightingEvent",
    "SIGHTING_START",
    "SIGHTING_END",
    # Config
    "Config",
    "AnalyticsConfig",
    "RecognizerConfig",
    "WorkerConfig",
    "RegionPolicy",
]
