"""
Tracking module.

The canonical tracker implementation is in tracking.plate_tracker.
"""

from .plate_tracker import PlateTracker, normalize_plate_text

__all__ = ["PlateTracker", "normalize_plate_text"]
