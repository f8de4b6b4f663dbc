"""
Error kinds raised by the analytics components.

Components raise these; the pipeline controller catches them per frame,
logs and counts them, and keeps the stream running. Only configuration
errors at initialize time are fatal to a component.
"""

from __future__ import annotations


class AnalyticsError(Exception):
    """Base class for all analytics errors."""


class ConfigInvalid(AnalyticsError):
    """A configuration value is missing or out of its valid range."""


class NotInitialized(AnalyticsError):
    """An operation was attempted before a successful initialize()."""


class DimensionMismatch(AnalyticsError):
    """Frame shape differs from what the component was configured for."""


class InvalidRegion(DimensionMismatch):
    """A region has zero area or lies entirely outside the frame."""


class DetectorFailure(AnalyticsError):
    """Transient failure inside a detector stage (including timeouts)."""


class CapacityExceeded(AnalyticsError):
    """A buffer or queue is full and the item was dropped."""
