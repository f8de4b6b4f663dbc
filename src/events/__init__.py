"""
Event emission boundary.
"""

from .sinks import SightingSink, LoggingSink, CallbackSink, MultiSink

__all__ = ["SightingSink", "LoggingSink", "CallbackSink", "MultiSink"]
