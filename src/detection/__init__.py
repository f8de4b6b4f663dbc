"""
ANPR Gate - Detection Module

Motion gating and plate recognition stages.
"""

from .base import FrameProcessor
from .motion import MotionDetector, MotionConfig
from .anpr import AnprDetector, AnprConfig

__all__ = ['FrameProcessor', 'MotionDetector', 'MotionConfig', 'AnprDetector', 'AnprConfig']
