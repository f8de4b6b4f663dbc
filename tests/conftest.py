"""
Pytest configuration and shared fixtures.
"""

import os
import sys

import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from inference.backend import PlateReading  # noqa: E402
from models.frame import Frame  # noqa: E402


class FakeRecognizer:
    """
    Scripted plate recognizer.

    Returns the same readings on every call (or the next item of a script)
    and records the shape of every image it was given.
    """

    def __init__(self, readings=None, script=None, error=None):
        self._readings = list(readings or [])
        self._script = list(script) if script is not None else None
        self._error = error
        self.calls = []

    def recognize(self, image):
        self.calls.append(image.shape)
        if self._error is not None:
            raise self._error
        if self._script is not None:
            return list(self._script.pop(0)) if self._script else []
        return list(self._readings)


def reading(text, confidence=0.9, box=(0, 0, 40, 12)):
    """PlateReading helper with an (x1, y1, x2, y2) box in image coordinates."""
    x1, y1, x2, y2 = box
    return PlateReading(x1=x1, y1=y1, x2=x2, y2=y2, text=text, confidence=confidence)


@pytest.fixture
def make_frame():
    """Factory for synthetic BGR frames, optionally with a white rectangle."""
    def _make(
        stream_id="cam-01",
        timestamp=0.0,
        width=160,
        height=120,
        rect=None,
        frame_index=0,
    ):
        image = np.zeros((height, width, 3), dtype=np.uint8)
        if rect is not None:
            x, y, w, h = rect
            image[y:y + h, x:x + w] = 255
        return Frame.from_numpy(stream_id, image, timestamp, frame_index)
    return _make


@pytest.fixture
def analytics_options():
    """A valid analytics options map."""
    return {
        "motion_threshold": 0.3,
        "motion_cooldown_frames": 2,
        "anpr_min_confidence": 0.5,
        "track_grace_frames": 1,
        "frame_buffer_capacity": 4,
        "region_policy": "UNION",
        "stats_log_interval": 3600.0,
    }


@pytest.fixture
def valid_config(analytics_options):
    """Return a valid application configuration dictionary."""
    return {
        "analytics": dict(analytics_options),
        "recognizer": {
            "backend": "yolo_easyocr",
            "model": "models/plate.pt",
        },
        "workers": {
            "anpr_pool_size": 2,
            "anpr_max_pending": 4,
            "anpr_timeout_s": 1.0,
            "threaded_streams": False,
        },
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }
