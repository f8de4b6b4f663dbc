"""
Plate recognizer interface.

Recognizers are the opaque capability behind the ANPR detector. They return
plate readings in the pixel coordinates of the image they were given; the
ANPR detector translates them back to frame coordinates.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Protocol

import numpy as np


@dataclass(frozen=True)
class PlateReading:
    x1: float
    y1: float
    x2: float
    y2: float
    text: str
    confidence: float = 1.0


class PlateRecognizer(Protocol):
    def recognize(self, image: np.ndarray) -> List[PlateReading]:
        ...
