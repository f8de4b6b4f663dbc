"""
Motion detection module for estimating change between video frames.

Keeps a running-average background per stream and reports the fraction of
pixels that changed plus the bounding boxes of changed areas.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import cv2
import numpy as np

from models.detection import MotionResult, Region, regions_from_boxes
from models.errors import (
    AnalyticsError,
    ConfigInvalid,
    DetectorFailure,
    DimensionMismatch,
    NotInitialized,
)
from models.frame import Frame


# Per-pixel difference thresholds at sensitivity 1.0 and 0.0
MIN_PIXEL_DELTA = 5
MAX_PIXEL_DELTA = 80


@dataclass(frozen=True)
class MotionConfig:
    """
    Motion detector configuration.

    Attributes:
        sensitivity: 0-1; higher values react to smaller intensity changes.
        learning_rate: Weight of each new frame in the background average.
        min_region_area: Minimum contour area reported as a changed region.
        blur_kernel: Gaussian blur kernel size (positive, odd).
        frame_width: Expected frame width; None latches it from the first frame.
        frame_height: Expected frame height; None latches it from the first frame.
    """
    sensitivity: float = 0.5
    learning_rate: float = 0.05
    min_region_area: int = 400
    blur_kernel: int = 5
    frame_width: Optional[int] = None
    frame_height: Optional[int] = None

    def validate(self) -> None:
        if not (0.0 <= self.sensitivity <= 1.0):
            raise ConfigInvalid("sensitivity must be between 0 and 1")
        if not (0.0 < self.learning_rate <= 1.0):
            raise ConfigInvalid("learning_rate must be in (0, 1]")
        if self.min_region_area < 0:
            raise ConfigInvalid("min_region_area must be non-negative")
        if self.blur_kernel <= 0 or self.blur_kernel % 2 == 0:
            raise ConfigInvalid("blur_kernel must be a positive odd integer")
        for value in (self.frame_width, self.frame_height):
            if value is not None and value <= 0:
                raise ConfigInvalid("frame dimensions must be positive")

    @property
    def pixel_threshold(self) -> int:
        """Per-pixel intensity delta counted as change."""
        span = MAX_PIXEL_DELTA - MIN_PIXEL_DELTA
        return int(round(MIN_PIXEL_DELTA + span * (1.0 - self.sensitivity)))


class MotionDetector:
    """
    Stateful per-stream change estimator.

    Results depend on history: every call compares against the background
    and then folds the frame into it, so replaying a frame gives a
    different answer the second time.
    """

    def __init__(self) -> None:
        self._config: Optional[MotionConfig] = None
        self._background: Optional[np.ndarray] = None
        self._frame_size: Optional[Tuple[int, int]] = None
        self._kernel = np.ones((5, 5), np.uint8)
        self.frame_count = 0
        self.last_error: Optional[str] = None

    @property
    def is_initialized(self) -> bool:
        return self._config is not None

    @property
    def config(self) -> Optional[MotionConfig]:
        return self._config

    def initialize(self, config: MotionConfig) -> bool:
        """
        Validate the configuration and allocate a fresh baseline.

        Returns:
            False if the configuration is invalid; the detector is then
            uninitialized until a later call succeeds.
        """
        self._config = None
        self._background = None
        self._frame_size = None
        self.frame_count = 0

        try:
            config.validate()
        except ConfigInvalid as e:
            self.last_error = str(e)
            logging.error(f"Motion detector configuration invalid: {e}")
            return False

        self._config = config
        if config.frame_width is not None and config.frame_height is not None:
            self._frame_size = (config.frame_width, config.frame_height)
        self.last_error = None
        logging.info(
            f"Motion detector initialized (sensitivity={config.sensitivity}, "
            f"pixel_threshold={config.pixel_threshold})"
        )
        return True

    def process_frame(self, frame: Frame) -> MotionResult:
        """
        Compare a frame against the background and update the background.

        The first frame after initialize yields a score of 0 and becomes
        the baseline.

        Raises:
            NotInitialized: Before a successful initialize().
            DimensionMismatch: If the frame size differs from the initialized size.
            DetectorFailure: If the image operations fail.
        """
        if self._config is None:
            raise NotInitialized("MotionDetector.process_frame called before initialize")

        if not frame.is_consistent():
            raise DimensionMismatch(
                f"Frame declares {frame.width}x{frame.height} but holds {frame.pixels.shape}"
            )
        if self._frame_size is not None and frame.size != self._frame_size:
            raise DimensionMismatch(
                f"Frame size {frame.width}x{frame.height} differs from "
                f"{self._frame_size[0]}x{self._frame_size[1]}"
            )

        try:
            result = self._process(frame)
        except AnalyticsError:
            raise
        except (cv2.error, ValueError, MemoryError) as e:
            raise DetectorFailure(f"Motion detection failed: {e}") from e

        self.frame_count += 1
        return result

    def process(self, frame: Frame) -> MotionResult:
        return self.process_frame(frame)

    def _process(self, frame: Frame) -> MotionResult:
        cfg = self._config
        gray = self._to_gray(frame.pixels)
        if cfg.blur_kernel > 1:
            gray = cv2.GaussianBlur(gray, (cfg.blur_kernel, cfg.blur_kernel), 0)

        if self._background is None:
            self._frame_size = frame.size
            self._background = gray.astype(np.float32)
            return MotionResult.empty(frame.timestamp)

        diff = cv2.absdiff(gray, cv2.convertScaleAbs(self._background))
        _, mask = cv2.threshold(diff, cfg.pixel_threshold, 255, cv2.THRESH_BINARY)
        score = float(np.count_nonzero(mask)) / float(mask.size)

        cv2.accumulateWeighted(gray, self._background, cfg.learning_rate)

        regions: List[Region] = []
        if score > 0.0:
            regions = self._find_regions(mask)

        return MotionResult(
            score=min(max(score, 0.0), 1.0),
            regions=tuple(regions),
            timestamp=frame.timestamp,
        )

    @staticmethod
    def _to_gray(pixels: np.ndarray) -> np.ndarray:
        """Writable single-channel copy; the borrowed frame is never touched."""
        if pixels.ndim == 2:
            return np.array(pixels, dtype=np.uint8)
        if pixels.shape[2] == 1:
            return np.array(pixels[:, :, 0], dtype=np.uint8)
        return cv2.cvtColor(np.array(pixels, dtype=np.uint8), cv2.COLOR_BGR2GRAY)

    def _find_regions(self, mask: np.ndarray) -> List[Region]:
        """Contour bounding boxes of the change mask, with nearby boxes merged."""
        # Close small gaps so one vehicle yields one blob
        dilated = cv2.dilate(mask, self._kernel, iterations=2)
        contours, _ = cv2.findContours(dilated, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)

        boxes = []
        for contour in contours:
            if cv2.contourArea(contour) < self._config.min_region_area:
                continue
            x, y, w, h = cv2.boundingRect(contour)
            boxes.append([x, y, x + w, y + h])

        return regions_from_boxes(self._merge_boxes(boxes))

    def _merge_boxes(self, boxes: List[List[int]], distance_thresh: int = 20) -> List[List[int]]:
        """
        Merge bounding boxes that overlap or are within `distance_thresh` pixels.

        Args:
            boxes: List of bounding boxes [x1, y1, x2, y2]
            distance_thresh: Proximity in pixels under which boxes merge

        Returns:
            List of merged bounding boxes
        """
        merged_boxes = list(boxes)

        while True:
            new_boxes = []
            merged_indices = set()
            has_merged = False

            for i in range(len(merged_boxes)):
                if i in merged_indices:
                    continue

                current_box = merged_boxes[i]
                for j in range(i + 1, len(merged_boxes)):
                    if j in merged_indices:
                        continue
                    other_box = merged_boxes[j]
                    if self._should_merge(current_box, other_box, distance_thresh):
                        current_box = [
                            min(current_box[0], other_box[0]),
                            min(current_box[1], other_box[1]),
                            max(current_box[2], other_box[2]),
                            max(current_box[3], other_box[3]),
                        ]
                        merged_indices.add(j)
                        has_merged = True

                new_boxes.append(current_box)

            merged_boxes = new_boxes
            if not has_merged:
                break

        return merged_boxes

    @staticmethod
    def _should_merge(box1: List[int], box2: List[int], distance: int) -> bool:
        x1_a, y1_a, x2_a, y2_a = box1
        x1_b, y1_b, x2_b, y2_b = box2
        return (
            x1_a - distance < x2_b and x2_a + distance > x1_b
            and y1_a - distance < y2_b and y2_a + distance > y1_b
        )

    def reset_background_model(self) -> None:
        """Drop the baseline; the next frame re-primes it with score 0."""
        self._background = None
        logging.info("Motion background model reset")
