"""
ANPR detector adapter.

Wraps a PlateRecognizer and presents a stateless per-call plate detector
that can be restricted to a motion region, which is the cheap path.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from inference.backend import PlateRecognizer
from models.config import RegionPolicy
from models.detection import PlateCandidate, Region, union_region
from models.errors import (
    ConfigInvalid,
    DetectorFailure,
    DimensionMismatch,
    InvalidRegion,
    NotInitialized,
)
from models.frame import Frame


@dataclass(frozen=True)
class AnprConfig:
    """
    ANPR detector configuration.

    Attributes:
        min_confidence: Candidates below this confidence are discarded.
        frame_width: Expected frame width, or None to accept any size.
        frame_height: Expected frame height, or None to accept any size.
    """
    min_confidence: float = 0.5
    frame_width: Optional[int] = None
    frame_height: Optional[int] = None

    def validate(self) -> None:
        if not (0.0 <= self.min_confidence <= 1.0):
            raise ConfigInvalid("min_confidence must be between 0 and 1")
        for value in (self.frame_width, self.frame_height):
            if value is not None and value <= 0:
                raise ConfigInvalid("frame dimensions must be positive")


class AnprDetector:
    """
    Stateless-per-call plate recognizer.

    No state is carried between process_frame calls; the only state is the
    validated configuration and the recognizer handle, so one instance may
    be called from a worker pool.
    """

    def __init__(self, recognizer: Optional[PlateRecognizer]):
        self._recognizer = recognizer
        self._config: Optional[AnprConfig] = None
        self.last_error: Optional[str] = None

    @property
    def is_initialized(self) -> bool:
        return self._config is not None

    @property
    def config(self) -> Optional[AnprConfig]:
        return self._config

    def initialize(self, config: AnprConfig) -> bool:
        """
        Validate the configuration and the recognizer handle.

        Returns:
            False if the configuration is invalid or no recognizer is
            available. Repeated failing calls report the same error.
        """
        self._config = None
        try:
            config.validate()
            if self._recognizer is None or not callable(getattr(self._recognizer, "recognize", None)):
                raise ConfigInvalid("No plate recognizer available")
        except ConfigInvalid as e:
            self.last_error = str(e)
            logging.error(f"ANPR detector initialization failed: {e}")
            return False

        self._config = config
        self.last_error = None
        logging.info(f"ANPR detector initialized (min_confidence={config.min_confidence})")
        return True

    def process_frame(self, frame: Frame, region: Optional[Region] = None) -> List[PlateCandidate]:
        """
        Recognize plates in a frame, or only inside `region` if given.

        Args:
            frame: Borrowed frame view.
            region: Optional sub-rectangle in frame coordinates. It is clipped
                to the frame before analysis.

        Returns:
            Candidates at or above the configured minimum confidence, in frame
            coordinates. An empty list when no plate is found.

        Raises:
            NotInitialized: Before a successful initialize().
            InvalidRegion: If the region has zero area or misses the frame.
            DimensionMismatch: If the frame differs from the configured size.
            DetectorFailure: If the recognizer raises.
        """
        cfg = self._config
        if cfg is None:
            raise NotInitialized("AnprDetector.process_frame called before initialize")

        if not frame.is_consistent():
            raise DimensionMismatch(
                f"Frame declares {frame.width}x{frame.height} but holds {frame.pixels.shape}"
            )
        if cfg.frame_width is not None and frame.size != (cfg.frame_width, cfg.frame_height):
            raise DimensionMismatch(
                f"Frame size {frame.width}x{frame.height} differs from "
                f"{cfg.frame_width}x{cfg.frame_height}"
            )

        if region is None:
            crop_region = Region.full_frame(frame.width, frame.height)
        else:
            if region.area <= 0:
                raise InvalidRegion(f"Region {region.as_tuple()} has zero area")
            crop_region = region.clip(frame.width, frame.height)
            if crop_region.area <= 0:
                raise InvalidRegion(f"Region {region.as_tuple()} lies outside the frame")

        x, y, x2, y2 = crop_region.as_xyxy()
        image = frame.pixels[y:y2, x:x2]

        try:
            readings = self._recognizer.recognize(image)
        except Exception as e:
            raise DetectorFailure(f"Plate recognizer failed: {e}") from e

        candidates: List[PlateCandidate] = []
        for reading in readings or []:
            text = (reading.text or "").strip()
            if not text or reading.confidence < cfg.min_confidence:
                continue
            box = Region.from_xyxy(reading.x1, reading.y1, reading.x2, reading.y2)
            candidates.append(
                PlateCandidate(
                    region=box.translate(x, y),
                    text=text,
                    confidence=float(reading.confidence),
                    timestamp=frame.timestamp,
                )
            )

        logging.debug(
            f"[{frame.stream_id}] ANPR on {crop_region.as_tuple()}: "
            f"{len(candidates)} candidate(s)"
        )
        return candidates

    def process(self, frame: Frame) -> List[PlateCandidate]:
        return self.process_frame(frame)

    def process_regions(
        self,
        frame: Frame,
        regions: Sequence[Region],
        policy: RegionPolicy = RegionPolicy.UNION,
    ) -> List[PlateCandidate]:
        """
        Run recognition over motion regions according to the region policy.

        UNION analyses the bounding union once; PER_REGION analyses each
        region and concatenates the results. No regions means full frame.
        """
        if not regions:
            return self.process_frame(frame)

        if RegionPolicy.parse(policy) == RegionPolicy.UNION:
            return self.process_frame(frame, union_region(regions))

        candidates: List[PlateCandidate] = []
        for region in regions:
            candidates.extend(self.process_frame(frame, region))
        return candidates
