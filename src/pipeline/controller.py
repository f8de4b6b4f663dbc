"""
Per-stream pipeline controller for motion-gated plate recognition.

The controller owns one stream's FrameBuffer, MotionDetector, AnprDetector
and PlateTracker, and runs the gating state machine:

    IDLE --first frame--> WATCHING --motion >= threshold--> GATED
    GATED --cooldown window without qualifying motion--> WATCHING

Per-frame failures are logged and counted and never halt the stream.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from detection.anpr import AnprConfig, AnprDetector
from detection.motion import MotionConfig, MotionDetector
from events.sinks import SightingSink
from models.config import AnalyticsConfig
from models.detection import MotionResult, PlateCandidate, Region
from models.errors import (
    AnalyticsError,
    CapacityExceeded,
    ConfigInvalid,
    NotInitialized,
)
from models.frame import Frame
from models.sighting import SightingEvent
from pipeline.buffer import FrameBuffer
from pipeline.pool import AnprWorkerPool
from tracking.plate_tracker import PlateTracker


class PipelineState(str, Enum):
    IDLE = "IDLE"
    WATCHING = "WATCHING"
    GATED = "GATED"


@dataclass
class PipelineStats:
    """Runtime counters for one stream. Every failure path increments one."""
    frames_submitted: int = 0
    frames_accepted: int = 0
    frames_rejected: int = 0
    frames_dropped: int = 0
    motion_failures: int = 0
    anpr_invocations: int = 0
    anpr_failures: int = 0
    anpr_skipped: int = 0
    candidates: int = 0
    sightings_started: int = 0
    sightings_ended: int = 0
    gated_frames: int = 0
    last_error: Optional[str] = None
    start_time: float = field(default_factory=time.time)
    last_stats_log_time: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "frames_submitted": self.frames_submitted,
            "frames_accepted": self.frames_accepted,
            "frames_rejected": self.frames_rejected,
            "frames_dropped": self.frames_dropped,
            "motion_failures": self.motion_failures,
            "anpr_invocations": self.anpr_invocations,
            "anpr_failures": self.anpr_failures,
            "anpr_skipped": self.anpr_skipped,
            "candidates": self.candidates,
            "sightings_started": self.sightings_started,
            "sightings_ended": self.sightings_ended,
            "gated_frames": self.gated_frames,
            "last_error": self.last_error,
        }


FrameCallback = Callable[[Frame, MotionResult, List[SightingEvent]], None]


class PipelineController:
    """
    Orchestrates the motion gate, ANPR and plate tracking for one stream.

    submit() is serialized by an internal lock held for exactly one frame,
    so frames are processed in arrival order even if several threads call
    it. Controllers for different streams share nothing and run in parallel.

    Example:
        controller = PipelineController("cam-01", AnprDetector(recognizer), sink=LoggingSink())
        if controller.initialize(analytics_config):
            controller.submit(frame)
    """

    def __init__(
        self,
        stream_id: str,
        anpr: AnprDetector,
        sink: Optional[SightingSink] = None,
        pool: Optional[AnprWorkerPool] = None,
        motion: Optional[MotionDetector] = None,
    ):
        """
        Args:
            stream_id: Stream this controller serves.
            anpr: ANPR detector handle; initialized by initialize().
            sink: Receives sighting events.
            pool: Shared worker pool for ANPR calls; None runs them inline.
            motion: Motion detector; a fresh MotionDetector by default.
        """
        self.stream_id = stream_id
        self._anpr = anpr
        self._sink = sink
        self._pool = pool
        self._motion = motion if motion is not None else MotionDetector()
        self._lock = threading.Lock()
        self._callbacks: List[FrameCallback] = []

        self._config: Optional[AnalyticsConfig] = None
        self._buffer: Optional[FrameBuffer] = None
        self._tracker: Optional[PlateTracker] = None
        self._frame_size: Optional[Tuple[int, int]] = None
        self._state = PipelineState.IDLE
        self._cooldown = 0
        self._gate_regions: Tuple[Region, ...] = ()
        self._last_timestamp: Optional[float] = None
        self.stats = PipelineStats()
        self.last_error: Optional[str] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    @property
    def is_initialized(self) -> bool:
        return self._config is not None

    @property
    def config(self) -> Optional[AnalyticsConfig]:
        return self._config

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def buffer(self) -> Optional[FrameBuffer]:
        return self._buffer

    @property
    def tracker(self) -> Optional[PlateTracker]:
        return self._tracker

    def add_callback(self, callback: FrameCallback) -> None:
        """
        Add a callback to be called after each accepted frame is processed.

        Args:
            callback: Function taking (frame, motion_result, events).
        """
        self._callbacks.append(callback)

    def initialize(self, config: Union[AnalyticsConfig, Dict[str, Any]]) -> bool:
        """
        Validate the options map and initialize every owned component.

        Args:
            config: AnalyticsConfig or a raw options map.

        Returns:
            False on any configuration or capability failure; the controller
            then refuses frames until a later initialize succeeds.
        """
        with self._lock:
            self._config = None
            try:
                cfg = self._coerce_config(config)

                motion_cfg = MotionConfig(
                    sensitivity=cfg.motion_sensitivity,
                    learning_rate=cfg.motion_learning_rate,
                    min_region_area=cfg.motion_min_region_area,
                    blur_kernel=cfg.motion_blur_kernel,
                    frame_width=cfg.frame_width,
                    frame_height=cfg.frame_height,
                )
                if not self._motion.initialize(motion_cfg):
                    raise ConfigInvalid(f"Motion detector: {self._motion.last_error}")

                anpr_cfg = AnprConfig(
                    min_confidence=cfg.anpr_min_confidence,
                    frame_width=cfg.frame_width,
                    frame_height=cfg.frame_height,
                )
                if not self._anpr.initialize(anpr_cfg):
                    raise ConfigInvalid(f"ANPR detector: {self._anpr.last_error}")
            except ConfigInvalid as e:
                self.last_error = str(e)
                logging.error(f"[{self.stream_id}] Pipeline initialization failed: {e}")
                return False

            self._buffer = FrameBuffer(self.stream_id, cfg.frame_buffer_capacity, cfg.allow_eviction)
            self._tracker = PlateTracker(grace_frames=cfg.track_grace_frames)
            self._frame_size = (
                (cfg.frame_width, cfg.frame_height) if cfg.frame_width is not None else None
            )
            self._state = PipelineState.IDLE
            self._cooldown = 0
            self._gate_regions = ()
            self._last_timestamp = None
            self.stats = PipelineStats()
            self.last_error = None
            self._config = cfg

        logging.info(
            f"[{self.stream_id}] Pipeline initialized: threshold={cfg.motion_threshold}, "
            f"cooldown={cfg.motion_cooldown_frames}, grace={cfg.track_grace_frames}, "
            f"policy={cfg.region_policy.value}"
        )
        return True

    @staticmethod
    def _coerce_config(config: Union[AnalyticsConfig, Dict[str, Any]]) -> AnalyticsConfig:
        if isinstance(config, AnalyticsConfig):
            config.validate()
            return config
        return AnalyticsConfig.from_dict(config)

    def close(self, flush: bool = True) -> List[SightingEvent]:
        """
        Tear the stream down and discard all in-flight state.

        Args:
            flush: Emit end events for tracks still active, stamped with the
                   timestamp of the last processed frame. With flush=False the
                   tracks are dropped silently.

        Returns:
            The end events emitted by the flush.
        """
        with self._lock:
            events: List[SightingEvent] = []
            if self._tracker is not None:
                if flush and self._last_timestamp is not None:
                    events = self._tracker.flush(self.stream_id, self._last_timestamp)
                    self._emit(events)
                self._tracker.reset(self.stream_id)
            if self._buffer is not None:
                self._buffer.clear()
            self._config = None
            self._state = PipelineState.IDLE

        logging.info(
            f"[{self.stream_id}] Pipeline closed (flushed {len(events)} sighting(s)): "
            f"{self.stats.to_dict()}"
        )
        return events

    # ------------------------------------------------------------------
    # Frame path
    # ------------------------------------------------------------------
    def submit(self, frame: Frame) -> bool:
        """
        Process one frame through buffer, motion gate, ANPR and tracker.

        Returns:
            False if the frame was rejected (bad size, wrong stream, full
            buffer without eviction). Detector failures still return True:
            the frame was accepted and the stream carried on.

        Raises:
            NotInitialized: If initialize() has not succeeded.
        """
        with self._lock:
            if self._config is None:
                raise NotInitialized(f"Stream {self.stream_id} submit called before initialize")
            return self._process_frame(frame)

    def _process_frame(self, frame: Frame) -> bool:
        self.stats.frames_submitted += 1

        if not self._accept(frame):
            self.stats.frames_rejected += 1
            return False
        self.stats.frames_accepted += 1

        try:
            self._analyse(frame)
        finally:
            # The frame stays in history but no longer blocks new frames
            self._buffer.release()
        return True

    def _analyse(self, frame: Frame) -> None:
        cfg = self._config
        motion = self._run_motion(frame)
        self._advance_state(motion.score)

        candidates: Optional[List[PlateCandidate]] = []
        if self._state == PipelineState.GATED:
            self.stats.gated_frames += 1
            candidates = self._run_anpr(frame, motion)

        events: List[SightingEvent] = []
        # A failed ANPR call leaves tracks untouched rather than counting a miss
        if candidates is not None:
            self.stats.candidates += len(candidates)
            events = self._tracker.update(self.stream_id, candidates, frame.timestamp)
            self._emit(events)

        self._last_timestamp = frame.timestamp

        for callback in self._callbacks:
            try:
                callback(frame, motion, events)
            except Exception as e:
                logging.warning(f"[{self.stream_id}] Callback error: {e}")

        self._handle_periodic_tasks(cfg)

    def _accept(self, frame: Frame) -> bool:
        """Step 1: reject mismatched frames, then hand the frame to the buffer."""
        if not frame.is_consistent():
            self._record_error(
                f"Frame declares {frame.width}x{frame.height} but holds {frame.pixels.shape}"
            )
            return False
        if self._frame_size is not None and frame.size != self._frame_size:
            self._record_error(
                f"Frame size {frame.width}x{frame.height} differs from stream size "
                f"{self._frame_size[0]}x{self._frame_size[1]}"
            )
            return False
        if not self._buffer.submit(frame):
            return False
        if self._frame_size is None:
            self._frame_size = frame.size
        return True

    def _run_motion(self, frame: Frame) -> MotionResult:
        """Step 2: motion failures count as zero motion."""
        try:
            return self._motion.process_frame(frame)
        except AnalyticsError as e:
            self.stats.motion_failures += 1
            self._record_error(f"Motion detector failure: {e}")
            return MotionResult.empty(frame.timestamp)

    def _advance_state(self, score: float) -> None:
        """Step 3: gating transitions."""
        cfg = self._config
        if self._state == PipelineState.IDLE:
            self._state = PipelineState.WATCHING

        if score >= cfg.motion_threshold:
            if self._state != PipelineState.GATED:
                logging.debug(f"[{self.stream_id}] GATED (motion={score:.3f})")
                self._gate_regions = ()
            self._state = PipelineState.GATED
            self._cooldown = 0
        elif self._state == PipelineState.GATED:
            self._cooldown += 1
            if self._cooldown > cfg.motion_cooldown_frames:
                logging.debug(f"[{self.stream_id}] WATCHING after {self._cooldown} quiet frame(s)")
                self._state = PipelineState.WATCHING
                self._cooldown = 0
                self._gate_regions = ()

    def _analysis_regions(self, frame: Frame, motion: MotionResult) -> Tuple[Region, ...]:
        """Padded, clipped motion regions; falls back to the last gated regions."""
        padding = self._config.region_padding
        regions = []
        for region in motion.regions:
            clipped = region.pad(padding).clip(frame.width, frame.height)
            if clipped.area > 0:
                regions.append(clipped)
        if regions:
            self._gate_regions = tuple(regions)
        return self._gate_regions

    def _run_anpr(self, frame: Frame, motion: MotionResult) -> Optional[List[PlateCandidate]]:
        """Step 4: ANPR over motion regions. Returns None when the call failed."""
        regions = self._analysis_regions(frame, motion)
        policy = self._config.region_policy
        self.stats.anpr_invocations += 1
        try:
            if self._pool is not None:
                return self._pool.run(self._anpr.process_regions, frame, regions, policy)
            return self._anpr.process_regions(frame, regions, policy)
        except CapacityExceeded as e:
            self.stats.anpr_skipped += 1
            self._record_error(f"ANPR skipped: {e}")
        except AnalyticsError as e:
            self.stats.anpr_failures += 1
            self._record_error(f"ANPR failure: {e}")
        return None

    def _emit(self, events: Sequence[SightingEvent]) -> None:
        """Step 5: forward events to the sink in order."""
        for event in events:
            if event.is_start:
                self.stats.sightings_started += 1
            else:
                self.stats.sightings_ended += 1
            if self._sink is None:
                continue
            try:
                self._sink.emit(event)
            except Exception as e:
                logging.warning(f"[{self.stream_id}] Sink error: {e}")

    def _record_error(self, message: str) -> None:
        self.stats.last_error = message
        logging.warning(f"[{self.stream_id}] {message}")

    def _handle_periodic_tasks(self, cfg: AnalyticsConfig) -> None:
        now = time.time()
        if now - self.stats.last_stats_log_time >= cfg.stats_log_interval:
            logging.info(
                f"[{self.stream_id}] Pipeline stats: state={self._state.value}, "
                f"frames={self.stats.frames_accepted}, gated={self.stats.gated_frames}, "
                f"anpr={self.stats.anpr_invocations}, failures="
                f"{self.stats.motion_failures + self.stats.anpr_failures}, "
                f"sightings={self.stats.sightings_started}"
            )
            self.stats.last_stats_log_time = now
