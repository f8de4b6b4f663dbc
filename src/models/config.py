"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .errors import ConfigInvalid
from .frame import CHANNELS_BY_FORMAT, PIXEL_FORMAT_BGR24


class RegionPolicy(str, Enum):
    """How changed motion regions are handed to the ANPR detector."""
    UNION = "UNION"
    PER_REGION = "PER_REGION"

    @classmethod
    def parse(cls, value: Any) -> "RegionPolicy":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise ConfigInvalid(
                f"region_policy must be one of: {', '.join(p.value for p in cls)}"
            ) from None


# Keys every analytics options map must provide
REQUIRED_ANALYTICS_KEYS = (
    "motion_threshold",
    "motion_cooldown_frames",
    "anpr_min_confidence",
    "track_grace_frames",
    "frame_buffer_capacity",
    "region_policy",
)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass
class AnalyticsConfig:
    """
    Per-stream analytics options.

    The first six fields form the required options map; the rest are
    tuning knobs with defaults.
    """
    motion_threshold: float = 0.02
    motion_cooldown_frames: int = 15
    anpr_min_confidence: float = 0.5
    track_grace_frames: int = 10
    frame_buffer_capacity: int = 8
    region_policy: RegionPolicy = RegionPolicy.UNION
    motion_sensitivity: float = 0.5
    motion_learning_rate: float = 0.05
    motion_min_region_area: int = 400
    motion_blur_kernel: int = 5
    region_padding: int = 16
    pixel_format: str = PIXEL_FORMAT_BGR24
    frame_width: Optional[int] = None
    frame_height: Optional[int] = None
    allow_eviction: bool = True
    stats_log_interval: float = 60.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "AnalyticsConfig":
        """
        Adapter: Create from an options map and validate it.

        Raises:
            ConfigInvalid: If a required key is missing or a value is out of range.
        """
        if not isinstance(d, dict):
            raise ConfigInvalid("analytics configuration must be a mapping")
        missing = [k for k in REQUIRED_ANALYTICS_KEYS if k not in d]
        if missing:
            raise ConfigInvalid(f"Missing analytics configuration value(s): {', '.join(missing)}")

        cfg = cls(
            motion_threshold=d["motion_threshold"],
            motion_cooldown_frames=d["motion_cooldown_frames"],
            anpr_min_confidence=d["anpr_min_confidence"],
            track_grace_frames=d["track_grace_frames"],
            frame_buffer_capacity=d["frame_buffer_capacity"],
            region_policy=RegionPolicy.parse(d["region_policy"]),
            motion_sensitivity=d.get("motion_sensitivity", 0.5),
            motion_learning_rate=d.get("motion_learning_rate", 0.05),
            motion_min_region_area=d.get("motion_min_region_area", 400),
            motion_blur_kernel=d.get("motion_blur_kernel", 5),
            region_padding=d.get("region_padding", 16),
            pixel_format=d.get("pixel_format", PIXEL_FORMAT_BGR24),
            frame_width=d.get("frame_width"),
            frame_height=d.get("frame_height"),
            allow_eviction=d.get("allow_eviction", True),
            stats_log_interval=d.get("stats_log_interval", 60.0),
        )
        cfg.validate()
        return cfg

    def validate(self) -> None:
        """
        Check every value against its valid range.

        Raises:
            ConfigInvalid: On the first offending value.
        """
        if not _is_number(self.motion_threshold) or not (0.0 <= self.motion_threshold <= 1.0):
            raise ConfigInvalid("motion_threshold must be between 0 and 1")
        if not _is_int(self.motion_cooldown_frames) or self.motion_cooldown_frames < 0:
            raise ConfigInvalid("motion_cooldown_frames must be a non-negative integer")
        if not _is_number(self.anpr_min_confidence) or not (0.0 <= self.anpr_min_confidence <= 1.0):
            raise ConfigInvalid("anpr_min_confidence must be between 0 and 1")
        if not _is_int(self.track_grace_frames) or self.track_grace_frames < 0:
            raise ConfigInvalid("track_grace_frames must be a non-negative integer")
        if not _is_int(self.frame_buffer_capacity) or self.frame_buffer_capacity < 1:
            raise ConfigInvalid("frame_buffer_capacity must be a positive integer")
        self.region_policy = RegionPolicy.parse(self.region_policy)

        if not _is_number(self.motion_sensitivity) or not (0.0 <= self.motion_sensitivity <= 1.0):
            raise ConfigInvalid("motion_sensitivity must be between 0 and 1")
        if not _is_number(self.motion_learning_rate) or not (0.0 < self.motion_learning_rate <= 1.0):
            raise ConfigInvalid("motion_learning_rate must be in (0, 1]")
        if not _is_int(self.motion_min_region_area) or self.motion_min_region_area < 0:
            raise ConfigInvalid("motion_min_region_area must be a non-negative integer")
        if (
            not _is_int(self.motion_blur_kernel)
            or self.motion_blur_kernel <= 0
            or self.motion_blur_kernel % 2 == 0
        ):
            raise ConfigInvalid("motion_blur_kernel must be a positive odd integer")
        if not _is_int(self.region_padding) or self.region_padding < 0:
            raise ConfigInvalid("region_padding must be a non-negative integer")
        if self.pixel_format not in CHANNELS_BY_FORMAT:
            raise ConfigInvalid(
                f"pixel_format must be one of: {', '.join(CHANNELS_BY_FORMAT)}"
            )
        for name in ("frame_width", "frame_height"):
            value = getattr(self, name)
            if value is not None and (not _is_int(value) or value <= 0):
                raise ConfigInvalid(f"{name} must be a positive integer when set")
        if (self.frame_width is None) != (self.frame_height is None):
            raise ConfigInvalid("frame_width and frame_height must be set together")
        if not isinstance(self.allow_eviction, bool):
            raise ConfigInvalid("allow_eviction must be a boolean")
        if not _is_number(self.stats_log_interval) or self.stats_log_interval <= 0:
            raise ConfigInvalid("stats_log_interval must be a positive number")

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "motion_threshold": self.motion_threshold,
            "motion_cooldown_frames": self.motion_cooldown_frames,
            "anpr_min_confidence": self.anpr_min_confidence,
            "track_grace_frames": self.track_grace_frames,
            "frame_buffer_capacity": self.frame_buffer_capacity,
            "region_policy": RegionPolicy.parse(self.region_policy).value,
            "motion_sensitivity": self.motion_sensitivity,
            "motion_learning_rate": self.motion_learning_rate,
            "motion_min_region_area": self.motion_min_region_area,
            "motion_blur_kernel": self.motion_blur_kernel,
            "region_padding": self.region_padding,
            "pixel_format": self.pixel_format,
            "allow_eviction": self.allow_eviction,
            "stats_log_interval": self.stats_log_interval,
        }
        if self.frame_width is not None:
            d["frame_width"] = self.frame_width
            d["frame_height"] = self.frame_height
        return d


@dataclass
class RecognizerConfig:
    """Plate recognizer (capability provider) configuration."""
    backend: str = "yolo_easyocr"
    model: str = ""
    conf_threshold: float = 0.25
    iou_threshold: float = 0.45
    languages: List[str] = field(default_factory=lambda: ["en"])
    gpu: bool = False

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "RecognizerConfig":
        return cls(
            backend=d.get("backend", "yolo_easyocr"),
            model=d.get("model", ""),
            conf_threshold=d.get("conf_threshold", 0.25),
            iou_threshold=d.get("iou_threshold", 0.45),
            languages=d.get("languages", ["en"]),
            gpu=d.get("gpu", False),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "backend": self.backend,
            "model": self.model,
            "conf_threshold": self.conf_threshold,
            "iou_threshold": self.iou_threshold,
            "languages": self.languages,
            "gpu": self.gpu,
        }


@dataclass
class WorkerConfig:
    """Shared ANPR worker pool and per-stream worker settings."""
    anpr_pool_size: int = 2
    anpr_max_pending: int = 8
    anpr_timeout_s: Optional[float] = 2.0
    threaded_streams: bool = True

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "WorkerConfig":
        return cls(
            anpr_pool_size=d.get("anpr_pool_size", 2),
            anpr_max_pending=d.get("anpr_max_pending", 8),
            anpr_timeout_s=d.get("anpr_timeout_s", 2.0),
            threaded_streams=d.get("threaded_streams", True),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "anpr_pool_size": self.anpr_pool_size,
            "anpr_max_pending": self.anpr_max_pending,
            "anpr_timeout_s": self.anpr_timeout_s,
            "threaded_streams": self.threaded_streams,
        }


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    analytics: AnalyticsConfig = field(default_factory=AnalyticsConfig)
    recognizer: RecognizerConfig = field(default_factory=RecognizerConfig)
    workers: WorkerConfig = field(default_factory=WorkerConfig)
    log_path: str = "logs/anpr_gate.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            analytics=AnalyticsConfig.from_dict(d.get("analytics", {})),
            recognizer=RecognizerConfig.from_dict(d.get("recognizer", {})),
            workers=WorkerConfig.from_dict(d.get("workers", {})),
            log_path=d.get("log_path", "logs/anpr_gate.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary (for saving or passing to existing code)."""
        return {
            "analytics": self.analytics.to_dict(),
            "recognizer": self.recognizer.to_dict(),
            "workers": self.workers.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
