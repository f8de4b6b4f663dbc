"""
Plate recognizer backends.
"""

from __future__ import annotations

from models.config import RecognizerConfig
from models.errors import ConfigInvalid

from .backend import PlateReading, PlateRecognizer


def create_recognizer_from_config(cfg: RecognizerConfig) -> PlateRecognizer:
    """
    Factory function to build a recognizer from the `recognizer` config section.

    Raises:
        ConfigInvalid: For an unknown backend or a missing model path.
        ImportError: If the backend's libraries are not installed.
    """
    if cfg.backend == "yolo_easyocr":
        if not cfg.model:
            raise ConfigInvalid("recognizer.model is required for the yolo_easyocr backend")
        from .ocr_backend import YoloOcrConfig, YoloOcrRecognizer

        return YoloOcrRecognizer(
            YoloOcrConfig(
                model=cfg.model,
                conf_threshold=cfg.conf_threshold,
                iou_threshold=cfg.iou_threshold,
                languages=tuple(cfg.languages),
                gpu=cfg.gpu,
            )
        )
    raise ConfigInvalid(f"Unknown recognizer backend: {cfg.backend}")


__all__ = ["PlateReading", "PlateRecognizer", "create_recognizer_from_config"]
