"""
YOLO + EasyOCR plate recognizer.

Uses Ultralytics to localise plates and EasyOCR to read them. Both are
imported lazily so the rest of the project runs without the model stack.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

import numpy as np

from .backend import PlateReading, PlateRecognizer


@dataclass(frozen=True)
class YoloOcrConfig:
    model: str
    conf_threshold: float = 0.25
    iou_threshold: float = 0.45
    languages: Sequence[str] = ("en",)
    gpu: bool = False


class YoloOcrRecognizer(PlateRecognizer):
    def __init__(self, cfg: YoloOcrConfig):
        self.cfg = cfg
        try:
            from ultralytics import YOLO  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "Ultralytics is not installed. Install with `pip install ultralytics` "
                "or configure a different recognizer backend."
            ) from e
        try:
            import easyocr  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "EasyOCR is not installed. Install with `pip install easyocr`."
            ) from e

        self._model = YOLO(cfg.model)
        self._reader = easyocr.Reader(list(cfg.languages), gpu=cfg.gpu)

    def recognize(self, image: np.ndarray) -> List[PlateReading]:
        results = self._model.predict(
            source=image,
            conf=self.cfg.conf_threshold,
            iou=self.cfg.iou_threshold,
            verbose=False,
        )
        if not results:
            return []

        boxes = getattr(results[0], "boxes", None)
        if boxes is None:
            return []

        xyxy = boxes.xyxy.cpu().numpy() if hasattr(boxes.xyxy, "cpu") else np.asarray(boxes.xyxy)
        conf = boxes.conf.cpu().numpy() if hasattr(boxes.conf, "cpu") else np.asarray(boxes.conf)

        h, w = image.shape[:2]
        out: List[PlateReading] = []
        for (x1, y1, x2, y2), box_conf in zip(xyxy, conf):
            ix1, iy1 = max(int(x1), 0), max(int(y1), 0)
            ix2, iy2 = min(int(x2), w), min(int(y2), h)
            if ix2 <= ix1 or iy2 <= iy1:
                continue

            readings = self._reader.readtext(np.ascontiguousarray(image[iy1:iy2, ix1:ix2]))
            if not readings:
                continue

            # Keep the most confident text line inside the plate box
            _, text, text_conf = max(readings, key=lambda r: r[2])
            out.append(
                PlateReading(
                    x1=float(ix1),
                    y1=float(iy1),
                    x2=float(ix2),
                    y2=float(iy2),
                    text=str(text),
                    confidence=float(box_conf) * float(text_conf),
                )
            )

        return out
