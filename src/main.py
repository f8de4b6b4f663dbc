"""
Command-line runner for the ANPR gate analytics pipeline.

Reads frames from a video file or capture device with OpenCV and feeds
them through a motion-gated plate recognition pipeline, logging every
plate sighting.

Configuration is layered YAML: config/default.yaml, then a local
config/config.yaml, then the file given with --config.

Usage:
    python src/main.py --config config/config.yaml --video input.mp4

Arguments:
    --config: Path to configuration file
    --video: Video file path or capture device index
    --stream-id: Identifier used for the stream in events and logs
    --max-frames: Stop after this many frames (0 = until the source ends)
"""

import argparse
import logging
import os
import sys
import time
from typing import Any, Dict, Optional, Tuple

import cv2
import yaml

from events.sinks import LoggingSink
from inference import create_recognizer_from_config
from models.config import REQUIRED_ANALYTICS_KEYS, Config
from models.errors import AnalyticsError
from models.frame import PIXEL_FORMAT_GRAY8
from ops.logging import setup_logging
from pipeline.manager import create_manager_from_config


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively fold `override` into `base`; nested mappings merge key by key."""
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _read_yaml(path: str) -> Dict[str, Any]:
    if not os.path.exists(path):
        return {}
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load the layered configuration.

    Layers, later ones winning: `default.yaml` next to `config_path`, the
    local `config.yaml` beside it, then `config_path` itself when it is a
    different file. Missing layers are skipped.
    """
    config_dir = os.path.dirname(config_path)
    layers = [
        os.path.join(config_dir, "default.yaml"),
        os.path.join(config_dir, "config.yaml"),
    ]
    if os.path.abspath(config_path) not in {os.path.abspath(p) for p in layers}:
        layers.append(config_path)

    merged: Dict[str, Any] = {}
    try:
        for path in layers:
            merged = _deep_merge(merged, _read_yaml(path))
    except (OSError, yaml.YAMLError) as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)
    return merged


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration file structure and values.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    required_sections = ['analytics', 'recognizer', 'workers', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    analytics = config.get('analytics') or {}
    if not isinstance(analytics, dict):
        return False, "analytics must be a mapping"
    for key in REQUIRED_ANALYTICS_KEYS:
        if key not in analytics:
            return False, f"Missing analytics.{key}"

    recognizer = config.get('recognizer') or {}
    if not isinstance(recognizer, dict):
        return False, "recognizer must be a mapping"
    backend = recognizer.get('backend', 'yolo_easyocr')
    if backend not in ('yolo_easyocr',):
        return False, "recognizer.backend must be one of: yolo_easyocr"
    if not isinstance(recognizer.get('model'), str) or not recognizer.get('model'):
        return False, "recognizer.model is required"

    workers = config.get('workers') or {}
    if not isinstance(workers, dict):
        return False, "workers must be a mapping"
    for key in ('anpr_pool_size', 'anpr_max_pending'):
        if key in workers:
            value = workers[key]
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                return False, f"workers.{key} must be a positive integer"
    if workers.get('anpr_timeout_s') is not None:
        timeout = workers['anpr_timeout_s']
        if not isinstance(timeout, (int, float)) or timeout <= 0:
            return False, "workers.anpr_timeout_s must be a positive number or null"

    valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
    if config['log_level'] not in valid_log_levels:
        return False, f"log_level must be one of: {', '.join(valid_log_levels)}"

    try:
        Config.from_dict(config)
    except AnalyticsError as e:
        return False, str(e)

    return True, None


def _open_capture(source: str) -> cv2.VideoCapture:
    device = int(source) if source.isdigit() else source
    capture = cv2.VideoCapture(device)
    if not capture.isOpened():
        raise RuntimeError(f"Could not open video source: {source}")
    return capture


def main():
    """Main application function."""
    parser = argparse.ArgumentParser(description='ANPR Gate - motion-gated plate recognition')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--video', type=str, required=True,
                        help='Video file path or capture device index')
    parser.add_argument('--stream-id', type=str, default='cam-01',
                        help='Stream identifier used in events and logs')
    parser.add_argument('--max-frames', type=int, default=0,
                        help='Stop after this many frames (0 = until the source ends)')
    args = parser.parse_args()

    config = load_config(args.config)

    is_valid, error_msg = validate_config(config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        sys.exit(1)

    setup_logging(config['log_path'], config['log_level'])
    typed = Config.from_dict(config)

    logging.info("Starting ANPR Gate analytics")

    try:
        recognizer = create_recognizer_from_config(typed.recognizer)
    except (AnalyticsError, ImportError) as e:
        logging.error(f"Failed to load plate recognizer: {e}")
        sys.exit(1)

    manager = create_manager_from_config(typed, recognizer, sink=LoggingSink())
    capture = None
    try:
        manager.add_stream(args.stream_id, typed.analytics)
        capture = _open_capture(args.video)

        frame_count = 0
        while args.max_frames <= 0 or frame_count < args.max_frames:
            ok, image = capture.read()
            if not ok or image is None:
                logging.info("Video source exhausted")
                break

            if typed.analytics.pixel_format == PIXEL_FORMAT_GRAY8:
                image = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
            h, w = image.shape[:2]
            manager.submit(args.stream_id, image.tobytes(), w, h, time.monotonic())
            frame_count += 1

        manager.wait_idle()
        logging.info(f"Processed {frame_count} frames: {manager.stats()}")
    except KeyboardInterrupt:
        logging.info("Interrupted by user")
    except (AnalyticsError, RuntimeError) as e:
        logging.error(f"Pipeline error: {e}")
        sys.exit(1)
    finally:
        if capture is not None:
            capture.release()
        manager.close(flush=True)
        if manager.pool is not None:
            manager.pool.shutdown()
        logging.info("ANPR Gate stopped")


if __name__ == "__main__":
    main()
