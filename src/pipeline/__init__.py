"""
Pipeline module for the ANPR gate analytics.

The pipeline orchestrates the per-stream processing flow:
- Frame buffering and backpressure
- Motion gating of plate recognition
- Plate tracking and sighting emission
"""

from .buffer import FrameBuffer
from .controller import PipelineController, PipelineState, PipelineStats
from .pool import AnprWorkerPool
from .worker import StreamWorker
from .manager import StreamManager, create_manager_from_config

__all__ = [
    "FrameBuffer",
    "PipelineController",
    "PipelineState",
    "PipelineStats",
    "AnprWorkerPool",
    "StreamWorker",
    "StreamManager",
    "create_manager_from_config",
]
