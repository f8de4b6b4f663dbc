"""
Multi-stream ingestion boundary.

Routes raw pixel buffers to the owning stream's controller. Each stream
gets its own controller (and, in threaded mode, its own worker thread);
the recognizer, sink and ANPR worker pool are shared.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Optional, Union

from detection.anpr import AnprDetector
from events.sinks import SightingSink
from inference.backend import PlateRecognizer
from models.config import AnalyticsConfig, Config
from models.errors import ConfigInvalid, DimensionMismatch
from models.frame import Frame
from models.sighting import SightingEvent
from pipeline.controller import PipelineController
from pipeline.pool import AnprWorkerPool
from pipeline.worker import StreamWorker


class StreamManager:
    """
    Registry of per-stream pipelines behind a single submit() call.

    Example:
        manager = StreamManager(recognizer, sink=LoggingSink(), pool=pool)
        manager.add_stream("cam-01", analytics_config)
        manager.submit("cam-01", pixel_bytes, 1280, 720, time.monotonic())
        manager.close()
    """

    def __init__(
        self,
        recognizer: Optional[PlateRecognizer],
        sink: Optional[SightingSink] = None,
        pool: Optional[AnprWorkerPool] = None,
        threaded: bool = False,
    ):
        """
        Args:
            recognizer: Plate recognizer shared by all streams.
            sink: Receives sighting events from every stream.
            pool: Shared ANPR worker pool; None runs ANPR inline.
            threaded: Run each stream on its own worker thread with a
                      drop-oldest queue instead of processing in submit().
        """
        self._recognizer = recognizer
        self._sink = sink
        self._pool = pool
        self._threaded = threaded
        self._lock = threading.Lock()
        self._controllers: Dict[str, PipelineController] = {}
        self._workers: Dict[str, StreamWorker] = {}
        self._frame_index: Dict[str, int] = {}
        self.unknown_stream_frames = 0
        self.malformed_frames = 0

    @property
    def pool(self) -> Optional[AnprWorkerPool]:
        return self._pool

    @property
    def stream_ids(self) -> List[str]:
        with self._lock:
            return list(self._controllers)

    def get(self, stream_id: str) -> Optional[PipelineController]:
        with self._lock:
            return self._controllers.get(stream_id)

    def add_stream(
        self,
        stream_id: str,
        config: Union[AnalyticsConfig, Dict[str, Any]],
    ) -> PipelineController:
        """
        Create and initialize a controller for a new stream.

        Raises:
            ValueError: If the stream id is already registered.
            ConfigInvalid: If initialization fails.
        """
        with self._lock:
            if stream_id in self._controllers:
                raise ValueError(f"Stream {stream_id} already registered")

        controller = PipelineController(
            stream_id,
            AnprDetector(self._recognizer),
            sink=self._sink,
            pool=self._pool,
        )
        if not controller.initialize(config):
            raise ConfigInvalid(f"Stream {stream_id}: {controller.last_error}")

        worker = None
        if self._threaded:
            worker = StreamWorker(controller, capacity=controller.config.frame_buffer_capacity)
            worker.start()

        with self._lock:
            self._controllers[stream_id] = controller
            self._frame_index[stream_id] = 0
            if worker is not None:
                self._workers[stream_id] = worker

        logging.info(f"Stream {stream_id} added (threaded={self._threaded})")
        return controller

    def remove_stream(self, stream_id: str, flush: bool = True) -> List[SightingEvent]:
        """
        Tear a stream down. Queued frames are processed first.

        Returns:
            End events emitted by the flush (empty when flush=False).
        """
        with self._lock:
            controller = self._controllers.pop(stream_id, None)
            worker = self._workers.pop(stream_id, None)
            self._frame_index.pop(stream_id, None)
        if controller is None:
            return []
        if worker is not None:
            worker.stop(drain=True)
        return controller.close(flush=flush)

    def submit(
        self,
        stream_id: str,
        pixel_buffer: Union[bytes, bytearray, memoryview],
        width: int,
        height: int,
        timestamp: float,
    ) -> bool:
        """
        Ingest one packed frame for a stream.

        The byte layout is the stream's configured pixel_format (gray8 or
        bgr24, row-major).

        Returns:
            False for an unknown stream, a buffer that does not match the
            declared dimensions, or a frame the controller rejected.
        """
        with self._lock:
            controller = self._controllers.get(stream_id)
            if controller is None:
                self.unknown_stream_frames += 1
                logging.debug(f"Frame for unknown stream {stream_id!r} rejected")
                return False
            index = self._frame_index[stream_id] + 1
            self._frame_index[stream_id] = index
            pixel_format = controller.config.pixel_format

        try:
            frame = Frame.from_buffer(
                stream_id,
                pixel_buffer,
                width,
                height,
                timestamp,
                pixel_format=pixel_format,
                frame_index=index,
            )
        except DimensionMismatch as e:
            with self._lock:
                self.malformed_frames += 1
            logging.warning(f"[{stream_id}] Malformed frame rejected: {e}")
            return False

        return self.submit_frame(frame)

    def submit_frame(self, frame: Frame) -> bool:
        """Ingest an already-built Frame for its stream."""
        with self._lock:
            controller = self._controllers.get(frame.stream_id)
            worker = self._workers.get(frame.stream_id)
        if controller is None:
            with self._lock:
                self.unknown_stream_frames += 1
            return False
        if worker is not None:
            return worker.offer(frame)
        return controller.submit(frame)

    def wait_idle(self, timeout: Optional[float] = None) -> None:
        """Wait until every stream worker has drained its queue."""
        with self._lock:
            workers = list(self._workers.values())
        for worker in workers:
            worker.wait_idle(timeout=timeout)

    def stats(self) -> Dict[str, Dict[str, Any]]:
        with self._lock:
            controllers = dict(self._controllers)
        return {sid: c.stats.to_dict() for sid, c in controllers.items()}

    def close(self, flush: bool = True) -> List[SightingEvent]:
        """Tear down every stream."""
        events: List[SightingEvent] = []
        for stream_id in self.stream_ids:
            events.extend(self.remove_stream(stream_id, flush=flush))
        return events

    def __enter__(self) -> "StreamManager":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def create_manager_from_config(
    config: Config,
    recognizer: PlateRecognizer,
    sink: Optional[SightingSink] = None,
) -> StreamManager:
    """
    Factory function to create a StreamManager and its shared pool from config.

    Args:
        config: Full typed application config.
        recognizer: Plate recognizer shared by all streams.
        sink: Event sink for all streams.
    """
    workers = config.workers
    pool = AnprWorkerPool(
        max_workers=workers.anpr_pool_size,
        max_pending=max(workers.anpr_max_pending, workers.anpr_pool_size),
        timeout_s=workers.anpr_timeout_s,
    )
    return StreamManager(recognizer, sink=sink, pool=pool, threaded=workers.threaded_streams)
