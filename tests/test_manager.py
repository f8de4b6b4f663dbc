"""
Tests for the multi-stream StreamManager.
"""

import numpy as np
import pytest

from conftest import FakeRecognizer, reading
from events.sinks import CallbackSink
from models.config import Config
from models.errors import ConfigInvalid
from pipeline.controller import PipelineState
from pipeline.manager import StreamManager, create_manager_from_config


def _pixels(width=160, height=120, rect=None):
    image = np.zeros((height, width, 3), dtype=np.uint8)
    if rect is not None:
        x, y, w, h = rect
        image[y:y + h, x:x + w] = 255
    return image.tobytes()


@pytest.fixture
def events():
    return []


@pytest.fixture
def manager(events):
    recognizer = FakeRecognizer([reading("AB123")])
    m = StreamManager(recognizer, sink=CallbackSink(events.append))
    yield m
    m.close(flush=False)


class TestStreamManager:
    def test_submit_bytes(self, manager, analytics_options):
        manager.add_stream("cam-01", analytics_options)

        assert manager.submit("cam-01", _pixels(), 160, 120, 0.0)

        controller = manager.get("cam-01")
        assert controller.state == PipelineState.WATCHING
        assert controller.buffer.latest().frame_index == 1
        assert manager.stats()["cam-01"]["frames_accepted"] == 1

    def test_unknown_stream(self, manager):
        assert not manager.submit("cam-99", _pixels(), 160, 120, 0.0)
        assert manager.unknown_stream_frames == 1

    def test_malformed_buffer(self, manager, analytics_options):
        manager.add_stream("cam-01", analytics_options)

        assert not manager.submit("cam-01", b"\x00" * 100, 160, 120, 0.0)

        assert manager.malformed_frames == 1
        assert manager.stats()["cam-01"]["frames_submitted"] == 0

    def test_gray_streams(self, manager, analytics_options):
        analytics_options["pixel_format"] = "gray8"
        manager.add_stream("cam-01", analytics_options)

        assert manager.submit("cam-01", bytes(160 * 120), 160, 120, 0.0)
        assert manager.get("cam-01").buffer.latest().channels == 1

    def test_duplicate_stream(self, manager, analytics_options):
        manager.add_stream("cam-01", analytics_options)
        with pytest.raises(ValueError):
            manager.add_stream("cam-01", analytics_options)

    def test_invalid_stream_config(self, manager, analytics_options):
        del analytics_options["region_policy"]
        with pytest.raises(ConfigInvalid):
            manager.add_stream("cam-01", analytics_options)
        assert manager.stream_ids == []

    def test_streams_are_independent(self, manager, analytics_options, events):
        analytics_options["motion_threshold"] = 0.05
        manager.add_stream("cam-01", analytics_options)
        manager.add_stream("cam-02", analytics_options)

        for stream_id in ("cam-01", "cam-02"):
            manager.submit(stream_id, _pixels(), 160, 120, 0.0)
        manager.submit("cam-01", _pixels(rect=(60, 40, 40, 40)), 160, 120, 1.0)

        assert manager.get("cam-01").state == PipelineState.GATED
        assert manager.get("cam-02").state == PipelineState.WATCHING
        assert [(e.kind, e.stream_id) for e in events] == [("start", "cam-01")]

    def test_remove_stream_flushes(self, manager, analytics_options, events):
        analytics_options.update(motion_threshold=0.05, track_grace_frames=10)
        manager.add_stream("cam-01", analytics_options)
        manager.submit("cam-01", _pixels(), 160, 120, 0.0)
        manager.submit("cam-01", _pixels(rect=(60, 40, 40, 40)), 160, 120, 1.0)

        flushed = manager.remove_stream("cam-01")

        assert [e.kind for e in flushed] == ["end"]
        assert flushed[0].end_time == 1.0
        assert [e.kind for e in events] == ["start", "end"]
        assert manager.stream_ids == []
        assert not manager.submit("cam-01", _pixels(), 160, 120, 2.0)

    def test_threaded_streams(self, analytics_options):
        analytics_options["frame_buffer_capacity"] = 8
        manager = StreamManager(FakeRecognizer(), threaded=True)
        manager.add_stream("cam-01", analytics_options)

        for i in range(5):
            assert manager.submit("cam-01", _pixels(), 160, 120, float(i))
        manager.wait_idle(timeout=5.0)

        assert manager.stats()["cam-01"]["frames_accepted"] == 5
        manager.close()
        assert manager.stream_ids == []


class TestCreateManager:
    def test_from_config(self, valid_config):
        manager = create_manager_from_config(Config.from_dict(valid_config), FakeRecognizer())

        assert manager.pool.max_workers == 2
        assert manager.pool.max_pending == 4

        manager.close()
        manager.pool.shutdown()
