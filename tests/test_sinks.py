"""
Tests for sighting sinks and logging setup.
"""

import json
import logging

from events.sinks import CallbackSink, LoggingSink, MultiSink
from models.sighting import SightingEvent
from ops.logging import setup_logging


def _event(kind="start"):
    return SightingEvent(
        kind=kind,
        stream_id="cam-01",
        plate_text="AB123",
        start_time=1.0,
        end_time=None if kind == "start" else 4.0,
        peak_confidence=0.9,
    )


class TestSinks:
    def test_logging_sink_writes_json(self, caplog):
        caplog.set_level(logging.INFO)

        LoggingSink().emit(_event())

        record = caplog.records[-1]
        assert record.getMessage().startswith("SIGHTING ")
        payload = json.loads(record.getMessage()[len("SIGHTING "):])
        assert payload["plate_text"] == "AB123"
        assert payload["kind"] == "start"

    def test_callback_sink(self):
        received = []
        CallbackSink(received.append).emit(_event())
        assert received == [_event()]

    def test_multi_sink_skips_failing_sink(self):
        class Broken:
            def emit(self, event):
                raise RuntimeError("down")

        received = []
        sink = MultiSink([Broken(), CallbackSink(received.append)])
        sink.add(CallbackSink(received.append))

        sink.emit(_event("end"))

        assert len(received) == 2
        assert received[0].is_end


class TestSetupLogging:
    def test_creates_log_directory(self, tmp_path):
        root = logging.getLogger()
        saved_handlers, saved_level = list(root.handlers), root.level
        log_path = tmp_path / "logs" / "anpr.log"
        try:
            setup_logging(str(log_path), "DEBUG")
            logging.debug("hello")
            for handler in root.handlers:
                handler.flush()

            assert log_path.exists()
            assert "hello" in log_path.read_text()
            assert root.level == logging.DEBUG
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers = saved_handlers
            root.setLevel(saved_level)
