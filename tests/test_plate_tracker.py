"""
Tests for plate normalization and track lifecycle.
"""

import pytest

from models.detection import PlateCandidate, Region
from tracking.plate_tracker import PlateTracker, normalize_plate_text


def _candidate(text, confidence=0.9, timestamp=0.0):
    return PlateCandidate(
        region=Region(10, 10, 40, 12),
        text=text,
        confidence=confidence,
        timestamp=timestamp,
    )


class TestNormalization:
    @pytest.mark.parametrize("raw", ["AB-123", "ab 123", " Ab.123 ", "AB123"])
    def test_variants_collapse(self, raw):
        assert normalize_plate_text(raw) == "AB123"

    def test_empty(self):
        assert normalize_plate_text("") == ""
        assert normalize_plate_text(" - ") == ""


class TestPlateTracker:
    def test_single_plate_lifecycle(self):
        """Seen at t=1..3, gone afterwards, grace 1: one start, one end at t=5."""
        tracker = PlateTracker(grace_frames=1)

        events = tracker.update("cam-01", [_candidate("AB-123", 0.8, 1.0)], 1.0)
        assert len(events) == 1
        start = events[0]
        assert start.is_start
        assert start.plate_text == "AB123"
        assert start.start_time == 1.0
        assert start.end_time is None

        assert tracker.update("cam-01", [_candidate("AB 123", 0.95, 2.0)], 2.0) == []
        assert tracker.update("cam-01", [_candidate("ab123", 0.7, 3.0)], 3.0) == []
        assert tracker.update("cam-01", [], 4.0) == []

        events = tracker.update("cam-01", [], 5.0)
        assert len(events) == 1
        end = events[0]
        assert end.is_end
        assert end.plate_text == "AB123"
        assert end.start_time == 1.0
        assert end.end_time == 5.0
        assert end.peak_confidence == 0.95

        assert tracker.active_tracks("cam-01") == []
        assert tracker.update("cam-01", [], 6.0) == []

    def test_reappearance_within_grace_keeps_track(self):
        tracker = PlateTracker(grace_frames=2)
        tracker.update("cam-01", [_candidate("AB123")], 0.0)
        tracker.update("cam-01", [], 1.0)
        tracker.update("cam-01", [], 2.0)

        assert tracker.update("cam-01", [_candidate("AB123", timestamp=3.0)], 3.0) == []

        track = tracker.get_track("cam-01", "ab-123")
        assert track.misses == 0
        assert track.hits == 2
        assert track.last_seen == 3.0

    def test_zero_grace_ends_on_first_miss(self):
        tracker = PlateTracker(grace_frames=0)
        tracker.update("cam-01", [_candidate("AB123")], 0.0)

        events = tracker.update("cam-01", [], 1.0)

        assert [e.kind for e in events] == ["end"]
        assert events[0].end_time == 1.0

    def test_duplicates_in_one_frame_keep_highest_confidence(self):
        tracker = PlateTracker(grace_frames=1)

        events = tracker.update(
            "cam-01",
            [_candidate("AB 123", 0.6), _candidate("ab-123", 0.9), _candidate("AB123", 0.7)],
            0.0,
        )

        assert len(events) == 1
        assert events[0].peak_confidence == 0.9
        assert tracker.get_track("cam-01", "AB123").raw_text == "ab-123"

    def test_distinct_plates_get_distinct_tracks(self):
        tracker = PlateTracker(grace_frames=1)

        events = tracker.update("cam-01", [_candidate("AB123"), _candidate("XY999")], 0.0)

        assert sorted(e.plate_text for e in events) == ["AB123", "XY999"]
        assert len(tracker.active_tracks("cam-01")) == 2

    def test_streams_do_not_share_tracks(self):
        tracker = PlateTracker(grace_frames=0)
        tracker.update("cam-01", [_candidate("AB123")], 0.0)

        events = tracker.update("cam-02", [_candidate("AB123")], 0.0)

        assert [e.kind for e in events] == ["start"]
        assert events[0].stream_id == "cam-02"
        assert len(tracker.active_tracks("cam-01")) == 1

    def test_unreadable_text_is_ignored(self):
        tracker = PlateTracker()
        assert tracker.update("cam-01", [_candidate(" - ")], 0.0) == []
        assert tracker.active_tracks("cam-01") == []

    def test_flush_ends_every_track(self):
        tracker = PlateTracker(grace_frames=5)
        tracker.update("cam-01", [_candidate("AB123"), _candidate("XY999")], 0.0)

        events = tracker.flush("cam-01", 2.5)

        assert len(events) == 2
        assert all(e.is_end and e.end_time == 2.5 for e in events)
        assert tracker.active_tracks("cam-01") == []

    def test_reset_is_silent(self):
        tracker = PlateTracker(grace_frames=0)
        tracker.update("cam-01", [_candidate("AB123")], 0.0)
        tracker.reset("cam-01")

        assert tracker.update("cam-01", [], 1.0) == []

    def test_negative_grace_rejected(self):
        with pytest.raises(ValueError):
            PlateTracker(grace_frames=-1)
