"""
Plate tracking module for deduplicating plate sightings across frames.

Tracks are keyed by normalized plate text per stream. Every update sweeps
the stream's tracks once: matched tracks are refreshed, unmatched tracks
accumulate misses and expire after a grace period. No timers are involved;
expiry is driven entirely by update calls.
"""

import logging
from typing import Dict, Iterable, List, Optional

from models.detection import PlateCandidate
from models.sighting import SightingEvent
from models.track import PlateTrack


def normalize_plate_text(text: str) -> str:
    """
    Case-fold and strip every non-alphanumeric character.

    "ab-123", " AB 123 " and "Ab.123" all normalize to "AB123".
    """
    if not text:
        return ""
    return "".join(ch for ch in text.casefold() if ch.isalnum()).upper()


class PlateTracker:
    """
    Holds short-lived identity state for plates currently in view.

    This tracker is responsible for:
    - Collapsing repeated detections of the same plate into one track
    - Emitting exactly one start and one end event per track
    - Removing tracks that have been missing for longer than the grace period

    Streams never share tracks, so one tracker may serve several streams.
    """

    def __init__(self, grace_frames: int = 10):
        """
        Args:
            grace_frames: Number of consecutive updates a track may go
                          unmatched; it ends on the update after that.
        """
        if grace_frames < 0:
            raise ValueError("grace_frames must be non-negative")
        self.grace_frames = grace_frames
        self._tracks: Dict[str, Dict[str, PlateTrack]] = {}

    def update(
        self,
        stream_id: str,
        candidates: Iterable[PlateCandidate],
        timestamp: float,
    ) -> List[SightingEvent]:
        """
        Apply one frame's candidates to a stream's tracks.

        Args:
            stream_id: Stream the candidates came from.
            candidates: Plate candidates for this frame (may be empty).
            timestamp: Timestamp of the frame; used as the end time of any
                       track that expires during this call.

        Returns:
            Start events for new tracks, then end events for expired tracks.
        """
        tracks = self._tracks.setdefault(stream_id, {})
        events: List[SightingEvent] = []

        best = self._best_by_text(candidates)
        for text, candidate in best.items():
            track = tracks.get(text)
            if track is not None:
                track.confirm(candidate)
                continue

            track = PlateTrack.from_candidate(stream_id, text, candidate)
            tracks[text] = track
            events.append(SightingEvent.start(track))
            logging.info(
                f"[{stream_id}] Plate {text} sighted "
                f"(confidence={candidate.confidence:.2f})"
            )

        events.extend(self._sweep(stream_id, tracks, matched=best.keys(), timestamp=timestamp))
        return events

    @staticmethod
    def _best_by_text(candidates: Iterable[PlateCandidate]) -> Dict[str, PlateCandidate]:
        """Highest-confidence candidate per normalized text; the rest are dropped."""
        best: Dict[str, PlateCandidate] = {}
        for candidate in candidates:
            text = normalize_plate_text(candidate.text)
            if not text:
                continue
            current = best.get(text)
            if current is None or candidate.confidence > current.confidence:
                best[text] = candidate
        return best

    def _sweep(
        self,
        stream_id: str,
        tracks: Dict[str, PlateTrack],
        matched: Iterable[str],
        timestamp: float,
    ) -> List[SightingEvent]:
        """Increment misses on unmatched tracks and end those past the grace period."""
        matched = set(matched)
        to_remove = []
        for text, track in tracks.items():
            if text in matched:
                continue
            if track.miss() > self.grace_frames:
                to_remove.append(text)

        events = []
        for text in to_remove:
            track = tracks.pop(text)
            events.append(SightingEvent.end(track, end_time=timestamp))
            logging.info(
                f"[{stream_id}] Plate {text} left view "
                f"(hits={track.hits}, peak={track.best_confidence:.2f})"
            )
        return events

    def flush(self, stream_id: str, timestamp: float) -> List[SightingEvent]:
        """End every active track of a stream, e.g. on teardown."""
        tracks = self._tracks.pop(stream_id, {})
        return [SightingEvent.end(track, end_time=timestamp) for track in tracks.values()]

    def reset(self, stream_id: Optional[str] = None) -> None:
        """Discard tracks without emitting events (one stream, or all)."""
        if stream_id is None:
            self._tracks.clear()
        else:
            self._tracks.pop(stream_id, None)

    def active_tracks(self, stream_id: str) -> List[PlateTrack]:
        """Get list of currently active tracks for a stream."""
        return list(self._tracks.get(stream_id, {}).values())

    def get_track(self, stream_id: str, plate_text: str) -> Optional[PlateTrack]:
        return self._tracks.get(stream_id, {}).get(normalize_plate_text(plate_text))
