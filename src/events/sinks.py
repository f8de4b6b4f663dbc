"""
Sighting event sinks.

A sink is the boundary to alerting, logging and gate-control collaborators.
Sinks receive events in emission order for a stream: the start event of a
plate always precedes its end event.
"""

from __future__ import annotations

import json
import logging
from typing import Callable, Iterable, List, Protocol

from models.sighting import SightingEvent


class SightingSink(Protocol):
    def emit(self, event: SightingEvent) -> None:
        ...


class LoggingSink:
    """Writes each event to the log as a JSON line."""

    def __init__(self, level: int = logging.INFO):
        self._level = level

    def emit(self, event: SightingEvent) -> None:
        logging.log(self._level, f"SIGHTING {json.dumps(event.to_dict(), sort_keys=True)}")


class CallbackSink:
    """Forwards each event to a callable."""

    def __init__(self, callback: Callable[[SightingEvent], None]):
        self._callback = callback

    def emit(self, event: SightingEvent) -> None:
        self._callback(event)


class MultiSink:
    """
    Fans events out to several sinks.

    A failing sink is logged and skipped so the remaining sinks still
    receive the event.
    """

    def __init__(self, sinks: Iterable[SightingSink]):
        self._sinks: List[SightingSink] = list(sinks)

    def add(self, sink: SightingSink) -> None:
        self._sinks.append(sink)

    def emit(self, event: SightingEvent) -> None:
        for sink in self._sinks:
            try:
                sink.emit(event)
            except Exception as e:
                logging.warning(f"Sink {type(sink).__name__} failed: {e}")
