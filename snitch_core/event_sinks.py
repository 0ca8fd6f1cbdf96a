"""
Consumers of ordered transitions: a line-oriented log and an observable feed.
"""

from __future__ import annotations

import sys
import threading
from datetime import datetime
from typing import Callable, Iterable, List, Mapping, Optional, Sequence, TextIO, Tuple

from PySide6.QtCore import QObject, Signal

from snitch_shared.producer_record import ProducerRecord
from snitch_shared.transition_event import DEFAULT_TIME_FORMAT, TransitionEvent

BANNER = "Audio Snitch - monitoring audio output (Ctrl+C to stop)"


class EventSink:
    """Base sink. Only ``consume`` is mandatory; the other hooks are optional."""

    def consume(self, transitions: Sequence[TransitionEvent]) -> None:
        raise NotImplementedError

    def baseline(self, records: Sequence[ProducerRecord]) -> None:
        """Receive the producers found active when monitoring started silently."""

    def active_set_changed(self, active: Mapping[int, ProducerRecord]) -> None:
        """Receive the replacement active set after every completed tick."""

    def report_error(self, message: str) -> None:
        """Receive a human readable description of a failed tick."""


class LogSink(EventSink):
    """Writes one timestamped line per transition and flushes immediately."""

    def __init__(
        self,
        stream: Optional[TextIO] = None,
        *,
        time_format: str = DEFAULT_TIME_FORMAT,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._stream = stream if stream is not None else sys.stdout
        self._time_format = time_format
        self._clock = clock

    def consume(self, transitions: Sequence[TransitionEvent]) -> None:
        for event in transitions:
            self._write(event.format_line(self._time_format))

    def baseline(self, records: Sequence[ProducerRecord]) -> None:
        if not records:
            return
        self._write_stamped("Currently playing:")
        for record in records:
            self._write_stamped(f"  \N{BULLET} {record.label} (id={record.id})")

    def report_error(self, message: str) -> None:
        self._write_stamped(f"ERROR: {message}")

    def banner(self) -> None:
        self._write_stamped(BANNER)

    def _write_stamped(self, message: str) -> None:
        self._write(f"[{self._clock().strftime(self._time_format)}] {message}")

    def _write(self, line: str) -> None:
        self._stream.write(line + "\n")
        self._stream.flush()


class FeedSink(QObject, EventSink):
    """
    Newest-first event list for a presentation layer.

    ``changed`` fires after every mutation so views can redraw without
    polling. The list grows until ``clear`` is called.
    """

    changed = Signal()

    def __init__(self, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._lock = threading.RLock()
        self._events: List[TransitionEvent] = []
        self._active_count = 0

    @property
    def events(self) -> Tuple[TransitionEvent, ...]:
        with self._lock:
            return tuple(self._events)

    @property
    def active_count(self) -> int:
        with self._lock:
            return self._active_count

    def consume(self, transitions: Sequence[TransitionEvent]) -> None:
        if not transitions:
            return
        with self._lock:
            for event in transitions:
                self._events.insert(0, event)
        self.changed.emit()

    def active_set_changed(self, active: Mapping[int, ProducerRecord]) -> None:
        with self._lock:
            if len(active) == self._active_count:
                return
            self._active_count = len(active)
        self.changed.emit()

    def clear(self) -> None:
        with self._lock:
            self._events.clear()
        self.changed.emit()


def iter_feed_sinks(sinks: Iterable[EventSink]) -> List[FeedSink]:
    return [sink for sink in sinks if isinstance(sink, FeedSink)]
