"""
Session controller pairing a poll loop with its sinks.

The terminal front-end and the window front-end drive monitoring through
the same start/stop/clear calls; only the sinks and the initial-state
policy differ.
"""

from __future__ import annotations

from typing import Iterable, List, Mapping, Optional, TextIO

from PySide6.QtCore import QObject

from snitch_core import logger as app_logger
from snitch_core.event_sinks import EventSink, FeedSink, LogSink, iter_feed_sinks
from snitch_core.poll_loop import PollLoop, TickHandle
from snitch_core.settings import SnitchSettings
from snitch_core.snapshot_source import PactlSnapshotSource, SnapshotSource
from snitch_shared.producer_record import ProducerRecord

CLI_EMITS_INITIAL_STATE = False
UI_EMITS_INITIAL_STATE = True
# pactl runs on the GUI thread in the window front-end.
UI_MAX_FETCH_TIMEOUT_SECONDS = 0.5


class MonitorSession(QObject):
    def __init__(
        self,
        source: SnapshotSource,
        sinks: Iterable[EventSink],
        settings: Optional[SnitchSettings] = None,
        *,
        emit_initial_default: bool = CLI_EMITS_INITIAL_STATE,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._logger = app_logger.get_logger()
        self.settings = settings or SnitchSettings()
        self._sinks: List[EventSink] = list(sinks)
        self.source = source
        self._handle: Optional[TickHandle] = None
        self.loop = PollLoop(
            source,
            self._sinks,
            interval_ms=self.settings.poll_interval_ms,
            emit_initial_state_as_events=self.settings.resolve_emit_initial(emit_initial_default),
            parent=self,
        )

    @classmethod
    def for_log(
        cls,
        stream: Optional[TextIO] = None,
        settings: Optional[SnitchSettings] = None,
        *,
        source: Optional[SnapshotSource] = None,
    ) -> "MonitorSession":
        settings = settings or SnitchSettings()
        return cls(
            source or PactlSnapshotSource(timeout_seconds=settings.fetch_timeout_seconds),
            [LogSink(stream)],
            settings,
            emit_initial_default=CLI_EMITS_INITIAL_STATE,
        )

    @classmethod
    def for_feed(
        cls,
        settings: Optional[SnitchSettings] = None,
        *,
        source: Optional[SnapshotSource] = None,
    ) -> "MonitorSession":
        settings = settings or SnitchSettings()
        return cls(
            source or PactlSnapshotSource(
                timeout_seconds=min(settings.fetch_timeout_seconds, UI_MAX_FETCH_TIMEOUT_SECONDS)
            ),
            [FeedSink()],
            settings,
            emit_initial_default=UI_EMITS_INITIAL_STATE,
        )

    @property
    def is_running(self) -> bool:
        return self.loop.is_running

    @property
    def active(self) -> Mapping[int, ProducerRecord]:
        return self.loop.active

    @property
    def feed(self) -> Optional[FeedSink]:
        feeds = iter_feed_sinks(self._sinks)
        return feeds[0] if feeds else None

    @property
    def log(self) -> Optional[LogSink]:
        for sink in self._sinks:
            if isinstance(sink, LogSink):
                return sink
        return None

    def start(self) -> TickHandle:
        if self._handle is not None and self._handle.active:
            self._logger.debug("Monitor session already running; start ignored.")
            return self._handle
        self._logger.info("Starting monitor session.")
        self._handle = self.loop.start()
        return self._handle

    def stop(self) -> None:
        if self._handle is None:
            return
        self._logger.info("Stopping monitor session.")
        self._handle.cancel()
        self._handle = None

    def clear(self) -> None:
        """Discard accumulated feed events; the active set is untouched."""
        for feed in iter_feed_sinks(self._sinks):
            feed.clear()
