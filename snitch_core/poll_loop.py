"""
Timer-driven poll loop owning the active set and dispatching transitions.
"""

from __future__ import annotations

import threading
from datetime import datetime
from typing import Callable, Iterable, List, Mapping, Optional

from PySide6.QtCore import QMetaObject, QObject, Qt, QThread, QTimer, Signal

from snitch_core import logger as app_logger
from snitch_core.diff_engine import EMPTY_ACTIVE, DiffResult, diff
from snitch_core.event_sinks import EventSink
from snitch_core.settings import DEFAULT_POLL_INTERVAL_MS
from snitch_core.snapshot_source import FetchError, SnapshotSource
from snitch_shared.producer_record import ProducerRecord
from snitch_shared.transition_event import TransitionEvent


class TickHandle:
    """Cancellable handle returned by ``PollLoop.start``."""

    def __init__(self, loop: "PollLoop") -> None:
        self._loop = loop

    @property
    def active(self) -> bool:
        return self._loop.is_running

    def cancel(self) -> None:
        self._loop.stop()


class PollLoop(QObject):
    """
    Polls a snapshot source at a fixed interval and reports what changed.

    The loop is the only writer of the active set. Ticks run on the thread
    owning the timer and never overlap; a tick that overruns simply delays
    the next one. The active set is replaced as a whole so readers always
    see the result of one complete tick.
    """

    runningChanged = Signal(bool)
    activeChanged = Signal(int)
    fetchFailed = Signal(str)

    def __init__(
        self,
        source: SnapshotSource,
        sinks: Iterable[EventSink] = (),
        *,
        interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
        emit_initial_state_as_events: bool = False,
        clock: Callable[[], datetime] = datetime.now,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._logger = app_logger.get_logger()
        self._source = source
        self._sinks: List[EventSink] = list(sinks)
        self._failing_hooks: set[tuple[int, str]] = set()
        self.emit_initial_state_as_events = emit_initial_state_as_events
        self._clock = clock

        self._lock = threading.RLock()
        self._active: Mapping[int, ProducerRecord] = EMPTY_ACTIVE
        self._baseline_taken = False
        self._running = False

        self._timer = QTimer(self)
        self._timer.setInterval(interval_ms)
        self._timer.timeout.connect(self._on_timeout)  # type: ignore[arg-type]

    @property
    def interval_ms(self) -> int:
        return self._timer.interval()

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._running

    @property
    def active(self) -> Mapping[int, ProducerRecord]:
        with self._lock:
            return self._active

    @property
    def active_ids(self) -> frozenset[int]:
        with self._lock:
            return frozenset(self._active)

    def start(self) -> TickHandle:
        """
        Take an immediate snapshot and begin ticking.

        The very first start either reports every active producer as a START
        or seeds the active set silently, depending on
        ``emit_initial_state_as_events``. A restart diffs against the active
        set preserved by ``stop`` so nothing is reported twice.
        """
        with self._lock:
            if self._running:
                return TickHandle(self)
            now = self._clock()
            try:
                snapshot = self._source.fetch()
            except FetchError as exc:
                self._report_fetch_failure(exc)
                snapshot = None

            if snapshot is not None:
                self._process(snapshot, now)

            self._running = True
            self._logger.info(
                "Poll loop started with {} active producer(s); interval {} ms.",
                len(self._active),
                self._timer.interval(),
            )
        self._timer.start()
        self.runningChanged.emit(True)
        return TickHandle(self)

    def stop(self) -> None:
        """
        Stop ticking. A tick already running completes first; no tick fires
        after this returns. The active set is preserved.
        """
        with self._lock:
            if not self._running:
                return
            self._running = False
        if QThread.currentThread() == self.thread():
            self._timer.stop()
        else:
            QMetaObject.invokeMethod(self._timer, "stop", Qt.ConnectionType.QueuedConnection)
        self._logger.info("Poll loop stopped with {} active producer(s).", len(self.active))
        self.runningChanged.emit(False)

    def tick(self) -> List[TransitionEvent]:
        """Run one poll-diff-dispatch cycle and return the transitions it produced."""
        with self._lock:
            now = self._clock()
            try:
                snapshot = self._source.fetch()
            except FetchError as exc:
                self._report_fetch_failure(exc)
                return []
            return self._process(snapshot, now)

    def _on_timeout(self) -> None:
        with self._lock:
            if not self._running:
                return
            self.tick()

    def _process(self, snapshot: List[ProducerRecord], now: datetime) -> List[TransitionEvent]:
        if self._baseline_taken or self.emit_initial_state_as_events:
            result = diff(self._active, snapshot, timestamp=now)
        else:
            seeded = diff(EMPTY_ACTIVE, snapshot, timestamp=now)
            self._dispatch("baseline", list(seeded.active.values()))
            result = DiffResult(transitions=[], active=seeded.active)
        self._baseline_taken = True
        self._apply(result)
        return result.transitions

    def _apply(self, result: DiffResult) -> None:
        previous_count = len(self._active)
        self._active = result.active
        if result.transitions:
            self._dispatch("consume", result.transitions)
        self._dispatch("active_set_changed", result.active)
        if len(result.active) != previous_count:
            self.activeChanged.emit(len(result.active))

    def _report_fetch_failure(self, exc: FetchError) -> None:
        message = f"Snapshot fetch failed: {exc}"
        self._logger.error(message)
        self._dispatch("report_error", message)
        self.fetchFailed.emit(str(exc))

    def _dispatch(self, hook: str, payload) -> None:
        for sink in self._sinks:
            key = (id(sink), hook)
            try:
                getattr(sink, hook)(payload)
            except Exception:
                if key not in self._failing_hooks:
                    self._failing_hooks.add(key)
                    self._logger.exception("Event sink {!r} failed during {}.", sink, hook)
                continue
            self._failing_hooks.discard(key)
