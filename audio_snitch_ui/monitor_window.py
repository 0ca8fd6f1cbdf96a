"""
Window listing transitions newest-first with an active-count status bar.
"""

from __future__ import annotations

from PySide6.QtCore import Qt
from PySide6.QtGui import QCloseEvent, QShowEvent
from PySide6.QtWidgets import (
    QHBoxLayout,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QPushButton,
    QStackedWidget,
    QVBoxLayout,
    QWidget,
)

from snitch_core.event_sinks import FeedSink
from snitch_core.monitor import MonitorSession
from snitch_shared.transition_event import TransitionEvent, TransitionKind

EMPTY_MESSAGE = "Waiting for audio events..."
ROW_TIME_FORMAT = "%H:%M:%S"
DISPLAY_ALIASES = {"systemsoundserverd": "System Sound Effects"}
_KIND_COLORS = {TransitionKind.START: "#2e9d4f", TransitionKind.STOP: "#e08a1e"}


def display_name(event: TransitionEvent) -> str:
    return DISPLAY_ALIASES.get(event.label, event.label)


def status_text(active_count: int) -> str:
    return "No audio" if active_count == 0 else f"{active_count} active"


class EventRow(QWidget):
    def __init__(self, event: TransitionEvent, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        icon_label = QLabel(event.kind.icon)
        icon_label.setStyleSheet("font-size: 20px;")

        name_label = QLabel(display_name(event))
        name_label.setObjectName("EventName")
        name_label.setStyleSheet("font-weight: bold;")
        caption = f"{event.identifier} PID={event.producer_id}".strip()
        caption_label = QLabel(caption)
        caption_label.setStyleSheet("color: gray; font-size: 11px;")

        kind_label = QLabel(event.kind.label)
        kind_label.setObjectName("EventKind")
        kind_label.setStyleSheet(f"font-weight: bold; font-size: 11px; color: {_KIND_COLORS[event.kind]};")
        time_label = QLabel(event.timestamp.strftime(ROW_TIME_FORMAT))
        time_label.setStyleSheet("color: gray; font-size: 11px;")

        text_layout = QVBoxLayout()
        text_layout.setSpacing(0)
        text_layout.addWidget(name_label)
        text_layout.addWidget(caption_label)

        trailing_layout = QVBoxLayout()
        trailing_layout.setSpacing(0)
        trailing_layout.addWidget(kind_label, alignment=Qt.AlignmentFlag.AlignRight)
        trailing_layout.addWidget(time_label, alignment=Qt.AlignmentFlag.AlignRight)

        layout = QHBoxLayout(self)
        layout.setContentsMargins(8, 4, 8, 4)
        layout.addWidget(icon_label)
        layout.addLayout(text_layout)
        layout.addStretch()
        layout.addLayout(trailing_layout)


class MonitorWindow(QMainWindow):
    """
    Presents a feed-backed monitor session. Monitoring runs while the
    window is visible and stops when it closes.
    """

    def __init__(self, session: MonitorSession, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setWindowTitle("Audio Snitch")
        self.setMinimumSize(300, 300)
        self._session = session
        feed = session.feed
        if feed is None:
            raise ValueError("MonitorWindow requires a session with a FeedSink.")
        self._feed: FeedSink = feed

        self._list = QListWidget()
        self._rebuilds = 0
        self._empty_label = QLabel(EMPTY_MESSAGE)
        self._empty_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._empty_label.setStyleSheet("color: gray;")

        self._stack = QStackedWidget()
        self._stack.addWidget(self._empty_label)
        self._stack.addWidget(self._list)

        self._status_dot = QLabel()
        self._status_dot.setFixedSize(10, 10)
        self._status_label = QLabel()
        self._status_label.setStyleSheet("font-weight: bold;")
        self._clear_button = QPushButton("Clear")
        self._clear_button.clicked.connect(self._session.clear)  # type: ignore[arg-type]

        footer = QWidget()
        footer_layout = QHBoxLayout(footer)
        footer_layout.addWidget(self._status_dot)
        footer_layout.addWidget(self._status_label)
        footer_layout.addStretch()
        footer_layout.addWidget(self._clear_button)

        central = QWidget()
        layout = QVBoxLayout(central)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)
        layout.addWidget(self._stack, 1)
        layout.addWidget(footer)
        self.setCentralWidget(central)

        self._feed.changed.connect(self.refresh)  # type: ignore[arg-type]
        self.refresh()

    @property
    def row_count(self) -> int:
        return self._list.count()

    @property
    def status_label_text(self) -> str:
        return self._status_label.text()

    @property
    def showing_placeholder(self) -> bool:
        return self._stack.currentWidget() is self._empty_label

    @property
    def rebuild_count(self) -> int:
        return self._rebuilds

    def refresh(self) -> None:
        events = self._feed.events
        shown = self._list.count()
        fresh = len(events) - shown
        if fresh >= 0 and (shown == 0 or self._row_event_id(0) == events[fresh].event_id):
            # Feed only grows at the front; add just the new rows.
            for event in reversed(events[:fresh]):
                self._insert_row(0, event)
        else:
            self._rebuilds += 1
            self._list.clear()
            for index, event in enumerate(events):
                self._insert_row(index, event)

        if events:
            self._stack.setCurrentWidget(self._list)
            if fresh > 0:
                self._list.scrollToTop()
        else:
            self._stack.setCurrentWidget(self._empty_label)

        active_count = self._feed.active_count
        color = "gray" if active_count == 0 else "#2e9d4f"
        self._status_dot.setStyleSheet(f"background-color: {color}; border-radius: 5px;")
        self._status_label.setText(status_text(active_count))

    def _insert_row(self, index: int, event: TransitionEvent) -> None:
        row = EventRow(event)
        item = QListWidgetItem()
        item.setData(Qt.ItemDataRole.UserRole, event.event_id)
        item.setSizeHint(row.sizeHint())
        self._list.insertItem(index, item)
        self._list.setItemWidget(item, row)

    def _row_event_id(self, index: int) -> str:
        return self._list.item(index).data(Qt.ItemDataRole.UserRole)

    def showEvent(self, event: QShowEvent) -> None:  # noqa: N802
        super().showEvent(event)
        self._session.start()

    def closeEvent(self, event: QCloseEvent) -> None:  # noqa: N802
        self._session.stop()
        super().closeEvent(event)
