from __future__ import annotations

import os
import tempfile
from datetime import datetime
from typing import Iterable, List

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
os.environ.setdefault("AUDIO_SNITCH_LOG_DIR", tempfile.mkdtemp(prefix="audio-snitch-tests-"))

import pytest  # noqa: E402
from PySide6.QtWidgets import QApplication  # noqa: E402

from snitch_shared.producer_record import ProducerRecord  # noqa: E402

FIXED_NOW = datetime(2026, 10, 18, 9, 30, 0)


@pytest.fixture(scope="session", autouse=True)
def qapp():
    app = QApplication.instance() or QApplication([])
    yield app


def producer(producer_id: int, label: str, *, active: bool = True, identifier: str = "") -> ProducerRecord:
    return ProducerRecord(id=producer_id, identifier=identifier, name=label, active=active)


class ScriptedSource:
    """Returns queued snapshots in order, repeating the last one forever."""

    def __init__(self, *snapshots) -> None:
        self._snapshots = list(snapshots) or [[]]
        self.calls = 0

    def push(self, snapshot) -> None:
        self._snapshots.append(snapshot)

    def fetch(self) -> List[ProducerRecord]:
        self.calls += 1
        item = self._snapshots.pop(0) if len(self._snapshots) > 1 else self._snapshots[0]
        if isinstance(item, Exception):
            raise item
        return list(item)


class RecordingSink:
    def __init__(self) -> None:
        self.batches: List[list] = []
        self.baselines: List[list] = []
        self.active_sets: List[frozenset] = []
        self.errors: List[str] = []

    @property
    def events(self) -> list:
        return [event for batch in self.batches for event in batch]

    def consume(self, transitions) -> None:
        self.batches.append(list(transitions))

    def baseline(self, records) -> None:
        self.baselines.append(list(records))

    def active_set_changed(self, active) -> None:
        self.active_sets.append(frozenset(active))

    def report_error(self, message: str) -> None:
        self.errors.append(message)


def kinds_and_ids(events: Iterable) -> list:
    return [(event.kind.label, event.producer_id) for event in events]


@pytest.fixture
def clock():
    return lambda: FIXED_NOW
