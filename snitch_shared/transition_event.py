"""
START/STOP transition events produced by the diff engine.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

DEFAULT_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


class TransitionKind(Enum):
    START = "START"
    STOP = "STOP"

    @property
    def icon(self) -> str:
        return "🔊" if self is TransitionKind.START else "🔇"

    @property
    def label(self) -> str:
        return self.value


@dataclass(frozen=True)
class TransitionEvent:
    """
    Immutable record of one producer entering or leaving the active set.

    The label is captured when the event is created so later metadata
    changes never rewrite history. ``timestamp`` is the detection tick.
    """

    kind: TransitionKind
    timestamp: datetime
    producer_id: int
    label: str
    identifier: str = ""
    event_id: str = field(default_factory=lambda: uuid.uuid4().hex, compare=False)

    def describe(self) -> str:
        return f"{self.kind.icon} {self.kind.label}: {self.label} (id={self.producer_id})"

    def format_line(self, time_format: str = DEFAULT_TIME_FORMAT) -> str:
        return f"[{self.timestamp.strftime(time_format)}] {self.describe()}"
