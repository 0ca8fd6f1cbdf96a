"""
Diffing of consecutive snapshots into START/STOP transitions.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from types import MappingProxyType
from typing import FrozenSet, Iterable, List, Mapping

from snitch_shared.producer_record import ProducerRecord
from snitch_shared.transition_event import TransitionEvent, TransitionKind

EMPTY_ACTIVE: Mapping[int, ProducerRecord] = MappingProxyType({})


@dataclass(frozen=True)
class DiffResult:
    transitions: List[TransitionEvent]
    active: Mapping[int, ProducerRecord]

    @property
    def active_ids(self) -> FrozenSet[int]:
        return frozenset(self.active)

    @property
    def starts(self) -> List[TransitionEvent]:
        return [event for event in self.transitions if event.kind is TransitionKind.START]

    @property
    def stops(self) -> List[TransitionEvent]:
        return [event for event in self.transitions if event.kind is TransitionKind.STOP]


def diff(
    previous: Mapping[int, ProducerRecord],
    snapshot: Iterable[ProducerRecord],
    *,
    timestamp: datetime,
) -> DiffResult:
    """
    Compare the previous active set with a fresh snapshot.

    ``previous`` maps each active id to the record it was last seen with so
    that STOP events can carry a label even when the producer vanished from
    the snapshot entirely. STARTs follow snapshot order, STOPs follow the
    order of ``previous``, and every START precedes every STOP.
    """
    current: dict[int, ProducerRecord] = {}
    for record in snapshot:
        if record.active and record.id not in current:
            current[record.id] = record

    starts = [
        _transition(TransitionKind.START, record, timestamp)
        for producer_id, record in current.items()
        if producer_id not in previous
    ]
    stops = [
        _transition(TransitionKind.STOP, record, timestamp)
        for producer_id, record in previous.items()
        if producer_id not in current
    ]
    return DiffResult(transitions=starts + stops, active=MappingProxyType(current))


def _transition(kind: TransitionKind, record: ProducerRecord, timestamp: datetime) -> TransitionEvent:
    return TransitionEvent(
        kind=kind,
        timestamp=timestamp,
        producer_id=record.id,
        label=record.label,
        identifier=record.identifier,
    )
