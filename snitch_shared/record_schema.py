"""
Validation of raw enumeration entries shared by every snapshot source.

A raw entry is a plain mapping with the keys ``id``, ``identifier``,
``name`` and ``active``. Sources translate whatever their enumeration
mechanism returns into that shape and let this module decide which entries
make it into a snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .producer_record import ProducerRecord


class RecordValidationError(ValueError):
    """Raised when an entry is missing its identity or carries malformed data."""


@dataclass(slots=True)
class RecordLoadResult:
    records: List[ProducerRecord]
    errors: List[Tuple[Any, Exception]]


def parse_record(entry: Mapping[str, Any]) -> ProducerRecord:
    """Validate one raw entry and build the corresponding record."""
    if not isinstance(entry, Mapping):
        raise RecordValidationError("Record entry must be a mapping.")

    producer_id = _require_id(entry.get("id"))
    identifier = _optional_string(entry.get("identifier"), field="identifier") or ""
    name = _optional_string(entry.get("name"), field="name") or None
    active = _coerce_active(entry.get("active"))
    return ProducerRecord(id=producer_id, identifier=identifier, name=name, active=active)


def load_records(entries: Iterable[Mapping[str, Any]]) -> RecordLoadResult:
    """
    Parse every entry, dropping malformed ones and merging duplicate ids.

    The first entry seen for an id supplies its metadata; the producer is
    active when any of its entries is.
    """
    merged: Dict[int, ProducerRecord] = {}
    errors: List[Tuple[Any, Exception]] = []

    for entry in entries:
        try:
            record = parse_record(entry)
        except RecordValidationError as exc:
            errors.append((entry, exc))
            continue

        existing = merged.get(record.id)
        if existing is None:
            merged[record.id] = record
        elif record.active and not existing.active:
            merged[record.id] = ProducerRecord(
                id=existing.id,
                identifier=existing.identifier,
                name=existing.name,
                active=True,
            )

    return RecordLoadResult(records=list(merged.values()), errors=errors)


def _require_id(value: Any) -> int:
    if value is None:
        raise RecordValidationError("id is required.")
    if isinstance(value, bool):
        raise RecordValidationError("id must be an integer.")
    if isinstance(value, str):
        value = value.strip()
    try:
        producer_id = int(value)
    except (TypeError, ValueError) as exc:
        raise RecordValidationError("id must be an integer.") from exc
    if producer_id < 0:
        raise RecordValidationError("id must not be negative.")
    return producer_id


def _optional_string(value: Any, *, field: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise RecordValidationError(f"{field} must be a string.")
    return value.strip()


def _coerce_active(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes"}
    return bool(value)
