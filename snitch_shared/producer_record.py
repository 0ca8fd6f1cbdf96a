"""
Shared representation of one member of the active producer set.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


def derive_label(identifier: str, fallback: str) -> str:
    """
    Return a human readable name for a namespaced identifier.

    ``com.apple.Music`` becomes ``Music``. An identifier made only of dots
    is returned untouched, and an empty identifier yields ``fallback``.
    """
    if not identifier:
        return fallback
    segments = [segment for segment in identifier.split(".") if segment]
    if not segments:
        return identifier
    return segments[-1]


@dataclass(frozen=True)
class ProducerRecord:
    """
    One entry of a snapshot. Identity is the ``id`` alone; two records with
    the same id describe the same producer observed at different ticks.
    """

    id: int
    identifier: str = field(default="", compare=False)
    name: Optional[str] = field(default=None, compare=False)
    active: bool = field(default=False, compare=False)

    @property
    def label(self) -> str:
        return derive_label(self.identifier, self.name or f"pid:{self.id}")
