"""
Environment-backed configuration for the snitch runtime.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from snitch_core import logger as app_logger

_LOGGER = app_logger.get_logger()

DEFAULT_POLL_INTERVAL_MS = 500
DEFAULT_FETCH_TIMEOUT_SECONDS = 2.0
_MIN_POLL_INTERVAL_MS = 50
_MAX_POLL_INTERVAL_MS = 60000
_MIN_FETCH_TIMEOUT = 0.1
_MAX_FETCH_TIMEOUT = 30.0

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(eq=True)
class SnitchSettings:
    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS
    fetch_timeout_seconds: float = DEFAULT_FETCH_TIMEOUT_SECONDS
    # None lets each front-end pick its own default.
    emit_initial_state_as_events: Optional[bool] = None

    def resolve_emit_initial(self, default: bool) -> bool:
        if self.emit_initial_state_as_events is None:
            return default
        return self.emit_initial_state_as_events


class SnitchSettingsManager:
    """Loads settings from the process environment and clamps invalid data."""

    def __init__(self, *, environ: Optional[Mapping[str, str]] = None) -> None:
        self._environ = os.environ if environ is None else environ

    def read_settings(self) -> SnitchSettings:
        return SnitchSettings(
            poll_interval_ms=self._read_poll_interval(),
            fetch_timeout_seconds=self._read_fetch_timeout(),
            emit_initial_state_as_events=self._read_bool("AUDIO_SNITCH_EMIT_INITIAL"),
        )

    def _read_poll_interval(self) -> int:
        raw = self._read_number("AUDIO_SNITCH_POLL_INTERVAL_MS", int)
        if raw is None:
            return DEFAULT_POLL_INTERVAL_MS
        if raw < _MIN_POLL_INTERVAL_MS or raw > _MAX_POLL_INTERVAL_MS:
            _LOGGER.warning(
                "Invalid poll interval {} found in environment. Clamping to safe bounds.",
                raw,
            )
        return max(_MIN_POLL_INTERVAL_MS, min(_MAX_POLL_INTERVAL_MS, raw))

    def _read_fetch_timeout(self) -> float:
        raw = self._read_number("AUDIO_SNITCH_FETCH_TIMEOUT", float)
        if raw is None:
            return DEFAULT_FETCH_TIMEOUT_SECONDS
        if raw < _MIN_FETCH_TIMEOUT or raw > _MAX_FETCH_TIMEOUT:
            _LOGGER.warning(
                "Invalid fetch timeout {} found in environment. Clamping to safe bounds.",
                raw,
            )
        return max(_MIN_FETCH_TIMEOUT, min(_MAX_FETCH_TIMEOUT, raw))

    def _read_bool(self, name: str) -> Optional[bool]:
        raw = self._environ.get(name)
        if raw is None or raw.strip() == "":
            return None
        lowered = raw.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        _LOGGER.warning("Environment value {}={!r} is not a boolean; ignoring.", name, raw)
        return None

    def _read_number(self, name: str, kind):
        raw = self._environ.get(name)
        if raw is None or raw.strip() == "":
            return None
        try:
            return kind(raw.strip())
        except ValueError:
            _LOGGER.warning("Environment value {}={!r} is not a valid number; ignoring.", name, raw)
            return None
