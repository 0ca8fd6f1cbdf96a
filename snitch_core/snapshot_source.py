"""
Snapshot sources enumerating the producers currently attached to the audio server.
"""

from __future__ import annotations

import json
import subprocess
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

from snitch_core import logger as app_logger
from snitch_core.settings import DEFAULT_FETCH_TIMEOUT_SECONDS
from snitch_shared.producer_record import ProducerRecord
from snitch_shared.record_schema import load_records

_LOGGER = app_logger.get_logger()

PACTL_COMMAND = ("pactl", "--format=json", "list", "sink-inputs")
_IDENTIFIER_KEYS = ("application.id", "pipewire.access.portal.app_id", "flatpak.app_id")
_NAME_KEYS = ("application.process.binary", "application.name")


class FetchError(RuntimeError):
    """Raised when the enumeration mechanism itself could not be queried."""


class SnapshotSource(Protocol):
    def fetch(self) -> List[ProducerRecord]:
        """Return every known producer; an empty list means nobody is active."""
        ...


class PactlSnapshotSource:
    """
    Enumerates PulseAudio / PipeWire sink inputs through ``pactl``.

    Every sink input belongs to a client process; the process id is the
    producer identity and an uncorked stream counts as output activity.

    ``fetch`` blocks the calling thread for up to ``timeout_seconds``. The
    poll loop calls it on its timer thread, which is the GUI thread in the
    window front-end, so a stuck pactl freezes the window for that long on
    every tick. The window session caps the timeout for that reason.
    """

    def __init__(
        self,
        *,
        timeout_seconds: float = DEFAULT_FETCH_TIMEOUT_SECONDS,
        command: Sequence[str] = PACTL_COMMAND,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
        proc_root: Path = Path("/proc"),
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self._command = list(command)
        self._runner = runner
        self._proc_root = proc_root

    def fetch(self) -> List[ProducerRecord]:
        stdout = self._run()
        try:
            payload = json.loads(stdout) if stdout.strip() else []
        except json.JSONDecodeError as exc:
            raise FetchError(f"pactl returned malformed JSON: {exc}") from exc
        if not isinstance(payload, list):
            raise FetchError("pactl output must be a JSON list of sink inputs.")

        result = load_records(self._to_entry(item) for item in payload)
        for entry, error in result.errors:
            _LOGGER.debug("Skipping sink input {}: {}", entry, error)
        return result.records

    def _run(self) -> str:
        try:
            completed = self._runner(
                self._command,
                capture_output=True,
                text=True,
                timeout=self.timeout_seconds,
            )
        except subprocess.TimeoutExpired as exc:
            raise FetchError(f"pactl did not answer within {self.timeout_seconds} seconds.") from exc
        except (OSError, subprocess.SubprocessError) as exc:
            raise FetchError(f"Unable to run pactl: {exc}") from exc

        if completed.returncode != 0:
            stderr = (completed.stderr or "").strip()
            raise FetchError(f"pactl exited with code {completed.returncode}. Stderr: {stderr[-200:]}")
        return completed.stdout or ""

    def _to_entry(self, item: Any) -> Dict[str, Any]:
        if not isinstance(item, dict):
            return {}
        properties = item.get("properties")
        if not isinstance(properties, dict):
            properties = {}

        pid = properties.get("application.process.id")
        identifier = _first_string(properties, _IDENTIFIER_KEYS) or ""
        name = _first_string(properties, _NAME_KEYS)
        if name is None and pid is not None:
            name = self._process_name(pid)

        return {
            "id": pid,
            "identifier": identifier,
            "name": name,
            "active": not bool(item.get("corked", False)),
        }

    def _process_name(self, pid: Any) -> Optional[str]:
        try:
            comm = (self._proc_root / str(pid).strip() / "comm").read_text(encoding="utf-8")
        except (OSError, ValueError):
            return None
        return comm.strip() or None


def _first_string(properties: Dict[str, Any], keys: Sequence[str]) -> Optional[str]:
    for key in keys:
        value = properties.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None
