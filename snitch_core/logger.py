"""
Logging setup for the snitch engine and its front-ends.

Diagnostics never share stdout with the transition stream: they go to
stderr and, unless disabled, to a rotating file.

Environment:
    AUDIO_SNITCH_LOG_LEVEL  minimum level written to stderr (default INFO)
    AUDIO_SNITCH_LOG_DIR    directory for the log file
    AUDIO_SNITCH_LOG_FILE   ``0``/``off``/``no``/``false`` disables the file sink
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from loguru import logger as _logger

_LOG_INITIALISED = False
LOG_DIR_ENV = "AUDIO_SNITCH_LOG_DIR"
LOG_LEVEL_ENV = "AUDIO_SNITCH_LOG_LEVEL"
LOG_FILE_ENV = "AUDIO_SNITCH_LOG_FILE"
LOG_DIR = Path.home() / ".cache" / "audio-snitch"
LOG_FILE_NAME = "audio-snitch.log"
DEFAULT_LEVEL = "INFO"
STDERR_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}"
_DISABLED_VALUES = {"0", "off", "no", "false"}


@dataclass(frozen=True)
class LogOptions:
    level: str = DEFAULT_LEVEL
    log_path: Optional[Path] = None


def default_log_path(environ: Optional[Mapping[str, str]] = None) -> Path:
    environ = os.environ if environ is None else environ
    override = environ.get(LOG_DIR_ENV)
    base = Path(override) if override else LOG_DIR
    return base / LOG_FILE_NAME


def resolve_options(environ: Optional[Mapping[str, str]] = None) -> LogOptions:
    """Read the stderr level and the file target from the environment."""
    environ = os.environ if environ is None else environ
    level = (environ.get(LOG_LEVEL_ENV) or DEFAULT_LEVEL).strip().upper()
    try:
        _logger.level(level)
    except ValueError:
        level = DEFAULT_LEVEL

    file_flag = (environ.get(LOG_FILE_ENV) or "").strip().lower()
    log_path = None if file_flag in _DISABLED_VALUES else default_log_path(environ)
    return LogOptions(level=level, log_path=log_path)


def configure(log_path: Optional[Path] = None) -> None:
    """
    Configure loguru for the application.

    Runs once per process; later calls are ignored. An explicit
    ``log_path`` wins over the environment.
    """
    global _LOG_INITIALISED
    if _LOG_INITIALISED:
        return
    options = resolve_options()
    target = log_path or options.log_path

    _logger.remove()
    if sys.stderr is not None:
        _logger.add(sys.stderr, level=options.level, format=STDERR_FORMAT, enqueue=True)
    if target is not None:
        target.parent.mkdir(parents=True, exist_ok=True)
        _logger.add(
            target,
            level="DEBUG",
            rotation="10 MB",
            retention=5,
            encoding="utf-8",
            enqueue=True,
            backtrace=True,
            diagnose=False,
        )
    _LOG_INITIALISED = True
    requested = os.environ.get(LOG_LEVEL_ENV)
    if requested and requested.strip().upper() != options.level:
        _logger.warning("Unknown log level {!r}; using {}.", requested, options.level)


def get_logger():
    """Return the shared logger instance."""
    configure()
    return _logger
