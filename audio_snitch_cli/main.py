"""
Entry point for the audiosnitch terminal monitor.
"""

from __future__ import annotations

import signal
import sys
from typing import Optional, Sequence, TextIO

from PySide6.QtCore import QCoreApplication, QTimer

from snitch_core import logger as app_logger
from snitch_core.monitor import MonitorSession
from snitch_core.settings import SnitchSettingsManager

_LOGGER = app_logger.get_logger()
# Python signal handlers only run while the interpreter holds control.
_SIGNAL_WAKEUP_MS = 200

USAGE = """\
audiosnitch - Monitor which apps are outputting audio

Usage: audiosnitch [options]

Options:
  -h, --help    Show this help message

Environment:
  AUDIO_SNITCH_POLL_INTERVAL_MS   Poll interval in milliseconds (default 500)
  AUDIO_SNITCH_FETCH_TIMEOUT      Seconds to wait for pactl (default 2)
  AUDIO_SNITCH_EMIT_INITIAL       Report already playing apps as START events
  AUDIO_SNITCH_LOG_DIR            Directory for the diagnostic log file
  AUDIO_SNITCH_LOG_LEVEL          Minimum level of diagnostics on stderr (default INFO)
  AUDIO_SNITCH_LOG_FILE           Set to 0 to keep diagnostics on stderr only

Requires pactl (PulseAudio or PipeWire) on the PATH.
"""


def wants_help(argv: Sequence[str]) -> bool:
    return any(arg in ("-h", "--help") for arg in argv)


def main(argv: Optional[Sequence[str]] = None, *, stream: Optional[TextIO] = None) -> int:
    """Run the monitor until SIGINT or SIGTERM arrives."""
    args = list(sys.argv[1:] if argv is None else argv)
    out = stream if stream is not None else sys.stdout
    if wants_help(args):
        out.write(USAGE)
        out.flush()
        return 0

    app = QCoreApplication.instance() or QCoreApplication([sys.argv[0], *args])
    settings = SnitchSettingsManager().read_settings()

    session = MonitorSession.for_log(out, settings)
    log_sink = session.log
    if log_sink is not None:
        log_sink.banner()

    def _request_quit(signum, _frame) -> None:
        _LOGGER.info("Received signal {}; shutting down.", signum)
        app.quit()

    previous_handlers = {
        sig: signal.signal(sig, _request_quit) for sig in (signal.SIGINT, signal.SIGTERM)
    }
    wakeup = QTimer()
    wakeup.setInterval(_SIGNAL_WAKEUP_MS)
    wakeup.timeout.connect(lambda: None)
    wakeup.start()

    try:
        session.start()
        app.exec()
    finally:
        wakeup.stop()
        session.stop()
        for sig, handler in previous_handlers.items():
            signal.signal(sig, handler)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
