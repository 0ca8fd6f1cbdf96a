"""
Entry point for the Audio Snitch window.
"""

from __future__ import annotations

import sys

from PySide6.QtWidgets import QApplication

from snitch_core import logger as app_logger
from snitch_core.monitor import MonitorSession
from snitch_core.settings import SnitchSettingsManager

from audio_snitch_ui.monitor_window import MonitorWindow


def main() -> int:
    """Launch the monitor window."""
    app = QApplication(sys.argv)
    app_logger.get_logger().info("Starting Audio Snitch window.")
    session = MonitorSession.for_feed(SnitchSettingsManager().read_settings())
    window = MonitorWindow(session)
    window.show()
    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())
