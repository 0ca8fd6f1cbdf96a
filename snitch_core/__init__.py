"""
Polling and diffing engine reporting audio producers as they start and stop.
"""

from .diff_engine import DiffResult, diff  # noqa: F401
from .event_sinks import EventSink, FeedSink, LogSink  # noqa: F401
from .monitor import MonitorSession  # noqa: F401
from .poll_loop import PollLoop, TickHandle  # noqa: F401
from .snapshot_source import FetchError, PactlSnapshotSource, SnapshotSource  # noqa: F401
