"""
audio_snitch_ui package exposing the windowed event feed.
"""

__all__ = [
    "main",
    "monitor_window",
]
