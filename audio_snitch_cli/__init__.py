"""
audio_snitch_cli package.

Terminal front-end printing transitions as they are detected.
"""

__all__ = ["main"]
