"""Playback domain - shared session engine and media integration.

This domain handles:
- The single playback session (queue, shuffle, repeat, volume)
- Subscribe/notify for any number of observers
- mpv integration via JSON IPC
"""

# Session
from .binding import SessionBinding
from .engine import PlaybackEngine

# Media
from .media import (
    EventEmitterMixin,
    MediaElement,
    MpvMediaElement,
    PlaybackError,
    check_mpv_available,
    get_mpv_property,
    send_mpv_command,
)

# State
from .state import PlaybackSnapshot, RepeatMode, format_time, sanitize_seconds

__all__ = [
    # Session
    "PlaybackEngine",
    "SessionBinding",
    # Media
    "EventEmitterMixin",
    "MediaElement",
    "MpvMediaElement",
    "PlaybackError",
    "check_mpv_available",
    "get_mpv_property",
    "send_mpv_command",
    # State
    "PlaybackSnapshot",
    "RepeatMode",
    "format_time",
    "sanitize_seconds",
]
