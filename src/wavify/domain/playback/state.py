"""
Playback session state types.
"""

import math
from enum import Enum
from typing import NamedTuple, Optional, Tuple

from wavify.domain.catalog.models import Song


class RepeatMode(str, Enum):
    OFF = "off"  # Stop at end of queue
    ALL = "all"  # Wrap to start
    ONE = "one"  # Loop current track

    def cycled(self) -> "RepeatMode":
        """Next mode in the off -> all -> one -> off cycle."""
        order = (RepeatMode.OFF, RepeatMode.ALL, RepeatMode.ONE)
        return order[(order.index(self) + 1) % len(order)]


class PlaybackSnapshot(NamedTuple):
    """Immutable view of the playback session handed to observers."""

    queue: Tuple[Song, ...] = ()
    current_index: Optional[int] = None
    is_playing: bool = False
    shuffle: bool = False
    repeat: RepeatMode = RepeatMode.OFF
    volume: float = 0.75
    current_time: float = 0.0  # seconds, read from the media element
    duration: float = 0.0  # seconds, 0 when unknown

    @property
    def current_song(self) -> Optional[Song]:
        if self.current_index is None or not 0 <= self.current_index < len(self.queue):
            return None
        return self.queue[self.current_index]

    @property
    def progress(self) -> float:
        """Position as a fraction of the duration (0.0 when unknown)."""
        if self.duration > 0:
            return min(1.0, self.current_time / self.duration)
        return 0.0


def sanitize_seconds(value: Optional[float]) -> float:
    """Media elements report NaN/None for unknown times; normalize to 0.0."""
    if value is None:
        return 0.0
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(value) or math.isinf(value) or value < 0:
        return 0.0
    return value


def format_time(seconds: float) -> str:
    """Format time in seconds to M:SS format."""
    if seconds < 0:
        return "0:00"

    minutes = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{minutes}:{secs:02d}"
