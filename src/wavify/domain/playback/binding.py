"""
Per-observer adapter over the shared playback engine.
"""

from typing import Callable, Optional, Sequence

from wavify.domain.catalog.models import Song

from .engine import PlaybackEngine
from .state import PlaybackSnapshot


class SessionBinding:
    """Subscribes to an engine for as long as the observer lives.

    Keeps the latest snapshot, counts how many times the observer was asked
    to re-render and forwards the engine's actions. Use as a context manager
    or call close() to unsubscribe.
    """

    def __init__(
        self,
        engine: PlaybackEngine,
        on_change: Optional[Callable[[PlaybackSnapshot], None]] = None,
    ):
        self.engine = engine
        self.on_change = on_change
        self.render_count = 0
        self._state = engine.get_state()
        self._unsubscribe: Optional[Callable[[], None]] = engine.subscribe(
            self._handle_change
        )

    def _handle_change(self, snapshot: PlaybackSnapshot) -> None:
        self._state = snapshot
        self.render_count += 1
        if self.on_change is not None:
            self.on_change(snapshot)

    @property
    def state(self) -> PlaybackSnapshot:
        return self._state

    @property
    def attached(self) -> bool:
        return self._unsubscribe is not None

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def __enter__(self) -> "SessionBinding":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # Engine passthroughs

    def play(self) -> bool:
        return self.engine.play()

    def pause(self) -> None:
        self.engine.pause()

    def toggle_play(self) -> None:
        self.engine.toggle_play()

    def next(self) -> bool:
        return self.engine.next()

    def prev(self) -> bool:
        return self.engine.prev()

    def seek_to(self, percent: float) -> None:
        self.engine.seek_to(percent)

    def set_volume(self, volume: float) -> None:
        self.engine.set_volume(volume)

    def set_queue(self, songs: Sequence[Song], start_index: int = 0) -> None:
        self.engine.set_queue(songs, start_index)

    def toggle_shuffle(self) -> None:
        self.engine.toggle_shuffle()

    def cycle_repeat(self) -> None:
        self.engine.cycle_repeat()

    def play_track_at_index(self, index: int) -> bool:
        return self.engine.play_track_at_index(index)
