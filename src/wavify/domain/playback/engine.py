"""
Playback session engine.

A single PlaybackEngine owns the queue and transport state for one media
element. Observers subscribe for snapshots; every mutating call notifies
each subscriber exactly once, after all of its state changes are applied.
Media events arriving during a call are folded into that call's
notification.
"""

import itertools
import math
import random
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from loguru import logger

from wavify.domain.catalog.models import Song

from .media import MediaElement
from .state import PlaybackSnapshot, RepeatMode, sanitize_seconds

Subscriber = Callable[[PlaybackSnapshot], None]

DEFAULT_VOLUME = 0.75


def _clamp_unit(value: float) -> float:
    return max(0.0, min(1.0, value))


class PlaybackEngine:
    """Queue, transport controls and observer registry around one MediaElement."""

    def __init__(
        self,
        media: MediaElement,
        volume: float = DEFAULT_VOLUME,
        rng: Optional[random.Random] = None,
    ):
        self.media = media
        self._rng = rng or random.Random()

        self._queue: Tuple[Song, ...] = ()
        self._current_index: Optional[int] = None
        self._is_playing = False
        self._shuffle = False
        self._repeat = RepeatMode.OFF
        self._volume = _clamp_unit(volume)
        self.media.volume = self._volume

        self._subscribers: Dict[int, Subscriber] = {}
        self._next_handle = itertools.count()
        self._batch_depth = 0
        self._dirty = False

        self._media_listeners: List[Callable[[], None]] = [
            media.on("loadedmetadata", self._on_media_progress),
            media.on("timeupdate", self._on_media_progress),
            media.on("ended", self._on_media_ended),
            media.on("play", self._on_media_play),
            media.on("pause", self._on_media_pause),
        ]

    # Observers

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register callback for state snapshots.

        Returns:
            Function that removes the subscription (safe to call twice)
        """
        handle = next(self._next_handle)
        self._subscribers[handle] = callback

        def unsubscribe() -> None:
            self._subscribers.pop(handle, None)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @contextmanager
    def _batch(self) -> Iterator[None]:
        self._batch_depth += 1
        try:
            yield
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0 and self._dirty:
                self._dirty = False
                self._notify()

    def _mark_changed(self) -> None:
        if self._batch_depth:
            self._dirty = True
        else:
            self._notify()

    def _notify(self) -> None:
        snapshot = self.get_state()
        for callback in list(self._subscribers.values()):
            try:
                callback(snapshot)
            except Exception:
                logger.exception("Playback subscriber raised")

    # State

    def get_state(self) -> PlaybackSnapshot:
        return PlaybackSnapshot(
            queue=self._queue,
            current_index=self._current_index,
            is_playing=self._is_playing,
            shuffle=self._shuffle,
            repeat=self._repeat,
            volume=self._volume,
            current_time=sanitize_seconds(self.media.current_time),
            duration=sanitize_seconds(self.media.duration),
        )

    @property
    def current_song(self) -> Optional[Song]:
        if self._current_index is None:
            return None
        return self._queue[self._current_index]

    # Queue

    def set_queue(self, songs: Sequence[Song], start_index: int = 0) -> None:
        """Replace the queue and load the start track without playing it."""
        with self._batch():
            self._queue = tuple(songs)
            if self._queue:
                self._current_index = max(0, min(start_index, len(self._queue) - 1))
            else:
                self._current_index = None
            self._load_current(autoplay=False)
            self._mark_changed()

    def _load_current(self, autoplay: bool) -> None:
        track = self.current_song
        if track is None:
            # Idle: no media loaded
            self._is_playing = False
            try:
                self.media.pause()
            except Exception as e:
                logger.warning(f"Pause failed: {e}")
            self.media.src = ""
            return

        self.media.src = track.audio
        try:
            self.media.load()
        except Exception as e:
            logger.warning(f"Could not load '{track.title}': {e}")
            self._is_playing = False
            return

        if autoplay:
            self._start_playback()
        else:
            self._is_playing = False

    def _start_playback(self) -> bool:
        try:
            self.media.play()
        except Exception as e:
            logger.warning(f"Playback rejected: {e}")
            self._is_playing = False
            return False
        self._is_playing = True
        return True

    # Transport

    def play(self) -> bool:
        """Start playback of the current track.

        Returns:
            True if the media element accepted the play request
        """
        if self.current_song is None:
            return False
        with self._batch():
            started = self._start_playback()
            self._mark_changed()
        return started

    def pause(self) -> None:
        with self._batch():
            self._is_playing = False
            try:
                self.media.pause()
            except Exception as e:
                logger.warning(f"Pause failed: {e}")
            self._mark_changed()

    def toggle_play(self) -> None:
        with self._batch():
            if self._is_playing:
                self.pause()
            else:
                self.play()

    def _random_other_index(self) -> int:
        current = self._current_index or 0
        index = self._rng.randrange(len(self._queue) - 1)
        return index + 1 if index >= current else index

    def next(self) -> bool:
        """Advance to the next track and play it.

        Returns:
            False when there is nowhere to go (no state change)
        """
        if self._current_index is None:
            return False

        if self._shuffle:
            if len(self._queue) <= 1:
                return False
            target = self._random_other_index()
        else:
            target = self._current_index + 1
            if target >= len(self._queue):
                if self._repeat != RepeatMode.ALL:
                    return False
                target = 0

        self._transition(target)
        return True

    def prev(self) -> bool:
        """Go back one track (clamping at the start unless repeating all)."""
        if self._current_index is None:
            return False

        if self._shuffle:
            if len(self._queue) <= 1:
                return False
            target = self._random_other_index()
        else:
            target = self._current_index - 1
            if target < 0:
                target = len(self._queue) - 1 if self._repeat == RepeatMode.ALL else 0

        self._transition(target)
        return True

    def play_track_at_index(self, index: int) -> bool:
        if not 0 <= index < len(self._queue):
            return False
        self._transition(index)
        return True

    def _transition(self, index: int) -> None:
        with self._batch():
            self._current_index = index
            self._load_current(autoplay=True)
            self._mark_changed()

    def seek_to(self, percent: float) -> None:
        """Seek to a fraction of the track. No-op while the duration is unknown."""
        duration = sanitize_seconds(self.media.duration)
        if not duration or math.isnan(percent):
            return
        with self._batch():
            self.media.current_time = _clamp_unit(percent) * duration
            self._mark_changed()

    def set_volume(self, volume: float) -> None:
        if math.isnan(volume):
            return
        with self._batch():
            self._volume = _clamp_unit(volume)
            self.media.volume = self._volume
            self._mark_changed()

    def toggle_shuffle(self) -> None:
        with self._batch():
            self._shuffle = not self._shuffle
            self._mark_changed()

    def cycle_repeat(self) -> None:
        with self._batch():
            self._repeat = self._repeat.cycled()
            self._mark_changed()

    # Media events

    def _on_media_progress(self) -> None:
        self._mark_changed()

    def _on_media_play(self) -> None:
        if not self._is_playing:
            with self._batch():
                self._is_playing = True
                self._mark_changed()

    def _on_media_pause(self) -> None:
        if self._is_playing:
            with self._batch():
                self._is_playing = False
                self._mark_changed()

    def _on_media_ended(self) -> None:
        with self._batch():
            if self._repeat == RepeatMode.ONE:
                self.media.current_time = 0.0
                self._start_playback()
            elif not self.next():
                self._is_playing = False
            self._mark_changed()

    def close(self) -> None:
        """Detach from the media element and drop all subscribers."""
        for remove in self._media_listeners:
            remove()
        self._media_listeners.clear()
        self._subscribers.clear()
