"""Shared fixtures: an in-memory catalog source, a scripted media element and sample records."""

import asyncio
from typing import Any, Callable, Dict, List, Optional

import pytest

from wavify.core.store import MemoryStore
from wavify.domain.catalog.exceptions import SourceError
from wavify.domain.catalog.models import Song
from wavify.domain.catalog.source import CancelToken, run_cancellable
from wavify.domain.catalog.transform import parse_songs
from wavify.domain.playback.media import EventEmitterMixin, PlaybackError


def artist_record(artist_id: int = 1, name: str = "Nova", **overrides) -> Dict[str, Any]:
    record = {
        "id": artist_id,
        "name": name,
        "image": f"https://cdn.example/artists/{artist_id}.jpg",
        "followers": 3,
        "is_favorite": False,
    }
    record.update(overrides)
    return record


def genre_record(genre_id: int = 1, name: str = "Pop") -> Dict[str, Any]:
    return {"id": genre_id, "name": name, "image": None}


def playlist_record(playlist_id: int = 1, name: str = "Chill Vibes", **overrides) -> Dict[str, Any]:
    record = {
        "id": playlist_id,
        "name": name,
        "description": f"{name} playlist",
        "image": f"https://cdn.example/playlists/{playlist_id}.jpg",
        "is_hero_slide": False,
        "is_featured": False,
        "is_profile": False,
    }
    record.update(overrides)
    return record


def song_record(
    song_id: int,
    title: Optional[str] = None,
    artist: Optional[Dict[str, Any]] = None,
    playlist: Optional[Dict[str, Any]] = None,
    genre: Optional[Dict[str, Any]] = None,
    **overrides,
) -> Dict[str, Any]:
    record = {
        "id": song_id,
        "title": title or f"Song {song_id}",
        "album": f"Album {song_id}",
        "duration": 185,
        "cover": f"https://cdn.example/covers/{song_id}.jpg",
        "audio": f"https://cdn.example/audio/{song_id}.mp3",
        "artist": artist or artist_record(),
        "genre": genre or genre_record(),
        "playlist": playlist or playlist_record(),
        "is_trending": False,
        "is_new_release": False,
        "is_top_chart": False,
        "is_liked": False,
        "is_recently_played": False,
        "last_played_at": None,
    }
    record.update(overrides)
    return record


class FakeSource:
    """CatalogSource double.

    Records call counts per operation. Set gate to an asyncio.Event to hold
    list requests open until the test releases them, or error to make the
    next requests fail.
    """

    def __init__(self) -> None:
        self.records: Dict[str, List[Dict[str, Any]]] = {
            "songs": [],
            "artists": [],
            "genres": [],
            "playlists": [],
            "recently_played": [],
        }
        self.calls: Dict[str, int] = {name: 0 for name in self.records}
        self.gate: Optional[asyncio.Event] = None
        self.error: Optional[Exception] = None
        self.write_error: Optional[Exception] = None
        self.plays: List[int] = []
        self.liked: List[tuple] = []
        self.favorites: List[tuple] = []

    async def _list(self, name: str, cancel_token: Optional[CancelToken]):
        self.calls[name] += 1

        async def respond():
            if self.gate is not None:
                await self.gate.wait()
            if self.error is not None:
                raise self.error
            return [dict(record) for record in self.records[name]]

        return await run_cancellable(respond(), cancel_token)

    async def list_songs(self, cancel_token=None):
        return await self._list("songs", cancel_token)

    async def list_artists(self, cancel_token=None):
        return await self._list("artists", cancel_token)

    async def list_genres(self, cancel_token=None):
        return await self._list("genres", cancel_token)

    async def list_playlists(self, cancel_token=None):
        return await self._list("playlists", cancel_token)

    async def list_recently_played(self, cancel_token=None):
        return await self._list("recently_played", cancel_token)

    async def record_play(self, song_id: int) -> None:
        if self.write_error is not None:
            raise self.write_error
        self.plays.append(song_id)

    async def set_liked(self, song_id: int, liked: bool) -> None:
        if self.write_error is not None:
            raise self.write_error
        self.liked.append((song_id, liked))

    async def set_favorite(self, artist_id: int, favorite: bool) -> None:
        if self.write_error is not None:
            raise self.write_error
        self.favorites.append((artist_id, favorite))


class FakeMediaElement(EventEmitterMixin):
    """MediaElement double driven by the test.

    play() emits "play" like a real element; set reject_play to make it raise.
    Use finish() / report_duration() to simulate media-side events.
    """

    def __init__(self) -> None:
        self.src = ""
        self.current_time = 0.0
        self.duration = float("nan")
        self.volume = 1.0
        self.reject_play = False
        self.paused = True
        self.loads: List[str] = []
        self.play_calls = 0

    def load(self) -> None:
        self.loads.append(self.src)
        self.current_time = 0.0
        self.paused = True

    def play(self) -> None:
        self.play_calls += 1
        if self.reject_play:
            raise PlaybackError("autoplay blocked")
        self.paused = False
        self.emit("play")

    def pause(self) -> None:
        self.paused = True
        self.emit("pause")

    def report_duration(self, seconds: float) -> None:
        self.duration = seconds
        self.emit("loadedmetadata")

    def advance(self, seconds: float) -> None:
        self.current_time += seconds
        self.emit("timeupdate")

    def finish(self) -> None:
        self.paused = True
        self.emit("ended")


class Clock:
    """Controllable epoch-ms clock."""

    def __init__(self, start_ms: int = 1_700_000_000_000) -> None:
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += int(seconds * 1000)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def source() -> FakeSource:
    fake = FakeSource()
    nova = artist_record(1, "Nova", is_favorite=True)
    echo = artist_record(2, "Echo Park")
    chill = playlist_record(1, "Chill Vibes")
    workout = playlist_record(2, "Workout")
    fake.records["artists"] = [nova, echo]
    fake.records["genres"] = [genre_record(1, "Pop"), genre_record(2, "Rock")]
    fake.records["playlists"] = [chill, workout, playlist_record(3, "Empty")]
    fake.records["songs"] = [
        song_record(1, "Midnight Drive", artist=nova, playlist=chill, is_liked=True, is_trending=True),
        song_record(2, "Ocean Eyes", artist=nova, playlist=chill, is_new_release=True),
        song_record(
            3,
            "Run Fast",
            artist=echo,
            playlist=workout,
            genre=genre_record(2, "Rock"),
            is_top_chart=True,
        ),
    ]
    fake.records["recently_played"] = [fake.records["songs"][2]]
    return fake


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def media() -> FakeMediaElement:
    return FakeMediaElement()


@pytest.fixture
def make_songs() -> Callable[[int], List[Song]]:
    """Build n distinct Song entities."""

    def make(n: int) -> List[Song]:
        return parse_songs([song_record(i) for i in range(1, n + 1)])

    return make


@pytest.fixture
def source_error() -> SourceError:
    return SourceError("backend unavailable", status_code=503)


@pytest.fixture
def make_song_record() -> Callable[..., Dict[str, Any]]:
    return song_record


@pytest.fixture
def make_artist_record() -> Callable[..., Dict[str, Any]]:
    return artist_record


@pytest.fixture
def make_playlist_record() -> Callable[..., Dict[str, Any]]:
    return playlist_record
