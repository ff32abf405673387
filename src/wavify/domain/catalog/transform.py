"""
Backend record schemas and their conversion to catalog models.

Backend payloads are validated with pydantic before being reshaped into the
UI-friendly dataclasses in models.py (snake_case flags kept, durations and
follower counts turned into display strings).
"""

from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, ValidationError

from .exceptions import SourceError
from .models import Artist, Genre, Playlist, PlaylistRef, Song


class BackendArtist(BaseModel):
    id: int
    name: str
    image: str = ""
    followers: Optional[Union[int, float]] = None
    is_favorite: bool = False


class BackendGenre(BaseModel):
    id: int
    name: str
    image: Optional[str] = None


class BackendPlaylist(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    image: str = ""
    is_hero_slide: bool = False
    is_featured: bool = False
    is_profile: bool = False


class BackendSong(BaseModel):
    id: int
    title: str
    album: str = ""
    duration: float = 0
    cover: str = ""
    audio: str
    artist: BackendArtist
    genre: BackendGenre
    playlist: BackendPlaylist
    is_trending: bool = False
    is_new_release: bool = False
    is_top_chart: bool = False
    is_liked: bool = False
    is_recently_played: bool = False
    last_played_at: Optional[str] = None


def format_duration(seconds: float) -> str:
    """Format a duration in seconds as m:ss (e.g. 245 -> "4:05")."""
    total = max(0, int(seconds))
    minutes, secs = divmod(total, 60)
    return f"{minutes}:{secs:02d}"


def format_followers(followers: Optional[Union[int, float]]) -> Optional[str]:
    """Render a follower count (in millions) for display; falsy counts give None."""
    if not followers:
        return None
    if isinstance(followers, float) and followers.is_integer():
        followers = int(followers)
    return f"{followers}M"


def transform_artist(artist: BackendArtist) -> Artist:
    return Artist(
        id=artist.id,
        name=artist.name,
        image=artist.image,
        followers=format_followers(artist.followers),
        is_favorite=artist.is_favorite,
    )


def transform_genre(genre: BackendGenre) -> Genre:
    return Genre(id=genre.id, name=genre.name, image=genre.image)


def transform_playlist_ref(playlist: BackendPlaylist) -> PlaylistRef:
    return PlaylistRef(
        id=playlist.id,
        name=playlist.name,
        image=playlist.image,
        description=playlist.description,
        is_hero_slide=playlist.is_hero_slide,
        is_featured=playlist.is_featured,
        is_profile=playlist.is_profile,
    )


def transform_playlist(playlist: BackendPlaylist, song_count: int = 0) -> Playlist:
    return Playlist(
        id=playlist.id,
        name=playlist.name,
        image=playlist.image,
        description=playlist.description,
        song_count=song_count,
        is_hero_slide=playlist.is_hero_slide,
        is_featured=playlist.is_featured,
        is_profile=playlist.is_profile,
    )


def transform_song(song: BackendSong) -> Song:
    return Song(
        id=song.id,
        title=song.title,
        artist=transform_artist(song.artist),
        album=song.album,
        duration=format_duration(song.duration),
        cover=song.cover,
        audio=song.audio,
        playlist=transform_playlist_ref(song.playlist),
        genre=transform_genre(song.genre),
        is_liked=song.is_liked,
        is_recently_played=song.is_recently_played,
        is_trending=song.is_trending,
        is_new_release=song.is_new_release,
        is_top_chart=song.is_top_chart,
        last_played_at=song.last_played_at,
    )


def _validate(model: type, records: Iterable[Dict[str, Any]]) -> list:
    if not isinstance(records, list):
        raise SourceError(
            f"Expected a list of {model.__name__} records, got {type(records).__name__}"
        )
    try:
        return [model.model_validate(record) for record in records]
    except ValidationError as e:
        raise SourceError(f"Malformed {model.__name__} payload: {e}") from e


def parse_songs(records: Iterable[Dict[str, Any]]) -> List[Song]:
    """Validate and transform raw song records.

    Raises:
        SourceError: If any record does not match the backend schema
    """
    return [transform_song(song) for song in _validate(BackendSong, records)]


def parse_artists(records: Iterable[Dict[str, Any]]) -> List[Artist]:
    return [transform_artist(artist) for artist in _validate(BackendArtist, records)]


def parse_genres(records: Iterable[Dict[str, Any]]) -> List[Genre]:
    return [transform_genre(genre) for genre in _validate(BackendGenre, records)]


def parse_playlists(
    records: Iterable[Dict[str, Any]], songs: Iterable[Song] = ()
) -> List[Playlist]:
    """Validate raw playlists and embed song counts computed from songs."""
    counts: Dict[int, int] = {}
    for song in songs:
        counts[song.playlist.id] = counts.get(song.playlist.id, 0) + 1

    return [
        transform_playlist(playlist, counts.get(playlist.id, 0))
        for playlist in _validate(BackendPlaylist, records)
    ]
