"""
Catalog domain models.

UI-facing projections of backend records. All entities are immutable;
optimistic updates build replacements with dataclasses.replace.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Artist:
    """Represents an artist."""

    id: int
    name: str
    image: str
    followers: Optional[str] = None  # Display string, e.g. "12M"
    is_favorite: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Artist":
        if not isinstance(data, dict):
            raise ValueError(f"Artist must be an object, got {type(data).__name__}")
        return cls(
            id=data["id"],
            name=data["name"],
            image=data.get("image", ""),
            followers=data.get("followers"),
            is_favorite=bool(data.get("is_favorite", False)),
        )


@dataclass(frozen=True)
class Genre:
    """Represents a genre."""

    id: int
    name: str
    image: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Genre":
        return cls(id=data["id"], name=data["name"], image=data.get("image"))


@dataclass(frozen=True)
class PlaylistRef:
    """Playlist reference embedded in a song (no song count)."""

    id: int
    name: str
    image: str
    description: Optional[str] = None
    is_hero_slide: bool = False
    is_featured: bool = False
    is_profile: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlaylistRef":
        return cls(
            id=data["id"],
            name=data["name"],
            image=data.get("image", ""),
            description=data.get("description"),
            is_hero_slide=bool(data.get("is_hero_slide", False)),
            is_featured=bool(data.get("is_featured", False)),
            is_profile=bool(data.get("is_profile", False)),
        )


@dataclass(frozen=True)
class Playlist:
    """Represents a playlist as listed in the catalog."""

    id: int
    name: str
    image: str
    description: Optional[str] = None
    song_count: Optional[int] = None
    is_hero_slide: bool = False
    is_featured: bool = False
    is_profile: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Playlist":
        return cls(
            id=data["id"],
            name=data["name"],
            image=data.get("image", ""),
            description=data.get("description"),
            song_count=data.get("song_count"),
            is_hero_slide=bool(data.get("is_hero_slide", False)),
            is_featured=bool(data.get("is_featured", False)),
            is_profile=bool(data.get("is_profile", False)),
        )


@dataclass(frozen=True)
class Song:
    """Represents a playable song.

    The artist is always an Artist object. A bare artist name is a data-contract
    violation and is rejected by from_dict.
    """

    id: int
    title: str
    artist: Artist
    album: str
    duration: str  # Display string "m:ss"
    cover: str
    audio: str  # Stream URL handed to the media element
    playlist: PlaylistRef
    genre: Genre
    is_liked: bool = False
    is_recently_played: bool = False
    is_trending: bool = False
    is_new_release: bool = False
    is_top_chart: bool = False
    last_played_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Song":
        return cls(
            id=data["id"],
            title=data["title"],
            artist=Artist.from_dict(data["artist"]),
            album=data.get("album", ""),
            duration=data.get("duration", "0:00"),
            cover=data.get("cover", ""),
            audio=data["audio"],
            playlist=PlaylistRef.from_dict(data["playlist"]),
            genre=Genre.from_dict(data["genre"]),
            is_liked=bool(data.get("is_liked", False)),
            is_recently_played=bool(data.get("is_recently_played", False)),
            is_trending=bool(data.get("is_trending", False)),
            is_new_release=bool(data.get("is_new_release", False)),
            is_top_chart=bool(data.get("is_top_chart", False)),
            last_played_at=data.get("last_played_at"),
        )
