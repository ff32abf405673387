"""
Personal library helpers: recently played, play tracking and the library
snapshot cache.

Recently played bypasses the memory layer of the entity cache and reads its
own persisted key. The library snapshot (liked songs, favorite artists,
recent plays) is a separate persisted entry with its own TTL so the library
view can render instantly while fresh data loads.
"""

import asyncio
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from loguru import logger

from wavify.core.store import (
    LIBRARY_CACHE_KEY,
    STORAGE_KEYS,
    KeyValueStore,
    clear_key,
    load_entry,
    load_entry_with_timestamp,
    now_ms,
    save_entry,
)

from .cache import CatalogCache
from .exceptions import CatalogError
from .models import Artist, Song
from .source import CancelToken, CatalogSource
from .transform import parse_songs

LIBRARY_TTL_SECONDS = 300.0
RECENTLY_PLAYED_LIMIT = 8


async def get_recently_played(
    source: CatalogSource,
    store: KeyValueStore,
    force: bool = False,
    cancel_token: Optional[CancelToken] = None,
) -> List[Song]:
    """Return recently played songs, preferring the persisted copy.

    Raises:
        CatalogError: The backend request failed (including FetchCancelled)
    """
    key = STORAGE_KEYS["recently_played"]
    if not force:
        data = load_entry(store, key)
        if data:
            try:
                return [Song.from_dict(item) for item in data]
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                logger.warning(f"Discarding undecodable recently played entry: {e}")

    records = await source.list_recently_played(cancel_token=cancel_token)
    songs = parse_songs(records)
    save_entry(store, key, [song.to_dict() for song in songs])
    return songs


async def track_play(
    source: CatalogSource, catalog: CatalogCache, store: KeyValueStore, song_id: int
) -> bool:
    """Record a play event, then drop the caches it makes stale.

    Returns:
        True if the backend accepted the play event
    """
    try:
        await source.record_play(song_id)
    except CatalogError as e:
        logger.error(f"Error tracking play for song {song_id}: {e}")
        return False

    catalog.invalidate_songs()
    clear_key(store, STORAGE_KEYS["recently_played"])
    return True


@dataclass(frozen=True)
class LibrarySnapshot:
    """What the library view shows, cached as a whole."""

    liked_songs: List[Song] = field(default_factory=list)
    favorite_artists: List[Artist] = field(default_factory=list)
    recently_played: List[Song] = field(default_factory=list)
    timestamp: int = 0  # epoch ms

    def to_dict(self) -> Dict[str, Any]:
        return {
            "liked_songs": [song.to_dict() for song in self.liked_songs],
            "favorite_artists": [artist.to_dict() for artist in self.favorite_artists],
            "recently_played": [song.to_dict() for song in self.recently_played],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], timestamp: int = 0) -> "LibrarySnapshot":
        return cls(
            liked_songs=[Song.from_dict(s) for s in data.get("liked_songs", [])],
            favorite_artists=[
                Artist.from_dict(a) for a in data.get("favorite_artists", [])
            ],
            recently_played=[Song.from_dict(s) for s in data.get("recently_played", [])],
            timestamp=timestamp,
        )


def save_library_cache(
    store: KeyValueStore, snapshot: LibrarySnapshot, timestamp: Optional[int] = None
) -> bool:
    return save_entry(store, LIBRARY_CACHE_KEY, snapshot.to_dict(), timestamp=timestamp)


def load_library_cache(
    store: KeyValueStore,
    ttl_seconds: float = LIBRARY_TTL_SECONDS,
    now: Optional[int] = None,
) -> Optional[LibrarySnapshot]:
    """Load the library snapshot if present and younger than ttl_seconds.

    An expired entry is deleted. Corrupt entries count as missing.
    """
    loaded = load_entry_with_timestamp(store, LIBRARY_CACHE_KEY)
    if loaded is None:
        return None

    data, timestamp = loaded
    current = now if now is not None else now_ms()
    if current - timestamp > ttl_seconds * 1000:
        logger.debug("Library snapshot expired")
        clear_key(store, LIBRARY_CACHE_KEY)
        return None

    if not isinstance(data, dict):
        return None
    try:
        return LibrarySnapshot.from_dict(data, timestamp=timestamp)
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        logger.warning(f"Discarding undecodable library snapshot: {e}")
        return None


def clear_library_cache(store: KeyValueStore) -> None:
    clear_key(store, LIBRARY_CACHE_KEY)


async def load_library(
    catalog: CatalogCache,
    source: CatalogSource,
    store: KeyValueStore,
    ttl_seconds: float = LIBRARY_TTL_SECONDS,
    force: bool = False,
    cancel_token: Optional[CancelToken] = None,
) -> LibrarySnapshot:
    """Serve the cached library snapshot, or build and cache a fresh one.

    Raises:
        CatalogError: Recently played could not be loaded (FetchCancelled included)
    """
    if not force:
        cached = load_library_cache(store, ttl_seconds)
        if cached is not None:
            return cached

    artists, songs, recent = await asyncio.gather(
        catalog.fetch_artists(force=force, cancel_token=cancel_token),
        catalog.fetch_songs(force=force, cancel_token=cancel_token),
        get_recently_played(source, store, force=force, cancel_token=cancel_token),
    )

    snapshot = LibrarySnapshot(
        liked_songs=[song for song in songs if song.is_liked],
        favorite_artists=[artist for artist in artists if artist.is_favorite],
        recently_played=recent[:RECENTLY_PLAYED_LIMIT],
        timestamp=now_ms(),
    )
    save_library_cache(store, snapshot, timestamp=snapshot.timestamp)
    return snapshot


def remember_play(
    store: KeyValueStore, snapshot: LibrarySnapshot, song: Song
) -> LibrarySnapshot:
    """Move song to the front of the snapshot's recent plays and persist it."""
    recent = [song] + [s for s in snapshot.recently_played if s.id != song.id]
    updated = replace(snapshot, recently_played=recent[:RECENTLY_PLAYED_LIMIT])
    save_library_cache(store, updated)
    return updated
