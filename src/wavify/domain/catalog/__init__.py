"""Catalog domain - entity models, remote source and the two-tier cache.

This domain handles:
- Backend record validation and transformation to UI entities
- Memory + persistent caching with single-flight fetches
- Derived queries (liked, trending, by artist/genre/playlist, search)
- Recently played, play tracking and the library snapshot
"""

from .cache import CatalogCache, EntityCache, MemoryRecord
from .exceptions import AuthenticationError, CatalogError, FetchCancelled, SourceError
from .library import (
    LibrarySnapshot,
    clear_library_cache,
    get_recently_played,
    load_library,
    load_library_cache,
    remember_play,
    save_library_cache,
    track_play,
)
from .models import Artist, Genre, Playlist, PlaylistRef, Song
from .source import CancelToken, CatalogSource, HttpCatalogSource, run_cancellable

__all__ = [
    # Cache
    "CatalogCache",
    "EntityCache",
    "MemoryRecord",
    # Errors
    "AuthenticationError",
    "CatalogError",
    "FetchCancelled",
    "SourceError",
    # Library
    "LibrarySnapshot",
    "clear_library_cache",
    "get_recently_played",
    "load_library",
    "load_library_cache",
    "remember_play",
    "save_library_cache",
    "track_play",
    # Models
    "Artist",
    "Genre",
    "Playlist",
    "PlaylistRef",
    "Song",
    # Source
    "CancelToken",
    "CatalogSource",
    "HttpCatalogSource",
    "run_cancellable",
]
