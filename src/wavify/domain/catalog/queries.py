"""
Derived catalog queries.

Stateless filters over the entity cache. Each helper awaits the underlying
collection (forwarding force/cancel_token) and filters synchronously.
Name matches are case-insensitive.
"""

from typing import List, Optional

from .cache import CatalogCache
from .models import Artist, Playlist, Song
from .source import CancelToken


async def get_liked_songs(
    catalog: CatalogCache, force: bool = False, cancel_token: Optional[CancelToken] = None
) -> List[Song]:
    songs = await catalog.fetch_songs(force=force, cancel_token=cancel_token)
    return [song for song in songs if song.is_liked]


async def get_trending_songs(
    catalog: CatalogCache, force: bool = False, cancel_token: Optional[CancelToken] = None
) -> List[Song]:
    songs = await catalog.fetch_songs(force=force, cancel_token=cancel_token)
    return [song for song in songs if song.is_trending]


async def get_new_releases(
    catalog: CatalogCache, force: bool = False, cancel_token: Optional[CancelToken] = None
) -> List[Song]:
    songs = await catalog.fetch_songs(force=force, cancel_token=cancel_token)
    return [song for song in songs if song.is_new_release]


async def get_top_charts(
    catalog: CatalogCache, force: bool = False, cancel_token: Optional[CancelToken] = None
) -> List[Song]:
    songs = await catalog.fetch_songs(force=force, cancel_token=cancel_token)
    return [song for song in songs if song.is_top_chart]


async def get_favorite_artists(
    catalog: CatalogCache, force: bool = False, cancel_token: Optional[CancelToken] = None
) -> List[Artist]:
    artists = await catalog.fetch_artists(force=force, cancel_token=cancel_token)
    return [artist for artist in artists if artist.is_favorite]


async def get_favorite_artist_songs(
    catalog: CatalogCache, force: bool = False, cancel_token: Optional[CancelToken] = None
) -> List[Song]:
    """Songs whose embedded artist is flagged as a favorite."""
    songs = await catalog.fetch_songs(force=force, cancel_token=cancel_token)
    return [song for song in songs if song.artist.is_favorite]


async def get_songs_by_playlist_id(
    catalog: CatalogCache,
    playlist_id: int,
    force: bool = False,
    cancel_token: Optional[CancelToken] = None,
) -> List[Song]:
    songs = await catalog.fetch_songs(force=force, cancel_token=cancel_token)
    return [song for song in songs if song.playlist.id == playlist_id]


async def get_songs_by_playlist(
    catalog: CatalogCache,
    playlist_name: str,
    force: bool = False,
    cancel_token: Optional[CancelToken] = None,
) -> List[Song]:
    songs = await catalog.fetch_songs(force=force, cancel_token=cancel_token)
    wanted = playlist_name.lower()
    return [song for song in songs if song.playlist.name.lower() == wanted]


async def get_songs_by_artist_id(
    catalog: CatalogCache,
    artist_id: int,
    force: bool = False,
    cancel_token: Optional[CancelToken] = None,
) -> List[Song]:
    songs = await catalog.fetch_songs(force=force, cancel_token=cancel_token)
    return [song for song in songs if song.artist.id == artist_id]


async def get_songs_by_artist(
    catalog: CatalogCache,
    artist_name: str,
    force: bool = False,
    cancel_token: Optional[CancelToken] = None,
) -> List[Song]:
    songs = await catalog.fetch_songs(force=force, cancel_token=cancel_token)
    wanted = artist_name.lower()
    return [song for song in songs if song.artist.name.lower() == wanted]


async def get_songs_by_genre_id(
    catalog: CatalogCache,
    genre_id: int,
    force: bool = False,
    cancel_token: Optional[CancelToken] = None,
) -> List[Song]:
    songs = await catalog.fetch_songs(force=force, cancel_token=cancel_token)
    return [song for song in songs if song.genre.id == genre_id]


async def get_songs_by_genre(
    catalog: CatalogCache,
    genre_name: str,
    force: bool = False,
    cancel_token: Optional[CancelToken] = None,
) -> List[Song]:
    songs = await catalog.fetch_songs(force=force, cancel_token=cancel_token)
    wanted = genre_name.lower()
    return [song for song in songs if song.genre.name.lower() == wanted]


async def find_song(
    catalog: CatalogCache, song_id: int, cancel_token: Optional[CancelToken] = None
) -> Optional[Song]:
    songs = await catalog.fetch_songs(cancel_token=cancel_token)
    return next((song for song in songs if song.id == song_id), None)


async def find_artist(
    catalog: CatalogCache, artist_id: int, cancel_token: Optional[CancelToken] = None
) -> Optional[Artist]:
    artists = await catalog.fetch_artists(cancel_token=cancel_token)
    return next((artist for artist in artists if artist.id == artist_id), None)


async def find_playlist(
    catalog: CatalogCache, playlist_id: int, cancel_token: Optional[CancelToken] = None
) -> Optional[Playlist]:
    playlists = await catalog.fetch_playlists(cancel_token=cancel_token)
    return next((p for p in playlists if p.id == playlist_id), None)


async def search_songs(
    catalog: CatalogCache, query: str, cancel_token: Optional[CancelToken] = None
) -> List[Song]:
    """Case-insensitive substring search over title, artist name and album.

    A blank query matches nothing.
    """
    needle = query.strip().lower()
    if not needle:
        return []

    songs = await catalog.fetch_songs(cancel_token=cancel_token)
    return [
        song
        for song in songs
        if needle in song.title.lower()
        or needle in song.artist.name.lower()
        or needle in song.album.lower()
    ]
