"""Composite actions over the catalog cache and the playback engine.

Like/favorite toggles are applied optimistically to the memory cache,
confirmed by the backend, then reconciled by invalidation. A rejected update
is rolled back to the record that was cached before it.
Each action returns (success, message) for UI feedback.
"""

from dataclasses import replace
from typing import Any, Awaitable, Callable, Optional, Sequence, Tuple

from loguru import logger

from wavify.context import AppContext
from wavify.core.store import clear_all_music_caches
from wavify.domain.catalog import queries
from wavify.domain.catalog.exceptions import CatalogError
from wavify.domain.catalog.library import (
    clear_library_cache,
    load_library_cache,
    remember_play,
    track_play,
)
from wavify.domain.catalog.models import Song
from wavify.domain.catalog.source import HttpCatalogSource


class OptimisticUpdate:
    """Apply a local change, confirm it remotely, compensate on failure.

    Args:
        apply: Makes the local change; its return value is handed to rollback
        remote: Coroutine function performing the backend call
        rollback: Undoes the local change
        reconcile: Runs after the backend accepted the change
    """

    def __init__(
        self,
        apply: Callable[[], Any],
        remote: Callable[[], Awaitable[Any]],
        rollback: Callable[[Any], None],
        reconcile: Optional[Callable[[], None]] = None,
    ):
        self.apply = apply
        self.remote = remote
        self.rollback = rollback
        self.reconcile = reconcile

    async def run(self) -> bool:
        undo = self.apply()
        try:
            await self.remote()
        except CatalogError as e:
            logger.warning(f"Optimistic update rejected, rolling back: {e}")
            self.rollback(undo)
            return False

        if self.reconcile is not None:
            self.reconcile()
        return True


async def set_song_liked(ctx: AppContext, song_id: int, liked: bool) -> Tuple[bool, str]:
    """Like or unlike a song."""
    songs = ctx.catalog.songs

    def reconcile() -> None:
        ctx.catalog.invalidate_songs()
        clear_library_cache(ctx.store)

    update = OptimisticUpdate(
        apply=lambda: songs.patch(song_id, is_liked=liked),
        remote=lambda: ctx.source.set_liked(song_id, liked),
        rollback=songs.restore,
        reconcile=reconcile,
    )
    if not await update.run():
        return False, "Could not update liked songs"
    return True, "Added to liked songs" if liked else "Removed from liked songs"


async def toggle_song_like(ctx: AppContext, song_id: int) -> Tuple[bool, str]:
    song = await queries.find_song(ctx.catalog, song_id)
    if song is None:
        return False, f"Song {song_id} not found"
    return await set_song_liked(ctx, song_id, not song.is_liked)


async def set_artist_favorite(
    ctx: AppContext, artist_id: int, favorite: bool
) -> Tuple[bool, str]:
    """Favorite or unfavorite an artist.

    Songs embed their artist, so the song cache is patched (and invalidated)
    together with the artist cache.
    """
    artists = ctx.catalog.artists
    songs = ctx.catalog.songs

    def patch_song(song: Song) -> Song:
        if song.artist.id != artist_id:
            return song
        return replace(song, artist=replace(song.artist, is_favorite=favorite))

    def apply():
        return artists.patch(artist_id, is_favorite=favorite), songs.update(patch_song)

    def rollback(previous) -> None:
        previous_artists, previous_songs = previous
        artists.restore(previous_artists)
        songs.restore(previous_songs)

    def reconcile() -> None:
        ctx.catalog.invalidate_artists()
        ctx.catalog.invalidate_songs()
        clear_library_cache(ctx.store)

    update = OptimisticUpdate(
        apply=apply,
        remote=lambda: ctx.source.set_favorite(artist_id, favorite),
        rollback=rollback,
        reconcile=reconcile,
    )
    if not await update.run():
        return False, "Could not update favorite artists"
    return True, "Added to favorites" if favorite else "Removed from favorites"


async def toggle_artist_favorite(ctx: AppContext, artist_id: int) -> Tuple[bool, str]:
    artist = await queries.find_artist(ctx.catalog, artist_id)
    if artist is None:
        return False, f"Artist {artist_id} not found"
    return await set_artist_favorite(ctx, artist_id, not artist.is_favorite)


async def play_songs(
    ctx: AppContext, songs: Sequence[Song], start_index: int = 0
) -> Tuple[bool, str]:
    """Queue songs, start playback and record the play."""
    if not songs:
        return False, "Nothing to play"

    ctx.engine.set_queue(songs, start_index)
    song = ctx.engine.current_song
    if not ctx.engine.play():
        return False, f"Could not play '{song.title}'"

    await track_play(ctx.source, ctx.catalog, ctx.store, song.id)

    snapshot = load_library_cache(ctx.store, ctx.config.cache.library_ttl_seconds)
    if snapshot is not None:
        remember_play(ctx.store, snapshot, song)

    return True, f"Playing: {song.title} - {song.artist.name}"


def logout(ctx: AppContext) -> None:
    """Drop every cached collection and persisted entry for this user."""
    ctx.catalog.invalidate_all()
    clear_all_music_caches(ctx.store)
    clear_library_cache(ctx.store)
    if isinstance(ctx.source, HttpCatalogSource):
        ctx.source.access_token = None
        ctx.source.refresh_token = None
    logger.info("Logged out; music caches cleared")
