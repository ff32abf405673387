"""
Two-tier entity cache with single-flight fetching.

Resolution order for fetch(force=False):
  1. memory record younger than the TTL
  2. non-empty persisted entry (promoted into memory regardless of its age)
  3. the fetch already in flight for this entity type
  4. a new network load

Only cancellation escapes fetch(). Every other failure is logged and
answered with the persisted copy, or an empty list.

The check-then-start sequence in fetch() contains no await, so on a single
event loop concurrent callers always join the same in-flight task.
"""

import asyncio
from dataclasses import replace
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Generic,
    List,
    NamedTuple,
    Optional,
    Tuple,
    TypeVar,
)

from loguru import logger

from wavify.core.store import (
    STORAGE_KEYS,
    KeyValueStore,
    clear_key,
    load_entry,
    now_ms,
    save_entry,
)

from .exceptions import CatalogError, FetchCancelled
from .models import Artist, Genre, Playlist, Song
from .source import CancelToken, CatalogSource
from .transform import parse_artists, parse_genres, parse_playlists, parse_songs

T = TypeVar("T")

DEFAULT_TTL_SECONDS = 60.0

Clock = Callable[[], int]
Loader = Callable[[Optional[CancelToken]], Awaitable[List[T]]]


class MemoryRecord(NamedTuple):
    """In-memory copy of one collection."""

    timestamp: int  # epoch ms when the record was stored
    data: Tuple[Any, ...]


class EntityCache(Generic[T]):
    """Memory + persistent cache in front of one remote list operation."""

    def __init__(
        self,
        name: str,
        storage_key: str,
        load: Loader,
        decode: Callable[[Dict[str, Any]], T],
        store: KeyValueStore,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Clock = now_ms,
    ):
        self.name = name
        self.storage_key = storage_key
        self.ttl_ms = int(ttl_seconds * 1000)
        self._load = load
        self._decode = decode
        self._store = store
        self._clock = clock
        self._record: Optional[MemoryRecord] = None
        self._inflight: Optional[asyncio.Task] = None
        # Bumped by invalidate(); loads started under an older generation
        # still answer their waiters but do not repopulate the caches.
        self._generation = 0

    @property
    def in_flight(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    def is_fresh(self) -> bool:
        record = self._record
        return record is not None and self._clock() - record.timestamp < self.ttl_ms

    def peek(self) -> Optional[List[T]]:
        """Current memory copy without any I/O (None if nothing cached)."""
        if self._record is None:
            return None
        return list(self._record.data)

    async def fetch(
        self, force: bool = False, cancel_token: Optional[CancelToken] = None
    ) -> List[T]:
        """Resolve the collection.

        Args:
            force: Skip memory, persisted copy and in-flight request
            cancel_token: Cancels the network request this call starts

        Returns:
            The collection (possibly stale, possibly empty)

        Raises:
            FetchCancelled: The network request was cancelled
        """
        if not force:
            if self.is_fresh():
                logger.debug(f"{self.name}: memory cache hit")
                return list(self._record.data)

            persisted = self._load_persisted()
            if persisted:
                # Persisted entries are trusted regardless of age
                logger.debug(f"{self.name}: persistent cache hit ({len(persisted)} items)")
                self._record = MemoryRecord(self._clock(), tuple(persisted))
                return list(persisted)

            if self._inflight is not None:
                logger.debug(f"{self.name}: joining in-flight request")
                return await asyncio.shield(self._inflight)

        task = asyncio.ensure_future(self._load_and_store(cancel_token))
        task.add_done_callback(self._on_load_done)
        self._inflight = task
        # Shield so one waiter being cancelled does not abort the shared load
        return await asyncio.shield(task)

    async def _load_and_store(self, cancel_token: Optional[CancelToken]) -> List[T]:
        generation = self._generation
        try:
            items = await self._load(cancel_token)
        except (FetchCancelled, asyncio.CancelledError):
            logger.debug(f"{self.name}: request cancelled")
            raise
        except CatalogError as e:
            logger.error(f"Error fetching {self.name}: {e}")
            return self._load_persisted() or []
        except Exception:
            logger.exception(f"Unexpected error fetching {self.name}")
            return self._load_persisted() or []

        if generation == self._generation:
            self._record = MemoryRecord(self._clock(), tuple(items))
            save_entry(self._store, self.storage_key, [item.to_dict() for item in items])
        else:
            logger.debug(f"{self.name}: invalidated during fetch, result not cached")
        logger.info(f"Fetched {len(items)} {self.name}")
        return list(items)

    def _on_load_done(self, task: asyncio.Task) -> None:
        if self._inflight is task:
            self._inflight = None
        # Mark the outcome retrieved even if every waiter went away
        if not task.cancelled():
            task.exception()

    def _load_persisted(self) -> Optional[List[T]]:
        data = load_entry(self._store, self.storage_key)
        if not data:
            return None
        if not isinstance(data, list):
            logger.warning(f"{self.name}: persisted entry is not a list, ignoring")
            return None
        try:
            return [self._decode(item) for item in data]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"{self.name}: discarding undecodable persisted entry: {e}")
            return None

    def invalidate(self) -> None:
        """Drop memory copy, in-flight marker and persisted entry."""
        self._record = None
        self._inflight = None
        self._generation += 1
        clear_key(self._store, self.storage_key)
        logger.debug(f"{self.name}: cache invalidated")

    def update(self, mutate: Callable[[T], T]) -> Optional[MemoryRecord]:
        """Apply mutate to every item of the memory copy.

        Used for optimistic updates. The mutated record is stamped fresh so
        the next fetch() serves it instead of an older persisted entry.
        Returns the previous record so it can be handed back to restore(),
        or None when nothing is cached in memory.
        """
        record = self._record
        if record is None:
            return None
        self._record = MemoryRecord(
            self._clock(), tuple(mutate(item) for item in record.data)
        )
        return record

    def patch(self, entity_id: int, **changes: Any) -> Optional[MemoryRecord]:
        """Replace fields of the entity with entity_id in the memory copy."""
        return self.update(
            lambda item: replace(item, **changes) if item.id == entity_id else item
        )

    def restore(self, snapshot: Optional[MemoryRecord]) -> None:
        """Put back a record returned by update()/patch()."""
        self._record = snapshot


class CatalogCache:
    """The four entity caches of the catalog, sharing one source and store."""

    ENTITY_TYPES = ("songs", "artists", "genres", "playlists")

    def __init__(
        self,
        source: CatalogSource,
        store: KeyValueStore,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Clock = now_ms,
    ):
        self.source = source
        self.store = store

        def make(name: str, load: Loader, decode: Callable) -> EntityCache:
            return EntityCache(
                name=name,
                storage_key=STORAGE_KEYS[name],
                load=load,
                decode=decode,
                store=store,
                ttl_seconds=ttl_seconds,
                clock=clock,
            )

        self.songs: EntityCache[Song] = make("songs", self._load_songs, Song.from_dict)
        self.artists: EntityCache[Artist] = make(
            "artists", self._load_artists, Artist.from_dict
        )
        self.genres: EntityCache[Genre] = make(
            "genres", self._load_genres, Genre.from_dict
        )
        self.playlists: EntityCache[Playlist] = make(
            "playlists", self._load_playlists, Playlist.from_dict
        )

    async def _load_songs(self, cancel_token: Optional[CancelToken]) -> List[Song]:
        return parse_songs(await self.source.list_songs(cancel_token=cancel_token))

    async def _load_artists(self, cancel_token: Optional[CancelToken]) -> List[Artist]:
        return parse_artists(await self.source.list_artists(cancel_token=cancel_token))

    async def _load_genres(self, cancel_token: Optional[CancelToken]) -> List[Genre]:
        return parse_genres(await self.source.list_genres(cancel_token=cancel_token))

    async def _load_playlists(
        self, cancel_token: Optional[CancelToken]
    ) -> List[Playlist]:
        records = await self.source.list_playlists(cancel_token=cancel_token)
        # Song counts come from the (non-forced) song cache
        songs = await self.songs.fetch(cancel_token=cancel_token)
        return parse_playlists(records, songs)

    def get(self, entity_type: str) -> EntityCache:
        if entity_type not in self.ENTITY_TYPES:
            raise ValueError(
                f"Unknown entity type {entity_type!r}; expected one of {self.ENTITY_TYPES}"
            )
        return getattr(self, entity_type)

    async def fetch_songs(
        self, force: bool = False, cancel_token: Optional[CancelToken] = None
    ) -> List[Song]:
        return await self.songs.fetch(force=force, cancel_token=cancel_token)

    async def fetch_artists(
        self, force: bool = False, cancel_token: Optional[CancelToken] = None
    ) -> List[Artist]:
        return await self.artists.fetch(force=force, cancel_token=cancel_token)

    async def fetch_genres(
        self, force: bool = False, cancel_token: Optional[CancelToken] = None
    ) -> List[Genre]:
        return await self.genres.fetch(force=force, cancel_token=cancel_token)

    async def fetch_playlists(
        self, force: bool = False, cancel_token: Optional[CancelToken] = None
    ) -> List[Playlist]:
        return await self.playlists.fetch(force=force, cancel_token=cancel_token)

    def invalidate(self, entity_type: str) -> None:
        self.get(entity_type).invalidate()

    def invalidate_songs(self) -> None:
        self.songs.invalidate()

    def invalidate_artists(self) -> None:
        self.artists.invalidate()

    def invalidate_genres(self) -> None:
        self.genres.invalidate()

    def invalidate_playlists(self) -> None:
        self.playlists.invalidate()

    def invalidate_all(self) -> None:
        for entity_type in self.ENTITY_TYPES:
            self.invalidate(entity_type)
