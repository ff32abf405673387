"""Application context for explicit state passing.

This module provides the AppContext dataclass that bundles the runtime's
shared services (persistent store, catalog source, entity cache and the one
playback engine). Consumers receive it explicitly instead of importing
module-level singletons.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from loguru import logger

from wavify.core.config import Config
from wavify.core.database import SqliteStore
from wavify.core.store import KeyValueStore, MemoryStore
from wavify.domain.catalog.cache import CatalogCache
from wavify.domain.catalog.source import CatalogSource, HttpCatalogSource
from wavify.domain.playback.engine import PlaybackEngine
from wavify.domain.playback.media import (
    MediaElement,
    MpvMediaElement,
    check_mpv_available,
)


@dataclass
class AppContext:
    """Shared services for one client session.

    Attributes:
        config: Application configuration
        store: Persistent key/value store behind the caches
        source: Remote catalog source
        catalog: Two-tier entity cache
        media: The media element owned by the engine
        engine: The single playback session
    """

    config: Config
    store: KeyValueStore
    source: CatalogSource
    catalog: CatalogCache
    media: MediaElement
    engine: PlaybackEngine

    @classmethod
    def create(
        cls,
        config: Config,
        source: Optional[CatalogSource] = None,
        store: Optional[KeyValueStore] = None,
        media: Optional[MediaElement] = None,
    ) -> "AppContext":
        """Create the application context.

        Args:
            config: Application configuration
            source: Catalog source (default: HTTP source from config.api)
            store: Key/value store (default: SQLite, or memory when
                config.cache.persistent is false)
            media: Media element (default: an mpv element, started if mpv is
                installed)

        Returns:
            New AppContext with empty caches and an empty queue
        """
        if store is None:
            if config.cache.persistent:
                db_path = (
                    Path(config.cache.database_path)
                    if config.cache.database_path
                    else None
                )
                store = SqliteStore(db_path)
            else:
                store = MemoryStore()

        if source is None:
            source = HttpCatalogSource(
                base_url=config.api.base_url,
                timeout=config.api.timeout,
                access_token=config.api.access_token,
                refresh_token=config.api.refresh_token,
            )

        if media is None:
            media = MpvMediaElement(
                socket_path=config.player.mpv_socket_path, volume=config.player.volume
            )
            if check_mpv_available():
                media.start()
            else:
                logger.warning("mpv not found; playback requests will be rejected")

        catalog = CatalogCache(source, store, ttl_seconds=config.cache.ttl_seconds)
        engine = PlaybackEngine(media, volume=config.player.volume)

        return cls(
            config=config,
            store=store,
            source=source,
            catalog=catalog,
            media=media,
            engine=engine,
        )

    def close(self) -> None:
        """Tear down the engine, then the media element and the source."""
        self.engine.close()
        if isinstance(self.media, MpvMediaElement):
            self.media.stop()
        if isinstance(self.source, HttpCatalogSource):
            self.source.close()
        logger.debug("Application context closed")
