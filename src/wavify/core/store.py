"""
Persistent key/value cache store.

Entries are JSON text of the form {"data": ..., "timestamp": <epoch ms>}.
Every helper here is best-effort: storage and serialization failures are
logged and reported as a cache miss, never raised to the caller.
"""

import json
import time
from typing import Any, Dict, Optional, Protocol, Tuple

from loguru import logger

STORAGE_KEYS = {
    "songs": "music_app_songs",
    "artists": "music_app_artists",
    "genres": "music_app_genres",
    "playlists": "music_app_playlists",
    "recently_played": "music_app_recently_played",
}

LIBRARY_CACHE_KEY = "music_library_data"


class KeyValueStore(Protocol):
    """Synchronous raw-string store. Implementations may raise on any call."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, raw: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    """Dict-backed store used when persistence is disabled and in tests."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, raw: str) -> None:
        self._data[key] = raw

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


def now_ms() -> int:
    """Current wall clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def save_entry(
    store: KeyValueStore, key: str, data: Any, timestamp: Optional[int] = None
) -> bool:
    """Serialize data with a timestamp and write it under key.

    Returns:
        True if the entry was written, False if serialization or the store failed
    """
    try:
        raw = json.dumps(
            {"data": data, "timestamp": timestamp if timestamp is not None else now_ms()}
        )
        store.set(key, raw)
        return True
    except Exception as e:
        logger.error(f"Error saving cache entry ({key}): {e}")
        return False


def load_entry_with_timestamp(
    store: KeyValueStore, key: str
) -> Optional[Tuple[Any, int]]:
    """Read an entry and return (data, timestamp), or None on miss or corruption."""
    try:
        raw = store.get(key)
    except Exception as e:
        logger.error(f"Error loading cache entry ({key}): {e}")
        return None

    if not raw:
        return None

    try:
        entry = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as e:
        logger.warning(f"Discarding malformed cache entry ({key}): {e}")
        return None

    if not isinstance(entry, dict) or "data" not in entry:
        logger.warning(f"Discarding cache entry with unexpected shape ({key})")
        return None

    timestamp = entry.get("timestamp")
    if not isinstance(timestamp, (int, float)):
        timestamp = 0
    return entry["data"], int(timestamp)


def load_entry(store: KeyValueStore, key: str) -> Optional[Any]:
    """Read an entry's data, or None on miss or corruption."""
    loaded = load_entry_with_timestamp(store, key)
    if loaded is None:
        return None
    return loaded[0]


def clear_key(store: KeyValueStore, key: str) -> None:
    """Delete a single entry; failures are logged only."""
    try:
        store.delete(key)
    except Exception as e:
        logger.error(f"Error clearing cache entry ({key}): {e}")


def clear_all_music_caches(store: KeyValueStore) -> None:
    """Delete every known cache key. Called on logout."""
    for key in STORAGE_KEYS.values():
        clear_key(store, key)
    clear_key(store, LIBRARY_CACHE_KEY)
    logger.info("Cleared all persisted music caches")
