"""Core infrastructure layer - no business logic dependencies.

This module provides foundation-level services:
- Configuration management (TOML)
- Logging setup (Loguru)
- Persistent cache store (SQLite or in-memory)

Clean architecture principle: The core layer has no dependencies on
domain or application layers.
"""

# Configuration
from .config import (
    Config,
    load_config,
    save_config,
    get_config_dir,
    get_config_path,
    get_data_dir,
    create_default_config,
    ensure_directories,
)

# Database
from .database import (
    SqliteStore,
    get_database_path,
    get_db_connection,
    init_database,
)

# Store helpers
from .store import (
    LIBRARY_CACHE_KEY,
    STORAGE_KEYS,
    KeyValueStore,
    MemoryStore,
    clear_all_music_caches,
    clear_key,
    load_entry,
    load_entry_with_timestamp,
    save_entry,
)

__all__ = [
    # Config
    "Config",
    "load_config",
    "save_config",
    "get_config_dir",
    "get_config_path",
    "get_data_dir",
    "create_default_config",
    "ensure_directories",
    # Database
    "SqliteStore",
    "get_database_path",
    "get_db_connection",
    "init_database",
    # Store
    "LIBRARY_CACHE_KEY",
    "STORAGE_KEYS",
    "KeyValueStore",
    "MemoryStore",
    "clear_all_music_caches",
    "clear_key",
    "load_entry",
    "load_entry_with_timestamp",
    "save_entry",
]
