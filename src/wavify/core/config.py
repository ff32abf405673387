"""
Configuration management for the Wavify client runtime
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from loguru import logger


@dataclass
class ApiConfig:
    """Configuration for the catalog backend."""

    base_url: str = "https://wavifyserver.onrender.com/api/"
    timeout: float = 10.0
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None

    def validate(self) -> None:
        """Validate API configuration values.

        Raises:
            ValueError: If configuration values are invalid
        """
        if not self.base_url.startswith(("http://", "https://")):
            raise ValueError(f"base_url must be an http(s) URL, got {self.base_url!r}")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")


@dataclass
class CacheConfig:
    """Configuration for the entity cache and its persistent store."""

    ttl_seconds: float = 60.0  # Memory cache freshness window
    library_ttl_seconds: float = 300.0  # Library snapshot freshness window
    persistent: bool = True  # False keeps everything in memory (no SQLite)
    database_path: Optional[str] = None  # Default: <data dir>/wavify.db

    def validate(self) -> None:
        """Validate cache configuration values.

        Raises:
            ValueError: If configuration values are invalid
        """
        if self.ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if self.library_ttl_seconds <= 0:
            raise ValueError("library_ttl_seconds must be positive")


@dataclass
class PlayerConfig:
    """Configuration for the playback engine."""

    mpv_socket_path: Optional[str] = None
    volume: float = 0.75  # 0.0 - 1.0

    def validate(self) -> None:
        if not 0.0 <= self.volume <= 1.0:
            raise ValueError(f"volume must be within [0, 1], got {self.volume}")


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file: Optional[str] = (
        None  # Custom log file path (default: ~/.local/share/wavify/wavify.log)
    )
    max_file_size_mb: int = 10  # Maximum log file size before rotation
    backup_count: int = 5  # Number of backup files to keep
    console_output: bool = False  # Also output to console (for debugging)


@dataclass
class Config:
    """Main configuration object."""

    api: ApiConfig = field(default_factory=ApiConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    player: PlayerConfig = field(default_factory=PlayerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        return Path(config_home) / "wavify"
    return Path.home() / ".config" / "wavify"


def get_config_path() -> Path:
    """Get the main configuration file path.

    Checks for config.toml in the following order:
    1. Current working directory
    2. XDG_CONFIG_HOME/wavify (or ~/.config/wavify)
    """
    local_config = Path.cwd() / "config.toml"
    if local_config.exists():
        return local_config

    return get_config_dir() / "config.toml"


def get_data_dir() -> Path:
    """Get the data directory path."""
    data_home = os.environ.get("XDG_DATA_HOME")
    if data_home:
        return Path(data_home) / "wavify"
    return Path.home() / ".local" / "share" / "wavify"


def create_default_config() -> str:
    """Create a default configuration TOML content."""
    return """
# Wavify Client Configuration

[api]
# Catalog backend base URL (trailing slash required)
base_url = "https://wavifyserver.onrender.com/api/"

# Request timeout in seconds
timeout = 10.0

# Tokens are usually provided via WAVIFY_ACCESS_TOKEN / WAVIFY_REFRESH_TOKEN
# access_token = ""
# refresh_token = ""

[cache]
# Seconds a fetched collection is served from memory without refetching
ttl_seconds = 60

# Seconds the library snapshot (liked songs, favorite artists, recents) stays valid
library_ttl_seconds = 300

# Persist collections to SQLite for offline use
persistent = true

# Custom database path (default: ~/.local/share/wavify/wavify.db)
# database_path = "/path/to/wavify.db"

[player]
# Path for mpv socket (auto-detected if not specified)
# mpv_socket_path = "/tmp/mpv-socket"

# Default volume (0.0 - 1.0)
volume = 0.75

[logging]
# Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
level = "INFO"

# Custom log file path (default: ~/.local/share/wavify/wavify.log)
# log_file = "/path/to/custom/wavify.log"

# Maximum log file size in MB before rotation
max_file_size_mb = 10

# Number of backup log files to keep
backup_count = 5

# Also output logs to console (useful for debugging)
console_output = false
""".strip()


def _apply_env_overrides(config: Config) -> None:
    """Environment variables win over TOML values."""
    base_url = os.environ.get("WAVIFY_API_BASE_URL")
    if base_url:
        config.api.base_url = base_url

    access_token = os.environ.get("WAVIFY_ACCESS_TOKEN")
    if access_token:
        config.api.access_token = access_token

    refresh_token = os.environ.get("WAVIFY_REFRESH_TOKEN")
    if refresh_token:
        config.api.refresh_token = refresh_token


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from file or create default.

    Environment variables override TOML values:
    - WAVIFY_API_BASE_URL
    - WAVIFY_ACCESS_TOKEN
    - WAVIFY_REFRESH_TOKEN

    Args:
        config_path: Explicit config file (default: see get_config_path)

    Returns:
        Parsed configuration; sections with invalid values fall back to defaults
    """
    # Load .env file from config directory if it exists
    from dotenv import load_dotenv

    env_path = get_config_dir() / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    if config_path is None:
        config_path = get_config_path()

    if not config_path.exists():
        # Create config directory and default file
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(create_default_config())
        logger.info(f"Created default configuration at: {config_path}")
        config = Config()
        _apply_env_overrides(config)
        return config

    try:
        with open(config_path, "rb") as f:
            toml_data = tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as e:
        logger.warning(f"Error loading config from {config_path}: {e}")
        logger.warning("Using default configuration.")
        config = Config()
        _apply_env_overrides(config)
        return config

    config = Config()

    if "api" in toml_data:
        api_data = toml_data["api"]
        try:
            config.api = ApiConfig(
                base_url=str(api_data.get("base_url", config.api.base_url)),
                timeout=float(api_data.get("timeout", config.api.timeout)),
                access_token=api_data.get("access_token"),
                refresh_token=api_data.get("refresh_token"),
            )
            config.api.validate()
        except (TypeError, ValueError) as e:
            logger.warning(f"Invalid api configuration: {e}. Using defaults.")
            config.api = ApiConfig()

    if "cache" in toml_data:
        cache_data = toml_data["cache"]
        try:
            config.cache = CacheConfig(
                ttl_seconds=float(cache_data.get("ttl_seconds", config.cache.ttl_seconds)),
                library_ttl_seconds=float(
                    cache_data.get(
                        "library_ttl_seconds", config.cache.library_ttl_seconds
                    )
                ),
                persistent=bool(cache_data.get("persistent", config.cache.persistent)),
                database_path=cache_data.get("database_path"),
            )
            config.cache.validate()
        except (TypeError, ValueError) as e:
            logger.warning(f"Invalid cache configuration: {e}. Using defaults.")
            config.cache = CacheConfig()

    if "player" in toml_data:
        player_data = toml_data["player"]
        try:
            config.player = PlayerConfig(
                mpv_socket_path=player_data.get("mpv_socket_path"),
                volume=float(player_data.get("volume", config.player.volume)),
            )
            config.player.validate()
        except (TypeError, ValueError) as e:
            logger.warning(f"Invalid player configuration: {e}. Using defaults.")
            config.player = PlayerConfig()

    if "logging" in toml_data:
        logging_data = toml_data["logging"]
        try:
            config.logging = LoggingConfig(
                level=str(logging_data.get("level", config.logging.level)),
                log_file=logging_data.get("log_file"),
                max_file_size_mb=int(
                    logging_data.get("max_file_size_mb", config.logging.max_file_size_mb)
                ),
                backup_count=int(
                    logging_data.get("backup_count", config.logging.backup_count)
                ),
                console_output=bool(
                    logging_data.get("console_output", config.logging.console_output)
                ),
            )
        except (TypeError, ValueError) as e:
            logger.warning(f"Invalid logging configuration: {e}. Using defaults.")
            config.logging = LoggingConfig()

    _apply_env_overrides(config)
    return config


def _toml_value(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def save_config(config: Config, config_path: Optional[Path] = None) -> None:
    """Save configuration to TOML file.

    Tokens are never written to disk; keep them in the environment or .env.
    """
    if config_path is None:
        config_path = get_config_path()

    sections = {
        "api": {
            "base_url": config.api.base_url,
            "timeout": config.api.timeout,
        },
        "cache": {
            "ttl_seconds": config.cache.ttl_seconds,
            "library_ttl_seconds": config.cache.library_ttl_seconds,
            "persistent": config.cache.persistent,
            "database_path": config.cache.database_path,
        },
        "player": {
            "mpv_socket_path": config.player.mpv_socket_path,
            "volume": config.player.volume,
        },
        "logging": {
            "level": config.logging.level,
            "log_file": config.logging.log_file,
            "max_file_size_mb": config.logging.max_file_size_mb,
            "backup_count": config.logging.backup_count,
            "console_output": config.logging.console_output,
        },
    }

    lines = ["# Wavify Client Configuration", ""]
    for section, values in sections.items():
        lines.append(f"[{section}]")
        for key, value in values.items():
            if value is None:
                continue
            lines.append(f"{key} = {_toml_value(value)}")
        lines.append("")

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w", encoding="utf-8") as f:
        f.write("\n".join(lines))


def ensure_directories() -> None:
    """Ensure configuration and data directories exist."""
    get_config_dir().mkdir(parents=True, exist_ok=True)
    get_data_dir().mkdir(parents=True, exist_ok=True)
