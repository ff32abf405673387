"""Tests for configuration loading and saving."""

from pathlib import Path

import pytest

from wavify.core.config import (
    ApiConfig,
    CacheConfig,
    Config,
    LoggingConfig,
    PlayerConfig,
    get_config_dir,
    get_config_path,
    get_data_dir,
    load_config,
    save_config,
)

ENV_VARS = ("WAVIFY_API_BASE_URL", "WAVIFY_ACCESS_TOKEN", "WAVIFY_REFRESH_TOKEN")


@pytest.fixture(autouse=True)
def isolated_dirs(tmp_path, monkeypatch):
    """Point XDG dirs at tmp_path and make sure no token env vars leak in or out."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.chdir(tmp_path)
    for name in ENV_VARS:
        # setenv first so monkeypatch restores the variable's absence afterwards
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return tmp_path


def write_config(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


class TestPaths:
    def test_xdg_dirs(self, isolated_dirs):
        assert get_config_dir() == isolated_dirs / "config" / "wavify"
        assert get_data_dir() == isolated_dirs / "data" / "wavify"

    def test_local_config_wins(self, isolated_dirs):
        local = write_config(isolated_dirs / "config.toml", "")
        assert get_config_path() == local

    def test_falls_back_to_config_dir(self, isolated_dirs):
        assert get_config_path() == isolated_dirs / "config" / "wavify" / "config.toml"


class TestLoadConfig:
    def test_missing_file_creates_default(self, isolated_dirs):
        path = isolated_dirs / "config" / "wavify" / "config.toml"

        config = load_config(path)

        assert path.exists()
        assert config == Config()

    def test_default_file_parses_to_defaults(self, isolated_dirs):
        path = isolated_dirs / "config" / "wavify" / "config.toml"
        load_config(path)
        assert load_config(path) == Config()

    def test_sections_are_parsed(self, isolated_dirs):
        path = write_config(
            isolated_dirs / "custom.toml",
            """
[api]
base_url = "http://localhost:8000/api/"
timeout = 3

[cache]
ttl_seconds = 30
persistent = false

[player]
volume = 0.5

[logging]
level = "DEBUG"
console_output = true
""",
        )

        config = load_config(path)

        assert config.api.base_url == "http://localhost:8000/api/"
        assert config.api.timeout == 3.0
        assert config.cache.ttl_seconds == 30.0
        assert config.cache.library_ttl_seconds == 300.0
        assert config.cache.persistent is False
        assert config.player.volume == 0.5
        assert config.logging.level == "DEBUG"
        assert config.logging.console_output is True

    def test_invalid_section_falls_back_to_defaults(self, isolated_dirs):
        path = write_config(
            isolated_dirs / "custom.toml",
            "[cache]\nttl_seconds = -1\n\n[player]\nvolume = 4.0\n",
        )

        config = load_config(path)

        assert config.cache == CacheConfig()
        assert config.player == PlayerConfig()

    def test_badly_typed_values_fall_back_per_section(self, isolated_dirs):
        path = write_config(
            isolated_dirs / "typed.toml",
            '[api]\ntimeout = "abc"\n\n'
            '[cache]\nttl_seconds = [1, 2]\n\n'
            '[player]\nvolume = 0.5\n\n'
            '[logging]\nmax_file_size_mb = "big"\n',
        )

        config = load_config(path)

        assert config.api == ApiConfig()
        assert config.cache == CacheConfig()
        assert config.logging == LoggingConfig()
        assert config.player.volume == 0.5

    def test_malformed_toml_uses_defaults(self, isolated_dirs):
        path = write_config(isolated_dirs / "broken.toml", "[api\nbase_url = ")
        assert load_config(path) == Config()

    def test_environment_overrides(self, isolated_dirs, monkeypatch):
        monkeypatch.setenv("WAVIFY_API_BASE_URL", "https://staging.example/api/")
        monkeypatch.setenv("WAVIFY_ACCESS_TOKEN", "token-a")

        config = load_config(isolated_dirs / "none.toml")

        assert config.api.base_url == "https://staging.example/api/"
        assert config.api.access_token == "token-a"
        assert config.api.refresh_token is None

    def test_dotenv_in_config_dir(self, isolated_dirs):
        write_config(
            isolated_dirs / "config" / "wavify" / ".env", "WAVIFY_REFRESH_TOKEN=from-dotenv\n"
        )

        config = load_config(isolated_dirs / "none.toml")

        assert config.api.refresh_token == "from-dotenv"


class TestSaveConfig:
    def test_round_trip(self, isolated_dirs):
        config = Config()
        config.cache.ttl_seconds = 90.0
        config.player.mpv_socket_path = "/tmp/wavify.sock"
        config.logging.log_file = "/tmp/wavify.log"
        path = isolated_dirs / "saved.toml"

        save_config(config, path)

        assert load_config(path) == config

    def test_tokens_are_not_written(self, isolated_dirs):
        config = Config()
        config.api.access_token = "secret"
        path = isolated_dirs / "saved.toml"

        save_config(config, path)

        assert "secret" not in path.read_text(encoding="utf-8")
