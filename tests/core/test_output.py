"""Tests for loguru setup."""

import pytest
from loguru import logger

from wavify.core.config import LoggingConfig
from wavify.core.output import setup_logging_from_config, setup_loguru


@pytest.fixture(autouse=True)
def restore_logger():
    yield
    logger.remove()


def test_file_sink_receives_messages(tmp_path):
    log_file = tmp_path / "logs" / "wavify.log"

    setup_loguru(log_file=log_file, level="debug")
    logger.debug("cache warmed")

    text = log_file.read_text(encoding="utf-8")
    assert "Loguru initialized" in text
    assert "cache warmed" in text
    assert "| DEBUG    |" in text


def test_level_filters_messages(tmp_path):
    log_file = tmp_path / "wavify.log"

    setup_loguru(log_file=log_file, level="WARNING")
    logger.info("not written")
    logger.warning("kept")

    text = log_file.read_text(encoding="utf-8")
    assert "not written" not in text
    assert "kept" in text


def test_setup_from_config(tmp_path):
    log_file = tmp_path / "configured.log"

    setup_logging_from_config(LoggingConfig(level="INFO", log_file=str(log_file)))
    logger.info("from config")

    assert "from config" in log_file.read_text(encoding="utf-8")
