"""Tests for logging_utils module."""

from __future__ import annotations

from typing import Iterator

import pytest
from loguru import logger

from planboard.logging_utils import configure_logging


@pytest.fixture(autouse=True)
def _drop_sinks() -> Iterator[None]:
    yield
    # The captured stream is closed after each test.
    logger.remove()


class TestConfigureLogging:
    def test_level_filters_messages(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging("warning")
        logger.info("hidden message")
        logger.warning("visible message")
        err = capsys.readouterr().err
        assert "visible message" in err
        assert "hidden message" not in err

    def test_reconfigure_replaces_sink(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging("INFO")
        configure_logging("INFO")
        logger.info("once")
        assert capsys.readouterr().err.count("once") == 1
