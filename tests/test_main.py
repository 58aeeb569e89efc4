from __future__ import annotations

import logging

import pytest
import structlog

from ybot import __main__ as entry
from ybot.logging import get_logging_config, setup_logging


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    structlog.reset_defaults()
    logging.getLogger().handlers.clear()


@pytest.mark.parametrize("fmt", ["console", "json"])
def test_logging_config_selects_formatter(fmt) -> None:
    config = get_logging_config("DEBUG", fmt)

    assert config["handlers"]["default"]["formatter"] == fmt
    assert config["loggers"][""]["level"] == "DEBUG"
    assert config["loggers"]["discord"]["level"] == "WARNING"


def test_setup_logging_applies_level() -> None:
    setup_logging("WARNING", "json")

    assert logging.getLogger().level == logging.WARNING


def test_main_without_token_fails(monkeypatch) -> None:
    for name in ("YALTER_BOT_TOKEN", "YALTER_BOT_TOKEN_FILE"):
        monkeypatch.delenv(name, raising=False)

    assert entry.main() == 1


def test_main_reports_startup_failure(monkeypatch) -> None:
    monkeypatch.setenv("YALTER_BOT_TOKEN", "t")
    monkeypatch.delenv("YALTER_BOT_LOG_LEVEL", raising=False)
    monkeypatch.delenv("YALTER_BOT_LOG_FORMAT", raising=False)

    async def _fail(settings) -> None:
        raise entry.StartupError("Connect failed: nope")

    monkeypatch.setattr(entry, "_run", _fail)

    assert entry.main() == 1
