import logging

import pytest

from config import get_settings
from log_config import configure_logging


@pytest.fixture
def root_level():
    root = logging.getLogger()
    previous = root.level
    yield root
    root.setLevel(previous)


def test_level_applies_after_handlers_exist(root_level):
    configure_logging("INFO")
    assert root_level.handlers

    configure_logging("WARNING")
    assert root_level.level == logging.WARNING


def test_unknown_level_falls_back_to_info(root_level):
    configure_logging("chatty")
    assert root_level.level == logging.INFO


def test_level_comes_from_environment(monkeypatch, root_level):
    monkeypatch.setenv("PHC_LOG_LEVEL", "WARNING")
    get_settings.cache_clear()
    try:
        configure_logging(get_settings().log_level)
        assert logging.getLogger().getEffectiveLevel() == logging.WARNING
    finally:
        get_settings.cache_clear()
