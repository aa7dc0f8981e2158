import logging

import pytest

from lakesim.exceptions import ConfigurationError
from lakesim.logging_config import (
    LOG_LEVEL_ENV_VAR,
    SYSTEM_LEVELS_ENV_VAR,
    SYSTEM_LOGGERS,
    configure_logging,
    parse_system_levels,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv(LOG_LEVEL_ENV_VAR, raising=False)
    monkeypatch.delenv(SYSTEM_LEVELS_ENV_VAR, raising=False)
    yield
    for logger_name in SYSTEM_LOGGERS.values():
        logging.getLogger(logger_name).setLevel(logging.NOTSET)


def test_explicit_level_wins(monkeypatch):
    monkeypatch.setenv(LOG_LEVEL_ENV_VAR, "ERROR")
    logger = configure_logging(level="debug")
    assert logger.name == "lakesim"
    assert logger.level == logging.DEBUG


def test_env_var_then_info_default(monkeypatch):
    monkeypatch.setenv(LOG_LEVEL_ENV_VAR, "warning")
    assert configure_logging().level == logging.WARNING
    monkeypatch.delenv(LOG_LEVEL_ENV_VAR)
    assert configure_logging().level == logging.INFO


def test_unknown_level_is_rejected():
    with pytest.raises(ConfigurationError):
        configure_logging(level="chatty")


def test_system_override_quiets_one_system():
    configure_logging(level="DEBUG", system_levels={"behavior": "WARNING"})
    behavior = logging.getLogger(SYSTEM_LOGGERS["behavior"])
    capture = logging.getLogger(SYSTEM_LOGGERS["capture"])

    assert behavior.getEffectiveLevel() == logging.WARNING
    assert not behavior.isEnabledFor(logging.DEBUG)
    # No override: inherits the package level
    assert capture.level == logging.NOTSET
    assert capture.getEffectiveLevel() == logging.DEBUG


def test_env_overrides_merge_under_explicit_ones(monkeypatch):
    monkeypatch.setenv(SYSTEM_LEVELS_ENV_VAR, "capture=DEBUG, food_chain=ERROR")
    configure_logging(level="INFO", system_levels={"food_chain": "WARNING"})
    assert logging.getLogger(SYSTEM_LOGGERS["capture"]).level == logging.DEBUG
    assert logging.getLogger(SYSTEM_LOGGERS["food_chain"]).level == logging.WARNING


def test_reconfiguring_clears_stale_overrides():
    configure_logging(system_levels={"schooling": "ERROR"})
    configure_logging()
    assert logging.getLogger(SYSTEM_LOGGERS["schooling"]).level == logging.NOTSET


def test_parse_system_levels():
    assert parse_system_levels("capture=debug,,engine=ERROR") == {
        "capture": logging.DEBUG,
        "engine": logging.ERROR,
    }
    assert parse_system_levels("") == {}


@pytest.mark.parametrize("text", ["capture", "kraken=DEBUG", "capture=LOUD"])
def test_parse_system_levels_rejects_bad_entries(text):
    with pytest.raises(ConfigurationError):
        parse_system_levels(text)


def test_every_system_logger_is_a_real_module_logger():
    import importlib

    for logger_name in SYSTEM_LOGGERS.values():
        module = importlib.import_module(logger_name)
        assert module.logger.name == logger_name
