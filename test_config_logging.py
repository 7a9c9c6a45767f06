import json
import logging

import pytest

from config import Settings
from logging_config import JsonFormatter, setup_logging


def test_settings_defaults(monkeypatch):
    for name in ["LOANS_DATABASE_URL", "LOANS_LOG_LEVEL", "LOANS_LOG_FORMAT"]:
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.database_url == "sqlite:///database.db"
    assert settings.database_echo is False
    assert settings.reset_database is False
    assert settings.log_level == "INFO"
    assert settings.log_format == "standard"


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("LOANS_DATABASE_URL", "sqlite:///other.db")
    monkeypatch.setenv("LOANS_LOG_FORMAT", "json")
    monkeypatch.setenv("LOANS_DATABASE_ECHO", "true")

    settings = Settings(_env_file=None)

    assert settings.database_url == "sqlite:///other.db"
    assert settings.log_format == "json"
    assert settings.database_echo is True


@pytest.fixture
def root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.mark.parametrize(
    "format_type, formatter_cls",
    [("json", JsonFormatter), ("standard", logging.Formatter)],
)
def test_setup_logging(root_logger, format_type, formatter_cls):
    setup_logging("debug", format_type)

    assert root_logger.level == logging.DEBUG
    assert len(root_logger.handlers) == 1
    assert isinstance(root_logger.handlers[0].formatter, formatter_cls)


def test_setup_logging_unknown_level(root_logger):
    setup_logging("chatty")

    assert root_logger.level == logging.INFO


def test_json_formatter():
    record = logging.LogRecord(
        "loan_service", logging.INFO, __file__, 1, "Loan %s repaid", (7,), None
    )

    data = json.loads(JsonFormatter().format(record))

    assert data["level"] == "INFO"
    assert data["logger"] == "loan_service"
    assert data["message"] == "Loan 7 repaid"
    assert "timestamp" in data
    assert "exception" not in data
