"""
Tests for environment configuration
"""

import logging
import os

from lexicompare.config import DEFAULT_UPLOAD_TYPES, Settings, configure_logging, load_settings

ENV_VARS = [
    "LEXICOMPARE_LOG_LEVEL",
    "LEXICOMPARE_MAX_WORKERS",
    "LEXICOMPARE_INCLUDE_MASTER",
    "LEXICOMPARE_UPLOAD_TYPES",
]


def _clear(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults(monkeypatch):
    _clear(monkeypatch)
    settings = load_settings(dotenv=False)
    assert settings == Settings()
    assert settings.upload_types == DEFAULT_UPLOAD_TYPES


def test_values_from_environment(monkeypatch):
    _clear(monkeypatch)
    monkeypatch.setenv("LEXICOMPARE_LOG_LEVEL", "debug")
    monkeypatch.setenv("LEXICOMPARE_MAX_WORKERS", "4")
    monkeypatch.setenv("LEXICOMPARE_INCLUDE_MASTER", "no")
    monkeypatch.setenv("LEXICOMPARE_UPLOAD_TYPES", ".txt, PDF,,json")
    settings = load_settings(dotenv=False)
    assert settings.log_level == "DEBUG"
    assert settings.max_workers == 4
    assert settings.include_master is False
    assert settings.upload_types == ["txt", "pdf", "json"]


def test_invalid_values_fall_back(monkeypatch, caplog):
    _clear(monkeypatch)
    monkeypatch.setenv("LEXICOMPARE_LOG_LEVEL", "chatty")
    monkeypatch.setenv("LEXICOMPARE_MAX_WORKERS", "zero")
    monkeypatch.setenv("LEXICOMPARE_INCLUDE_MASTER", "maybe")
    with caplog.at_level(logging.WARNING, logger="lexicompare.config"):
        settings = load_settings(dotenv=False)
    assert settings == Settings()
    assert len(caplog.records) == 3


def test_non_positive_workers_rejected(monkeypatch):
    _clear(monkeypatch)
    monkeypatch.setenv("LEXICOMPARE_MAX_WORKERS", "0")
    assert load_settings(dotenv=False).max_workers == 1


def test_dotenv_file_is_read(monkeypatch, tmp_path):
    _clear(monkeypatch)
    (tmp_path / ".env").write_text("LEXICOMPARE_MAX_WORKERS=3\n")
    monkeypatch.chdir(tmp_path)
    try:
        assert load_settings().max_workers == 3
    finally:
        os.environ.pop("LEXICOMPARE_MAX_WORKERS", None)


def test_configure_logging_accepts_settings():
    configure_logging(Settings(log_level="WARNING"))
