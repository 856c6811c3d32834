"""Tests for queue configuration and logging helpers."""

import logging
import pytest

from src.utils.errors import ConfigurationError
from src.utils.logging import correlation_context, get_correlation_id, log_timing, get_structured_logger
from src.utils.queue_config import QueueConfig, load_field_settings, parse_csv_option


@pytest.mark.unit
def test_backend_validated(monkeypatch):
    monkeypatch.setenv("FIELD_QUEUE_BACKEND", "Supabase")
    assert QueueConfig.backend() == "supabase"

    monkeypatch.setenv("FIELD_QUEUE_BACKEND", "redis")
    with pytest.raises(ConfigurationError):
        QueueConfig.backend()


@pytest.mark.unit
def test_load_field_settings(monkeypatch):
    monkeypatch.setenv("EXIF_ENABLED_FIELDS", "make, model,,iso")
    monkeypatch.setenv("EXIF_ENABLED_RECORD_TYPES", "photo")
    monkeypatch.setenv("EXIF_AUTO_CREATE_FIELDS", "0")

    settings = load_field_settings()

    assert settings.enabled_field_keys == {"make", "model", "iso"}
    assert settings.enabled_record_types == {"photo"}
    assert settings.auto_create_enabled is False


@pytest.mark.unit
def test_load_field_settings_defaults(monkeypatch):
    for name in ("EXIF_ENABLED_FIELDS", "EXIF_ENABLED_RECORD_TYPES", "EXIF_AUTO_CREATE_FIELDS"):
        monkeypatch.delenv(name, raising=False)

    settings = load_field_settings()

    assert settings.enabled_field_keys == set()
    assert settings.auto_create_enabled is True


@pytest.mark.unit
def test_parse_csv_option():
    assert parse_csv_option(None) == []
    assert parse_csv_option(" photo ,scan") == ["photo", "scan"]


@pytest.mark.unit
def test_correlation_context_restores_previous_id():
    with correlation_context("outer"):
        with correlation_context(prefix="cli") as inner:
            assert inner.startswith("cli_")
            assert get_correlation_id() == inner
        assert get_correlation_id() == "outer"


@pytest.mark.unit
def test_log_timing_logs_failure(caplog):
    logger = get_structured_logger("tests.timing")

    with caplog.at_level(logging.DEBUG, logger="tests.timing"):
        with pytest.raises(RuntimeError):
            with log_timing("drain_test", logger=logger):
                raise RuntimeError("boom")

    assert any("drain_test" in record.getMessage() for record in caplog.records)
