"""Tests for settings and logging configuration."""

from __future__ import annotations

import logging

from fare_check.config import Settings
from fare_check.logging_config import RequestIdFilter, get_logging_config


def test_settings_read_prefixed_environment(monkeypatch) -> None:
    monkeypatch.setenv("FARE_CHECK_REQUIRE_ROUND_TRIP", "true")
    monkeypatch.setenv("FARE_CHECK_API_BASE_URL", "https://pricing.test/api")
    monkeypatch.setenv("FARE_CHECK_RESULT_STORE_TTL", "120")

    settings = Settings(_env_file=None)

    assert settings.require_round_trip is True
    assert settings.api_base_url == "https://pricing.test/api"
    assert settings.result_store_ttl == 120
    assert settings.anthropic_api_key == ""


def test_logging_config_can_target_stderr() -> None:
    config = get_logging_config(stream="ext://sys.stderr")

    assert config["handlers"]["console"]["stream"] == "ext://sys.stderr"
    assert config["handlers"]["console"]["filters"] == ["request_id"]


def test_request_id_filter_fills_placeholder() -> None:
    record = logging.LogRecord("fare_check", logging.INFO, __file__, 1, "msg", None, None)

    assert RequestIdFilter().filter(record) is True
    assert record.request_id == "-"
