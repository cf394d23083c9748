from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from services.shared.config import (
    DashboardPollerConfig,
    SLAServiceConfig,
    _TraceIdFilter,
    setup_logging,
    trace_id_var,
)


def test_sla_config_defaults_are_valid():
    config = SLAServiceConfig()

    assert config.timezone_offset_minutes == 330
    assert (config.work_start_hour, config.work_end_hour) == (10, 19)
    assert config.non_working_weekday == 0
    assert config.validate() == []


def test_sla_config_from_env(monkeypatch):
    monkeypatch.setenv("SLA_TIMEZONE_OFFSET_MINUTES", "0")
    monkeypatch.setenv("SLA_WORK_START_HOUR", "9")
    monkeypatch.setenv("SLA_WORK_END_HOUR", "17")
    monkeypatch.setenv("SLA_NON_WORKING_WEEKDAY", "6")
    monkeypatch.setenv("SLA_WARNING_HOURS", "4")
    monkeypatch.setenv("SLA_APPROACHING_HOURS", "8")
    monkeypatch.setenv("SLA_MAX_BATCH_SIZE", "50")
    monkeypatch.setenv("DEBUG", "true")
    monkeypatch.setenv("LOG_FORMAT", "TEXT")

    config = SLAServiceConfig.from_env()

    assert config.timezone_offset_minutes == 0
    assert config.work_start_hour == 9
    assert config.work_end_hour == 17
    assert config.non_working_weekday == 6
    assert config.warning_hours == 4.0
    assert config.approaching_hours == 8.0
    assert config.max_batch_size == 50
    assert config.debug is True
    assert config.log_format == "text"


@pytest.mark.parametrize(
    "overrides, fragment",
    [
        ({"work_start_hour": 19, "work_end_hour": 10}, "SLA_WORK_END_HOUR must be greater"),
        ({"work_end_hour": 25}, "SLA_WORK_END_HOUR out of range"),
        ({"non_working_weekday": 7}, "SLA_NON_WORKING_WEEKDAY"),
        ({"timezone_offset_minutes": 15 * 60}, "SLA_TIMEZONE_OFFSET_MINUTES"),
        ({"warning_hours": 20.0}, "SLA_APPROACHING_HOURS"),
        ({"max_batch_size": 0}, "SLA_MAX_BATCH_SIZE"),
    ],
)
def test_sla_config_validate_reports_errors(overrides, fragment):
    errors = SLAServiceConfig(**overrides).validate()
    assert any(fragment in error for error in errors)


def test_dashboard_config_from_env(monkeypatch):
    monkeypatch.setenv("SLA_API_URL", "http://localhost:8003")
    monkeypatch.setenv("SLA_REFRESH_INTERVAL_SECONDS", "15")
    monkeypatch.setenv("SLA_WATCHLIST_PATH", "/data/watchlist.json")
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN_REPORTING", "123:abc")
    monkeypatch.setenv("ADMIN_USER_IDS", "111, 222")
    monkeypatch.setenv("SLA_ALERT_COOLDOWN_SECONDS", "60")

    config = DashboardPollerConfig.from_env()

    assert config.sla_api_url == "http://localhost:8003"
    assert config.refresh_interval_seconds == 15.0
    assert config.watchlist_path == Path("/data/watchlist.json")
    assert config.telegram_reporting_bot_token == "123:abc"
    assert config.alert_chat_ids == [111, 222]
    assert config.alert_cooldown_seconds == 60
    assert config.validate() == []


def test_dashboard_config_ignores_malformed_chat_ids(monkeypatch):
    monkeypatch.setenv("ADMIN_USER_IDS", "111,abc")
    assert DashboardPollerConfig.from_env().alert_chat_ids == []


def test_dashboard_config_validate():
    errors = DashboardPollerConfig(sla_api_url="", refresh_interval_seconds=0).validate()
    assert len(errors) == 2


def test_trace_filter_defaults_to_dash():
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)

    _TraceIdFilter().filter(record)
    assert record.trace_id == "-"

    token = trace_id_var.set("abc12345")
    try:
        _TraceIdFilter().filter(record)
    finally:
        trace_id_var.reset(token)
    assert record.trace_id == "abc12345"


def test_setup_logging_emits_json_lines(restore_root_logger, capsys):
    setup_logging(debug=True, service_name="sla-api")
    assert restore_root_logger.level == logging.DEBUG

    token = trace_id_var.set("feedbeef")
    try:
        logging.getLogger("services.test").info("Evaluated %d items", 3)
    finally:
        trace_id_var.reset(token)

    line = capsys.readouterr().err.strip().splitlines()[-1]
    payload = json.loads(line)
    assert payload["message"] == "Evaluated 3 items"
    assert payload["level"] == "INFO"
    assert payload["logger"] == "services.test"
    assert payload["service"] == "sla-api"
    assert payload["trace_id"] == "feedbeef"
    assert "ts" in payload


def test_setup_logging_text_format(restore_root_logger, capsys):
    setup_logging(service_name="sla-dashboard", json_logs=False)
    assert restore_root_logger.level == logging.INFO

    logging.getLogger("services.test").warning("plain")

    line = capsys.readouterr().err.strip().splitlines()[-1]
    assert "| WARNING  | sla-dashboard | services.test | [-] | plain" in line
