"""
Service-Specific Configuration
================================
Each service only loads the config it needs.
"""
from __future__ import annotations

import logging
import os
from contextvars import ContextVar
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv
from pythonjsonlogger.json import JsonFormatter

_LOGGER = logging.getLogger(__name__)

# ============ Trace ID Context ============

trace_id_var: ContextVar[str] = ContextVar("trace_id", default="")


class _TraceIdFilter(logging.Filter):
    """Injects current trace_id from ContextVar into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.trace_id = trace_id_var.get() or "-"
        return True


def _load_env():
    """Load .env files with priority: .env.local > .env"""
    base_path = Path(__file__).parent.parent.parent  # repository root
    env_local = base_path / ".env.local"
    env_default = base_path / ".env"

    if env_local.exists():
        load_dotenv(env_local, override=True)
    elif env_default.exists():
        load_dotenv(env_default)


# Load env on import
_load_env()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


def _env_int_list(name: str) -> list[int]:
    raw = os.getenv(name, "")
    if not raw:
        return []
    try:
        return [int(x.strip()) for x in raw.split(",") if x.strip()]
    except ValueError:
        _LOGGER.warning("Invalid id list in %s: %s", name, raw)
        return []


@dataclass
class SLAServiceConfig:
    """Config for the SLA evaluation API."""
    # Working calendar (defaults: IST, 10:00-19:00, Sunday off)
    timezone_offset_minutes: int = 330
    work_start_hour: int = 10
    work_end_hour: int = 19
    non_working_weekday: int = 0  # 0 = Sunday

    # Level thresholds, in working hours
    warning_hours: float = 9.0
    approaching_hours: float = 18.0

    # Batch endpoint
    max_batch_size: int = 500

    # Service
    host: str = "0.0.0.0"
    port: int = 8003
    debug: bool = False
    log_format: str = "json"

    @classmethod
    def from_env(cls) -> SLAServiceConfig:
        _load_env()
        return cls(
            timezone_offset_minutes=int(os.getenv("SLA_TIMEZONE_OFFSET_MINUTES", "330")),
            work_start_hour=int(os.getenv("SLA_WORK_START_HOUR", "10")),
            work_end_hour=int(os.getenv("SLA_WORK_END_HOUR", "19")),
            non_working_weekday=int(os.getenv("SLA_NON_WORKING_WEEKDAY", "0")),
            warning_hours=float(os.getenv("SLA_WARNING_HOURS", "9")),
            approaching_hours=float(os.getenv("SLA_APPROACHING_HOURS", "18")),
            max_batch_size=int(os.getenv("SLA_MAX_BATCH_SIZE", "500")),
            host=os.getenv("SERVICE_HOST", "0.0.0.0"),
            port=int(os.getenv("SERVICE_PORT", "8003")),
            debug=_env_bool("DEBUG"),
            log_format=os.getenv("LOG_FORMAT", "json").lower(),
        )

    def validate(self) -> list[str]:
        """
        Validate configuration and return list of errors.

        Returns:
            List of error messages (empty if valid)
        """
        errors = []

        if not 0 <= self.work_start_hour < 24:
            errors.append(f"SLA_WORK_START_HOUR out of range: {self.work_start_hour}")
        if not 0 < self.work_end_hour <= 24:
            errors.append(f"SLA_WORK_END_HOUR out of range: {self.work_end_hour}")
        if self.work_end_hour <= self.work_start_hour:
            errors.append("SLA_WORK_END_HOUR must be greater than SLA_WORK_START_HOUR")
        if not 0 <= self.non_working_weekday <= 6:
            errors.append(f"SLA_NON_WORKING_WEEKDAY must be 0-6 (0 = Sunday): {self.non_working_weekday}")
        if not -14 * 60 <= self.timezone_offset_minutes <= 14 * 60:
            errors.append(f"SLA_TIMEZONE_OFFSET_MINUTES out of range: {self.timezone_offset_minutes}")
        if self.warning_hours < 0 or self.approaching_hours < self.warning_hours:
            errors.append("SLA_APPROACHING_HOURS must be >= SLA_WARNING_HOURS >= 0")
        if self.max_batch_size < 1:
            errors.append("SLA_MAX_BATCH_SIZE must be positive")

        return errors


@dataclass
class DashboardPollerConfig:
    """Config for the dashboard SLA poller."""
    # SLA API (internal Docker network)
    sla_api_url: str = "http://sla-api:8003"
    refresh_interval_seconds: float = 60.0
    watchlist_path: Path = field(default_factory=lambda: Path("watchlist.json"))
    request_timeout: float = 10.0

    # Overdue alerts via reporting bot
    telegram_reporting_bot_token: str = ""
    alert_chat_ids: list[int] = field(default_factory=list)
    alert_cooldown_seconds: int = 30 * 60

    # General
    debug: bool = False
    log_format: str = "json"

    @classmethod
    def from_env(cls) -> DashboardPollerConfig:
        _load_env()
        return cls(
            sla_api_url=os.getenv("SLA_API_URL", "http://sla-api:8003"),
            refresh_interval_seconds=float(os.getenv("SLA_REFRESH_INTERVAL_SECONDS", "60")),
            watchlist_path=Path(os.getenv("SLA_WATCHLIST_PATH", "watchlist.json")),
            request_timeout=float(os.getenv("SLA_API_TIMEOUT", "10.0")),
            telegram_reporting_bot_token=os.getenv("TELEGRAM_BOT_TOKEN_REPORTING", ""),
            alert_chat_ids=_env_int_list("ADMIN_USER_IDS"),
            alert_cooldown_seconds=int(os.getenv("SLA_ALERT_COOLDOWN_SECONDS", str(30 * 60))),
            debug=_env_bool("DEBUG"),
            log_format=os.getenv("LOG_FORMAT", "json").lower(),
        )

    def validate(self) -> list[str]:
        errors = []
        if not self.sla_api_url:
            errors.append("SLA_API_URL is required")
        if self.refresh_interval_seconds <= 0:
            errors.append("SLA_REFRESH_INTERVAL_SECONDS must be positive")
        return errors


def setup_logging(debug: bool = False, service_name: str = "service", json_logs: bool = True) -> None:
    """Setup structured logging for a service.

    JSON lines (python-json-logger) carry the fields:
      ts, level, logger, service, trace_id, message
    With json_logs=False a pipe-separated text format is used instead.
    """
    level = logging.DEBUG if debug else logging.INFO
    handler = logging.StreamHandler()
    handler.addFilter(_TraceIdFilter())

    if json_logs:
        handler.setFormatter(
            JsonFormatter(
                "%(asctime)s %(levelname)s %(name)s %(trace_id)s %(message)s",
                rename_fields={"asctime": "ts", "levelname": "level", "name": "logger"},
                static_fields={"service": service_name},
            )
        )
    else:
        handler.setFormatter(
            logging.Formatter(
                f"%(asctime)s | %(levelname)-8s | {service_name} | %(name)s | [%(trace_id)s] | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    for lib in ("httpx", "httpcore", "uvicorn.access"):
        logging.getLogger(lib).setLevel(logging.WARNING)
