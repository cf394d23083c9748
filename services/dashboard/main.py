"""
Dashboard SLA Poller — Entry Point
====================================
Re-evaluates the watched requests through the SLA API on a fixed cadence.

Usage:
    python services/dashboard/main.py
"""
from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from services.dashboard.src.poller import SLADashboardPoller
from services.shared.config import DashboardPollerConfig, setup_logging
from services.shared.telegram_alerter import SLAAlerter

_LOGGER = logging.getLogger(__name__)


def build_poller(config: DashboardPollerConfig) -> SLADashboardPoller:
    alerter = SLAAlerter(
        bot_token=config.telegram_reporting_bot_token,
        chat_ids=config.alert_chat_ids,
        cooldown_seconds=config.alert_cooldown_seconds,
    )
    if not alerter.is_ready:
        _LOGGER.warning("TELEGRAM_BOT_TOKEN_REPORTING / ADMIN_USER_IDS not set, SLA alerts disabled")
        alerter = None
    return SLADashboardPoller(config, alerter=alerter)


async def main_async(config: DashboardPollerConfig) -> None:
    poller = build_poller(config)
    try:
        await poller.run_forever()
    finally:
        await poller.aclose()


def main() -> None:
    config = DashboardPollerConfig.from_env()
    setup_logging(config.debug, "sla-dashboard", json_logs=config.log_format == "json")

    errors = config.validate()
    if errors:
        _LOGGER.error("Configuration errors: %s", errors)
        sys.exit(1)

    _LOGGER.info("SLA API: %s, watch list: %s", config.sla_api_url, config.watchlist_path)

    try:
        asyncio.run(main_async(config))
    except KeyboardInterrupt:
        _LOGGER.info("Shutting down...")


if __name__ == "__main__":
    main()
