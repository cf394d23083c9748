"""
Telegram Alerter (Shared Utility)
===================================
Send SLA alerts through the TELEGRAM_BOT_TOKEN_REPORTING bot.
Uses stdlib urllib only, no extra dependency.

Features:
- Cooldown per alert_key (per request id) so a request that stays overdue
  is not re-announced on every refresh
- Fire-and-forget in a background thread so the refresh loop never blocks
"""
from __future__ import annotations

import json
import logging
import threading
import time
import urllib.request

_LOGGER = logging.getLogger(__name__)


class SLAAlerter:
    """
    Send SLA alerts to the Telegram reporting bot.

    Usage:
        alerter = SLAAlerter(bot_token="...", chat_ids=[294278923, ...])
        alerter.alert_overdue("SR-0042", "Overdue 1h 5m")
    """

    DEFAULT_COOLDOWN = 30 * 60  # 30 minutes

    TELEGRAM_API = "https://api.telegram.org/bot{token}/sendMessage"

    def __init__(
        self,
        bot_token: str,
        chat_ids: list[int],
        cooldown_seconds: int = DEFAULT_COOLDOWN,
    ) -> None:
        self._token = bot_token
        self._chat_ids = chat_ids
        self._cooldown = cooldown_seconds
        # { alert_key: last_sent_timestamp }
        self._last_sent: dict[str, float] = {}
        self._lock = threading.Lock()

    @property
    def is_ready(self) -> bool:
        return bool(self._token) and bool(self._chat_ids)

    # ------------------------------------------------------------------
    # Public alert methods
    # ------------------------------------------------------------------

    def alert_overdue(self, request_id: str, label: str) -> bool:
        """Request crossed its deadline in working time."""
        msg = (
            "🔴 *[SLA] Request Overdue*\n\n"
            f"Request `{request_id}` has passed its required-by time.\n"
            f"Status: *{label}* (working hours)"
        )
        return self._send_with_cooldown(f"overdue:{request_id}", msg)

    def alert_warning(self, request_id: str, label: str) -> bool:
        """Less than one working day left."""
        msg = (
            "🟡 *[SLA] Deadline Approaching*\n\n"
            f"Request `{request_id}` has *{label}* of working time left."
        )
        return self._send_with_cooldown(f"warning:{request_id}", msg)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _send_with_cooldown(self, alert_key: str, message: str) -> bool:
        """Send only if this alert_key was not sent within the cooldown period."""
        if not self.is_ready:
            return False

        now = time.time()
        with self._lock:
            self._prune_expired(now)
            last = self._last_sent.get(alert_key)
            if last is not None and now - last < self._cooldown:
                remaining = int(self._cooldown - (now - last))
                _LOGGER.debug(
                    "Alert '%s' skipped (cooldown %ds remaining)", alert_key, remaining
                )
                return False
            self._last_sent[alert_key] = now

        threading.Thread(
            target=self._send_to_all,
            args=(message,),
            daemon=True,
            name=f"tg-alert-{alert_key}",
        ).start()
        return True

    def _prune_expired(self, now: float) -> None:
        """Drop alert keys whose cooldown has passed. Caller holds the lock."""
        expired = [key for key, ts in self._last_sent.items() if now - ts >= self._cooldown]
        for key in expired:
            del self._last_sent[key]

    def _send_to_all(self, message: str) -> None:
        for chat_id in self._chat_ids:
            try:
                self._send_single(chat_id, message)
            except Exception as e:
                _LOGGER.warning("Failed to send Telegram alert to %s: %s", chat_id, e)

    def _send_single(self, chat_id: int, message: str) -> None:
        """HTTP POST to the Telegram Bot API."""
        url = self.TELEGRAM_API.format(token=self._token)
        payload = json.dumps({
            "chat_id": chat_id,
            "text": message,
            "parse_mode": "Markdown",
            "disable_web_page_preview": True,
        }).encode("utf-8")

        req = urllib.request.Request(
            url,
            data=payload,
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        with urllib.request.urlopen(req, timeout=10) as resp:
            if resp.status != 200:
                _LOGGER.warning("Telegram API returned status %d", resp.status)
            else:
                _LOGGER.info("Telegram alert sent to chat_id=%s", chat_id)
