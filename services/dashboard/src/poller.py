"""
Dashboard SLA Poller
=====================
Heartbeat that keeps SLA badges live.

Every refresh interval:
  - Reads the watch list of visible requests
  - Calls SLA API /evaluate/batch (server reads a fresh "now")
  - Keeps the latest result per request id
  - Logs level changes and alerts when a request turns warning/overdue

The poller holds no SLA state of its own beyond the last snapshot; every
tick is a full re-evaluation.
"""
from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

import httpx
from pydantic import ValidationError

from services.shared.config import DashboardPollerConfig
from services.shared.models import SLABatchResult, SLAItem, SLAItemResult, SLALevel
from services.shared.telegram_alerter import SLAAlerter

_LOGGER = logging.getLogger(__name__)


class SLADashboardPoller:
    """Periodically re-evaluates watched requests through the SLA API."""

    def __init__(
        self,
        config: DashboardPollerConfig,
        alerter: SLAAlerter | None = None,
        http: httpx.AsyncClient | None = None,
    ):
        self._config = config
        self._sla_url = config.sla_api_url.rstrip("/")
        self._alerter = alerter
        self._http = http or httpx.AsyncClient(timeout=config.request_timeout)
        self._snapshot: dict[str, SLAItemResult] = {}
        self._last_summary: dict[str, int] = {}

    @property
    def snapshot(self) -> dict[str, SLAItemResult]:
        """Latest result per request id."""
        return dict(self._snapshot)

    @property
    def last_summary(self) -> dict[str, int]:
        return dict(self._last_summary)

    # ---- Helpers ----

    def load_watchlist(self, path: Path | None = None) -> list[SLAItem]:
        """
        Load the requests currently shown on the dashboard.

        The file is a JSON array of objects shaped like SLAItem
        (id, required_by, status, fulfillment_method/pickup_responsibility).
        Invalid entries are skipped with a warning.
        """
        path = path or self._config.watchlist_path
        raw = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(raw, list):
            raise ValueError(f"Watch list must be a JSON array: {path}")

        items = []
        for entry in raw:
            try:
                items.append(SLAItem.model_validate(entry))
            except ValidationError as e:
                _LOGGER.warning("Skipping invalid watch list entry %r: %s", entry, e)
        return items

    async def _api_post(self, url: str, json: dict) -> dict:
        resp = await self._http.post(url, json=json)
        resp.raise_for_status()
        return resp.json()

    # ---- Refresh ----

    async def refresh(self, items: list[SLAItem]) -> SLABatchResult | None:
        """Evaluate `items` once and update the snapshot."""
        if not items:
            self._snapshot = {}
            self._last_summary = {}
            return None

        payload = {"items": [item.model_dump(mode="json") for item in items]}
        data = await self._api_post(f"{self._sla_url}/evaluate/batch", json=payload)
        batch = SLABatchResult.model_validate(data)

        previous = self._snapshot
        self._snapshot = {result.id: result for result in batch.results}
        self._last_summary = batch.summary

        for result in batch.results:
            before = previous.get(result.id)
            if before is None or before.level == result.level:
                continue
            _LOGGER.info(
                "Request %s: %s -> %s (%s)",
                result.id, before.level.value, result.level.value, result.label,
            )
            self._notify(result)

        _LOGGER.info(
            "SLA refresh: %d requests, overdue=%d, warning=%d",
            len(batch.results),
            batch.summary.get(SLALevel.OVERDUE.value, 0),
            batch.summary.get(SLALevel.WARNING.value, 0),
        )
        return batch

    def _notify(self, result: SLAItemResult) -> None:
        if not self._alerter:
            return
        if result.level == SLALevel.OVERDUE:
            self._alerter.alert_overdue(result.id, result.label)
        elif result.level == SLALevel.WARNING:
            self._alerter.alert_warning(result.id, result.label)

    async def tick(self) -> SLABatchResult | None:
        """One heartbeat: reload the watch list and refresh."""
        return await self.refresh(self.load_watchlist())

    async def run_forever(self) -> None:
        """Refresh immediately, then every refresh interval until cancelled."""
        interval = self._config.refresh_interval_seconds
        _LOGGER.info("Starting SLA poller (interval: %.0f seconds)", interval)

        try:
            while True:
                try:
                    await self.tick()
                except httpx.HTTPError as e:
                    _LOGGER.error("Poller: SLA API call failed: %s", e)
                except (OSError, ValueError) as e:
                    _LOGGER.exception("Poller: Refresh failed: %s", e)
                await asyncio.sleep(interval)
        except asyncio.CancelledError:
            _LOGGER.info("Stopping SLA poller...")
            raise

    async def aclose(self) -> None:
        await self._http.aclose()
