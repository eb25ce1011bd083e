"""Webhook alerts for target switches and restored connectivity."""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

import aiohttp

from .config import MonitorConfig
from .models import EventKind, MonitorEvent

logger = logging.getLogger("pingwatch.alerts")

ALERT_KINDS = {
    EventKind.FAILOVER: "critical",
    EventKind.FAILBACK: "info",
    EventKind.RECOVERED: "info",
}


class AlertSender:
    def __init__(self, cfg: MonitorConfig) -> None:
        self._cfg = cfg
        self._last_alert: dict[EventKind, float] = {}
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def enabled(self) -> bool:
        return bool(self._cfg.webhook_url)

    def _in_cooldown(self, kind: EventKind) -> bool:
        now = time.time()
        if now - self._last_alert.get(kind, 0.0) < self._cfg.alert_cooldown_s:
            return True
        self._last_alert[kind] = now
        return False

    def build_payload(self, event: MonitorEvent) -> dict[str, Any]:
        if event.kind is EventKind.RECOVERED:
            message = f"Connectivity restored via {event.target}"
        else:
            message = f"Switched from {event.from_target} to {event.to_target}"
        return {
            "level": ALERT_KINDS[event.kind],
            "event": event.kind.value,
            "message": message,
            "metadata": {
                "target": event.target,
                "tick": event.tick,
                "reason": event.message,
                "ts": event.ts,
            },
        }

    async def __call__(self, event: MonitorEvent) -> None:
        """Queue the POST on its own task so a slow webhook never holds up probing."""
        if not self.enabled or event.kind not in ALERT_KINDS:
            return
        if self._in_cooldown(event.kind):
            logger.debug("Alert for %s suppressed by cooldown", event.kind.value)
            return
        task = asyncio.create_task(self._post(self.build_payload(event)))
        self._tasks.add(task)
        task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.debug("Alert POST cancelled")
        elif task.exception() is not None:
            logger.warning("Alert task failed: %s", task.exception())

    async def _post(self, payload: dict[str, Any]) -> None:
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self._cfg.webhook_url,
                    json=payload,
                    timeout=aiohttp.ClientTimeout(total=10),
                ) as resp:
                    if resp.status >= 400:
                        logger.warning("Alert POST returned HTTP %d", resp.status)
        except Exception as exc:
            logger.warning("Alert POST failed: %s", exc)

    async def drain(self) -> None:
        """Wait for alerts already queued."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def aclose(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        await self.drain()
