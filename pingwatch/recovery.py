"""Background primary-health check used while running on the fallback target.

The check runs as its own asyncio task and is polled once per tick; the
monitor never awaits it, so a slow primary cannot stall the cadence.
"""
from __future__ import annotations

import asyncio
import enum
import logging

from .models import ProbeReply, RecoveryHandle
from .prober import Prober

logger = logging.getLogger("pingwatch.recovery")

RECOVERY_PROBE_COUNT = 1
RECOVERY_TIMEOUT_MS = 1000


class CheckStatus(enum.Enum):
    PENDING = "pending"
    UP = "up"
    DOWN = "down"


class RecoveryHandleError(RuntimeError):
    """Raised when a handle is polled again after reporting its result."""


class RecoveryChecker:
    def __init__(
        self,
        prober: Prober,
        count: int = RECOVERY_PROBE_COUNT,
        timeout_ms: int = RECOVERY_TIMEOUT_MS,
        payload_bytes: int = 32,
    ) -> None:
        self._prober = prober
        self._count = max(1, count)
        self._timeout_ms = timeout_ms
        self._payload_bytes = payload_bytes

    async def _check(self, target: str) -> bool:
        for _ in range(self._count):
            result = await self._prober.probe(target, self._timeout_ms, self._payload_bytes)
            if isinstance(result, ProbeReply):
                return True
        return False

    def start(self, target: str) -> RecoveryHandle:
        """Launch the check and return immediately. Needs a running loop."""
        task = asyncio.get_running_loop().create_task(self._check(target))
        logger.debug("Recovery check started against %s", target)
        return RecoveryHandle(target=target, task=task)

    def poll(self, handle: RecoveryHandle) -> CheckStatus:
        if handle.consumed:
            raise RecoveryHandleError(f"recovery check for {handle.target} was already consumed")
        if not handle.task.done():
            return CheckStatus.PENDING
        handle.consumed = True
        if handle.task.cancelled():
            logger.warning("Recovery check against %s was cancelled", handle.target)
            return CheckStatus.DOWN
        exc = handle.task.exception()
        if exc is not None:
            logger.warning("Recovery check against %s failed: %s", handle.target, exc)
            return CheckStatus.DOWN
        up = handle.task.result()
        logger.debug("Recovery check against %s: %s", handle.target, "up" if up else "down")
        return CheckStatus.UP if up else CheckStatus.DOWN

    def cancel(self, handle: RecoveryHandle) -> None:
        """Cancel without waiting; used on shutdown."""
        if not handle.task.done():
            handle.task.cancel()
        handle.consumed = True
