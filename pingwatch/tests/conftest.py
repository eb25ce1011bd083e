"""Shared fixtures, scripted prober and recovery checker, no real network."""
from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

import pytest

from pingwatch.config import MonitorConfig
from pingwatch.models import ProbeError, ProbeReply, RecoveryHandle
from pingwatch.monitor import FailoverMonitor
from pingwatch.recovery import CheckStatus

PRIMARY = "10.0.0.1"
FALLBACK = "1.1.1.1"

OK = ProbeReply(latency_ms=20, ttl=57)
LOST = ProbeError(status="TimedOut")


class ScriptedProber:
    """Returns queued results per target, then ``default`` once a queue runs dry."""

    def __init__(self, script: dict[str, list[Any]] | None = None, default: Any = OK) -> None:
        self.script = {k: list(v) for k, v in (script or {}).items()}
        self.default = default
        self.calls: list[str] = []
        self.closed = False

    async def probe(self, target: str, timeout_ms: int, payload_bytes: int):
        self.calls.append(target)
        queue = self.script.get(target)
        result = queue.pop(0) if queue else self.default
        if isinstance(result, BaseException):
            raise result
        return result

    async def close(self) -> None:
        self.closed = True


class FakeChecker:
    """Recovery checker whose poll results are scripted by the test."""

    def __init__(self, results: list[CheckStatus] | None = None) -> None:
        self.results = list(results or [])
        self.started: list[RecoveryHandle] = []
        self.cancelled: list[RecoveryHandle] = []

    def start(self, target: str) -> RecoveryHandle:
        handle = RecoveryHandle(target=target, task=MagicMock())
        self.started.append(handle)
        return handle

    def poll(self, handle: RecoveryHandle) -> CheckStatus:
        return self.results.pop(0) if self.results else CheckStatus.PENDING

    def cancel(self, handle: RecoveryHandle) -> None:
        self.cancelled.append(handle)


@pytest.fixture
def cfg() -> MonitorConfig:
    return MonitorConfig(
        primary_target=PRIMARY,
        fallback_target=FALLBACK,
        interval_ms=1000,
        critical_ms=100,
        history_size=5,
        quiet_threshold=10,
    )


@pytest.fixture
def make_monitor(cfg):
    def _make(script=None, default=OK, checks=None, **kwargs):
        prober = ScriptedProber(script, default)
        checker = FakeChecker(checks)
        monitor = FailoverMonitor(cfg, prober, checker=checker, **kwargs)
        return monitor, prober, checker
    return _make
