"""pingwatch: Failover Monitor.

Probes the primary target once per interval, fails over to the fallback target
on the first loss, and fails back once a background recovery check confirms the
primary answers again.

Per tick: poll recovery check → (start recovery check) → probe → classify →
update stats → apply transitions → emit events.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Iterable

from .classifier import classify_error
from .config import MonitorConfig
from .models import (
    EventKind, MonitorEvent, MonitorState, ProbeError, ProbeFailure,
    ProbeOutcome, ProbeReply, ProbeSuccess,
)
from .prober import Prober
from .recovery import CheckStatus, RecoveryChecker
from .stats import RollingStats

logger = logging.getLogger("pingwatch.monitor")

EventSink = Callable[[MonitorEvent], Awaitable[None]]

STATS_EVERY = 10
STARTUP_PRIMARY_ATTEMPTS = 3
STARTUP_PRIMARY_DELAY_S = 1.0
STARTUP_FALLBACK_DELAY_S = 2.0


class FailoverMonitor:
    def __init__(
        self,
        cfg: MonitorConfig,
        prober: Prober,
        sinks: Iterable[EventSink] = (),
        checker: RecoveryChecker | None = None,
        state: MonitorState | None = None,
        stats: RollingStats | None = None,
    ) -> None:
        self.cfg = cfg
        self._prober = prober
        self._sinks: list[EventSink] = list(sinks)
        self._checker = checker or RecoveryChecker(
            prober, timeout_ms=cfg.interval_ms, payload_bytes=cfg.payload_bytes,
        )
        self.state = state or MonitorState(cfg.primary_target, cfg.fallback_target)
        self.stats = stats or RollingStats(cfg.history_size)

    def add_sink(self, sink: EventSink) -> None:
        self._sinks.append(sink)

    # --- probing ---

    async def probe(self, target: str) -> ProbeOutcome:
        """Probe ``target`` and classify the result. Never raises for transport errors."""
        try:
            raw = await self._prober.probe(target, self.cfg.interval_ms, self.cfg.payload_bytes)
        except Exception as exc:
            logger.debug("Prober raised for %s: %r", target, exc)
            raw = ProbeError(exception=str(exc) or type(exc).__name__)
        if isinstance(raw, ProbeReply):
            return ProbeSuccess(latency_ms=raw.latency_ms, ttl=raw.ttl)
        return classify_error(raw)

    # --- startup gate ---

    async def establish_initial_target(self) -> bool:
        """Pick the starting target. Returns True when starting on the primary.

        The primary gets a few spaced attempts; if none answer the monitor starts
        on the fallback and waits, without limit, for the fallback to answer once.
        """
        st = self.state
        for attempt in range(1, STARTUP_PRIMARY_ATTEMPTS + 1):
            outcome = await self.probe(st.primary_target)
            if isinstance(outcome, ProbeSuccess):
                st.on_fallback = False
                st.current_target = st.primary_target
                logger.info("Primary %s reachable (%d ms), starting on primary",
                            st.primary_target, outcome.latency_ms)
                return True
            logger.info("Startup probe %d/%d to %s failed: %s", attempt,
                        STARTUP_PRIMARY_ATTEMPTS, st.primary_target, outcome.message)
            if attempt < STARTUP_PRIMARY_ATTEMPTS:
                await asyncio.sleep(STARTUP_PRIMARY_DELAY_S)

        st.on_fallback = True
        st.current_target = st.fallback_target
        logger.warning("Primary %s unreachable at startup, starting on fallback %s",
                       st.primary_target, st.fallback_target)
        while True:
            outcome = await self.probe(st.fallback_target)
            if isinstance(outcome, ProbeSuccess):
                logger.info("Fallback %s reachable (%d ms)", st.fallback_target, outcome.latency_ms)
                return False
            logger.warning("Fallback %s not answering: %s, retrying in %.0fs",
                           st.fallback_target, outcome.message, STARTUP_FALLBACK_DELAY_S)
            await asyncio.sleep(STARTUP_FALLBACK_DELAY_S)

    # --- state machine ---

    async def tick(self) -> list[MonitorEvent]:
        """Run one probe cycle and return its events in emission order."""
        st = self.state
        st.tick += 1
        events: list[MonitorEvent] = []

        if st.on_fallback and st.recovery_check is not None:
            status = self._checker.poll(st.recovery_check)
            if status is not CheckStatus.PENDING:
                st.recovery_check = None
            if status is CheckStatus.UP:
                events.append(self._failback())

        if st.on_fallback and st.recovery_check is None:
            st.recovery_check = self._checker.start(st.primary_target)

        target = st.current_target
        outcome = await self.probe(target)

        if isinstance(outcome, ProbeSuccess):
            events.extend(self._on_success(target, outcome))
        else:
            events.extend(self._on_failure(target, outcome))

        if self.stats.total_probes % STATS_EVERY == 0 and st.consecutive_losses == 0:
            events.append(MonitorEvent(
                kind=EventKind.STATS, tick=st.tick, target=st.current_target,
                stats=self.stats.snapshot(),
            ))
        return events

    def _failback(self) -> MonitorEvent:
        st = self.state
        previous = st.current_target
        st.on_fallback = False
        st.current_target = st.primary_target
        self.stats.clear_window()
        logger.info("Primary %s answering again, failing back from %s", st.primary_target, previous)
        return MonitorEvent(
            kind=EventKind.FAILBACK, tick=st.tick, target=st.primary_target,
            from_target=previous, to_target=st.primary_target,
        )

    def _on_success(self, target: str, outcome: ProbeSuccess) -> list[MonitorEvent]:
        st = self.state
        events: list[MonitorEvent] = []
        if st.quiet_mode:
            logger.info("Connection restored via %s after %d lost probes", target, st.consecutive_losses)
            events.append(MonitorEvent(
                kind=EventKind.RECOVERED, tick=st.tick, target=target,
                consecutive_losses=st.consecutive_losses,
            ))
        st.consecutive_losses = 0
        st.quiet_mode = False
        self.stats.record_success(outcome.latency_ms)
        logger.debug("Reply from %s: %d ms ttl=%d", target, outcome.latency_ms, outcome.ttl)
        events.append(MonitorEvent(
            kind=EventKind.SUCCESS, tick=st.tick, target=target,
            latency_ms=outcome.latency_ms, ttl=outcome.ttl,
            critical=outcome.latency_ms >= self.cfg.critical_ms,
        ))
        return events

    def _on_failure(self, target: str, outcome: ProbeFailure) -> list[MonitorEvent]:
        st = self.state
        events: list[MonitorEvent] = []
        st.consecutive_losses += 1
        self.stats.record_loss()
        logger.debug("No reply from %s: %s (%s)", target, outcome.message, outcome.raw_status)

        if not st.on_fallback:
            st.on_fallback = True
            st.current_target = st.fallback_target
            self.stats.clear_window()
            logger.warning("Lost %s (%s), failing over to %s",
                           target, outcome.message, st.fallback_target)
            events.append(MonitorEvent(
                kind=EventKind.FAILOVER, tick=st.tick, target=st.fallback_target,
                from_target=target, to_target=st.fallback_target,
                failure_kind=outcome.kind, message=outcome.message,
            ))

        if st.consecutive_losses >= self.cfg.quiet_threshold:
            if not st.quiet_mode:
                logger.warning("%d consecutive losses, entering quiet mode", st.consecutive_losses)
            st.quiet_mode = True

        if st.quiet_mode:
            events.append(MonitorEvent(
                kind=EventKind.QUIET_UPDATE, tick=st.tick, target=target,
                consecutive_losses=st.consecutive_losses,
            ))
        else:
            events.append(MonitorEvent(
                kind=EventKind.FAILURE, tick=st.tick, target=target,
                failure_kind=outcome.kind, raw_status=outcome.raw_status,
                message=outcome.message, consecutive_losses=st.consecutive_losses,
            ))
        return events

    # --- main loop ---

    async def emit(self, event: MonitorEvent) -> None:
        for sink in self._sinks:
            try:
                await sink(event)
            except Exception:
                logger.exception("Event sink failed on %s event", event.kind.value)

    async def run(self) -> None:
        """Tick forever at the configured cadence; stops only when cancelled."""
        interval_s = self.cfg.interval_ms / 1000
        logger.info("Monitoring %s (fallback %s) every %d ms",
                    self.state.primary_target, self.state.fallback_target, self.cfg.interval_ms)
        while True:
            started = time.monotonic()
            for event in await self.tick():
                await self.emit(event)
            sleep_s = interval_s - (time.monotonic() - started)
            if sleep_s > 0:
                await asyncio.sleep(sleep_s)

    async def aclose(self) -> None:
        handle = self.state.recovery_check
        if handle is not None:
            self._checker.cancel(handle)
            self.state.recovery_check = None
        await self._prober.close()

    def status_json(self) -> dict[str, Any]:
        st = self.state
        return {
            "phase": st.phase.value,
            "primary_target": st.primary_target,
            "fallback_target": st.fallback_target,
            "current_target": st.current_target,
            "consecutive_losses": st.consecutive_losses,
            "quiet_mode": st.quiet_mode,
            "tick": st.tick,
            "stats": self.stats.snapshot().as_dict(),
        }
