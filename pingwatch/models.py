"""pingwatch: probe, state and event data models."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class FailureKind(str, Enum):
    TIMED_OUT = "TimedOut"
    HOST_UNREACHABLE = "HostUnreachable"
    NETWORK_ERROR = "NetworkError"
    UNKNOWN = "Unknown"


class EventKind(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    QUIET_UPDATE = "quiet-update"
    STATS = "stats"
    FAILOVER = "failover"
    FAILBACK = "failback"
    RECOVERED = "recovered"


class Phase(str, Enum):
    ON_PRIMARY = "on_primary"
    FALLBACK_SEARCHING = "fallback_searching"
    FALLBACK_CHECKING = "fallback_checking"


# ---------------------------------------------------------------------------
# Raw transport results (what a Prober returns)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ProbeReply:
    latency_ms: int
    ttl: int


@dataclass(frozen=True)
class ProbeError:
    status: str | None = None     # named transport status, e.g. "TimedOut"
    exception: str | None = None  # transport exception message, if any


RawProbeResult = ProbeReply | ProbeError


# ---------------------------------------------------------------------------
# Classified outcome (what the monitor decides on)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ProbeSuccess:
    latency_ms: int
    ttl: int


@dataclass(frozen=True)
class ProbeFailure:
    kind: FailureKind
    raw_status: str
    message: str


ProbeOutcome = ProbeSuccess | ProbeFailure


@dataclass(frozen=True)
class StatsSnapshot:
    total: int
    lost: int
    average: float | None  # None while the latency window is empty
    loss_rate_pct: float

    def as_dict(self) -> dict:
        return {
            "total": self.total,
            "lost": self.lost,
            "average_ms": self.average,
            "loss_rate_pct": self.loss_rate_pct,
        }


@dataclass
class RecoveryHandle:
    """One outstanding background probe against the primary target."""
    target: str
    task: asyncio.Task[bool]
    consumed: bool = False
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class MonitorState:
    primary_target: str
    fallback_target: str
    current_target: str = ""
    on_fallback: bool = False
    consecutive_losses: int = 0
    quiet_mode: bool = False
    recovery_check: RecoveryHandle | None = None
    tick: int = 0

    def __post_init__(self) -> None:
        if not self.current_target:
            self.current_target = (
                self.fallback_target if self.on_fallback else self.primary_target
            )

    @property
    def phase(self) -> Phase:
        if not self.on_fallback:
            return Phase.ON_PRIMARY
        if self.recovery_check is None:
            return Phase.FALLBACK_SEARCHING
        return Phase.FALLBACK_CHECKING


@dataclass(frozen=True)
class MonitorEvent:
    kind: EventKind
    tick: int
    target: str
    latency_ms: int | None = None
    ttl: int | None = None
    critical: bool = False
    failure_kind: FailureKind | None = None
    raw_status: str | None = None
    message: str | None = None
    consecutive_losses: int | None = None
    stats: StatsSnapshot | None = None
    from_target: str | None = None
    to_target: str | None = None
    ts: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
