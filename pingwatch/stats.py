"""Rolling latency window and lifetime loss counters."""
from __future__ import annotations

from collections import deque

from .models import StatsSnapshot


class RollingStats:
    """Moving average over the last ``history_size`` successful probes.

    ``total_probes`` and ``lost_probes`` cover the whole session and are never
    reset; only the latency window is cleared when the monitored target
    changes.
    """

    def __init__(self, history_size: int) -> None:
        if history_size <= 0:
            raise ValueError("history_size must be positive")
        self.history_size = history_size
        self._window: deque[int] = deque()
        self._running_sum = 0
        self.total_probes = 0
        self.lost_probes = 0

    @property
    def window(self) -> list[int]:
        return list(self._window)

    @property
    def running_sum(self) -> int:
        return self._running_sum

    def record_success(self, latency_ms: int) -> None:
        self._window.append(latency_ms)
        self._running_sum += latency_ms
        self.total_probes += 1
        while len(self._window) > self.history_size:
            self._running_sum -= self._window.popleft()

    def record_loss(self) -> None:
        self.total_probes += 1
        self.lost_probes += 1

    def clear_window(self) -> None:
        self._window.clear()
        self._running_sum = 0

    def snapshot(self) -> StatsSnapshot:
        average = round(self._running_sum / len(self._window), 2) if self._window else None
        loss = round(100 * self.lost_probes / self.total_probes, 2) if self.total_probes else 0.0
        return StatsSnapshot(
            total=self.total_probes,
            lost=self.lost_probes,
            average=average,
            loss_rate_pct=loss,
        )
