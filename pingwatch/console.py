"""Live console rendering of monitor events."""
from __future__ import annotations

from datetime import datetime

from rich.console import Console

from .models import EventKind, MonitorEvent, StatsSnapshot

COLOR_SUCCESS = "green"
COLOR_CRITICAL = "yellow"
COLOR_ERROR = "red"
COLOR_INFO = "cyan"
COLOR_SWITCH = "magenta"


def format_average(stats: StatsSnapshot) -> str:
    return "N/A" if stats.average is None else f"{stats.average:.2f} ms"


class ConsoleRenderer:
    """Event sink that writes one line per event.

    Quiet-mode updates rewrite a single line in place; the next event of any
    other kind starts on a fresh line.
    """

    def __init__(self, console: Console | None = None, mute: bool = False) -> None:
        self.console = console or Console(highlight=False)
        self.mute = mute
        self._inline = False

    def _stamp(self) -> str:
        return datetime.now().strftime("%H:%M:%S")

    def _line(self, text: str, style: str) -> None:
        if self._inline:
            self.console.print()
            self._inline = False
        self.console.print(f"[{style}]{self._stamp()} {text}[/{style}]")

    def _beep(self) -> None:
        if not self.mute:
            self.console.bell()

    async def __call__(self, event: MonitorEvent) -> None:
        kind = event.kind
        if kind is EventKind.SUCCESS:
            style = COLOR_CRITICAL if event.critical else COLOR_SUCCESS
            self._line(f"Reply from {event.target}: time={event.latency_ms}ms TTL={event.ttl}", style)
        elif kind is EventKind.FAILURE:
            self._line(f"{event.target}: {event.message} (loss #{event.consecutive_losses})", COLOR_ERROR)
            self._beep()
        elif kind is EventKind.QUIET_UPDATE:
            self.console.print(
                f"[{COLOR_ERROR}]{self._stamp()} {event.target}: "
                f"{event.consecutive_losses} consecutive probes lost[/{COLOR_ERROR}]",
                end="\r",
            )
            self._inline = True
        elif kind is EventKind.STATS:
            s = event.stats
            self._line(
                f"-- {s.total} sent, {s.lost} lost ({s.loss_rate_pct:.2f}% loss), "
                f"avg {format_average(s)} --",
                COLOR_INFO,
            )
        elif kind is EventKind.FAILOVER:
            self._line(f">> {event.from_target} lost ({event.message}), switching to {event.to_target}",
                       f"bold {COLOR_SWITCH}")
            self._beep()
        elif kind is EventKind.FAILBACK:
            self._line(f"<< {event.to_target} is back, switching from {event.from_target}",
                       f"bold {COLOR_SWITCH}")
        elif kind is EventKind.RECOVERED:
            self._line(f"Connection restored via {event.target}", f"bold {COLOR_SUCCESS}")

    def summary(self, stats: StatsSnapshot) -> None:
        self._line(
            f"Session: {stats.total} sent, {stats.lost} lost "
            f"({stats.loss_rate_pct:.2f}% loss), avg {format_average(stats)}",
            COLOR_INFO,
        )
