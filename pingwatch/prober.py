"""ICMP probing through the system ``ping`` binary (no root required)."""
from __future__ import annotations

import asyncio
import logging
import math
import re
import sys
from contextlib import suppress
from typing import Protocol

from .models import ProbeError, ProbeReply, RawProbeResult

logger = logging.getLogger("pingwatch.prober")

_TIME_RE = re.compile(r"time[=<]\s*([\d.]+)\s*ms", re.IGNORECASE)
_TTL_RE = re.compile(r"ttl=(\d+)", re.IGNORECASE)

# First match wins, so more specific phrases come first.
OUTPUT_STATUS_PATTERNS: list[tuple[str, str]] = [
    ("destination host unreachable", "DestinationHostUnreachable"),
    ("destination net unreachable", "DestinationNetworkUnreachable"),
    ("destination protocol unreachable", "DestinationProtocolUnreachable"),
    ("destination port unreachable", "DestinationPortUnreachable"),
    ("prohibited", "DestinationProhibited"),
    ("packet filtered", "DestinationProhibited"),
    ("time to live exceeded", "TtlExpired"),
    ("ttl expired", "TtlExpired"),
    ("name or service not known", "BadDestination"),
    ("temporary failure in name resolution", "BadDestination"),
    ("unknown host", "BadDestination"),
    ("cannot resolve", "BadDestination"),
    ("message too long", "PacketTooBig"),
    ("no buffer space available", "NoResources"),
    ("network is unreachable", "DestinationNetworkUnreachable"),
    ("request timed out", "TimedOut"),
]


class Prober(Protocol):
    async def probe(self, target: str, timeout_ms: int, payload_bytes: int) -> RawProbeResult:
        ...

    async def close(self) -> None:
        ...


def status_from_output(output: str) -> str | None:
    lowered = output.lower()
    for needle, status in OUTPUT_STATUS_PATTERNS:
        if needle in lowered:
            return status
    return None


def parse_reply(output: str) -> ProbeReply | None:
    """Return latency/TTL from a successful ping transcript, or None."""
    t = _TIME_RE.search(output)
    ttl = _TTL_RE.search(output)
    if not t:
        return None
    return ProbeReply(latency_ms=int(round(float(t.group(1)))), ttl=int(ttl.group(1)) if ttl else 0)


def build_command(target: str, timeout_ms: int, payload_bytes: int) -> list[str]:
    wait_s = max(1, math.ceil(timeout_ms / 1000))
    if sys.platform == "darwin":
        # BSD ping takes -W in milliseconds
        return ["ping", "-c", "1", "-W", str(timeout_ms), "-s", str(payload_bytes), target]
    return ["ping", "-n", "-c", "1", "-W", str(wait_s), "-s", str(payload_bytes), target]


class SystemPingProber:
    """Single-echo prober bounded by ``timeout_ms`` of wall-clock time."""

    def __init__(self) -> None:
        self._procs: set[asyncio.subprocess.Process] = set()

    async def probe(self, target: str, timeout_ms: int, payload_bytes: int) -> RawProbeResult:
        cmd = build_command(target, timeout_ms, payload_bytes)
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as exc:
            logger.error("Cannot spawn ping: %s", exc)
            return ProbeError(exception=str(exc))

        self._procs.add(proc)
        try:
            stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=timeout_ms / 1000)
        except asyncio.TimeoutError:
            await self._kill(proc)
            return ProbeError(status="TimedOut")
        except asyncio.CancelledError:
            await asyncio.shield(self._kill(proc))
            raise
        finally:
            self._procs.discard(proc)

        output = stdout.decode(errors="replace")
        if proc.returncode == 0:
            reply = parse_reply(output)
            if reply is not None:
                return reply
        status = status_from_output(output)
        if status is not None:
            return ProbeError(status=status)
        if proc.returncode == 1:
            # iputils: no reply received within the deadline
            return ProbeError(status="TimedOut")
        logger.debug("Unparsed ping output (rc=%s): %s", proc.returncode, output.strip())
        return ProbeError(exception=output.strip() or f"ping exited with {proc.returncode}")

    @staticmethod
    async def _kill(proc: asyncio.subprocess.Process) -> None:
        with suppress(ProcessLookupError):
            proc.kill()
        await proc.wait()

    async def close(self) -> None:
        for proc in list(self._procs):
            await self._kill(proc)
        self._procs.clear()
