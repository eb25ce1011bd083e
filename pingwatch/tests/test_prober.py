"""Tests for the system ping prober, subprocess is mocked."""
from __future__ import annotations

import asyncio
import sys
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from pingwatch.models import ProbeError, ProbeReply
from pingwatch.prober import SystemPingProber, build_command, parse_reply, status_from_output

LINUX_OK = (
    b"PING 8.8.8.8 (8.8.8.8) 32(60) bytes of data.\n"
    b"40 bytes from 8.8.8.8: icmp_seq=1 ttl=117 time=12.6 ms\n\n"
    b"--- 8.8.8.8 ping statistics ---\n"
    b"1 packets transmitted, 1 received, 0% packet loss, time 0ms\n"
)
LINUX_UNREACHABLE = (
    b"PING 10.0.0.99 (10.0.0.99) 32(60) bytes of data.\n"
    b"From 10.0.0.5 icmp_seq=1 Destination Host Unreachable\n"
)
LINUX_SILENT = (
    b"PING 10.0.0.99 (10.0.0.99) 32(60) bytes of data.\n\n"
    b"--- 10.0.0.99 ping statistics ---\n"
    b"1 packets transmitted, 0 received, 100% packet loss, time 0ms\n"
)


def _proc(stdout: bytes, returncode: int) -> MagicMock:
    proc = MagicMock()
    proc.communicate = AsyncMock(return_value=(stdout, None))
    proc.returncode = returncode
    proc.wait = AsyncMock(return_value=returncode)
    return proc


def test_parse_reply():
    assert parse_reply(LINUX_OK.decode()) == ProbeReply(latency_ms=13, ttl=117)
    assert parse_reply(LINUX_SILENT.decode()) is None


@pytest.mark.parametrize("output,status", [
    ("From 10.0.0.5 icmp_seq=1 Destination Host Unreachable", "DestinationHostUnreachable"),
    ("From 10.0.0.5 icmp_seq=1 Destination Net Unreachable", "DestinationNetworkUnreachable"),
    ("From 10.0.0.5 icmp_seq=1 Time to live exceeded", "TtlExpired"),
    ("ping: nosuch.invalid: Name or service not known", "BadDestination"),
    ("ping: local error: message too long, mtu=1500", "PacketTooBig"),
    ("From 10.0.0.5 icmp_seq=1 Packet filtered", "DestinationProhibited"),
    ("1 packets transmitted, 0 received", None),
])
def test_status_from_output(output, status):
    assert status_from_output(output) == status


def test_build_command_linux():
    with patch.object(sys, "platform", "linux"):
        cmd = build_command("8.8.8.8", 1500, 32)
    assert cmd == ["ping", "-n", "-c", "1", "-W", "2", "-s", "32", "8.8.8.8"]


@pytest.mark.asyncio
async def test_probe_success():
    with patch("asyncio.create_subprocess_exec", new=AsyncMock(return_value=_proc(LINUX_OK, 0))):
        result = await SystemPingProber().probe("8.8.8.8", 1000, 32)
    assert result == ProbeReply(latency_ms=13, ttl=117)


@pytest.mark.asyncio
async def test_probe_unreachable():
    with patch("asyncio.create_subprocess_exec", new=AsyncMock(return_value=_proc(LINUX_UNREACHABLE, 1))):
        result = await SystemPingProber().probe("10.0.0.99", 1000, 32)
    assert result == ProbeError(status="DestinationHostUnreachable")


@pytest.mark.asyncio
async def test_probe_no_reply_is_timeout():
    with patch("asyncio.create_subprocess_exec", new=AsyncMock(return_value=_proc(LINUX_SILENT, 1))):
        result = await SystemPingProber().probe("10.0.0.99", 1000, 32)
    assert result == ProbeError(status="TimedOut")


@pytest.mark.asyncio
async def test_probe_bounded_by_timeout():
    proc = _proc(b"", 0)

    async def hang():
        await asyncio.sleep(5)
        return b"", None

    proc.communicate = hang
    with patch("asyncio.create_subprocess_exec", new=AsyncMock(return_value=proc)):
        result = await SystemPingProber().probe("10.0.0.99", 20, 32)
    assert result == ProbeError(status="TimedOut")
    proc.kill.assert_called_once()


@pytest.mark.asyncio
async def test_spawn_failure_is_exception_result():
    with patch("asyncio.create_subprocess_exec", new=AsyncMock(side_effect=FileNotFoundError("ping"))):
        result = await SystemPingProber().probe("8.8.8.8", 1000, 32)
    assert isinstance(result, ProbeError)
    assert result.status is None
    assert "ping" in result.exception


@pytest.mark.asyncio
async def test_unparsed_error_output():
    with patch("asyncio.create_subprocess_exec", new=AsyncMock(return_value=_proc(b"ping: weird failure\n", 2))):
        result = await SystemPingProber().probe("8.8.8.8", 1000, 32)
    assert result == ProbeError(exception="ping: weird failure")


@pytest.mark.asyncio
async def test_cancelled_probe_kills_child():
    proc = _proc(b"", 0)
    started = asyncio.Event()

    async def hang():
        started.set()
        await asyncio.sleep(30)

    proc.communicate = hang
    prober = SystemPingProber()
    with patch("asyncio.create_subprocess_exec", new=AsyncMock(return_value=proc)):
        task = asyncio.create_task(prober.probe("10.0.0.99", 5000, 32))
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
    proc.kill.assert_called_once()
    proc.wait.assert_awaited()
    assert not prober._procs
