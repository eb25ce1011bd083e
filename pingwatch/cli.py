"""pingwatch entrypoint.

Usage:
    python -m pingwatch                      # targets from pingwatch.yaml / defaults
    python -m pingwatch 10.0.0.1 --fallback 1.1.1.1 --interval-ms 500 --mute

Signals:
    SIGTERM / SIGINT → graceful shutdown with a session summary
"""
from __future__ import annotations

import argparse
import asyncio
import dataclasses
import logging
import signal
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Sequence

from .alerts import AlertSender
from .config import ConfigValidationError, MonitorConfig, validate_config
from .console import ConsoleRenderer
from .monitor import FailoverMonitor
from .prober import SystemPingProber
from .status import start_status_server

logger = logging.getLogger("pingwatch.cli")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="pingwatch", description="Failover-aware latency monitor")
    p.add_argument("primary", nargs="?", help="primary target host")
    p.add_argument("--fallback", help="fallback target host")
    p.add_argument("--interval-ms", type=int, help="probe interval and timeout in ms")
    p.add_argument("--critical-ms", type=int, help="latency flagged as critical")
    p.add_argument("--history-size", type=int, help="moving average window size")
    p.add_argument("--payload-bytes", type=int, help="ICMP payload size")
    p.add_argument("--mute", action="store_true", default=None, help="disable the terminal bell")
    p.add_argument("--status-port", type=int, help="serve GET /status on this port")
    p.add_argument("--config", help="YAML config file (default: $PINGWATCH_CONFIG or ./pingwatch.yaml)")
    return p


def apply_overrides(cfg: MonitorConfig, args: argparse.Namespace) -> MonitorConfig:
    overrides = {
        "primary_target": args.primary,
        "fallback_target": args.fallback,
        "interval_ms": args.interval_ms,
        "critical_ms": args.critical_ms,
        "history_size": args.history_size,
        "payload_bytes": args.payload_bytes,
        "mute": args.mute,
        "status_port": args.status_port,
    }
    if args.status_port is not None:
        overrides["status_enabled"] = True
    return dataclasses.replace(cfg, **{k: v for k, v in overrides.items() if v is not None})


def setup_logging(cfg: MonitorConfig) -> None:
    """File log at the configured level; only warnings reach stderr."""
    log_path = Path(cfg.log_path)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger("pingwatch")
    root.setLevel(getattr(logging, cfg.log_level.upper(), logging.INFO))

    fh = TimedRotatingFileHandler(log_path, when="midnight", backupCount=cfg.log_retention_days, utc=True)
    fh.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(logging.WARNING)
    ch.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))

    root.addHandler(fh)
    root.addHandler(ch)


async def run(cfg: MonitorConfig) -> None:
    renderer = ConsoleRenderer(mute=cfg.mute)
    alerts = AlertSender(cfg)
    monitor = FailoverMonitor(cfg, SystemPingProber(), sinks=[renderer, alerts])
    runner = await start_status_server(monitor, cfg) if cfg.status_enabled else None

    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def _shutdown(sig: int) -> None:
        logger.info("Received signal %d, shutting down", sig)
        stop_event.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, _shutdown, sig)

    async def _monitor() -> None:
        await monitor.establish_initial_target()
        await monitor.run()

    monitor_task = asyncio.create_task(_monitor())
    stop_task = asyncio.create_task(stop_event.wait())
    try:
        done, _ = await asyncio.wait({monitor_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
        if monitor_task in done:
            # run() only returns by raising; surface it
            monitor_task.result()
    finally:
        stop_task.cancel()
        monitor_task.cancel()
        await asyncio.gather(monitor_task, return_exceptions=True)
        await monitor.aclose()
        await alerts.aclose()
        if runner is not None:
            await runner.cleanup()
        renderer.summary(monitor.stats.snapshot())


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        cfg = apply_overrides(MonitorConfig.load(args.config), args)
        validate_config(cfg)
    except (ConfigValidationError, FileNotFoundError) as exc:
        print(f"pingwatch: {exc}", file=sys.stderr)
        return 2
    setup_logging(cfg)
    asyncio.run(run(cfg))
    return 0


if __name__ == "__main__":
    sys.exit(main())
