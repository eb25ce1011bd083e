"""Optional HTTP status endpoint."""
from __future__ import annotations

import logging

from aiohttp import web

from .config import MonitorConfig
from .monitor import FailoverMonitor

logger = logging.getLogger("pingwatch.status")


async def handle_status(request: web.Request) -> web.Response:
    monitor: FailoverMonitor = request.app["monitor"]
    return web.json_response(monitor.status_json())


def create_app(monitor: FailoverMonitor) -> web.Application:
    app = web.Application()
    app["monitor"] = monitor
    app.router.add_get("/status", handle_status)
    return app


async def start_status_server(monitor: FailoverMonitor, cfg: MonitorConfig) -> web.AppRunner:
    runner = web.AppRunner(create_app(monitor))
    await runner.setup()
    site = web.TCPSite(runner, cfg.status_host, cfg.status_port)
    await site.start()
    logger.info("Status endpoint listening on %s:%d", cfg.status_host, cfg.status_port)
    return runner
