"""HTTP status endpoints for a running recorder."""

from __future__ import annotations

import dataclasses
import logging
from typing import Any

from aiohttp import web

from pyrecorder._redact import redact_for_log
from pyrecorder.config import RecorderConfig
from pyrecorder.exceptions import RecorderError, StorageError
from pyrecorder.monitor import StateMonitor
from pyrecorder.recorder import Recorder
from pyrecorder.storage.base import SnapshotStorage

_logger = logging.getLogger(__name__)

SERVER_NAME = "pyrecorder"

CONFIG_KEY = web.AppKey("config", RecorderConfig)
MONITOR_KEY = web.AppKey("monitor", StateMonitor)
RECORDER_KEY = web.AppKey("recorder", Recorder)
STORAGE_KEY = web.AppKey("storage", SnapshotStorage)


async def _index(request: web.Request) -> web.StreamResponse:
    raise web.HTTPSeeOther("/statusz")


async def _statusz(request: web.Request) -> web.Response:
    monitor = request.app[MONITOR_KEY]
    recorder = request.app[RECORDER_KEY]
    vehicles: list[dict[str, Any]] = []
    for vin, status in sorted(monitor.statuses.items()):
        session = recorder.session_for(vin)
        vehicles.append(
            {
                "vin": vin,
                "display_name": status.display_name,
                "state": status.state,
                "recording": session is not None,
                "session_state": session.state.value if session is not None else None,
                "idle_samples_remaining": session.idle_samples_remaining if session is not None else None,
            }
        )
    return web.json_response(
        {
            "server": SERVER_NAME,
            "polls": monitor.poll_count,
            "recording": recorder.active_vins,
            "vehicles": vehicles,
        }
    )


async def _latest(request: web.Request) -> web.Response:
    storage = request.app[STORAGE_KEY]
    try:
        snapshot = await storage.query_latest()
    except StorageError as exc:
        _logger.error("Cannot serve latest snapshot: %s", exc)
        return web.Response(status=500, text=str(exc))
    return web.json_response(snapshot.model_dump(mode="json"))


async def _config(request: web.Request) -> web.Response:
    config = request.app[CONFIG_KEY]
    return web.json_response(redact_for_log(dataclasses.asdict(config)))


def build_status_app(
    config: RecorderConfig,
    monitor: StateMonitor,
    recorder: Recorder,
    storage: SnapshotStorage,
) -> web.Application:
    app = web.Application()
    app[CONFIG_KEY] = config
    app[MONITOR_KEY] = monitor
    app[RECORDER_KEY] = recorder
    app[STORAGE_KEY] = storage
    app.router.add_get("/", _index)
    app.router.add_get("/statusz", _statusz)
    app.router.add_get("/latest", _latest)
    app.router.add_get("/config", _config)
    return app


async def start_status_server(app: web.Application, port: int, host: str = "0.0.0.0") -> web.AppRunner:
    """Serve *app* in the background; call ``runner.cleanup()`` to stop.

    Raises
    ------
    RecorderError
        If the port cannot be bound.
    """
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    try:
        await site.start()
    except OSError as exc:
        await runner.cleanup()
        raise RecorderError(f"Cannot start status server on {host}:{port}: {exc}") from exc
    _logger.info("Starting status server at %s:%d", host, port)
    return runner
