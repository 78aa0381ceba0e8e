"""Command line entry point.

Usage
-----
::

    pyrecorder --config ~/.recorder_conf.json run
    pyrecorder track --vin 5YJ3E1EA7KF000001
    pyrecorder latest

Configuration is read from the JSON file given by ``--config``
(default ``~/.recorder_conf.json``) when it exists, otherwise from
``RECORDER_*`` environment variables.
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import dataclasses
import json
import logging
import signal
import sys
from collections.abc import Sequence
from pathlib import Path

from pyrecorder._constants import DEFAULT_CONFIG_PATH
from pyrecorder._redact import redact_for_log
from pyrecorder.client import VehicleApiClient
from pyrecorder.config import RecorderConfig
from pyrecorder.exceptions import RecorderConfigError, RecorderError
from pyrecorder.fetcher import ResilientFetcher
from pyrecorder.listeners import (
    FirstNotificationGreeter,
    IgnoreFirstInvocation,
    InvocationCounter,
    ListenerChain,
    ListenerDecorator,
    LogAndNotifyHandler,
    RecordingTrigger,
    VehicleFilter,
)
from pyrecorder.monitor import StateMonitor
from pyrecorder.notify import LoggingNotifier, Notifier, PushoverNotifier
from pyrecorder.recorder import Recorder
from pyrecorder.status import build_status_app, start_status_server
from pyrecorder.storage import open_storage
from pyrecorder.tracker import SnapshotTracker

_logger = logging.getLogger(__name__)


def _load_config(path: str | None) -> RecorderConfig:
    if path is not None or Path(DEFAULT_CONFIG_PATH).expanduser().exists():
        return RecorderConfig.from_file(path)
    return RecorderConfig.from_env()


def _build_notifier(config: RecorderConfig) -> Notifier:
    if config.pushover is None:
        return LoggingNotifier()
    return PushoverNotifier(config.pushover.token, config.pushover.user)


def build_listener_chains(config: RecorderConfig, recorder: Recorder, notifier: Notifier) -> list[ListenerChain]:
    """One chain per configured vehicle: filter → count → greet → record → log and notify."""
    chains: list[ListenerChain] = []
    for vehicle in config.vehicles:
        decorators: list[ListenerDecorator] = [
            VehicleFilter(vehicle.vin, monitor=vehicle.monitor),
            InvocationCounter(),
            FirstNotificationGreeter(notifier),
            RecordingTrigger(recorder, notifier),
        ]
        if not config.notify_on_startup:
            decorators.append(IgnoreFirstInvocation())
        chains.append(ListenerChain.build(decorators, LogAndNotifyHandler(notifier)))
    return chains


def _install_signal_handlers(stop_event: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # Not available on every platform (e.g. Windows event loops).
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop_event.set)


async def _run(config: RecorderConfig) -> int:
    config.validate(require_port=True)
    _logger.debug("Loaded config: %s", redact_for_log(dataclasses.asdict(config)))
    stop_event = asyncio.Event()
    _install_signal_handlers(stop_event)

    notifier = _build_notifier(config)
    storage = await open_storage(config.storage)
    try:
        async with VehicleApiClient(config) as client:
            recorder = Recorder(
                ResilientFetcher(client),
                storage,
                idle_time_before_sleep=config.idle_time_before_sleep,
                idle_sampling_frequency=config.idle_sampling_frequency,
            )
            monitor = StateMonitor(client, poll_interval=config.poll_interval)
            chains = build_listener_chains(config, recorder, notifier)
            for chain in chains:
                monitor.add_listener(chain)

            runner = await start_status_server(build_status_app(config, monitor, recorder, storage), config.port)
            try:
                await monitor.run(stop_event)
            finally:
                await monitor.drain()
                await recorder.stop_all()
                for chain in chains:
                    for decorator in chain.decorators:
                        if isinstance(decorator, RecordingTrigger):
                            await decorator.wait_idle()
                await runner.cleanup()
    finally:
        await storage.close()
        if isinstance(notifier, PushoverNotifier):
            await notifier.close()
    return 0


async def _track(config: RecorderConfig, vin: str) -> int:
    config.validate()
    stop_event = asyncio.Event()
    _install_signal_handlers(stop_event)

    storage = await open_storage(config.storage)
    try:
        async with VehicleApiClient(config) as client:
            vehicles = await client.list_vehicles()
            wanted = vin.strip().upper()
            vehicle = next((v for v in vehicles if v.vin == wanted), None)
            if vehicle is None:
                raise RecorderError(f"No car found with vin {vin} in account!")
            _logger.info("Found car with VIN %s.", vehicle.vin)
            await SnapshotTracker(ResilientFetcher(client), storage).run(vehicle, stop_event)
    finally:
        await storage.close()
    return 0


async def _latest(config: RecorderConfig) -> int:
    storage = await open_storage(config.storage)
    try:
        snapshot = await storage.query_latest()
    finally:
        await storage.close()
    print(json.dumps(snapshot.model_dump(mode="json"), indent=2))
    return 0


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="pyrecorder", description="Record vehicle telemetry while vehicles are in use")
    parser.add_argument("--config", default=None, help=f"Path to the JSON config file (default: {DEFAULT_CONFIG_PATH})")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("run", help="Monitor all configured vehicles and record while they are in use")
    track = sub.add_parser("track", help="Continuously snapshot one vehicle at an adaptive rate")
    track.add_argument("--vin", required=True, help="VIN of the vehicle to track")
    sub.add_parser("latest", help="Print the newest stored snapshot as JSON")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = _load_config(args.config)
        if args.command == "run":
            return asyncio.run(_run(config))
        if args.command == "track":
            return asyncio.run(_track(config, args.vin))
        return asyncio.run(_latest(config))
    except RecorderConfigError as exc:
        _logger.error("Configuration error: %s", exc)
        return 2
    except RecorderError as exc:
        _logger.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
