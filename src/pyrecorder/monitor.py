"""Coarse state monitor.

Polls the vehicle list at a fixed interval and reports vehicles whose
coarse state (online/asleep/offline) changed to registered listeners.
The list call is cheap, so this is how the recorder notices a vehicle
waking up without fetching detailed telemetry for every vehicle.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from types import MappingProxyType

from pyrecorder._constants import POLL_INTERVAL
from pyrecorder._sleep import Sleeper, sleep_or_stop
from pyrecorder.client import VehicleApi
from pyrecorder.exceptions import VehicleInvariantError
from pyrecorder.models.vehicle import VehicleStatus

_logger = logging.getLogger(__name__)

Listener = Callable[[VehicleStatus], Awaitable[None]]
"""A state-change callback. Invoked once per detected change."""


def has_changed(previous: VehicleStatus | None, current: VehicleStatus | None) -> bool:
    """Return ``True`` if *current* should be reported.

    The first observation of a vehicle is always reported. A vehicle
    that was seen before but now comes back without a state is not
    something the API does, so it raises instead of guessing.
    """
    if previous is None:
        return True
    if current is None or (current.state is None and previous.state is not None):
        vin = previous.vin
        raise VehicleInvariantError(f"Vehicle {vin} was reported before but now has no state")
    return previous.state != current.state


class StateMonitor:
    """Fixed-interval poller that fans out coarse state changes.

    Listeners for one change run concurrently as separate tasks; there is
    no ordering between listeners, vehicles or poll cycles. A failing
    listener or vehicle is logged and never stops the poll loop.
    """

    def __init__(
        self,
        api: VehicleApi,
        *,
        poll_interval: float = POLL_INTERVAL,
        sleep: Sleeper = sleep_or_stop,
    ) -> None:
        self._api = api
        self._poll_interval = poll_interval
        self._sleep = sleep
        self._listeners: list[Listener] = []
        self._statuses: dict[str, VehicleStatus] = {}
        self._pending: set[asyncio.Task[None]] = set()
        self.poll_count = 0

    @property
    def statuses(self) -> Mapping[str, VehicleStatus]:
        """Latest coarse status per VIN (read-only view)."""
        return MappingProxyType(self._statuses)

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    async def poll_once(self) -> list[VehicleStatus]:
        """Poll all vehicles once and dispatch listeners for changes.

        Returns the statuses that were reported as changed.
        """
        _logger.info("Polling vehicle status")
        self.poll_count += 1
        try:
            vehicles = await self._api.list_vehicles()
        except Exception:
            _logger.exception("Error while fetching vehicles status.")
            return []

        changed: list[VehicleStatus] = []
        for vehicle in vehicles:
            _logger.debug("Found vehicle status for vin %s", vehicle.vin)
            previous = self._statuses.get(vehicle.vin)
            # The cache always moves to the latest observation.
            self._statuses[vehicle.vin] = vehicle
            try:
                report = has_changed(previous, vehicle)
            except VehicleInvariantError:
                _logger.exception("Skipping vehicle %s", vehicle.vin)
                continue
            if not report:
                _logger.debug("Nothing to report for vehicle vin %s", vehicle.vin)
                continue
            _logger.info(
                "Vehicle %s changed state: %s -> %s",
                vehicle.vin,
                previous.state_label if previous is not None else "<none>",
                vehicle.state_label,
            )
            changed.append(vehicle)
            self._dispatch(vehicle)
        return changed

    def _dispatch(self, vehicle: VehicleStatus) -> None:
        for listener in self._listeners:
            task = asyncio.create_task(self._invoke(listener, vehicle))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    @staticmethod
    async def _invoke(listener: Listener, vehicle: VehicleStatus) -> None:
        try:
            await listener(vehicle)
        except Exception:
            _logger.exception("Listener failed for vehicle %s", vehicle.vin)

    async def drain(self) -> None:
        """Wait for all listener invocations dispatched so far."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    async def run(self, stop_event: asyncio.Event) -> None:
        """Poll immediately, then every ``poll_interval`` seconds until stopped."""
        while not stop_event.is_set():
            await self.poll_once()
            _logger.debug("Sleeping poller for %.1fs", self._poll_interval)
            if await self._sleep(self._poll_interval, stop_event):
                break
        _logger.info("State monitor stopped")
