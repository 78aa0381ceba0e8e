"""Continuous snapshot tracker for a single vehicle.

Unlike a recording session, the tracker never ends on its own: it keeps
taking snapshots at the cadence chosen by :class:`RateLimiter` until its
stop event is set.
"""

from __future__ import annotations

import asyncio
import logging

from pyrecorder.activity import classify
from pyrecorder.exceptions import FetchError, StorageError
from pyrecorder.fetcher import ResilientFetcher
from pyrecorder.models.snapshot import Snapshot
from pyrecorder.models.vehicle import VehicleStatus
from pyrecorder.rate_limiter import RateLimiter
from pyrecorder.storage.base import SnapshotStorage

_logger = logging.getLogger(__name__)


class SnapshotTracker:
    def __init__(
        self,
        fetcher: ResilientFetcher,
        storage: SnapshotStorage,
        *,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._storage = storage
        self._rate_limiter = rate_limiter or RateLimiter()
        self.snapshots_taken = 0

    async def run(self, vehicle: VehicleStatus, stop_event: asyncio.Event) -> None:
        """Track *vehicle* until *stop_event* is set."""
        latest: Snapshot | None = None
        while not stop_event.is_set():
            try:
                data = await self._fetcher.fetch(vehicle, stop_event=stop_event)
            except FetchError:
                if stop_event.is_set():
                    break
                raise
            latest = Snapshot.from_vehicle_data(data, activity=classify(data).description)
            self.snapshots_taken += 1
            try:
                await self._storage.insert(latest)
            except StorageError:
                _logger.exception("Cannot store snapshot for %s", vehicle.vin)
            if await self._rate_limiter.wait(latest, stop_event):
                break
        _logger.info("Snapshot tracker for %s stopped", vehicle.vin)
