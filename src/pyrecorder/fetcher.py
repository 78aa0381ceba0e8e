"""Resilient detailed-telemetry fetch with exponential backoff.

A transient network or API failure must never abort a recording
session, so by default the fetcher retries forever. Shutdown is
signalled through a stop event that interrupts the backoff wait, or by
cancelling the surrounding task.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass

from pyrecorder._constants import BACKOFF_INITIAL_INTERVAL, BACKOFF_MAX_INTERVAL, BACKOFF_MULTIPLIER
from pyrecorder._sleep import Sleeper, sleep_or_stop
from pyrecorder.client import VehicleApi
from pyrecorder.exceptions import FetchError
from pyrecorder.models.vehicle import VehicleStatus
from pyrecorder.models.vehicle_data import VehicleData

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BackoffPolicy:
    """Exponential backoff schedule.

    Parameters
    ----------
    initial_interval : float
        Delay before the first retry, in seconds.
    multiplier : float
        Growth factor applied after every retry.
    max_interval : float
        Upper bound for a single delay.
    randomization_factor : float
        Each delay is drawn uniformly from
        ``delay * [1 - factor, 1 + factor]``. ``0`` disables jitter.
    max_elapsed : float or None
        Give up once this many seconds have passed since the first
        attempt. ``None`` retries forever.
    """

    initial_interval: float = BACKOFF_INITIAL_INTERVAL
    multiplier: float = BACKOFF_MULTIPLIER
    max_interval: float = BACKOFF_MAX_INTERVAL
    randomization_factor: float = 0.0
    max_elapsed: float | None = None

    def delays(self, rng: random.Random | None = None) -> Iterator[float]:
        """Yield the (unbounded) sequence of retry delays."""
        rng = rng or random.Random()
        current = self.initial_interval
        while True:
            if self.randomization_factor > 0:
                spread = current * self.randomization_factor
                yield rng.uniform(current - spread, current + spread)
            else:
                yield current
            current = min(current * self.multiplier, self.max_interval)


class ResilientFetcher:
    """Wraps ``fetch_vehicle_data`` with retry and exponential backoff."""

    def __init__(
        self,
        api: VehicleApi,
        *,
        policy: BackoffPolicy | None = None,
        sleep: Sleeper = sleep_or_stop,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._api = api
        self._policy = policy or BackoffPolicy()
        self._sleep = sleep
        self._clock = clock

    @property
    def policy(self) -> BackoffPolicy:
        return self._policy

    async def fetch(self, vehicle: VehicleStatus, *, stop_event: asyncio.Event | None = None) -> VehicleData:
        """Fetch detailed telemetry for *vehicle*, retrying every failure.

        Raises
        ------
        FetchError
            If the policy's ``max_elapsed`` is exceeded, or *stop_event*
            fires while waiting to retry. The last fetch error is the
            ``__cause__``.
        """
        started = self._clock()
        delays = self._policy.delays()
        while True:
            try:
                return await self._api.fetch_vehicle_data(vehicle.id)
            except Exception as exc:
                delay = next(delays)
                max_elapsed = self._policy.max_elapsed
                if max_elapsed is not None and (self._clock() - started) + delay > max_elapsed:
                    raise FetchError(
                        f"could not fetch vehicle data for {vehicle.display_name} after multiple tries",
                        vin=vehicle.vin,
                    ) from exc
                _logger.error(
                    "Error fetching VIN %s. Retrying in (%.3fs): %s",
                    vehicle.vin,
                    round(delay, 3),
                    exc,
                )
                if await self._sleep(delay, stop_event):
                    raise FetchError(
                        f"fetch for {vehicle.display_name} stopped while retrying",
                        vin=vehicle.vin,
                    ) from exc
