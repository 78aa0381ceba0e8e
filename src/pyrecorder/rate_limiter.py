"""Adaptive rate limiter for the continuous snapshot tracker.

The limiter is a single timer: each :meth:`RateLimiter.wait` blocks
until the current tick, then picks the next tick's duration from the
latest snapshot. It belongs to exactly one loop and is never shared.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable

from pyrecorder._constants import (
    CHARGING_REFRESH_DURATION,
    DRIVING_REFRESH_DURATION,
    FIRST_TICK_DURATION,
    NORMAL_REFRESH_DURATION,
)
from pyrecorder._sleep import Sleeper, sleep_or_stop
from pyrecorder.models.snapshot import Snapshot
from pyrecorder.models.vehicle_data import ChargingState

_logger = logging.getLogger(__name__)


class DurationCalculator:
    """Chooses how long to wait before the next snapshot."""

    def __init__(
        self,
        *,
        driving: float = DRIVING_REFRESH_DURATION,
        charging: float = CHARGING_REFRESH_DURATION,
        normal: float = NORMAL_REFRESH_DURATION,
    ) -> None:
        self.driving = driving
        self.charging = charging
        self.normal = normal

    def calculate(self, latest: Snapshot | None) -> float:
        if latest is None:
            return self.normal
        if latest.is_driving:
            _logger.info("Fast refreshing due to use: %.0fs", self.driving)
            return self.driving
        if latest.charge_session is not None:
            if latest.charging_state == ChargingState.COMPLETE:
                _logger.info("Plugged in, but fully charged. Not using charging refresh rate.")
            else:
                _logger.info("Refreshing due to charging (not fully charged): %.0fs", self.charging)
                return self.charging
        _logger.info("Normal refreshing, car likely parked/stopped: %.0fs", self.normal)
        return self.normal


class RateLimiter:
    def __init__(
        self,
        *,
        first_duration: float = FIRST_TICK_DURATION,
        calculator: DurationCalculator | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Sleeper = sleep_or_stop,
    ) -> None:
        self._calculator = calculator or DurationCalculator()
        self._clock = clock
        self._sleep = sleep
        self.current_duration = first_duration
        self._deadline = clock() + first_duration

    async def wait(self, latest: Snapshot | None, stop_event: asyncio.Event | None = None) -> bool:
        """Block until the current tick, then schedule the next one.

        Returns ``True`` if *stop_event* fired while waiting.
        """
        remaining = max(0.0, self._deadline - self._clock())
        stopped = await self._sleep(remaining, stop_event)
        self.current_duration = self._calculator.calculate(latest)
        self._deadline = self._clock() + self.current_duration
        return stopped
