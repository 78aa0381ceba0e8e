"""Activity classification of detailed vehicle telemetry.

The classifier decides how fast a recording session samples a vehicle.
Fast sampling is reserved for states where data changes quickly
(motion) or where missing a transition is costly (charge completion).
Idle vehicles are sampled at a fixed slow cadence only to notice the
next activation.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

from pyrecorder._constants import (
    CHARGING_INTERVAL,
    CLIMATE_ON_INTERVAL,
    DISPLAY_ON_INTERVAL,
    IDLE_SAMPLING_FREQUENCY,
    IN_GEAR_INTERVAL,
    MOVING_INTERVAL,
    SENTRY_MODE_INTERVAL,
)
from pyrecorder.models.vehicle_data import VehicleData

_logger = logging.getLogger(__name__)


class Activity(enum.StrEnum):
    """Activity label; the value is the description stored with snapshots."""

    MOVING = "Moving"
    IN_GEAR = "In gear"
    CHARGING = "Charging"
    SENTRY_MODE = "Sentry mode"
    DISPLAY_ON = "Display on"
    CLIMATE_ON = "Climate on"
    IDLE = "Idle"


@dataclass(frozen=True, slots=True)
class ActivityClassification:
    activity: Activity
    interval: float
    """Seconds to sleep before the next sample."""
    begin_idle_countdown: bool = False

    @property
    def description(self) -> str:
        return self.activity.value


def classify(data: VehicleData, *, idle_interval: float = IDLE_SAMPLING_FREQUENCY) -> ActivityClassification:
    """Classify one telemetry sample.

    The first matching rule wins, so e.g. a vehicle charging with sentry
    mode on is classified as charging.
    """
    vin = data.vin

    if data.drive_state.is_moving:
        _logger.info("Car %s is actively moving.", vin)
        return ActivityClassification(Activity.MOVING, MOVING_INTERVAL)

    if data.drive_state.is_in_gear:
        _logger.info("Car %s not moving, but in gear.", vin)
        return ActivityClassification(Activity.IN_GEAR, IN_GEAR_INTERVAL)

    charge_state = data.charge_state
    if charge_state.is_charging:
        _logger.info("Car %s has active charge state: %s.", vin, charge_state.charging_state)
        return ActivityClassification(Activity.CHARGING, CHARGING_INTERVAL)

    if data.vehicle_state.sentry_mode:
        _logger.info("Sentry mode enabled for %s.", vin)
        return ActivityClassification(Activity.SENTRY_MODE, SENTRY_MODE_INTERVAL)

    if data.vehicle_state.is_display_on:
        _logger.info("Center display is on for car %s.", vin)
        return ActivityClassification(Activity.DISPLAY_ON, DISPLAY_ON_INTERVAL)

    if data.climate_state.is_climate_on:
        _logger.info("Climate is on for car %s.", vin)
        return ActivityClassification(Activity.CLIMATE_ON, CLIMATE_ON_INTERVAL)

    _logger.info("Car %s is not active.", vin)
    return ActivityClassification(Activity.IDLE, idle_interval, begin_idle_countdown=True)
