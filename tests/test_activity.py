from __future__ import annotations

from typing import Any

import pytest

from pyrecorder.activity import Activity, classify
from pyrecorder.models.vehicle_data import VehicleData


def _data(**sections: dict[str, Any]) -> VehicleData:
    return VehicleData.model_validate({"vin": "VIN123", "display_name": "Roadster", "state": "online", **sections})


def test_moving_vehicle_is_sampled_every_second() -> None:
    result = classify(_data(drive_state={"shift_state": "D", "speed": 35}))

    assert result.activity == Activity.MOVING
    assert result.interval == 1
    assert result.begin_idle_countdown is False
    assert result.description == "Moving"


def test_in_gear_without_speed() -> None:
    for shift in ("D", "R", "N"):
        result = classify(_data(drive_state={"shift_state": shift}))
        assert result.activity == Activity.IN_GEAR
        assert result.interval == 2


def test_park_is_not_in_gear() -> None:
    result = classify(_data(drive_state={"shift_state": "P"}))

    assert result.activity == Activity.IDLE


@pytest.mark.parametrize("charging_state", ["Charging", "Starting"])
def test_active_charge_states(charging_state: str) -> None:
    result = classify(_data(charge_state={"charging_state": charging_state}))

    assert result.activity == Activity.CHARGING
    assert result.interval == 3


def test_complete_charge_is_idle() -> None:
    result = classify(_data(charge_state={"charging_state": "Complete"}))

    assert result.activity == Activity.IDLE
    assert result.begin_idle_countdown is True


def test_charging_wins_over_sentry_mode() -> None:
    result = classify(
        _data(
            charge_state={"charging_state": "Charging"},
            vehicle_state={"sentry_mode": True},
        )
    )

    assert result.activity == Activity.CHARGING
    assert result.interval == 3


def test_moving_wins_over_everything() -> None:
    result = classify(
        _data(
            drive_state={"shift_state": "D", "speed": 5},
            charge_state={"charging_state": "Charging"},
            vehicle_state={"sentry_mode": True, "center_display_state": 2},
            climate_state={"is_climate_on": True},
        )
    )

    assert result.activity == Activity.MOVING


def test_sentry_display_and_climate_intervals() -> None:
    assert classify(_data(vehicle_state={"sentry_mode": True})).interval == 30
    assert classify(_data(vehicle_state={"center_display_state": 3})).activity == Activity.DISPLAY_ON
    assert classify(_data(vehicle_state={"center_display_state": 3})).interval == 10
    climate = classify(_data(climate_state={"is_climate_on": True}))
    assert climate.activity == Activity.CLIMATE_ON
    assert climate.interval == 30


def test_idle_uses_configured_sampling_interval() -> None:
    result = classify(_data(), idle_interval=42.0)

    assert result.activity == Activity.IDLE
    assert result.interval == 42.0
    assert result.begin_idle_countdown is True


def test_zero_speed_is_not_moving() -> None:
    result = classify(_data(drive_state={"speed": 0}))

    assert result.activity == Activity.IDLE
