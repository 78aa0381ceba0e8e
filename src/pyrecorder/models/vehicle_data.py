"""Detailed vehicle telemetry model.

Mapped from the ``/api/1/vehicles/{id}/vehicle_data`` response. Only
the sections and fields the recorder samples are typed; the rest of
each section is available in its ``raw`` dict.
"""

from __future__ import annotations

from pydantic import Field

from pyrecorder.models._base import RecorderBaseModel, RecorderEnum

# ------------------------------------------------------------------
# Enums
# ------------------------------------------------------------------


class ChargingState(RecorderEnum):
    """Charge port / charging session state."""

    UNKNOWN = "Unknown"
    DISCONNECTED = "Disconnected"
    STARTING = "Starting"
    CHARGING = "Charging"
    STOPPED = "Stopped"
    COMPLETE = "Complete"
    NO_POWER = "NoPower"


class ShiftState(RecorderEnum):
    """Gear selector position. ``None`` on the model means parked and asleep."""

    UNKNOWN = "Unknown"
    PARK = "P"
    REVERSE = "R"
    NEUTRAL = "N"
    DRIVE = "D"


IN_GEAR_SHIFT_STATES: frozenset[ShiftState] = frozenset({ShiftState.REVERSE, ShiftState.DRIVE, ShiftState.NEUTRAL})
ACTIVE_CHARGING_STATES: frozenset[ChargingState] = frozenset({ChargingState.CHARGING, ChargingState.STARTING})

# ------------------------------------------------------------------
# Sections
# ------------------------------------------------------------------


class DriveState(RecorderBaseModel):
    shift_state: ShiftState | None = None
    speed: float | None = None
    """Speed in mph, ``None`` when stationary."""
    latitude: float | None = None
    longitude: float | None = None
    heading: int | None = None

    @property
    def is_moving(self) -> bool:
        return self.speed is not None and self.speed > 0

    @property
    def is_in_gear(self) -> bool:
        return self.shift_state in IN_GEAR_SHIFT_STATES


class ChargeState(RecorderBaseModel):
    charging_state: ChargingState | None = None
    battery_level: int | None = None
    battery_range: float | None = None
    charge_limit_soc: int | None = None
    charger_voltage: float | None = None
    charger_actual_current: float | None = None
    charger_pilot_current: float | None = None
    time_to_full_charge: float | None = None
    """Hours until the charge limit is reached."""
    charge_miles_added_rated: float | None = None
    charge_rate: float | None = None

    @property
    def is_charging(self) -> bool:
        return self.charging_state in ACTIVE_CHARGING_STATES

    @property
    def is_connected(self) -> bool:
        return self.charging_state is not None and self.charging_state != ChargingState.DISCONNECTED


class VehicleState(RecorderBaseModel):
    sentry_mode: bool = False
    center_display_state: int = 0
    """Non-zero while the center display is on."""
    odometer: float | None = None

    @property
    def is_display_on(self) -> bool:
        return self.center_display_state != 0


class ClimateState(RecorderBaseModel):
    is_climate_on: bool = False


class VehicleData(RecorderBaseModel):
    """One detailed telemetry sample for a vehicle.

    Fetched fresh for every sample and never cached.
    """

    id: int | str = ""
    vin: str = ""
    display_name: str = ""
    state: str | None = None
    drive_state: DriveState = Field(default_factory=DriveState)
    charge_state: ChargeState = Field(default_factory=ChargeState)
    vehicle_state: VehicleState = Field(default_factory=VehicleState)
    climate_state: ClimateState = Field(default_factory=ClimateState)
