"""Snapshot model: the durable, storage-ready unit of vehicle state."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from pyrecorder.models.vehicle_data import ChargeState, ChargingState, VehicleData


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ChargeSession(BaseModel):
    """Charger telemetry, present only while a charge cable is connected."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    voltage: float = 0.0
    actual_current: float = 0.0
    pilot_current: float = 0.0
    time_to_full_charge: float | None = None
    charge_miles_added: float = 0.0
    charge_rate: float = 0.0

    @classmethod
    def from_charge_state(cls, charge_state: ChargeState) -> ChargeSession | None:
        """Return the session for *charge_state*, or ``None`` when disconnected."""
        if not charge_state.is_connected:
            return None
        return cls(
            voltage=charge_state.charger_voltage or 0.0,
            actual_current=charge_state.charger_actual_current or 0.0,
            pilot_current=charge_state.charger_pilot_current or 0.0,
            time_to_full_charge=charge_state.time_to_full_charge,
            charge_miles_added=charge_state.charge_miles_added_rated or 0.0,
            charge_rate=charge_state.charge_rate or 0.0,
        )


class Bearings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    latitude: float | None = None
    longitude: float | None = None
    speed: float | None = None
    heading: int | None = None


class Snapshot(BaseModel):
    """One timestamped record of a vehicle's state.

    Created once per successful fetch cycle and immutable afterwards.
    ``charge_session`` is ``None`` whenever ``charging_state`` is
    ``Disconnected`` or was not reported.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    timestamp: datetime = Field(default_factory=_utcnow)
    name: str = ""
    vin: str = ""
    wake_state: str | None = None
    """Coarse state before the detailed fetch (``"online"`` etc.)."""
    driving_state: str | None = None
    """Shift state; ``None`` when not reported."""
    bearings: Bearings = Field(default_factory=Bearings)
    charging_state: ChargingState | None = None
    battery_level: int | None = None
    range_left: float | None = None
    charge_limit_soc: int | None = None
    charge_session: ChargeSession | None = None
    odometer: float | None = None
    activity: str = ""
    """Free-text activity description from the classifier."""

    @field_validator("timestamp")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @model_validator(mode="after")
    def _check_charge_session(self) -> Snapshot:
        disconnected = self.charging_state is None or self.charging_state == ChargingState.DISCONNECTED
        if disconnected and self.charge_session is not None:
            raise ValueError("charge_session must be absent while the charger is disconnected")
        return self

    @property
    def is_driving(self) -> bool:
        return bool(self.driving_state)

    @classmethod
    def from_vehicle_data(
        cls,
        data: VehicleData,
        *,
        activity: str = "",
        timestamp: datetime | None = None,
    ) -> Snapshot:
        """Normalize one telemetry sample into a Snapshot."""
        drive = data.drive_state
        charge = data.charge_state
        shift_state = drive.shift_state.value if drive.shift_state is not None else None
        return cls(
            timestamp=timestamp if timestamp is not None else _utcnow(),
            name=data.display_name,
            vin=data.vin,
            wake_state=data.state,
            driving_state=shift_state,
            bearings=Bearings(
                latitude=drive.latitude,
                longitude=drive.longitude,
                speed=drive.speed,
                heading=drive.heading,
            ),
            charging_state=charge.charging_state,
            battery_level=charge.battery_level,
            range_left=charge.battery_range,
            charge_limit_soc=charge.charge_limit_soc,
            charge_session=ChargeSession.from_charge_state(charge),
            odometer=data.vehicle_state.odometer,
            activity=activity,
        )
