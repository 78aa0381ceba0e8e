"""Data models for vehicle API payloads and stored snapshots."""

from pyrecorder.models._base import RecorderBaseModel, RecorderEnum, parse_epoch_timestamp
from pyrecorder.models.snapshot import Bearings, ChargeSession, Snapshot
from pyrecorder.models.vehicle import OnlineState, VehicleStatus
from pyrecorder.models.vehicle_data import (
    ACTIVE_CHARGING_STATES,
    IN_GEAR_SHIFT_STATES,
    ChargeState,
    ChargingState,
    ClimateState,
    DriveState,
    ShiftState,
    VehicleData,
    VehicleState,
)

__all__ = [
    "ACTIVE_CHARGING_STATES",
    "Bearings",
    "ChargeSession",
    "ChargeState",
    "ChargingState",
    "ClimateState",
    "DriveState",
    "IN_GEAR_SHIFT_STATES",
    "OnlineState",
    "RecorderBaseModel",
    "RecorderEnum",
    "ShiftState",
    "Snapshot",
    "VehicleData",
    "VehicleState",
    "VehicleStatus",
    "parse_epoch_timestamp",
]
