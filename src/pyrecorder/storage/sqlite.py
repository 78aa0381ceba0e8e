"""SQLite snapshot storage.

The ``sqlite3`` module is blocking, so every statement runs in a worker
thread through :func:`asyncio.to_thread`. A lock serializes access to
the single connection.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from pathlib import Path
from typing import Any

from pyrecorder.exceptions import StorageError
from pyrecorder.models._base import parse_epoch_timestamp
from pyrecorder.models.snapshot import Bearings, ChargeSession, Snapshot
from pyrecorder.models.vehicle_data import ChargingState

_logger = logging.getLogger(__name__)

_SCHEMA = """
create table if not exists snapshots (
  id integer primary key autoincrement,
  timestamp integer not null,
  name text,
  vin text,
  wake_state text,
  driving_state text,
  latitude real,
  longitude real,
  speed real,
  heading integer,
  charging_state text,
  battery_level integer,
  range_left real,
  charge_limit_soc integer,
  odometer real,
  activity text,
  charge_voltage real,
  charge_actual_current real,
  charge_pilot_current real,
  charge_time_to_full real,
  charge_miles_added real,
  charge_rate real
);
create index if not exists snapshots_timestamp on snapshots (timestamp);
"""

_COLUMNS: tuple[str, ...] = (
    "timestamp",
    "name",
    "vin",
    "wake_state",
    "driving_state",
    "latitude",
    "longitude",
    "speed",
    "heading",
    "charging_state",
    "battery_level",
    "range_left",
    "charge_limit_soc",
    "odometer",
    "activity",
    "charge_voltage",
    "charge_actual_current",
    "charge_pilot_current",
    "charge_time_to_full",
    "charge_miles_added",
    "charge_rate",
)

_INSERT = f"insert into snapshots ({', '.join(_COLUMNS)}) values ({', '.join('?' for _ in _COLUMNS)})"
_SELECT_LATEST = f"select {', '.join(_COLUMNS)} from snapshots order by timestamp desc, id desc limit 1"


def _to_row(snapshot: Snapshot) -> tuple[Any, ...]:
    session = snapshot.charge_session
    return (
        int(snapshot.timestamp.timestamp()),
        snapshot.name,
        snapshot.vin,
        snapshot.wake_state,
        snapshot.driving_state,
        snapshot.bearings.latitude,
        snapshot.bearings.longitude,
        snapshot.bearings.speed,
        snapshot.bearings.heading,
        snapshot.charging_state.value if snapshot.charging_state is not None else None,
        snapshot.battery_level,
        snapshot.range_left,
        snapshot.charge_limit_soc,
        snapshot.odometer,
        snapshot.activity,
        session.voltage if session else None,
        session.actual_current if session else None,
        session.pilot_current if session else None,
        session.time_to_full_charge if session else None,
        session.charge_miles_added if session else None,
        session.charge_rate if session else None,
    )


def _from_row(row: sqlite3.Row) -> Snapshot:
    charging_state = ChargingState(row["charging_state"]) if row["charging_state"] is not None else None
    session: ChargeSession | None = None
    if row["charge_voltage"] is not None:
        session = ChargeSession(
            voltage=row["charge_voltage"],
            actual_current=row["charge_actual_current"],
            pilot_current=row["charge_pilot_current"],
            time_to_full_charge=row["charge_time_to_full"],
            charge_miles_added=row["charge_miles_added"],
            charge_rate=row["charge_rate"],
        )
    return Snapshot(
        timestamp=parse_epoch_timestamp(row["timestamp"]),
        name=row["name"] or "",
        vin=row["vin"] or "",
        wake_state=row["wake_state"],
        driving_state=row["driving_state"],
        bearings=Bearings(
            latitude=row["latitude"],
            longitude=row["longitude"],
            speed=row["speed"],
            heading=row["heading"],
        ),
        charging_state=charging_state,
        battery_level=row["battery_level"],
        range_left=row["range_left"],
        charge_limit_soc=row["charge_limit_soc"],
        charge_session=session,
        odometer=row["odometer"],
        activity=row["activity"] or "",
    )


class SqliteStorage:
    """Relational snapshot store in a single SQLite file."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._lock = asyncio.Lock()

    @classmethod
    async def open(cls, path: str | Path) -> SqliteStorage:
        """Open (and create if needed) the database at *path*."""

        def _open() -> sqlite3.Connection:
            conn = sqlite3.connect(str(path), check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.executescript(_SCHEMA)
            return conn

        try:
            conn = await asyncio.to_thread(_open)
        except sqlite3.Error as exc:
            raise StorageError(f"Cannot open SQLite database {path}: {exc}", operation="open") from exc
        return cls(conn)

    async def insert(self, snapshot: Snapshot) -> None:
        row = _to_row(snapshot)

        def _insert() -> None:
            with self._conn:
                self._conn.execute(_INSERT, row)

        async with self._lock:
            try:
                await asyncio.to_thread(_insert)
            except sqlite3.Error as exc:
                raise StorageError(f"Cannot insert snapshot for {snapshot.vin}: {exc}", operation="insert") from exc
        _logger.info("Saved record with timestamp %d into database.", row[0])

    async def query_latest(self) -> Snapshot:
        _logger.info("Querying database for latest record.")

        def _query() -> sqlite3.Row | None:
            return self._conn.execute(_SELECT_LATEST).fetchone()

        async with self._lock:
            try:
                row = await asyncio.to_thread(_query)
            except sqlite3.Error as exc:
                raise StorageError(f"Cannot query latest snapshot: {exc}", operation="query_latest") from exc
        if row is None:
            raise StorageError("Cannot find any records! Is the database empty?", operation="query_latest")
        return _from_row(row)

    async def close(self) -> None:
        async with self._lock:
            try:
                await asyncio.to_thread(self._conn.close)
            except sqlite3.Error as exc:
                raise StorageError(f"Cannot close SQLite database: {exc}", operation="close") from exc
