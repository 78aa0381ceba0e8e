"""InfluxDB 1.x snapshot storage over the HTTP API.

Each snapshot is written as two points at second precision:

* ``charge`` - charging state, battery level, range, charge limit and,
  while connected, the charge session fields.
* ``position`` - coordinates, speed, odometer, driving state and the
  activity description.

Both are tagged with ``car_name`` and ``vin``.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

import aiohttp

from pyrecorder.exceptions import StorageError
from pyrecorder.models.snapshot import Bearings, ChargeSession, Snapshot
from pyrecorder.models.vehicle_data import ChargingState

_logger = logging.getLogger(__name__)

FieldValue = str | int | float | bool

# ------------------------------------------------------------------
# Line protocol
# ------------------------------------------------------------------


def _escape_tag(value: str) -> str:
    return value.replace("\\", "\\\\").replace(",", "\\,").replace("=", "\\=").replace(" ", "\\ ")


def _format_field(value: FieldValue) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return f"{value}i"
    if isinstance(value, float):
        return repr(value)
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def format_point(measurement: str, tags: dict[str, str], fields: dict[str, FieldValue | None], ts: datetime) -> str:
    """Format one line-protocol point. ``None`` fields are omitted."""
    tag_part = "".join(f",{_escape_tag(k)}={_escape_tag(v)}" for k, v in sorted(tags.items()) if v)
    field_part = ",".join(f"{_escape_tag(k)}={_format_field(v)}" for k, v in fields.items() if v is not None)
    if not field_part:
        raise ValueError(f"point {measurement!r} has no fields")
    return f"{_escape_tag(measurement)}{tag_part} {field_part} {int(ts.timestamp())}"


def snapshot_to_lines(snapshot: Snapshot) -> list[str]:
    """Convert a snapshot into its ``charge`` and ``position`` points."""
    tags = {"car_name": snapshot.name, "vin": snapshot.vin}

    charge_fields: dict[str, FieldValue | None] = {
        "state": snapshot.charging_state.value if snapshot.charging_state is not None else None,
        "batt_level": snapshot.battery_level,
        "range_left": snapshot.range_left,
        "charge_limit_soc": snapshot.charge_limit_soc,
    }
    session = snapshot.charge_session
    if session is not None:
        charge_fields.update(
            {
                "voltage": session.voltage,
                "actual_current": session.actual_current,
                "pilot_current": session.pilot_current,
                "charge_miles_added": session.charge_miles_added,
                "charge_rate": session.charge_rate,
                "time_to_full_charge_hrs": session.time_to_full_charge,
            }
        )

    position_fields: dict[str, FieldValue | None] = {
        "latitude": snapshot.bearings.latitude,
        "longitude": snapshot.bearings.longitude,
        "speed": snapshot.bearings.speed,
        "heading": snapshot.bearings.heading,
        "odometer": snapshot.odometer,
        "driving_state": snapshot.driving_state,
        "wake_state": snapshot.wake_state,
        "activity": snapshot.activity or None,
    }

    lines: list[str] = []
    for measurement, fields in (("charge", charge_fields), ("position", position_fields)):
        if any(v is not None for v in fields.values()):
            lines.append(format_point(measurement, tags, fields, snapshot.timestamp))
    return lines


# ------------------------------------------------------------------
# Query results
# ------------------------------------------------------------------


def _latest_row(result: dict[str, Any]) -> dict[str, Any] | None:
    """Return the first row of an InfluxQL JSON result as a column dict."""
    for statement in result.get("results", []):
        if "error" in statement:
            raise StorageError(f"InfluxDB query failed: {statement['error']}", operation="query_latest")
        for series in statement.get("series", []):
            columns = series.get("columns", [])
            values = series.get("values", [])
            if values:
                return dict(zip(columns, values[0], strict=False))
    return None


def snapshot_from_rows(charge: dict[str, Any] | None, position: dict[str, Any] | None) -> Snapshot:
    """Rebuild a snapshot from the newest ``charge`` and ``position`` rows."""
    if charge is None and position is None:
        raise StorageError("Cannot find any records! Is the database empty?", operation="query_latest")
    charge = charge or {}
    position = position or {}
    newest = max(
        (row["time"] for row in (charge, position) if row.get("time") is not None),
        default=None,
    )

    charging_state = ChargingState(charge["state"]) if charge.get("state") else None
    session: ChargeSession | None = None
    if charge.get("voltage") is not None and charging_state not in (None, ChargingState.DISCONNECTED):
        session = ChargeSession(
            voltage=charge["voltage"],
            actual_current=charge.get("actual_current") or 0.0,
            pilot_current=charge.get("pilot_current") or 0.0,
            time_to_full_charge=charge.get("time_to_full_charge_hrs"),
            charge_miles_added=charge.get("charge_miles_added") or 0.0,
            charge_rate=charge.get("charge_rate") or 0.0,
        )

    kwargs: dict[str, Any] = {}
    if newest is not None:
        kwargs["timestamp"] = newest
    return Snapshot(
        name=position.get("car_name") or charge.get("car_name") or "",
        vin=position.get("vin") or charge.get("vin") or "",
        wake_state=position.get("wake_state"),
        driving_state=position.get("driving_state"),
        bearings=Bearings(
            latitude=position.get("latitude"),
            longitude=position.get("longitude"),
            speed=position.get("speed"),
            heading=position.get("heading"),
        ),
        charging_state=charging_state,
        battery_level=charge.get("batt_level"),
        range_left=charge.get("range_left"),
        charge_limit_soc=charge.get("charge_limit_soc"),
        charge_session=session,
        odometer=position.get("odometer"),
        activity=position.get("activity") or "",
        **kwargs,
    )


class InfluxDbStorage:
    """Time-series snapshot store backed by InfluxDB 1.x."""

    def __init__(
        self,
        address: str,
        database: str,
        *,
        username: str = "",
        password: str = "",
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._address = address.rstrip("/")
        self._database = database
        self._auth = aiohttp.BasicAuth(username, password) if username else None
        self._external_session = session is not None
        self._http = session

    def _require_session(self) -> aiohttp.ClientSession:
        if self._http is None:
            self._http = aiohttp.ClientSession()
        return self._http

    async def insert(self, snapshot: Snapshot) -> None:
        _logger.info("Recording measurement to influxdb")
        body = "\n".join(snapshot_to_lines(snapshot))
        if not body:
            return
        params = {"db": self._database, "precision": "s"}
        try:
            async with self._require_session().post(
                f"{self._address}/write", params=params, data=body.encode("utf-8"), auth=self._auth
            ) as resp:
                if resp.status != 204:
                    text = await resp.text()
                    raise StorageError(f"HTTP {resp.status} from InfluxDB write: {text[:200]}", operation="insert")
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise StorageError(f"InfluxDB write failed: {exc}", operation="insert") from exc
        _logger.info("Writing to InfluxDB successful")

    async def _query_one(self, measurement: str) -> dict[str, Any] | None:
        params = {
            "db": self._database,
            "q": f'SELECT * FROM "{measurement}" ORDER BY time DESC LIMIT 1',
            "epoch": "s",
        }
        try:
            async with self._require_session().get(f"{self._address}/query", params=params, auth=self._auth) as resp:
                if resp.status != 200:
                    text = await resp.text()
                    raise StorageError(f"HTTP {resp.status} from InfluxDB query: {text[:200]}", operation="query_latest")
                result = await resp.json()
        except (aiohttp.ClientError, TimeoutError, ValueError) as exc:
            raise StorageError(f"InfluxDB query failed: {exc}", operation="query_latest") from exc
        row = _latest_row(result)
        if row is not None and row.get("time") is not None:
            row["time"] = datetime.fromtimestamp(int(row["time"]), tz=UTC)
        return row

    async def query_latest(self) -> Snapshot:
        charge = await self._query_one("charge")
        position = await self._query_one("position")
        return snapshot_from_rows(charge, position)

    async def close(self) -> None:
        if not self._external_session and self._http is not None:
            await self._http.close()
        self._http = None
