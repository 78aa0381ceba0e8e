from __future__ import annotations

import asyncio
from datetime import UTC, datetime

import aiohttp
import pytest
from aiohttp import test_utils, web

from pyrecorder.exceptions import StorageError
from pyrecorder.models.snapshot import Bearings, ChargeSession, Snapshot
from pyrecorder.models.vehicle_data import ChargingState
from pyrecorder.storage.influxdb import InfluxDbStorage, _latest_row, format_point, snapshot_from_rows, snapshot_to_lines

TS = datetime(2024, 1, 1, tzinfo=UTC)


def test_format_point_escapes_and_types_fields() -> None:
    line = format_point(
        "charge",
        {"car_name": "My Car", "vin": "VIN1"},
        {"state": 'Say "hi"', "batt_level": 80, "range_left": 250.5, "on": True, "skipped": None},
        TS,
    )

    assert line == 'charge,car_name=My\\ Car,vin=VIN1 state="Say \\"hi\\"",batt_level=80i,range_left=250.5,on=true 1704067200'


def test_format_point_without_fields_is_rejected() -> None:
    with pytest.raises(ValueError):
        format_point("charge", {}, {"a": None}, TS)


def test_snapshot_to_lines_includes_charge_session_fields() -> None:
    snapshot = Snapshot(
        timestamp=TS,
        name="Daily",
        vin="VIN1",
        charging_state=ChargingState.CHARGING,
        battery_level=55,
        charge_session=ChargeSession(voltage=240.0, actual_current=32.0),
        bearings=Bearings(latitude=52.5, longitude=13.4),
        activity="Charging",
    )

    charge, position = snapshot_to_lines(snapshot)

    assert charge.startswith("charge,car_name=Daily,vin=VIN1 ")
    assert 'state="Charging"' in charge
    assert "voltage=240.0" in charge
    assert "batt_level=55i" in charge
    assert position.startswith("position,car_name=Daily,vin=VIN1 ")
    assert 'activity="Charging"' in position


def test_snapshot_to_lines_omits_session_fields_when_disconnected() -> None:
    snapshot = Snapshot(timestamp=TS, charging_state=ChargingState.DISCONNECTED, battery_level=90)

    lines = snapshot_to_lines(snapshot)

    assert len(lines) == 1
    assert "voltage" not in lines[0]


def test_latest_row_and_snapshot_from_rows() -> None:
    charge_result = {
        "results": [
            {
                "statement_id": 0,
                "series": [
                    {
                        "name": "charge",
                        "columns": ["time", "batt_level", "car_name", "state", "vin", "voltage", "actual_current"],
                        "values": [[TS, 55, "Daily", "Charging", "VIN1", 240.0, 32.0]],
                    }
                ],
            }
        ]
    }
    position_result = {
        "results": [
            {
                "statement_id": 0,
                "series": [
                    {
                        "name": "position",
                        "columns": ["time", "car_name", "latitude", "longitude", "vin", "activity"],
                        "values": [[TS, "Daily", 52.5, 13.4, "VIN1", "Charging"]],
                    }
                ],
            }
        ]
    }

    snapshot = snapshot_from_rows(_latest_row(charge_result), _latest_row(position_result))

    assert snapshot.timestamp == TS
    assert snapshot.vin == "VIN1"
    assert snapshot.charging_state == ChargingState.CHARGING
    assert snapshot.charge_session is not None
    assert snapshot.charge_session.actual_current == 32.0
    assert snapshot.bearings.latitude == 52.5
    assert snapshot.activity == "Charging"


def test_empty_results() -> None:
    assert _latest_row({"results": [{"statement_id": 0}]}) is None
    with pytest.raises(StorageError, match="Is the database empty"):
        snapshot_from_rows(None, None)


def test_query_error_is_raised() -> None:
    with pytest.raises(StorageError, match="database not found"):
        _latest_row({"results": [{"statement_id": 0, "error": "database not found: tesla"}]})


def _slow_influx() -> web.Application:
    async def slow(request: web.Request) -> web.Response:
        await asyncio.sleep(1)
        return web.Response(status=204)

    app = web.Application()
    app.router.add_post("/write", slow)
    app.router.add_get("/query", slow)
    return app


@pytest.mark.asyncio
async def test_timeouts_surface_as_storage_error() -> None:
    timeout = aiohttp.ClientTimeout(total=0.2)
    async with test_utils.TestServer(_slow_influx()) as server, aiohttp.ClientSession(timeout=timeout) as session:
        storage = InfluxDbStorage(str(server.make_url("/")), "tesla", session=session)
        with pytest.raises(StorageError, match="InfluxDB write failed"):
            await storage.insert(Snapshot(timestamp=TS, vin="VIN1", battery_level=80))
        with pytest.raises(StorageError, match="InfluxDB query failed"):
            await storage.query_latest()
