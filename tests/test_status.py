from __future__ import annotations

import asyncio
from datetime import UTC, datetime

import pytest
from aiohttp import test_utils, web

from pyrecorder.config import RecorderConfig, VehicleConfig
from pyrecorder.exceptions import RecorderError, StorageError
from pyrecorder.fetcher import ResilientFetcher
from pyrecorder.models.snapshot import Snapshot
from pyrecorder.models.vehicle import VehicleStatus
from pyrecorder.models.vehicle_data import VehicleData
from pyrecorder.monitor import StateMonitor
from pyrecorder.recorder import Recorder
from pyrecorder.status import build_status_app, start_status_server


class _Api:
    async def list_vehicles(self) -> list[VehicleStatus]:
        return [VehicleStatus(id=1, vin="VIN1", display_name="Daily", state="online")]

    async def fetch_vehicle_data(self, vehicle_id: int | str) -> VehicleData:
        return VehicleData.model_validate(
            {"vin": "VIN1", "display_name": "Daily", "drive_state": {"shift_state": "D", "speed": 20}}
        )


class _NullStorage:
    async def insert(self, snapshot: Snapshot) -> None:
        return None

    async def query_latest(self) -> Snapshot:
        raise StorageError("Cannot find any records! Is the database empty?", operation="query_latest")

    async def close(self) -> None:
        return None


async def _block(delay: float, stop_event: asyncio.Event | None = None) -> bool:
    assert stop_event is not None
    await stop_event.wait()
    return True


CONFIG = RecorderConfig(access_token="secret-token", vehicles=(VehicleConfig("VIN1"),), port=8080)


def _idle_app() -> web.Application:
    recorder = Recorder(ResilientFetcher(_Api()), _NullStorage())  # type: ignore[arg-type]
    return build_status_app(CONFIG, StateMonitor(_Api()), recorder, _NullStorage())


@pytest.mark.asyncio
async def test_statusz_reports_vehicles_and_sessions() -> None:
    monitor = StateMonitor(_Api())
    recorder = Recorder(ResilientFetcher(_Api()), _NullStorage(), sleep=_block)  # type: ignore[arg-type]
    await monitor.poll_once()
    recorder.start(VehicleStatus(id=1, vin="VIN1", display_name="Daily", state="online"))

    async with test_utils.TestClient(test_utils.TestServer(build_status_app(CONFIG, monitor, recorder, _NullStorage()))) as client:
        resp = await client.get("/statusz")
        assert resp.status == 200
        body = await resp.json()

    await recorder.stop_all()

    assert body["server"] == "pyrecorder"
    assert body["polls"] == 1
    assert body["recording"] == ["VIN1"]
    vehicle = body["vehicles"][0]
    assert vehicle["vin"] == "VIN1"
    assert vehicle["state"] == "online"
    assert vehicle["recording"] is True
    assert vehicle["idle_samples_remaining"] == 30


@pytest.mark.asyncio
async def test_index_redirects_to_statusz() -> None:
    app = _idle_app()

    async with test_utils.TestClient(test_utils.TestServer(app)) as client:
        resp = await client.get("/", allow_redirects=False)

    assert resp.status == 303
    assert resp.headers["Location"] == "/statusz"


@pytest.mark.asyncio
async def test_config_endpoint_redacts_secrets() -> None:
    app = _idle_app()

    async with test_utils.TestClient(test_utils.TestServer(app)) as client:
        resp = await client.get("/config")
        body = await resp.json()

    assert body["access_token"] == "<redacted>"
    assert body["vehicles"] == [{"vin": "VIN1", "monitor": True}]
    assert body["port"] == 8080


@pytest.mark.asyncio
async def test_latest_serves_newest_snapshot() -> None:
    class _OneSnapshot(_NullStorage):
        async def query_latest(self) -> Snapshot:
            return Snapshot(timestamp=datetime(2024, 1, 1, tzinfo=UTC), name="Daily", vin="VIN1", activity="Idle")

    recorder = Recorder(ResilientFetcher(_Api()), _NullStorage())  # type: ignore[arg-type]
    app = build_status_app(CONFIG, StateMonitor(_Api()), recorder, _OneSnapshot())

    async with test_utils.TestClient(test_utils.TestServer(app)) as client:
        resp = await client.get("/latest")
        assert resp.status == 200
        body = await resp.json()

    assert body["vin"] == "VIN1"
    assert body["activity"] == "Idle"
    assert body["timestamp"].startswith("2024-01-01T00:00:00")


@pytest.mark.asyncio
async def test_latest_on_empty_storage_returns_500() -> None:
    async with test_utils.TestClient(test_utils.TestServer(_idle_app())) as client:
        resp = await client.get("/latest")
        text = await resp.text()

    assert resp.status == 500
    assert "Is the database empty?" in text


@pytest.mark.asyncio
async def test_port_in_use_raises_recorder_error() -> None:
    first = await start_status_server(_idle_app(), 0, host="127.0.0.1")
    try:
        port = first.addresses[0][1]
        with pytest.raises(RecorderError, match="Cannot start status server"):
            await start_status_server(_idle_app(), port, host="127.0.0.1")
    finally:
        await first.cleanup()
