from __future__ import annotations

import asyncio
import logging

import pytest

from pyrecorder.exceptions import ApiTransportError, VehicleInvariantError
from pyrecorder.models.vehicle import VehicleStatus
from pyrecorder.models.vehicle_data import VehicleData
from pyrecorder.monitor import StateMonitor, has_changed


def _status(vin: str, state: str | None) -> VehicleStatus:
    return VehicleStatus(id=vin, vin=vin, display_name=f"Car {vin}", state=state)


class _ScriptedApi:
    def __init__(self, *polls: list[VehicleStatus] | Exception) -> None:
        self._polls = list(polls)
        self.calls = 0

    async def list_vehicles(self) -> list[VehicleStatus]:
        result = self._polls[min(self.calls, len(self._polls) - 1)]
        self.calls += 1
        if isinstance(result, Exception):
            raise result
        return result

    async def fetch_vehicle_data(self, vehicle_id: int | str) -> VehicleData:
        raise AssertionError("the monitor never fetches detailed data")


class _Collector:
    def __init__(self) -> None:
        self.seen: list[tuple[str, str | None]] = []

    async def __call__(self, vehicle: VehicleStatus) -> None:
        self.seen.append((vehicle.vin, vehicle.state))


# ------------------------------------------------------------------
# has_changed
# ------------------------------------------------------------------


def test_first_observation_is_a_change() -> None:
    assert has_changed(None, _status("A", "asleep")) is True
    assert has_changed(None, _status("A", None)) is True


def test_same_state_is_not_a_change() -> None:
    assert has_changed(_status("A", "online"), _status("A", "online")) is False


def test_different_state_is_a_change() -> None:
    assert has_changed(_status("A", "asleep"), _status("A", "online")) is True


def test_missing_current_violates_invariant() -> None:
    with pytest.raises(VehicleInvariantError):
        has_changed(_status("A", "online"), None)


def test_losing_state_violates_invariant() -> None:
    with pytest.raises(VehicleInvariantError):
        has_changed(_status("A", "online"), _status("A", None))


# ------------------------------------------------------------------
# StateMonitor
# ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_poll_reports_only_changes() -> None:
    api = _ScriptedApi(
        [_status("A", "asleep"), _status("B", "online")],
        [_status("A", "online"), _status("B", "online")],
        [_status("A", "online"), _status("B", "online")],
    )
    collector = _Collector()
    monitor = StateMonitor(api)
    monitor.add_listener(collector)

    for _ in range(3):
        await monitor.poll_once()
    await monitor.drain()

    assert collector.seen == [("A", "asleep"), ("B", "online"), ("A", "online")]
    assert monitor.statuses["A"].state == "online"
    assert monitor.poll_count == 3


@pytest.mark.asyncio
async def test_every_listener_is_invoked_once_per_change() -> None:
    api = _ScriptedApi([_status("A", "online")])
    first, second = _Collector(), _Collector()
    monitor = StateMonitor(api)
    monitor.add_listener(first)
    monitor.add_listener(second)

    changed = await monitor.poll_once()
    await monitor.drain()

    assert [v.vin for v in changed] == ["A"]
    assert first.seen == [("A", "online")]
    assert second.seen == [("A", "online")]


@pytest.mark.asyncio
async def test_list_failure_is_logged_and_cache_kept(caplog: pytest.LogCaptureFixture) -> None:
    api = _ScriptedApi([_status("A", "online")], ApiTransportError("HTTP 500", status_code=500))
    monitor = StateMonitor(api)
    await monitor.poll_once()

    with caplog.at_level(logging.ERROR, logger="pyrecorder.monitor"):
        assert await monitor.poll_once() == []

    assert "Error while fetching vehicles status." in caplog.text
    assert monitor.statuses["A"].state == "online"


@pytest.mark.asyncio
async def test_invariant_violation_skips_vehicle_but_updates_cache() -> None:
    api = _ScriptedApi(
        [_status("A", "online"), _status("B", "asleep")],
        [_status("A", None), _status("B", "online")],
        [_status("A", "asleep"), _status("B", "online")],
    )
    collector = _Collector()
    monitor = StateMonitor(api)
    monitor.add_listener(collector)

    await monitor.poll_once()
    second = await monitor.poll_once()
    third = await monitor.poll_once()
    await monitor.drain()

    assert [v.vin for v in second] == ["B"]
    assert monitor.statuses["B"].state == "online"
    # The cache moved to the stateless observation, so "asleep" counts as a change.
    assert [v.vin for v in third] == ["A"]
    assert ("A", None) not in collector.seen


@pytest.mark.asyncio
async def test_failing_listener_does_not_affect_others(caplog: pytest.LogCaptureFixture) -> None:
    async def broken(vehicle: VehicleStatus) -> None:
        raise RuntimeError("boom")

    api = _ScriptedApi([_status("A", "online")])
    collector = _Collector()
    monitor = StateMonitor(api)
    monitor.add_listener(broken)
    monitor.add_listener(collector)

    await monitor.poll_once()
    await monitor.drain()

    assert collector.seen == [("A", "online")]
    assert "Listener failed for vehicle A" in caplog.text


@pytest.mark.asyncio
async def test_run_polls_until_stopped() -> None:
    api = _ScriptedApi([_status("A", "online")])
    stop_event = asyncio.Event()
    intervals: list[float] = []

    async def sleep(delay: float, event: asyncio.Event | None = None) -> bool:
        intervals.append(delay)
        if len(intervals) == 3:
            stop_event.set()
        return stop_event.is_set()

    monitor = StateMonitor(api, poll_interval=10, sleep=sleep)
    await monitor.run(stop_event)

    assert api.calls == 3
    assert intervals == [10, 10, 10]
