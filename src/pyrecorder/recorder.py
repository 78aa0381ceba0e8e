"""Recording sessions: high-frequency sampling while a vehicle is in use.

A session repeatedly fetches telemetry, classifies the vehicle's
activity, stores a snapshot and sleeps for the classified interval.
It ends normally once the vehicle has been idle for
``idle_time_before_sleep``, and with :class:`RecordingError` when a
snapshot cannot be stored.
"""

from __future__ import annotations

import asyncio
import enum
import logging

from pyrecorder._constants import IDLE_SAMPLING_FREQUENCY, IDLE_TIME_BEFORE_SLEEP
from pyrecorder._sleep import Sleeper, sleep_or_stop
from pyrecorder.activity import classify
from pyrecorder.exceptions import FetchError, RecordingError, ReentrantSessionError
from pyrecorder.fetcher import ResilientFetcher
from pyrecorder.models.snapshot import Snapshot
from pyrecorder.models.vehicle import VehicleStatus
from pyrecorder.storage.base import SnapshotStorage

_logger = logging.getLogger(__name__)


def idle_samples_before_sleep(idle_time_before_sleep: float, idle_sampling_frequency: float) -> int:
    """Number of consecutive idle samples a session tolerates."""
    if idle_sampling_frequency <= 0:
        raise ValueError("idle_sampling_frequency must be positive")
    return max(1, int(idle_time_before_sleep // idle_sampling_frequency))


class SessionState(enum.StrEnum):
    STARTING = "starting"
    ACTIVE = "active"
    IDLE_COUNTDOWN = "idle_countdown"
    STOPPED = "stopped"


class RecordingSession:
    """One bounded recording run for one vehicle.

    Cycles never overlap: fetch → classify → store → sleep. Call
    :meth:`stop` to end the session at the next suspension point.
    """

    def __init__(
        self,
        vehicle: VehicleStatus,
        fetcher: ResilientFetcher,
        storage: SnapshotStorage,
        *,
        idle_time_before_sleep: float = IDLE_TIME_BEFORE_SLEEP,
        idle_sampling_frequency: float = IDLE_SAMPLING_FREQUENCY,
        sleep: Sleeper = sleep_or_stop,
    ) -> None:
        self.vehicle = vehicle
        self._fetcher = fetcher
        self._storage = storage
        self._idle_sampling_frequency = idle_sampling_frequency
        self._idle_budget = idle_samples_before_sleep(idle_time_before_sleep, idle_sampling_frequency)
        self._sleep = sleep
        self._stop = asyncio.Event()
        self.state = SessionState.STARTING
        self.idle_samples_remaining = self._idle_budget
        self.cycles = 0
        self.last_snapshot: Snapshot | None = None

    @property
    def idle_budget(self) -> int:
        return self._idle_budget

    def stop(self) -> None:
        """Request the session to end; in-flight sleeps and retries are interrupted."""
        self._stop.set()

    async def run(self) -> None:
        """Record until idle expiry (returns) or a storage failure (raises)."""
        vin = self.vehicle.vin
        try:
            while not self._stop.is_set():
                try:
                    data = await self._fetcher.fetch(self.vehicle, stop_event=self._stop)
                except FetchError:
                    if self._stop.is_set():
                        break
                    raise

                classification = classify(data, idle_interval=self._idle_sampling_frequency)
                snapshot = Snapshot.from_vehicle_data(data, activity=classification.description)

                try:
                    await self._storage.insert(snapshot)
                except Exception as exc:
                    raise RecordingError(f"cannot write data for VIN {vin} to storage", vin=vin) from exc
                self.last_snapshot = snapshot
                self.cycles += 1

                if classification.begin_idle_countdown:
                    self.idle_samples_remaining -= 1
                    self.state = SessionState.IDLE_COUNTDOWN
                    if self.idle_samples_remaining <= 0:
                        _logger.info("Done monitoring VIN %s.", vin)
                        return
                    _logger.info("Recording ends for car %s in %d samples.", vin, self.idle_samples_remaining)
                else:
                    self.idle_samples_remaining = self._idle_budget
                    self.state = SessionState.ACTIVE

                if await self._sleep(classification.interval, self._stop):
                    break
            _logger.info("Recording for VIN %s stopped on request.", vin)
        finally:
            self.state = SessionState.STOPPED


class Recorder:
    """Starts recording sessions, at most one per vehicle at a time."""

    def __init__(
        self,
        fetcher: ResilientFetcher,
        storage: SnapshotStorage,
        *,
        idle_time_before_sleep: float = IDLE_TIME_BEFORE_SLEEP,
        idle_sampling_frequency: float = IDLE_SAMPLING_FREQUENCY,
        sleep: Sleeper = sleep_or_stop,
    ) -> None:
        self._fetcher = fetcher
        self._storage = storage
        self._idle_time_before_sleep = idle_time_before_sleep
        self._idle_sampling_frequency = idle_sampling_frequency
        self._sleep = sleep
        self._sessions: dict[str, RecordingSession] = {}
        self._tasks: dict[str, asyncio.Task[None]] = {}

    def is_recording(self, vin: str) -> bool:
        return vin in self._sessions

    @property
    def active_vins(self) -> list[str]:
        return sorted(self._sessions)

    def session_for(self, vin: str) -> RecordingSession | None:
        return self._sessions.get(vin)

    def _claim(self, vehicle: VehicleStatus) -> RecordingSession:
        # Check-and-set runs without an await in between, so it is atomic
        # on the event loop.
        if vehicle.vin in self._sessions:
            raise ReentrantSessionError(vehicle.vin)
        session = RecordingSession(
            vehicle,
            self._fetcher,
            self._storage,
            idle_time_before_sleep=self._idle_time_before_sleep,
            idle_sampling_frequency=self._idle_sampling_frequency,
            sleep=self._sleep,
        )
        self._sessions[vehicle.vin] = session
        return session

    def _release(self, session: RecordingSession) -> None:
        vin = session.vehicle.vin
        if self._sessions.get(vin) is session:
            del self._sessions[vin]
            self._tasks.pop(vin, None)

    async def _run_claimed(self, session: RecordingSession) -> None:
        try:
            await session.run()
        finally:
            self._release(session)

    async def record(self, vehicle: VehicleStatus) -> None:
        """Record *vehicle* in the current task until the session ends.

        Raises
        ------
        ReentrantSessionError
            If *vehicle* is already recording. Raised before any fetch.
        RecordingError
            If a snapshot could not be stored.
        """
        session = self._claim(vehicle)
        await self._run_claimed(session)

    def start(self, vehicle: VehicleStatus) -> asyncio.Task[None]:
        """Start recording *vehicle* in a background task.

        The vehicle is marked as recording before this returns, so a
        second ``start`` for the same VIN raises
        :class:`ReentrantSessionError` immediately.
        """
        session = self._claim(vehicle)
        task = asyncio.create_task(self._run_claimed(session), name=f"recording-{vehicle.vin}")
        # A task cancelled before its first step never enters _run_claimed.
        task.add_done_callback(lambda _task: self._release(session))
        self._tasks[vehicle.vin] = task
        return task

    async def stop_all(self) -> None:
        """Stop every running session and wait for them to finish."""
        tasks = list(self._tasks.values())
        for session in list(self._sessions.values()):
            session.stop()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
