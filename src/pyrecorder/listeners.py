"""Listener chain for coarse state changes.

A chain is an ordered list of decorators wrapped around one terminal
handler and built once at startup::

    chain = ListenerChain.build(
        [VehicleFilter(vin), InvocationCounter(), RecordingTrigger(recorder, notifier)],
        LogAndNotifyHandler(notifier),
    )
    monitor.add_listener(chain)

Each decorator forwards to the next handler exactly once per event,
except :class:`VehicleFilter` and :class:`IgnoreFirstInvocation` which
may drop an event. Decorators keep private counters and are not safe to
share between chains.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Protocol

from pyrecorder.exceptions import RecorderError
from pyrecorder.models.vehicle import VehicleStatus
from pyrecorder.notify import Notifier, notify_safely
from pyrecorder.recorder import Recorder

_logger = logging.getLogger(__name__)


class Handler(Protocol):
    async def handle(self, vehicle: VehicleStatus) -> None:
        ...


class ListenerDecorator:
    """Base for handlers that wrap another handler."""

    def __init__(self) -> None:
        self._inner: Handler | None = None

    def bind(self, inner: Handler) -> None:
        self._inner = inner

    async def forward(self, vehicle: VehicleStatus) -> None:
        if self._inner is None:
            raise RecorderError(f"{type(self).__name__} is not bound to a handler")
        await self._inner.handle(vehicle)

    async def handle(self, vehicle: VehicleStatus) -> None:
        await self.forward(vehicle)


# ------------------------------------------------------------------
# Terminal handlers
# ------------------------------------------------------------------


class NoOpHandler:
    async def handle(self, vehicle: VehicleStatus) -> None:
        return None


class LogAndNotifyHandler:
    """Logs the state change and pushes it to the user."""

    def __init__(self, notifier: Notifier) -> None:
        self._notifier = notifier

    async def handle(self, vehicle: VehicleStatus) -> None:
        _logger.info("Vehicle %s state changed: %r", vehicle.display_name, vehicle)
        await notify_safely(
            self._notifier,
            f"Vehicle {vehicle.display_name} state changed to {vehicle.state_label}",
            f"VIN {vehicle.vin} is now {vehicle.state_label}",
        )


# ------------------------------------------------------------------
# Decorators
# ------------------------------------------------------------------


class VehicleFilter(ListenerDecorator):
    """Passes only events for one VIN, and only if monitoring is enabled."""

    def __init__(self, vin: str, *, monitor: bool = True) -> None:
        super().__init__()
        self.vin = vin.strip().upper()
        self.monitor = monitor

    async def handle(self, vehicle: VehicleStatus) -> None:
        if vehicle.vin != self.vin:
            return
        if not self.monitor:
            _logger.info("Ignored update for VIN %s. Monitoring disabled in config.", vehicle.vin)
            return
        await self.forward(vehicle)


class InvocationCounter(ListenerDecorator):
    def __init__(self) -> None:
        super().__init__()
        self.count = 0

    async def handle(self, vehicle: VehicleStatus) -> None:
        self.count += 1
        _logger.info("Count for %s is %d.", vehicle.display_name, self.count)
        await self.forward(vehicle)


class IgnoreFirstInvocation(ListenerDecorator):
    """Drops the first event, i.e. the state observed at process startup."""

    def __init__(self) -> None:
        super().__init__()
        self._seen_first = False

    async def handle(self, vehicle: VehicleStatus) -> None:
        if not self._seen_first:
            self._seen_first = True
            _logger.info("Ignoring initial state %s of %s", vehicle.state_label, vehicle.display_name)
            return
        await self.forward(vehicle)


class FirstNotificationGreeter(ListenerDecorator):
    """Sends a "monitoring is ready" message on the first event."""

    def __init__(self, notifier: Notifier) -> None:
        super().__init__()
        self._notifier = notifier
        self._is_first = True

    async def handle(self, vehicle: VehicleStatus) -> None:
        if self._is_first:
            self._is_first = False
            await notify_safely(
                self._notifier,
                f"Monitoring for {vehicle.display_name} is ready!",
                f"Car's state: {vehicle.state_label}",
            )
        await self.forward(vehicle)


class RecordingTrigger(ListenerDecorator):
    """Starts a background recording session when a vehicle comes online.

    The outcome of the session (idle expiry or error) is pushed through
    the notifier once it ends.
    """

    def __init__(self, recorder: Recorder, notifier: Notifier) -> None:
        super().__init__()
        self._recorder = recorder
        self._notifier = notifier
        self._watchers: set[asyncio.Task[None]] = set()

    async def handle(self, vehicle: VehicleStatus) -> None:
        if not vehicle.is_online:
            _logger.info("Not recording metrics for %s because it's not online.", vehicle.display_name)
        elif self._recorder.is_recording(vehicle.vin):
            _logger.info("Already recording %s, not starting another session.", vehicle.vin)
        else:
            task = self._recorder.start(vehicle)
            watcher = asyncio.create_task(self._report(vehicle, task))
            self._watchers.add(watcher)
            watcher.add_done_callback(self._watchers.discard)
        await self.forward(vehicle)

    async def _report(self, vehicle: VehicleStatus, task: asyncio.Task[None]) -> None:
        title = "Success!"
        try:
            await task
        except asyncio.CancelledError:
            title = "Cancelled"
        except Exception as exc:
            _logger.error("Stopped recording loop for VIN %s: %s", vehicle.vin, exc, exc_info=exc)
            title = f"Error: {exc}"
        await notify_safely(self._notifier, title, f"Done monitoring: {vehicle.display_name}")

    async def wait_idle(self) -> None:
        """Wait until every session started by this trigger has been reported."""
        while self._watchers:
            await asyncio.gather(*list(self._watchers))


class ListenerChain:
    """An ordered decorator list composed around a terminal handler.

    Calling the chain (``await chain(vehicle)``) runs the first
    decorator, so the chain itself is a state monitor listener.
    """

    def __init__(self, head: Handler, decorators: Sequence[ListenerDecorator], terminal: Handler) -> None:
        self._head = head
        self.decorators = tuple(decorators)
        self.terminal = terminal

    @classmethod
    def build(cls, decorators: Sequence[ListenerDecorator], terminal: Handler | None = None) -> ListenerChain:
        """Bind *decorators* in order, the first one seeing events first."""
        terminal = terminal if terminal is not None else NoOpHandler()
        inner: Handler = terminal
        for decorator in reversed(decorators):
            decorator.bind(inner)
            inner = decorator
        return cls(inner, decorators, terminal)

    async def handle(self, vehicle: VehicleStatus) -> None:
        await self._head.handle(vehicle)

    async def __call__(self, vehicle: VehicleStatus) -> None:
        await self._head.handle(vehicle)
