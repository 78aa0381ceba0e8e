"""Interruptible sleeping shared by the polling loops."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

Sleeper = Callable[[float, "asyncio.Event | None"], Awaitable[bool]]
"""``await sleep(delay, stop_event)`` returns ``True`` if stopped early."""


async def sleep_or_stop(delay: float, stop_event: asyncio.Event | None = None) -> bool:
    """Sleep for *delay* seconds unless *stop_event* is set first.

    Returns ``True`` when the stop event fired (before or during the
    sleep), ``False`` when the full delay elapsed.
    """
    if stop_event is None:
        await asyncio.sleep(delay)
        return False
    if stop_event.is_set():
        return True
    try:
        await asyncio.wait_for(stop_event.wait(), timeout=max(delay, 0.0))
    except TimeoutError:
        return False
    return True
