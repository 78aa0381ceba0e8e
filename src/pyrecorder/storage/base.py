"""Storage backend interface."""

from __future__ import annotations

from typing import Protocol

from pyrecorder.models.snapshot import Snapshot


class SnapshotStorage(Protocol):
    """A place snapshots are written to.

    Backends are interchangeable; the engine depends on nothing beyond
    the Snapshot fields. Every failure is raised as
    :class:`~pyrecorder.exceptions.StorageError`.
    """

    async def insert(self, snapshot: Snapshot) -> None:
        ...

    async def query_latest(self) -> Snapshot:
        """Return the most recent snapshot, raising ``StorageError`` if there is none."""
        ...

    async def close(self) -> None:
        ...
