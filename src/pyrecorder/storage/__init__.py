"""Snapshot storage backends.

The relational (SQLite) and time-series (InfluxDB) backends are
interchangeable behind :class:`SnapshotStorage`.
"""

from __future__ import annotations

from pyrecorder.config import StorageConfig
from pyrecorder.exceptions import RecorderConfigError
from pyrecorder.storage.base import SnapshotStorage
from pyrecorder.storage.influxdb import InfluxDbStorage
from pyrecorder.storage.sqlite import SqliteStorage


async def open_storage(config: StorageConfig) -> SnapshotStorage:
    """Open the backend selected by *config*."""
    if config.backend == "sqlite":
        return await SqliteStorage.open(config.path)
    if config.backend == "influxdb":
        return InfluxDbStorage(
            config.address,
            config.database,
            username=config.username,
            password=config.password,
        )
    raise RecorderConfigError(f"Unknown storage backend: {config.backend!r}")


__all__ = [
    "InfluxDbStorage",
    "SnapshotStorage",
    "SqliteStorage",
    "open_storage",
]
