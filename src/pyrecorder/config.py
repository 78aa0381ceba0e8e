"""Recorder configuration for pyrecorder."""

from __future__ import annotations

import dataclasses
import json
import os
from pathlib import Path
from typing import Any

from pyrecorder._constants import (
    BASE_URL,
    DEFAULT_CONFIG_PATH,
    IDLE_SAMPLING_FREQUENCY,
    IDLE_TIME_BEFORE_SLEEP,
    POLL_INTERVAL,
)
from pyrecorder.exceptions import RecorderConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class VehicleConfig:
    """A vehicle the recorder is allowed to watch.

    ``monitor=False`` keeps the VIN on the allow-list but ignores its
    state changes.
    """

    vin: str
    monitor: bool = True


@dataclasses.dataclass(frozen=True)
class StorageConfig:
    """Snapshot storage backend selection.

    Parameters
    ----------
    backend : str
        ``"sqlite"`` or ``"influxdb"``.
    path : str
        SQLite database file (``sqlite`` backend only).
    address : str
        InfluxDB HTTP address, e.g. ``http://localhost:8086``.
    username, password : str
        InfluxDB credentials (may be empty).
    database : str
        InfluxDB database name.
    """

    backend: str = "sqlite"
    path: str = "recorder.db"
    address: str = "http://localhost:8086"
    username: str = ""
    password: str = ""
    database: str = "tesla"


@dataclasses.dataclass(frozen=True)
class PushoverConfig:
    """Pushover application token and recipient user key."""

    token: str
    user: str


@dataclasses.dataclass(frozen=True)
class RecorderConfig:
    """Recorder configuration.

    Parameters
    ----------
    access_token : str
        Bearer token for the vehicle API. It is used as-is; obtaining and
        refreshing it happens outside pyrecorder.
    base_url : str
        Vehicle API base URL.
    vehicles : tuple of VehicleConfig
        Vehicles to monitor.
    poll_interval : float
        Seconds between coarse state polls of all vehicles.
    idle_time_before_sleep : float
        How long a recording session tolerates an idle vehicle before
        it stops.
    idle_sampling_frequency : float
        Seconds between samples while the vehicle is idle.
    port : int
        Status server port. ``0`` means unset.
    notify_on_startup : bool
        When ``False`` the first observed state of every vehicle is not
        logged or pushed.
    storage : StorageConfig
        Snapshot storage backend.
    pushover : PushoverConfig or None
        Push notification credentials. Notifications are only logged
        when unset.
    """

    access_token: str = ""
    base_url: str = BASE_URL
    vehicles: tuple[VehicleConfig, ...] = ()
    poll_interval: float = POLL_INTERVAL
    idle_time_before_sleep: float = IDLE_TIME_BEFORE_SLEEP
    idle_sampling_frequency: float = IDLE_SAMPLING_FREQUENCY
    port: int = 0
    notify_on_startup: bool = True
    storage: StorageConfig = dataclasses.field(default_factory=StorageConfig)
    pushover: PushoverConfig | None = None

    def validate(self, *, require_port: bool = False) -> None:
        """Raise :class:`RecorderConfigError` if the configuration cannot run."""
        if not self.access_token:
            raise RecorderConfigError("access_token is required")
        if not self.vehicles:
            raise RecorderConfigError("No vehicles configured to monitor")
        for name in ("poll_interval", "idle_time_before_sleep", "idle_sampling_frequency"):
            if getattr(self, name) <= 0:
                raise RecorderConfigError(f"{name} must be positive")
        if self.idle_time_before_sleep < self.idle_sampling_frequency:
            raise RecorderConfigError("idle_time_before_sleep must be at least idle_sampling_frequency")
        if require_port and self.port <= 0:
            raise RecorderConfigError("Port 0 currently not supported. Please set port to continue.")
        if self.storage.backend not in {"sqlite", "influxdb"}:
            raise RecorderConfigError(f"Unknown storage backend: {self.storage.backend!r}")

    @classmethod
    def from_dict(cls, data: dict[str, Any], **overrides: Any) -> RecorderConfig:
        """Build configuration from a parsed JSON document.

        Explicit keyword arguments override values from *data*.
        """
        kwargs: dict[str, Any] = {}
        for field in dataclasses.fields(cls):
            if field.name in data:
                kwargs[field.name] = data[field.name]

        vehicles = kwargs.get("vehicles")
        if vehicles is not None:
            try:
                kwargs["vehicles"] = tuple(
                    v if isinstance(v, VehicleConfig) else VehicleConfig(**v) for v in vehicles
                )
            except TypeError as exc:
                raise RecorderConfigError(f"Invalid vehicles entry: {exc}") from exc

        storage = kwargs.get("storage")
        if isinstance(storage, dict):
            try:
                kwargs["storage"] = StorageConfig(**storage)
            except TypeError as exc:
                raise RecorderConfigError(f"Invalid storage section: {exc}") from exc

        pushover = kwargs.get("pushover")
        if isinstance(pushover, dict):
            try:
                kwargs["pushover"] = PushoverConfig(**pushover)
            except TypeError as exc:
                raise RecorderConfigError(f"Invalid pushover section: {exc}") from exc

        kwargs.update(overrides)
        return cls(**kwargs)

    @classmethod
    def from_file(cls, path: str | os.PathLike[str] | None = None, **overrides: Any) -> RecorderConfig:
        """Load configuration from a JSON file.

        Parameters
        ----------
        path
            Config file location. Defaults to ``~/.recorder_conf.json``.
        **overrides
            Explicit field values that take precedence over the file.
        """
        resolved = Path(path if path is not None else DEFAULT_CONFIG_PATH).expanduser()
        try:
            text = resolved.read_text(encoding="utf-8")
        except OSError as exc:
            raise RecorderConfigError(f"Cannot read config file {resolved}: {exc}") from exc
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise RecorderConfigError(f"Config file {resolved} is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise RecorderConfigError(f"Config file {resolved} must contain a JSON object")
        return cls.from_dict(data, **overrides)

    @classmethod
    def from_env(cls, **overrides: Any) -> RecorderConfig:
        """Create configuration from ``RECORDER_*`` environment variables.

        ``RECORDER_VINS`` is a comma separated VIN list; every listed
        vehicle is monitored. Explicit keyword arguments override
        environment values.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        _ENV_STR_MAP = {
            "RECORDER_ACCESS_TOKEN": "access_token",
            "RECORDER_BASE_URL": "base_url",
        }
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_FLOAT_MAP = {
            "RECORDER_POLL_INTERVAL": "poll_interval",
            "RECORDER_IDLE_TIME_BEFORE_SLEEP": "idle_time_before_sleep",
            "RECORDER_IDLE_SAMPLING_FREQUENCY": "idle_sampling_frequency",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                try:
                    config_kwargs[field_name] = float(val)
                except ValueError as exc:
                    raise RecorderConfigError(f"{env_key} must be a number, got {val!r}") from exc

        port_env = env.get("RECORDER_PORT")
        if port_env is not None and "port" not in overrides:
            try:
                config_kwargs["port"] = int(port_env)
            except ValueError as exc:
                raise RecorderConfigError(f"RECORDER_PORT must be an integer, got {port_env!r}") from exc

        if "notify_on_startup" not in overrides:
            config_kwargs["notify_on_startup"] = _env_bool(env.get("RECORDER_NOTIFY_ON_STARTUP"), True)

        vins_env = env.get("RECORDER_VINS")
        if vins_env is not None:
            config_kwargs["vehicles"] = tuple(
                VehicleConfig(vin=vin.strip()) for vin in vins_env.split(",") if vin.strip()
            )

        storage_kwargs: dict[str, str] = {}
        _ENV_STORAGE_MAP = {
            "RECORDER_STORAGE_BACKEND": "backend",
            "RECORDER_SQLITE_PATH": "path",
            "RECORDER_INFLUXDB_ADDRESS": "address",
            "RECORDER_INFLUXDB_USERNAME": "username",
            "RECORDER_INFLUXDB_PASSWORD": "password",
            "RECORDER_INFLUXDB_DATABASE": "database",
        }
        for env_key, field_name in _ENV_STORAGE_MAP.items():
            val = env.get(env_key)
            if val is not None:
                storage_kwargs[field_name] = val
        if storage_kwargs:
            config_kwargs["storage"] = StorageConfig(**storage_kwargs)

        push_token = env.get("RECORDER_PUSHOVER_TOKEN")
        push_user = env.get("RECORDER_PUSHOVER_USER")
        if push_token and push_user:
            config_kwargs["pushover"] = PushoverConfig(token=push_token, user=push_user)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
