"""pyrecorder - Adaptive polling recorder for connected vehicle telemetry."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyrecorder")
except PackageNotFoundError:
    __version__ = "0+local"
from pyrecorder.activity import Activity, ActivityClassification, classify
from pyrecorder.client import VehicleApi, VehicleApiClient
from pyrecorder.config import PushoverConfig, RecorderConfig, StorageConfig, VehicleConfig
from pyrecorder.exceptions import (
    ApiError,
    ApiTransportError,
    FetchError,
    NotifyError,
    RecorderConfigError,
    RecorderError,
    RecordingError,
    ReentrantSessionError,
    StorageError,
    VehicleInvariantError,
)
from pyrecorder.fetcher import BackoffPolicy, ResilientFetcher
from pyrecorder.listeners import (
    FirstNotificationGreeter,
    IgnoreFirstInvocation,
    InvocationCounter,
    ListenerChain,
    LogAndNotifyHandler,
    NoOpHandler,
    RecordingTrigger,
    VehicleFilter,
)
from pyrecorder.models import ChargeSession, ChargingState, Snapshot, VehicleData, VehicleStatus
from pyrecorder.monitor import StateMonitor, has_changed
from pyrecorder.rate_limiter import DurationCalculator, RateLimiter
from pyrecorder.recorder import Recorder, RecordingSession
from pyrecorder.tracker import SnapshotTracker

__all__ = [
    "__version__",
    "Activity",
    "ActivityClassification",
    "ApiError",
    "ApiTransportError",
    "BackoffPolicy",
    "ChargeSession",
    "ChargingState",
    "DurationCalculator",
    "FetchError",
    "FirstNotificationGreeter",
    "IgnoreFirstInvocation",
    "InvocationCounter",
    "ListenerChain",
    "LogAndNotifyHandler",
    "NoOpHandler",
    "NotifyError",
    "PushoverConfig",
    "RateLimiter",
    "Recorder",
    "RecorderConfig",
    "RecorderConfigError",
    "RecorderError",
    "RecordingError",
    "RecordingSession",
    "RecordingTrigger",
    "ReentrantSessionError",
    "ResilientFetcher",
    "SnapshotTracker",
    "Snapshot",
    "StateMonitor",
    "StorageConfig",
    "StorageError",
    "VehicleApi",
    "VehicleApiClient",
    "VehicleConfig",
    "VehicleData",
    "VehicleFilter",
    "VehicleInvariantError",
    "VehicleStatus",
    "classify",
    "has_changed",
]
