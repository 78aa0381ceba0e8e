"""Custom exception hierarchy for pyrecorder."""

from __future__ import annotations


class RecorderError(Exception):
    """Base exception for all pyrecorder errors."""


class RecorderConfigError(RecorderError):
    """Invalid or missing configuration."""


class ApiTransportError(RecorderError):
    """HTTP-level failure talking to the vehicle API (network, non-200, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class ApiError(RecorderError):
    """Vehicle API returned a well-formed but unusable response."""

    def __init__(self, message: str, *, endpoint: str = "") -> None:
        self.endpoint = endpoint
        super().__init__(message)


class FetchError(RecorderError):
    """A detailed vehicle fetch gave up (retry budget exhausted or stopped)."""

    def __init__(self, message: str, *, vin: str = "") -> None:
        self.vin = vin
        super().__init__(message)


class StorageError(RecorderError):
    """Storage backend failed to write or read a snapshot."""

    def __init__(self, message: str, *, operation: str = "") -> None:
        self.operation = operation
        super().__init__(message)


class NotifyError(RecorderError):
    """Push notification could not be delivered."""


class RecordingError(RecorderError):
    """A recording session ended because of an unrecoverable failure.

    The original failure is available as ``__cause__``.
    """

    def __init__(self, message: str, *, vin: str = "") -> None:
        self.vin = vin
        super().__init__(message)


class ReentrantSessionError(RecorderError):
    """A second recording session was started for a vehicle already recording.

    This is a programming error in the caller: session starts must be
    serialized per vehicle.
    """

    def __init__(self, vin: str) -> None:
        self.vin = vin
        super().__init__(f"Recorder not reentrant (car VIN {vin}).")


class VehicleInvariantError(RecorderError):
    """The vehicle API reported something the engine assumes cannot happen.

    Raised e.g. when a previously seen vehicle comes back without a state.
    """
