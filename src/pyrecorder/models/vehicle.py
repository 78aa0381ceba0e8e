"""Coarse vehicle status model.

Mapped from the ``/api/1/vehicles`` list response. Only the fields the
state monitor needs are typed; everything else stays in ``raw``.
"""

from __future__ import annotations

from pydantic import AliasChoices, Field, field_validator

from pyrecorder.models._base import RecorderBaseModel, RecorderEnum


class OnlineState(RecorderEnum):
    """Coarse wake state reported by the vehicle list."""

    UNKNOWN = "unknown"
    ONLINE = "online"
    ASLEEP = "asleep"
    OFFLINE = "offline"


class VehicleStatus(RecorderBaseModel):
    """A vehicle associated with the account, as seen by one list call.

    Held only as "previous" vs "current" for change detection.
    """

    id: int | str = Field(default="", validation_alias=AliasChoices("id", "id_s"))
    """API identifier used for per-vehicle requests."""
    vehicle_id: int | None = Field(default=None)
    """Vehicle identifier used by the streaming API."""
    vin: str = Field(default="")
    """Vehicle Identification Number."""
    display_name: str = Field(default="", validation_alias=AliasChoices("display_name", "displayName"))
    """User-defined vehicle name."""
    state: str | None = Field(default=None, validation_alias=AliasChoices("state", "onlineState"))
    """Coarse state string (``"online"``, ``"asleep"``, ``"offline"``), ``None`` if unreported."""

    @field_validator("vin")
    @classmethod
    def _normalize_vin(cls, value: str) -> str:
        return value.strip().upper()

    @property
    def online_state(self) -> OnlineState:
        if self.state is None:
            return OnlineState.UNKNOWN
        return OnlineState(self.state)

    @property
    def is_online(self) -> bool:
        return self.online_state == OnlineState.ONLINE

    @property
    def state_label(self) -> str:
        """State string for logs and notifications."""
        return self.state if self.state is not None else "<unknown>"
