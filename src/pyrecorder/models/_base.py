"""Base model and enum for vehicle API payloads.

Every vehicle API model inherits from :class:`RecorderBaseModel` which
provides:

* A ``model_validator(mode="before")`` that strips sentinel values
  (``""``, NaN) so the field default (``None``) is used. An absent
  value therefore always means "not reported", never an empty string.
* A ``raw`` dict that captures the original payload.

State enums inherit from :class:`RecorderEnum` which adds an
``UNKNOWN`` member and a ``_missing_`` hook that returns ``UNKNOWN``
for any string without a mapped member.
"""

from __future__ import annotations

import enum
import math
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

_SENTINELS = frozenset({"", "NaN", "nan"})

# Threshold to distinguish seconds from milliseconds.
_MS_THRESHOLD = 1_000_000_000_000


def parse_epoch_timestamp(value: Any) -> datetime | None:
    """Convert an epoch timestamp (seconds **or** milliseconds) to a UTC datetime."""
    if value is None:
        return value
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value
    ts = int(value)
    if ts >= _MS_THRESHOLD:
        ts = ts // 1000
    return datetime.fromtimestamp(ts, tz=UTC)


class RecorderEnum(enum.StrEnum):
    """Base for vehicle API state enums.

    Every subclass **must** define ``UNKNOWN``. Strings the API sends
    that have no mapped member resolve to ``UNKNOWN`` instead of
    raising ``ValueError``.
    """

    @classmethod
    def _missing_(cls, value: object) -> RecorderEnum:
        if hasattr(cls, "UNKNOWN"):
            unknown: RecorderEnum = cls.UNKNOWN  # type: ignore[attr-defined]
            return unknown
        return next(iter(cls))


class RecorderBaseModel(BaseModel):
    """Base for vehicle API payload models.

    Handles:
    * Sentinel values (``""``, NaN) → dropped so the field default is used
    * Stashes the original API dict in ``raw``
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    raw: dict[str, Any] = Field(default_factory=dict, repr=False)
    """Original API payload."""

    @staticmethod
    def _clean_dict(values: dict[str, Any]) -> dict[str, Any]:
        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            if isinstance(value, str) and value.strip() in _SENTINELS:
                continue
            if isinstance(value, float) and math.isnan(value):
                continue
            cleaned[key] = value
        return cleaned

    @model_validator(mode="before")
    @classmethod
    def _clean_api_values(cls, values: Any) -> Any:
        """Strip sentinel values and stash the raw payload."""
        if not isinstance(values, dict):
            return values
        cleaned = RecorderBaseModel._clean_dict(values)
        # Keep an explicitly supplied raw= (kwargs construction).
        if "raw" not in values:
            cleaned["raw"] = dict(values)
        return cleaned
