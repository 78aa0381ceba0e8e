from __future__ import annotations

import dataclasses

from pyrecorder._redact import redact_for_log
from pyrecorder.config import PushoverConfig, RecorderConfig, StorageConfig, VehicleConfig


def test_redact_for_log_redacts_sensitive_keys() -> None:
    payload = {
        "access_token": "secret",
        "Authorization": "Bearer secret",
        "nested": {"password": "pw", "database": "tesla"},
        "vins": ["VIN1"],
    }

    redacted = redact_for_log(payload)
    assert redacted["access_token"] == "<redacted>"
    assert redacted["Authorization"] == "<redacted>"
    assert redacted["nested"]["password"] == "<redacted>"
    assert redacted["nested"]["database"] == "tesla"
    assert redacted["vins"] == ["VIN1"]


def test_redact_for_log_keeps_empty_secrets_visible() -> None:
    assert redact_for_log({"password": ""}) == {"password": ""}


def test_redact_full_config() -> None:
    config = RecorderConfig(
        access_token="tok",
        vehicles=(VehicleConfig("VIN1"),),
        storage=StorageConfig(backend="influxdb", username="admin", password="pw"),
        pushover=PushoverConfig(token="app", user="me"),
    )

    redacted = redact_for_log(dataclasses.asdict(config))

    assert redacted["access_token"] == "<redacted>"
    assert redacted["storage"]["password"] == "<redacted>"
    assert redacted["storage"]["username"] == "admin"
    assert redacted["pushover"] == {"token": "<redacted>", "user": "<redacted>"}
    assert redacted["vehicles"] == [{"vin": "VIN1", "monitor": True}]
