"""Async client for the vehicle owner API."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import aiohttp
from pydantic import ValidationError

from pyrecorder._transport import HttpTransport, Transport
from pyrecorder.config import RecorderConfig
from pyrecorder.exceptions import ApiError, RecorderError
from pyrecorder.models.vehicle import VehicleStatus
from pyrecorder.models.vehicle_data import VehicleData

_logger = logging.getLogger(__name__)


class VehicleApi(Protocol):
    """What the polling engine needs from a vehicle API client."""

    async def list_vehicles(self) -> list[VehicleStatus]:
        ...

    async def fetch_vehicle_data(self, vehicle_id: int | str) -> VehicleData:
        ...


def _unwrap_response(body: dict[str, Any], endpoint: str) -> Any:
    if "response" not in body:
        error = body.get("error")
        if error:
            raise ApiError(f"{endpoint} failed: {error}", endpoint=endpoint)
        raise ApiError(f"Missing 'response' field from {endpoint}", endpoint=endpoint)
    return body["response"]


class VehicleApiClient:
    """Async client for the vehicle owner API.

    Usage::

        async with VehicleApiClient(config) as client:
            vehicles = await client.list_vehicles()
            data = await client.fetch_vehicle_data(vehicles[0].id)
    """

    def __init__(
        self,
        config: RecorderConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._transport = transport

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> VehicleApiClient:
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = HttpTransport(
                self._config.base_url,
                self._config.access_token,
                self._http_session,
            )
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
            self._transport = None

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise RecorderError("Client not initialized. Use 'async with VehicleApiClient(...) as client:'")
        return self._transport

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    async def list_vehicles(self) -> list[VehicleStatus]:
        """List every vehicle on the account with its coarse state."""
        endpoint = "/api/1/vehicles"
        body = await self._require_transport().get_json(endpoint)
        items = _unwrap_response(body, endpoint)
        if not isinstance(items, list):
            raise ApiError(f"Expected a vehicle list from {endpoint}", endpoint=endpoint)
        try:
            vehicles = [VehicleStatus.model_validate(item) for item in items]
        except ValidationError as exc:
            raise ApiError(f"Unexpected vehicle entry from {endpoint}: {exc}", endpoint=endpoint) from exc
        _logger.debug("Listed %d vehicles", len(vehicles))
        return vehicles

    async def fetch_vehicle_data(self, vehicle_id: int | str) -> VehicleData:
        """Fetch detailed telemetry for one vehicle.

        Safe to retry: the call has no side effects on the vehicle.
        """
        endpoint = f"/api/1/vehicles/{vehicle_id}/vehicle_data"
        body = await self._require_transport().get_json(endpoint)
        payload = _unwrap_response(body, endpoint)
        if not isinstance(payload, dict):
            raise ApiError(f"Expected vehicle data from {endpoint}", endpoint=endpoint)
        try:
            return VehicleData.model_validate(payload)
        except ValidationError as exc:
            raise ApiError(f"Unexpected vehicle data from {endpoint}: {exc}", endpoint=endpoint) from exc
