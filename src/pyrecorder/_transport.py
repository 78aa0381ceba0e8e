"""HTTP transport for the vehicle API."""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

import aiohttp

from pyrecorder._constants import USER_AGENT
from pyrecorder.exceptions import ApiTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by :class:`~pyrecorder.client.VehicleApiClient`.

    Having a protocol here makes it easy to pass test doubles while
    keeping the production implementation (`HttpTransport`) concrete.
    """

    async def get_json(self, endpoint: str) -> dict[str, Any]:
        ...


class HttpTransport:
    """Bearer-token JSON transport over an ``aiohttp`` session."""

    def __init__(
        self,
        base_url: str,
        access_token: str,
        http_session: aiohttp.ClientSession,
        *,
        timeout: float = 30.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._access_token = access_token
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def get_json(self, endpoint: str) -> dict[str, Any]:
        """GET *endpoint* and return the decoded JSON object."""
        headers: dict[str, str] = {
            "accept": "application/json",
            "authorization": f"Bearer {self._access_token}",
            "user-agent": USER_AGENT,
        }
        url = f"{self._base_url}{endpoint}"

        _logger.debug("GET %s", url)

        try:
            async with self._http.get(url, headers=headers, timeout=self._timeout) as resp:
                text = await resp.text()
                if resp.status != 200:
                    raise ApiTransportError(
                        f"HTTP {resp.status} from {endpoint}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=endpoint,
                    )
        except ApiTransportError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise ApiTransportError(
                f"Request to {endpoint} failed: {exc}",
                endpoint=endpoint,
            ) from exc

        try:
            body: Any = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ApiTransportError(
                f"Invalid JSON from {endpoint}: {text[:200]}",
                endpoint=endpoint,
            ) from exc

        if not isinstance(body, dict):
            raise ApiTransportError(f"Expected a JSON object from {endpoint}", endpoint=endpoint)
        return body
