"""Push notification delivery."""

from __future__ import annotations

import logging
from typing import Protocol

import aiohttp

from pyrecorder.exceptions import NotifyError

_logger = logging.getLogger(__name__)

PUSHOVER_URL = "https://api.pushover.net/1/messages.json"


class Notifier(Protocol):
    async def notify(self, title: str, body: str) -> None:
        """Deliver a message. Raises :class:`NotifyError` on failure."""
        ...


class LoggingNotifier:
    """Notifier used when no push service is configured."""

    async def notify(self, title: str, body: str) -> None:
        _logger.info("Notification: %s | %s", title, body)


class PushoverNotifier:
    """Sends messages through the Pushover API."""

    def __init__(
        self,
        token: str,
        user: str,
        *,
        session: aiohttp.ClientSession | None = None,
        url: str = PUSHOVER_URL,
    ) -> None:
        self._token = token
        self._user = user
        self._url = url
        self._external_session = session is not None
        self._http = session

    async def notify(self, title: str, body: str) -> None:
        if self._http is None:
            self._http = aiohttp.ClientSession()
        form = {
            "token": self._token,
            "user": self._user,
            "title": title[:250],
            "message": body[:1024] or title,
        }
        try:
            async with self._http.post(self._url, data=form) as resp:
                if resp.status != 200:
                    text = await resp.text()
                    raise NotifyError(f"HTTP {resp.status} from Pushover: {text[:200]}")
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise NotifyError(f"Cannot send Pushover message: {exc}") from exc

    async def close(self) -> None:
        if not self._external_session and self._http is not None:
            await self._http.close()
        self._http = None


async def notify_safely(notifier: Notifier, title: str, body: str) -> None:
    """Send a notification, logging instead of raising on failure."""
    try:
        await notifier.notify(title, body)
    except NotifyError as exc:
        _logger.error("Cannot send notification: %s", exc)
