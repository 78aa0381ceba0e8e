from __future__ import annotations

import asyncio
import logging

import aiohttp
import pytest
from aiohttp import test_utils, web

from pyrecorder.exceptions import NotifyError
from pyrecorder.listeners import FirstNotificationGreeter, InvocationCounter, ListenerChain
from pyrecorder.models.vehicle import VehicleStatus
from pyrecorder.notify import LoggingNotifier, PushoverNotifier, notify_safely


def _pushover_app(status: int, received: list[dict[str, str]]) -> web.Application:
    async def messages(request: web.Request) -> web.Response:
        form = await request.post()
        received.append({k: str(v) for k, v in form.items()})
        return web.json_response({"status": 1 if status == 200 else 0}, status=status)

    app = web.Application()
    app.router.add_post("/1/messages.json", messages)
    return app


@pytest.mark.asyncio
async def test_pushover_posts_form() -> None:
    received: list[dict[str, str]] = []
    async with test_utils.TestServer(_pushover_app(200, received)) as server, aiohttp.ClientSession() as session:
        notifier = PushoverNotifier("app", "me", session=session, url=str(server.make_url("/1/messages.json")))
        await notifier.notify("Success!", "Done monitoring: Daily")

    assert received == [{"token": "app", "user": "me", "title": "Success!", "message": "Done monitoring: Daily"}]


@pytest.mark.asyncio
async def test_pushover_error_status_raises() -> None:
    async with test_utils.TestServer(_pushover_app(400, [])) as server, aiohttp.ClientSession() as session:
        notifier = PushoverNotifier("app", "me", session=session, url=str(server.make_url("/1/messages.json")))
        with pytest.raises(NotifyError, match="HTTP 400"):
            await notifier.notify("title", "body")


@pytest.mark.asyncio
async def test_notify_safely_logs_failures(caplog: pytest.LogCaptureFixture) -> None:
    class _Broken:
        async def notify(self, title: str, body: str) -> None:
            raise NotifyError("no route to host")

    await notify_safely(_Broken(), "title", "body")

    assert "Cannot send notification: no route to host" in caplog.text


@pytest.mark.asyncio
async def test_logging_notifier(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="pyrecorder.notify"):
        await LoggingNotifier().notify("Success!", "Done monitoring: Daily")

    assert "Notification: Success! | Done monitoring: Daily" in caplog.text


def _slow_app() -> web.Application:
    async def messages(request: web.Request) -> web.Response:
        await asyncio.sleep(1)
        return web.json_response({"status": 1})

    app = web.Application()
    app.router.add_post("/1/messages.json", messages)
    return app


@pytest.mark.asyncio
async def test_pushover_timeout_raises_notify_error() -> None:
    timeout = aiohttp.ClientTimeout(total=0.2)
    async with test_utils.TestServer(_slow_app()) as server, aiohttp.ClientSession(timeout=timeout) as session:
        notifier = PushoverNotifier("app", "me", session=session, url=str(server.make_url("/1/messages.json")))
        with pytest.raises(NotifyError, match="Cannot send Pushover message"):
            await notifier.notify("title", "body")


@pytest.mark.asyncio
async def test_slow_pushover_does_not_stop_the_chain() -> None:
    timeout = aiohttp.ClientTimeout(total=0.2)
    counter = InvocationCounter()
    async with test_utils.TestServer(_slow_app()) as server, aiohttp.ClientSession(timeout=timeout) as session:
        notifier = PushoverNotifier("app", "me", session=session, url=str(server.make_url("/1/messages.json")))
        chain = ListenerChain.build([FirstNotificationGreeter(notifier), counter])
        await chain(VehicleStatus(id=1, vin="VIN1", display_name="Daily", state="online"))

    assert counter.count == 1
