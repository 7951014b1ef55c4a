"""Tests for HttpReadinessWaiter."""

from __future__ import annotations

import asyncio
import socket
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

import httpx
import pytest
import respx

from devsession.shared.exceptions import ReadinessTimeout
from devsession.shared.models import ReadinessTarget
from devsession.supervisor.interfaces import ReadinessWaiter
from devsession.supervisor.readiness import HttpReadinessWaiter

URL = "http://localhost:5173"

Handler = Callable[[asyncio.StreamReader, asyncio.StreamWriter], Awaitable[None]]


def _reply(status: str, delay: float = 0.0) -> Handler:
    async def _handle(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        await reader.readuntil(b"\r\n\r\n")
        await asyncio.sleep(delay)
        writer.write(f"HTTP/1.1 {status}\r\nContent-Length: 0\r\nConnection: close\r\n\r\n".encode())
        await writer.drain()
        writer.close()

    return _handle


@asynccontextmanager
async def _serve(handler: Handler) -> AsyncIterator[int]:
    server = await asyncio.start_server(handler, "127.0.0.1", 0)
    try:
        yield server.sockets[0].getsockname()[1]
    finally:
        server.close()
        await server.wait_closed()


def _unused_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def waiter() -> HttpReadinessWaiter:
    return HttpReadinessWaiter()


class TestHttpReadinessWaiter:
    def test_implements_protocol(self, waiter: HttpReadinessWaiter) -> None:
        assert isinstance(waiter, ReadinessWaiter)

    @respx.mock
    async def test_ready_after_refusals(self, waiter: HttpReadinessWaiter) -> None:
        route = respx.get(f"{URL}/").mock(
            side_effect=[
                httpx.ConnectError("connection refused"),
                httpx.ConnectError("connection refused"),
                httpx.Response(200, text="<html></html>"),
            ]
        )

        await waiter.wait_until_ready(ReadinessTarget(url=URL, timeout_seconds=5, poll_interval_seconds=0.01))

        assert route.call_count == 3

    @respx.mock
    async def test_any_http_status_counts_as_ready(self, waiter: HttpReadinessWaiter) -> None:
        route = respx.get(f"{URL}/").mock(return_value=httpx.Response(503))

        await waiter.wait_until_ready(ReadinessTarget(url=URL, timeout_seconds=1, poll_interval_seconds=0.01))

        assert route.call_count == 1

    @respx.mock
    async def test_timeout_within_one_interval(self, waiter: HttpReadinessWaiter) -> None:
        respx.get(f"{URL}/").mock(side_effect=httpx.ConnectError("connection refused"))
        target = ReadinessTarget(url=URL, timeout_seconds=0.3, poll_interval_seconds=0.05)
        loop = asyncio.get_running_loop()

        started = loop.time()
        with pytest.raises(ReadinessTimeout) as excinfo:
            await waiter.wait_until_ready(target)
        elapsed = loop.time() - started

        assert elapsed >= 0.3
        # one polling interval of overrun plus scheduler slack
        assert elapsed < 0.3 + 0.05 + 0.25
        assert excinfo.value.url == URL
        assert excinfo.value.attempts > 1

    @respx.mock
    async def test_cancel_abandons_poll_immediately(self, waiter: HttpReadinessWaiter) -> None:
        respx.get(f"{URL}/").mock(side_effect=httpx.ConnectError("connection refused"))
        target = ReadinessTarget(url=URL, timeout_seconds=30, poll_interval_seconds=5)
        loop = asyncio.get_running_loop()

        task = asyncio.create_task(waiter.wait_until_ready(target))
        await asyncio.sleep(0.05)
        started = loop.time()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert loop.time() - started < 1

    @respx.mock
    async def test_uses_injected_client(self) -> None:
        route = respx.get(f"{URL}/").mock(return_value=httpx.Response(200))

        async with httpx.AsyncClient() as client:
            waiter = HttpReadinessWaiter(client=client)
            await waiter.wait_until_ready(ReadinessTarget(url=URL, timeout_seconds=1))
            assert not client.is_closed

        assert route.called


class TestHttpReadinessWaiterLocalServer:
    async def test_slow_first_response_is_ready(self, waiter: HttpReadinessWaiter) -> None:
        # accepts at once, answers after several poll intervals (first compile)
        async with _serve(_reply("200 OK", delay=0.4)) as port:
            target = ReadinessTarget(url=f"http://127.0.0.1:{port}", timeout_seconds=2, poll_interval_seconds=0.1)
            await waiter.wait_until_ready(target)

    async def test_nothing_listening_times_out(self, waiter: HttpReadinessWaiter) -> None:
        target = ReadinessTarget(
            url=f"http://127.0.0.1:{_unused_port()}", timeout_seconds=0.3, poll_interval_seconds=0.05
        )

        with pytest.raises(ReadinessTimeout):
            await waiter.wait_until_ready(target)

    async def test_proxy_environment_is_ignored(
        self, waiter: HttpReadinessWaiter, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        for name in ("NO_PROXY", "no_proxy", "ALL_PROXY", "all_proxy", "HTTPS_PROXY", "https_proxy"):
            monkeypatch.delenv(name, raising=False)

        async with _serve(_reply("502 Bad Gateway")) as proxy_port:
            monkeypatch.setenv("HTTP_PROXY", f"http://127.0.0.1:{proxy_port}")
            monkeypatch.setenv("http_proxy", f"http://127.0.0.1:{proxy_port}")
            target = ReadinessTarget(
                url=f"http://localhost:{_unused_port()}", timeout_seconds=0.5, poll_interval_seconds=0.05
            )

            with pytest.raises(ReadinessTimeout):
                await waiter.wait_until_ready(target)
