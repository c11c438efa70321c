"""Tests for the httpx-backed Transport."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from reqio.cancellation import CancellationRegistry
from reqio.exceptions import AbortError, NetworkError
from reqio.models import RequestConfig
from reqio.transport import Transport

URL = "https://api.example.com/posts"


def _config(**kwargs) -> RequestConfig:
    kwargs.setdefault("method", "GET")
    kwargs.setdefault("url", URL)
    return RequestConfig(**kwargs)


class TestSend:
    async def test_returns_response_for_any_status(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(418, json={"teapot": True})

        async with Transport(transport=httpx.MockTransport(handler)) as transport:
            response = await transport.send(_config())

        assert response.status_code == 418
        assert response.json() == {"teapot": True}

    async def test_forwards_method_headers_and_body(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={})

        config = _config(
            method="post",
            headers={"Content-Type": "application/json", "X-Trace": "abc"},
            body='{"a": 1}',
        )
        async with Transport(transport=httpx.MockTransport(handler)) as transport:
            await transport.send(config)

        assert seen[0].method == "POST"
        assert seen[0].headers["x-trace"] == "abc"
        assert seen[0].content == b'{"a": 1}'

    async def test_default_and_override_timeout(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={})

        async with Transport(timeout=7, transport=httpx.MockTransport(handler)) as transport:
            await transport.send(_config())
            await transport.send(_config(timeout=1.5))

        assert seen[0].extensions["timeout"]["connect"] == 7
        assert seen[1].extensions["timeout"]["connect"] == 1.5

    async def test_close(self) -> None:
        transport = Transport(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        assert transport.is_closed is False
        await transport.aclose()
        assert transport.is_closed is True


class TestErrors:
    async def test_connect_error_maps_to_network_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async with Transport(transport=httpx.MockTransport(handler)) as transport:
            with pytest.raises(NetworkError):
                await transport.send(_config())

    async def test_timeout_maps_to_network_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("slow", request=request)

        async with Transport(transport=httpx.MockTransport(handler)) as transport:
            with pytest.raises(NetworkError, match="timed out"):
                await transport.send(_config())


class TestAbort:
    async def test_already_aborted_signal_fails_without_sending(self) -> None:
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200)

        handle = CancellationRegistry().create("GET", URL)
        handle.abort()

        async with Transport(transport=httpx.MockTransport(handler)) as transport:
            with pytest.raises(AbortError):
                await transport.send(_config(), handle)
        assert calls == []

    async def test_abort_during_exchange(self) -> None:
        started = asyncio.Event()
        finished: list[bool] = []

        async def handler(request: httpx.Request) -> httpx.Response:
            started.set()
            await asyncio.sleep(30)
            finished.append(True)
            return httpx.Response(200)

        handle = CancellationRegistry().create("GET", URL)
        async with Transport(transport=httpx.MockTransport(handler)) as transport:
            task = asyncio.create_task(transport.send(_config(), handle))
            await started.wait()
            handle.abort()
            with pytest.raises(AbortError):
                await task
        assert finished == []

    async def test_unaborted_signal_returns_response(self) -> None:
        handle = CancellationRegistry().create("GET", URL)

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"ok": True})

        async with Transport(transport=httpx.MockTransport(handler)) as transport:
            response = await transport.send(_config(), handle)

        assert response.json() == {"ok": True}
        assert handle.aborted is False

    async def test_only_the_passed_signal_is_observed(self) -> None:
        stale = CancellationRegistry().create("GET", URL)
        stale.abort()

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"ok": True})

        async with Transport(transport=httpx.MockTransport(handler)) as transport:
            response = await transport.send(_config(signal=stale))

        assert response.json() == {"ok": True}

    async def test_outer_cancellation_propagates(self) -> None:
        started = asyncio.Event()

        async def handler(request: httpx.Request) -> httpx.Response:
            started.set()
            await asyncio.sleep(30)
            return httpx.Response(200)

        handle = CancellationRegistry().create("GET", URL)
        async with Transport(transport=httpx.MockTransport(handler)) as transport:
            task = asyncio.create_task(transport.send(_config(), handle))
            await started.wait()
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task
