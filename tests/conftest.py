"""Shared test fixtures for reqio.

Provides a controllable clock for cache expiry, a recording replacement for
``asyncio.sleep`` used by the retry wrapper, and a factory that builds
:class:`~reqio.client.Client` instances over an :class:`httpx.MockTransport`
so that no test touches the network.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

import httpx
import pytest

from reqio.client import Client
from reqio.output import reset_output

BASE_URL = "https://api.example.com"


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Stand-in for :func:`asyncio.sleep` that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class Recorder:
    """Mock transport handler that records requests and replays a response factory."""

    def __init__(self, respond: Callable[[httpx.Request], Any]) -> None:
        self._respond = respond
        self.requests: list[httpx.Request] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        result = self._respond(request)
        if not isinstance(result, httpx.Response):
            result = await result
        return result


# ---------------------------------------------------------------------------
# Auto-reset global state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_global_state():
    """Reset the output manager and the CLI logging setup after every test.

    The CLI installs its own handler on the ``reqio`` logger and turns off
    propagation, which would hide records from ``caplog`` in later tests.
    """
    yield
    reset_output()
    logger = logging.getLogger("reqio")
    for handler in list(logger.handlers):
        if getattr(handler, "_reqio_cli", False):
            logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


# ---------------------------------------------------------------------------
# Client fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
async def make_client(clock: FakeClock, sleep: RecordingSleep):
    """Factory building a Client whose transport is served by *respond*.

    Returns ``(client, recorder)``.  Clients are closed after the test.
    """
    created: list[Client] = []

    def _factory(
        respond: Callable[[httpx.Request], Any],
        **overrides: Any,
    ) -> tuple[Client, Recorder]:
        recorder = Recorder(respond)
        overrides.setdefault("base_url", BASE_URL)
        client = Client(
            transport=httpx.MockTransport(recorder),
            clock=clock,
            sleep=sleep,
            **overrides,
        )
        created.append(client)
        return client, recorder

    yield _factory

    for client in created:
        await client.aclose()
