"""Network transport backed by :class:`httpx.AsyncClient`.

:class:`Transport` performs exactly one HTTP exchange per :meth:`send` call
and knows nothing about caching, interceptors or retries.  It is
responsible for three things:

- applying the request timeout (the per-request value when the config
  carries one, otherwise the client default) to every HTTP method,
- racing the exchange against the request's
  :class:`~reqio.cancellation.CancellationHandle` so an abort makes the
  call fail with :class:`~reqio.exceptions.AbortError`,
- translating :mod:`httpx` transport failures into
  :class:`~reqio.exceptions.NetworkError`.

Non-2xx responses are *not* errors at this layer; the status check happens
in the request pipeline after response interceptors ran.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import httpx

from reqio.cancellation import CancellationHandle
from reqio.exceptions import AbortError, NetworkError
from reqio.models import DEFAULT_TIMEOUT, RequestConfig

logger = logging.getLogger(__name__)


class Transport:
    """Sends finalised :class:`~reqio.models.RequestConfig` objects over HTTP.

    Args:
        timeout: Default timeout in seconds for requests that do not set one.
        verify_ssl: Verify server certificates.
        transport: Optional :class:`httpx.AsyncBaseTransport` for the
            underlying client.  Tests pass an :class:`httpx.MockTransport`.

    Example::

        async with Transport(timeout=5) as transport:
            response = await transport.send(config)
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        verify_ssl: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            timeout=timeout,
            verify=verify_ssl,
            follow_redirects=True,
            transport=transport,
        )

    async def __aenter__(self) -> Transport:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    @property
    def is_closed(self) -> bool:
        return self._client.is_closed

    async def aclose(self) -> None:
        await self._client.aclose()

    async def send(
        self,
        config: RequestConfig,
        signal: Optional[CancellationHandle] = None,
    ) -> httpx.Response:
        """Perform the HTTP exchange described by *config*.

        *signal* is the handle the registry tracks for this request.  It is
        raced against the exchange and is independent of ``config.signal``.

        Returns:
            The :class:`httpx.Response`, whatever its status code.

        Raises:
            AbortError: *signal* was aborted before the exchange completed.
            NetworkError: No response could be obtained.
        """
        if signal is None:
            return await self._exchange(config)
        if signal.aborted:
            raise AbortError()

        exchange = asyncio.ensure_future(self._exchange(config))
        aborted = asyncio.ensure_future(signal.wait())
        try:
            await asyncio.wait({exchange, aborted}, return_when=asyncio.FIRST_COMPLETED)
        except BaseException:
            exchange.cancel()
            raise
        finally:
            aborted.cancel()

        # A finished exchange wins over a late abort.
        if exchange.done():
            return exchange.result()

        exchange.cancel()
        await asyncio.gather(exchange, return_exceptions=True)
        logger.debug("Aborted %s %s", config.method, config.url)
        raise AbortError()

    async def _exchange(self, config: RequestConfig) -> httpx.Response:
        timeout = config.timeout if config.timeout is not None else httpx.USE_CLIENT_DEFAULT
        try:
            return await self._client.request(
                config.method,
                config.url,
                headers=config.headers,
                params=config.params or None,
                content=config.body,
                timeout=timeout,
                extensions=config.extensions or None,
            )
        except httpx.TimeoutException as exc:
            raise NetworkError(
                f"Network error occurred: {config.method} {config.url} timed out"
            ) from exc
        except httpx.TransportError as exc:
            raise NetworkError(f"Network error occurred: {exc}") from exc
