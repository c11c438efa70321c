"""Async HTTP client with interceptors, response caching, cancellation and retry.

This module provides :class:`Client`, the request pipeline every verb
method delegates to.  One :meth:`Client.request` call runs these steps,
strictly in order:

1. Resolve the target URL as ``base_url + endpoint`` (no slash handling).
2. Build a :class:`~reqio.models.RequestConfig` with a default
   ``Content-Type: application/json`` header (caller headers win) and a
   fresh cancellation handle as its ``signal``.
3. Run the request interceptors.
4. Register the handle under ``(METHOD, url)`` in the cancellation registry.
5. Look the URL up in the response cache.  A fresh hit is returned as is:
   no network call, no response interceptors, no cache write.
6. Send the request through the :class:`~reqio.transport.Transport`,
   watching the handle from step 2 even if an interceptor replaced the
   config, then release the handle whether the call succeeded or not.
7. Decode the body as JSON.  For non-2xx statuses a body that is not JSON
   is kept as text so the status error is still raised.
8. Run the response interceptors (also for error statuses).
9. Raise :class:`~reqio.exceptions.HttpStatusError` for non-2xx statuses.
10. Cache the payload and return it.

:meth:`Client.request_with_retry` wraps the whole pipeline in
:func:`~reqio.retry.retry_async`.

Every piece of state (cache, registry, interceptor lists) belongs to the
:class:`Client` instance; there are no module-level singletons.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any, Callable, Hashable, Mapping, Optional, Union

import httpx
from pydantic import ValidationError

from reqio.cache import ResponseCache
from reqio.cancellation import CancellationRegistry
from reqio.exceptions import ConfigError, DecodeError, HttpStatusError
from reqio.interceptors import InterceptorChain, RequestInterceptor, ResponseInterceptor
from reqio.models import Body, ClientConfig, RequestConfig
from reqio.retry import RetryPolicy, RetryPredicate, Sleep, retry_async, retry_everything
from reqio.transport import Transport

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {"Content-Type": "application/json"}


class Client:
    """HTTP client composing interceptors, caching, cancellation and retry.

    Args:
        config: A :class:`~reqio.models.ClientConfig`, or a base URL string
            as a shorthand for ``ClientConfig(base_url=...)``.
        transport: Optional :class:`httpx.AsyncBaseTransport` used by the
            underlying :class:`httpx.AsyncClient` (tests pass an
            :class:`httpx.MockTransport`).
        clock: Monotonic time source for cache expiry.
        sleep: Coroutine used by the retry wrapper to wait between attempts.
        retry_on: Predicate deciding which errors are retried.  Defaults to
            retrying every error.
        **overrides: Individual :class:`~reqio.models.ClientConfig` fields
            that override *config*.

    Raises:
        ConfigError: If the resulting configuration does not validate.

    Example::

        async with Client("https://api.example.com") as client:
            client.add_request_interceptor(add_auth_header)
            posts = await client.get("/posts")
            created = await client.post("/posts", {"title": "x"})
    """

    def __init__(
        self,
        config: Union[ClientConfig, str, None] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Sleep = asyncio.sleep,
        retry_on: Optional[RetryPredicate] = None,
        **overrides: Any,
    ) -> None:
        self._config = _build_config(config, overrides)
        self._cache = ResponseCache(
            ttl=self._config.cache_ttl,
            clock=clock,
            enabled=self._config.cache_enabled,
        )
        self._registry = CancellationRegistry()
        self._interceptors = InterceptorChain()
        self._transport = Transport(
            timeout=self._config.timeout,
            verify_ssl=self._config.verify_ssl,
            transport=transport,
        )
        self._retry_policy = RetryPolicy(
            attempts=self._config.retry_attempts,
            delay=self._config.retry_delay,
            backoff=self._config.retry_backoff,
            max_delay=self._config.retry_max_delay,
            retry_on=retry_on or retry_everything,
        )
        self._sleep = sleep

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> Client:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Abort outstanding requests and close the underlying HTTP client."""
        self._registry.cancel_all()
        await self._transport.aclose()

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    @property
    def registry(self) -> CancellationRegistry:
        return self._registry

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry_policy

    # ------------------------------------------------------------------ #
    # Interceptors
    # ------------------------------------------------------------------ #

    def add_request_interceptor(self, interceptor: RequestInterceptor) -> None:
        """Append *interceptor* to the request chain."""
        self._interceptors.add_request(interceptor)

    def add_response_interceptor(self, interceptor: ResponseInterceptor) -> None:
        """Append *interceptor* to the response chain."""
        self._interceptors.add_response(interceptor)

    # ------------------------------------------------------------------ #
    # Request pipeline
    # ------------------------------------------------------------------ #

    async def request(
        self,
        endpoint: str,
        *,
        method: str = "GET",
        headers: Optional[Mapping[str, str]] = None,
        body: Body = None,
        params: Optional[Mapping[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Send a request through the full pipeline and return the decoded payload.

        Args:
            endpoint: Path appended verbatim to ``base_url``.
            method: HTTP method.
            headers: Extra headers; they override the default
                ``Content-Type: application/json``.
            body: Already serialised request body.
            params: Query parameters.
            timeout: Per-request timeout in seconds.

        Returns:
            The JSON-decoded body after response interceptors ran, or the
            cached payload on a fresh cache hit.

        Raises:
            AbortError: The request was cancelled while in flight.
            NetworkError: No response could be obtained.
            HttpStatusError: The response status is outside 2xx.
            DecodeError: A 2xx body is not valid JSON.
            InterceptorError: A request interceptor returned ``None``.
        """
        url = self.resolve(endpoint)
        method = method.upper()

        handle = self._registry.create(method, url)
        merged_headers = httpx.Headers(DEFAULT_HEADERS)
        merged_headers.update(headers or {})
        config = RequestConfig(
            method=method,
            url=url,
            headers=merged_headers,
            body=body,
            params=dict(params or {}),
            timeout=timeout,
            signal=handle,
        )

        config = await self._interceptors.apply_request(config)

        cache_key = self._cache_key(method, url)
        self._registry.register(handle)
        try:
            hit, cached = self._cache.lookup(cache_key)
            if hit:
                logger.debug("Cache hit: %s %s", method, url)
                return cached

            started = time.perf_counter()
            response = await self._transport.send(config, handle)
        finally:
            self._registry.release(handle)

        logger.debug(
            "%s %s -> %d (%.0f ms)",
            config.method, config.url, response.status_code,
            (time.perf_counter() - started) * 1000,
        )

        payload = _decode(response, strict=response.is_success)
        payload = await self._interceptors.apply_response(payload)

        if not response.is_success:
            raise HttpStatusError(response.status_code, response=response, payload=payload)

        self._cache.set(cache_key, payload)
        return payload

    async def get(self, endpoint: str, **options: Any) -> Any:
        """Send a GET request.  *options* are forwarded to :meth:`request`."""
        return await self.request(endpoint, **{**options, "method": "GET"})

    async def post(self, endpoint: str, body: Any = None, **options: Any) -> Any:
        """Send a POST request with *body* serialised as JSON."""
        return await self.request(
            endpoint, **{**options, "method": "POST", "body": _serialize(body)}
        )

    async def put(self, endpoint: str, body: Any = None, **options: Any) -> Any:
        """Send a PUT request with *body* serialised as JSON."""
        return await self.request(
            endpoint, **{**options, "method": "PUT", "body": _serialize(body)}
        )

    async def patch(self, endpoint: str, body: Any = None, **options: Any) -> Any:
        """Send a PATCH request with *body* serialised as JSON."""
        return await self.request(
            endpoint, **{**options, "method": "PATCH", "body": _serialize(body)}
        )

    async def delete(self, endpoint: str, **options: Any) -> Any:
        """Send a DELETE request."""
        return await self.request(endpoint, **{**options, "method": "DELETE"})

    async def request_with_retry(
        self,
        endpoint: str,
        retries: Optional[int] = None,
        **options: Any,
    ) -> Any:
        """Call :meth:`request`, retrying failures per the client's retry policy.

        Args:
            endpoint: Path appended to ``base_url``.
            retries: Retries after the first attempt; defaults to
                ``config.retry_attempts``.
            **options: Forwarded to :meth:`request`.

        Raises:
            Exception: The final attempt's error, unchanged.
        """
        return await retry_async(
            lambda: self.request(endpoint, **options),
            retries=retries,
            policy=self._retry_policy,
            sleep=self._sleep,
            label=endpoint,
        )

    # ------------------------------------------------------------------ #
    # Cancellation and cache control
    # ------------------------------------------------------------------ #

    def cancel_request(self, endpoint: str, method: str) -> int:
        """Abort every in-flight request for *method* on *endpoint*.

        Returns:
            The number of requests aborted; ``0`` if none was in flight.
        """
        return self._registry.cancel(method, self.resolve(endpoint))

    def clear_cache(self, endpoint: Optional[str] = None) -> None:
        """Drop the cached payload for *endpoint*, or the whole cache when ``None``."""
        if endpoint is None:
            self._cache.clear()
            return
        url = self.resolve(endpoint)
        if self._config.cache_key_includes_method:
            self._cache.delete_where(lambda key: key[1] == url)
        else:
            self._cache.delete(url)

    def resolve(self, endpoint: str) -> str:
        """Return ``base_url + endpoint``."""
        return f"{self._config.base_url}{endpoint}"

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _cache_key(self, method: str, url: str) -> Hashable:
        if self._config.cache_key_includes_method:
            return (method, url)
        return url


def _build_config(
    config: Union[ClientConfig, str, None],
    overrides: Mapping[str, Any],
) -> ClientConfig:
    if isinstance(config, ClientConfig) and not overrides:
        return config
    if isinstance(config, ClientConfig):
        fields: dict[str, Any] = config.model_dump()
    elif isinstance(config, str):
        fields = {"base_url": config}
    else:
        fields = {}
    try:
        return ClientConfig.model_validate({**fields, **overrides})
    except ValidationError as exc:
        raise ConfigError(f"Invalid client configuration: {exc}") from exc


def _serialize(body: Any) -> Optional[str]:
    if body is None:
        return None
    return json.dumps(body)


def _decode(response: httpx.Response, strict: bool = True) -> Any:
    """Decode *response* as JSON.  An empty body decodes to ``None``.

    With *strict* off, a body that is not JSON (an HTML error page from a
    proxy, say) is returned as text instead of raising.
    """
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError as exc:
        if not strict:
            return response.text
        raise DecodeError(
            f"Response from {response.request.url} is not valid JSON: {exc}"
        ) from exc
