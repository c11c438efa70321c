"""Request and response interceptor chains.

An :class:`InterceptorChain` holds two independent, append-only lists of
transformation functions:

* **request interceptors** -- ``RequestConfig -> RequestConfig``, applied to
  every outgoing request before the cache lookup and the network call.
* **response interceptors** -- ``payload -> payload``, applied to every
  decoded response body that came from the network.

Both chains are folds: each interceptor receives the previous one's output,
in registration order.  Interceptors may be plain functions or coroutine
functions; awaitable return values are awaited before the next step runs.
Exceptions raised by an interceptor propagate unchanged.
"""

from __future__ import annotations

import inspect
from typing import Any, Awaitable, Callable, Union

from reqio.exceptions import InterceptorError
from reqio.models import RequestConfig

RequestInterceptor = Callable[
    [RequestConfig], Union[RequestConfig, Awaitable[RequestConfig]]
]
ResponseInterceptor = Callable[[Any], Union[Any, Awaitable[Any]]]


async def _call(fn: Callable[[Any], Any], value: Any) -> Any:
    result = fn(value)
    if inspect.isawaitable(result):
        result = await result
    return result


class InterceptorChain:
    """Ordered request and response interceptors for one client."""

    def __init__(self) -> None:
        self._request: list[RequestInterceptor] = []
        self._response: list[ResponseInterceptor] = []

    @property
    def request_interceptors(self) -> tuple[RequestInterceptor, ...]:
        return tuple(self._request)

    @property
    def response_interceptors(self) -> tuple[ResponseInterceptor, ...]:
        return tuple(self._response)

    def add_request(self, interceptor: RequestInterceptor) -> None:
        self._request.append(interceptor)

    def add_response(self, interceptor: ResponseInterceptor) -> None:
        self._response.append(interceptor)

    async def apply_request(self, config: RequestConfig) -> RequestConfig:
        """Run *config* through every request interceptor, in order.

        Raises:
            InterceptorError: If an interceptor returns ``None``.
        """
        current = config
        for interceptor in self._request:
            current = await _call(interceptor, current)
            if current is None:
                name = getattr(interceptor, "__qualname__", repr(interceptor))
                raise InterceptorError(
                    f"Request interceptor {name} returned None instead of a RequestConfig"
                )
        return current

    async def apply_response(self, payload: Any) -> Any:
        """Run *payload* through every response interceptor, in order."""
        current = payload
        for interceptor in self._response:
            current = await _call(interceptor, current)
        return current
