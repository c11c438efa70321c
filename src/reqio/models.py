"""Data shapes shared across reqio modules.

Three groups live here:

**Configuration** -- :class:`ClientConfig`, the Pydantic model holding every
construction-time option of a :class:`~reqio.client.Client`.  Durations are
expressed in seconds as floats.

**Request state** -- :class:`RequestConfig`, the mutable-until-sent
structure threaded through the request interceptor chain and handed to
the transport.

**Cache state** -- :class:`CacheEntry`, the immutable record stored by
:class:`~reqio.cache.ResponseCache`.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Optional, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field

from reqio.cancellation import CancellationHandle

DEFAULT_TIMEOUT = 5.0
DEFAULT_CACHE_TTL = 300.0
DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_RETRY_DELAY = 1.0


class ClientConfig(BaseModel):
    """Construction-time options for a :class:`~reqio.client.Client`.

    Example::

        ClientConfig(
            base_url="https://api.example.com",
            timeout=10,
            retry_backoff=2.0,
        )
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    base_url: str = Field(
        default="", description="Prefix concatenated verbatim with every endpoint"
    )
    timeout: float = Field(
        default=DEFAULT_TIMEOUT, gt=0, description="Request timeout in seconds"
    )
    cache_enabled: bool = Field(default=True, description="Enable response caching")
    cache_ttl: float = Field(
        default=DEFAULT_CACHE_TTL, ge=0, description="Cache TTL in seconds"
    )
    cache_key_includes_method: bool = Field(
        default=False,
        description="Key cache entries by (method, url) instead of url alone",
    )
    retry_attempts: int = Field(
        default=DEFAULT_RETRY_ATTEMPTS, ge=0, description="Retries after the first attempt"
    )
    retry_delay: float = Field(
        default=DEFAULT_RETRY_DELAY, ge=0, description="Seconds to wait before a retry"
    )
    retry_backoff: float = Field(
        default=1.0,
        ge=1.0,
        description="Delay multiplier per retry; 1.0 keeps the delay fixed",
    )
    retry_max_delay: Optional[float] = Field(
        default=None, ge=0, description="Upper bound for a single retry delay"
    )
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")


Body = Union[str, bytes, None]


@dataclass
class RequestConfig:
    """Outgoing request state passed through the request interceptor chain.

    Each request interceptor receives the current config and returns the
    config to use from then on, either the same instance after mutating it
    or a new one (see :meth:`copy` and :meth:`replace`).  Headers are an
    :class:`httpx.Headers` mapping, so lookups are case-insensitive.

    Attributes:
        method: Upper-cased HTTP method.
        url: Fully resolved target address.
        headers: Request headers.
        body: Already serialised request body, if any.
        params: Query parameters.
        timeout: Per-request timeout in seconds; ``None`` uses the client's.
        signal: The request's cancellation handle, for interceptors to inspect.
            The transport watches the registered handle, not this field.
        extensions: Free-form transport-specific settings.
    """

    method: str
    url: str
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    body: Body = None
    params: dict[str, Any] = field(default_factory=dict)
    timeout: Optional[float] = None
    signal: Optional[CancellationHandle] = None
    extensions: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.method = self.method.upper()
        if not isinstance(self.headers, httpx.Headers):
            self.headers = httpx.Headers(self.headers)

    def copy(self) -> RequestConfig:
        """Return a clone whose headers, params and extensions are independent."""
        return dataclasses.replace(
            self,
            headers=httpx.Headers(self.headers),
            params=dict(self.params),
            extensions=dict(self.extensions),
        )

    def replace(self, **changes: Any) -> RequestConfig:
        """Return a clone with *changes* applied."""
        return dataclasses.replace(self.copy(), **changes)


@dataclass(frozen=True)
class CacheEntry:
    """A cached payload and the clock reading taken when it was stored."""

    payload: Any
    stored_at: float

    def age(self, now: float) -> float:
        return now - self.stored_at
