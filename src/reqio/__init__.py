"""reqio -- an asyncio HTTP client with interceptors, caching, cancellation and retry.

Every request goes through one pipeline: request interceptors, an in-memory
TTL cache lookup, the network call (cancellable while outstanding),
response interceptors, status validation and cache storage.  A retry
wrapper can re-run the whole pipeline on failure.

Typical use::

    from reqio import Client

    async with Client("https://api.example.com") as client:
        client.add_request_interceptor(add_auth_header)
        posts = await client.get("/posts")
        post = await client.request_with_retry("/posts/1")

Modules:
    client: The request pipeline and verb methods.
    cache: In-memory TTL response cache.
    cancellation: Cancellation handles and their registry.
    interceptors: Request and response interceptor chains.
    transport: httpx-backed network transport.
    retry: Retry wrapper and retry policy.
    models: Pydantic configuration model and request/cache data shapes.
    config: Configuration resolution from files, environment and overrides.
    exceptions: Error taxonomy with exit-code mapping.
    cli: The ``reqio`` console script.
"""

import logging

__version__ = "0.1.0"

from reqio.client import Client  # noqa: E402
from reqio.exceptions import (  # noqa: E402
    AbortError,
    ConfigError,
    DecodeError,
    HttpStatusError,
    InterceptorError,
    NetworkError,
    ReqioError,
)
from reqio.models import ClientConfig, RequestConfig  # noqa: E402
from reqio.retry import RetryPolicy, retryable_only  # noqa: E402

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "AbortError",
    "Client",
    "ClientConfig",
    "ConfigError",
    "DecodeError",
    "HttpStatusError",
    "InterceptorError",
    "NetworkError",
    "ReqioError",
    "RequestConfig",
    "RetryPolicy",
    "retryable_only",
]
