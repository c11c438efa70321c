"""Exception hierarchy for reqio.

All exceptions inherit from :class:`ReqioError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`reqio.exit_codes`.
The request pipeline classifies failures into these types and re-raises
them; it never recovers locally.  Anything else (for example an exception
raised by a user-supplied interceptor) propagates unchanged.

Subclass hierarchy::

    ReqioError (exit 1)
    +-- ConfigError        (exit 2)
    +-- AbortError         (exit 3)
    +-- NetworkError       (exit 4)
    +-- HttpStatusError    (exit 5)
    +-- DecodeError        (exit 6)
    +-- InterceptorError   (exit 1)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from reqio.exit_codes import (
    EXIT_ABORTED,
    EXIT_CONFIG_ERROR,
    EXIT_DECODE_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_HTTP_STATUS,
    EXIT_NETWORK_ERROR,
)

if TYPE_CHECKING:
    import httpx


class ReqioError(Exception):
    """Base exception for all reqio errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`reqio.exit_codes`.  The CLI entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigError(ReqioError):
    """Raised for invalid client configuration (bad config file, env var, or option)."""

    exit_code = EXIT_CONFIG_ERROR


class AbortError(ReqioError):
    """Raised when an in-flight request is cancelled through :meth:`Client.cancel_request`."""

    exit_code = EXIT_ABORTED

    def __init__(self, message: str = "Request aborted", exit_code: int | None = None):
        super().__init__(message, exit_code)


class NetworkError(ReqioError):
    """Raised when no HTTP response could be obtained (timeout, DNS, connection refused)."""

    exit_code = EXIT_NETWORK_ERROR

    def __init__(self, message: str = "Network error occurred", exit_code: int | None = None):
        super().__init__(message, exit_code)


class HttpStatusError(ReqioError):
    """Raised when a response was received but its status is outside the 2xx range.

    Attributes:
        status_code: The HTTP status code of the response.
        response: The raw :class:`httpx.Response` for caller inspection.
        payload: The decoded body after response interceptors ran.
    """

    exit_code = EXIT_HTTP_STATUS

    def __init__(
        self,
        status_code: int,
        response: Optional[httpx.Response] = None,
        payload: Any = None,
    ) -> None:
        super().__init__(f"HTTP error! Status: {status_code}")
        self.status_code = status_code
        self.response = response
        self.payload = payload


class DecodeError(ReqioError):
    """Raised when a response body is not valid JSON."""

    exit_code = EXIT_DECODE_ERROR


class InterceptorError(ReqioError):
    """Raised when a request interceptor returns ``None`` instead of a config."""
