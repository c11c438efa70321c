"""Cooperative cancellation for in-flight requests.

A :class:`CancellationHandle` is created for every call that goes through
the request pipeline and is attached to its
:class:`~reqio.models.RequestConfig` as ``signal``.  The transport races
the network exchange against the handle, so aborting the handle makes the
outstanding call fail with :class:`~reqio.exceptions.AbortError`.

The :class:`CancellationRegistry` indexes outstanding handles by
:data:`RequestKey` (method + resolved URL).  Each key maps to a collection
of handles keyed by a per-call token, so two identical requests in flight
at the same time are both tracked and both cancelled by
:meth:`CancellationRegistry.cancel`.

All registry operations are synchronous.  Under asyncio's single-threaded
scheduling that makes each of them atomic with respect to other tasks.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Iterator

logger = logging.getLogger(__name__)

RequestKey = tuple[str, str]
"""``(METHOD, resolved_url)`` identity of an outstanding request."""

_tokens: Iterator[int] = itertools.count(1)


def request_key(method: str, url: str) -> RequestKey:
    """Build the :data:`RequestKey` for *method* and *url*."""
    return (method.upper(), url)


class CancellationHandle:
    """Abort signal for a single request.

    The handle can be aborted at most once; further calls to :meth:`abort`
    are no-ops.  ``token`` is unique per handle for the life of the process.
    """

    def __init__(self, key: RequestKey) -> None:
        self.key = key
        self.token = next(_tokens)
        self._event = asyncio.Event()

    def __repr__(self) -> str:
        state = "aborted" if self.aborted else "pending"
        return f"<CancellationHandle {self.key[0]} {self.key[1]} #{self.token} {state}>"

    @property
    def aborted(self) -> bool:
        return self._event.is_set()

    def abort(self) -> bool:
        """Signal abort.  Returns ``False`` if the handle was already aborted."""
        if self._event.is_set():
            return False
        self._event.set()
        return True

    async def wait(self) -> None:
        """Suspend until the handle is aborted."""
        await self._event.wait()


class CancellationRegistry:
    """Tracks outstanding :class:`CancellationHandle` objects by request key."""

    def __init__(self) -> None:
        self._handles: dict[RequestKey, dict[int, CancellationHandle]] = {}

    def __len__(self) -> int:
        return sum(len(handles) for handles in self._handles.values())

    def create(self, method: str, url: str) -> CancellationHandle:
        """Return a fresh, not yet registered handle for *method* and *url*."""
        return CancellationHandle(request_key(method, url))

    def register(self, handle: CancellationHandle) -> None:
        self._handles.setdefault(handle.key, {})[handle.token] = handle

    def release(self, handle: CancellationHandle) -> None:
        """Stop tracking *handle*.  No-op if it is not registered."""
        handles = self._handles.get(handle.key)
        if handles is None:
            return
        handles.pop(handle.token, None)
        if not handles:
            del self._handles[handle.key]

    def outstanding(self, method: str, url: str) -> int:
        """Number of tracked handles for *method* and *url*."""
        return len(self._handles.get(request_key(method, url), {}))

    def cancel(self, method: str, url: str) -> int:
        """Abort and forget every handle registered for *method* and *url*.

        Returns:
            The number of handles aborted.  ``0`` when nothing matching is in
            flight, which is not an error.
        """
        key = request_key(method, url)
        handles = self._handles.pop(key, None)
        if not handles:
            return 0
        for handle in handles.values():
            handle.abort()
        logger.debug("Cancelled %d request(s) for %s %s", len(handles), *key)
        return len(handles)

    def cancel_all(self) -> int:
        """Abort every outstanding handle.  Used when the client is closed."""
        count = 0
        for key in list(self._handles):
            count += self.cancel(*key)
        return count
