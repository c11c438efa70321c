"""Numeric process exit codes used by the ``reqio`` console script.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~reqio.exceptions.ReqioError` subclass.  Shell
scripts can inspect the exit code to tell an aborted request from a
network failure or an HTTP error status without parsing stderr.

Example::

    $ reqio get /posts/999
    $ echo $?
    5   # EXIT_HTTP_STATUS -- the server answered with a non-2xx status
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_CONFIG_ERROR = 2
"""The configuration or command-line options were invalid."""

EXIT_ABORTED = 3
"""The request was cancelled while it was in flight."""

EXIT_NETWORK_ERROR = 4
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_HTTP_STATUS = 5
"""The server answered with a status outside the 2xx range."""

EXIT_DECODE_ERROR = 6
"""The response body could not be decoded as JSON."""
