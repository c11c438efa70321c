"""Logging configuration for the ``reqio`` console script.

Library modules only create loggers (``logging.getLogger(__name__)``); the
package logger carries a :class:`logging.NullHandler` so that embedding
applications decide where records go.  The CLI calls
:func:`configure_logging` to send ``reqio`` records to stderr through
:class:`rich.logging.RichHandler`.
"""

from __future__ import annotations

import logging
import sys

from rich.console import Console
from rich.logging import RichHandler

PACKAGE_LOGGER = "reqio"


def configure_logging(
    verbose: bool = False,
    quiet: bool = False,
    no_color: bool = False,
) -> logging.Logger:
    """Attach a stderr handler to the ``reqio`` logger and set its level.

    DEBUG when *verbose*, WARNING when *quiet*, INFO otherwise.  Calling it
    again replaces the handler installed by the previous call.

    Returns:
        The configured package logger.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    for existing in list(logger.handlers):
        if getattr(existing, "_reqio_cli", False):
            logger.removeHandler(existing)

    handler: logging.Handler
    if no_color:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    else:
        handler = RichHandler(
            console=Console(stderr=True),
            show_path=False,
            rich_tracebacks=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
    handler._reqio_cli = True  # type: ignore[attr-defined]

    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO
    logger.setLevel(level)
    logger.addHandler(handler)
    logger.propagate = False
    return logger
