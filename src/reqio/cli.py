"""Typer application and entry point for the ``reqio`` console script.

The CLI is a thin shell over :class:`~reqio.client.Client`: global options
are merged into a :class:`~reqio.models.ClientConfig` through
:func:`~reqio.config.resolve_config`, each verb command sends one request
through :meth:`~reqio.client.Client.request_with_retry`, and the decoded
payload is written to stdout by the :class:`~reqio.output.OutputManager`.

:class:`~reqio.exceptions.ReqioError` failures are printed to stderr and
turned into the matching exit code from :mod:`reqio.exit_codes`.

Example::

    $ reqio --base-url https://api.example.com get /posts/1
    $ reqio --base-url https://api.example.com post /posts -d '{"title": "x"}'
"""

from __future__ import annotations

import asyncio
import json
import os
import signal
import sys
import traceback
from typing import Any, Optional

import typer

from reqio import __version__
from reqio.client import Client
from reqio.config import resolve_config
from reqio.exceptions import HttpStatusError, ReqioError
from reqio.exit_codes import EXIT_GENERIC_FAILURE
from reqio.logging_setup import configure_logging
from reqio.models import ClientConfig
from reqio.output import OutputFormat, OutputManager, get_output, set_output

app = typer.Typer(
    name="reqio",
    help="Send JSON HTTP requests with caching, cancellation and retry.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"reqio {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    base_url: Optional[str] = typer.Option(
        None, "--base-url", "-b", help="Prefix prepended to every path."
    ),
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c", help="JSON config file (default: ./reqio.json)."
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", "-t", help="Request timeout in seconds."
    ),
    retries: Optional[int] = typer.Option(
        None, "--retries", "-r", help="Retries after the first attempt."
    ),
    retry_delay: Optional[float] = typer.Option(
        None, "--retry-delay", help="Seconds to wait between attempts."
    ),
    retry_backoff: Optional[float] = typer.Option(
        None, "--retry-backoff", help="Delay multiplier per retry (1 = fixed delay)."
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
) -> None:
    """Install output and logging, and stash config overrides in ``ctx.obj``."""
    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    output = OutputManager(format=fmt, no_color=no_color, quiet=quiet)
    set_output(output)
    configure_logging(verbose=verbose, quiet=quiet, no_color=output.no_color)

    ctx.ensure_object(dict)
    ctx.obj["config_file"] = config_file
    ctx.obj["overrides"] = {
        "base_url": base_url,
        "timeout": timeout,
        "retry_attempts": retries,
        "retry_delay": retry_delay,
        "retry_backoff": retry_backoff,
    }


HeaderOption = typer.Option(
    None, "--header", "-H", help="Extra header as 'Name: value'. Repeatable."
)
DataOption = typer.Option(None, "--data", "-d", help="JSON request body.")


@app.command("get")
def get_command(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Path appended to the base URL."),
    header: Optional[list[str]] = HeaderOption,
) -> None:
    """Send a GET request."""
    _run(ctx, "GET", path, header)


@app.command("delete")
def delete_command(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Path appended to the base URL."),
    header: Optional[list[str]] = HeaderOption,
) -> None:
    """Send a DELETE request."""
    _run(ctx, "DELETE", path, header)


@app.command("post")
def post_command(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Path appended to the base URL."),
    data: Optional[str] = DataOption,
    header: Optional[list[str]] = HeaderOption,
) -> None:
    """Send a POST request with a JSON body."""
    _run(ctx, "POST", path, header, data)


@app.command("put")
def put_command(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Path appended to the base URL."),
    data: Optional[str] = DataOption,
    header: Optional[list[str]] = HeaderOption,
) -> None:
    """Send a PUT request with a JSON body."""
    _run(ctx, "PUT", path, header, data)


def _make_client(config: ClientConfig) -> Client:
    """Build the client used by commands.  Patched in tests."""
    return Client(config)


def _run(
    ctx: typer.Context,
    method: str,
    path: str,
    header: Optional[list[str]],
    data: Optional[str] = None,
) -> None:
    output = get_output()
    try:
        headers = _parse_headers(header or [])
        body = _validate_body(data)
        config = resolve_config(
            ctx.obj["overrides"], config_file=ctx.obj["config_file"]
        )
        payload = asyncio.run(_send(config, method, path, headers, body))
    except HttpStatusError as exc:
        output.error(str(exc))
        if exc.payload is not None:
            output.info(json.dumps(exc.payload, indent=2, default=str))
        raise typer.Exit(code=exc.exit_code)
    except ReqioError as exc:
        output.error(str(exc))
        raise typer.Exit(code=exc.exit_code)
    output.format_response(payload)


async def _send(
    config: ClientConfig,
    method: str,
    path: str,
    headers: dict[str, str],
    body: Optional[str],
) -> Any:
    async with _make_client(config) as client:
        return await client.request_with_retry(
            path, method=method, headers=headers, body=body
        )


def _parse_headers(values: list[str]) -> dict[str, str]:
    headers: dict[str, str] = {}
    for value in values:
        name, sep, content = value.partition(":")
        if not sep or not name.strip():
            raise typer.BadParameter(
                f"Header must look like 'Name: value', got {value!r}",
                param_hint="--header",
            )
        headers[name.strip()] = content.strip()
    return headers


def _validate_body(data: Optional[str]) -> Optional[str]:
    if data is None:
        return None
    try:
        json.loads(data)
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(
            f"Body is not valid JSON: {exc}", param_hint="--data"
        ) from exc
    return data


def main() -> None:
    """Console-script entry point.

    Unexpected exceptions are reported with a traceback when ``REQIO_DEBUG``
    is set and always end with :data:`EXIT_GENERIC_FAILURE`.
    """
    signal.signal(signal.SIGINT, _sigint_handler)
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        if os.environ.get("REQIO_DEBUG"):
            traceback.print_exc()
        get_output().error(f"Unexpected error: {exc}")
        sys.exit(EXIT_GENERIC_FAILURE)


def _sigint_handler(signum: int, frame: Any) -> None:  # noqa: ANN401
    sys.stderr.write("\nCancelled.\n")
    sys.exit(130)
