"""Typer application and CLI entry point for passport.

The ``passport`` command is an operator tool for checking a deployment's
provider configuration before it goes live:

* ``passport providers`` -- list the built-in providers and endpoints.
* ``passport check`` -- load a config file and register every strategy,
  reporting the first invalid URL or unresolvable credential.
* ``passport authorize-url PROVIDER`` -- print an authorization URL for a
  configured provider, to try the provider-side setup in a browser.

:func:`main` is the console-script entry point declared in
``pyproject.toml``.
"""

from __future__ import annotations

import logging
import signal
import sys
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import typer

from passport import __version__
from passport.exit_codes import EXIT_GENERIC_FAILURE

app = typer.Typer(
    name="passport",
    help="Check and exercise OAuth2 provider strategies.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"passport {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output and debug logging."
    ),
) -> None:
    """Root callback: install the global output manager and logging level."""
    from passport.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            stream=sys.stderr,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


@contextmanager
def _exit_on_error() -> Iterator[None]:
    """Turn a :class:`~passport.exceptions.PassportError` into a clean exit."""
    from passport.exceptions import InvalidUrlError, PassportError
    from passport.output import get_output

    try:
        yield
    except PassportError as exc:
        out = get_output()
        out.error(str(exc))
        if isinstance(exc, InvalidUrlError):
            out.suggest(f"Fix '{exc.field}' in the strategy configuration.")
        raise typer.Exit(exc.exit_code) from exc


def _parse_provider(value: str) -> Any:
    from passport.providers import Provider

    try:
        return Provider(value)
    except ValueError as exc:
        choices = ", ".join(p.value for p in Provider)
        raise typer.BadParameter(
            f"Unknown provider '{value}'. Choose from: {choices}"
        ) from exc


@app.command("providers")
def providers_command() -> None:
    """List built-in providers and their endpoints."""
    from passport.output import get_output
    from passport.providers import ENDPOINTS

    get_output().providers(ENDPOINTS)


@app.command("check")
def check_command(
    config: Optional[str] = typer.Option(
        None, "--config", "-c", help="Config file (default: $PASSPORT_CONFIG or ./passport.yaml)."
    ),
) -> None:
    """Load a config file and register every strategy it declares."""
    from passport.config import load_config
    from passport.output import get_output
    from passport.passport import Passport

    out = get_output()
    with _exit_on_error():
        loaded = load_config(config)
        out.debug(f"Loaded {len(loaded.strategies)} strategies")
        with Passport.from_config(loaded) as passport:
            registered = passport.registry.providers()
            strategies = [passport.registry.require(p) for p in registered]
            has_redirects = passport.redirects is not None

    if not registered:
        out.warning("No strategies configured.")
    if not has_redirects:
        out.warning("No redirects configured; authenticate() will need them per call.")
    out.strategies(strategies)
    out.success(f"{len(registered)} strategies OK")


@app.command("authorize-url")
def authorize_url_command(
    provider: str = typer.Argument(..., help="Provider name, e.g. github."),
    config: Optional[str] = typer.Option(
        None, "--config", "-c", help="Config file (default: $PASSPORT_CONFIG or ./passport.yaml)."
    ),
) -> None:
    """Print an authorization URL for a configured provider."""
    from passport.config import load_config
    from passport.output import get_output
    from passport.passport import Passport

    choice = _parse_provider(provider)
    with _exit_on_error():
        with Passport.from_config(load_config(config)) as passport:
            url = passport.redirect_url(choice)
    get_output().emit(url)


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def main() -> None:
    """CLI entry point invoked by the ``passport`` console script.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from passport.exceptions import PassportError
        from passport.output import get_output

        out = get_output()
        if isinstance(exc, PassportError):
            out.error(str(exc))
            sys.exit(exc.exit_code)
        out.error(f"Unexpected error: {exc}")
        sys.exit(EXIT_GENERIC_FAILURE)
