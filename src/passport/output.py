"""Terminal output for the ``passport`` command line tool.

Data goes to stdout: the built-in provider table, the summary of configured
strategies and authorization URLs. Diagnostics (warnings, errors, hints) go
to stderr so that ``passport authorize-url github | xargs open`` stays
clean.

Tables render three ways. ``RICH`` draws a :class:`rich.table.Table` and is
picked automatically on a colour terminal, ``PLAIN`` writes tab-separated
lines, ``JSON`` writes an array of objects. Client IDs are masked in the
strategy summary; client secrets never reach this module.
"""

from __future__ import annotations

import json
import os
import sys
from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Optional

from rich.console import Console
from rich.table import Table

from passport.models import Strategy
from passport.providers import Provider, ProviderEndpointSet

PROVIDER_COLUMNS = ("provider", "authorization_url", "token_url", "profile_url")
STRATEGY_COLUMNS = ("provider", "client_id", "scopes", "redirect_uri", "failure_redirect_uri")


class OutputFormat(str, Enum):
    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


def mask(value: str, keep: int = 4) -> str:
    """Show the first *keep* characters of an identifier and star the rest."""
    if len(value) <= keep:
        return "*" * len(value)
    return value[:keep] + "*" * (len(value) - keep)


def provider_rows(endpoints: Mapping[Provider, ProviderEndpointSet]) -> list[dict[str, str]]:
    return [
        {
            "provider": provider.value,
            "authorization_url": endpoint_set.authorization_url,
            "token_url": endpoint_set.token_url,
            "profile_url": endpoint_set.profile_url,
        }
        for provider, endpoint_set in endpoints.items()
    ]


def strategy_rows(strategies: Iterable[Strategy]) -> list[dict[str, str]]:
    """One row per registered strategy, with the client ID masked."""
    return [
        {
            "provider": strategy.provider.value,
            "client_id": mask(strategy.client_id),
            "scopes": strategy.scope_string,
            "redirect_uri": strategy.redirect_uri,
            "failure_redirect_uri": strategy.failure_redirect_uri or "",
        }
        for strategy in strategies
    ]


class OutputManager:
    """Writes CLI data to stdout and diagnostics to stderr.

    Args:
        format: ``AUTO`` becomes ``RICH`` on a colour TTY and ``PLAIN``
            otherwise.
        no_color: Disable colour and Rich markup. ``NO_COLOR`` and
            ``TERM=dumb`` have the same effect.
        quiet: Drop success messages and hints.
        verbose: Show debug messages.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _color_disabled_by_env()
        self._quiet = quiet
        self._verbose = verbose
        if format is OutputFormat.AUTO:
            rich_ok = _stdout_is_tty() and not self._no_color
            format = OutputFormat.RICH if rich_ok else OutputFormat.PLAIN
        self._format = format
        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=format is OutputFormat.RICH,
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    # --- stdout ---

    def emit(self, text: str) -> None:
        print(text, file=sys.stdout, flush=True)

    def providers(self, endpoints: Mapping[Provider, ProviderEndpointSet]) -> None:
        """Render the built-in provider endpoint table."""
        self._records(PROVIDER_COLUMNS, provider_rows(endpoints), "Built-in providers")

    def strategies(self, strategies: Iterable[Strategy]) -> None:
        """Render the configured strategies with masked client IDs."""
        self._records(STRATEGY_COLUMNS, strategy_rows(strategies), "Configured strategies")

    def _records(
        self, columns: tuple[str, ...], rows: list[dict[str, str]], title: str
    ) -> None:
        if self._format is OutputFormat.JSON:
            self.emit(json.dumps(rows, indent=2))
            return
        if self._format is OutputFormat.PLAIN:
            for line in [columns, *([row[c] for c in columns] for row in rows)]:
                self.emit("\t".join(line))
            return
        table = Table(title=title, header_style="bold cyan")
        for column in columns:
            table.add_column(column)
        for row in rows:
            table.add_row(*(row[c] for c in columns))
        self._stdout.print(table)

    # --- stderr ---

    def success(self, message: str) -> None:
        if not self._quiet:
            self._notice(message, "", "green")

    def warning(self, message: str) -> None:
        self._notice(message, "Warning: ", "yellow")

    def error(self, message: str) -> None:
        self._notice(message, "Error: ", "bold red")

    def suggest(self, message: str) -> None:
        if not self._quiet:
            self._notice(f"→ {message}", "", "dim")

    def debug(self, message: str) -> None:
        if self._verbose:
            self._notice(message, "[debug] ", "dim")

    def _notice(self, message: str, prefix: str, style: str) -> None:
        if self._no_color:
            print(f"{prefix}{message}", file=sys.stderr, flush=True)
        else:
            self._stderr.print(f"{prefix}{message}", style=style, markup=False)


def _stdout_is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _color_disabled_by_env() -> bool:
    return "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb"


_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the manager installed by the CLI callback, or a default one."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    global _output
    _output = None
