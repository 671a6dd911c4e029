"""
Shared CLI utilities for repclassifier commands.

Provides progress display, quiet-mode output, logging setup and the
rich tables used to report round results.
"""

from __future__ import annotations

import logging
from collections.abc import Generator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import (
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from repclassifier.core.exceptions import RepclassifierError
from repclassifier.models.config import PipelineConfig
from repclassifier.models.rounds import RoundSummary


@contextmanager
def spinner_progress(
    description: str,
    console: Console | None = None,
    quiet: bool = False,
) -> Generator[Progress, None, None]:
    """Context manager for spinner-style progress display.

    The spinner is suppressed when quiet mode is enabled.

    Example:
        >>> with spinner_progress("Running round-1...", console, quiet):
        ...     orchestrator.run(round_)
    """
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console if not quiet else None,
        disable=quiet,
    ) as progress:
        progress.add_task(description=description, total=None)
        yield progress


def configure_logging(console: Console, verbose: bool = False) -> None:
    """Route package log records through rich (INFO when verbose, else WARNING)."""
    logger = logging.getLogger("repclassifier")
    logger.handlers.clear()
    handler = RichHandler(console=console, show_path=False, markup=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO if verbose else logging.WARNING)


def load_config(config_path: Path | None) -> PipelineConfig:
    """Load a YAML configuration file, or defaults when none is given."""
    if config_path is None:
        return PipelineConfig()
    return PipelineConfig.from_yaml(config_path)


def print_error(console: Console, error: RepclassifierError) -> None:
    """Print an error and its suggestion in the standard CLI format."""
    console.print(f"\n[red]Error:[/red] {escape(error.message)}")
    if error.suggestion:
        console.print(f"\n[dim]{escape(error.suggestion)}[/dim]")


def summary_table(
    summaries: Sequence[RoundSummary],
    title: str = "Classification rounds",
    *,
    input_label: str = "Input",
    show_pct: bool = True,
) -> Table:
    """Build a rich table with one row per round.

    Pass ``show_pct=False`` when ``input_sequences`` counts matched
    elements rather than FASTA records.
    """
    table = Table(title=title)
    table.add_column("Round", style="bold")
    table.add_column("Mode")
    table.add_column(input_label, justify="right")
    table.add_column("Subfamily", justify="right")
    table.add_column("Family", justify="right")
    table.add_column("Chimeric", justify="right")
    table.add_column("Classified", justify="right", style="green")
    table.add_column("Unknown", justify="right", style="yellow")

    for s in summaries:
        table.add_row(
            s.round_name,
            s.mode,
            f"{s.input_sequences:,}",
            f"{s.subfamily_matches:,}",
            f"{s.family_matches:,}",
            f"{s.chimeric:,}",
            f"{s.classified:,} ({s.classified_pct:.1f}%)" if show_pct else f"{s.classified:,}",
            f"{s.still_unknown:,}",
        )
    return table


class QuietConsole:
    """Console wrapper that suppresses output in quiet mode.

    All other console methods are delegated to the wrapped instance.

    Example:
        >>> qc = QuietConsole(Console(), quiet=True)
        >>> qc.print("This won't be shown")
    """

    def __init__(self, console: Console, quiet: bool = False):
        self._console = console
        self._quiet = quiet

    @property
    def console(self) -> Console:
        """The wrapped Console, for output that ignores quiet mode."""
        return self._console

    def print(self, *args: Any, **kwargs: Any) -> None:
        """Print to console unless quiet mode is enabled."""
        if not self._quiet:
            self._console.print(*args, **kwargs)

    def __getattr__(self, name: str) -> Any:
        return getattr(self._console, name)
