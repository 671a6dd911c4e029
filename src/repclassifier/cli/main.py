"""
Main CLI entry point for repclassifier.

Provides subcommands for the repeat classification rounds:
- round: Run one round (clade and/or library search, classify, update library)
- iterate: Chain rounds until the unknown set stops shrinking
- report: Classify existing RepeatMasker reports
"""

from __future__ import annotations

import typer
from rich import print as rprint

from repclassifier import __version__
from repclassifier.cli import classify

app = typer.Typer(
    name="repclassifier",
    help="Iterative classification of unknown repeat elements with RepeatMasker",
    add_completion=False,
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        rprint(f"repclassifier version {__version__}")
        raise typer.Exit


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """
    Repclassifier: label unknown repeat elements by subfamily or family.

    Unknown consensi are searched against a RepeatMasker clade and a curated
    library. Elements whose matches agree on one subfamily or one family are
    appended to the library; chimeric and unmatched elements carry over to
    the next round.
    """


app.command(name="round")(classify.run_round)
app.command(name="iterate")(classify.iterate_rounds)
app.command(name="report")(classify.classify_reports)


if __name__ == "__main__":
    app()
