"""
Classification commands: run a round, chain rounds, or classify existing reports.

Wraps the round orchestrator around RepeatMasker and prints a summary of
how many unknown elements were resolved at subfamily or family level.
"""

from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.console import Console

from repclassifier.cli.utils import (
    QuietConsole,
    configure_logging,
    load_config,
    print_error,
    spinner_progress,
    summary_table,
)
from repclassifier.core.classifier import RepeatClassifier
from repclassifier.core.constants import CLADE_SEARCH_DIR, LIBRARY_SEARCH_DIR
from repclassifier.core.exceptions import MatchReportNotFoundError, RepclassifierError
from repclassifier.core.library import LibraryUpdater, count_sequences
from repclassifier.core.orchestrator import RoundOrchestrator
from repclassifier.core.parsers import RepeatMaskerOutParser
from repclassifier.external.repeatmasker import RepeatMasker
from repclassifier.models.config import PipelineConfig
from repclassifier.models.matches import OutcomeKind
from repclassifier.models.rounds import Round, RoundSummary

logger = logging.getLogger(__name__)

console = Console()


def _build_config(
    config_path: Path | None,
    threads: int | None,
    allow_masker_failure: bool,
) -> PipelineConfig:
    config = load_config(config_path).with_overrides(threads=threads)
    if allow_masker_failure:
        config = config.model_copy(
            update={"masker": config.masker.model_copy(update={"fail_on_error": False})}
        )
    return config


def _check_repeatmasker() -> None:
    if not RepeatMasker.check_available():
        console.print("[red]Error: Required tool not found: RepeatMasker[/red]")
        console.print(f"\n[dim]Install with: {RepeatMasker.INSTALL_HINT}[/dim]")
        raise typer.Exit(code=1) from None


def _show_dry_run(round_: Round, masker: RepeatMasker) -> None:
    """Print the RepeatMasker commands a round would run."""
    console.print(f"\n[bold]Round {round_.name}[/bold] ({round_.mode})")
    query = round_.input_copy
    if round_.clade is not None:
        clade_dir = round_.work_dir / CLADE_SEARCH_DIR
        cmd = masker.build_command(
            query=query, output_dir=clade_dir, species=round_.clade, threads=round_.threads
        )
        console.print(f"  [dim]Command: {' '.join(cmd)}[/dim]")
        query = masker.output_paths(query, clade_dir)[1]

    cmd = masker.build_command(
        query=query,
        output_dir=round_.work_dir / LIBRARY_SEARCH_DIR,
        library=round_.library_fasta,
        threads=round_.threads,
    )
    console.print(f"  [dim]Command: {' '.join(cmd)}[/dim]")
    console.print(f"  [dim]Would write {round_.known_output} and {round_.unknown_output}[/dim]")


def _check_output_name(output: Path) -> None:
    if not output.resolve().name:
        raise typer.BadParameter(
            f"'{output}' has no directory name to prefix the outputs with",
            param_hint="'--output'",
        )


def _print_outputs(out: QuietConsole, summary: RoundSummary) -> None:
    out.print("\n[bold]Output files:[/bold]")
    out.print(f"  Known library:  {summary.known_output}")
    out.print(f"  Still unknown:  {summary.unknown_output}")


def run_round(
    unknown: Path = typer.Option(
        ...,
        "--unknown", "-u",
        help="FASTA of unknown repeat elements to classify",
        exists=True,
        dir_okay=False,
    ),
    library: Path = typer.Option(
        ...,
        "--library", "-l",
        help="Known repeat library (FASTA, '#Family/Subfamily' headers) to search",
        exists=True,
        dir_okay=False,
    ),
    append: Path | None = typer.Option(
        None,
        "--append", "-a",
        help="Library that classified elements are appended to (default: --library)",
        exists=True,
        dir_okay=False,
    ),
    output: Path | None = typer.Option(
        None,
        "--output", "-o",
        help="Round output directory; its name prefixes the .known/.unknown files",
    ),
    round_number: int | None = typer.Option(
        None,
        "--round", "-r",
        help="Round number; outputs go to round-<N> under --output-root",
        min=1,
    ),
    output_root: Path = typer.Option(
        Path("."),
        "--output-root",
        help="Parent directory for numbered rounds",
    ),
    clade: str | None = typer.Option(
        None,
        "--clade", "-c",
        help="RepeatMasker clade/species searched before the library (e.g. 'vertebrata')",
    ),
    threads: int | None = typer.Option(
        None,
        "--threads", "-t",
        help="Parallel RepeatMasker jobs (-pa)",
        min=1,
    ),
    config_path: Path | None = typer.Option(
        None,
        "--config",
        help="YAML configuration file",
        exists=True,
        dir_okay=False,
    ),
    allow_masker_failure: bool = typer.Option(
        False,
        "--allow-masker-failure",
        help="Treat a failed RepeatMasker run as a search that found nothing",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Enable verbose output",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet", "-q",
        help="Suppress progress output",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Show commands without executing",
    ),
) -> None:
    """
    Run one classification round.

    Unknown elements are searched against the clade (if given) and then the
    known library. Elements whose matches agree on one subfamily or one
    family are appended to a copy of the append-target library
    (<round>.known); the rest are written to <round>.unknown.

    Example:

        repclassifier round \\
            --unknown consensi.fa.unknown \\
            --library curated.fa \\
            --clade vertebrata \\
            --round 1 --threads 8
    """
    if output is not None and round_number is not None:
        raise typer.BadParameter(
            "use either --output or --round, not both",
            param_hint="'--output' / '--round'",
        )
    if output is None and round_number is None:
        raise typer.BadParameter(
            "an output directory or round number is required",
            param_hint="'--output' / '--round'",
        )
    if output is not None:
        _check_output_name(output)

    out = QuietConsole(console, quiet=quiet)
    configure_logging(console, verbose)

    try:
        config = _build_config(config_path, threads, allow_masker_failure)
        if round_number is not None:
            round_ = Round.from_number(
                round_number,
                output_root=output_root,
                unknown_fasta=unknown,
                library_fasta=library,
                append_fasta=append,
                clade=clade,
                threads=config.threads,
            )
        else:
            round_ = Round(
                name=output.resolve().name,
                work_dir=output,
                unknown_fasta=unknown,
                library_fasta=library,
                append_fasta=append or library,
                clade=clade,
                threads=config.threads,
            )
    except RepclassifierError as e:
        print_error(console, e)
        raise typer.Exit(code=1) from None

    out.print("\n[bold blue]Repeat Classification Round[/bold blue]\n")

    _check_repeatmasker()
    masker = RepeatMasker(config.masker)

    if dry_run:
        _show_dry_run(round_, masker)
        console.print("\n[green]Dry run complete. No files were created.[/green]")
        raise typer.Exit(code=0)

    orchestrator = RoundOrchestrator(masker, config)
    try:
        with spinner_progress(f"Running {round_.name}...", console, quiet):
            outcome = orchestrator.run(round_)
    except RepclassifierError as e:
        print_error(console, e)
        raise typer.Exit(code=1) from None

    out.print(summary_table([outcome.summary]))
    _print_outputs(out, outcome.summary)

    if verbose:
        for found in outcome.searches:
            if found.tool_result is not None:
                out.print(
                    f"\n[dim]Command: {found.tool_result.command_string} "
                    f"({found.tool_result.elapsed_seconds:.1f}s)[/dim]"
                )


def iterate_rounds(
    unknown: Path = typer.Option(
        ...,
        "--unknown", "-u",
        help="FASTA of unknown repeat elements to classify",
        exists=True,
        dir_okay=False,
    ),
    library: Path = typer.Option(
        ...,
        "--library", "-l",
        help="Known repeat library to search in the first round",
        exists=True,
        dir_okay=False,
    ),
    append: Path | None = typer.Option(
        None,
        "--append", "-a",
        help="Library extended in the first round (default: --library)",
        exists=True,
        dir_okay=False,
    ),
    output_root: Path = typer.Option(
        Path("."),
        "--output-root", "-o",
        help="Directory receiving round-1, round-2, ...",
    ),
    clade: str | None = typer.Option(
        None,
        "--clade", "-c",
        help="RepeatMasker clade/species searched in the first round",
    ),
    max_rounds: int | None = typer.Option(
        None,
        "--max-rounds", "-m",
        help="Maximum number of rounds (default from config: 10)",
        min=1,
    ),
    threads: int | None = typer.Option(
        None,
        "--threads", "-t",
        help="Parallel RepeatMasker jobs (-pa)",
        min=1,
    ),
    config_path: Path | None = typer.Option(
        None,
        "--config",
        help="YAML configuration file",
        exists=True,
        dir_okay=False,
    ),
    allow_masker_failure: bool = typer.Option(
        False,
        "--allow-masker-failure",
        help="Treat a failed RepeatMasker run as a search that found nothing",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Enable verbose output",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet", "-q",
        help="Suppress progress output",
    ),
) -> None:
    """
    Chain rounds until the unknown set stops shrinking.

    Each round searches the library extended by the previous round and
    re-examines what it left unknown. The clade search runs in round 1 only.

    Example:

        repclassifier iterate \\
            --unknown consensi.fa.unknown \\
            --library curated.fa \\
            --clade vertebrata \\
            --output-root classification/ --max-rounds 5
    """
    out = QuietConsole(console, quiet=quiet)
    configure_logging(console, verbose)

    try:
        config = _build_config(config_path, threads, allow_masker_failure)
        config = config.with_overrides(max_rounds=max_rounds)
    except RepclassifierError as e:
        print_error(console, e)
        raise typer.Exit(code=1) from None

    out.print("\n[bold blue]Iterative Repeat Classification[/bold blue]\n")

    _check_repeatmasker()

    first = Round.from_number(
        1,
        output_root=output_root,
        unknown_fasta=unknown,
        library_fasta=library,
        append_fasta=append,
        clade=clade,
        threads=config.threads,
    )
    orchestrator = RoundOrchestrator(RepeatMasker(config.masker), config)

    try:
        with spinner_progress(f"Running up to {config.max_rounds} rounds...", console, quiet):
            outcomes = orchestrator.run_rounds(first, output_root=output_root)
    except RepclassifierError as e:
        print_error(console, e)
        raise typer.Exit(code=1) from None

    summaries = [o.summary for o in outcomes]
    out.print(summary_table(summaries))

    total = summaries[0].input_sequences
    classified = sum(s.classified for s in summaries)
    out.print(
        f"\n[bold green]{classified:,} of {total:,} elements classified "
        f"in {len(summaries)} round(s)[/bold green]"
    )
    _print_outputs(out, summaries[-1])


def classify_reports(
    reports: list[Path] = typer.Argument(
        ...,
        help="RepeatMasker .out reports, clade search first",
    ),
    output: Path = typer.Option(
        ...,
        "--output", "-o",
        help="Directory for the classification lists",
    ),
    unknown: Path | None = typer.Option(
        None,
        "--unknown", "-u",
        help="Unknown-element FASTA to partition (requires --append)",
        exists=True,
        dir_okay=False,
    ),
    append: Path | None = typer.Option(
        None,
        "--append", "-a",
        help="Library that classified elements are appended to (requires --unknown)",
        exists=True,
        dir_okay=False,
    ),
    config_path: Path | None = typer.Option(
        None,
        "--config",
        help="YAML configuration file",
        exists=True,
        dir_okay=False,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Enable verbose output",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet", "-q",
        help="Suppress progress output",
    ),
) -> None:
    """
    Classify existing RepeatMasker reports without running RepeatMasker.

    Writes the subfamily, family, combined and chimeric lists to --output.
    With --unknown and --append, also writes <output>.known and
    <output>.unknown into the same directory.

    Example:

        repclassifier report \\
            round-1/clade_search/round-1.input.fa.out \\
            round-1/library_search/round-1.input.fa.masked.out \\
            --output reclassified/
    """
    if (unknown is None) != (append is None):
        raise typer.BadParameter(
            "--unknown and --append must be given together",
            param_hint="'--unknown' / '--append'",
        )
    _check_output_name(output)

    out = QuietConsole(console, quiet=quiet)
    configure_logging(console, verbose)

    try:
        for report in reports:
            if not report.is_file():
                raise MatchReportNotFoundError(report)
        config = load_config(config_path)
    except RepclassifierError as e:
        print_error(console, e)
        raise typer.Exit(code=1) from None

    parser = RepeatMaskerOutParser(
        config.classification.excluded_families,
        strip_annotation=config.classification.strip_annotation,
    )
    matches = parser.parse_files(reports)
    result = RepeatClassifier().classify(matches)
    artifacts = result.write_artifacts(output)
    counts = result.counts()

    name = output.resolve().name
    summary = RoundSummary(
        round_name=name,
        mode="report",
        input_sequences=result.table.height,
        match_records=parser.stats.records_kept,
        excluded_records=parser.stats.records_excluded,
        subfamily_matches=counts[OutcomeKind.SUBFAMILY_MATCH],
        family_matches=counts[OutcomeKind.FAMILY_MATCH],
        chimeric=counts[OutcomeKind.CHIMERIC],
        classified=result.classified.height,
        still_unknown=counts[OutcomeKind.CHIMERIC],
    )

    if unknown is not None and append is not None:
        try:
            updater = LibraryUpdater(
                append, strip_annotation=config.classification.strip_annotation
            )
            update = updater.update(
                unknown,
                result.classified_labels(),
                known_output=output / f"{name}.known",
                unknown_output=output / f"{name}.unknown",
            )
        except RepclassifierError as e:
            print_error(console, e)
            raise typer.Exit(code=1) from None
        summary = summary.model_copy(
            update={
                "input_sequences": count_sequences(unknown),
                "classified": len(update.classified_ids),
                "still_unknown": len(update.unknown_ids),
                "known_output": update.known_output,
                "unknown_output": update.unknown_output,
            }
        )

    from_fasta = summary.known_output is not None
    out.print(
        summary_table(
            [summary],
            title="Report classification",
            input_label="Input" if from_fasta else "Matched",
            show_pct=from_fasta,
        )
    )
    out.print("\n[bold]Classification lists:[/bold]")
    for path in artifacts.values():
        out.print(f"  {path}")
    if from_fasta:
        _print_outputs(out, summary)


__all__ = ["classify_reports", "iterate_rounds", "run_round"]
