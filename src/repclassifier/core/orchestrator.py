"""
Round orchestration: search, parse, classify, update the library.

One round runs either

- Mode A (clade given): a clade search over all unknown elements, then a
  library search over what the clade search left unmasked; or
- Mode B (no clade): a library search over all unknown elements,

and feeds the combined reports (clade first) through the parser,
classifier and library updater. Rounds are one-shot; ``run_rounds``
chains them, feeding each round's ``.unknown`` and ``.known`` outputs
into the next.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from repclassifier.core.classifier import ClassificationResult, RepeatClassifier
from repclassifier.core.constants import CLADE_SEARCH_DIR, LIBRARY_SEARCH_DIR, ROUND_PREFIX
from repclassifier.core.exceptions import EmptyFastaError, RoundSetupError
from repclassifier.core.library import LibraryUpdate, LibraryUpdater, count_sequences
from repclassifier.core.parsers import ParseStats, RepeatMaskerOutParser
from repclassifier.external.repeatmasker import RepeatSearch, SearchResult
from repclassifier.models.config import PipelineConfig
from repclassifier.models.matches import OutcomeKind
from repclassifier.models.rounds import Round, RoundSummary

logger = logging.getLogger(__name__)


@dataclass
class RoundOutcome:
    """Everything a finished round produced."""

    round: Round
    summary: RoundSummary
    classification: ClassificationResult
    library: LibraryUpdate
    searches: list[SearchResult] = field(default_factory=list)
    artifacts: dict[str, Path] = field(default_factory=dict)


class RoundOrchestrator:
    """
    Drives one or more classification rounds against a RepeatSearch.

    Example:
        >>> orchestrator = RoundOrchestrator(RepeatMasker(config.masker), config)
        >>> outcome = orchestrator.run(
        ...     Round.from_number(
        ...         1,
        ...         output_root=Path("."),
        ...         unknown_fasta=Path("consensi.fa"),
        ...         library_fasta=Path("known.fa"),
        ...         clade="vertebrata",
        ...     )
        ... )
        >>> outcome.summary.classified
        42
    """

    def __init__(self, searcher: RepeatSearch, config: PipelineConfig | None = None) -> None:
        self.searcher = searcher
        self.config = config or PipelineConfig()

    def _prepare(self, round_: Round) -> int:
        for label, path in (
            ("unknown FASTA", round_.unknown_fasta),
            ("library FASTA", round_.library_fasta),
            ("append-target FASTA", round_.append_fasta),
        ):
            if not path.is_file():
                raise RoundSetupError(round_.name, f"{label} not found: {path}")

        round_.work_dir.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(round_.unknown_fasta, round_.input_copy)

        n_input = count_sequences(round_.input_copy)
        if n_input == 0:
            raise EmptyFastaError(round_.unknown_fasta)
        return n_input

    def search(self, round_: Round) -> list[SearchResult]:
        """Run the round's searches; reports come back clade first."""
        searches: list[SearchResult] = []
        query = round_.input_copy

        if round_.clade is not None:
            logger.info("[%s] Searching clade '%s'", round_.name, round_.clade)
            clade = self.searcher.search(
                round_.input_copy,
                round_.work_dir / CLADE_SEARCH_DIR,
                species=round_.clade,
                threads=round_.threads,
            )
            searches.append(clade)
            if clade.masked_path is not None:
                query = clade.masked_path
            else:
                logger.info("[%s] Clade search masked nothing", round_.name)

        logger.info("[%s] Searching library %s", round_.name, round_.library_fasta)
        searches.append(
            self.searcher.search(
                query,
                round_.work_dir / LIBRARY_SEARCH_DIR,
                library=round_.library_fasta,
                threads=round_.threads,
            )
        )
        return searches

    def run(self, round_: Round) -> RoundOutcome:
        """
        Execute one round end to end.

        Raises:
            RoundSetupError: If an input FASTA is missing.
            EmptyFastaError: If the unknown FASTA holds no sequences.
            ToolExecutionError: If RepeatMasker fails and
                ``masker.fail_on_error`` is set.
        """
        n_input = self._prepare(round_)
        logger.info("[%s] %d unknown elements, mode %s", round_.name, n_input, round_.mode)

        searches = self.search(round_)

        classification_config = self.config.classification
        parser = RepeatMaskerOutParser(
            classification_config.excluded_families,
            strip_annotation=classification_config.strip_annotation,
        )
        matches = parser.parse_files(s.out_path for s in searches)

        classification = RepeatClassifier().classify(matches)
        artifacts = classification.write_artifacts(round_.work_dir)

        updater = LibraryUpdater(
            round_.append_fasta,
            strip_annotation=classification_config.strip_annotation,
        )
        library = updater.update(
            round_.input_copy,
            classification.classified_labels(),
            known_output=round_.known_output,
            unknown_output=round_.unknown_output,
        )

        summary = self._summarize(round_, n_input, parser.stats, classification, library)
        summary.to_json(round_.summary_path)

        return RoundOutcome(
            round=round_,
            summary=summary,
            classification=classification,
            library=library,
            searches=searches,
            artifacts=artifacts,
        )

    @staticmethod
    def _summarize(
        round_: Round,
        n_input: int,
        stats: ParseStats,
        classification: ClassificationResult,
        library: LibraryUpdate,
    ) -> RoundSummary:
        counts = classification.counts()
        return RoundSummary(
            round_name=round_.name,
            mode=round_.mode,
            input_sequences=n_input,
            match_records=stats.records_kept,
            excluded_records=stats.records_excluded,
            subfamily_matches=counts[OutcomeKind.SUBFAMILY_MATCH],
            family_matches=counts[OutcomeKind.FAMILY_MATCH],
            chimeric=counts[OutcomeKind.CHIMERIC],
            classified=len(library.classified_ids),
            still_unknown=len(library.unknown_ids),
            known_output=library.known_output,
            unknown_output=library.unknown_output,
        )

    def run_rounds(
        self,
        first: Round,
        *,
        output_root: Path,
        max_rounds: int | None = None,
    ) -> list[RoundOutcome]:
        """
        Chain rounds until the unknown set stops shrinking.

        Round k+1 reads round k's ``.unknown`` and searches and extends
        round k's ``.known``. Stops when nothing is left unknown, a round
        classifies nothing, or ``max_rounds`` rounds have run.
        """
        limit = max_rounds or self.config.max_rounds
        outcomes: list[RoundOutcome] = []
        current = first

        for number in range(1, limit + 1):
            outcome = self.run(current)
            outcomes.append(outcome)
            summary = outcome.summary

            if summary.still_unknown == 0:
                logger.info("All elements classified after %d round(s)", number)
                break
            if summary.classified == 0:
                logger.info(
                    "Round %s classified nothing; %d elements remain unknown",
                    current.name,
                    summary.still_unknown,
                )
                break
            if number == limit:
                logger.info("Reached the limit of %d round(s)", limit)
                break

            name = f"{ROUND_PREFIX}{number + 1}"
            current = current.next_round(name, output_root / name)

        return outcomes
