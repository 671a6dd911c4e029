"""
Three-tier classification of unknown repeat elements.

Each element's surviving matches are reduced to their distinct labels
(best score first) and resolved as:

1. one distinct label                  -> SubfamilyMatch, that label
2. several labels, one family          -> FamilyMatch, the family
3. several families                    -> Chimeric, labels as evidence

The decision only looks at which labels are present, never at how high
they scored; the score order only fixes the order of the evidence string.
All elements are grouped in a single Polars pass.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import polars as pl

from repclassifier.core.constants import (
    CHIMERIC_ARTIFACT,
    COMBINED_ARTIFACT,
    EVIDENCE_SEPARATOR,
    FAMILY_ARTIFACT,
    SUBFAMILY_ARTIFACT,
)
from repclassifier.core.io_utils import write_tsv
from repclassifier.core.parsers import family_expr
from repclassifier.models.matches import ElementOutcome, OutcomeKind

logger = logging.getLogger(__name__)

OUTCOME_SCHEMA: dict[str, pl.DataType] = {
    "query_id": pl.Utf8,
    "outcome_kind": pl.Utf8,
    "label": pl.Utf8,
    "evidence": pl.Utf8,
}


class RepeatClassifier:
    """
    Assigns one ElementOutcome per element with at least one surviving match.

    Elements without surviving matches get no outcome; they are implicitly
    Unclassified and only show up as absent from the classified list.

    Example:
        >>> matches = RepeatMaskerOutParser().parse_files([library_out])
        >>> result = RepeatClassifier().classify(matches)
        >>> result.classified_labels()
        {'elem_1': 'LINE/L1', 'elem_2': 'DNA'}
    """

    def classify(self, matches: pl.DataFrame) -> ClassificationResult:
        """
        Classify a rank-ordered match table.

        Args:
            matches: Table with ``query_id`` and ``match_label`` columns,
                sorted by query_id then score descending.

        Returns:
            ClassificationResult with one row per matched element.
        """
        if matches.is_empty():
            return ClassificationResult(pl.DataFrame(schema=OUTCOME_SCHEMA))

        if "family" not in matches.columns:
            matches = matches.with_columns(family_expr())

        grouped = matches.group_by("query_id", maintain_order=True).agg(
            pl.col("match_label").unique(maintain_order=True).alias("labels"),
            pl.col("family").unique(maintain_order=True).alias("families"),
        )

        n_labels = pl.col("labels").list.len()
        n_families = pl.col("families").list.len()

        outcomes = grouped.select(
            pl.col("query_id"),
            pl.when(n_labels == 1)
            .then(pl.lit(OutcomeKind.SUBFAMILY_MATCH.value))
            .when(n_families == 1)
            .then(pl.lit(OutcomeKind.FAMILY_MATCH.value))
            .otherwise(pl.lit(OutcomeKind.CHIMERIC.value))
            .alias("outcome_kind"),
            pl.when(n_labels == 1)
            .then(pl.col("labels").list.first())
            .when(n_families == 1)
            .then(pl.col("families").list.first())
            .otherwise(pl.lit(""))
            .alias("label"),
            pl.when((n_labels > 1) & (n_families > 1))
            .then(pl.col("labels").list.join(EVIDENCE_SEPARATOR))
            .otherwise(pl.lit(""))
            .alias("evidence"),
        ).sort("query_id", maintain_order=True)

        result = ClassificationResult(outcomes)
        counts = result.counts()
        logger.info(
            "Classified %d elements: %d subfamily, %d family, %d chimeric",
            outcomes.height,
            counts[OutcomeKind.SUBFAMILY_MATCH],
            counts[OutcomeKind.FAMILY_MATCH],
            counts[OutcomeKind.CHIMERIC],
        )
        return result


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome table for one round.

    Columns: ``query_id``, ``outcome_kind``, ``label``, ``evidence``.
    """

    table: pl.DataFrame

    def _of_kind(self, kind: OutcomeKind) -> pl.DataFrame:
        return self.table.filter(pl.col("outcome_kind") == kind.value)

    @property
    def subfamily_matches(self) -> pl.DataFrame:
        return self._of_kind(OutcomeKind.SUBFAMILY_MATCH).select("query_id", "label")

    @property
    def family_matches(self) -> pl.DataFrame:
        return self._of_kind(OutcomeKind.FAMILY_MATCH).select("query_id", "label")

    @property
    def classified(self) -> pl.DataFrame:
        """Subfamily and family matches together, sorted by element id."""
        return pl.concat([self.subfamily_matches, self.family_matches]).sort("query_id")

    @property
    def chimeric(self) -> pl.DataFrame:
        return self._of_kind(OutcomeKind.CHIMERIC).select("query_id", "evidence")

    def classified_labels(self) -> dict[str, str]:
        """Map element id to its assigned label, classified elements only."""
        classified = self.classified
        return dict(zip(classified["query_id"].to_list(), classified["label"].to_list()))

    def outcomes(self) -> list[ElementOutcome]:
        return [
            ElementOutcome(
                query_id=row["query_id"],
                outcome_kind=OutcomeKind(row["outcome_kind"]),
                label=row["label"],
                evidence=row["evidence"],
            )
            for row in self.table.iter_rows(named=True)
        ]

    def counts(self) -> dict[OutcomeKind, int]:
        counts = dict.fromkeys(OutcomeKind, 0)
        for kind, n in self.table.group_by("outcome_kind").len().iter_rows():
            counts[OutcomeKind(kind)] = n
        return counts

    def write_artifacts(self, directory: Path) -> dict[str, Path]:
        """
        Write the four per-round classification lists into ``directory``.

        Files are tab-separated without a header. Empty lists still produce
        (empty) files so downstream scripts can rely on their presence.
        """
        directory.mkdir(parents=True, exist_ok=True)
        artifacts = {
            "subfamily": (directory / SUBFAMILY_ARTIFACT, self.subfamily_matches),
            "family": (directory / FAMILY_ARTIFACT, self.family_matches),
            "combined": (directory / COMBINED_ARTIFACT, self.classified),
            "chimeric": (directory / CHIMERIC_ARTIFACT, self.chimeric),
        }
        for path, frame in artifacts.values():
            write_tsv(frame, path)
        return {name: path for name, (path, _) in artifacts.items()}
