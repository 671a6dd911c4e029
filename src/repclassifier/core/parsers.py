"""
Parser for RepeatMasker ``.out`` match reports using Polars.

A report is a whitespace-aligned table preceded by three header lines:

       SW   perc perc perc  query     position in query    matching  repeat        position in repeat
    score   div. del. ins.  sequence  begin end    (left)   repeat    class/family  begin  end (left)  ID

      463   18.4  1.2  0.0  elem_1       1   170    (30) + L1MA9     LINE/L1          5848 6019   (2) 1
      301   22.1  0.0  3.4  elem_1     120   290     (0) C MER5A     DNA/hAT-Charlie   (10)  180    1   2 *

Parsing is best effort: rows that cannot be read are skipped, never
raised, so one odd line cannot abort a round.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar

import polars as pl

from repclassifier.core.constants import (
    CLASS_FAMILY_FIELD,
    EXCLUDED_FAMILIES,
    EXCLUSION_FAMILY_PATTERN,
    NO_REPEATS_NOTICE,
    OVERLAP_FIELD,
    OVERLAP_MARKER,
    QUERY_FIELD,
    REPEAT_NAME_FIELD,
    REPORT_HEADER_TOKENS,
    REPORT_MIN_FIELDS,
    SCORE_FIELD,
    SUBFAMILY_SEPARATOR,
)
from repclassifier.models.matches import MatchRecord, strip_annotation

logger = logging.getLogger(__name__)


def family_expr(column: str = "match_label") -> pl.Expr:
    """Polars expression for the family component of a label (text before '/')."""
    return pl.col(column).str.split(SUBFAMILY_SEPARATOR).list.first().alias("family")


def exclusion_family_expr(column: str = "match_label") -> pl.Expr:
    """Polars expression for the family used by the denylist (text before '/' or '-')."""
    return pl.col(column).str.extract(EXCLUSION_FAMILY_PATTERN, 1)


@dataclass
class ParseStats:
    """Line accounting for one parse."""

    lines_read: int = 0
    records_kept: int = 0
    records_excluded: int = 0
    lines_skipped: int = 0


class RepeatMaskerOutParser:
    """
    Parses one or more RepeatMasker ``.out`` reports into an ordered match table.

    Reports are concatenated in the order given (clade search first, then
    library search). The resulting DataFrame is sorted by ``query_id``
    ascending and ``score`` descending, keeping input order for ties; the
    classifier relies on that rank order.

    Example:
        >>> parser = RepeatMaskerOutParser()
        >>> matches = parser.parse_files([clade_out, library_out])
        >>> parser.stats.records_excluded
        12
    """

    SCHEMA: ClassVar[dict[str, pl.DataType]] = {
        "query_id": pl.Utf8,
        "match_label": pl.Utf8,
        "repeat_name": pl.Utf8,
        "score": pl.Int64,
        "overlapped": pl.Boolean,
    }

    def __init__(
        self,
        excluded_families: Iterable[str] = EXCLUDED_FAMILIES,
        *,
        strip_annotation: bool = True,
    ) -> None:
        self.excluded_families = tuple(excluded_families)
        self.strip_annotation = strip_annotation
        self.stats = ParseStats()

    def _parse_line(self, line: str) -> tuple[str, str, str, int, bool] | None:
        fields = line.split()
        if not fields or fields[0] in REPORT_HEADER_TOKENS:
            return None
        if len(fields) < REPORT_MIN_FIELDS:
            return None
        try:
            score = int(fields[SCORE_FIELD])
        except ValueError:
            return None

        query_id = fields[QUERY_FIELD]
        if self.strip_annotation:
            query_id = strip_annotation(query_id)
        if not query_id:
            return None

        overlapped = (
            len(fields) > OVERLAP_FIELD and fields[OVERLAP_FIELD] == OVERLAP_MARKER
        )
        return (
            query_id,
            fields[CLASS_FAMILY_FIELD],
            fields[REPEAT_NAME_FIELD],
            score,
            overlapped,
        )

    def iter_rows(self, lines: Iterable[str]) -> Iterator[tuple[str, str, str, int, bool]]:
        """Yield parsed rows, counting skipped lines in ``stats``."""
        for line in lines:
            if not line.strip():
                continue
            self.stats.lines_read += 1
            row = self._parse_line(line)
            if row is None:
                self.stats.lines_skipped += 1
                continue
            yield row

    def _read_report(self, path: Path) -> list[str]:
        if not path.exists():
            logger.warning("RepeatMasker report not found, no matches used: %s", path)
            return []
        text = path.read_text()
        if NO_REPEATS_NOTICE in text:
            logger.info("No repetitive sequences reported in %s", path)
            return []
        return text.splitlines()

    def parse_lines(self, lines: Iterable[str]) -> pl.DataFrame:
        """Parse report lines into the filtered, rank-ordered match table."""
        return self._to_frame(list(self.iter_rows(lines)))

    def parse_text(self, text: str) -> pl.DataFrame:
        """Parse the full text of a report."""
        return self.parse_lines(text.splitlines())

    def parse_files(self, paths: Iterable[Path | None]) -> pl.DataFrame:
        """Parse reports in the given order; None entries and missing files add nothing."""
        rows: list[tuple[str, str, str, int, bool]] = []
        for path in paths:
            if path is None:
                continue
            rows.extend(self.iter_rows(self._read_report(path)))
        return self._to_frame(rows)

    def _to_frame(self, rows: list[tuple[str, str, str, int, bool]]) -> pl.DataFrame:
        columns = list(self.SCHEMA)
        data = {name: [row[i] for row in rows] for i, name in enumerate(columns)}
        df = pl.DataFrame(data, schema=self.SCHEMA)

        excluded = exclusion_family_expr().is_in(list(self.excluded_families))
        kept = df.filter(~excluded)

        self.stats.records_excluded += df.height - kept.height
        self.stats.records_kept += kept.height
        logger.debug(
            "Parsed %d match records (%d excluded)", df.height, df.height - kept.height
        )

        return kept.with_columns(family_expr()).sort(
            ["query_id", "score"],
            descending=[False, True],
            maintain_order=True,
        )


def to_match_records(matches: pl.DataFrame) -> list[MatchRecord]:
    """Materialize validated MatchRecord models from a parsed match table."""
    return [
        MatchRecord(
            query_id=row["query_id"],
            match_label=row["match_label"],
            repeat_name=row["repeat_name"],
            score=row["score"],
            overlapped=row["overlapped"],
        )
        for row in matches.iter_rows(named=True)
    ]
