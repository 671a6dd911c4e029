"""
Library update for one classification round.

Splits the round's unknown elements into those that received a label
and those that did not. Labeled elements are appended, with an
``id#Label`` header, to a copy of the append-target library; the rest
become the next round's unknown input. Input files are never modified.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from Bio import SeqIO

from repclassifier.core.exceptions import EmptyFastaError
from repclassifier.core.io_utils import copy_with_trailing_newline
from repclassifier.models.sequences import SequenceRecord

logger = logging.getLogger(__name__)


def read_sequences(path: Path) -> Iterator[SequenceRecord]:
    """Yield library records from a FASTA file."""
    with path.open() as handle:
        for record in SeqIO.parse(handle, "fasta"):
            yield SequenceRecord.from_seq_record(record)


def count_sequences(path: Path) -> int:
    return sum(1 for _ in read_sequences(path))


@dataclass
class LibraryUpdate:
    """Where one round's sequences went.

    Attributes:
        known_output: Append-target copy plus newly labeled records.
        unknown_output: Records that stay unknown.
        classified_ids: Element ids written to ``known_output``, input order.
        unknown_ids: Element ids written to ``unknown_output``, input order.
    """

    known_output: Path
    unknown_output: Path
    classified_ids: list[str] = field(default_factory=list)
    unknown_ids: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.classified_ids) + len(self.unknown_ids)


class LibraryUpdater:
    """
    Writes a round's ``.known`` and ``.unknown`` FASTA files.

    Every input record ends up in exactly one of the two outputs. Elements
    resolved as Chimeric, and elements with no surviving match, are simply
    absent from ``labels`` and so stay unknown.

    Example:
        >>> updater = LibraryUpdater(append_fasta=Path("known.fa"))
        >>> update = updater.update(
        ...     Path("round-1/round-1.input.fa"),
        ...     {"elem_1": "LINE/L1"},
        ...     known_output=Path("round-1/round-1.known"),
        ...     unknown_output=Path("round-1/round-1.unknown"),
        ... )
    """

    def __init__(self, append_fasta: Path, *, strip_annotation: bool = True) -> None:
        self.append_fasta = append_fasta
        self.strip_annotation = strip_annotation

    def _key(self, record: SequenceRecord) -> str:
        return record.element_id if self.strip_annotation else record.header_id

    def update(
        self,
        unknown_fasta: Path,
        labels: Mapping[str, str],
        *,
        known_output: Path,
        unknown_output: Path,
        allow_empty: bool = False,
    ) -> LibraryUpdate:
        """
        Partition ``unknown_fasta`` by ``labels`` and write both outputs.

        Args:
            unknown_fasta: The round's unknown elements.
            labels: Element id to assigned label. Ids carry their ``#``
                annotation when the updater was built with
                ``strip_annotation=False``, matching the parsed reports.
            known_output: Destination for append-target plus labeled records.
            unknown_output: Destination for records left unknown.
            allow_empty: Accept an input FASTA without records.

        Raises:
            EmptyFastaError: If the input holds no records and
                ``allow_empty`` is False.
        """
        known_output.parent.mkdir(parents=True, exist_ok=True)
        unknown_output.parent.mkdir(parents=True, exist_ok=True)

        copy_with_trailing_newline(self.append_fasta, known_output)
        result = LibraryUpdate(known_output=known_output, unknown_output=unknown_output)
        matched: set[str] = set()

        with known_output.open("a") as known, unknown_output.open("w") as unknown:
            for record in read_sequences(unknown_fasta):
                key = self._key(record)
                label = labels.get(key)
                if label:
                    matched.add(key)
                    SeqIO.write(record.with_label(label).to_seq_record(), known, "fasta")
                    result.classified_ids.append(record.element_id)
                else:
                    SeqIO.write(record.to_seq_record(), unknown, "fasta")
                    result.unknown_ids.append(record.element_id)

        if result.total == 0 and not allow_empty:
            raise EmptyFastaError(unknown_fasta)

        missing = set(labels) - matched
        if missing:
            logger.warning(
                "%d classified element(s) not found in %s: %s",
                len(missing),
                unknown_fasta,
                ", ".join(sorted(missing)[:5]),
            )

        logger.info(
            "Library update: %d classified, %d still unknown",
            len(result.classified_ids),
            len(result.unknown_ids),
        )
        return result
