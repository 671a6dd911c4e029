"""
Minimal FASTA record model for repeat library entries.

RepeatMasker-style libraries encode the classification in the header,
``>element_id#Family/Subfamily optional description``. Parsing and
writing of the FASTA format itself is left to Biopython.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from Bio.Seq import Seq
from Bio.SeqRecord import SeqRecord

from repclassifier.core.constants import ANNOTATION_SEPARATOR


@dataclass(frozen=True)
class SequenceRecord:
    """One library entry.

    Attributes:
        element_id: Header id without the ``#`` annotation.
        annotation: Text after ``#`` (e.g. ``Unknown``), or None.
        sequence: Nucleotide sequence.
        description: Free text following the first header word.
    """

    element_id: str
    annotation: str | None
    sequence: str
    description: str = ""

    @property
    def header_id(self) -> str:
        if self.annotation is None:
            return self.element_id
        return f"{self.element_id}{ANNOTATION_SEPARATOR}{self.annotation}"

    def with_label(self, label: str) -> SequenceRecord:
        """Return a copy whose annotation is replaced by ``label``."""
        return replace(self, annotation=label)

    @classmethod
    def from_seq_record(cls, record: SeqRecord) -> SequenceRecord:
        element_id, sep, annotation = record.id.partition(ANNOTATION_SEPARATOR)
        description = record.description
        if description.startswith(record.id):
            description = description[len(record.id):]
        return cls(
            element_id=element_id,
            annotation=annotation if sep else None,
            sequence=str(record.seq),
            description=description.strip(),
        )

    def to_seq_record(self) -> SeqRecord:
        header_id = self.header_id
        title = f"{header_id} {self.description}" if self.description else header_id
        return SeqRecord(Seq(self.sequence), id=header_id, description=title)
