"""
Pydantic models describing a classification round and its outcome.

A Round is the orchestration context: where its inputs live, where it
writes, and which searches it runs. A RoundSummary is the per-round
tally written next to the round's outputs.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, computed_field, field_validator

from repclassifier.core.constants import (
    INPUT_SUFFIX,
    KNOWN_SUFFIX,
    ROUND_PREFIX,
    UNKNOWN_SUFFIX,
)


class Round(BaseModel):
    """
    One execution of the classification procedure.

    The round name doubles as the prefix of its ``.known`` and ``.unknown``
    outputs. The round owns ``work_dir``; nothing inside it is shared with
    other rounds except the two outputs handed forward.

    Attributes:
        name: Round name, e.g. ``round-2`` or a user-chosen directory name
        work_dir: Directory holding every file this round creates
        unknown_fasta: Unknown elements to classify
        library_fasta: Known library searched with RepeatMasker
        append_fasta: Library that newly classified elements are appended to
        clade: Optional RepeatMasker species/clade name for a first search
        threads: Parallel jobs forwarded to RepeatMasker
    """

    name: str = Field(min_length=1)
    work_dir: Path
    unknown_fasta: Path
    library_fasta: Path
    append_fasta: Path
    clade: str | None = None
    threads: int = Field(default=1, ge=1)

    model_config = {"frozen": True}

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if "/" in v or v in (".", ".."):
            msg = f"Round name must be a plain directory name, got '{v}'"
            raise ValueError(msg)
        return v

    @field_validator("clade")
    @classmethod
    def blank_clade_is_none(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            return None
        return v

    @classmethod
    def from_number(
        cls,
        number: int,
        *,
        output_root: Path,
        unknown_fasta: Path,
        library_fasta: Path,
        append_fasta: Path | None = None,
        clade: str | None = None,
        threads: int = 1,
    ) -> Round:
        """Create ``round-<number>`` under ``output_root``."""
        if number < 1:
            msg = f"Round number must be >= 1, got {number}"
            raise ValueError(msg)
        name = f"{ROUND_PREFIX}{number}"
        return cls(
            name=name,
            work_dir=output_root / name,
            unknown_fasta=unknown_fasta,
            library_fasta=library_fasta,
            append_fasta=append_fasta or library_fasta,
            clade=clade,
            threads=threads,
        )

    @property
    def uses_clade(self) -> bool:
        return self.clade is not None

    @property
    def mode(self) -> str:
        return "clade+library" if self.uses_clade else "library"

    @property
    def input_copy(self) -> Path:
        return self.work_dir / f"{self.name}{INPUT_SUFFIX}"

    @property
    def known_output(self) -> Path:
        return self.work_dir / f"{self.name}{KNOWN_SUFFIX}"

    @property
    def unknown_output(self) -> Path:
        return self.work_dir / f"{self.name}{UNKNOWN_SUFFIX}"

    @property
    def summary_path(self) -> Path:
        return self.work_dir / f"{self.name}_summary.json"

    def next_round(self, name: str, work_dir: Path) -> Round:
        """Build the follow-up round fed by this round's outputs.

        The newly extended library becomes both the search library and the
        append target. The clade search is not repeated.
        """
        return Round(
            name=name,
            work_dir=work_dir,
            unknown_fasta=self.unknown_output,
            library_fasta=self.known_output,
            append_fasta=self.known_output,
            clade=None,
            threads=self.threads,
        )


class RoundSummary(BaseModel):
    """
    Tally of one completed round.

    Attributes:
        round_name: Name of the round
        mode: ``clade+library`` or ``library``
        input_sequences: Records in the round's unknown input
        match_records: Report records kept after the family denylist
        excluded_records: Report records dropped by the family denylist
        subfamily_matches: Elements resolved at subfamily level
        family_matches: Elements resolved at family level
        chimeric: Elements whose matches span several families
        classified: Records written to the known output
        still_unknown: Records written to the unknown output
    """

    round_name: str
    mode: str
    input_sequences: int = Field(ge=0)
    match_records: int = Field(default=0, ge=0)
    excluded_records: int = Field(default=0, ge=0)
    subfamily_matches: int = Field(default=0, ge=0)
    family_matches: int = Field(default=0, ge=0)
    chimeric: int = Field(default=0, ge=0)
    classified: int = Field(default=0, ge=0)
    still_unknown: int = Field(default=0, ge=0)
    known_output: Path | None = None
    unknown_output: Path | None = None

    @computed_field
    @property
    def classified_pct(self) -> float:
        """Percentage of input sequences classified this round."""
        if self.input_sequences == 0:
            return 0.0
        return self.classified / self.input_sequences * 100

    def to_json(self, path: Path) -> None:
        """Write summary to JSON file."""
        path.write_text(self.model_dump_json(indent=2))

    @classmethod
    def from_json(cls, path: Path) -> RoundSummary:
        """Load summary from JSON file."""
        return cls.model_validate_json(path.read_text())
