"""
Pydantic models for RepeatMasker matches and per-element outcomes.

A MatchRecord is one line of a RepeatMasker .out report; an
ElementOutcome is the classification assigned to one unknown element
after all of its matches have been considered together.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, model_validator

from repclassifier.core.constants import (
    ANNOTATION_SEPARATOR,
    EVIDENCE_SEPARATOR,
    SUBFAMILY_SEPARATOR,
)


def split_label(label: str) -> tuple[str, str]:
    """Split a ``Family/Subfamily`` label into its two components.

    A bare family name counts as its own subfamily.

    Example:
        >>> split_label("LINE/L1")
        ('LINE', 'L1')
        >>> split_label("DNA")
        ('DNA', 'DNA')
    """
    family, sep, subfamily = label.partition(SUBFAMILY_SEPARATOR)
    return family, subfamily if sep else family


def strip_annotation(identifier: str) -> str:
    """Return the element id without its ``#classification`` suffix."""
    return identifier.split(ANNOTATION_SEPARATOR, 1)[0]


class OutcomeKind(str, Enum):
    """
    Classification tiers for an unknown element.

    Categories:
        SUBFAMILY_MATCH: every surviving match carries the same label
        FAMILY_MATCH: labels differ only below the family level
        CHIMERIC: matches span more than one family
        UNCLASSIFIED: no surviving match at all
    """

    SUBFAMILY_MATCH = "SubfamilyMatch"
    FAMILY_MATCH = "FamilyMatch"
    CHIMERIC = "Chimeric"
    UNCLASSIFIED = "Unclassified"

    @property
    def is_classified(self) -> bool:
        return self in (OutcomeKind.SUBFAMILY_MATCH, OutcomeKind.FAMILY_MATCH)


class MatchRecord(BaseModel):
    """
    Single RepeatMasker hit of an unknown element against a reference entry.

    Attributes:
        query_id: Unknown element identifier (without '#' annotation)
        match_label: Class/family of the matched entry, e.g. ``LINE/L1``
        repeat_name: Name of the matched reference entry
        score: Smith-Waterman score, used for ranking only
        overlapped: True when RepeatMasker flagged a higher-scoring overlap
    """

    query_id: str = Field(min_length=1, description="Unknown element identifier")
    match_label: str = Field(min_length=1, description="Family/Subfamily label")
    repeat_name: str = Field(default="", description="Matched reference entry")
    score: int = Field(ge=0, description="Smith-Waterman alignment score")
    overlapped: bool = Field(default=False, description="Overlapped by a better match")

    model_config = {"frozen": True}

    @property
    def family(self) -> str:
        return split_label(self.match_label)[0]

    @property
    def subfamily(self) -> str:
        return split_label(self.match_label)[1]


class ElementOutcome(BaseModel):
    """
    Classification result for one unknown element.

    Attributes:
        query_id: Unknown element identifier
        outcome_kind: Which tier of the decision rule applied
        label: Assigned ``Family/Subfamily`` or ``Family`` (classified kinds only)
        evidence: Comma-joined distinct labels, best first (Chimeric only)
    """

    query_id: str = Field(min_length=1)
    outcome_kind: OutcomeKind
    label: str = Field(default="")
    evidence: str = Field(default="")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_label(self) -> ElementOutcome:
        """Only classified outcomes carry a label."""
        if self.outcome_kind.is_classified and not self.label:
            msg = f"{self.outcome_kind.value} outcome for {self.query_id} needs a label"
            raise ValueError(msg)
        if not self.outcome_kind.is_classified and self.label:
            msg = f"{self.outcome_kind.value} outcome for {self.query_id} cannot carry a label"
            raise ValueError(msg)
        return self

    @property
    def is_classified(self) -> bool:
        return self.outcome_kind.is_classified

    @property
    def evidence_labels(self) -> list[str]:
        return self.evidence.split(EVIDENCE_SEPARATOR) if self.evidence else []
