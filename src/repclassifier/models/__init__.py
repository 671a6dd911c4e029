"""
Pydantic data models for repclassifier.

Provides models for RepeatMasker matches, element outcomes, library
records, rounds and configuration.
"""

from repclassifier.models.config import (
    ClassificationConfig,
    MaskerConfig,
    PipelineConfig,
)
from repclassifier.models.matches import ElementOutcome, MatchRecord, OutcomeKind
from repclassifier.models.rounds import Round, RoundSummary
from repclassifier.models.sequences import SequenceRecord

__all__ = [
    "ClassificationConfig",
    "ElementOutcome",
    "MaskerConfig",
    "MatchRecord",
    "OutcomeKind",
    "PipelineConfig",
    "Round",
    "RoundSummary",
    "SequenceRecord",
]
