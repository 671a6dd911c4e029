"""
Repclassifier: iterative classification of unknown repeat elements.

Searches unknown repeat consensi (e.g. RepeatModeler '#Unknown' families)
against a RepeatMasker clade and a curated library, labels the elements
whose matches agree on a subfamily or family, and carries the rest into
the next round.
"""

__version__ = "0.1.0"
__author__ = "Repclassifier Team"

from repclassifier.core.classifier import ClassificationResult, RepeatClassifier
from repclassifier.core.library import LibraryUpdater
from repclassifier.core.orchestrator import RoundOrchestrator
from repclassifier.core.parsers import RepeatMaskerOutParser
from repclassifier.models.matches import ElementOutcome, MatchRecord, OutcomeKind

__all__ = [
    "ClassificationResult",
    "ElementOutcome",
    "LibraryUpdater",
    "MatchRecord",
    "OutcomeKind",
    "RepeatClassifier",
    "RepeatMaskerOutParser",
    "RoundOrchestrator",
    "__version__",
]
