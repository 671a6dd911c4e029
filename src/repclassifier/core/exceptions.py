"""
Custom exceptions with actionable guidance.

Each error carries a short message plus a suggestion that the CLI
prints underneath it, so users know what to fix before re-running a round.
"""

from __future__ import annotations

from pathlib import Path


class RepclassifierError(Exception):
    """Base exception for repclassifier errors."""

    def __init__(self, message: str, suggestion: str | None = None):
        self.message = message
        self.suggestion = suggestion
        super().__init__(self.full_message)

    @property
    def full_message(self) -> str:
        if self.suggestion:
            return f"{self.message}\n\nSuggestion: {self.suggestion}"
        return self.message


class ConfigurationError(RepclassifierError):
    """Raised when configuration is invalid."""


class InvalidConfigFileError(ConfigurationError):
    """Raised when a YAML configuration file cannot be used."""

    def __init__(self, path: Path, reason: str):
        super().__init__(
            message=f"Invalid configuration file '{path}': {reason}",
            suggestion=(
                "Configuration files are YAML mappings with optional 'masker' "
                "and 'classification' sections. Run 'repclassifier round --help' "
                "for the available settings."
            ),
        )
        self.path = path


class MatchReportError(RepclassifierError):
    """Base class for RepeatMasker report errors."""


class MatchReportNotFoundError(MatchReportError):
    """Raised when a report passed explicitly by the user does not exist."""

    def __init__(self, path: Path):
        super().__init__(
            message=f"RepeatMasker report not found: {path}",
            suggestion=(
                "Pass the '.out' file written by RepeatMasker "
                "(e.g. clade_search/round-1.input.fa.out)."
            ),
        )
        self.path = path


class FastaFileError(RepclassifierError):
    """Base class for FASTA input errors."""


class EmptyFastaError(FastaFileError):
    """Raised when a FASTA file holds no sequences."""

    def __init__(self, path: Path):
        super().__init__(
            message=f"FASTA file is empty or contains no sequences: {path}",
            suggestion=(
                "Check that the unknown-element file is a FASTA file "
                "with '>' headers, such as RepeatModeler consensi."
            ),
        )
        self.path = path


class RoundSetupError(RepclassifierError):
    """Raised when a round cannot be prepared from its inputs."""

    def __init__(self, round_name: str, reason: str):
        super().__init__(
            message=f"Cannot set up round '{round_name}': {reason}",
            suggestion=(
                "Provide an unknown-element FASTA, a known library FASTA and "
                "either --output or --round."
            ),
        )
        self.round_name = round_name
