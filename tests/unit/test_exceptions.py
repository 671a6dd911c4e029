"""Unit tests for custom exceptions module."""

from pathlib import Path

import pytest

from repclassifier.core.exceptions import (
    ConfigurationError,
    EmptyFastaError,
    FastaFileError,
    InvalidConfigFileError,
    MatchReportError,
    MatchReportNotFoundError,
    RepclassifierError,
    RoundSetupError,
)


class TestRepclassifierError:
    """Tests for base exception class."""

    def test_basic_message(self):
        """Should create exception with just message."""
        error = RepclassifierError("Test error")
        assert error.message == "Test error"
        assert error.suggestion is None
        assert str(error) == "Test error"

    def test_message_with_suggestion(self):
        """Should include suggestion in full message."""
        error = RepclassifierError("Test error", suggestion="Try this fix")
        assert error.suggestion == "Try this fix"
        assert "Suggestion: Try this fix" in str(error)


class TestSpecificErrors:
    def test_invalid_config_file(self):
        error = InvalidConfigFileError(Path("cfg.yaml"), "top level must be a mapping")

        assert isinstance(error, ConfigurationError)
        assert "cfg.yaml" in str(error)
        assert "mapping" in error.message
        assert error.path == Path("cfg.yaml")

    def test_report_not_found(self):
        error = MatchReportNotFoundError(Path("round-1.input.fa.out"))

        assert isinstance(error, MatchReportError)
        assert "round-1.input.fa.out" in str(error)
        assert ".out" in error.suggestion

    def test_empty_fasta(self):
        error = EmptyFastaError(Path("consensi.fa"))

        assert isinstance(error, FastaFileError)
        assert "empty" in str(error).lower()
        assert "RepeatModeler" in error.suggestion

    def test_round_setup(self):
        error = RoundSetupError("round-3", "library FASTA not found: x.fa")

        assert "round-3" in error.message
        assert error.round_name == "round-3"


class TestExceptionHierarchy:
    @pytest.mark.parametrize(
        "error",
        [
            InvalidConfigFileError(Path("c.yaml"), "bad"),
            MatchReportNotFoundError(Path("r.out")),
            EmptyFastaError(Path("u.fa")),
            RoundSetupError("round-1", "bad"),
        ],
    )
    def test_all_inherit_from_base(self, error):
        """All custom exceptions should inherit from RepclassifierError."""
        assert isinstance(error, RepclassifierError)
        assert error.suggestion
