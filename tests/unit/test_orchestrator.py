"""
Unit tests for the round orchestrator.

RepeatMasker is replaced by the CannedSearch double from conftest, which
writes prepared .out text where RepeatMasker would.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from repclassifier.core.constants import CLADE_SEARCH_DIR, LIBRARY_SEARCH_DIR
from repclassifier.core.exceptions import EmptyFastaError, RoundSetupError
from repclassifier.core.library import read_sequences
from repclassifier.core.orchestrator import RoundOrchestrator
from repclassifier.models.config import ClassificationConfig, PipelineConfig
from repclassifier.models.rounds import Round, RoundSummary


def _round(tmp_path: Path, unknown: Path, library: Path, **kwargs) -> Round:
    return Round.from_number(
        1,
        output_root=tmp_path / "out",
        unknown_fasta=unknown,
        library_fasta=library,
        **kwargs,
    )


class TestLibraryOnlyRound:
    """Rounds without a clade search."""

    def test_outputs(self, tmp_path, unknown_fasta, library_fasta, scenario_report, canned_search):
        searcher = canned_search({"known.fa": scenario_report})
        round_ = _round(tmp_path, unknown_fasta, library_fasta)

        outcome = RoundOrchestrator(searcher).run(round_)

        assert outcome.library.classified_ids == ["elemA", "elemB"]
        assert outcome.library.unknown_ids == ["elemC", "elemD", "elemE"]
        assert round_.known_output.exists()
        assert round_.unknown_output.exists()
        assert set(outcome.artifacts) == {"subfamily", "family", "combined", "chimeric"}
        assert all(path.parent == round_.work_dir for path in outcome.artifacts.values())
        assert all(path.exists() for path in outcome.artifacts.values())

    def test_single_library_search(self, tmp_path, unknown_fasta, library_fasta, scenario_report, canned_search):
        searcher = canned_search({"known.fa": scenario_report})
        round_ = _round(tmp_path, unknown_fasta, library_fasta, threads=4)

        RoundOrchestrator(searcher).run(round_)

        assert len(searcher.calls) == 1
        call = searcher.calls[0]
        assert call["library"] == library_fasta
        assert call["query"] == round_.input_copy
        assert call["work_dir"] == round_.work_dir / LIBRARY_SEARCH_DIR
        assert call["threads"] == 4

    def test_summary(self, tmp_path, unknown_fasta, library_fasta, scenario_report, canned_search):
        searcher = canned_search({"known.fa": scenario_report})
        round_ = _round(tmp_path, unknown_fasta, library_fasta)

        summary = RoundOrchestrator(searcher).run(round_).summary

        assert summary.mode == "library"
        assert summary.input_sequences == 5
        assert summary.match_records == 6
        assert summary.excluded_records == 2
        assert (summary.subfamily_matches, summary.family_matches, summary.chimeric) == (1, 1, 1)
        assert (summary.classified, summary.still_unknown) == (2, 3)
        assert RoundSummary.from_json(round_.summary_path) == summary

    def test_input_copied_not_modified(self, tmp_path, unknown_fasta, library_fasta, scenario_report, canned_search):
        before = unknown_fasta.read_bytes()
        round_ = _round(tmp_path, unknown_fasta, library_fasta)

        RoundOrchestrator(canned_search({"known.fa": scenario_report})).run(round_)

        assert unknown_fasta.read_bytes() == before
        assert round_.input_copy.read_bytes() == before

    def test_missing_report_leaves_everything_unknown(self, tmp_path, unknown_fasta, library_fasta, canned_search):
        round_ = _round(tmp_path, unknown_fasta, library_fasta)

        outcome = RoundOrchestrator(canned_search({})).run(round_)

        assert outcome.library.classified_ids == []
        assert len(outcome.library.unknown_ids) == 5
        assert round_.known_output.read_text() == library_fasta.read_text()

    def test_custom_denylist(self, tmp_path, unknown_fasta, library_fasta, scenario_report, canned_search):
        config = PipelineConfig(classification=ClassificationConfig(excluded_families=("DNA",)))
        round_ = _round(tmp_path, unknown_fasta, library_fasta)

        outcome = RoundOrchestrator(canned_search({"known.fa": scenario_report}), config).run(round_)

        # elemC loses its DNA hit and elemD keeps its Satellite hits
        labels = outcome.classification.classified_labels()
        assert labels["elemC"] == "LINE/L1"
        assert labels["elemD"] == "Satellite"


class TestCladeRound:
    """Rounds that search a clade before the library."""

    def test_clade_searched_first(self, tmp_path, unknown_fasta, library_fasta, report_builder, canned_search):
        searcher = canned_search(
            {
                "clade": report_builder(("elemA#Unknown", "LINE/L1", 500)),
                "known.fa": report_builder(("elemB#Unknown", "DNA/hAT", 400)),
            },
            masked=True,
        )
        round_ = _round(tmp_path, unknown_fasta, library_fasta, clade="vertebrata")

        outcome = RoundOrchestrator(searcher).run(round_)

        clade_call, library_call = searcher.calls
        assert clade_call["species"] == "vertebrata"
        assert clade_call["work_dir"] == round_.work_dir / CLADE_SEARCH_DIR
        assert library_call["library"] == library_fasta
        assert library_call["query"] == round_.work_dir / CLADE_SEARCH_DIR / "round-1.input.fa.masked"
        assert outcome.summary.mode == "clade+library"
        assert outcome.classification.classified_labels() == {"elemA": "LINE/L1", "elemB": "DNA/hAT"}

    def test_unmasked_clade_search_falls_back_to_input(
        self, tmp_path, unknown_fasta, library_fasta, canned_search
    ):
        searcher = canned_search({}, masked=True)
        round_ = _round(tmp_path, unknown_fasta, library_fasta, clade="vertebrata")

        RoundOrchestrator(searcher).run(round_)

        assert searcher.calls[1]["query"] == round_.input_copy

    def test_clade_and_library_hits_combined(
        self, tmp_path, unknown_fasta, library_fasta, report_builder, canned_search
    ):
        """Evidence lists clade labels before library labels on equal scores."""
        searcher = canned_search(
            {
                "clade": report_builder(("elemA#Unknown", "DNA/hAT", 300)),
                "known.fa": report_builder(("elemA#Unknown", "LINE/L1", 300)),
            }
        )
        round_ = _round(tmp_path, unknown_fasta, library_fasta, clade="vertebrata")

        outcome = RoundOrchestrator(searcher).run(round_)

        assert outcome.classification.chimeric.rows() == [("elemA", "DNA/hAT,LINE/L1")]


class TestRoundSetup:
    def test_missing_unknown(self, tmp_path, library_fasta, canned_search):
        round_ = _round(tmp_path, tmp_path / "absent.fa", library_fasta)

        with pytest.raises(RoundSetupError, match="unknown FASTA not found"):
            RoundOrchestrator(canned_search({})).run(round_)

    def test_missing_append_target(self, tmp_path, unknown_fasta, library_fasta, canned_search):
        round_ = _round(tmp_path, unknown_fasta, library_fasta, append_fasta=tmp_path / "nope.fa")

        with pytest.raises(RoundSetupError, match="append-target"):
            RoundOrchestrator(canned_search({})).run(round_)

    def test_empty_unknown(self, tmp_path, library_fasta, canned_search):
        empty = tmp_path / "empty.fa"
        empty.write_text("")
        searcher = canned_search({})

        with pytest.raises(EmptyFastaError):
            RoundOrchestrator(searcher).run(_round(tmp_path, empty, library_fasta))
        assert searcher.calls == []


class TestRunRounds:
    """Tests for chaining rounds."""

    def test_second_round_uses_first_round_outputs(
        self, tmp_path, unknown_fasta, library_fasta, scenario_report, report_builder, canned_search
    ):
        searcher = canned_search(
            {
                "known.fa": scenario_report,
                "round-1.known": report_builder(("elemE#Unknown", "LINE/L1", 250)),
            }
        )
        first = _round(tmp_path, unknown_fasta, library_fasta, clade="vertebrata")

        outcomes = RoundOrchestrator(searcher).run_rounds(first, output_root=tmp_path / "out")

        # Round 3 finds nothing new and ends the chain
        assert [o.round.name for o in outcomes] == ["round-1", "round-2", "round-3"]
        second = outcomes[1].round
        assert second.unknown_fasta == first.unknown_output
        assert second.library_fasta == first.known_output
        assert second.append_fasta == first.known_output
        assert second.clade is None
        assert outcomes[1].library.classified_ids == ["elemE"]
        assert outcomes[2].summary.classified == 0

    def test_clade_only_in_first_round(
        self, tmp_path, unknown_fasta, library_fasta, scenario_report, report_builder, canned_search
    ):
        searcher = canned_search(
            {
                "known.fa": scenario_report,
                "round-1.known": report_builder(("elemE#Unknown", "LINE/L1", 250)),
            }
        )
        first = _round(tmp_path, unknown_fasta, library_fasta, clade="vertebrata")

        RoundOrchestrator(searcher).run_rounds(first, output_root=tmp_path / "out")

        species = [c["species"] for c in searcher.calls]
        assert species == ["vertebrata", None, None, None]

    def test_library_grows_across_rounds(
        self, tmp_path, unknown_fasta, library_fasta, scenario_report, report_builder, canned_search
    ):
        searcher = canned_search(
            {
                "known.fa": scenario_report,
                "round-1.known": report_builder(("elemE#Unknown", "LINE/L1", 250)),
            }
        )
        first = _round(tmp_path, unknown_fasta, library_fasta)

        outcomes = RoundOrchestrator(searcher).run_rounds(first, output_root=tmp_path / "out")

        ids = [r.element_id for r in read_sequences(outcomes[1].round.known_output)]
        assert ids == ["L1MA9", "Charlie1", "elemA", "elemB", "elemE"]

    def test_stops_when_nothing_left(self, tmp_path, fasta_writer, library_fasta, report_builder, canned_search):
        unknown = fasta_writer(tmp_path / "u.fa", [("elemA#Unknown", "ACGT")])
        searcher = canned_search({"known.fa": report_builder(("elemA", "LINE/L1", 100))})

        outcomes = RoundOrchestrator(searcher).run_rounds(
            _round(tmp_path, unknown, library_fasta), output_root=tmp_path / "out"
        )

        assert len(outcomes) == 1
        assert outcomes[0].summary.still_unknown == 0

    def test_max_rounds(self, tmp_path, unknown_fasta, library_fasta, scenario_report, report_builder, canned_search):
        searcher = canned_search(
            {
                "known.fa": scenario_report,
                "round-1.known": report_builder(("elemE#Unknown", "LINE/L1", 250)),
            }
        )
        first = _round(tmp_path, unknown_fasta, library_fasta)

        outcomes = RoundOrchestrator(searcher, PipelineConfig(max_rounds=1)).run_rounds(
            first, output_root=tmp_path / "out"
        )

        assert len(outcomes) == 1


class TestAnnotatedIds:
    """Rounds configured to keep the '#annotation' on query ids."""

    def test_partition_matches_classification(
        self, tmp_path, unknown_fasta, library_fasta, scenario_report, canned_search
    ):
        config = PipelineConfig(classification=ClassificationConfig(strip_annotation=False))
        round_ = _round(tmp_path, unknown_fasta, library_fasta)

        outcome = RoundOrchestrator(canned_search({"known.fa": scenario_report}), config).run(round_)

        assert outcome.classification.classified_labels() == {
            "elemA#Unknown": "LINE/L1",
            "elemB#Unknown": "LINE",
        }
        assert outcome.library.classified_ids == ["elemA", "elemB"]
        assert outcome.library.unknown_ids == ["elemC", "elemD", "elemE"]
        assert outcome.summary.classified == 2
        known = round_.known_output.read_text()
        assert ">elemA#LINE/L1\n" in known
        assert ">elemB#LINE\n" in known
