"""
Shared pytest fixtures for repclassifier tests.

Provides RepeatMasker report text, FASTA inputs, and a canned search
double so that no test needs RepeatMasker installed.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable
from pathlib import Path

import pytest

from repclassifier.external.base import ExternalTool
from repclassifier.external.repeatmasker import RepeatMasker, SearchResult

REPORT_HEADER = (
    "   SW   perc perc perc  query      position in query           matching       "
    "repeat              position in  repeat\n"
    "score   div. del. ins.  sequence    begin     end    (left)    repeat         "
    "class/family         begin  end (left)   ID\n"
    "\n"
)


def out_line(
    query: str,
    label: str,
    score: int,
    repeat: str = "rep_1",
    overlapped: bool = False,
) -> str:
    """One RepeatMasker .out data line with the given query, label and score."""
    fields = [
        str(score), "18.4", "1.2", "0.0", query, "1", "170", "(30)", "+",
        repeat, label, "5848", "6019", "(2)", "1",
    ]
    if overlapped:
        fields.append("*")
    return " ".join(fields)


def make_report(*rows: tuple[str, str, int]) -> str:
    """Full report text (header included) for (query, label, score) rows."""
    return REPORT_HEADER + "\n".join(out_line(q, label, score) for q, label, score in rows) + "\n"


def write_fasta(path: Path, records: list[tuple[str, str]]) -> Path:
    """Write (header, sequence) pairs as FASTA."""
    path.write_text("".join(f">{header}\n{seq}\n" for header, seq in records))
    return path


class CannedSearch:
    """RepeatSearch double that writes prepared report text.

    Reports are looked up by ``"clade"`` for species searches and by the
    library file name for library searches. A missing key means the search
    wrote no report. ``masked`` makes clade searches also write a masked
    copy of their query.
    """

    def __init__(self, reports: dict[str, str], *, masked: bool = False):
        self.reports = reports
        self.masked = masked
        self.calls: list[dict[str, object]] = []

    def search(
        self,
        query: Path,
        work_dir: Path,
        *,
        library: Path | None = None,
        species: str | None = None,
        threads: int = 1,
    ) -> SearchResult:
        self.calls.append(
            {
                "query": query,
                "work_dir": work_dir,
                "library": library,
                "species": species,
                "threads": threads,
            }
        )
        work_dir.mkdir(parents=True, exist_ok=True)
        out_path, masked_path = RepeatMasker.output_paths(query, work_dir)

        key = "clade" if species is not None else library.name
        text = self.reports.get(key)
        if text is None:
            return SearchResult(out_path=None, masked_path=None)

        out_path.write_text(text)
        if species is not None and self.masked:
            shutil.copyfile(query, masked_path)
            return SearchResult(out_path=out_path, masked_path=masked_path)
        return SearchResult(out_path=out_path, masked_path=None)


# =============================================================================
# Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def _reset_global_state():
    """Undo CLI logging setup and executable lookups between tests."""
    yield
    logger = logging.getLogger("repclassifier")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    ExternalTool.reset_executable_resolver()


@pytest.fixture
def fake_executables():
    """Resolve every external tool to /opt/bin/<name>."""
    ExternalTool.set_executable_resolver(lambda name: f"/opt/bin/{name}")
    yield
    ExternalTool.reset_executable_resolver()


# =============================================================================
# RepeatMasker Report Fixtures
# =============================================================================


@pytest.fixture
def report_builder() -> Callable[..., str]:
    """Build report text from (query, label, score) tuples."""
    return make_report


@pytest.fixture
def line_builder() -> Callable[..., str]:
    """Build single .out data lines."""
    return out_line


@pytest.fixture
def scenario_report() -> str:
    """Library report covering the four reference outcomes.

    elemA: two LINE/L1 hits             -> SubfamilyMatch LINE/L1
    elemB: LINE/L1 and LINE/L2          -> FamilyMatch LINE
    elemC: LINE/L1 and DNA/hAT          -> Chimeric
    elemD: Satellite hits only          -> no outcome
    """
    return make_report(
        ("elemA#Unknown", "LINE/L1", 500),
        ("elemA#Unknown", "LINE/L1", 300),
        ("elemB#Unknown", "LINE/L1", 500),
        ("elemB#Unknown", "LINE/L2", 480),
        ("elemC#Unknown", "LINE/L1", 500),
        ("elemC#Unknown", "DNA/hAT", 490),
        ("elemD#Unknown", "Satellite", 700),
        ("elemD#Unknown", "Satellite/centr", 650),
    )


# =============================================================================
# FASTA Fixtures
# =============================================================================


@pytest.fixture
def fasta_writer() -> Callable[[Path, list[tuple[str, str]]], Path]:
    return write_fasta


@pytest.fixture
def unknown_fasta(tmp_path: Path) -> Path:
    """RepeatModeler-style consensi, five unknown elements."""
    return write_fasta(
        tmp_path / "consensi.fa",
        [
            ("elemA#Unknown", "ACGTACGTAC"),
            ("elemB#Unknown", "GGGTTTAAAC"),
            ("elemC#Unknown", "TTTTGGGGCC"),
            ("elemD#Unknown", "ATATATATAT"),
            ("elemE#Unknown ( RepeatScout Family Size = 12 )", "CCCCAAAAGG"),
        ],
    )


@pytest.fixture
def library_fasta(tmp_path: Path) -> Path:
    """Curated known library with two entries."""
    return write_fasta(
        tmp_path / "known.fa",
        [
            ("L1MA9#LINE/L1", "ACGTACGTACGTACGT"),
            ("Charlie1#DNA/hAT-Charlie", "GGGGCCCCGGGGCCCC"),
        ],
    )


@pytest.fixture
def canned_search() -> type[CannedSearch]:
    return CannedSearch
