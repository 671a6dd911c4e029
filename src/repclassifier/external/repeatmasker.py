"""
RepeatMasker wrapper.

Runs one search of unknown elements against either a clade from the
RepeatMasker database (``-species``) or a custom library (``-lib``) and
reports where the match table and masked sequences ended up, so callers
never have to glob the output directory.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from repclassifier.external.base import ExternalTool, ToolResult, validate_path_safe
from repclassifier.models.config import MaskerConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchResult:
    """Outputs of one RepeatMasker search.

    Attributes:
        out_path: The ``.out`` match table, or None if none was written.
        masked_path: The ``.masked`` FASTA, or None if nothing was masked.
        tool_result: Execution details, None for searches that did not
            run a subprocess.
    """

    out_path: Path | None
    masked_path: Path | None
    tool_result: ToolResult | None = None

    @property
    def found_matches(self) -> bool:
        return self.out_path is not None


class RepeatSearch(Protocol):
    """Anything that can search query sequences against a repeat reference."""

    def search(
        self,
        query: Path,
        work_dir: Path,
        *,
        library: Path | None = None,
        species: str | None = None,
        threads: int = 1,
    ) -> SearchResult: ...


class RepeatMasker(ExternalTool):
    """Wrapper for RepeatMasker.

    Example:
        >>> masker = RepeatMasker(MaskerConfig(sensitivity="slow"))
        >>> found = masker.search(
        ...     Path("round-1/round-1.input.fa"),
        ...     Path("round-1/library_search"),
        ...     library=Path("known.fa"),
        ...     threads=8,
        ... )
        >>> found.out_path
        PosixPath('round-1/library_search/round-1.input.fa.out')
    """

    TOOL_NAME = "RepeatMasker"
    INSTALL_HINT = "conda install -c bioconda repeatmasker"

    SENSITIVITY_FLAGS = {"default": None, "slow": "-s", "quick": "-q"}

    def __init__(self, config: MaskerConfig | None = None, *, dry_run: bool = False) -> None:
        self.config = config or MaskerConfig()
        self.dry_run = dry_run

    def build_command(
        self,
        *,
        query: Path,
        output_dir: Path,
        library: Path | None = None,
        species: str | None = None,
        threads: int = 1,
    ) -> list[str]:
        """Build RepeatMasker command.

        Args:
            query: FASTA of sequences to mask.
            output_dir: Directory for all RepeatMasker outputs (``-dir``).
            library: Custom repeat library (``-lib``).
            species: Clade/species name from the RepeatMasker database.
            threads: Parallel search jobs (``-pa``).

        Returns:
            Command as list of strings.

        Raises:
            ValueError: Unless exactly one of library or species is given.
        """
        if (library is None) == (species is None):
            msg = "Exactly one of 'library' or 'species' must be given"
            raise ValueError(msg)

        query = validate_path_safe(query, must_exist=False)
        output_dir = validate_path_safe(output_dir, must_exist=False)

        cmd = [str(self.get_executable())]
        cmd.extend(["-pa", str(threads)])
        cmd.extend(["-dir", str(output_dir)])

        if library is not None:
            library = validate_path_safe(library, must_exist=False)
            cmd.extend(["-lib", str(library)])
        else:
            cmd.extend(["-species", str(species)])

        if self.config.engine:
            cmd.extend(["-engine", self.config.engine])

        flag = self.SENSITIVITY_FLAGS[self.config.sensitivity]
        if flag:
            cmd.append(flag)

        if self.config.nolow:
            cmd.append("-nolow")

        cmd.extend(self.config.extra_args)
        cmd.append(str(query))
        return cmd

    @staticmethod
    def output_paths(query: Path, output_dir: Path) -> tuple[Path, Path]:
        """Return the (``.out``, ``.masked``) paths RepeatMasker writes for ``query``."""
        return (
            output_dir / f"{query.name}.out",
            output_dir / f"{query.name}.masked",
        )

    def search(
        self,
        query: Path,
        work_dir: Path,
        *,
        library: Path | None = None,
        species: str | None = None,
        threads: int = 1,
    ) -> SearchResult:
        """Run one search and locate its outputs.

        A non-zero exit raises ToolExecutionError when
        ``config.fail_on_error`` is set; otherwise it is logged and the
        search counts as having found nothing.
        """
        work_dir.mkdir(parents=True, exist_ok=True)
        kwargs: dict[str, object] = {
            "query": query,
            "output_dir": work_dir,
            "library": library,
            "species": species,
            "threads": threads,
        }

        if self.config.fail_on_error:
            result = self.run_or_raise(
                timeout=self.config.timeout, dry_run=self.dry_run, **kwargs
            )
        else:
            result = self.run(timeout=self.config.timeout, dry_run=self.dry_run, **kwargs)
            if not result.success:
                logger.warning(
                    "RepeatMasker exited with code %d; treating search as empty",
                    result.return_code,
                )
                return SearchResult(out_path=None, masked_path=None, tool_result=result)

        out_path, masked_path = self.output_paths(query, work_dir)
        if not out_path.exists() and not self.dry_run:
            logger.warning("RepeatMasker wrote no report at %s", out_path)
        return SearchResult(
            out_path=out_path if out_path.exists() else None,
            masked_path=masked_path if masked_path.exists() else None,
            tool_result=result,
        )
