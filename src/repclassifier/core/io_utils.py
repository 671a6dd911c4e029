"""
I/O utilities for round artifacts.

Provides consistent handling of the plain-text outputs shared by the
classifier and the library updater.
"""

from __future__ import annotations

import shutil
from pathlib import Path

import polars as pl


def write_tsv(df: pl.DataFrame, path: Path) -> None:
    """
    Write DataFrame as tab-separated text without a header row.

    Example:
        >>> df = pl.DataFrame({"query_id": ["elem_1"], "label": ["LINE/L1"]})
        >>> write_tsv(df, Path("combined_classified_elements.txt"))
    """
    df.write_csv(path, separator="\t", include_header=False)


def copy_with_trailing_newline(source: Path, destination: Path) -> None:
    """Copy ``source`` to ``destination`` so that appended records start on a new line."""
    shutil.copyfile(source, destination)
    size = destination.stat().st_size
    if size == 0:
        return
    with destination.open("rb+") as handle:
        handle.seek(size - 1)
        if handle.read(1) != b"\n":
            handle.write(b"\n")
