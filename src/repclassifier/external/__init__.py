"""
Wrappers for external bioinformatics tools.

Provides a Python interface to RepeatMasker.
"""

from repclassifier.external.base import (
    ExternalTool,
    ToolExecutionError,
    ToolNotFoundError,
    ToolResult,
    ToolTimeoutError,
)
from repclassifier.external.repeatmasker import RepeatMasker, RepeatSearch, SearchResult

__all__ = [
    "ExternalTool",
    "RepeatMasker",
    "RepeatSearch",
    "SearchResult",
    "ToolExecutionError",
    "ToolNotFoundError",
    "ToolResult",
    "ToolTimeoutError",
]
