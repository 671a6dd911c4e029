"""
CLI commands for repclassifier.

Provides command-line entry points for single rounds, chained rounds
and classification of existing RepeatMasker reports.
"""

__all__ = ["classify", "main"]
