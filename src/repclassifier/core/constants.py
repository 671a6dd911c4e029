"""
Constants used throughout the repclassifier package.

Centralizes report column positions, header tokens, the family denylist
and the names of per-round artifact files.
"""

from __future__ import annotations

# =============================================================================
# RepeatMasker .out layout
# =============================================================================

# First-field tokens of the three header lines RepeatMasker writes
REPORT_HEADER_TOKENS = frozenset({"SW", "score"})

# Minimum whitespace-delimited fields in a complete match line
REPORT_MIN_FIELDS = 15

# 0-based field positions
SCORE_FIELD = 0
QUERY_FIELD = 4
REPEAT_NAME_FIELD = 9
CLASS_FAMILY_FIELD = 10
OVERLAP_FIELD = 15

# Marker in the 16th field when a higher-scoring match overlaps this one
OVERLAP_MARKER = "*"

# Written instead of a table when nothing was masked
NO_REPEATS_NOTICE = "There were no repetitive sequences detected"

# =============================================================================
# Classification
# =============================================================================

# Non-informative repeat classes, never used as evidence
EXCLUDED_FAMILIES: tuple[str, ...] = (
    "Simple_repeat",
    "Satellite",
    "snRNA",
    "Unknown",
    "rRNA",
)

# Separates family from subfamily in a label (LINE/L1)
SUBFAMILY_SEPARATOR = "/"

# Family component for the denylist check ends at either separator
EXCLUSION_FAMILY_PATTERN = r"^([^/\-]*)"

# Separates the element id from its classification in a FASTA header
ANNOTATION_SEPARATOR = "#"

EVIDENCE_SEPARATOR = ","

# =============================================================================
# Round artifacts
# =============================================================================

SUBFAMILY_ARTIFACT = "subfamily_unambiguous_classified_elements.txt"
FAMILY_ARTIFACT = "family_unambiguous_classified_elements.txt"
COMBINED_ARTIFACT = "combined_classified_elements.txt"
CHIMERIC_ARTIFACT = "chimeric_elements.txt"

KNOWN_SUFFIX = ".known"
UNKNOWN_SUFFIX = ".unknown"
INPUT_SUFFIX = ".input.fa"

CLADE_SEARCH_DIR = "clade_search"
LIBRARY_SEARCH_DIR = "library_search"

ROUND_PREFIX = "round-"
