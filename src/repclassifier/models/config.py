"""
Pydantic configuration models for repclassifier.

Settings that tune how RepeatMasker is run and how its matches are
filtered. Round inputs (FASTA paths, clade, round name) come from the
command line; everything else can live in a YAML file:

    threads: 8
    max_rounds: 5
    masker:
      engine: rmblast
      sensitivity: slow
      nolow: true
      timeout: 86400
      fail_on_error: true
    classification:
      excluded_families: [Simple_repeat, Satellite, snRNA, Unknown, rRNA]
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError, field_validator

from repclassifier.core.constants import EXCLUDED_FAMILIES
from repclassifier.core.exceptions import InvalidConfigFileError

logger = logging.getLogger(__name__)


class MaskerConfig(BaseModel):
    """
    Configuration for RepeatMasker execution.

    Attributes:
        engine: Search engine passed to ``-engine`` (None keeps the default)
        sensitivity: ``slow`` adds ``-s``, ``quick`` adds ``-q``
        nolow: Skip low-complexity and simple-repeat masking (``-nolow``)
        extra_args: Additional arguments appended verbatim
        timeout: Seconds before the search is aborted (None for no limit)
        fail_on_error: Raise when RepeatMasker exits non-zero instead of
            treating the search as having found nothing
    """

    engine: Literal["rmblast", "crossmatch", "hmmer", "abblast"] | None = None
    sensitivity: Literal["default", "slow", "quick"] = "default"
    nolow: bool = False
    extra_args: tuple[str, ...] = ()
    timeout: float | None = Field(default=None, gt=0)
    fail_on_error: bool = True

    model_config = {"frozen": True}


class ClassificationConfig(BaseModel):
    """
    Configuration for match filtering.

    Attributes:
        excluded_families: Repeat classes that never count as evidence
        strip_annotation: Drop the ``#suffix`` from report query ids and
            join them against FASTA element ids; when False, full header
            ids (``id#annotation``) are joined instead
    """

    excluded_families: tuple[str, ...] = Field(default=EXCLUDED_FAMILIES)
    strip_annotation: bool = True

    model_config = {"frozen": True}

    @field_validator("excluded_families")
    @classmethod
    def validate_families(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        cleaned = tuple(f.strip() for f in v if f.strip())
        if len(cleaned) != len(v):
            logger.warning("Ignoring blank entries in excluded_families")
        return cleaned


class PipelineConfig(BaseModel):
    """Top-level configuration, loadable from YAML."""

    threads: int = Field(default=1, ge=1, description="Parallel RepeatMasker jobs")
    max_rounds: int = Field(default=10, ge=1, description="Upper bound for 'iterate'")
    masker: MaskerConfig = Field(default_factory=MaskerConfig)
    classification: ClassificationConfig = Field(default_factory=ClassificationConfig)

    model_config = {"frozen": True}

    @classmethod
    def from_yaml(cls, path: Path) -> PipelineConfig:
        """
        Load configuration from a YAML file.

        Missing sections fall back to defaults.

        Raises:
            InvalidConfigFileError: If the file is not a YAML mapping or
                holds invalid values.
        """
        import yaml

        try:
            raw = yaml.safe_load(path.read_text())
        except yaml.YAMLError as e:
            raise InvalidConfigFileError(path, f"not valid YAML ({e})") from e

        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise InvalidConfigFileError(path, "top level must be a mapping")

        try:
            return cls.model_validate(raw)
        except ValidationError as e:
            raise InvalidConfigFileError(path, str(e)) from e

    def with_overrides(self, **overrides: Any) -> PipelineConfig:
        """Return a copy with CLI overrides applied (None values ignored)."""
        updates = {k: v for k, v in overrides.items() if v is not None}
        if not updates:
            return self
        return self.model_validate({**self.model_dump(), **updates})

    def to_yaml_str(self) -> str:
        """Serialize configuration to a YAML string."""
        import yaml

        data = self.model_dump(mode="json")
        return yaml.dump(data, default_flow_style=False, sort_keys=False)
