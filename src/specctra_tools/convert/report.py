"""Conversion report models using Pydantic.

Every converter accumulates recovered data problems as warnings and
summarizes its output in a ``ConversionReport``.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class WarningKind(str, Enum):
    """Kinds of recovered conversion problems."""

    UNRESOLVED_REFERENCE = "unresolved_reference"
    MALFORMED_PRIMITIVE = "malformed_primitive"
    FALLBACK_SHAPE = "fallback_shape"
    DUPLICATE_PLACEMENT = "duplicate_placement"


class ConversionWarning(BaseModel):
    """A recovered problem: the offending item was skipped or defaulted."""

    model_config = ConfigDict(frozen=True)

    kind: WarningKind
    message: str
    context: dict[str, Any] = Field(default_factory=dict)

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")


class ConversionReport(BaseModel):
    """Summary of one conversion run."""

    counts: dict[str, int] = Field(default_factory=dict)
    warnings: list[ConversionWarning] = Field(default_factory=list)
    stages: list[str] = Field(default_factory=list)
    pad_attached_traces: int = 0
    hanging_traces: int = 0

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    def by_kind(self, kind: WarningKind) -> list[ConversionWarning]:
        return [w for w in self.warnings if w.kind == kind]

    @property
    def unresolved_reference_count(self) -> int:
        return len(self.by_kind(WarningKind.UNRESOLVED_REFERENCE))

    @property
    def malformed_primitive_count(self) -> int:
        return len(self.by_kind(WarningKind.MALFORMED_PRIMITIVE))

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")
