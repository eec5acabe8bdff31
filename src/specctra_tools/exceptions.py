"""
Custom exception hierarchy for specctra-tools.

Provides consistent error handling with context, suggestions, and actionable guidance.
All exceptions include:
- Context information (file paths, nets, stages, etc.)
- Suggestions for how to fix the issue
- Clear, formatted error messages

Two kinds of problems exist during a conversion:

* Fatal problems (``MissingTransformError``, ``IterationLimitExceededError``)
  signal a broken invariant and abort the run immediately.
* Recovered problems (``UnresolvedReferenceError``, ``MalformedPrimitiveError``)
  are data-quality issues. Converters record them as warnings and continue;
  they are only raised when a converter runs in strict mode.

Example::

    from specctra_tools.exceptions import MissingTransformError

    raise MissingTransformError(
        "Transform matrix not initialized",
        context={"stage": "CollectPadsStage"},
        suggestions=["Run InitializeDsnContextStage first"],
    )
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Union


class SpecctraToolsError(Exception):
    """
    Base exception for all specctra-tools errors.

    Provides consistent formatting with context and suggestions.

    Attributes:
        context: Dictionary of contextual information (file, net, stage, etc.)
        suggestions: List of actionable suggestions for fixing the error
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        self.message = message
        self.context = context or {}
        self.suggestions = suggestions or []
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the error message with context and suggestions."""
        parts = [self.message]

        if self.context:
            parts.append("\n\nContext:")
            for key, value in self.context.items():
                parts.append(f"\n  {key}: {value}")

        if self.suggestions:
            parts.append("\n\nSuggestions:")
            for suggestion in self.suggestions:
                parts.append(f"\n  - {suggestion}")

        return "".join(parts)

    def __str__(self) -> str:
        return self._format_message()


class ParseError(SpecctraToolsError):
    """
    S-expression or file parsing failed.

    Raised when a DSN or SES file cannot be parsed due to syntax errors.

    Example::

        raise ParseError(
            "Unexpected end of input, expected ')'",
            context={"file": "board.dsn"},
            line=120,
            column=4,
        )
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
        line: Optional[int] = None,
        column: Optional[int] = None,
        file_path: Optional[Union[str, Path]] = None,
    ):
        ctx = context or {}
        if file_path and "file" not in ctx:
            ctx["file"] = str(file_path)
        if line is not None and "line" not in ctx:
            ctx["line"] = line
        if column is not None and "column" not in ctx:
            ctx["column"] = column

        super().__init__(message, ctx, suggestions)


class FileFormatError(SpecctraToolsError):
    """
    File format not recognized.

    Raised when a file parses as an S-expression but is not the expected
    Specctra document (e.g. a session file where a design file was expected).
    """

    pass


class ConfigurationError(SpecctraToolsError):
    """
    Configuration or settings error.

    Raised when configuration values are invalid (negative tolerances,
    unknown units in strict mode, etc.).
    """

    pass


class ConversionError(SpecctraToolsError):
    """Base class for errors raised by the conversion pipeline."""

    pass


class MissingTransformError(ConversionError):
    """
    A stage needed the coordinate transform before it was resolved.

    Always fatal: there is no safe default coordinate space.
    """

    pass


class IterationLimitExceededError(ConversionError):
    """
    A staged loop exceeded its iteration cap.

    Signals a structural bug (for example ``used`` bookkeeping that never
    converges) rather than bad input data. Never caught by the pipeline.

    Attributes:
        stage: Name of the stage or loop that exceeded its cap
        limit: The cap that was exceeded
    """

    def __init__(
        self,
        stage: str,
        limit: int,
        context: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        self.stage = stage
        self.limit = limit
        ctx = {"stage": stage, "limit": limit}
        ctx.update(context or {})
        super().__init__(f"Max iterations reached in {stage}", ctx, suggestions)


class UnresolvedReferenceError(ConversionError):
    """
    A pin reference, footprint id or padstack id did not resolve.

    Recovered by default: the offending item is skipped and a warning recorded.
    """

    pass


class MalformedPrimitiveError(ConversionError):
    """
    A wire or via primitive carried unusable coordinate data.

    Recovered by default: the primitive is skipped (or truncated to whole
    coordinate pairs) and a warning recorded.
    """

    pass


__all__ = [
    "SpecctraToolsError",
    "ParseError",
    "FileFormatError",
    "ConfigurationError",
    "ConversionError",
    "MissingTransformError",
    "IterationLimitExceededError",
    "UnresolvedReferenceError",
    "MalformedPrimitiveError",
]
