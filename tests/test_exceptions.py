"""Tests for specctra_tools.exceptions module."""

import pytest

from specctra_tools.exceptions import (
    ConfigurationError,
    ConversionError,
    FileFormatError,
    IterationLimitExceededError,
    MalformedPrimitiveError,
    MissingTransformError,
    ParseError,
    SpecctraToolsError,
    UnresolvedReferenceError,
)


class TestSpecctraToolsError:
    """Tests for the base exception class."""

    def test_basic_message(self):
        """Plain message without extras."""
        err = SpecctraToolsError("Something went wrong")
        assert str(err) == "Something went wrong"
        assert err.message == "Something went wrong"
        assert err.context == {}
        assert err.suggestions == []

    def test_with_context(self):
        """Context is listed under its own heading."""
        err = SpecctraToolsError("Net lookup failed", context={"net": "GND", "pin": "U1-3"})
        msg = str(err)
        assert "Context:" in msg
        assert "net: GND" in msg
        assert "pin: U1-3" in msg

    def test_with_suggestions(self):
        """Suggestions are listed as bullets."""
        err = SpecctraToolsError("Bad file", suggestions=["Re-export the design"])
        msg = str(err)
        assert "Suggestions:" in msg
        assert "  - Re-export the design" in msg

    def test_can_be_caught_as_exception(self):
        """The base class is an ordinary Exception."""
        with pytest.raises(Exception):
            raise SpecctraToolsError("boom")


class TestParseError:
    """Tests for ParseError."""

    def test_location_in_context(self):
        """Line, column and file are added to the context."""
        err = ParseError("Unexpected ')'", line=3, column=14, file_path="board.dsn")
        assert err.context == {"file": "board.dsn", "line": 3, "column": 14}
        assert "line: 3" in str(err)

    def test_explicit_context_wins(self):
        """Caller context is not overwritten."""
        err = ParseError("Bad token", context={"line": 9}, line=3)
        assert err.context["line"] == 9


class TestConversionErrors:
    """Tests for the conversion error hierarchy."""

    @pytest.mark.parametrize(
        "cls",
        [MissingTransformError, IterationLimitExceededError, UnresolvedReferenceError, MalformedPrimitiveError],
    )
    def test_hierarchy(self, cls):
        """All conversion errors share a base."""
        assert issubclass(cls, ConversionError)
        assert issubclass(cls, SpecctraToolsError)

    def test_other_errors_are_not_conversion_errors(self):
        """Config and file format errors sit beside the pipeline errors."""
        assert not issubclass(ConfigurationError, ConversionError)
        assert not issubclass(FileFormatError, ConversionError)

    def test_iteration_limit(self):
        """The stage and cap are kept as attributes and context."""
        err = IterationLimitExceededError("stitch_net", 1004, context={"net": "GND"})
        assert err.stage == "stitch_net"
        assert err.limit == 1004
        assert err.message == "Max iterations reached in stitch_net"
        assert err.context == {"stage": "stitch_net", "limit": 1004, "net": "GND"}
