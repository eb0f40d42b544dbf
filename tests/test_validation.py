"""test_validation.py - Unit tests for pre-dispatch event validation.

Covers:
    - required message and valid level
    - message and stack trace truncation
    - oversized context / extra_context replacement
    - validate_event() never mutates its input
"""

import pytest

from keplog.errors import ValidationError
from keplog.validation import (
    CONTEXT_TOO_LARGE,
    LEVELS,
    MAX_CONTEXT_SIZE,
    MAX_MESSAGE_LENGTH,
    MAX_STACK_TRACE_LENGTH,
    json_size,
    validate_event,
)


def _event(**fields):
    event = {"message": "boom", "level": "error", "context": {"queries": []}}
    event.update(fields)
    return event


class TestRequiredFields:
    @pytest.mark.parametrize("message", [None, ""])
    def test_message_required(self, message):
        """A missing or empty message is rejected."""
        with pytest.raises(ValidationError, match="message is required"):
            validate_event(_event(message=message))

    @pytest.mark.parametrize("level", LEVELS)
    def test_valid_levels(self, level):
        """Every documented level passes."""
        assert validate_event(_event(level=level))["level"] == level

    @pytest.mark.parametrize("level", ["fatal", "ERROR", None, ""])
    def test_invalid_level(self, level):
        """Unknown levels fail closed."""
        with pytest.raises(ValidationError, match="Invalid level"):
            validate_event(_event(level=level))

    def test_non_mapping_rejected(self):
        """Anything other than a mapping is rejected."""
        with pytest.raises(ValidationError):
            validate_event(["message", "boom"])

    def test_validation_error_is_value_error(self):
        """ValidationError can be caught as ValueError."""
        with pytest.raises(ValueError):
            validate_event(_event(level="nope"))


class TestTruncation:
    def test_message_truncated(self):
        """An 11 000-char message is cut to 10 000 plus the marker."""
        result = validate_event(_event(message="a" * 11_000))
        assert result["message"] == "a" * MAX_MESSAGE_LENGTH + "...[truncated]"

    def test_message_at_limit_untouched(self):
        """A message exactly at the limit is kept."""
        message = "a" * MAX_MESSAGE_LENGTH
        assert validate_event(_event(message=message))["message"] == message

    def test_stack_trace_truncated(self):
        """Oversized stack traces are cut with a newline marker."""
        result = validate_event(_event(stack_trace="s" * (MAX_STACK_TRACE_LENGTH + 5)))
        assert result["stack_trace"] == "s" * MAX_STACK_TRACE_LENGTH + "\n...[truncated]"

    def test_short_stack_trace_untouched(self):
        """Stack traces within the limit are kept."""
        assert validate_event(_event(stack_trace="trace"))["stack_trace"] == "trace"


class TestContextSize:
    def test_oversized_context_replaced(self):
        """A context larger than the limit is replaced by an error marker."""
        big = {"blob": "x" * (MAX_CONTEXT_SIZE + 1)}
        result = validate_event(_event(context=big))
        assert "too large" in result["context"]["_error"]
        assert result["context"]["_error"] == CONTEXT_TOO_LARGE
        assert result["context"]["_original_size"] == json_size(big)
        assert result["context"]["_max_size"] == MAX_CONTEXT_SIZE

    def test_oversized_extra_context_replaced(self):
        """extra_context follows the same rule."""
        result = validate_event(_event(extra_context={"blob": "x" * (MAX_CONTEXT_SIZE + 1)}))
        assert result["extra_context"]["_error"] == CONTEXT_TOO_LARGE

    def test_size_counts_bytes(self):
        """Size is measured in UTF-8 bytes, not characters."""
        # Below the limit in characters, above it once encoded.
        big = {"blob": "€" * (MAX_CONTEXT_SIZE // 3 + 10)}
        result = validate_event(_event(extra_context=big))
        assert result["extra_context"]["_error"] == CONTEXT_TOO_LARGE

    def test_non_ascii_counted_as_utf8(self):
        """Non-ASCII text is measured as raw UTF-8, not as \\u escapes."""
        context = {"note": "é" * 100_000, "queries": []}
        assert json_size(context) < MAX_CONTEXT_SIZE
        assert validate_event(_event(context=context))["context"] == context

    def test_json_size_matches_wire_encoding(self):
        """json_size() counts the bytes the transport would send."""
        assert json_size({"a": "é"}) == len('{"a": "é"}'.encode("utf-8"))

    def test_small_context_untouched(self):
        """Contexts within the limit are kept as they are."""
        context = {"queries": [], "request": {"url": "/a"}}
        assert validate_event(_event(context=context))["context"] == context

    def test_input_not_mutated(self):
        """validate_event() returns a new dict."""
        event = _event(message="a" * 11_000)
        validate_event(event)
        assert len(event["message"]) == 11_000
