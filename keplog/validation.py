"""validation.py - Size and shape rules applied right before dispatch.

The serializer never truncates; limits are enforced once, on the final event
(after the before_send hook has had its chance to change it):

    message        required, at most 10 000 characters
    stack_trace    at most 500 000 characters
    context        at most 256 000 bytes of JSON, else replaced wholesale
    extra_context  same limit and replacement as context
    level          one of LEVELS, else the event is rejected (fail closed)
"""

import json
import logging
from typing import Any, Dict, Mapping

from .errors import ValidationError

logger = logging.getLogger(__name__)

LEVELS = ("critical", "error", "warning", "info", "debug")

MAX_MESSAGE_LENGTH = 10_000
MAX_STACK_TRACE_LENGTH = 500_000
MAX_CONTEXT_SIZE = 256_000

MESSAGE_TRUNCATED_SUFFIX = "...[truncated]"
STACK_TRUNCATED_SUFFIX = "\n...[truncated]"
CONTEXT_TOO_LARGE = "Context too large and was truncated"


def json_size(value: Any) -> int:
    """Return the UTF-8 size in bytes of ``value`` encoded as JSON."""
    return len(json.dumps(value, default=str, ensure_ascii=False).encode("utf-8"))


def _bounded_context(name: str, context: Any) -> Any:
    size = json_size(context)
    if size <= MAX_CONTEXT_SIZE:
        return context
    logger.debug("%s truncated due to size limit (%d > %d bytes)", name, size, MAX_CONTEXT_SIZE)
    return {
        "_error": CONTEXT_TOO_LARGE,
        "_original_size": size,
        "_max_size": MAX_CONTEXT_SIZE,
    }


def validate_event(event: Mapping[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``event`` that satisfies the size limits.

    Args:
        event: The event produced by the serializer or the before_send hook.

    Returns:
        A new dict with oversized fields truncated or replaced.

    Raises:
        ValidationError: If the message is missing or the level is invalid.
    """
    if not isinstance(event, Mapping):
        raise ValidationError(f"Event must be a mapping, got {type(event).__name__}")
    result = dict(event)

    message = result.get("message")
    if not message:
        raise ValidationError("Event message is required")
    message = str(message)
    if len(message) > MAX_MESSAGE_LENGTH:
        logger.debug("Message truncated to %d characters", MAX_MESSAGE_LENGTH)
        message = message[:MAX_MESSAGE_LENGTH] + MESSAGE_TRUNCATED_SUFFIX
    result["message"] = message

    stack_trace = result.get("stack_trace")
    if stack_trace and len(stack_trace) > MAX_STACK_TRACE_LENGTH:
        logger.debug("Stack trace truncated to %d characters", MAX_STACK_TRACE_LENGTH)
        result["stack_trace"] = stack_trace[:MAX_STACK_TRACE_LENGTH] + STACK_TRUNCATED_SUFFIX

    for name in ("context", "extra_context"):
        if result.get(name):
            result[name] = _bounded_context(name, result[name])

    if result.get("level") not in LEVELS:
        raise ValidationError(
            f"Invalid level: {result.get('level')}. Must be one of: {', '.join(LEVELS)}"
        )
    return result
