"""serializer.py - Builds wire-ready event records.

``serialize`` turns an error plus the client's scope, breadcrumbs and
per-call context into the dict that the transport posts to the ingestion
API. ``serialize_message`` does the same for a plain message, without stack
trace, exception class or frames.

The input is classified once, at the top, into one of four kinds:

    STRUCTURED_ERROR  a real exception (has a traceback, gets frames)
    ERROR_LIKE        an object or mapping with a ``message``
    STRING_MESSAGE    a plain string
    UNKNOWN           anything else, including None

Merged context is split by ownership: the reserved keys go into the
event's ``context`` (system context) and everything else into
``extra_context``, which is omitted when empty. Both functions are pure with
respect to their inputs; the scope is only read through ``Scope.merge``.
"""

import enum
import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Sequence

from .breadcrumbs import Breadcrumb
from .scope import RESERVED_KEYS, Scope
from .stacktrace import extract_stack_trace, parse_enhanced_frames

UNKNOWN_ERROR = "Unknown error"
DEFAULT_EXCEPTION_CLASS = "Error"


class ErrorKind(enum.Enum):
    STRUCTURED_ERROR = "structured_error"
    ERROR_LIKE = "error_like"
    STRING_MESSAGE = "string_message"
    UNKNOWN = "unknown"


class ErrorInput(NamedTuple):
    """An error value resolved into the pieces the event needs."""

    kind: ErrorKind
    message: str
    stack_trace: Optional[str]
    exception_class: str


def _message_attr(error: Any) -> Any:
    if isinstance(error, Mapping):
        return error.get("message")
    return getattr(error, "message", None)


def _stringify(value: Any) -> str:
    try:
        return json.dumps(value)
    except (TypeError, ValueError):
        return str(value)


def classify_error(error: Any) -> ErrorInput:
    """Resolve ``error`` into an :class:`ErrorInput`.

    Examples:
        >>> classify_error("boom").message
        'boom'
        >>> classify_error(None).message
        'Unknown error'
        >>> classify_error(KeyError("id")).exception_class
        'KeyError'
    """
    if isinstance(error, BaseException):
        message = str(error) or type(error).__name__
        return ErrorInput(
            ErrorKind.STRUCTURED_ERROR,
            message,
            extract_stack_trace(error),
            type(error).__name__,
        )

    if error is None or (isinstance(error, str) and not error):
        return ErrorInput(ErrorKind.UNKNOWN, UNKNOWN_ERROR, None, DEFAULT_EXCEPTION_CLASS)

    if isinstance(error, str):
        return ErrorInput(ErrorKind.STRING_MESSAGE, error, None, DEFAULT_EXCEPTION_CLASS)

    message = _message_attr(error)
    if message:
        exception_class = (
            DEFAULT_EXCEPTION_CLASS if isinstance(error, Mapping) else type(error).__name__
        )
        return ErrorInput(
            ErrorKind.ERROR_LIKE,
            str(message),
            extract_stack_trace(error),
            exception_class,
        )

    return ErrorInput(ErrorKind.UNKNOWN, _stringify(error), None, DEFAULT_EXCEPTION_CLASS)


def format_timestamp(dt: Optional[datetime] = None) -> str:
    """Return ``dt`` (default: now) as ISO-8601 UTC with milliseconds.

    Example:
        >>> format_timestamp(datetime(2024, 1, 15, 12, 34, 56, 789000, tzinfo=timezone.utc))
        '2024-01-15T12:34:56.789Z'
    """
    dt = (dt or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _partition(merged: Mapping[str, Any]):
    system_context: Dict[str, Any] = {}
    extra_context: Dict[str, Any] = {}
    for key, value in merged.items():
        if key in RESERVED_KEYS:
            system_context[key] = value
        else:
            extra_context[key] = value
    return system_context, extra_context


def _assemble(
    message: str,
    level: str,
    stack_trace: Optional[str],
    system_context: Dict[str, Any],
    extra_context: Dict[str, Any],
    breadcrumbs: Sequence[Breadcrumb],
    environment: Optional[str],
    server_name: Optional[str],
    release: Optional[str],
) -> Dict[str, Any]:
    if not system_context.get("queries"):
        system_context["queries"] = []
    if breadcrumbs:
        system_context["breadcrumbs"] = breadcrumb_dicts(breadcrumbs)

    event: Dict[str, Any] = {"message": message, "level": level}
    if stack_trace is not None:
        event["stack_trace"] = stack_trace
    event["context"] = system_context
    event["timestamp"] = format_timestamp()

    if extra_context:
        event["extra_context"] = extra_context
    if environment:
        event["environment"] = environment
    if server_name:
        event["server_name"] = server_name
    if release:
        event["release"] = release
    return event


def serialize(
    error: Any,
    level: str,
    scope: Scope,
    breadcrumbs: Sequence[Breadcrumb],
    local_context: Optional[Mapping[str, Any]] = None,
    environment: Optional[str] = None,
    server_name: Optional[str] = None,
    release: Optional[str] = None,
    context_lines: int = 3,
) -> Dict[str, Any]:
    """Build the event record for an error.

    Args:
        error: The exception, error-like object, string or other value.
        level: Event level, one of ``keplog.validation.LEVELS``.
        scope: The client's scope. Only read.
        breadcrumbs: Snapshot of the client's breadcrumbs.
        local_context: Context for this event only; wins over the scope.
        environment: Optional environment name.
        server_name: Optional server name.
        release: Optional release identifier.
        context_lines: Source lines around each frame for code snippets.

    Returns:
        The event dict.

    Raises:
        ReservedKeyError: If ``local_context`` contains a forbidden key.
    """
    resolved = classify_error(error)
    system_context, extra_context = _partition(scope.merge(local_context))

    system_context["exception_class"] = resolved.exception_class
    if resolved.kind is ErrorKind.STRUCTURED_ERROR:
        system_context["frames"] = parse_enhanced_frames(error, context_lines)

    return _assemble(
        resolved.message,
        level,
        resolved.stack_trace,
        system_context,
        extra_context,
        breadcrumbs,
        environment,
        server_name,
        release,
    )


def serialize_message(
    message: str,
    level: str,
    scope: Scope,
    breadcrumbs: Sequence[Breadcrumb],
    local_context: Optional[Mapping[str, Any]] = None,
    environment: Optional[str] = None,
    server_name: Optional[str] = None,
    release: Optional[str] = None,
) -> Dict[str, Any]:
    """Build the event record for a plain message (no stack, no frames)."""
    system_context, extra_context = _partition(scope.merge(local_context))
    return _assemble(
        message,
        level,
        None,
        system_context,
        extra_context,
        breadcrumbs,
        environment,
        server_name,
        release,
    )


def breadcrumb_dicts(breadcrumbs: Sequence[Breadcrumb]) -> List[Dict[str, Any]]:
    return [b.to_dict() for b in breadcrumbs]
