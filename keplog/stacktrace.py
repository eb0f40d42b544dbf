"""stacktrace.py - Stack trace extraction and enhanced frame parsing.

Turns an exception's traceback into a list of enhanced frames: parsed
``file``/``line``/``function`` entries, classified into class and call type,
flagged as vendor or application code, and optionally carrying the
surrounding source lines.

The parser works on platform-native traceback text::

    Traceback (most recent call last):
      File "/srv/app/orders.py", line 42, in Order.total
        return sum(line.price for line in self.lines)
    TypeError: unsupported operand type(s) ...

Only ``File "...", line N, in name`` lines are frames; the header, source
lines, caret markers and the summary line are skipped. For real exceptions
``format_frames`` renders the traceback itself with qualified code names so
that class names survive into the text.

Frames are recomputed on every call and keep the order of the input trace.
Python prints the innermost call last; ``format_frames`` emits it first, so
the frames of a captured exception start at the raise site.
"""

import linecache
import re
import traceback
from types import TracebackType
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

CONSTRUCTOR = "{constructor}"
CLOSURE = "{closure}"

CALL_TYPE_INSTANCE = "instance"

# Dependency directories; anything under them is vendor code.
VENDOR_MARKERS = ("/site-packages/", "/dist-packages/")

_FRAME_RE = re.compile(
    r'^\s*File "(?P<file>[^"]+)", line (?P<line>\d+)(?:, in (?P<function>.+?))?\s*$'
)

_CONSTRUCTOR_NAMES = ("__init__", "__new__")

ReadLines = Callable[[str], Sequence[str]]


def extract_stack_trace(error: Any) -> Optional[str]:
    """Return the stack trace text for ``error``, or None if it has none.

    Exceptions are formatted with ``traceback.format_exception`` (chained
    causes included). Error-like objects contribute their ``stack``
    attribute or mapping key. Everything else has no stack.
    """
    if error is None:
        return None
    if isinstance(error, BaseException):
        return "".join(traceback.format_exception(type(error), error, error.__traceback__))
    if isinstance(error, dict):
        stack = error.get("stack")
    elif isinstance(error, str):
        return None
    else:
        stack = getattr(error, "stack", None)
    return str(stack) if stack else None


def format_frames(tb: Optional[TracebackType]) -> str:
    """Render ``tb`` as frame lines, innermost call first.

    Uses ``co_qualname`` so that methods appear as ``Class.method``.
    """
    lines = []
    for frame, lineno in reversed(list(traceback.walk_tb(tb))):
        code = frame.f_code
        lines.append(f'  File "{code.co_filename}", line {lineno}, in {code.co_qualname}')
    return "\n".join(lines)


def parse_stack_frames(stack: str) -> List[Dict[str, Any]]:
    """Parse traceback text into basic ``{file, line, function}`` frames.

    Lines that do not match the frame pattern are dropped silently.

    Example:
        >>> parse_stack_frames('  File "/app/a.py", line 3, in main')
        [{'file': '/app/a.py', 'line': 3, 'function': 'main'}]
    """
    frames = []
    for raw in stack.splitlines():
        match = _FRAME_RE.match(raw)
        if not match:
            continue
        frames.append(
            {
                "file": match.group("file").strip(),
                "line": int(match.group("line")),
                "function": match.group("function"),
            }
        )
    return frames


def classify_function(name: Optional[str]) -> Tuple[Optional[str], str, Optional[str]]:
    """Split a frame's function name into ``(class, function, call_type)``.

    ``Order.__init__`` becomes ``("Order", "{constructor}", "instance")`` and
    ``Order.total`` becomes ``("Order", "total", "instance")``. A missing name
    or a lambda becomes ``{closure}``. Static and instance methods look the
    same in a trace, so every qualified name is reported as ``instance``.
    """
    if name:
        name = name.strip()
        if "<locals>." in name:
            name = name.rsplit("<locals>.", 1)[1]
    if not name or name == "<lambda>":
        return None, CLOSURE, None

    owner, sep, func = name.rpartition(".")
    if not sep or not owner or not func:
        return None, name, None
    if func in _CONSTRUCTOR_NAMES:
        return owner, CONSTRUCTOR, CALL_TYPE_INSTANCE
    if func == "<lambda>":
        func = CLOSURE
    return owner, func, CALL_TYPE_INSTANCE


def is_vendor_frame(file: Optional[str]) -> bool:
    if not file:
        return False
    normalized = file.replace("\\", "/")
    return any(marker in normalized for marker in VENDOR_MARKERS)


def _read_source_lines(file: str) -> Sequence[str]:
    return linecache.getlines(file)


def extract_code_snippet(
    file: str,
    line: int,
    context_lines: int = 3,
    read_lines: Optional[ReadLines] = None,
) -> Dict[int, str]:
    """Return the source around ``line`` keyed by 1-based line number.

    The window is ``context_lines`` before and after, clamped to the file.
    Any failure while reading yields an empty dict; this function never
    raises.
    """
    if line < 1:
        return {}
    reader = read_lines or _read_source_lines
    try:
        lines = reader(file)
        start = max(0, line - context_lines - 1)
        end = min(len(lines), line + context_lines)
        return {i + 1: lines[i].rstrip("\r\n") for i in range(start, end)}
    except Exception:
        return {}


def enrich_frames(
    stack: str,
    context_lines: int = 3,
    read_lines: Optional[ReadLines] = None,
) -> List[Dict[str, Any]]:
    """Parse traceback text into enhanced frames.

    Args:
        stack: Traceback text in the native format.
        context_lines: Source lines to include on each side of the frame line.
        read_lines: Optional ``path -> lines`` reader. Defaults to
            ``linecache.getlines``.

    Returns:
        One dict per frame, in input order, with ``file``, ``line``,
        ``function``, ``class``, ``call_type``, ``is_vendor`` and
        ``is_application``, plus ``code_snippet`` when source is available.
    """
    enhanced = []
    for frame in parse_stack_frames(stack):
        owner, function, call_type = classify_function(frame["function"])
        vendor = is_vendor_frame(frame["file"])
        item: Dict[str, Any] = {
            "file": frame["file"],
            "line": frame["line"],
            "function": function,
            "class": owner,
            "call_type": call_type,
            "is_vendor": vendor,
            "is_application": not vendor,
        }
        snippet = extract_code_snippet(frame["file"], frame["line"], context_lines, read_lines)
        if snippet:
            item["code_snippet"] = snippet
        enhanced.append(item)
    return enhanced


def parse_enhanced_frames(
    error: BaseException,
    context_lines: int = 3,
    read_lines: Optional[ReadLines] = None,
) -> List[Dict[str, Any]]:
    """Return enhanced frames for the exception's own traceback.

    ``frames[0]`` is the raise site, the outermost caller comes last.
    Chained causes are part of ``stack_trace`` but not of the frame list. An
    exception that was never raised has no frames.
    """
    tb = getattr(error, "__traceback__", None)
    if tb is None:
        return []
    return enrich_frames(format_frames(tb), context_lines, read_lines)
