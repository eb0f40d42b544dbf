"""logs.py - Debug output for the SDK's own diagnostics.

Every module logs under the ``keplog`` namespace. Without configuration only
WARNING and above reach stderr (through logging's last-resort handler), which
covers the failures a user must see. ``debug=True`` on the client calls
``enable_debug_logging()`` to surface everything else.
"""

import logging
import sys

LOGGER_NAME = "keplog"

_FORMAT = "[Keplog] %(levelname)s %(message)s"


def enable_debug_logging(stream=None) -> logging.Handler:
    """Route DEBUG and above from the ``keplog`` logger to ``stream``.

    Calling it again reuses the handler installed the first time.

    Args:
        stream: Writable file-like object. Defaults to ``sys.stderr``.

    Returns:
        The handler attached to the ``keplog`` logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    for handler in logger.handlers:
        if getattr(handler, "_keplog_debug", False):
            return handler

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(_FORMAT))
    handler._keplog_debug = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    return handler


def is_sdk_record(record: logging.LogRecord) -> bool:
    """Return True for records emitted by the SDK itself."""
    return record.name == LOGGER_NAME or record.name.startswith(LOGGER_NAME + ".")
