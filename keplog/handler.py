"""handler.py - Bridge from the standard logging pipeline to Keplog.

KeplogHandler is a logging.Handler that forwards application log records to a
KeplogClient:

    record >= event_level        sent as an event (capture_error when the
                                 record carries exc_info, capture_message
                                 otherwise)
    record >= breadcrumb_level   kept as a ``type="log"`` breadcrumb, so the
                                 next event shows the log trail leading to it

Typical usage:
    import logging
    from keplog import KeplogClient, KeplogHandler

    client = KeplogClient("kep_ingest_xxxxxxxx")
    logging.getLogger().addHandler(KeplogHandler(client))

    logger = logging.getLogger("shop.checkout")
    logger.info("Cart loaded")          # breadcrumb
    logger.exception("Payment failed")  # event with stack trace
"""

import logging
from typing import TYPE_CHECKING

from .logs import is_sdk_record

if TYPE_CHECKING:
    from .client import KeplogClient


def level_name(levelno: int) -> str:
    """Map a logging level number to a Keplog level name.

    Example:
        >>> level_name(logging.WARNING)
        'warning'
        >>> level_name(5)
        'debug'
    """
    if levelno >= logging.CRITICAL:
        return "critical"
    if levelno >= logging.ERROR:
        return "error"
    if levelno >= logging.WARNING:
        return "warning"
    if levelno >= logging.INFO:
        return "info"
    return "debug"


class KeplogHandler(logging.Handler):
    """A logging.Handler that turns log records into events and breadcrumbs.

    Records from the SDK's own ``keplog`` loggers are ignored, so a failing
    delivery can never be reported through the client that failed.

    Attributes:
        client (KeplogClient): Destination client.
        event_level (int): Minimum level that produces an event.
        breadcrumb_level (int): Minimum level that produces a breadcrumb.
    """

    def __init__(
        self,
        client: "KeplogClient",
        event_level: int = logging.ERROR,
        breadcrumb_level: int = logging.INFO,
    ) -> None:
        super().__init__()
        self.client = client
        self.event_level = event_level
        self.breadcrumb_level = breadcrumb_level

    def emit(self, record: logging.LogRecord) -> None:
        if is_sdk_record(record):
            return
        try:
            if record.levelno >= self.event_level:
                self._capture(record)
            elif record.levelno >= self.breadcrumb_level:
                self._breadcrumb(record)
        except Exception:
            self.handleError(record)

    def _capture(self, record: logging.LogRecord) -> None:
        message = record.getMessage()
        exc = record.exc_info[1] if record.exc_info else None
        if exc is not None:
            self.client.capture_error(exc, {"logger": record.name, "log_message": message})
        else:
            self.client.capture_message(
                message, level_name(record.levelno), {"logger": record.name}
            )

    def _breadcrumb(self, record: logging.LogRecord) -> None:
        self.client.add_breadcrumb(
            type="log",
            category=record.name,
            message=record.getMessage(),
            level=level_name(record.levelno),
            timestamp=int(record.created * 1000),
        )
