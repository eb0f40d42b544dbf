"""transport.py - Pluggable delivery of events to the ingestion API.

This module defines the Transport interface and two implementations:

    HttpTransport    POSTs each event as JSON to ``<base_url>/api/ingest/v1/events``.
    MemoryTransport  keeps events in a list (tests, dry runs).

A transport never raises past ``send()``: every failure (network error,
timeout, rejected key, unexpected status) collapses to a ``None`` result and
a log line. Events are not retried or queued.

Typical usage::

    from keplog import KeplogClient
    from keplog.transport import MemoryTransport

    transport = MemoryTransport()
    client = KeplogClient("kep_ingest_key", transport=transport)
    client.capture_message("hello")
    assert transport.events[0]["message"] == "hello"
"""

import json
import logging
import socket
import time
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from .errors import TransportError, mark_internal

logger = logging.getLogger(__name__)

INGEST_PATH = "/api/ingest/v1/events"

DEFAULT_TIMEOUT = 5.0
MAX_TIMEOUT = 10.0


def generate_event_id() -> str:
    """Return a locally generated id, e.g. ``evt_1705322096789_3f9a1c2b7``.

    The ingestion API answers 202 without a body id, so the SDK makes one up.
    """
    return f"evt_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


class Transport(ABC):
    """Abstract base class for event destinations.

    Example:
        >>> class PrintTransport(Transport):
        ...     def send(self, event):
        ...         print(event["message"])
        ...         return generate_event_id()
    """

    @abstractmethod
    def send(self, event: Mapping[str, Any]) -> Optional[str]:
        """Deliver one validated event.

        Returns:
            An event id on success, None on any failure. Must not raise.
        """


class MemoryTransport(Transport):
    """Stores sent events in memory.

    Attributes:
        events: Every event passed to ``send()``, in order.
    """

    def __init__(self) -> None:
        self.events: List[Dict[str, Any]] = []

    def send(self, event: Mapping[str, Any]) -> Optional[str]:
        self.events.append(dict(event))
        return generate_event_id()


class HttpTransport(Transport):
    """Sends events as JSON over HTTP(S) with ``urllib``.

    Response handling:
        202        accepted, a local event id is returned
        401        invalid ingest key, logged, None
        400        validation error from the server, logged with its detail, None
        other      unexpected status, logged, None
        network    connection failure or timeout, None

    Attributes:
        url (str): Full ingestion endpoint.
        timeout (float): Request timeout in seconds, capped at ``MAX_TIMEOUT``.
    """

    def __init__(
        self,
        base_url: str,
        ingest_key: str,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialise the transport.

        Args:
            base_url: API base URL, e.g. ``"https://keplog.example.com"``.
                A trailing slash is ignored.
            ingest_key: Project ingest key sent as ``X-Ingest-Key``.
            timeout: Request timeout in seconds. Values above
                ``MAX_TIMEOUT`` are capped; non-positive values fall back to
                ``DEFAULT_TIMEOUT``.
        """
        self.url = base_url.rstrip("/") + INGEST_PATH
        self._ingest_key = ingest_key
        self.timeout = min(timeout if timeout and timeout > 0 else DEFAULT_TIMEOUT, MAX_TIMEOUT)

    def send(self, event: Mapping[str, Any]) -> Optional[str]:
        try:
            logger.debug("Sending event to %s (timeout: %ss)", self.url, self.timeout)
            status, body = self._post(self._encode(event))
        except TransportError as exc:
            mark_internal(exc)
            logger.debug("Failed to send event: %s", exc)
            return None
        except Exception as exc:
            mark_internal(exc)
            logger.debug("Failed to send event", exc_info=True)
            return None
        return self._handle_response(status, body)

    # ---------------------------------------------------------------------- #
    # Private helpers
    # ---------------------------------------------------------------------- #

    @staticmethod
    def _encode(event: Mapping[str, Any]) -> bytes:
        return json.dumps(event, default=str, ensure_ascii=False).encode("utf-8")

    def _post(self, payload: bytes) -> Tuple[int, bytes]:
        """POST ``payload`` and return ``(status, body)``.

        HTTP error statuses are returned, not raised.

        Raises:
            TransportError: On connection failure or timeout.
        """
        req = Request(
            self.url,
            data=payload,
            headers={
                "Content-Type": "application/json",
                "X-Ingest-Key": self._ingest_key,
            },
            method="POST",
        )
        try:
            with urlopen(req, timeout=self.timeout) as resp:
                return resp.status, resp.read()
        except HTTPError as exc:
            return exc.code, _read_error_body(exc)
        except (socket.timeout, TimeoutError) as exc:
            logger.error(
                "Timeout: request to Keplog API exceeded %ss. "
                "Check your network connection and server status.",
                self.timeout,
            )
            raise TransportError(f"timed out after {self.timeout}s") from exc
        except URLError as exc:
            if isinstance(exc.reason, (socket.timeout, TimeoutError)):
                logger.error("Timeout: request to Keplog API exceeded %ss.", self.timeout)
            raise TransportError(f"could not reach {self.url} ({exc.reason})") from exc
        except OSError as exc:
            raise TransportError(f"could not reach {self.url} ({exc})") from exc

    def _handle_response(self, status: int, body: bytes) -> Optional[str]:
        if status == 202:
            logger.debug("Event queued successfully")
            return generate_event_id()
        if status == 401:
            logger.error("Invalid ingest key - please check your configuration")
            return None
        if status == 400:
            logger.error("Validation error: %s", _error_detail(body))
            return None
        logger.error("Unexpected response status: %s", status)
        return None


def _read_error_body(exc: HTTPError) -> bytes:
    try:
        return exc.read() or b""
    except Exception:
        return b""


def _error_detail(body: bytes) -> str:
    try:
        data = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        return body.decode("utf-8", "replace") or "<empty response>"
    if isinstance(data, dict) and "error" in data:
        return str(data["error"])
    return str(data)
