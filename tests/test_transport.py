"""test_transport.py - Unit tests for HttpTransport and MemoryTransport.

HTTP is exercised by monkeypatching ``keplog.transport.urlopen``; no socket is
opened.

Covers:
    - request URL, method, headers and JSON body
    - 202 returns a locally generated event id
    - 401 / 400 / unexpected statuses return None and log an error
    - timeouts and network errors return None and never raise
    - timeout capping
    - MemoryTransport stores events
"""

import io
import json
import logging
import re
from datetime import datetime
from urllib.error import HTTPError, URLError

import pytest

from keplog import transport as transport_module
from keplog.errors import is_internal_error
from keplog.transport import (
    DEFAULT_TIMEOUT,
    MAX_TIMEOUT,
    HttpTransport,
    MemoryTransport,
    generate_event_id,
)

EVENT_ID_RE = re.compile(r"^evt_\d+_[0-9a-f]{9}$")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class _FakeResponse:
    def __init__(self, status, body=b""):
        self.status = status
        self._body = body

    def read(self):
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


def _http_error(code, body=b""):
    return HTTPError(
        "http://keplog.test/api/ingest/v1/events", code, "error", {}, io.BytesIO(body)
    )


def _patch_urlopen(monkeypatch, result):
    """Replace urlopen; ``result`` is returned or, if an exception, raised."""
    calls = []

    def fake_urlopen(req, timeout=None):
        calls.append((req, timeout))
        if isinstance(result, BaseException):
            raise result
        return result

    monkeypatch.setattr(transport_module, "urlopen", fake_urlopen)
    return calls


def _event():
    return {"message": "boom", "level": "error", "context": {"queries": []}}


# ---------------------------------------------------------------------------
# generate_event_id()
# ---------------------------------------------------------------------------


class TestGenerateEventId:
    def test_format(self):
        """Ids look like evt_<epoch-ms>_<9 hex chars>."""
        assert EVENT_ID_RE.match(generate_event_id())

    def test_unique(self):
        """Consecutive ids differ."""
        assert len({generate_event_id() for _ in range(50)}) == 50


# ---------------------------------------------------------------------------
# HttpTransport
# ---------------------------------------------------------------------------


class TestHttpTransportRequest:
    def test_url_and_headers(self, monkeypatch):
        """The event is POSTed as JSON with the ingest key header."""
        calls = _patch_urlopen(monkeypatch, _FakeResponse(202))
        HttpTransport("http://keplog.test/", "kep_key", timeout=3).send(_event())

        req, timeout = calls[0]
        assert req.full_url == "http://keplog.test/api/ingest/v1/events"
        assert req.get_method() == "POST"
        assert req.get_header("Content-type") == "application/json"
        assert req.get_header("X-ingest-key") == "kep_key"
        assert json.loads(req.data.decode("utf-8")) == _event()
        assert timeout == 3

    def test_non_json_values_encoded_as_str(self, monkeypatch):
        """Values JSON cannot encode natively are sent as strings."""
        calls = _patch_urlopen(monkeypatch, _FakeResponse(202))
        event = dict(_event(), extra_context={"when": datetime(2024, 1, 1)})
        HttpTransport("http://keplog.test", "k").send(event)
        body = json.loads(calls[0][0].data.decode("utf-8"))
        assert body["extra_context"]["when"] == "2024-01-01 00:00:00"

    @pytest.mark.parametrize(
        "given, expected",
        [(3, 3), (60, MAX_TIMEOUT), (0, DEFAULT_TIMEOUT), (-1, DEFAULT_TIMEOUT)],
    )
    def test_timeout_bounds(self, given, expected):
        """Timeouts are capped and non-positive values fall back to the default."""
        assert HttpTransport("http://keplog.test", "k", timeout=given).timeout == expected


class TestHttpTransportResponses:
    def test_accepted(self, monkeypatch):
        """202 returns a generated event id."""
        _patch_urlopen(monkeypatch, _FakeResponse(202))
        assert EVENT_ID_RE.match(HttpTransport("http://keplog.test", "k").send(_event()))

    def test_invalid_key(self, monkeypatch, caplog):
        """401 returns None and logs an invalid-key error."""
        _patch_urlopen(monkeypatch, _http_error(401))
        with caplog.at_level(logging.ERROR, logger="keplog"):
            assert HttpTransport("http://keplog.test", "k").send(_event()) is None
        assert "Invalid ingest key" in caplog.text

    def test_validation_error_detail(self, monkeypatch, caplog):
        """400 logs the server's error field."""
        _patch_urlopen(monkeypatch, _http_error(400, b'{"error": "level is invalid"}'))
        with caplog.at_level(logging.ERROR, logger="keplog"):
            assert HttpTransport("http://keplog.test", "k").send(_event()) is None
        assert "Validation error: level is invalid" in caplog.text

    def test_validation_error_non_json_body(self, monkeypatch, caplog):
        """A non-JSON 400 body is logged as text."""
        _patch_urlopen(monkeypatch, _http_error(400, b"bad request"))
        with caplog.at_level(logging.ERROR, logger="keplog"):
            HttpTransport("http://keplog.test", "k").send(_event())
        assert "bad request" in caplog.text

    @pytest.mark.parametrize("status", [200, 500, 503])
    def test_unexpected_status(self, monkeypatch, caplog, status):
        """Any other status returns None and logs it."""
        response = _FakeResponse(status) if status < 400 else _http_error(status)
        _patch_urlopen(monkeypatch, response)
        with caplog.at_level(logging.ERROR, logger="keplog"):
            assert HttpTransport("http://keplog.test", "k").send(_event()) is None
        assert f"Unexpected response status: {status}" in caplog.text


class TestHttpTransportFailures:
    def test_timeout(self, monkeypatch, caplog):
        """A timeout returns None and is logged at error level."""
        _patch_urlopen(monkeypatch, TimeoutError("timed out"))
        with caplog.at_level(logging.ERROR, logger="keplog"):
            assert HttpTransport("http://keplog.test", "k", timeout=2).send(_event()) is None
        assert "Timeout" in caplog.text

    def test_connection_refused(self, monkeypatch):
        """A URLError returns None."""
        _patch_urlopen(monkeypatch, URLError(ConnectionRefusedError(111, "refused")))
        assert HttpTransport("http://keplog.test", "k").send(_event()) is None

    def test_unexpected_exception_contained(self, monkeypatch):
        """Any other exception inside the request returns None."""
        _patch_urlopen(monkeypatch, RuntimeError("boom"))
        assert HttpTransport("http://keplog.test", "k").send(_event()) is None

    def test_failures_marked_internal(self, monkeypatch):
        """Transport failures are tagged so excepthooks skip them."""
        error = RuntimeError("boom")
        _patch_urlopen(monkeypatch, error)
        HttpTransport("http://keplog.test", "k").send(_event())
        assert is_internal_error(error)


# ---------------------------------------------------------------------------
# MemoryTransport
# ---------------------------------------------------------------------------


class TestMemoryTransport:
    def test_stores_events(self):
        """Events are kept in order and an id is returned."""
        transport = MemoryTransport()
        first = transport.send({"message": "a"})
        transport.send({"message": "b"})
        assert EVENT_ID_RE.match(first)
        assert [e["message"] for e in transport.events] == ["a", "b"]
