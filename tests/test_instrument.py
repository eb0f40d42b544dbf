"""test_instrument.py - Unit tests for the @capture_exceptions decorator.

Covers:
    - return values pass through untouched
    - exceptions are captured with the function name and re-raised
    - reraise=False swallows the exception and returns None
    - breadcrumbs=True records a function breadcrumb with bound arguments
    - functools.wraps metadata is preserved
"""

import pytest

from keplog.client import KeplogClient
from keplog.instrument import capture_exceptions
from keplog.transport import MemoryTransport


@pytest.fixture
def client():
    return KeplogClient("kep_test_key", transport=MemoryTransport(), auto_handle_uncaught=False)


class TestCaptureExceptions:
    def test_return_value_passthrough(self, client):
        """A successful call returns its value and sends nothing."""

        @capture_exceptions(client)
        def add(a, b):
            return a + b

        assert add(2, 3) == 5
        assert client.transport.events == []

    def test_exception_captured_and_reraised(self, client):
        """The exception is captured with the function name, then re-raised."""

        @capture_exceptions(client)
        def divide(a, b):
            return a / b

        with pytest.raises(ZeroDivisionError):
            divide(1, 0)

        event = client.transport.events[0]
        assert event["context"]["exception_class"] == "ZeroDivisionError"
        assert event["extra_context"]["function"].endswith("divide")

    def test_no_reraise(self, client):
        """reraise=False returns None after capturing."""

        @capture_exceptions(client, reraise=False)
        def explode():
            raise RuntimeError("boom")

        assert explode() is None
        assert client.transport.events[0]["message"] == "boom"

    def test_breadcrumb_with_arguments(self, client):
        """breadcrumbs=True records the call and its bound arguments."""

        @capture_exceptions(client, breadcrumbs=True)
        def charge(user_id, amount=10):
            return amount

        charge(7)
        crumb = client.breadcrumbs.get_all()[0]
        assert crumb.type == "function"
        assert crumb.message.endswith("charge(user_id=7, amount=10)")
        assert crumb.level == "debug"

    def test_breadcrumb_on_bad_arguments(self, client):
        """Arguments that do not bind are described as '...'."""

        @capture_exceptions(client, breadcrumbs=True)
        def one(x):
            return x

        with pytest.raises(TypeError):
            one(1, 2)
        assert client.breadcrumbs.get_all()[0].message.endswith("one(...)")

    def test_wraps_metadata(self, client):
        """The wrapper keeps the original name and docstring."""

        @capture_exceptions(client)
        def documented():
            """Original docstring."""

        assert documented.__name__ == "documented"
        assert documented.__doc__ == "Original docstring."
