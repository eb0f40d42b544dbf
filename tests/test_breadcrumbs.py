"""test_breadcrumbs.py - Unit tests for Breadcrumb and BreadcrumbBuffer.

Covers:
    - Breadcrumb fills the timestamp when omitted and is immutable
    - to_dict() omits unset optional fields and copies data
    - add() accepts Breadcrumb instances and mappings
    - FIFO eviction keeps exactly the most recent breadcrumbs in order
    - get_all() returns an independent snapshot
    - clear() / get_count() / len()
"""

import time

import pytest

from keplog.breadcrumbs import Breadcrumb, BreadcrumbBuffer


# ---------------------------------------------------------------------------
# Breadcrumb
# ---------------------------------------------------------------------------


class TestBreadcrumb:
    def test_timestamp_defaults_to_now_in_ms(self):
        """A breadcrumb without timestamp gets the current epoch milliseconds."""
        before = int(time.time() * 1000)
        crumb = Breadcrumb(message="hello")
        after = int(time.time() * 1000)
        assert before <= crumb.timestamp <= after

    def test_zero_timestamp_is_replaced(self):
        """A zero timestamp counts as missing."""
        assert Breadcrumb(message="x", timestamp=0).timestamp > 0

    def test_explicit_timestamp_kept(self):
        """An explicit timestamp is stored unchanged."""
        assert Breadcrumb(message="x", timestamp=1705322096789).timestamp == 1705322096789

    def test_immutable(self):
        """Setting or deleting an attribute raises AttributeError."""
        crumb = Breadcrumb(message="x")
        with pytest.raises(AttributeError):
            crumb.message = "y"
        with pytest.raises(AttributeError):
            del crumb.message

    def test_to_dict_omits_unset_fields(self):
        """Only timestamp and the fields that were given appear in the dict."""
        crumb = Breadcrumb(message="Clicked", type="ui", timestamp=10)
        assert crumb.to_dict() == {"timestamp": 10, "type": "ui", "message": "Clicked"}

    def test_data_is_copied(self):
        """Mutating the source mapping does not change the breadcrumb."""
        data = {"url": "/a"}
        crumb = Breadcrumb(message="x", data=data)
        data["url"] = "/b"
        assert crumb.to_dict()["data"] == {"url": "/a"}

    def test_from_mapping_ignores_unknown_keys(self):
        """Unknown keys in a mapping are dropped."""
        crumb = Breadcrumb.from_mapping({"message": "x", "colour": "red", "timestamp": 5})
        assert crumb.to_dict() == {"timestamp": 5, "message": "x"}

    def test_equality_by_value(self):
        """Two breadcrumbs with the same fields compare equal."""
        assert Breadcrumb(message="x", timestamp=1) == Breadcrumb(message="x", timestamp=1)
        assert Breadcrumb(message="x", timestamp=1) != Breadcrumb(message="y", timestamp=1)


# ---------------------------------------------------------------------------
# BreadcrumbBuffer
# ---------------------------------------------------------------------------


class TestBreadcrumbBuffer:
    def test_rejects_non_positive_max(self):
        """max_breadcrumbs below 1 raises ValueError."""
        with pytest.raises(ValueError):
            BreadcrumbBuffer(max_breadcrumbs=0)

    def test_add_mapping_returns_breadcrumb(self):
        """add() converts a mapping and returns the stored Breadcrumb."""
        buf = BreadcrumbBuffer()
        stored = buf.add({"message": "Logged in", "category": "auth"})
        assert isinstance(stored, Breadcrumb)
        assert buf.get_all() == [stored]

    def test_fifo_eviction_keeps_most_recent(self):
        """Adding more than max keeps exactly the last max, oldest first."""
        buf = BreadcrumbBuffer(max_breadcrumbs=3)
        for i in range(10):
            buf.add(Breadcrumb(message=f"m{i}"))
        assert [b.message for b in buf.get_all()] == ["m7", "m8", "m9"]
        assert buf.get_count() == 3

    def test_below_capacity_keeps_all(self):
        """Fewer than max breadcrumbs are all retained."""
        buf = BreadcrumbBuffer(max_breadcrumbs=5)
        buf.add({"message": "a"})
        buf.add({"message": "b"})
        assert [b.message for b in buf.get_all()] == ["a", "b"]

    def test_get_all_returns_independent_list(self):
        """Mutating the snapshot does not affect the buffer."""
        buf = BreadcrumbBuffer()
        buf.add({"message": "a"})
        snapshot = buf.get_all()
        snapshot.clear()
        assert len(buf) == 1

    def test_clear(self):
        """clear() empties the buffer."""
        buf = BreadcrumbBuffer()
        buf.add({"message": "a"})
        buf.clear()
        assert buf.get_all() == []
        assert buf.get_count() == 0

    def test_max_breadcrumbs_property(self):
        """The configured maximum is exposed read-only."""
        assert BreadcrumbBuffer(max_breadcrumbs=7).max_breadcrumbs == 7
