"""breadcrumbs.py - Bounded trail of actions that preceded an error.

BreadcrumbBuffer is the in-memory store that holds the most recent breadcrumbs
recorded on a client. Breadcrumbs accumulate silently and are only read when
an event is built: the serializer receives a snapshot via ``get_all()`` and
attaches it to the event's system context.

Design decisions:
    - ``collections.deque(maxlen=N)`` provides O(1) append with automatic
      eviction of the oldest entry when the maximum is exceeded.
    - ``Breadcrumb`` is immutable once created, so ``get_all()`` only needs a
      shallow copy of the container to be independent of internal state.
    - No lock is taken. The buffer belongs to one client and is written
      cooperatively; callers sharing a client across threads accept
      interleaving.
"""

import time
from collections import deque
from typing import Any, Dict, List, Mapping, Optional, Union

_FIELDS = ("timestamp", "type", "category", "message", "level", "data")


def _now_ms() -> int:
    return int(time.time() * 1000)


class Breadcrumb:
    """An immutable record of a user or system action.

    Attributes:
        timestamp (int): Unix epoch milliseconds. Filled with the current time
            when omitted or zero.
        type (str | None): Breadcrumb type, e.g. ``"http"``, ``"navigation"``,
            ``"log"``.
        category (str | None): Finer grouping, e.g. ``"auth"`` or a logger name.
        message (str | None): Human-readable description.
        level (str | None): One of the event levels.
        data (dict | None): Additional structured data. Copied on creation.
    """

    __slots__ = _FIELDS

    def __init__(
        self,
        message: Optional[str] = None,
        type: Optional[str] = None,
        category: Optional[str] = None,
        level: Optional[str] = None,
        data: Optional[Mapping[str, Any]] = None,
        timestamp: Optional[int] = None,
    ) -> None:
        object.__setattr__(self, "timestamp", int(timestamp) if timestamp else _now_ms())
        object.__setattr__(self, "type", type)
        object.__setattr__(self, "category", category)
        object.__setattr__(self, "message", message)
        object.__setattr__(self, "level", level)
        object.__setattr__(self, "data", dict(data) if data is not None else None)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"Breadcrumb is immutable, cannot set {name!r}")

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"Breadcrumb is immutable, cannot delete {name!r}")

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "Breadcrumb":
        """Build a Breadcrumb from a mapping, ignoring unknown keys."""
        return cls(**{k: values[k] for k in _FIELDS if k in values})

    def to_dict(self) -> Dict[str, Any]:
        """Return the wire form, omitting optional fields that are unset."""
        out: Dict[str, Any] = {"timestamp": self.timestamp}
        for name in _FIELDS[1:]:
            value = getattr(self, name)
            if value is not None:
                out[name] = dict(value) if name == "data" else value
        return out

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Breadcrumb):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:  # pragma: no cover
        return f"Breadcrumb({self.timestamp}, {self.type!r}, {self.message!r})"


class BreadcrumbBuffer:
    """Fixed-capacity FIFO buffer of Breadcrumb objects.

    When the buffer is full, the oldest breadcrumb is dropped on the next
    ``add()``. This keeps memory bounded in long-running processes while
    preserving the most recent trail, which is the window of interest when an
    error occurs.

    Example:
        >>> buf = BreadcrumbBuffer(max_breadcrumbs=2)
        >>> _ = buf.add({"message": "a"})
        >>> _ = buf.add(Breadcrumb(message="b"))
        >>> _ = buf.add({"message": "c"})
        >>> [b.message for b in buf.get_all()]
        ['b', 'c']
    """

    def __init__(self, max_breadcrumbs: int = 100) -> None:
        """Initialise the buffer.

        Args:
            max_breadcrumbs: Maximum number of breadcrumbs retained.

        Raises:
            ValueError: If ``max_breadcrumbs`` is lower than 1.
        """
        if max_breadcrumbs < 1:
            raise ValueError(f"max_breadcrumbs must be >= 1, got {max_breadcrumbs}")
        self._max = max_breadcrumbs
        self._buffer: deque[Breadcrumb] = deque(maxlen=max_breadcrumbs)

    @property
    def max_breadcrumbs(self) -> int:
        return self._max

    def add(self, breadcrumb: Union[Breadcrumb, Mapping[str, Any]]) -> Breadcrumb:
        """Append a breadcrumb, evicting the oldest one when full.

        Args:
            breadcrumb: A Breadcrumb, or a mapping with breadcrumb fields.

        Returns:
            The stored Breadcrumb.
        """
        if not isinstance(breadcrumb, Breadcrumb):
            breadcrumb = Breadcrumb.from_mapping(breadcrumb)
        self._buffer.append(breadcrumb)
        return breadcrumb

    def get_all(self) -> List[Breadcrumb]:
        """Return an independent list of breadcrumbs, oldest first."""
        return list(self._buffer)

    def clear(self) -> None:
        """Remove all breadcrumbs."""
        self._buffer.clear()

    def get_count(self) -> int:
        return len(self._buffer)

    def __len__(self) -> int:
        return len(self._buffer)
