"""scope.py - Client-owned context, tags and user applied to every event.

A Scope holds the state that a client attaches to all subsequent events until
it is cleared:

    Context:  arbitrary user-defined key/value pairs. Keys managed by the SDK
              (the reserved keys) can never be stored here.
    Tags:     string key/value pairs, merged on every ``set_tags`` call.
    User:     the current user record, replaced wholesale by ``set_user``.

The Scope is an ordinary object owned by one client and handed to the
serializer by reference. There is no module-level state, so independent
Scope instances never share data.

Two key lists are kept on purpose. ``RESERVED_KEYS`` guards the sticky
``set_context`` path; ``ALLOWED_IN_CAPTURE`` relaxes it for per-call local
context, where ``user``, ``request`` and ``queries`` may be supplied for a
single event without becoming global state.
"""

from typing import Any, Dict, List, Mapping, Optional

from .errors import ReservedKeyError

RESERVED_KEYS = ("exception_class", "frames", "queries", "request", "breadcrumbs")

ALLOWED_IN_CAPTURE = ("user", "request", "queries")


class Scope:
    """Mutable context, tags and user for one client.

    Example:
        >>> scope = Scope()
        >>> scope.set_context("build", {"commit": "abc123"})
        >>> scope.set_tag("region", "us-east-1")
        >>> merged = scope.merge({"order_id": 42})
        >>> sorted(merged)
        ['build', 'order_id', 'tags']
    """

    def __init__(self) -> None:
        self._context: Dict[str, Any] = {}
        self._tags: Dict[str, str] = {}
        self._user: Optional[Dict[str, Any]] = None

    @staticmethod
    def get_reserved_keys() -> List[str]:
        """Return the reserved context keys as a new list."""
        return list(RESERVED_KEYS)

    # ---------------------------------------------------------------------- #
    # Context
    # ---------------------------------------------------------------------- #

    def set_context(self, key: str, value: Any) -> None:
        """Set a context value included in all future events.

        Args:
            key: Context key. Must not be one of ``RESERVED_KEYS``.
            value: Any JSON-serialisable value.

        Raises:
            ReservedKeyError: If ``key`` is reserved.
        """
        if key in RESERVED_KEYS:
            raise ReservedKeyError(
                key,
                f"Cannot set reserved context key '{key}'. "
                f"Reserved keys are: {', '.join(RESERVED_KEYS)}",
            )
        self._context[key] = value

    def get_context(self) -> Dict[str, Any]:
        return dict(self._context)

    # ---------------------------------------------------------------------- #
    # Tags and user
    # ---------------------------------------------------------------------- #

    def set_tag(self, key: str, value: str) -> None:
        self._tags[key] = value

    def set_tags(self, tags: Mapping[str, str]) -> None:
        """Merge ``tags`` into the current tags; new values win on collision."""
        self._tags.update(tags)

    def get_tags(self) -> Dict[str, str]:
        return dict(self._tags)

    def set_user(self, user: Optional[Mapping[str, Any]]) -> None:
        """Replace the current user record (not a merge)."""
        self._user = dict(user) if user is not None else None

    def get_user(self) -> Optional[Dict[str, Any]]:
        return dict(self._user) if self._user is not None else None

    def clear(self) -> None:
        """Reset context, tags and user."""
        self._context = {}
        self._tags = {}
        self._user = None

    # ---------------------------------------------------------------------- #
    # Merge
    # ---------------------------------------------------------------------- #

    def merge(self, local_context: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """Combine the scope with per-call local context.

        Local values win over global ones. ``tags`` and ``user`` are merged one
        level deep: local tags overlay global tags, and local user fields
        overlay global user fields. Either key is omitted entirely when
        neither side supplies it.

        Args:
            local_context: Optional context for a single event. May contain
                ``user``, ``request`` and ``queries`` but no other reserved key.

        Returns:
            A new dict. Neither the scope nor ``local_context`` is modified.

        Raises:
            ReservedKeyError: If ``local_context`` contains a reserved key that
                is not allowed per call.
        """
        local = dict(local_context or {})
        for key in local:
            if key in RESERVED_KEYS and key not in ALLOWED_IN_CAPTURE:
                raise ReservedKeyError(
                    key,
                    f"Cannot set reserved context key '{key}'. "
                    "Use SDK methods to set this field.",
                )

        merged = dict(self._context)
        merged.update(local)

        local_tags = local.get("tags")
        if self._tags or local_tags is not None:
            tags = dict(self._tags)
            tags.update(local_tags or {})
            merged["tags"] = tags

        local_user = local.get("user")
        if self._user is not None or local_user is not None:
            user = dict(self._user or {})
            user.update(local_user or {})
            merged["user"] = user

        return merged
