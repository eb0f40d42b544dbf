"""errors.py - Exception taxonomy for the Keplog SDK.

Only misuse errors cross the SDK boundary: a bad configuration fails the
client constructor and a reserved context key fails ``set_context``. Every
other error kind is contained inside the capture pipeline, because the SDK
must never be the reason an application crashes.

    KeplogError          base class
    ConfigurationError   invalid client configuration (raised)
    ReservedKeyError     caller tried to write an SDK-managed key (raised)
    ValidationError      event failed size/shape rules (contained)
    TransportError       network, timeout or unexpected status (contained)
    HookError            user-supplied before_send raised (contained)
"""

_INTERNAL_ATTR = "__keplog_internal__"


class KeplogError(Exception):
    """Base class for every error raised by the SDK."""


class ConfigurationError(KeplogError, ValueError):
    """The client was constructed with an invalid configuration."""


class ReservedKeyError(KeplogError, KeyError):
    """A caller attempted to set a context key that the SDK manages."""

    def __init__(self, key: str, message: str) -> None:
        super().__init__(message)
        self.key = key
        self.message = message

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message.
        return self.message


class ValidationError(KeplogError, ValueError):
    """An event failed the pre-dispatch validation rules."""


class TransportError(KeplogError):
    """The transport could not deliver an event."""


class HookError(KeplogError):
    """The before_send hook raised while processing an event."""


def mark_internal(exc: BaseException) -> BaseException:
    """Tag ``exc`` as originating inside the SDK and return it.

    Fatal-signal handlers skip tagged exceptions, so a failure inside the
    capture pipeline can never trigger another capture.
    """
    try:
        setattr(exc, _INTERNAL_ATTR, True)
    except (AttributeError, TypeError):
        # Some builtin exception types reject new attributes.
        pass
    return exc


def is_internal_error(exc: object) -> bool:
    """Return True if ``exc`` was tagged by :func:`mark_internal`."""
    return bool(getattr(exc, _INTERNAL_ATTR, False))
