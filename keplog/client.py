"""client.py - KeplogClient, the public entry point and capture pipeline.

A client owns one Scope and one BreadcrumbBuffer and pushes events through a
fixed pipeline:

    serialize -> before_send hook -> validate -> transport.send

Design contract:
    - Capture calls return an event id or None. They never raise; the only
      errors that reach the caller are misuse errors raised synchronously by
      the constructor (ConfigurationError) and by ``set_context``
      (ReservedKeyError).
    - A single boolean guard rejects a capture that starts while another one
      is in flight on the same client (for example from inside before_send).
      Rejected captures are dropped, not queued. The guard is released on
      every exit path.
    - Nothing here is locked. A client is meant to be driven by one thread at
      a time; concurrent callers may interleave scope and breadcrumb updates.

Typical usage:
    from keplog import KeplogClient

    client = KeplogClient("kep_ingest_xxxxxxxx", environment="staging")
    client.set_user({"id": "42", "email": "ada@example.com"})

    try:
        checkout(cart)
    except Exception as exc:
        client.capture_error(exc, {"cart_id": cart.id})
"""

import dataclasses
import logging
from typing import Any, Callable, Dict, Mapping, Optional, Union

from .breadcrumbs import Breadcrumb, BreadcrumbBuffer
from .config import KeplogConfig, load_config
from .errors import ConfigurationError, HookError, ReservedKeyError, ValidationError, mark_internal
from .integrations import ExceptHookIntegration
from .logs import enable_debug_logging
from .scope import Scope
from .serializer import serialize, serialize_message
from .transport import HttpTransport, Transport
from .validation import validate_event

logger = logging.getLogger(__name__)

EventId = Optional[str]


class KeplogClient:
    """Error-tracking client.

    Args:
        ingest_key: Project ingest key. Required, either here or in ``config``.
        config: Optional base configuration. Keyword options override it.
        transport: Optional Transport. Defaults to an HttpTransport built from
            the configuration.
        **options: Any KeplogConfig field, e.g. ``environment="staging"``,
            ``before_send=scrub``, ``auto_handle_uncaught=False``.

    Raises:
        ConfigurationError: If the ingest key is missing or
            ``max_breadcrumbs`` is lower than 1.
    """

    def __init__(
        self,
        ingest_key: Optional[str] = None,
        *,
        config: Optional[KeplogConfig] = None,
        transport: Optional[Transport] = None,
        **options: Any,
    ) -> None:
        if ingest_key is not None:
            options["ingest_key"] = ingest_key
        config = dataclasses.replace(config or KeplogConfig(), **options)

        if not config.ingest_key:
            raise ConfigurationError("Keplog ingest key is required")
        if config.max_breadcrumbs < 1:
            raise ConfigurationError(
                f"max_breadcrumbs must be >= 1, got {config.max_breadcrumbs}"
            )

        self._config = config
        self._enabled = config.enabled
        self._capturing = False
        self._scope = Scope()
        self._breadcrumbs = BreadcrumbBuffer(config.max_breadcrumbs)
        self._transport = transport or HttpTransport(
            config.base_url, config.ingest_key, config.timeout
        )
        self._integration = None

        if config.debug:
            enable_debug_logging()

        if config.auto_handle_uncaught:
            self._integration = ExceptHookIntegration(self, config.exit_on_uncaught)
            self._integration.install()

        logger.debug(
            "Client initialized: environment=%s server_name=%s release=%s",
            config.environment,
            config.server_name,
            config.release,
        )

    @classmethod
    def from_env(cls, transport: Optional[Transport] = None, **overrides: Any) -> "KeplogClient":
        """Build a client from ``KEPLOG_*`` environment variables."""
        return cls(config=load_config(**overrides), transport=transport)

    # ---------------------------------------------------------------------- #
    # Properties
    # ---------------------------------------------------------------------- #

    @property
    def config(self) -> KeplogConfig:
        return self._config

    @property
    def scope(self) -> Scope:
        return self._scope

    @property
    def breadcrumbs(self) -> BreadcrumbBuffer:
        return self._breadcrumbs

    @property
    def transport(self) -> Transport:
        return self._transport

    # ---------------------------------------------------------------------- #
    # Capture
    # ---------------------------------------------------------------------- #

    def capture_error(self, error: Any, context: Optional[Mapping[str, Any]] = None) -> EventId:
        """Capture an exception (or any error-like value) at level ``error``.

        Args:
            error: Exception, error-like object, string or other value.
            context: Extra context for this event only. Wins over the scope.

        Returns:
            The event id, or None if the event was not sent.

        Example:
            >>> try:
            ...     1 / 0
            ... except ZeroDivisionError as exc:
            ...     client.capture_error(exc, {"order_id": 7})
        """
        cfg = self._config
        return self._capture(
            "error",
            lambda: serialize(
                error,
                "error",
                self._scope,
                self._breadcrumbs.get_all(),
                context,
                cfg.environment,
                cfg.server_name,
                cfg.release,
                cfg.context_lines,
            ),
        )

    def capture_exception(self, error: Any, context: Optional[Mapping[str, Any]] = None) -> EventId:
        """Alias for :meth:`capture_error`."""
        return self.capture_error(error, context)

    def capture_message(
        self,
        message: str,
        level: str = "info",
        context: Optional[Mapping[str, Any]] = None,
    ) -> EventId:
        """Capture a message without a stack trace.

        Shares the recursion guard with :meth:`capture_error`, so a message
        captured from inside before_send is dropped as well.
        """
        cfg = self._config
        return self._capture(
            "message",
            lambda: serialize_message(
                message,
                level,
                self._scope,
                self._breadcrumbs.get_all(),
                context,
                cfg.environment,
                cfg.server_name,
                cfg.release,
            ),
        )

    def _capture(self, kind: str, build: Callable[[], Dict[str, Any]]) -> EventId:
        if not self._enabled:
            return None
        if self._capturing:
            logger.debug(
                "Recursion detected: %s raised while capturing will not be captured",
                kind,
            )
            return None

        self._capturing = True
        try:
            event = self._apply_before_send(build())
            if event is None:
                return None
            return self._transport.send(validate_event(event))
        except ReservedKeyError as exc:
            logger.error("Failed to capture %s: %s", kind, exc)
            return None
        except ValidationError as exc:
            logger.warning("Event not sent: %s", exc)
            return None
        except Exception as exc:
            mark_internal(exc)
            logger.debug("Failed to capture %s", kind, exc_info=True)
            return None
        finally:
            self._capturing = False

    def _apply_before_send(self, event: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        hook = self._config.before_send
        if hook is None:
            return event
        try:
            result = hook(event)
        except Exception as exc:
            mark_internal(exc)
            err = HookError(f"before_send callback raised {type(exc).__name__}: {exc}")
            logger.error("%s", err, exc_info=exc)
            return None
        if not result:
            logger.debug("Event dropped by before_send hook")
            return None
        return result

    # ---------------------------------------------------------------------- #
    # Scope and breadcrumbs
    # ---------------------------------------------------------------------- #

    def add_breadcrumb(
        self,
        breadcrumb: Union[Breadcrumb, Mapping[str, Any], None] = None,
        **fields: Any,
    ) -> None:
        """Record a breadcrumb. Ignored while the client is disabled.

        Example:
            >>> client.add_breadcrumb(type="navigation", message="Opened /checkout")
            >>> client.add_breadcrumb({"category": "auth", "message": "Logged in"})
        """
        if not self._enabled:
            return
        stored = self._breadcrumbs.add(breadcrumb if breadcrumb is not None else fields)
        logger.debug("Breadcrumb added: %r", stored)

    def set_context(self, key: str, value: Any) -> None:
        """Set a context value for all future events.

        Raises:
            ReservedKeyError: If ``key`` is managed by the SDK.
        """
        self._scope.set_context(key, value)

    def set_tag(self, key: str, value: str) -> None:
        self._scope.set_tag(key, value)

    def set_tags(self, tags: Mapping[str, str]) -> None:
        self._scope.set_tags(tags)

    def set_user(self, user: Optional[Mapping[str, Any]]) -> None:
        self._scope.set_user(user)

    def clear_scope(self) -> None:
        """Clear context, tags, user and breadcrumbs."""
        self._scope.clear()
        self._breadcrumbs.clear()
        logger.debug("Scope cleared")

    # ---------------------------------------------------------------------- #
    # Lifecycle
    # ---------------------------------------------------------------------- #

    def set_enabled(self, enabled: bool) -> None:
        self._enabled = bool(enabled)
        logger.debug("Tracking %s", "enabled" if enabled else "disabled")

    def is_enabled(self) -> bool:
        return self._enabled

    def close(self) -> None:
        """Uninstall the uncaught-exception hooks. Safe to call twice."""
        if self._integration is not None:
            self._integration.uninstall()
            self._integration = None
        logger.debug("Client closed")

    def __enter__(self) -> "KeplogClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
