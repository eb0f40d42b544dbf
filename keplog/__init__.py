"""keplog/__init__.py - Public API for the Keplog error-tracking SDK.

Keplog captures exceptions and messages from a running program, enriches them
with stack frames, source snippets, breadcrumbs and scoped context, and sends
them to a Keplog ingestion server.

Quick start:
    from keplog import KeplogClient

    # 1. Create a client (uncaught exceptions are captured automatically)
    client = KeplogClient("kep_ingest_xxxxxxxx", environment="staging")

    # 2. Describe who and where
    client.set_user({"id": "42", "email": "ada@example.com"})
    client.set_tag("region", "eu-west-1")

    # 3. Leave a trail
    client.add_breadcrumb(type="navigation", message="Opened /checkout")

    # 4. Report failures
    try:
        checkout(cart)
    except Exception as exc:
        client.capture_error(exc, {"cart_id": cart.id})

    # 5. Or route existing logging into Keplog
    import logging
    from keplog import KeplogHandler
    logging.getLogger().addHandler(KeplogHandler(client))

Exported names:
    KeplogClient:        Client owning scope, breadcrumbs and the capture pipeline.
    KeplogConfig:        Frozen configuration dataclass; ``load_config`` reads it
                         from ``KEPLOG_*`` environment variables.
    KeplogHandler:       logging.Handler that turns records into events and
                         breadcrumbs.
    capture_exceptions:  Decorator that captures and re-raises exceptions.
    Breadcrumb:          Immutable trail entry.
    Transport, HttpTransport, MemoryTransport:
                         Event delivery back-ends.
    KeplogError and subclasses:
                         Errors raised by the SDK.
"""

from .breadcrumbs import Breadcrumb, BreadcrumbBuffer
from .client import KeplogClient
from .config import KeplogConfig, load_config
from .errors import (
    ConfigurationError,
    HookError,
    KeplogError,
    ReservedKeyError,
    TransportError,
    ValidationError,
)
from .handler import KeplogHandler
from .instrument import capture_exceptions
from .integrations import ExceptHookIntegration
from .logs import enable_debug_logging
from .scope import Scope
from .transport import HttpTransport, MemoryTransport, Transport

__all__ = [
    "KeplogClient",
    "KeplogConfig",
    "load_config",
    "KeplogHandler",
    "capture_exceptions",
    "ExceptHookIntegration",
    "enable_debug_logging",
    "Breadcrumb",
    "BreadcrumbBuffer",
    "Scope",
    "Transport",
    "HttpTransport",
    "MemoryTransport",
    "KeplogError",
    "ConfigurationError",
    "ReservedKeyError",
    "ValidationError",
    "TransportError",
    "HookError",
]
__version__ = "0.1.0"
