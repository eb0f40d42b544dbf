"""config.py - Client configuration, loaded from arguments and environment.

KeplogConfig is a frozen dataclass; ``load_config()`` builds one from
``KEPLOG_*`` environment variables with explicit keyword overrides taking
priority. Validation of required fields happens in the client constructor so
that a config can be built, inspected and replaced before use.
"""

import os
import socket
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional

DEFAULT_BASE_URL = "http://localhost:8080"
DEFAULT_ENVIRONMENT = "production"

BeforeSend = Callable[[Dict[str, Any]], Optional[Dict[str, Any]]]


def detect_environment() -> str:
    """Return ``$ENVIRONMENT``, defaulting to ``"production"``."""
    return os.environ.get("ENVIRONMENT") or DEFAULT_ENVIRONMENT


def detect_server_name() -> str:
    """Return the host name, or ``"unknown"`` if it cannot be read."""
    try:
        return socket.gethostname() or "unknown"
    except OSError:
        return "unknown"


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes", "on")


@dataclass(frozen=True)
class KeplogConfig:
    ingest_key: str = ""
    base_url: str = DEFAULT_BASE_URL
    environment: str = field(default_factory=detect_environment)
    release: Optional[str] = None
    server_name: str = field(default_factory=detect_server_name)
    max_breadcrumbs: int = 100
    enabled: bool = True
    debug: bool = False
    timeout: float = 5.0
    before_send: Optional[BeforeSend] = None
    auto_handle_uncaught: bool = True
    exit_on_uncaught: bool = False
    context_lines: int = 3


_ENV_VARS = {
    "ingest_key": ("KEPLOG_INGEST_KEY", str),
    "base_url": ("KEPLOG_BASE_URL", str),
    "environment": ("KEPLOG_ENVIRONMENT", str),
    "release": ("KEPLOG_RELEASE", str),
    "server_name": ("KEPLOG_SERVER_NAME", str),
    "max_breadcrumbs": ("KEPLOG_MAX_BREADCRUMBS", int),
    "enabled": ("KEPLOG_ENABLED", _parse_bool),
    "debug": ("KEPLOG_DEBUG", _parse_bool),
    "timeout": ("KEPLOG_TIMEOUT", float),
}


def load_config(environ: Optional[Mapping[str, str]] = None, **overrides: Any) -> KeplogConfig:
    """Build a KeplogConfig from defaults <- environment <- overrides.

    Args:
        environ: Mapping to read variables from. Defaults to ``os.environ``.
        **overrides: KeplogConfig fields; these win over the environment.
            ``None`` values are ignored.

    Raises:
        ValueError: If a numeric environment variable cannot be parsed.
    """
    if environ is None:
        environ = os.environ
    kwargs: Dict[str, Any] = {}
    for name, (var, convert) in _ENV_VARS.items():
        raw = environ.get(var)
        if raw is None or raw == "":
            continue
        try:
            kwargs[name] = convert(raw)
        except ValueError as exc:
            raise ValueError(f"Invalid value for {var}: {raw!r}") from exc
    kwargs.update({k: v for k, v in overrides.items() if v is not None})
    return KeplogConfig(**kwargs)
