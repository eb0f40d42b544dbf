"""instrument.py - Opt-in decorator that reports a function's exceptions.

    from keplog import KeplogClient, capture_exceptions

    client = KeplogClient("kep_ingest_xxxxxxxx")

    @capture_exceptions(client, breadcrumbs=True)
    def process_payment(user_id: int, amount: float) -> Receipt:
        ...

Every exception escaping the wrapped function is captured with the function's
qualified name in the event's extra context, then re-raised. With
``breadcrumbs=True`` each call also leaves a ``type="function"`` breadcrumb
describing the call and its bound arguments.
"""

import inspect
from functools import wraps
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from .client import KeplogClient


def _describe_call(func: Callable, args, kwargs) -> str:
    try:
        bound = inspect.signature(func).bind(*args, **kwargs)
        bound.apply_defaults()
        arg_str = ", ".join(f"{k}={v!r}" for k, v in bound.arguments.items())
    except (TypeError, ValueError):
        arg_str = "..."
    return f"{func.__qualname__}({arg_str})"


def capture_exceptions(
    client: "KeplogClient",
    reraise: bool = True,
    breadcrumbs: bool = False,
) -> Callable[[Callable], Callable]:
    """Decorator factory that captures exceptions raised by the wrapped function.

    Args:
        client: Client that receives the events and breadcrumbs.
        reraise: Re-raise the exception after capturing it. When False the
            wrapper returns None instead.
        breadcrumbs: Record a ``type="function"`` breadcrumb on every call.

    Returns:
        A decorator. The wrapped callable keeps the name, docstring and
        signature of the original (via ``functools.wraps``).

    Example:
        >>> @capture_exceptions(client)
        ... def divide(a, b):
        ...     return a / b
        >>> divide(1, 0)
        Traceback (most recent call last):
        ZeroDivisionError: division by zero
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            if breadcrumbs:
                client.add_breadcrumb(
                    type="function",
                    category=func.__module__,
                    message=_describe_call(func, args, kwargs),
                    level="debug",
                )
            try:
                return func(*args, **kwargs)
            except Exception as exc:
                client.capture_error(exc, {"function": func.__qualname__})
                if reraise:
                    raise
                return None

        return wrapper

    return decorator
