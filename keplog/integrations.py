"""integrations.py - Automatic capture of uncaught exceptions.

ExceptHookIntegration subscribes a client to the interpreter's fatal-signal
sources and turns each one into a ``capture_error`` call:

    sys.excepthook          uncaught exception in the main thread
    threading.excepthook    uncaught exception in any other thread
    asyncio exception handler (opt-in, per loop)
                            exceptions nobody retrieved from a task or future

Each source is chained: after capturing, the previously installed hook runs,
so the usual traceback still reaches stderr.

Exceptions that originate inside the SDK are tagged with
``errors.mark_internal`` and skipped here, so a failing capture can never
feed back into another capture. KeyboardInterrupt and SystemExit are never
captured.
"""

import _thread
import asyncio
import logging
import sys
import threading
import time
from types import TracebackType
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, Type

from .errors import is_internal_error, mark_internal

if TYPE_CHECKING:
    from .client import KeplogClient

logger = logging.getLogger(__name__)

DEFAULT_EXIT_DELAY = 0.1

_IGNORED = (KeyboardInterrupt, SystemExit)


def interrupt_main() -> None:
    """Raise KeyboardInterrupt in the main thread.

    The interpreter then unwinds normally: ``finally`` blocks, atexit
    handlers and logging shutdown all run.
    """
    _thread.interrupt_main()


class ExceptHookIntegration:
    """Installs and removes the uncaught-exception hooks for one client.

    Attributes:
        exit_on_uncaught (bool): Shut the program down after capturing an
            uncaught exception from a worker thread. Off by default, since a
            thread exception does not end a Python program. The main thread
            already ends the interpreter on its own.
        exit_delay (float): Seconds to wait before shutting down.
    """

    def __init__(
        self,
        client: "KeplogClient",
        exit_on_uncaught: bool = False,
        exit_delay: float = DEFAULT_EXIT_DELAY,
        exit_func: Callable[[], Any] = interrupt_main,
    ) -> None:
        self._client = client
        self.exit_on_uncaught = exit_on_uncaught
        self.exit_delay = exit_delay
        self._exit = exit_func
        self._installed = False
        self._prev_excepthook = None
        self._prev_threading_hook = None
        self._loops: Dict[asyncio.AbstractEventLoop, Any] = {}

    @property
    def installed(self) -> bool:
        return self._installed

    def install(self) -> None:
        """Install the sys and threading hooks. Idempotent."""
        if self._installed:
            return
        self._prev_excepthook = sys.excepthook
        self._prev_threading_hook = threading.excepthook
        sys.excepthook = self._handle_uncaught
        threading.excepthook = self._handle_thread_exception
        self._installed = True

    def install_asyncio(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """Capture exceptions reported by ``loop``'s exception handler.

        Args:
            loop: Event loop to hook. Defaults to the running loop.
        """
        loop = loop or asyncio.get_running_loop()
        if loop in self._loops:
            return
        self._loops[loop] = loop.get_exception_handler()
        loop.set_exception_handler(self._handle_async_exception)

    def uninstall(self) -> None:
        """Restore the previous hooks where ours are still in place."""
        if self._installed:
            if sys.excepthook == self._handle_uncaught:
                sys.excepthook = self._prev_excepthook
            if threading.excepthook == self._handle_thread_exception:
                threading.excepthook = self._prev_threading_hook
            self._installed = False
        for loop, previous in self._loops.items():
            if loop.get_exception_handler() == self._handle_async_exception:
                loop.set_exception_handler(previous)
        self._loops.clear()

    # ---------------------------------------------------------------------- #
    # Handlers
    # ---------------------------------------------------------------------- #

    def _capture(self, exc: BaseException, context: Dict[str, Any]) -> None:
        if isinstance(exc, _IGNORED):
            return
        if is_internal_error(exc):
            logger.debug("Skipping SDK-internal exception: %r", exc)
            return
        try:
            self._client.capture_error(exc, context)
        except Exception as err:
            mark_internal(err)
            logger.error("Failed to capture %s: %s", context.get("handler"), err)

    def _handle_uncaught(
        self,
        exc_type: Type[BaseException],
        exc_value: BaseException,
        exc_tb: Optional[TracebackType],
    ) -> None:
        self._capture(exc_value, {"uncaught": True, "handler": "excepthook"})
        if not isinstance(exc_value, _IGNORED):
            logger.error("Uncaught exception captured: %s: %s", exc_type.__name__, exc_value)
        previous = self._prev_excepthook or sys.__excepthook__
        previous(exc_type, exc_value, exc_tb)

    def _handle_thread_exception(self, args: "threading.ExceptHookArgs") -> None:
        exc_value = args.exc_value
        if exc_value is not None:
            self._capture(
                exc_value,
                {
                    "uncaught": True,
                    "handler": "threading.excepthook",
                    "thread": args.thread.name if args.thread else None,
                },
            )
        previous = self._prev_threading_hook or threading.__excepthook__
        previous(args)

        if self.exit_on_uncaught and not isinstance(exc_value, _IGNORED):
            time.sleep(self.exit_delay)
            logger.error("Shutting down due to uncaught exception in thread")
            self._exit()

    def _handle_async_exception(
        self, loop: asyncio.AbstractEventLoop, context: Dict[str, Any]
    ) -> None:
        message = context.get("message") or "Unhandled exception in event loop"
        exc = context.get("exception")
        if not isinstance(exc, BaseException):
            exc = RuntimeError(message)
        self._capture(
            exc,
            {
                "unhandled_rejection": True,
                "handler": "asyncio",
                "reason": str(message),
            },
        )
        logger.error("Unhandled async exception captured: %s", message)

        previous = self._loops.get(loop)
        if previous is not None:
            previous(loop, context)
        else:
            loop.default_exception_handler(context)
