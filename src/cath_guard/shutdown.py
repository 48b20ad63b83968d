"""Signal handling and ordered cleanup for the CATH Guard service.

Usage:
    ```python
    async with GracefulShutdown() as shutdown:
        await application.start()
        shutdown.register_cleanup(application.stop)
        await shutdown.wait()
    ```
"""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
from collections.abc import Awaitable, Callable
from contextlib import suppress
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_SHUTDOWN_TIMEOUT = 30.0

SHUTDOWN_SIGNALS = (signal.SIGTERM, signal.SIGINT)

CleanupCallback = Callable[[], Awaitable[Any] | None]


class GracefulShutdown:
    """Waits for SIGTERM/SIGINT and runs cleanup callbacks on exit.

    Cleanup callbacks run in reverse registration order, so components
    registered after their dependencies are stopped first. A second signal
    while shutting down forces an immediate exit.
    """

    def __init__(self, timeout: float = DEFAULT_SHUTDOWN_TIMEOUT) -> None:
        self._timeout = timeout
        self._event = asyncio.Event()
        self._requested = False
        self._callbacks: list[CleanupCallback] = []
        self._loop: asyncio.AbstractEventLoop | None = None
        self._installed: list[signal.Signals] = []

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def is_shutdown_requested(self) -> bool:
        return self._requested

    def register_cleanup(self, callback: CleanupCallback) -> None:
        """Register a sync or async callable to run during shutdown."""
        self._callbacks.append(callback)

    def request_shutdown(self) -> None:
        """Trigger shutdown from application code."""
        if not self._requested:
            self._requested = True
            logger.info("Shutdown requested")
            self._event.set()

    async def wait(self) -> None:
        """Block until a signal arrives or request_shutdown() is called."""
        await self._event.wait()

    def install_signal_handlers(self) -> None:
        self._loop = asyncio.get_running_loop()
        for sig in SHUTDOWN_SIGNALS:
            try:
                self._loop.add_signal_handler(sig, self._handle_signal, sig)
            except (NotImplementedError, ValueError, OSError) as e:
                logger.warning("Could not install handler for %s: %s", sig.name, e)
            else:
                self._installed.append(sig)

    def remove_signal_handlers(self) -> None:
        if self._loop is None:
            return
        for sig in self._installed:
            with suppress(ValueError, OSError):
                self._loop.remove_signal_handler(sig)
        self._installed.clear()

    def _handle_signal(self, sig: signal.Signals) -> None:
        if self._requested:
            logger.warning("Received %s again - forcing exit", sig.name)
            sys.exit(128 + sig.value)
        logger.info("Received %s - shutting down", sig.name)
        self._requested = True
        self._event.set()

    async def run_cleanup_callbacks(self) -> None:
        """Run cleanup callbacks, newest first, within the shutdown timeout.

        A failing callback is logged and does not stop the others.
        """

        async def run_all() -> None:
            for callback in reversed(self._callbacks):
                try:
                    result = callback()
                    if asyncio.iscoroutine(result):
                        await result
                except Exception as e:
                    logger.error("Cleanup callback %r failed: %s", callback, e)

        try:
            await asyncio.wait_for(run_all(), timeout=self._timeout)
        except TimeoutError:
            logger.error("Cleanup did not finish within %.1fs", self._timeout)

    async def __aenter__(self) -> GracefulShutdown:
        self.install_signal_handlers()
        return self

    async def __aexit__(self, *_args: Any) -> None:
        self.remove_signal_handlers()
        await self.run_cleanup_callbacks()
