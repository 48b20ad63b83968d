"""Tests for the graceful shutdown handler."""

from __future__ import annotations

import asyncio
import signal
from unittest.mock import MagicMock, patch

import pytest

from cath_guard.shutdown import DEFAULT_SHUTDOWN_TIMEOUT, SHUTDOWN_SIGNALS, GracefulShutdown


class TestGracefulShutdownInit:
    """Tests for GracefulShutdown initialization."""

    def test_default_timeout(self) -> None:
        """Should use default timeout when not specified."""
        shutdown = GracefulShutdown()
        assert shutdown.timeout == DEFAULT_SHUTDOWN_TIMEOUT

    def test_custom_timeout(self) -> None:
        """Should accept custom timeout."""
        shutdown = GracefulShutdown(timeout=60.0)
        assert shutdown.timeout == 60.0

    def test_initial_state(self) -> None:
        """Should start in non-shutdown state."""
        assert GracefulShutdown().is_shutdown_requested is False


class TestRequestShutdown:
    """Tests for programmatic shutdown requests."""

    async def test_request_shutdown_releases_wait(self) -> None:
        """Wait should return once shutdown is requested."""
        shutdown = GracefulShutdown()

        async def request_after_delay() -> None:
            await asyncio.sleep(0.05)
            shutdown.request_shutdown()

        task = asyncio.create_task(request_after_delay())
        await asyncio.wait_for(shutdown.wait(), timeout=1.0)
        await task

        assert shutdown.is_shutdown_requested is True

    async def test_request_shutdown_idempotent(self) -> None:
        """Multiple requests should be idempotent."""
        shutdown = GracefulShutdown()

        shutdown.request_shutdown()
        shutdown.request_shutdown()

        assert shutdown.is_shutdown_requested is True


class TestSignalHandlers:
    """Tests for signal handler installation and removal."""

    async def test_installs_loop_handlers(self) -> None:
        """Should install loop signal handlers for each shutdown signal."""
        shutdown = GracefulShutdown()

        with (
            patch.object(asyncio.get_running_loop(), "add_signal_handler") as mock_add,
            patch.object(asyncio.get_running_loop(), "remove_signal_handler") as mock_remove,
        ):
            shutdown.install_signal_handlers()
            shutdown.remove_signal_handlers()

        assert mock_add.call_count == len(SHUTDOWN_SIGNALS)
        assert mock_remove.call_count == len(SHUTDOWN_SIGNALS)

    async def test_unsupported_platform_is_tolerated(self) -> None:
        """Missing signal support should be logged, not raised."""
        shutdown = GracefulShutdown()

        with patch.object(
            asyncio.get_running_loop(), "add_signal_handler", side_effect=NotImplementedError
        ):
            shutdown.install_signal_handlers()

        shutdown.remove_signal_handlers()

    def test_remove_without_install_is_noop(self) -> None:
        """Removing handlers before installing should do nothing."""
        GracefulShutdown().remove_signal_handlers()


class TestHandleSignal:
    """Tests for signal handling behavior."""

    async def test_first_signal_requests_shutdown(self) -> None:
        """First signal should request shutdown."""
        shutdown = GracefulShutdown()

        shutdown._handle_signal(signal.SIGTERM)

        assert shutdown.is_shutdown_requested is True
        await asyncio.wait_for(shutdown.wait(), timeout=1.0)

    async def test_second_signal_force_exits(self) -> None:
        """Second signal should trigger force exit."""
        shutdown = GracefulShutdown()
        shutdown._handle_signal(signal.SIGTERM)

        with pytest.raises(SystemExit) as exc_info:
            shutdown._handle_signal(signal.SIGTERM)

        assert exc_info.value.code == 128 + signal.SIGTERM.value


class TestCleanupCallbacks:
    """Tests for cleanup callback execution."""

    async def test_runs_sync_and_async_callbacks(self) -> None:
        """Should run sync and async cleanup callbacks."""
        shutdown = GracefulShutdown()
        sync_callback = MagicMock()
        called = False

        async def async_callback() -> None:
            nonlocal called
            called = True

        shutdown.register_cleanup(sync_callback)
        shutdown.register_cleanup(async_callback)

        await shutdown.run_cleanup_callbacks()

        sync_callback.assert_called_once()
        assert called is True

    async def test_runs_in_reverse_order(self) -> None:
        """Callbacks registered last should run first."""
        shutdown = GracefulShutdown()
        order: list[str] = []

        shutdown.register_cleanup(lambda: order.append("storage"))
        shutdown.register_cleanup(lambda: order.append("api"))

        await shutdown.run_cleanup_callbacks()

        assert order == ["api", "storage"]

    async def test_failing_callback_does_not_stop_others(self) -> None:
        """Cleanup callback errors should be logged, not raised."""
        shutdown = GracefulShutdown()
        later = MagicMock()

        def failing_callback() -> None:
            raise ValueError("Cleanup failed")

        shutdown.register_cleanup(later)
        shutdown.register_cleanup(failing_callback)

        await shutdown.run_cleanup_callbacks()

        later.assert_called_once()

    async def test_slow_cleanup_times_out(self) -> None:
        """Cleanup should give up after the timeout."""
        shutdown = GracefulShutdown(timeout=0.05)

        async def slow_callback() -> None:
            await asyncio.sleep(10.0)

        shutdown.register_cleanup(slow_callback)

        await asyncio.wait_for(shutdown.run_cleanup_callbacks(), timeout=1.0)


class TestAsyncContextManager:
    """Tests for async context manager protocol."""

    async def test_context_manager_removes_handlers(self) -> None:
        """Exiting context should remove signal handlers."""
        shutdown = GracefulShutdown()

        with patch.object(shutdown, "remove_signal_handlers") as mock_remove:
            async with shutdown:
                pass

            mock_remove.assert_called_once()

    async def test_context_manager_runs_cleanup(self) -> None:
        """Exiting context should run cleanup callbacks."""
        shutdown = GracefulShutdown()
        callback = MagicMock()
        shutdown.register_cleanup(callback)

        async with shutdown:
            pass

        callback.assert_called_once()


class TestShutdownSignals:
    """Tests for shutdown signal configuration."""

    def test_shutdown_signals_includes_sigterm(self) -> None:
        """SHUTDOWN_SIGNALS should include SIGTERM."""
        assert signal.SIGTERM in SHUTDOWN_SIGNALS

    def test_shutdown_signals_includes_sigint(self) -> None:
        """SHUTDOWN_SIGNALS should include SIGINT."""
        assert signal.SIGINT in SHUTDOWN_SIGNALS
