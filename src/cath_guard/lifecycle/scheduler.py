"""Periodic arbitrage bot lifecycle sweep.

Every sweep snapshots all bots once and, for each bot:

- auto-pauses it when its payment failed while it is active;
- otherwise deletes it when it is a non-included bot that has been inactive
  for at least the configured number of days.

A bot paused by a sweep is never deleted by that same sweep. Per-bot failures
are logged and skipped. A sweep requested while another is still running is
skipped.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from cath_guard.billing.fees import (
    INACTIVE_DELETE_DAYS,
    should_auto_pause_bot,
    should_delete_bot,
)
from cath_guard.events.broadcaster import EventBroadcaster
from cath_guard.events.models import bot_update_event
from cath_guard.metrics import LIFECYCLE_ACTIONS_TOTAL, LIFECYCLE_SWEEP_DURATION
from cath_guard.models import BotPatch
from cath_guard.storage.base import Repository

logger = logging.getLogger(__name__)


DEFAULT_INTERVAL_SECONDS = 3600  # 1 hour


class LifecycleState(str, Enum):
    """State of the lifecycle manager."""

    STOPPED = "stopped"
    STARTING = "starting"
    IDLE = "idle"
    RUNNING = "running"
    STOPPING = "stopping"
    ERROR = "error"


@dataclass
class SweepStats:
    """Cumulative statistics for lifecycle sweeps."""

    total_runs: int = 0
    skipped_runs: int = 0
    failed_runs: int = 0
    bots_paused: int = 0
    bots_deleted: int = 0
    bot_failures: int = 0
    last_run_time: datetime | None = None
    last_run_duration_seconds: float = 0.0
    last_error: str | None = None


@dataclass(frozen=True)
class SweepResult:
    """Outcome of a single sweep."""

    started_at: datetime
    bots_checked: int
    paused_bot_ids: tuple[str, ...] = ()
    deleted_bot_ids: tuple[str, ...] = ()
    failed_bot_ids: tuple[str, ...] = ()
    duration_seconds: float = 0.0

    def to_dict(self) -> dict[str, object]:
        """Serialize to dictionary."""
        return {
            "started_at": self.started_at.isoformat(),
            "bots_checked": self.bots_checked,
            "paused_bot_ids": list(self.paused_bot_ids),
            "deleted_bot_ids": list(self.deleted_bot_ids),
            "failed_bot_ids": list(self.failed_bot_ids),
            "duration_seconds": self.duration_seconds,
        }


StateCallback = Callable[[LifecycleState], None]
SweepCallback = Callable[[SweepResult], None]
Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class BotLifecycleManager:
    """Background service that enforces bot payment and inactivity rules.

    Example:
        ```python
        manager = BotLifecycleManager(repository, interval_seconds=3600)
        await manager.start()  # sweeps immediately, then hourly

        result = await manager.run_now()

        await manager.stop()
        ```
    """

    def __init__(
        self,
        repository: Repository,
        *,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        inactive_days: int = INACTIVE_DELETE_DAYS,
        broadcaster: EventBroadcaster | None = None,
        clock: Clock = _utcnow,
        on_state_change: StateCallback | None = None,
        on_sweep_complete: SweepCallback | None = None,
    ) -> None:
        """Initialize the lifecycle manager.

        Args:
            repository: Storage holding the bots.
            interval_seconds: Seconds between scheduled sweeps.
            inactive_days: Days of inactivity before a bot is deleted.
            broadcaster: Optional broadcaster notified of auto-paused bots.
            clock: Source of the current UTC time.
            on_state_change: Callback for state changes.
            on_sweep_complete: Callback after each completed sweep.
        """
        self._repository = repository
        self._interval = interval_seconds
        self._inactive_days = inactive_days
        self._broadcaster = broadcaster
        self._clock = clock
        self._on_state_change = on_state_change
        self._on_sweep_complete = on_sweep_complete

        self._state = LifecycleState.STOPPED
        self._stats = SweepStats()
        self._running = False
        self._task: asyncio.Task[None] | None = None
        self._stop_event = asyncio.Event()
        self._sweep_lock = asyncio.Lock()

    @property
    def state(self) -> LifecycleState:
        """Current manager state."""
        return self._state

    @property
    def stats(self) -> SweepStats:
        """Cumulative sweep statistics."""
        return self._stats

    @property
    def is_sweeping(self) -> bool:
        """Whether a sweep currently holds the sweep lock."""
        return self._sweep_lock.locked()

    def _set_state(self, new_state: LifecycleState) -> None:
        """Update state and notify callback."""
        old_state = self._state
        self._state = new_state
        if self._on_state_change and old_state != new_state:
            try:
                self._on_state_change(new_state)
            except Exception as e:
                logger.warning(f"State change callback failed: {e}")

    async def start(self) -> None:
        """Run a sweep immediately, then schedule one every interval."""
        if self._state != LifecycleState.STOPPED:
            logger.warning(f"Cannot start lifecycle manager: already in state {self._state}")
            return

        self._set_state(LifecycleState.STARTING)
        self._stop_event.clear()
        self._running = True

        await self.run_now()

        self._task = asyncio.create_task(self._loop())
        if self._state != LifecycleState.ERROR:
            self._set_state(LifecycleState.IDLE)
        logger.info(f"Bot lifecycle manager started (interval {self._interval}s)")

    async def stop(self) -> None:
        """Stop the background sweep loop."""
        if self._state == LifecycleState.STOPPED:
            return

        self._set_state(LifecycleState.STOPPING)
        self._running = False
        self._stop_event.set()

        if self._task:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

        self._set_state(LifecycleState.STOPPED)
        logger.info("Bot lifecycle manager stopped")

    async def _loop(self) -> None:
        """Background loop that sweeps every interval."""
        while not self._stop_event.is_set():
            try:
                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
                    break
                except TimeoutError:
                    pass

                if self._stop_event.is_set():
                    break

                await self.run_now()

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Lifecycle loop error: {e}")
                self._stats.last_error = str(e)
                self._set_state(LifecycleState.ERROR)

    async def run_now(self) -> SweepResult | None:
        """Run a sweep immediately.

        Returns:
            The sweep result, or None if the sweep was skipped because another
            one is running or the bot listing failed.
        """
        if self._sweep_lock.locked():
            self._stats.skipped_runs += 1
            LIFECYCLE_ACTIONS_TOTAL.labels(action="skipped").inc()
            logger.info("Lifecycle sweep already running, skipping")
            return None

        async with self._sweep_lock:
            return await self._sweep()

    async def _sweep(self) -> SweepResult | None:
        self._set_state(LifecycleState.RUNNING)
        self._stats.total_runs += 1
        started_at = self._clock()
        started = time.monotonic()

        try:
            bots = await self._repository.get_all_bots()
        except Exception as e:
            self._stats.failed_runs += 1
            self._stats.last_error = str(e)
            self._set_state(LifecycleState.ERROR)
            logger.error(f"Lifecycle sweep aborted, failed to list bots: {e}")
            return None

        paused: list[str] = []
        deleted: list[str] = []
        failed: list[str] = []

        for bot in bots:
            try:
                if should_auto_pause_bot(bot):
                    updated = await self._repository.update_bot(
                        bot.id, BotPatch(active=False, inactive_since=started_at)
                    )
                    paused.append(bot.id)
                    LIFECYCLE_ACTIONS_TOTAL.labels(action="paused").inc()
                    logger.info(f"Auto-paused bot {bot.id} ({bot.bot_name}): payment failed")
                    if updated is not None and self._broadcaster is not None:
                        await self._broadcaster.publish(bot_update_event(updated))
                    continue

                if should_delete_bot(bot, inactive_days=self._inactive_days, now=started_at):
                    if await self._repository.delete_bot(bot.id):
                        deleted.append(bot.id)
                        LIFECYCLE_ACTIONS_TOTAL.labels(action="deleted").inc()
                        logger.info(
                            f"Deleted bot {bot.id} ({bot.bot_name}): "
                            f"inactive for {self._inactive_days}+ days"
                        )
            except Exception as e:
                failed.append(bot.id)
                LIFECYCLE_ACTIONS_TOTAL.labels(action="failed").inc()
                logger.warning(f"Lifecycle check failed for bot {bot.id}: {e}")

        duration = time.monotonic() - started
        LIFECYCLE_SWEEP_DURATION.observe(duration)

        result = SweepResult(
            started_at=started_at,
            bots_checked=len(bots),
            paused_bot_ids=tuple(paused),
            deleted_bot_ids=tuple(deleted),
            failed_bot_ids=tuple(failed),
            duration_seconds=duration,
        )

        self._stats.bots_paused += len(paused)
        self._stats.bots_deleted += len(deleted)
        self._stats.bot_failures += len(failed)
        self._stats.last_run_time = started_at
        self._stats.last_run_duration_seconds = duration
        self._stats.last_error = None

        self._set_state(LifecycleState.IDLE if self._running else LifecycleState.STOPPED)
        logger.info(
            f"Lifecycle sweep checked {len(bots)} bots: {len(paused)} paused, "
            f"{len(deleted)} deleted, {len(failed)} failed in {duration:.3f}s"
        )

        if self._on_sweep_complete:
            try:
                self._on_sweep_complete(result)
            except Exception as e:
                logger.warning(f"Sweep complete callback failed: {e}")

        return result
