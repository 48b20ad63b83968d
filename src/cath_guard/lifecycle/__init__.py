"""Lifecycle layer - scheduled auto-pause and cleanup of arbitrage bots."""

from cath_guard.lifecycle.scheduler import (
    BotLifecycleManager,
    LifecycleState,
    SweepResult,
    SweepStats,
)

__all__ = [
    "BotLifecycleManager",
    "LifecycleState",
    "SweepResult",
    "SweepStats",
]
