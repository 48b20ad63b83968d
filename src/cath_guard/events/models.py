"""Event payloads pushed to connected clients."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from cath_guard.models import ArbitrageBot, Transaction, Wallet
from cath_guard.tiers.models import ResolvedTier


class EventType(str, Enum):
    """Kinds of broadcast events."""

    TRANSACTION = "transaction"
    THREAT_DETECTED = "threat_detected"
    BOT_UPDATE = "bot_update"
    TIER_UPDATE = "tier_update"


@dataclass(frozen=True)
class Event:
    """A tagged event with a JSON-compatible payload."""

    type: EventType
    data: dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "type": self.type.value,
            "data": self.data,
            "timestamp": self.timestamp.isoformat(),
        }

    def to_stream_fields(self) -> dict[str, str]:
        """Flatten to string fields for Redis Streams."""
        return {
            "type": self.type.value,
            "data": json.dumps(self.data),
            "timestamp": self.timestamp.isoformat(),
        }


def transaction_event(transaction: Transaction) -> Event:
    return Event(type=EventType.TRANSACTION, data=transaction.to_dict())


def threat_detected_event(transaction: Transaction) -> Event:
    return Event(
        type=EventType.THREAT_DETECTED,
        data={
            "transaction": transaction.to_dict(),
            "threat_level": transaction.final_threat_level.value,
        },
    )


def bot_update_event(bot: ArbitrageBot) -> Event:
    return Event(type=EventType.BOT_UPDATE, data=bot.to_dict())


def tier_update_event(wallet: Wallet, resolved: ResolvedTier) -> Event:
    return Event(
        type=EventType.TIER_UPDATE,
        data={"wallet": wallet.to_dict(), "resolved": resolved.to_dict()},
    )
