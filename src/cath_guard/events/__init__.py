"""Events layer - broadcast payloads and best-effort fan-out."""

from cath_guard.events.broadcaster import EventBroadcaster
from cath_guard.events.models import (
    Event,
    EventType,
    bot_update_event,
    threat_detected_event,
    tier_update_event,
    transaction_event,
)

__all__ = [
    "Event",
    "EventBroadcaster",
    "EventType",
    "bot_update_event",
    "threat_detected_event",
    "tier_update_event",
    "transaction_event",
]
