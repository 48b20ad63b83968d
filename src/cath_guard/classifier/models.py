"""Data models for the classifier module."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from cath_guard.models import ThreatLevel, TokenClassification


@dataclass(frozen=True)
class TokenInfo:
    """Token metadata as seen on an incoming transaction."""

    address: str
    name: str | None = None
    symbol: str | None = None
    decimals: int | None = None


@dataclass(frozen=True)
class ClassificationResult:
    """Verdict of the local rule-based classifier.

    Attributes:
        classification: Action to take (allow, warn, block).
        threat_level: Severity shown to the user.
        reason: Human-readable explanation of the matching rule.
        confidence: Rule confidence (0 to 100). Informational only; nothing
            downstream branches on it.
    """

    classification: TokenClassification
    threat_level: ThreatLevel
    reason: str
    confidence: int

    @property
    def is_blocked(self) -> bool:
        """Return True if the local verdict is BLOCK."""
        return self.classification == TokenClassification.BLOCK

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "classification": self.classification.value,
            "threat_level": self.threat_level.value,
            "reason": self.reason,
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class MergedClassification:
    """Final classification after combining local and external signals."""

    classification: TokenClassification
    threat_level: ThreatLevel

    @property
    def blocked(self) -> bool:
        """Return True if the final verdict is BLOCK."""
        return self.classification == TokenClassification.BLOCK
