"""Data models for external token risk analysis."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol


class RiskVerdict(str, Enum):
    """Deep3 verdict derived from the risk score."""

    SAFE = "safe"
    SUSPICIOUS = "suspicious"
    MALICIOUS = "malicious"


MALICIOUS_RISK_SCORE = 70
SUSPICIOUS_RISK_SCORE = 40


def verdict_for_score(risk_score: int) -> RiskVerdict:
    """Map a 0-100 risk score to a verdict."""
    if risk_score >= MALICIOUS_RISK_SCORE:
        return RiskVerdict.MALICIOUS
    if risk_score >= SUSPICIOUS_RISK_SCORE:
        return RiskVerdict.SUSPICIOUS
    return RiskVerdict.SAFE


@dataclass(frozen=True)
class Deep3Analysis:
    """Second-opinion risk analysis of a token.

    Attributes:
        token_address: Analyzed token mint.
        risk_score: Risk score from 0 (safe) to 100 (malicious).
        classification: Verdict derived from the score.
        confidence: Analyzer confidence (0 to 100).
        metadata: Contract facts (age, holders, liquidity, flags).
        recommendations: User-facing advice, most important first.
    """

    token_address: str
    risk_score: int
    classification: RiskVerdict
    confidence: int
    metadata: dict[str, Any] = field(default_factory=dict)
    recommendations: tuple[str, ...] = ()

    @property
    def reason(self) -> str | None:
        """Headline recommendation stored with transactions."""
        return self.recommendations[0] if self.recommendations else None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "token_address": self.token_address,
            "risk_score": self.risk_score,
            "classification": self.classification.value,
            "confidence": self.confidence,
            "metadata": dict(self.metadata),
            "recommendations": list(self.recommendations),
        }


class RiskAnalyzer(Protocol):
    """Anything that can score a token address."""

    async def analyze_token(self, token_address: str) -> Deep3Analysis: ...
