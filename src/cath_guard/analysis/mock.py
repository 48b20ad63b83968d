"""Deterministic Deep3 stand-in for development and demos.

The risk score is derived from a 32-bit rolling string hash of the token
address, so the same address always gets the same score. Confidence,
metadata and latency are randomized.
"""

from __future__ import annotations

import asyncio
import random
from typing import Any

from cath_guard.analysis.models import Deep3Analysis, RiskVerdict, verdict_for_score

DEFAULT_MIN_LATENCY_SECONDS = 0.8
DEFAULT_LATENCY_JITTER_SECONDS = 0.4

HIGH_RISK_MARKERS = ("111", "dead")
MEDIUM_RISK_MARKERS = ("beef", "cafe")

_RECOMMENDATIONS: dict[RiskVerdict, tuple[str, ...]] = {
    RiskVerdict.MALICIOUS: (
        "❌ Do not interact with this token - high risk of loss",
        "🚨 Multiple red flags detected including potential honeypot mechanics",
        "📊 Extremely low liquidity and suspicious holder distribution",
    ),
    RiskVerdict.SUSPICIOUS: (
        "⚠️ Exercise extreme caution when interacting with this token",
        "🔍 Verify token legitimacy on multiple sources before trading",
        "💰 Consider limiting exposure to small test amounts only",
    ),
    RiskVerdict.SAFE: (
        "✅ Token appears legitimate based on current analysis",
        "📈 Monitor liquidity and holder count for changes",
        "🔄 Continue to verify on official sources before large transactions",
    ),
}
STRONG_COMMUNITY_RECOMMENDATION = "🌟 Strong community presence and social validation detected"
STRONG_COMMUNITY_MAX_SCORE = 30


def _to_int32(value: int) -> int:
    return ((value + 2**31) % 2**32) - 2**31


def string_hash(text: str) -> int:
    """Signed 32-bit ``hash * 31 + code_unit`` over UTF-16 code units."""
    data = text.encode("utf-16-le")
    h = 0
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        h = _to_int32(_to_int32(h << 5) - h + unit)
    return h


def mock_risk_score(token_address: str) -> int:
    """Deterministic 0-100 risk score for an address."""
    base = abs(string_hash(token_address)) % 100
    if any(marker in token_address for marker in HIGH_RISK_MARKERS):
        return min(100, base + 40)
    if any(marker in token_address for marker in MEDIUM_RISK_MARKERS):
        return min(80, base + 20)
    return base


def recommendations_for(risk_score: int, verdict: RiskVerdict) -> tuple[str, ...]:
    recs = _RECOMMENDATIONS[verdict]
    if risk_score < STRONG_COMMUNITY_MAX_SCORE:
        recs = (*recs, STRONG_COMMUNITY_RECOMMENDATION)
    return recs


class Deep3MockService:
    """Mock Deep3 analyzer.

    Example:
        ```python
        service = Deep3MockService(min_latency=0, latency_jitter=0)
        analysis = await service.analyze_token(mint)
        ```
    """

    def __init__(
        self,
        *,
        min_latency: float = DEFAULT_MIN_LATENCY_SECONDS,
        latency_jitter: float = DEFAULT_LATENCY_JITTER_SECONDS,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize the mock.

        Args:
            min_latency: Minimum simulated latency in seconds.
            latency_jitter: Extra random latency in seconds.
            rng: Random source for confidence, metadata and latency.
        """
        self.min_latency = min_latency
        self.latency_jitter = latency_jitter
        self._rng = rng or random.Random()

    async def analyze_token(self, token_address: str) -> Deep3Analysis:
        delay = self.min_latency + self._rng.random() * self.latency_jitter
        if delay > 0:
            await asyncio.sleep(delay)

        risk_score = mock_risk_score(token_address)
        verdict = verdict_for_score(risk_score)

        return Deep3Analysis(
            token_address=token_address,
            risk_score=risk_score,
            classification=verdict,
            confidence=75 + self._rng.randrange(20),
            metadata=self._metadata(risk_score),
            recommendations=recommendations_for(risk_score, verdict),
        )

    def _metadata(self, risk_score: int) -> dict[str, Any]:
        rng = self._rng
        return {
            "contract_age": rng.randrange(365),
            "holder_count": rng.randrange(50000) + 100,
            "liquidity_usd": rng.randrange(5000000) + 10000,
            "is_honeypot": risk_score > 80 and rng.random() > 0.5,
            "is_mintable": rng.random() > 0.6,
            "has_blacklist": rng.random() > 0.7,
            "rug_pull_risk": risk_score - 10 if risk_score > 60 else rng.randrange(40),
            "social_score": 100 - risk_score + rng.randrange(20) - 10,
        }
