"""Deep3 merge policy.

A local BLOCK always wins. The external risk score can only raise severity:

    local BLOCK                         -> BLOCK / BLOCKED
    risk_score >= 70                    -> WARN / DANGER
    risk_score >= 40 and local SAFE     -> WARN / SUSPICIOUS
    otherwise                           -> local verdict unchanged
"""

from __future__ import annotations

from cath_guard.classifier.models import ClassificationResult, MergedClassification
from cath_guard.models import ThreatLevel, TokenClassification

DANGER_RISK_SCORE = 70
SUSPICIOUS_RISK_SCORE = 40


def merge_with_deep3(local: ClassificationResult, risk_score: int) -> MergedClassification:
    """Combine a local verdict with an external risk score.

    Args:
        local: Result of the local classifier.
        risk_score: External risk score (0 to 100).

    Returns:
        MergedClassification that is never less severe than ``local``.

    Raises:
        ValueError: If ``risk_score`` is outside 0-100.
    """
    if local.classification == TokenClassification.BLOCK:
        return MergedClassification(
            classification=TokenClassification.BLOCK,
            threat_level=ThreatLevel.BLOCKED,
        )

    if not 0 <= risk_score <= 100:
        raise ValueError(f"risk_score must be between 0 and 100, got {risk_score}")

    if risk_score >= DANGER_RISK_SCORE:
        return MergedClassification(
            classification=TokenClassification.WARN,
            threat_level=ThreatLevel.DANGER,
        )

    if risk_score >= SUSPICIOUS_RISK_SCORE and local.threat_level == ThreatLevel.SAFE:
        return MergedClassification(
            classification=TokenClassification.WARN,
            threat_level=ThreatLevel.SUSPICIOUS,
        )

    return MergedClassification(
        classification=local.classification,
        threat_level=local.threat_level,
    )


def enforce_local_block(
    local: ClassificationResult, merged: MergedClassification
) -> MergedClassification:
    """Final guard applied by callers after merging: local BLOCK wins."""
    if local.is_blocked:
        return MergedClassification(
            classification=TokenClassification.BLOCK,
            threat_level=ThreatLevel.BLOCKED,
        )
    return merged


def local_only(local: ClassificationResult) -> MergedClassification:
    """Final verdict when no external score is available."""
    return enforce_local_block(
        local,
        MergedClassification(
            classification=local.classification,
            threat_level=local.threat_level,
        ),
    )
