"""Threat classification layer - local rules plus Deep3 escalation."""

from cath_guard.classifier.merge import enforce_local_block, local_only, merge_with_deep3
from cath_guard.classifier.models import (
    ClassificationResult,
    MergedClassification,
    TokenInfo,
)
from cath_guard.classifier.rules import TokenClassifier

__all__ = [
    "ClassificationResult",
    "MergedClassification",
    "TokenClassifier",
    "TokenInfo",
    "enforce_local_block",
    "local_only",
    "merge_with_deep3",
]
