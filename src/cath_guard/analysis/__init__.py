"""Analysis layer - second-opinion token risk scoring (Deep3)."""

from cath_guard.analysis.client import Deep3HttpClient
from cath_guard.analysis.mock import Deep3MockService, mock_risk_score, string_hash
from cath_guard.analysis.models import (
    Deep3Analysis,
    RiskAnalyzer,
    RiskVerdict,
    verdict_for_score,
)

__all__ = [
    "Deep3Analysis",
    "Deep3HttpClient",
    "Deep3MockService",
    "RiskAnalyzer",
    "RiskVerdict",
    "mock_risk_score",
    "string_hash",
    "verdict_for_score",
]
