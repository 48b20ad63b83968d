"""CA-first (contract analysis) local token classifier.

Rules are evaluated in a fixed order and the first match wins:

    1. allow-listed address          -> ALLOW / SAFE       (100)
    2. spam keyword in token name    -> BLOCK / BLOCKED    (90)
    3. scam keyword in token symbol  -> BLOCK / BLOCKED    (95)
    4. scam prefix in address        -> WARN / SUSPICIOUS  (70)
    5. missing name or symbol        -> WARN / SUSPICIOUS  (60)
    6. otherwise                     -> ALLOW / SAFE       (75)
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from cath_guard.classifier.models import ClassificationResult, TokenInfo
from cath_guard.exceptions import InvalidTokenError
from cath_guard.models import ThreatLevel, TokenClassification


WRAPPED_SOL_ADDRESS = "So11111111111111111111111111111111111111112"
USDC_ADDRESS = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"

DEFAULT_ALLOWLIST = frozenset({WRAPPED_SOL_ADDRESS, USDC_ADDRESS})

SUSPICIOUS_NAME_PATTERN = re.compile(
    r"free|airdrop|claim|bonus|reward|giveaway|double|mystery", re.IGNORECASE
)
SUSPICIOUS_SYMBOL_PATTERN = re.compile(r"xxx|scam|rug|fake", re.IGNORECASE)
KNOWN_SCAM_PREFIXES: tuple[str, ...] = ("1111", "dead", "beef")

# Number of leading address characters inspected for scam prefixes
ADDRESS_PREFIX_LENGTH = 4


class TokenClassifier:
    """Deterministic rule-based token classifier.

    Example:
        ```python
        classifier = TokenClassifier()
        result = classifier.classify(TokenInfo(address=mint, name="Free SOL"))
        if result.is_blocked:
            ...
        ```
    """

    def __init__(
        self,
        *,
        allowlist: Iterable[str] | None = None,
        scam_prefixes: Iterable[str] | None = None,
    ) -> None:
        """Initialize the classifier.

        Args:
            allowlist: Token addresses that are always allowed.
            scam_prefixes: Address prefixes that mark a token as suspicious.
        """
        self._allowlist = frozenset(allowlist) if allowlist is not None else DEFAULT_ALLOWLIST
        self._scam_prefixes = (
            tuple(scam_prefixes) if scam_prefixes is not None else KNOWN_SCAM_PREFIXES
        )

    def classify(self, token: TokenInfo) -> ClassificationResult:
        """Classify a token from its metadata.

        Args:
            token: Token address plus optional name and symbol.

        Returns:
            ClassificationResult from the first matching rule.

        Raises:
            InvalidTokenError: If the token address is missing or blank.
        """
        if not token.address or not token.address.strip():
            raise InvalidTokenError("Token address is required for classification")

        if token.address in self._allowlist:
            return ClassificationResult(
                classification=TokenClassification.ALLOW,
                threat_level=ThreatLevel.SAFE,
                reason="Whitelisted token - verified legitimate",
                confidence=100,
            )

        if token.name and SUSPICIOUS_NAME_PATTERN.search(token.name):
            return ClassificationResult(
                classification=TokenClassification.BLOCK,
                threat_level=ThreatLevel.BLOCKED,
                reason=f'Spam detected: Token name "{token.name}" matches known scam patterns',
                confidence=90,
            )

        if token.symbol and SUSPICIOUS_SYMBOL_PATTERN.search(token.symbol):
            return ClassificationResult(
                classification=TokenClassification.BLOCK,
                threat_level=ThreatLevel.BLOCKED,
                reason=(
                    f'Spam detected: Token symbol "{token.symbol}" matches known scam patterns'
                ),
                confidence=95,
            )

        address_prefix = token.address[:ADDRESS_PREFIX_LENGTH].lower()
        if any(prefix in address_prefix for prefix in self._scam_prefixes):
            return ClassificationResult(
                classification=TokenClassification.WARN,
                threat_level=ThreatLevel.SUSPICIOUS,
                reason="Address matches known scam pattern prefix",
                confidence=70,
            )

        if not token.name or not token.symbol:
            return ClassificationResult(
                classification=TokenClassification.WARN,
                threat_level=ThreatLevel.SUSPICIOUS,
                reason="Incomplete token metadata - exercise caution",
                confidence=60,
            )

        return ClassificationResult(
            classification=TokenClassification.ALLOW,
            threat_level=ThreatLevel.SAFE,
            reason="No suspicious patterns detected",
            confidence=75,
        )
