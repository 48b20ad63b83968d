"""Tests for the rule-based token classifier."""

from __future__ import annotations

import pytest

from cath_guard.classifier import TokenClassifier, TokenInfo
from cath_guard.classifier.rules import USDC_ADDRESS, WRAPPED_SOL_ADDRESS
from cath_guard.exceptions import InvalidTokenError
from cath_guard.models import ThreatLevel, TokenClassification

PLAIN_ADDRESS = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"


@pytest.fixture
def classifier() -> TokenClassifier:
    return TokenClassifier()


class TestAllowlist:
    """Tests for allow-listed addresses."""

    def test_wrapped_sol_is_safe(self, classifier: TokenClassifier) -> None:
        """Wrapped SOL is always allowed with full confidence."""
        result = classifier.classify(TokenInfo(address=WRAPPED_SOL_ADDRESS))

        assert result.classification == TokenClassification.ALLOW
        assert result.threat_level == ThreatLevel.SAFE
        assert result.confidence == 100
        assert not result.is_blocked

    def test_allowlist_beats_spam_name(self, classifier: TokenClassifier) -> None:
        """Allowlist is checked before any other rule."""
        result = classifier.classify(
            TokenInfo(address=USDC_ADDRESS, name="Free Airdrop", symbol="SCAM")
        )

        assert result.classification == TokenClassification.ALLOW
        assert result.confidence == 100

    def test_custom_allowlist_replaces_default(self) -> None:
        """A custom allowlist replaces the built-in one."""
        classifier = TokenClassifier(allowlist=[PLAIN_ADDRESS])

        allowed = classifier.classify(TokenInfo(address=PLAIN_ADDRESS))
        other = classifier.classify(TokenInfo(address=WRAPPED_SOL_ADDRESS))

        assert allowed.confidence == 100
        assert other.confidence == 60


class TestSpamRules:
    """Tests for name and symbol rules."""

    def test_spam_name_blocks(self, classifier: TokenClassifier) -> None:
        """Name rule runs before the symbol rule."""
        result = classifier.classify(
            TokenInfo(address=PLAIN_ADDRESS, name="Free Airdrop SOL", symbol="SCAM")
        )

        assert result.classification == TokenClassification.BLOCK
        assert result.threat_level == ThreatLevel.BLOCKED
        assert result.confidence == 90
        assert "Free Airdrop SOL" in result.reason
        assert "name" in result.reason
        assert result.is_blocked

    @pytest.mark.parametrize("name", ["CLAIM NOW", "bonus token", "Mystery Box", "DoubleUp"])
    def test_name_match_is_case_insensitive(self, classifier: TokenClassifier, name: str) -> None:
        result = classifier.classify(TokenInfo(address=PLAIN_ADDRESS, name=name, symbol="TKN"))
        assert result.classification == TokenClassification.BLOCK

    def test_spam_symbol_blocks(self, classifier: TokenClassifier) -> None:
        result = classifier.classify(
            TokenInfo(address=PLAIN_ADDRESS, name="Honest Token", symbol="rugpull")
        )

        assert result.classification == TokenClassification.BLOCK
        assert result.confidence == 95
        assert "symbol" in result.reason


class TestAddressAndMetadataRules:
    """Tests for address prefix and missing metadata rules."""

    @pytest.mark.parametrize(
        "address",
        ["1111abcdefghijklmnop", "DEADbeefxyz", "beefCafe123"],
    )
    def test_scam_prefix_warns(self, classifier: TokenClassifier, address: str) -> None:
        result = classifier.classify(TokenInfo(address=address, name="Token", symbol="TKN"))

        assert result.classification == TokenClassification.WARN
        assert result.threat_level == ThreatLevel.SUSPICIOUS
        assert result.confidence == 70

    def test_prefix_only_checks_leading_characters(self, classifier: TokenClassifier) -> None:
        """Markers after the first four characters are ignored."""
        result = classifier.classify(
            TokenInfo(address="abcdead11111", name="Token", symbol="TKN")
        )
        assert result.classification == TokenClassification.ALLOW

    def test_missing_symbol_warns(self, classifier: TokenClassifier) -> None:
        result = classifier.classify(TokenInfo(address=PLAIN_ADDRESS, name="Token"))

        assert result.classification == TokenClassification.WARN
        assert result.confidence == 60

    def test_clean_token_allowed(self, classifier: TokenClassifier) -> None:
        result = classifier.classify(
            TokenInfo(address=PLAIN_ADDRESS, name="Bonk", symbol="BONK")
        )

        assert result.classification == TokenClassification.ALLOW
        assert result.threat_level == ThreatLevel.SAFE
        assert result.confidence == 75


class TestValidation:
    """Tests for invalid input."""

    @pytest.mark.parametrize("address", ["", "   "])
    def test_blank_address_raises(self, classifier: TokenClassifier, address: str) -> None:
        with pytest.raises(InvalidTokenError):
            classifier.classify(TokenInfo(address=address))

    def test_invalid_token_error_is_value_error(self, classifier: TokenClassifier) -> None:
        with pytest.raises(ValueError):
            classifier.classify(TokenInfo(address=""))

    def test_to_dict(self, classifier: TokenClassifier) -> None:
        result = classifier.classify(TokenInfo(address=WRAPPED_SOL_ADDRESS))
        assert result.to_dict() == {
            "classification": "allow",
            "threat_level": "safe",
            "reason": "Whitelisted token - verified legitimate",
            "confidence": 100,
        }
