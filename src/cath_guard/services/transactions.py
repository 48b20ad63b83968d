"""Transaction classification flow.

An incoming transfer is classified locally first. When the wallet's freshly
resolved tier unlocks Deep3, the external risk score is merged in; the
local-BLOCK guard is always applied last. The resulting transaction is
stored and broadcast.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from decimal import Decimal

import httpx

from cath_guard.analysis.models import Deep3Analysis, RiskAnalyzer
from cath_guard.classifier.merge import enforce_local_block, local_only, merge_with_deep3
from cath_guard.classifier.models import TokenInfo
from cath_guard.classifier.rules import TokenClassifier
from cath_guard.events.broadcaster import EventBroadcaster
from cath_guard.events.models import threat_detected_event, transaction_event
from cath_guard.exceptions import SupplierError
from cath_guard.metrics import (
    CLASSIFICATIONS_TOTAL,
    DEEP3_LATENCY,
    SUPPLIER_FAILURES_TOTAL,
)
from cath_guard.models import ThreatLevel, Transaction
from cath_guard.services.tiers import TierService
from cath_guard.storage.base import Repository
from cath_guard.tiers.resolver import features_for

logger = logging.getLogger(__name__)

UNKNOWN_TOKEN_NAME = "Unknown Token"
UNKNOWN_TOKEN_SYMBOL = "???"


@dataclass(frozen=True)
class IncomingTransfer:
    """A token transfer arriving at a wallet."""

    wallet_address: str
    token_address: str
    token_name: str | None = None
    token_symbol: str | None = None
    amount: Decimal = Decimal("0")


def _new_signature() -> str:
    return f"sig_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


class TransactionService:
    """Classifies, stores and broadcasts incoming transfers."""

    def __init__(
        self,
        repository: Repository,
        tiers: TierService,
        analyzer: RiskAnalyzer,
        *,
        classifier: TokenClassifier | None = None,
        broadcaster: EventBroadcaster | None = None,
    ) -> None:
        self._repository = repository
        self._tiers = tiers
        self._analyzer = analyzer
        self._classifier = classifier or TokenClassifier()
        self._broadcaster = broadcaster

    async def list_for_wallet(self, wallet_address: str) -> list[Transaction] | None:
        """Return a wallet's transactions newest first, or None if unknown."""
        wallet = await self._repository.get_wallet_by_address(wallet_address)
        if wallet is None:
            return None
        return await self._repository.get_transactions_by_wallet(wallet.id)

    async def process(self, transfer: IncomingTransfer) -> Transaction | None:
        """Classify and record an incoming transfer.

        Args:
            transfer: The incoming transfer.

        Returns:
            The stored transaction, or None if the wallet is unknown.

        Raises:
            InvalidTokenError: If the token address is missing.
        """
        wallet = await self._repository.get_wallet_by_address(transfer.wallet_address)
        if wallet is None:
            return None

        token = TokenInfo(
            address=transfer.token_address,
            name=transfer.token_name,
            symbol=transfer.token_symbol,
        )
        local = self._classifier.classify(token)
        final = local_only(local)
        analysis: Deep3Analysis | None = None

        resolved = await self._tiers.resolve(wallet)
        if features_for(resolved.tier).deep3_integration:
            analysis = await self._analyze(token.address)
            if analysis is not None:
                final = enforce_local_block(local, merge_with_deep3(local, analysis.risk_score))

        transaction = await self._repository.create_transaction(
            Transaction(
                wallet_id=wallet.id,
                signature=_new_signature(),
                token_address=token.address,
                token_name=transfer.token_name or UNKNOWN_TOKEN_NAME,
                token_symbol=transfer.token_symbol or UNKNOWN_TOKEN_SYMBOL,
                amount=transfer.amount,
                local_classification=local.classification,
                local_threat_level=local.threat_level,
                local_reason=local.reason,
                deep3_classification=analysis.classification.value if analysis else None,
                deep3_risk_score=analysis.risk_score if analysis else None,
                deep3_reason=analysis.reason if analysis else None,
                deep3_metadata=dict(analysis.metadata) if analysis else None,
                final_classification=final.classification,
                final_threat_level=final.threat_level,
                blocked=final.blocked,
            )
        )

        CLASSIFICATIONS_TOTAL.labels(
            classification=transaction.final_classification.value,
            threat_level=transaction.final_threat_level.value,
        ).inc()
        logger.info(
            f"Classified {token.address} for {wallet.address}: "
            f"{transaction.final_classification.value}/{transaction.final_threat_level.value}"
        )

        if self._broadcaster is not None:
            await self._broadcaster.publish(transaction_event(transaction))
            if transaction.final_threat_level != ThreatLevel.SAFE:
                await self._broadcaster.publish(threat_detected_event(transaction))

        return transaction

    async def _analyze(self, token_address: str) -> Deep3Analysis | None:
        started = time.monotonic()
        try:
            return await self._analyzer.analyze_token(token_address)
        except (SupplierError, httpx.HTTPError) as e:
            SUPPLIER_FAILURES_TOTAL.labels(supplier="deep3").inc()
            logger.warning(f"Deep3 analysis failed for {token_address}, using local verdict: {e}")
            return None
        finally:
            DEEP3_LATENCY.observe(time.monotonic() - started)
