"""SQLAlchemy-backed repository.

Each operation runs in its own session and transaction obtained from an
``async_sessionmaker``. Rows are converted to the frozen domain entities on
the way out, so callers never hold ORM objects.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from cath_guard.models import (
    ArbitrageBot,
    BaseFeeStatus,
    BenefitType,
    BotPatch,
    BotStrategy,
    NftPass,
    PaidTier,
    PassPatch,
    PaymentCurrency,
    PaymentStatus,
    SubscriptionStatus,
    ThreatLevel,
    TokenClassification,
    Transaction,
    UserTier,
    Wallet,
    WalletPatch,
)
from cath_guard.storage.models import (
    ArbitrageBotModel,
    Base,
    NftPassModel,
    TransactionModel,
    WalletModel,
)

logger = logging.getLogger(__name__)


def _aware(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes (SQLite drops tzinfo)."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _column_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, tuple):
        return list(value)
    return value


def _patch_row(row: Base, changes: dict[str, Any]) -> None:
    for name, value in changes.items():
        setattr(row, name, _column_value(value))


# ----------------------------------------------------------------------
# Row <-> entity conversion
# ----------------------------------------------------------------------


def wallet_from_model(model: WalletModel) -> Wallet:
    """Create a Wallet from its SQLAlchemy row."""
    return Wallet(
        id=model.id,
        address=model.address,
        tier=UserTier(model.tier),
        nickname=model.nickname,
        solana_name=model.solana_name,
        token_balance=model.token_balance,
        token_value_in_sol=model.token_value_in_sol,
        paid_tier=PaidTier(model.paid_tier),
        paid_tier_status=SubscriptionStatus(model.paid_tier_status),
        paid_tier_next_due=_aware(model.paid_tier_next_due),
        base_fee_status=BaseFeeStatus(model.base_fee_status),
        base_fee_waived_reason=model.base_fee_waived_reason,
        base_fee_next_due=_aware(model.base_fee_next_due),
        has_app_purchase=model.has_app_purchase,
        payment_currency=PaymentCurrency(model.payment_currency),
        connected_at=_aware(model.connected_at),
    )


def wallet_to_model(wallet: Wallet) -> WalletModel:
    return WalletModel(
        id=wallet.id,
        address=wallet.address,
        tier=wallet.tier.value,
        nickname=wallet.nickname,
        solana_name=wallet.solana_name,
        token_balance=wallet.token_balance,
        token_value_in_sol=wallet.token_value_in_sol,
        paid_tier=wallet.paid_tier.value,
        paid_tier_status=wallet.paid_tier_status.value,
        paid_tier_next_due=wallet.paid_tier_next_due,
        base_fee_status=wallet.base_fee_status.value,
        base_fee_waived_reason=wallet.base_fee_waived_reason,
        base_fee_next_due=wallet.base_fee_next_due,
        has_app_purchase=wallet.has_app_purchase,
        payment_currency=wallet.payment_currency.value,
        connected_at=wallet.connected_at,
    )


def transaction_from_model(model: TransactionModel) -> Transaction:
    """Create a Transaction from its SQLAlchemy row."""
    return Transaction(
        id=model.id,
        wallet_id=model.wallet_id,
        signature=model.signature,
        token_address=model.token_address,
        token_name=model.token_name,
        token_symbol=model.token_symbol,
        amount=model.amount,
        timestamp=_aware(model.timestamp),
        local_classification=TokenClassification(model.local_classification),
        local_threat_level=ThreatLevel(model.local_threat_level),
        local_reason=model.local_reason,
        deep3_classification=model.deep3_classification,
        deep3_risk_score=model.deep3_risk_score,
        deep3_reason=model.deep3_reason,
        deep3_metadata=model.deep3_metadata,
        final_classification=TokenClassification(model.final_classification),
        final_threat_level=ThreatLevel(model.final_threat_level),
        blocked=model.blocked,
    )


def transaction_to_model(transaction: Transaction) -> TransactionModel:
    return TransactionModel(
        id=transaction.id,
        wallet_id=transaction.wallet_id,
        signature=transaction.signature,
        token_address=transaction.token_address,
        token_name=transaction.token_name,
        token_symbol=transaction.token_symbol,
        amount=transaction.amount,
        timestamp=transaction.timestamp,
        local_classification=transaction.local_classification.value,
        local_threat_level=transaction.local_threat_level.value,
        local_reason=transaction.local_reason,
        deep3_classification=transaction.deep3_classification,
        deep3_risk_score=transaction.deep3_risk_score,
        deep3_reason=transaction.deep3_reason,
        deep3_metadata=transaction.deep3_metadata,
        final_classification=transaction.final_classification.value,
        final_threat_level=transaction.final_threat_level.value,
        blocked=transaction.blocked,
    )


def bot_from_model(model: ArbitrageBotModel) -> ArbitrageBot:
    """Create an ArbitrageBot from its SQLAlchemy row."""
    return ArbitrageBot(
        id=model.id,
        wallet_id=model.wallet_id,
        bot_name=model.bot_name,
        wallet_address=model.wallet_address,
        strategy=BotStrategy(model.strategy),
        active=model.active,
        min_profit_threshold=model.min_profit_threshold,
        max_risk_score=model.max_risk_score,
        max_trade_size=model.max_trade_size,
        slippage_tolerance=model.slippage_tolerance,
        target_pairs=tuple(model.target_pairs),
        dex_allowlist=tuple(model.dex_allowlist),
        auto_pause_config=model.auto_pause_config,
        payment_status=PaymentStatus(model.payment_status),
        is_included_bot=model.is_included_bot,
        inactive_since=_aware(model.inactive_since),
        next_payment_due=_aware(model.next_payment_due),
        created_at=_aware(model.created_at),
    )


def bot_to_model(bot: ArbitrageBot) -> ArbitrageBotModel:
    return ArbitrageBotModel(
        id=bot.id,
        wallet_id=bot.wallet_id,
        bot_name=bot.bot_name,
        wallet_address=bot.wallet_address,
        strategy=bot.strategy.value,
        active=bot.active,
        min_profit_threshold=bot.min_profit_threshold,
        max_risk_score=bot.max_risk_score,
        max_trade_size=bot.max_trade_size,
        slippage_tolerance=bot.slippage_tolerance,
        target_pairs=list(bot.target_pairs),
        dex_allowlist=list(bot.dex_allowlist),
        auto_pause_config=bot.auto_pause_config,
        payment_status=bot.payment_status.value,
        is_included_bot=bot.is_included_bot,
        inactive_since=bot.inactive_since,
        next_payment_due=bot.next_payment_due,
        created_at=bot.created_at,
    )


def pass_from_model(model: NftPassModel) -> NftPass:
    """Create an NftPass from its SQLAlchemy row."""
    return NftPass(
        id=model.id,
        wallet_id=model.wallet_id,
        pass_name=model.pass_name,
        mint_address=model.mint_address,
        benefit_type=BenefitType(model.benefit_type),
        is_active=model.is_active,
        expires_at=_aware(model.expires_at),
        tier_upgrade=UserTier(model.tier_upgrade) if model.tier_upgrade else None,
        free_bot_slots=model.free_bot_slots,
        created_at=_aware(model.created_at),
    )


def pass_to_model(nft_pass: NftPass) -> NftPassModel:
    return NftPassModel(
        id=nft_pass.id,
        wallet_id=nft_pass.wallet_id,
        pass_name=nft_pass.pass_name,
        mint_address=nft_pass.mint_address,
        benefit_type=nft_pass.benefit_type.value,
        is_active=nft_pass.is_active,
        expires_at=nft_pass.expires_at,
        tier_upgrade=nft_pass.tier_upgrade.value if nft_pass.tier_upgrade else None,
        free_bot_slots=nft_pass.free_bot_slots,
        created_at=nft_pass.created_at,
    )


# ----------------------------------------------------------------------
# Engine helpers
# ----------------------------------------------------------------------


def create_engine(database_url: str, *, echo: bool = False) -> AsyncEngine:
    """Create an async engine for ``database_url``."""
    return create_async_engine(database_url, echo=echo)


async def create_tables(engine: AsyncEngine) -> None:
    """Create all tables that do not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


class SqlRepository:
    """Repository implementation over SQLAlchemy 2.0 async sessions.

    Example:
        ```python
        engine = create_engine("sqlite+aiosqlite:///:memory:")
        await create_tables(engine)
        repo = SqlRepository(async_sessionmaker(engine, expire_on_commit=False))
        wallet = await repo.create_wallet(Wallet(address="..."))
        ```
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Initialize repository with a session factory.

        Args:
            session_factory: Factory producing SQLAlchemy async sessions.
        """
        self._session_factory = session_factory

    @classmethod
    def from_engine(cls, engine: AsyncEngine) -> SqlRepository:
        return cls(async_sessionmaker(engine, expire_on_commit=False))

    # ------------------------------------------------------------------
    # Wallets
    # ------------------------------------------------------------------

    async def get_wallet(self, wallet_id: str) -> Wallet | None:
        async with self._session_factory() as session:
            model = await session.get(WalletModel, wallet_id)
            return wallet_from_model(model) if model else None

    async def get_wallet_by_address(self, address: str) -> Wallet | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(WalletModel).where(WalletModel.address == address)
            )
            model = result.scalar_one_or_none()
            return wallet_from_model(model) if model else None

    async def create_wallet(self, wallet: Wallet) -> Wallet:
        async with self._session_factory() as session, session.begin():
            session.add(wallet_to_model(wallet))
        return wallet

    async def update_wallet(self, wallet_id: str, patch: WalletPatch) -> Wallet | None:
        async with self._session_factory() as session, session.begin():
            model = await session.get(WalletModel, wallet_id)
            if model is None:
                return None
            _patch_row(model, patch.changes())
            await session.flush()
            return wallet_from_model(model)

    async def delete_wallet(self, wallet_id: str) -> bool:
        """Delete a wallet together with everything it owns."""
        async with self._session_factory() as session, session.begin():
            for child in (TransactionModel, ArbitrageBotModel, NftPassModel):
                await session.execute(delete(child).where(child.wallet_id == wallet_id))
            result = await session.execute(delete(WalletModel).where(WalletModel.id == wallet_id))
            return result.rowcount > 0

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def get_transaction(self, transaction_id: str) -> Transaction | None:
        async with self._session_factory() as session:
            model = await session.get(TransactionModel, transaction_id)
            return transaction_from_model(model) if model else None

    async def get_transactions_by_wallet(self, wallet_id: str) -> list[Transaction]:
        """Return a wallet's transactions, newest first."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(TransactionModel)
                .where(TransactionModel.wallet_id == wallet_id)
                .order_by(TransactionModel.timestamp.desc())
            )
            return [transaction_from_model(m) for m in result.scalars().all()]

    async def create_transaction(self, transaction: Transaction) -> Transaction:
        async with self._session_factory() as session, session.begin():
            session.add(transaction_to_model(transaction))
        return transaction

    # ------------------------------------------------------------------
    # Arbitrage bots
    # ------------------------------------------------------------------

    async def get_bot(self, bot_id: str) -> ArbitrageBot | None:
        async with self._session_factory() as session:
            model = await session.get(ArbitrageBotModel, bot_id)
            return bot_from_model(model) if model else None

    async def get_bots_by_wallet(self, wallet_id: str) -> list[ArbitrageBot]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(ArbitrageBotModel)
                .where(ArbitrageBotModel.wallet_id == wallet_id)
                .order_by(ArbitrageBotModel.created_at.asc())
            )
            return [bot_from_model(m) for m in result.scalars().all()]

    async def get_all_bots(self) -> list[ArbitrageBot]:
        async with self._session_factory() as session:
            result = await session.execute(select(ArbitrageBotModel))
            return [bot_from_model(m) for m in result.scalars().all()]

    async def create_bot(self, bot: ArbitrageBot) -> ArbitrageBot:
        async with self._session_factory() as session, session.begin():
            session.add(bot_to_model(bot))
        return bot

    async def update_bot(self, bot_id: str, patch: BotPatch) -> ArbitrageBot | None:
        async with self._session_factory() as session, session.begin():
            model = await session.get(ArbitrageBotModel, bot_id)
            if model is None:
                return None
            _patch_row(model, patch.changes())
            await session.flush()
            return bot_from_model(model)

    async def delete_bot(self, bot_id: str) -> bool:
        async with self._session_factory() as session, session.begin():
            result = await session.execute(
                delete(ArbitrageBotModel).where(ArbitrageBotModel.id == bot_id)
            )
            return result.rowcount > 0

    # ------------------------------------------------------------------
    # NFT passes
    # ------------------------------------------------------------------

    async def get_pass(self, pass_id: str) -> NftPass | None:
        async with self._session_factory() as session:
            model = await session.get(NftPassModel, pass_id)
            return pass_from_model(model) if model else None

    async def get_passes_by_wallet(self, wallet_id: str) -> list[NftPass]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(NftPassModel).where(NftPassModel.wallet_id == wallet_id)
            )
            return [pass_from_model(m) for m in result.scalars().all()]

    async def get_active_passes(self, wallet_id: str) -> list[NftPass]:
        """Return passes flagged active. Expiry is checked by callers."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(NftPassModel).where(
                    NftPassModel.wallet_id == wallet_id,
                    NftPassModel.is_active.is_(True),
                )
            )
            return [pass_from_model(m) for m in result.scalars().all()]

    async def create_pass(self, nft_pass: NftPass) -> NftPass:
        async with self._session_factory() as session, session.begin():
            session.add(pass_to_model(nft_pass))
        return nft_pass

    async def update_pass(self, pass_id: str, patch: PassPatch) -> NftPass | None:
        async with self._session_factory() as session, session.begin():
            model = await session.get(NftPassModel, pass_id)
            if model is None:
                return None
            _patch_row(model, patch.changes())
            await session.flush()
            return pass_from_model(model)
