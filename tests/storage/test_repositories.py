"""Repository contract tests run against the memory and SQLite backends."""

from __future__ import annotations

from collections.abc import AsyncIterator
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from pathlib import Path

import pytest

from cath_guard.models import (
    ArbitrageBot,
    BenefitType,
    BotPatch,
    BotStrategy,
    NftPass,
    PassPatch,
    PaymentStatus,
    ThreatLevel,
    TokenClassification,
    Transaction,
    UserTier,
    Wallet,
    WalletPatch,
)
from cath_guard.storage import (
    MemoryRepository,
    Repository,
    SqlRepository,
    create_engine,
    create_tables,
)

T0 = datetime(2025, 5, 1, 12, 0, tzinfo=UTC)


@pytest.fixture(params=["memory", "sqlite"])
async def repository(request: pytest.FixtureRequest, tmp_path: Path) -> AsyncIterator[Repository]:
    if request.param == "memory":
        yield MemoryRepository()
        return

    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'cath_guard.db'}")
    await create_tables(engine)
    yield SqlRepository.from_engine(engine)
    await engine.dispose()


def make_transaction(wallet_id: str, timestamp: datetime, **overrides: object) -> Transaction:
    fields: dict[str, object] = {
        "wallet_id": wallet_id,
        "signature": f"sig-{timestamp.isoformat()}",
        "token_address": "Mint1",
        "local_classification": TokenClassification.ALLOW,
        "local_threat_level": ThreatLevel.SAFE,
        "final_classification": TokenClassification.ALLOW,
        "final_threat_level": ThreatLevel.SAFE,
        "blocked": False,
        "amount": Decimal("1.5"),
        "timestamp": timestamp,
    }
    fields.update(overrides)
    return Transaction(**fields)  # type: ignore[arg-type]


def make_bot(wallet_id: str, created_at: datetime, **overrides: object) -> ArbitrageBot:
    fields: dict[str, object] = {
        "wallet_id": wallet_id,
        "bot_name": "Arb",
        "wallet_address": "addr",
        "strategy": BotStrategy.DEX_ARBITRAGE,
        "created_at": created_at,
    }
    fields.update(overrides)
    return ArbitrageBot(**fields)  # type: ignore[arg-type]


class TestWallets:
    """Tests for wallet storage."""

    async def test_create_and_get(self, repository: Repository) -> None:
        wallet = await repository.create_wallet(
            Wallet(address="addr-1", token_balance=Decimal("42.5"), connected_at=T0)
        )

        by_id = await repository.get_wallet(wallet.id)
        by_address = await repository.get_wallet_by_address("addr-1")

        assert by_id is not None
        assert by_id.id == wallet.id
        assert by_id.token_balance == Decimal("42.5")
        assert by_id.connected_at == T0
        assert by_address is not None
        assert by_address.id == wallet.id

    async def test_missing_wallet(self, repository: Repository) -> None:
        assert await repository.get_wallet("nope") is None
        assert await repository.get_wallet_by_address("nope") is None
        assert await repository.update_wallet("nope", WalletPatch(nickname="x")) is None
        assert await repository.delete_wallet("nope") is False

    async def test_patch_updates_only_set_fields(self, repository: Repository) -> None:
        wallet = await repository.create_wallet(Wallet(address="addr", nickname="Old"))

        updated = await repository.update_wallet(
            wallet.id, WalletPatch(tier=UserTier.PRO, nickname=None)
        )

        assert updated is not None
        assert updated.tier == UserTier.PRO
        assert updated.nickname is None
        assert updated.address == "addr"

        stored = await repository.get_wallet(wallet.id)
        assert stored is not None
        assert stored.tier == UserTier.PRO
        assert stored.nickname is None

    async def test_delete_cascades(self, repository: Repository) -> None:
        wallet = await repository.create_wallet(Wallet(address="addr"))
        txn = await repository.create_transaction(make_transaction(wallet.id, T0))
        bot = await repository.create_bot(make_bot(wallet.id, T0))
        nft_pass = await repository.create_pass(
            NftPass(wallet_id=wallet.id, benefit_type=BenefitType.FEE_WAIVER)
        )

        assert await repository.delete_wallet(wallet.id) is True

        assert await repository.get_wallet(wallet.id) is None
        assert await repository.get_transaction(txn.id) is None
        assert await repository.get_bot(bot.id) is None
        assert await repository.get_pass(nft_pass.id) is None


class TestTransactions:
    """Tests for transaction storage."""

    async def test_newest_first(self, repository: Repository) -> None:
        wallet = await repository.create_wallet(Wallet(address="addr"))
        older = await repository.create_transaction(make_transaction(wallet.id, T0))
        newer = await repository.create_transaction(
            make_transaction(wallet.id, T0 + timedelta(minutes=5))
        )
        await repository.create_transaction(make_transaction("other-wallet", T0))

        transactions = await repository.get_transactions_by_wallet(wallet.id)

        assert [t.id for t in transactions] == [newer.id, older.id]

    async def test_round_trip_fields(self, repository: Repository) -> None:
        wallet = await repository.create_wallet(Wallet(address="addr"))
        created = await repository.create_transaction(
            make_transaction(
                wallet.id,
                T0,
                final_classification=TokenClassification.WARN,
                final_threat_level=ThreatLevel.DANGER,
                deep3_risk_score=82,
                deep3_metadata={"holder_count": 10},
                local_reason="No suspicious patterns detected",
            )
        )

        stored = await repository.get_transaction(created.id)

        assert stored is not None
        assert stored.final_threat_level == ThreatLevel.DANGER
        assert stored.deep3_risk_score == 82
        assert stored.deep3_metadata == {"holder_count": 10}
        assert stored.amount == Decimal("1.5")
        assert stored.timestamp == T0


class TestBots:
    """Tests for bot storage."""

    async def test_list_by_wallet_in_creation_order(self, repository: Repository) -> None:
        first = await repository.create_bot(make_bot("w1", T0))
        second = await repository.create_bot(make_bot("w1", T0 + timedelta(seconds=1)))
        other = await repository.create_bot(make_bot("w2", T0))

        assert [b.id for b in await repository.get_bots_by_wallet("w1")] == [first.id, second.id]
        assert {b.id for b in await repository.get_all_bots()} == {first.id, second.id, other.id}

    async def test_update_and_delete(self, repository: Repository) -> None:
        bot = await repository.create_bot(
            make_bot("w1", T0, target_pairs=("SOL/USDC",), auto_pause_config={"enabled": True})
        )

        updated = await repository.update_bot(
            bot.id,
            BotPatch(
                active=True,
                payment_status=PaymentStatus.FAILED,
                dex_allowlist=("orca",),
                inactive_since=None,
            ),
        )

        assert updated is not None
        assert updated.active is True
        assert updated.payment_status == PaymentStatus.FAILED
        assert updated.dex_allowlist == ("orca",)
        assert updated.target_pairs == ("SOL/USDC",)
        assert updated.auto_pause_config == {"enabled": True}

        assert await repository.delete_bot(bot.id) is True
        assert await repository.delete_bot(bot.id) is False
        assert await repository.update_bot(bot.id, BotPatch(active=False)) is None


class TestPasses:
    """Tests for NFT pass storage."""

    async def test_active_filter(self, repository: Repository) -> None:
        active = await repository.create_pass(
            NftPass(
                wallet_id="w1",
                benefit_type=BenefitType.TIER_UPGRADE,
                tier_upgrade=UserTier.PRO_PLUS,
                expires_at=T0 + timedelta(days=30),
            )
        )
        await repository.create_pass(
            NftPass(wallet_id="w1", benefit_type=BenefitType.FEE_WAIVER, is_active=False)
        )

        passes = await repository.get_passes_by_wallet("w1")
        active_passes = await repository.get_active_passes("w1")

        assert len(passes) == 2
        assert [p.id for p in active_passes] == [active.id]
        assert active_passes[0].tier_upgrade == UserTier.PRO_PLUS
        assert active_passes[0].expires_at == T0 + timedelta(days=30)

    async def test_update_pass(self, repository: Repository) -> None:
        nft_pass = await repository.create_pass(
            NftPass(wallet_id="w1", benefit_type=BenefitType.FREE_BOT_SLOT, free_bot_slots=1)
        )

        updated = await repository.update_pass(
            nft_pass.id, PassPatch(is_active=False, free_bot_slots=2)
        )

        assert updated is not None
        assert updated.is_active is False
        assert updated.free_bot_slots == 2
        assert await repository.get_active_passes("w1") == []
        assert await repository.update_pass("nope", PassPatch(is_active=True)) is None
