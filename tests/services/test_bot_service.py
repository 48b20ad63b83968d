"""Tests for arbitrage bot management."""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from cath_guard.events import EventType
from cath_guard.exceptions import BotLimitError, TierRequiredError
from cath_guard.models import (
    BenefitType,
    BotPatch,
    BotStrategy,
    NftPass,
    PaymentStatus,
    Wallet,
)
from cath_guard.pricing import StaticPriceSupplier
from cath_guard.services import BotConfig, BotService, TierService
from cath_guard.storage import MemoryRepository

NOW = datetime(2025, 3, 15, 10, 0, tzinfo=UTC)
PRO_PLUS_BALANCE = Decimal("150")


@pytest.fixture
def repository() -> MemoryRepository:
    return MemoryRepository()


@pytest.fixture
def broadcaster() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def service(repository: MemoryRepository, broadcaster: AsyncMock) -> BotService:
    tiers = TierService(repository, StaticPriceSupplier())
    return BotService(
        repository, tiers, broadcaster=broadcaster, max_bots_per_wallet=4, clock=lambda: NOW
    )


@pytest.fixture
async def wallet(repository: MemoryRepository) -> Wallet:
    return await repository.create_wallet(
        Wallet(address="pro-plus", token_balance=PRO_PLUS_BALANCE)
    )


def config(name: str = "Arb") -> BotConfig:
    return BotConfig(bot_name=name, strategy=BotStrategy.DEX_ARBITRAGE)


class TestCreate:
    """Tests for bot creation."""

    async def test_unknown_wallet(self, service: BotService) -> None:
        assert await service.create("missing", config()) is None

    async def test_requires_pro_plus(
        self, repository: MemoryRepository, service: BotService
    ) -> None:
        wallet = await repository.create_wallet(
            Wallet(address="pro", token_balance=Decimal("60"))
        )

        with pytest.raises(TierRequiredError) as exc_info:
            await service.create(wallet.id, config())

        assert exc_info.value.required == "pro_plus"
        assert exc_info.value.actual == "pro"

    async def test_first_bots_included(self, service: BotService, wallet: Wallet) -> None:
        bot = await service.create(wallet.id, config())

        assert bot is not None
        assert bot.active is False
        assert bot.is_included_bot is True
        assert bot.payment_status == PaymentStatus.WAIVED
        assert bot.next_payment_due is None
        assert bot.inactive_since == NOW
        assert bot.wallet_address == "pro-plus"

    async def test_third_bot_pays_from_next_month(
        self, service: BotService, wallet: Wallet
    ) -> None:
        await service.create(wallet.id, config("one"))
        await service.create(wallet.id, config("two"))

        third = await service.create(wallet.id, config("three"))

        assert third is not None
        assert third.is_included_bot is False
        assert third.payment_status == PaymentStatus.CURRENT
        assert third.next_payment_due == datetime(2025, 4, 1, tzinfo=UTC)

    async def test_free_slot_pass_extends_included(
        self, repository: MemoryRepository, service: BotService, wallet: Wallet
    ) -> None:
        await repository.create_pass(
            NftPass(wallet_id=wallet.id, benefit_type=BenefitType.FREE_BOT_SLOT, free_bot_slots=1)
        )
        for name in ("one", "two"):
            await service.create(wallet.id, config(name))

        third = await service.create(wallet.id, config("three"))

        assert third is not None
        assert third.is_included_bot is True

    async def test_bot_limit(self, service: BotService, wallet: Wallet) -> None:
        for index in range(4):
            await service.create(wallet.id, config(f"bot-{index}"))

        with pytest.raises(BotLimitError, match="Maximum 4 bots"):
            await service.create(wallet.id, config("extra"))


class TestListForWallet:
    """Tests for listing bots."""

    async def test_unknown_wallet(self, service: BotService) -> None:
        assert await service.list_for_wallet("missing") is None

    async def test_lower_tier_sees_empty_list(
        self, repository: MemoryRepository, service: BotService
    ) -> None:
        await repository.create_wallet(Wallet(address="basic"))
        assert await service.list_for_wallet("basic") == []

    async def test_lists_in_creation_order(self, service: BotService, wallet: Wallet) -> None:
        first = await service.create(wallet.id, config("one"))
        second = await service.create(wallet.id, config("two"))

        bots = await service.list_for_wallet(wallet.address)

        assert bots is not None
        assert first is not None and second is not None
        assert [b.id for b in bots] == [first.id, second.id]


class TestUpdate:
    """Tests for bot updates."""

    async def test_activation_clears_inactive_since(
        self, service: BotService, wallet: Wallet, broadcaster: AsyncMock
    ) -> None:
        bot = await service.create(wallet.id, config())
        assert bot is not None

        updated = await service.update(bot.id, BotPatch(active=True))

        assert updated is not None
        assert updated.active is True
        assert updated.inactive_since is None
        event = broadcaster.publish.await_args.args[0]
        assert event.type == EventType.BOT_UPDATE

    async def test_deactivation_stamps_inactive_since(
        self, repository: MemoryRepository, service: BotService, wallet: Wallet
    ) -> None:
        bot = await service.create(wallet.id, config())
        assert bot is not None
        await repository.update_bot(bot.id, BotPatch(active=True, inactive_since=None))

        updated = await service.update(bot.id, BotPatch(active=False))

        assert updated is not None
        assert updated.inactive_since == NOW

    async def test_unknown_bot(self, service: BotService) -> None:
        assert await service.update("missing", BotPatch(active=True)) is None

    async def test_delete(self, service: BotService, wallet: Wallet) -> None:
        bot = await service.create(wallet.id, config())
        assert bot is not None

        assert await service.delete(bot.id) is True
        assert await service.delete(bot.id) is False


class TestBilling:
    """Tests for payment summaries and fee quotes."""

    async def test_payment_summary(self, service: BotService, wallet: Wallet) -> None:
        for name in ("one", "two", "three"):
            bot = await service.create(wallet.id, config(name))
            assert bot is not None
            await service.update(bot.id, BotPatch(active=True))

        summary = await service.payment_summary(wallet.id)

        assert summary is not None
        assert summary.total_bots == 3
        assert summary.additional_bots == 1
        assert summary.monthly_cost_sol == Decimal("0.0009")

    async def test_payment_summary_unknown_wallet(self, service: BotService) -> None:
        assert await service.payment_summary("missing") is None

    async def test_transaction_fee(
        self, repository: MemoryRepository, service: BotService, wallet: Wallet
    ) -> None:
        assert await service.transaction_fee(wallet.id, Decimal("10")) == Decimal("0.05")

        await repository.create_pass(
            NftPass(wallet_id=wallet.id, benefit_type=BenefitType.FEE_WAIVER)
        )
        assert await service.transaction_fee(wallet.id, Decimal("10")) == Decimal("0")

    async def test_transaction_fee_unknown_wallet(self, service: BotService) -> None:
        assert await service.transaction_fee("missing", Decimal("1")) is None
