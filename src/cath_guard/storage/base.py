"""Repository protocol shared by all storage backends."""

from __future__ import annotations

from typing import Protocol

from cath_guard.models import (
    ArbitrageBot,
    BotPatch,
    NftPass,
    PassPatch,
    Transaction,
    Wallet,
    WalletPatch,
)


class Repository(Protocol):
    """Storage for wallets and their transactions, bots and passes.

    Lookups return ``None`` when nothing matches. Updates return the stored
    entity after the patch, or ``None`` when the id is unknown. Deletes
    return whether a record was removed.
    """

    # Wallets

    async def get_wallet(self, wallet_id: str) -> Wallet | None: ...

    async def get_wallet_by_address(self, address: str) -> Wallet | None: ...

    async def create_wallet(self, wallet: Wallet) -> Wallet: ...

    async def update_wallet(self, wallet_id: str, patch: WalletPatch) -> Wallet | None: ...

    async def delete_wallet(self, wallet_id: str) -> bool: ...

    # Transactions

    async def get_transaction(self, transaction_id: str) -> Transaction | None: ...

    async def get_transactions_by_wallet(self, wallet_id: str) -> list[Transaction]: ...

    async def create_transaction(self, transaction: Transaction) -> Transaction: ...

    # Arbitrage bots

    async def get_bot(self, bot_id: str) -> ArbitrageBot | None: ...

    async def get_bots_by_wallet(self, wallet_id: str) -> list[ArbitrageBot]: ...

    async def get_all_bots(self) -> list[ArbitrageBot]: ...

    async def create_bot(self, bot: ArbitrageBot) -> ArbitrageBot: ...

    async def update_bot(self, bot_id: str, patch: BotPatch) -> ArbitrageBot | None: ...

    async def delete_bot(self, bot_id: str) -> bool: ...

    # NFT passes

    async def get_pass(self, pass_id: str) -> NftPass | None: ...

    async def get_passes_by_wallet(self, wallet_id: str) -> list[NftPass]: ...

    async def get_active_passes(self, wallet_id: str) -> list[NftPass]: ...

    async def create_pass(self, nft_pass: NftPass) -> NftPass: ...

    async def update_pass(self, pass_id: str, patch: PassPatch) -> NftPass | None: ...
