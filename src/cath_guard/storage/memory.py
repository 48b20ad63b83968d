"""In-memory repository used for development and tests."""

from __future__ import annotations

from cath_guard.models import (
    ArbitrageBot,
    BotPatch,
    NftPass,
    PassPatch,
    Transaction,
    Wallet,
    WalletPatch,
)


class MemoryRepository:
    """Dictionary-backed implementation of the Repository protocol.

    Entities are immutable, so stored values are returned directly.
    """

    def __init__(self) -> None:
        self._wallets: dict[str, Wallet] = {}
        self._transactions: dict[str, Transaction] = {}
        self._bots: dict[str, ArbitrageBot] = {}
        self._passes: dict[str, NftPass] = {}

    # ------------------------------------------------------------------
    # Wallets
    # ------------------------------------------------------------------

    async def get_wallet(self, wallet_id: str) -> Wallet | None:
        return self._wallets.get(wallet_id)

    async def get_wallet_by_address(self, address: str) -> Wallet | None:
        return next((w for w in self._wallets.values() if w.address == address), None)

    async def create_wallet(self, wallet: Wallet) -> Wallet:
        self._wallets[wallet.id] = wallet
        return wallet

    async def update_wallet(self, wallet_id: str, patch: WalletPatch) -> Wallet | None:
        wallet = self._wallets.get(wallet_id)
        if wallet is None:
            return None
        updated = patch.apply(wallet)
        self._wallets[wallet_id] = updated
        return updated

    async def delete_wallet(self, wallet_id: str) -> bool:
        """Delete a wallet together with everything it owns."""
        if self._wallets.pop(wallet_id, None) is None:
            return False
        for store in (self._transactions, self._bots, self._passes):
            for key in [k for k, v in store.items() if v.wallet_id == wallet_id]:
                del store[key]
        return True

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def get_transaction(self, transaction_id: str) -> Transaction | None:
        return self._transactions.get(transaction_id)

    async def get_transactions_by_wallet(self, wallet_id: str) -> list[Transaction]:
        """Return a wallet's transactions, newest first."""
        return sorted(
            (t for t in self._transactions.values() if t.wallet_id == wallet_id),
            key=lambda t: t.timestamp,
            reverse=True,
        )

    async def create_transaction(self, transaction: Transaction) -> Transaction:
        self._transactions[transaction.id] = transaction
        return transaction

    # ------------------------------------------------------------------
    # Arbitrage bots
    # ------------------------------------------------------------------

    async def get_bot(self, bot_id: str) -> ArbitrageBot | None:
        return self._bots.get(bot_id)

    async def get_bots_by_wallet(self, wallet_id: str) -> list[ArbitrageBot]:
        return [b for b in self._bots.values() if b.wallet_id == wallet_id]

    async def get_all_bots(self) -> list[ArbitrageBot]:
        return list(self._bots.values())

    async def create_bot(self, bot: ArbitrageBot) -> ArbitrageBot:
        self._bots[bot.id] = bot
        return bot

    async def update_bot(self, bot_id: str, patch: BotPatch) -> ArbitrageBot | None:
        bot = self._bots.get(bot_id)
        if bot is None:
            return None
        updated = patch.apply(bot)
        self._bots[bot_id] = updated
        return updated

    async def delete_bot(self, bot_id: str) -> bool:
        return self._bots.pop(bot_id, None) is not None

    # ------------------------------------------------------------------
    # NFT passes
    # ------------------------------------------------------------------

    async def get_pass(self, pass_id: str) -> NftPass | None:
        return self._passes.get(pass_id)

    async def get_passes_by_wallet(self, wallet_id: str) -> list[NftPass]:
        return [p for p in self._passes.values() if p.wallet_id == wallet_id]

    async def get_active_passes(self, wallet_id: str) -> list[NftPass]:
        """Return passes flagged active. Expiry is checked by callers."""
        return [p for p in self._passes.values() if p.wallet_id == wallet_id and p.is_active]

    async def create_pass(self, nft_pass: NftPass) -> NftPass:
        self._passes[nft_pass.id] = nft_pass
        return nft_pass

    async def update_pass(self, pass_id: str, patch: PassPatch) -> NftPass | None:
        nft_pass = self._passes.get(pass_id)
        if nft_pass is None:
            return None
        updated = patch.apply(nft_pass)
        self._passes[pass_id] = updated
        return updated
