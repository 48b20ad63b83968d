"""Wallet and NFT pass management."""

from __future__ import annotations

import logging

from cath_guard.models import NftPass, PassPatch, Wallet, WalletPatch
from cath_guard.storage.base import Repository

logger = logging.getLogger(__name__)


class WalletService:
    """Connects wallets and manages the passes they hold."""

    def __init__(self, repository: Repository) -> None:
        self._repository = repository

    async def get_by_address(self, address: str) -> Wallet | None:
        return await self._repository.get_wallet_by_address(address)

    async def connect(self, wallet: Wallet) -> tuple[Wallet, bool]:
        """Store a newly connected wallet, or return the existing one.

        Returns:
            The stored wallet and whether it was created.
        """
        existing = await self._repository.get_wallet_by_address(wallet.address)
        if existing is not None:
            return existing, False
        created = await self._repository.create_wallet(wallet)
        logger.info(f"Connected wallet {created.address}")
        return created, True

    async def update(self, wallet_id: str, patch: WalletPatch) -> Wallet | None:
        return await self._repository.update_wallet(wallet_id, patch)

    async def list_passes(self, wallet_id: str) -> list[NftPass] | None:
        """Return a wallet's passes, or None if the wallet is unknown."""
        if await self._repository.get_wallet(wallet_id) is None:
            return None
        return await self._repository.get_passes_by_wallet(wallet_id)

    async def add_pass(self, nft_pass: NftPass) -> NftPass | None:
        """Store a pass for an existing wallet, or None if the wallet is unknown."""
        if await self._repository.get_wallet(nft_pass.wallet_id) is None:
            return None
        created = await self._repository.create_pass(nft_pass)
        logger.info(
            f"Added {created.benefit_type.value} pass {created.id} to wallet {created.wallet_id}"
        )
        return created

    async def update_pass(self, pass_id: str, patch: PassPatch) -> NftPass | None:
        return await self._repository.update_pass(pass_id, patch)
