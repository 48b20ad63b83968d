"""Service layer - flows that combine the core rules with storage and events."""

from cath_guard.services.bots import BotConfig, BotService
from cath_guard.services.tiers import TierRefresh, TierService
from cath_guard.services.transactions import IncomingTransfer, TransactionService
from cath_guard.services.wallets import WalletService

__all__ = [
    "BotConfig",
    "BotService",
    "IncomingTransfer",
    "TierRefresh",
    "TierService",
    "TransactionService",
    "WalletService",
]
