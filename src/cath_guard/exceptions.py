"""Exception hierarchy for CATH Guard."""

from __future__ import annotations


class CathGuardError(Exception):
    """Base exception for all CATH Guard errors."""

    pass


class InvalidTokenError(CathGuardError, ValueError):
    """Raised when token metadata cannot be classified (e.g. missing address)."""

    pass


class TierResolutionError(CathGuardError, ValueError):
    """Raised when tier resolution receives malformed holdings input."""

    pass


class TierRequiredError(CathGuardError):
    """Raised when a wallet's resolved tier does not unlock a feature."""

    def __init__(self, required: str, actual: str) -> None:
        self.required = required
        self.actual = actual
        super().__init__(f"{required} tier required (wallet resolves to {actual})")


class BotLimitError(CathGuardError):
    """Raised when a wallet already owns the maximum number of bots."""

    def __init__(self, limit: int) -> None:
        self.limit = limit
        super().__init__(f"Maximum {limit} bots allowed per wallet")


class SupplierError(CathGuardError):
    """Raised by external suppliers (risk analysis, prices) on failure."""

    pass
