"""CATH Guard - Solana wallet security with tiered threat classification."""

__version__ = "0.1.0"
