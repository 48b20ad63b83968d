"""Storage layer - repository protocol with memory and SQL backends."""

from cath_guard.storage.base import Repository
from cath_guard.storage.memory import MemoryRepository
from cath_guard.storage.sql import SqlRepository, create_engine, create_tables

__all__ = [
    "MemoryRepository",
    "Repository",
    "SqlRepository",
    "create_engine",
    "create_tables",
]
