"""
Persistence backends for the marketplace services.

- base: repository contract
- sql: SQLAlchemy async session backend (PostgreSQL, SQLite)
- memory: in-process backend for local runs and tests
"""

from agrimarket.repositories.base import MarketplaceRepository
from agrimarket.repositories.memory import (
    InMemoryRepository,
    InMemoryStore,
    get_memory_store,
)
from agrimarket.repositories.sql import SqlRepository

__all__ = [
    "MarketplaceRepository",
    "InMemoryRepository",
    "InMemoryStore",
    "SqlRepository",
    "get_memory_store",
]
