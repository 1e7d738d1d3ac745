"""Persistence for pools and positions."""

from amm_pool.store.base import (
    PoolNotFound,
    PoolRepository,
    PositionNotFound,
    StaleStateError,
    StoreError,
)
from amm_pool.store.memory import InMemoryRepository
from amm_pool.store.sqlite import SQLiteRepository

__all__ = [
    "PoolRepository",
    "StoreError",
    "PoolNotFound",
    "PositionNotFound",
    "StaleStateError",
    "InMemoryRepository",
    "SQLiteRepository",
]
