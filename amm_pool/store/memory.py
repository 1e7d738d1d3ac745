"""In-process repository backed by dictionaries."""

import copy
import threading
import uuid
from typing import Optional

from amm_pool.core.entities import Pool, Position
from amm_pool.core.errors import DuplicateMarket
from amm_pool.core.market import market_key
from amm_pool.store.base import (
    PoolNotFound,
    PoolRepository,
    PositionNotFound,
    StaleStateError,
)


class InMemoryRepository(PoolRepository):
    """Repository for tests and simulations. Hands out deep copies."""

    def __init__(self):
        self._pools: dict[str, Pool] = {}
        self._positions: dict[str, Position] = {}
        self._lock = threading.Lock()

    def add_pool(self, pool: Pool) -> Pool:
        key = market_key(pool.token_a, pool.token_b, pool.fee_tier)
        with self._lock:
            for stored in self._pools.values():
                if market_key(stored.token_a, stored.token_b, stored.fee_tier) == key:
                    raise DuplicateMarket(
                        f"pool {stored.id} already trades {pool.token_a}/{pool.token_b}"
                    )
            pool.id = uuid.uuid4().hex
            pool.version = 0
            self._pools[pool.id] = copy.deepcopy(pool)
        return pool

    def get_pool(self, pool_id: str) -> Pool:
        with self._lock:
            if pool_id not in self._pools:
                raise PoolNotFound(f"Pool not found: {pool_id}")
            return copy.deepcopy(self._pools[pool_id])

    def list_pools(self) -> list[Pool]:
        with self._lock:
            pools = [copy.deepcopy(p) for p in self._pools.values()]
        return sorted(pools, key=lambda p: p.created_at, reverse=True)

    def get_position(self, position_id: str) -> Position:
        with self._lock:
            if position_id not in self._positions:
                raise PositionNotFound(f"Position not found: {position_id}")
            return copy.deepcopy(self._positions[position_id])

    def list_positions(
        self, owner: Optional[str] = None, pool_id: Optional[str] = None
    ) -> list[Position]:
        with self._lock:
            positions = [
                copy.deepcopy(p)
                for p in self._positions.values()
                if (owner is None or p.owner == owner)
                and (pool_id is None or p.pool_id == pool_id)
            ]
        return sorted(positions, key=lambda p: p.created_at, reverse=True)

    def save(
        self,
        pool: Pool,
        position: Optional[Position] = None,
        delete_position: bool = False,
    ) -> None:
        with self._lock:
            stored = self._pools.get(pool.id)
            if stored is None:
                raise PoolNotFound(f"Pool not found: {pool.id}")
            if stored.version != pool.version:
                raise StaleStateError(
                    f"pool {pool.id} is at version {stored.version}, "
                    f"caller loaded {pool.version}"
                )

            if position is not None:
                if delete_position:
                    self._positions.pop(position.id, None)
                else:
                    if position.id is None:
                        position.id = uuid.uuid4().hex
                    self._positions[position.id] = copy.deepcopy(position)

            pool.version += 1
            self._pools[pool.id] = copy.deepcopy(pool)
