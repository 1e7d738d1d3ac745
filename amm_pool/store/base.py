"""Repository abstraction for pools and positions."""

from abc import ABC, abstractmethod
from typing import Optional

from amm_pool.core.entities import Pool, Position


class StoreError(Exception):
    """Base class for persistence failures."""


class PoolNotFound(StoreError):
    """No pool with the requested id."""


class PositionNotFound(StoreError):
    """No position with the requested id."""


class StaleStateError(StoreError):
    """The pool changed since it was loaded; nothing was written."""


class PoolRepository(ABC):
    """Durable home of Pool and Position records.

    Loads always hand out fresh objects the caller may mutate. ``save`` is a
    compare-and-swap on ``Pool.version``: it only succeeds if the stored
    pool still has the version the caller loaded, and bumps it on success.
    """

    @abstractmethod
    def add_pool(self, pool: Pool) -> Pool:
        """Insert a new pool, assigning its id.

        Raises:
            DuplicateMarket: a pool for the same market already exists
        """

    @abstractmethod
    def get_pool(self, pool_id: str) -> Pool:
        """Load a pool or raise PoolNotFound."""

    @abstractmethod
    def list_pools(self) -> list[Pool]:
        """All pools, newest first."""

    @abstractmethod
    def get_position(self, position_id: str) -> Position:
        """Load a position or raise PositionNotFound."""

    @abstractmethod
    def list_positions(
        self, owner: Optional[str] = None, pool_id: Optional[str] = None
    ) -> list[Position]:
        """Positions, newest first, optionally filtered by owner and pool."""

    @abstractmethod
    def save(
        self,
        pool: Pool,
        position: Optional[Position] = None,
        delete_position: bool = False,
    ) -> None:
        """Atomically persist a pool and, optionally, one of its positions.

        A position without an id is inserted and given one. With
        ``delete_position`` the position is removed instead.

        Raises:
            StaleStateError: the stored pool version moved on
        """
