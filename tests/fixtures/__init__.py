"""Test fixtures for pool engine tests."""

from tests.fixtures.pool_fixtures import (
    PoolSnapshot,
    assert_close,
    create_pool,
    create_seeded_pool,
    snapshot_pool,
)

__all__ = [
    "PoolSnapshot",
    "assert_close",
    "create_pool",
    "create_seeded_pool",
    "snapshot_pool",
]
