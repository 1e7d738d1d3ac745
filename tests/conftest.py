"""Pytest configuration and shared fixtures for pool engine tests.

This module provides:
- Pytest markers for test categorization
- Pool fixtures in common starting states
- Service and repository fixtures backed by memory or SQLite
"""

import pytest

from amm_pool.core.entities import CurveKind, Pool, Position
from amm_pool.service.pool_service import PoolService
from amm_pool.store.memory import InMemoryRepository
from amm_pool.store.sqlite import SQLiteRepository
from tests.fixtures.pool_fixtures import create_pool, create_seeded_pool


# ============================================================================
# Pytest Hooks
# ============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "accounting: Reserve, share and fee conservation tests"
    )
    config.addinivalue_line(
        "markers", "edge_case: Edge case tests with extreme or malformed inputs"
    )
    config.addinivalue_line(
        "markers", "integration: Tests spanning the service, store and CLI"
    )
    config.addinivalue_line(
        "markers", "slow: Tests taking more than 5 seconds to run"
    )


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on location and name."""
    for item in items:
        if "edge_case" in item.nodeid or "edge_case" in item.name:
            item.add_marker(pytest.mark.edge_case)

        if any(keyword in item.nodeid for keyword in ["service", "sqlite", "cli"]):
            item.add_marker(pytest.mark.integration)

        if any(keyword in item.nodeid for keyword in ["fees", "liquidity", "simulation"]):
            item.add_marker(pytest.mark.accounting)


# ============================================================================
# Pool Fixtures
# ============================================================================


@pytest.fixture
def empty_pool() -> Pool:
    """ETH/USDC constant product pool at 30bps with no liquidity."""
    return create_pool()


@pytest.fixture
def seeded_pool() -> tuple[Pool, Position]:
    """ETH/USDC pool with 1000/1000 reserves held by a single LP (alice).

    Returns:
        (pool, position) where the position owns all 1000 shares.
    """
    return create_seeded_pool()


@pytest.fixture
def stable_pool() -> tuple[Pool, Position]:
    """USDC/DAI stable pool (A=50) with 1000/1000 reserves and no fee."""
    return create_seeded_pool(
        token_a="USDC",
        token_b="DAI",
        fee_tier="0",
        curve_kind=CurveKind.STABLE,
    )


# ============================================================================
# Service Fixtures
# ============================================================================


@pytest.fixture
def memory_repository() -> InMemoryRepository:
    return InMemoryRepository()


@pytest.fixture
def sqlite_repository(tmp_path) -> SQLiteRepository:
    """SQLite repository in a throwaway directory."""
    return SQLiteRepository(str(tmp_path / "pools.db"))


@pytest.fixture
def service(memory_repository) -> PoolService:
    """Service with a fixed clock at t=1000."""
    return PoolService(memory_repository, clock=lambda: 1000.0)
