"""Shared configuration for the pool service and CLI."""

from dataclasses import dataclass
from decimal import Decimal
import os

from amm_pool.core.entities import (
    DEFAULT_FEE_TIER,
    DEFAULT_PROTOCOL_FEE_SHARE,
    DEFAULT_STABLE_AMPLIFIER,
)
from amm_pool.core.liquidity import RATIO_TOLERANCE


@dataclass(frozen=True)
class EngineSettings:
    fee_tier: Decimal
    protocol_fee_share: Decimal
    stable_amplifier: Decimal
    ratio_tolerance: Decimal
    default_owner: str


DEFAULT_SETTINGS = EngineSettings(
    fee_tier=DEFAULT_FEE_TIER,
    protocol_fee_share=DEFAULT_PROTOCOL_FEE_SHARE,
    stable_amplifier=DEFAULT_STABLE_AMPLIFIER,
    ratio_tolerance=RATIO_TOLERANCE,
    default_owner="anonymous",
)

DEFAULT_DB_PATH = "data/pools.db"


def resolve_db_path() -> str:
    """Resolve the SQLite path from environment or the default."""
    return os.environ.get("AMM_POOL_DB", DEFAULT_DB_PATH)


def resolve_ratio_tolerance() -> Decimal:
    """Resolve the deposit ratio tolerance from environment or the default."""
    return Decimal(os.environ.get("AMM_POOL_RATIO_TOLERANCE", str(RATIO_TOLERANCE)))


def load_settings() -> EngineSettings:
    """Build settings with environment overrides applied."""
    return EngineSettings(
        fee_tier=DEFAULT_SETTINGS.fee_tier,
        protocol_fee_share=DEFAULT_SETTINGS.protocol_fee_share,
        stable_amplifier=DEFAULT_SETTINGS.stable_amplifier,
        ratio_tolerance=resolve_ratio_tolerance(),
        default_owner=DEFAULT_SETTINGS.default_owner,
    )
