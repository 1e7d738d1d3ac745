"""Automated market maker pool accounting engine."""

from amm_pool.core import (
    CurveKind,
    Pool,
    PoolError,
    Position,
    add_liquidity,
    claim_fees,
    execute_swap,
    quote_swap,
    remove_liquidity,
    validate_new_pool,
)

__all__ = [
    "CurveKind",
    "Pool",
    "PoolError",
    "Position",
    "add_liquidity",
    "claim_fees",
    "execute_swap",
    "quote_swap",
    "remove_liquidity",
    "validate_new_pool",
]
