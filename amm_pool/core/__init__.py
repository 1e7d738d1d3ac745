"""Pool accounting engine."""

from amm_pool.core.curves import ConstantProductCurve, StableSwapCurve, curve_for
from amm_pool.core.entities import CurveKind, Pool, Position, Side
from amm_pool.core.errors import (
    CurveConvergenceError,
    DeadlineExceeded,
    DuplicateMarket,
    InsufficientLiquidity,
    InvalidAmount,
    InvalidPair,
    InvalidPoolParameter,
    InvalidToken,
    PoolError,
    PositionMismatch,
    RatioOutOfTolerance,
    SlippageExceeded,
)
from amm_pool.core.fees import accrue_fees, claim_fees
from amm_pool.core.liquidity import (
    Withdrawal,
    add_liquidity,
    deposit,
    remove_liquidity,
    withdraw,
)
from amm_pool.core.market import market_key, validate_new_pool
from amm_pool.core.swap import SwapQuote, SwapResult, execute_swap, quote_swap

__all__ = [
    "ConstantProductCurve",
    "StableSwapCurve",
    "curve_for",
    "CurveKind",
    "Pool",
    "Position",
    "Side",
    "PoolError",
    "InvalidAmount",
    "InvalidToken",
    "InsufficientLiquidity",
    "RatioOutOfTolerance",
    "SlippageExceeded",
    "DeadlineExceeded",
    "DuplicateMarket",
    "InvalidPair",
    "InvalidPoolParameter",
    "PositionMismatch",
    "CurveConvergenceError",
    "accrue_fees",
    "claim_fees",
    "Withdrawal",
    "add_liquidity",
    "remove_liquidity",
    "deposit",
    "withdraw",
    "market_key",
    "validate_new_pool",
    "SwapQuote",
    "SwapResult",
    "quote_swap",
    "execute_swap",
]
