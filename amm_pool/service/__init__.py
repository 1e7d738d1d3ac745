"""Service layer serializing engine operations per pool."""

from amm_pool.service.locks import PoolLocks
from amm_pool.service.pool_service import (
    ClaimReceipt,
    LiquidityReceipt,
    PoolService,
    SwapReceipt,
    WithdrawalReceipt,
)

__all__ = [
    "PoolLocks",
    "PoolService",
    "LiquidityReceipt",
    "WithdrawalReceipt",
    "SwapReceipt",
    "ClaimReceipt",
]
