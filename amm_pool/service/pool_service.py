"""Pool service: the load, operate, save cycle around the engine."""

import logging
import threading
import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Optional, Union

from amm_pool.config import DEFAULT_SETTINGS, EngineSettings
from amm_pool.core.entities import CurveKind, Pool, Position
from amm_pool.core.fees import claim_fees
from amm_pool.core.liquidity import Withdrawal, deposit, withdraw
from amm_pool.core.market import validate_new_pool
from amm_pool.core.numeric import Numeric
from amm_pool.core.swap import SwapQuote, SwapResult, execute_swap, quote_swap
from amm_pool.service.locks import PoolLocks
from amm_pool.store.base import PoolRepository

logger = logging.getLogger(__name__)


@dataclass
class LiquidityReceipt:
    pool: Pool
    position: Position
    lp_minted: Decimal


@dataclass
class WithdrawalReceipt:
    pool: Pool
    position: Optional[Position]  # None once the position is closed and deleted
    withdrawal: Withdrawal


@dataclass
class SwapReceipt:
    pool: Pool
    result: SwapResult


@dataclass
class ClaimReceipt:
    pool: Pool
    position: Position
    claimed_a: Decimal
    claimed_b: Decimal


class PoolService:
    """Runs engine operations against a repository.

    Each mutating call holds the pool's lock from load to save, and the save
    is a compare-and-swap on the pool version, so a writer outside this
    process cannot be silently overwritten either. Failures are never
    retried here; callers reload and resubmit.
    """

    def __init__(
        self,
        repository: PoolRepository,
        settings: EngineSettings = DEFAULT_SETTINGS,
        clock: Callable[[], float] = time.time,
    ):
        self.repository = repository
        self.settings = settings
        self._clock = clock
        self._locks = PoolLocks()
        self._create_lock = threading.Lock()

    # -- Pools --------------------------------------------------------------

    def create_pool(
        self,
        token_a: str,
        token_b: str,
        fee_tier: Optional[Numeric] = None,
        curve_kind: Union[CurveKind, str] = CurveKind.CONSTANT_PRODUCT,
        stable_amplifier: Optional[Numeric] = None,
        protocol_fee_share: Optional[Numeric] = None,
    ) -> Pool:
        """Validate and store a new, empty pool."""
        with self._create_lock:
            pool = validate_new_pool(
                token_a,
                token_b,
                self.settings.fee_tier if fee_tier is None else fee_tier,
                self.repository.list_pools(),
                curve_kind=curve_kind,
                stable_amplifier=(
                    self.settings.stable_amplifier
                    if stable_amplifier is None
                    else stable_amplifier
                ),
                protocol_fee_share=(
                    self.settings.protocol_fee_share
                    if protocol_fee_share is None
                    else protocol_fee_share
                ),
            )
            self.repository.add_pool(pool)
        logger.info(
            "Pool %s created: %s/%s fee=%s curve=%s",
            pool.id, pool.token_a, pool.token_b, pool.fee_tier, pool.curve_kind.value,
        )
        return pool

    def get_pool(self, pool_id: str) -> Pool:
        return self.repository.get_pool(pool_id)

    def list_pools(self) -> list[Pool]:
        return self.repository.list_pools()

    # -- Liquidity ----------------------------------------------------------

    def add_liquidity(
        self,
        pool_id: str,
        amount_a: Numeric,
        amount_b: Numeric,
        owner: Optional[str] = None,
        position_id: Optional[str] = None,
    ) -> LiquidityReceipt:
        """Deposit into a pool, opening a position or topping up ``position_id``."""
        with self._locks.hold(pool_id):
            pool = self.repository.get_pool(pool_id)
            position = None
            if position_id is not None:
                position = self.repository.get_position(position_id)
            position, lp_minted = deposit(
                pool,
                amount_a,
                amount_b,
                owner or self.settings.default_owner,
                position,
                tolerance=self.settings.ratio_tolerance,
            )
            self.repository.save(pool, position)
        logger.info(
            "Pool %s: position %s minted %s shares", pool.id, position.id, lp_minted
        )
        return LiquidityReceipt(pool=pool, position=position, lp_minted=lp_minted)

    def remove_liquidity(
        self, position_id: str, lp_amount: Optional[Numeric] = None
    ) -> WithdrawalReceipt:
        """Burn shares from a position; the whole position by default."""
        pool_id = self.repository.get_position(position_id).pool_id
        with self._locks.hold(pool_id):
            pool = self.repository.get_pool(pool_id)
            position = self.repository.get_position(position_id)
            withdrawal = withdraw(pool, position, lp_amount)
            self.repository.save(pool, position, delete_position=withdrawal.closed)
        logger.info(
            "Pool %s: position %s burned %s shares%s",
            pool.id, position_id, withdrawal.lp_burned,
            " and closed" if withdrawal.closed else "",
        )
        return WithdrawalReceipt(
            pool=pool,
            position=None if withdrawal.closed else position,
            withdrawal=withdrawal,
        )

    # -- Swaps --------------------------------------------------------------

    def quote(self, pool_id: str, input_token: str, input_amount: Numeric) -> SwapQuote:
        return quote_swap(self.repository.get_pool(pool_id), input_token, input_amount)

    def swap(
        self,
        pool_id: str,
        input_token: str,
        input_amount: Numeric,
        min_output: Optional[Numeric] = None,
        deadline: Optional[float] = None,
    ) -> SwapReceipt:
        """Execute a swap; the deadline is checked under the pool lock."""
        with self._locks.hold(pool_id):
            pool = self.repository.get_pool(pool_id)
            result = execute_swap(
                pool,
                input_token,
                input_amount,
                min_output=min_output,
                deadline=deadline,
                now=self._clock(),
            )
            self.repository.save(pool)
        logger.info(
            "Pool %s: swapped %s %s for %s",
            pool.id, input_amount, input_token, result.output_amount,
        )
        return SwapReceipt(pool=pool, result=result)

    # -- Fees ---------------------------------------------------------------

    def claim_fees(self, position_id: str) -> ClaimReceipt:
        pool_id = self.repository.get_position(position_id).pool_id
        with self._locks.hold(pool_id):
            pool = self.repository.get_pool(pool_id)
            position = self.repository.get_position(position_id)
            claimed_a, claimed_b = claim_fees(pool, position)
            self.repository.save(pool, position)
        logger.info(
            "Pool %s: position %s claimed %s %s and %s %s",
            pool.id, position_id, claimed_a, pool.token_a, claimed_b, pool.token_b,
        )
        return ClaimReceipt(
            pool=pool, position=position, claimed_a=claimed_a, claimed_b=claimed_b
        )

    # -- Positions ----------------------------------------------------------

    def get_position(self, position_id: str) -> Position:
        return self.repository.get_position(position_id)

    def list_positions(
        self, owner: Optional[str] = None, pool_id: Optional[str] = None
    ) -> list[Position]:
        return self.repository.list_positions(owner=owner, pool_id=pool_id)
