"""Liquidity manager: minting and burning LP shares."""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from amm_pool.core.entities import Pool, Position
from amm_pool.core.errors import (
    InsufficientLiquidity,
    InvalidAmount,
    PositionMismatch,
    RatioOutOfTolerance,
)
from amm_pool.core.fees import accrue_fees, flush_fees
from amm_pool.core.numeric import (
    ZERO,
    Numeric,
    decimal_context,
    round_down,
    to_amount,
)

logger = logging.getLogger(__name__)

# Allowed deviation of a deposit's B side from the pool ratio (0.5%)
RATIO_TOLERANCE = Decimal("0.005")


@dataclass(frozen=True)
class Withdrawal:
    """Outcome of burning a position's shares."""
    lp_burned: Decimal
    amount_a: Decimal
    amount_b: Decimal
    fees_a: Decimal  # Fee buffer paid out when the position closes
    fees_b: Decimal
    closed: bool


@decimal_context
def _shares_to_mint(
    pool: Pool, amount_a: Decimal, amount_b: Decimal, tolerance: Decimal
) -> Decimal:
    """Validate a deposit and price it in LP shares, without mutating."""
    if amount_a <= 0 or amount_b <= 0:
        raise InvalidAmount(
            f"liquidity amounts must be > 0, got {amount_a} and {amount_b}"
        )

    if pool.lp_total_supply == 0:
        # First deposit sets the price; shares are the geometric mean
        lp_minted = round_down((amount_a * amount_b).sqrt())
    else:
        if pool.reserve_a <= 0 or pool.reserve_b <= 0:
            raise InsufficientLiquidity(
                "pool has outstanding shares but an empty reserve"
            )
        lp_minted = round_down(amount_a * pool.lp_total_supply / pool.reserve_a)

        # Shares are anchored on side A alone, so B must match the ratio
        expected_b = amount_a * pool.reserve_b / pool.reserve_a
        if abs(expected_b - amount_b) > expected_b * tolerance:
            raise RatioOutOfTolerance(
                f"amount_b {amount_b} deviates from expected {expected_b} "
                f"by more than {tolerance:%}"
            )

    if lp_minted <= 0:
        raise InvalidAmount("deposit too small to mint any shares")
    return lp_minted


@decimal_context
def _apply_deposit(
    pool: Pool, amount_a: Decimal, amount_b: Decimal, lp_minted: Decimal
) -> None:
    pool.reserve_a += amount_a
    pool.reserve_b += amount_b
    pool.lp_total_supply += lp_minted
    logger.debug(
        "Pool %s minted %s shares for %s %s + %s %s",
        pool.id, lp_minted, amount_a, pool.token_a, amount_b, pool.token_b,
    )


def add_liquidity(
    pool: Pool,
    amount_a: Numeric,
    amount_b: Numeric,
    tolerance: Decimal = RATIO_TOLERANCE,
) -> Decimal:
    """Deposit both assets and mint LP shares.

    The first deposit into an empty pool mints ``sqrt(amount_a * amount_b)``
    and fixes the initial price. Later deposits mint
    ``amount_a * lp_total_supply / reserve_a`` and must supply B within
    ``tolerance`` of ``amount_a * reserve_b / reserve_a``.

    Args:
        pool: Pool to deposit into (mutated on success)
        amount_a: Amount of token A
        amount_b: Amount of token B
        tolerance: Allowed relative deviation of amount_b

    Returns:
        Number of shares minted; crediting a position is the caller's job

    Raises:
        InvalidAmount: non-positive amounts, or a deposit worth zero shares
        RatioOutOfTolerance: amount_b off the pool ratio
    """
    amount_a = to_amount(amount_a, "amount_a")
    amount_b = to_amount(amount_b, "amount_b")
    lp_minted = _shares_to_mint(pool, amount_a, amount_b, tolerance)
    _apply_deposit(pool, amount_a, amount_b, lp_minted)
    return lp_minted


@decimal_context
def _apply_withdrawal(pool: Pool, lp_amount: Decimal) -> tuple[Decimal, Decimal]:
    if lp_amount == pool.lp_total_supply:
        # Last shares take whatever is left, leaving no dust behind
        amount_a, amount_b = pool.reserve_a, pool.reserve_b
    else:
        amount_a = round_down(lp_amount * pool.reserve_a / pool.lp_total_supply)
        amount_b = round_down(lp_amount * pool.reserve_b / pool.lp_total_supply)

    pool.reserve_a -= amount_a
    pool.reserve_b -= amount_b
    pool.lp_total_supply -= lp_amount
    logger.debug(
        "Pool %s burned %s shares for %s %s + %s %s",
        pool.id, lp_amount, amount_a, pool.token_a, amount_b, pool.token_b,
    )
    return amount_a, amount_b


def _check_burn(pool: Pool, lp_amount: Decimal) -> None:
    if lp_amount <= 0 or lp_amount > pool.lp_total_supply:
        raise InvalidAmount(
            f"lp_amount must be in (0, {pool.lp_total_supply}], got {lp_amount}"
        )


def remove_liquidity(pool: Pool, lp_amount: Numeric) -> tuple[Decimal, Decimal]:
    """Burn LP shares for a strictly proportional slice of both reserves.

    Returns:
        (amount_a, amount_b) paid out, rounded down
    """
    lp_amount = to_amount(lp_amount, "lp_amount")
    _check_burn(pool, lp_amount)
    return _apply_withdrawal(pool, lp_amount)


@decimal_context
def deposit(
    pool: Pool,
    amount_a: Numeric,
    amount_b: Numeric,
    owner: str,
    position: Optional[Position] = None,
    tolerance: Decimal = RATIO_TOLERANCE,
) -> tuple[Position, Decimal]:
    """Add liquidity and credit the minted shares to a position.

    Without ``position`` a new one is opened for ``owner``. An existing
    position first accrues its fees at its current share so the new shares
    do not dilute what it already earned.
    """
    if position is not None and position.pool_id != pool.id:
        raise PositionMismatch(
            f"position {position.id} belongs to pool {position.pool_id}, not {pool.id}"
        )
    amount_a = to_amount(amount_a, "amount_a")
    amount_b = to_amount(amount_b, "amount_b")
    lp_minted = _shares_to_mint(pool, amount_a, amount_b, tolerance)

    if position is None:
        position = Position(pool_id=pool.id, owner=owner)
    else:
        accrue_fees(pool, position)
    _apply_deposit(pool, amount_a, amount_b, lp_minted)
    position.lp_amount += lp_minted
    return position, lp_minted


@decimal_context
def withdraw(
    pool: Pool, position: Position, lp_amount: Optional[Numeric] = None
) -> Withdrawal:
    """Burn some or all of a position's shares.

    Pending fees are accrued before the burn. When the position reaches
    zero shares its fee buffer is paid out with the withdrawal and the
    caller should delete it.
    """
    if position.pool_id != pool.id:
        raise PositionMismatch(
            f"position {position.id} belongs to pool {position.pool_id}, not {pool.id}"
        )
    if lp_amount is None:
        lp_amount = position.lp_amount
    else:
        lp_amount = to_amount(lp_amount, "lp_amount")
    if lp_amount <= 0 or lp_amount > position.lp_amount:
        raise InvalidAmount(
            f"lp_amount must be in (0, {position.lp_amount}], got {lp_amount}"
        )
    _check_burn(pool, lp_amount)

    accrue_fees(pool, position)
    amount_a, amount_b = _apply_withdrawal(pool, lp_amount)
    position.lp_amount -= lp_amount

    fees_a = fees_b = ZERO
    if position.is_closed:
        fees_a, fees_b = flush_fees(position)
    return Withdrawal(
        lp_burned=lp_amount,
        amount_a=amount_a,
        amount_b=amount_b,
        fees_a=fees_a,
        fees_b=fees_b,
        closed=position.is_closed,
    )
