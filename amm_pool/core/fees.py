"""Fee ledger: pro-rata settlement of LP fees to positions."""

import logging
from decimal import Decimal

from amm_pool.core.entities import Pool, Position
from amm_pool.core.numeric import ZERO, decimal_context, round_down

logger = logging.getLogger(__name__)


@decimal_context
def accrue_fees(pool: Pool, position: Position) -> tuple[Decimal, Decimal]:
    """Move the position's pro-rata share of pool fees into its buffer.

    The share is ``position.lp_amount / pool.lp_total_supply`` applied to
    the pool's outstanding ``accumulated_fees``. Amounts round down so the
    pool never pays out more than it holds.

    Returns:
        The amounts just credited, (token A, token B)
    """
    if pool.lp_total_supply == 0:
        return ZERO, ZERO

    accrued_a = round_down(
        pool.accumulated_fees_a * position.lp_amount / pool.lp_total_supply
    )
    accrued_b = round_down(
        pool.accumulated_fees_b * position.lp_amount / pool.lp_total_supply
    )

    pool.accumulated_fees_a -= accrued_a
    pool.accumulated_fees_b -= accrued_b
    position.fees_token_a += accrued_a
    position.fees_token_b += accrued_b
    return accrued_a, accrued_b


def flush_fees(position: Position) -> tuple[Decimal, Decimal]:
    """Pay out and reset the position's pending fee buffer."""
    paid = (position.fees_token_a, position.fees_token_b)
    position.fees_token_a = ZERO
    position.fees_token_b = ZERO
    return paid


def claim_fees(pool: Pool, position: Position) -> tuple[Decimal, Decimal]:
    """Accrue the position's share and pay out everything pending.

    An emptied pool (no LP supply) returns (0, 0) and leaves both records
    untouched, even if the position still carries a buffer.

    Returns:
        Claimed amounts, (token A, token B)
    """
    if pool.lp_total_supply == 0:
        return ZERO, ZERO

    accrue_fees(pool, position)
    claimed_a, claimed_b = flush_fees(position)
    logger.debug(
        "Position %s claimed %s %s / %s %s",
        position.id, claimed_a, pool.token_a, claimed_b, pool.token_b,
    )
    return claimed_a, claimed_b
