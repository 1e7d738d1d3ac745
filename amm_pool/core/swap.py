"""Swap engine: pricing, fee extraction and reserve updates."""

import logging
import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Union

from amm_pool.core.curves import curve_for
from amm_pool.core.entities import Pool
from amm_pool.core.errors import (
    DeadlineExceeded,
    InsufficientLiquidity,
    InvalidAmount,
    SlippageExceeded,
)
from amm_pool.core.numeric import (
    Numeric,
    decimal_context,
    round_down,
    round_nearest,
    round_up,
    to_amount,
    to_decimal,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SwapQuote:
    """A priced but unexecuted swap."""
    input_token: str
    output_token: str
    input_amount: Decimal
    output_amount: Decimal
    price_impact: Decimal      # Relative move of the marginal price
    input_after_fee: Decimal   # Portion of the input that trades on the curve
    fee_amount: Decimal        # Fee on the gross input

    @property
    def effective_price(self) -> Decimal:
        """Output received per unit of input, fees included."""
        return self.output_amount / self.input_amount


@dataclass(frozen=True)
class SwapResult:
    """An executed swap and where its fee went."""
    output_amount: Decimal
    price_impact: Decimal
    fee_amount: Decimal
    lp_cut: Decimal        # Re-injected into reserves, claimable by LPs
    protocol_cut: Decimal  # Held outside the reserves


@decimal_context
def quote_swap(pool: Pool, input_token: str, input_amount: Numeric) -> SwapQuote:
    """Price a swap without touching the pool.

    Fee is taken from the gross input (``input_amount * fee_tier``, rounded
    up); only the remainder moves along the curve. For constant product:

        new_in  = reserve_in + input_after_fee
        new_out = reserve_in * reserve_out / new_in
        output  = reserve_out - new_out

    Price impact compares the marginal price (output per input) before and
    after the trade.

    Raises:
        InvalidAmount: input not positive, or too small to yield any output
        InvalidToken: token not traded in this pool
        InsufficientLiquidity: either reserve is empty
    """
    amount = to_amount(input_amount, "input_amount")
    if amount <= 0:
        raise InvalidAmount(f"input_amount must be > 0, got {amount}")

    side_in = pool.side_of(input_token)
    side_out = side_in.other
    reserve_in = pool.reserve(side_in)
    reserve_out = pool.reserve(side_out)
    if reserve_in <= 0 or reserve_out <= 0:
        raise InsufficientLiquidity(
            f"pool {pool.token_a}/{pool.token_b} has no liquidity to swap against"
        )

    fee_amount = round_up(amount * pool.fee_tier)
    input_after_fee = amount - fee_amount

    curve = curve_for(pool)
    new_reserve_in = reserve_in + input_after_fee
    new_reserve_out = curve.reserve_out_after(reserve_in, reserve_out, input_after_fee)
    output_amount = round_down(reserve_out - new_reserve_out)

    if output_amount <= 0:
        raise InvalidAmount(f"input_amount {amount} is too small to produce output")
    if output_amount >= reserve_out:
        raise InsufficientLiquidity("swap would drain the output reserve")

    original_price = curve.price(reserve_in, reserve_out)
    new_price = curve.price(new_reserve_in, new_reserve_out)
    price_impact = round_nearest(abs(new_price - original_price) / original_price)

    return SwapQuote(
        input_token=input_token,
        output_token=pool.token(side_out),
        input_amount=amount,
        output_amount=output_amount,
        price_impact=price_impact,
        input_after_fee=input_after_fee,
        fee_amount=fee_amount,
    )


@decimal_context
def execute_swap(
    pool: Pool,
    input_token: str,
    input_amount: Numeric,
    min_output: Optional[Numeric] = None,
    deadline: Optional[Union[int, float]] = None,
    now: Optional[Union[int, float]] = None,
) -> SwapResult:
    """Execute a swap against the pool.

    The fee is split into a protocol cut (``fee * protocol_fee_share``,
    rounded down) and an LP cut (the rest). The input reserve receives
    ``input_after_fee + lp_cut``: the LP cut compounds into pricing while
    the protocol cut stays out of the reserves entirely. Both cuts are also
    recorded in the pool's fee ledgers.

    Args:
        pool: Pool to trade against (mutated on success)
        input_token: Symbol of the asset paid in
        input_amount: Gross amount paid in, fee included
        min_output: Reject the trade if output would be lower
        deadline: Absolute expiry, epoch seconds
        now: Current time for the deadline check; defaults to ``time.time()``

    Raises:
        DeadlineExceeded: ``now`` is past ``deadline``
        SlippageExceeded: output below ``min_output``
        plus any failure of :func:`quote_swap`
    """
    if deadline is not None:
        current = time.time() if now is None else now
        if current > deadline:
            raise DeadlineExceeded(f"deadline {deadline} passed at {current}")

    quote = quote_swap(pool, input_token, input_amount)

    if min_output is not None:
        minimum = to_decimal(min_output, "min_output")
        if quote.output_amount < minimum:
            raise SlippageExceeded(
                f"output {quote.output_amount} below minimum {minimum}"
            )

    protocol_cut = round_down(quote.fee_amount * pool.protocol_fee_share)
    lp_cut = quote.fee_amount - protocol_cut

    side_in = pool.side_of(input_token)
    side_out = side_in.other
    pool.set_reserve(side_in, pool.reserve(side_in) + quote.input_after_fee + lp_cut)
    pool.set_reserve(side_out, pool.reserve(side_out) - quote.output_amount)
    pool.credit_fees(side_in, lp_cut, protocol_cut)

    logger.debug(
        "Pool %s swapped %s %s for %s %s (fee %s, impact %s)",
        pool.id, quote.input_amount, quote.input_token,
        quote.output_amount, quote.output_token, quote.fee_amount, quote.price_impact,
    )
    return SwapResult(
        output_amount=quote.output_amount,
        price_impact=quote.price_impact,
        fee_amount=quote.fee_amount,
        lp_cut=lp_cut,
        protocol_cut=protocol_cut,
    )
