"""Uninformed swap flow sized against the pool's own depth."""

import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

import numpy as np

from amm_pool.core.entities import Pool, Side
from amm_pool.core.numeric import decimal_context, round_down


@dataclass(frozen=True)
class SwapOrder:
    side: Side       # reserve the trader pays into
    amount: Decimal  # input, in that reserve's token


class RetailFlow:
    """Draws each step's swaps as fractions of the input reserve.

    The order count per step is Poisson. Each order pays a lognormal
    fraction of whichever reserve it pays into, so flow keeps the same
    price impact profile as the pool grows or drains and needs no price
    to convert between the two tokens. Fractions above ``max_fraction``
    are clipped.

    Args:
        arrival_rate: Expected orders per step.
        depth_fraction: Mean order size as a fraction of the input reserve.
        size_sigma: Lognormal sigma of the fraction.
        max_fraction: Upper clip on any single order's fraction.
        a_in_prob: Probability an order pays in token A.
        seed: Seed for ``np.random.default_rng``.
    """

    def __init__(
        self,
        arrival_rate: float = 1.0,
        depth_fraction: float = 0.002,
        size_sigma: float = 1.2,
        max_fraction: float = 0.05,
        a_in_prob: float = 0.5,
        seed: Optional[int] = None,
    ):
        if depth_fraction <= 0 or max_fraction <= 0:
            raise ValueError("depth_fraction and max_fraction must be > 0")
        self.arrival_rate = arrival_rate
        self.depth_fraction = depth_fraction
        self.size_sigma = max(size_sigma, 0.01)
        self.max_fraction = max_fraction
        self.a_in_prob = a_in_prob
        self._rng = np.random.default_rng(seed)

    def reset(self, seed: Optional[int] = None) -> None:
        if seed is not None:
            self._rng = np.random.default_rng(seed)

    @decimal_context
    def draw(self, pool: Pool) -> list[SwapOrder]:
        """Orders for one step, sized against ``pool``'s current reserves."""
        n = int(self._rng.poisson(self.arrival_rate))
        if n == 0 or pool.is_empty:
            return []

        mu = math.log(self.depth_fraction) - 0.5 * self.size_sigma ** 2
        fractions = np.minimum(
            self._rng.lognormal(mu, self.size_sigma, size=n), self.max_fraction
        )
        pays_a = self._rng.random(n) < self.a_in_prob

        orders = []
        for fraction, in_a in zip(fractions, pays_a):
            side = Side.A if in_a else Side.B
            amount = round_down(pool.reserve(side) * Decimal(str(fraction)))
            orders.append(SwapOrder(side=side, amount=amount))
        return orders
