"""Pricing curves.

Both curves answer the same two questions for a pool side pair: where does
the output reserve land after ``amount_in`` is added to the input reserve,
and what is the marginal price (output per unit input) at given reserves.
"""

from abc import ABC, abstractmethod
from decimal import Decimal

from amm_pool.core.entities import CurveKind, Pool
from amm_pool.core.errors import CurveConvergenceError, InvalidPoolParameter
from amm_pool.core.numeric import ONE, ZERO, decimal_context

MAX_ITERATIONS = 255
CONVERGENCE = Decimal("1e-50")


class Curve(ABC):
    """Invariant curve over two reserves."""

    @abstractmethod
    def invariant(self, reserve_a: Decimal, reserve_b: Decimal) -> Decimal:
        """Quantity preserved by a fee-less swap."""

    @abstractmethod
    def reserve_out_after(
        self, reserve_in: Decimal, reserve_out: Decimal, amount_in: Decimal
    ) -> Decimal:
        """Output reserve once ``amount_in`` has been added to the input side."""

    @abstractmethod
    def price(self, reserve_in: Decimal, reserve_out: Decimal) -> Decimal:
        """Marginal price: units of output per unit of input."""


class ConstantProductCurve(Curve):
    """x * y = k."""

    @decimal_context
    def invariant(self, reserve_a: Decimal, reserve_b: Decimal) -> Decimal:
        return reserve_a * reserve_b

    @decimal_context
    def reserve_out_after(
        self, reserve_in: Decimal, reserve_out: Decimal, amount_in: Decimal
    ) -> Decimal:
        # (reserve_in + amount_in) * new_out = reserve_in * reserve_out
        k = reserve_in * reserve_out
        return k / (reserve_in + amount_in)

    @decimal_context
    def price(self, reserve_in: Decimal, reserve_out: Decimal) -> Decimal:
        return reserve_out / reserve_in


class StableSwapCurve(Curve):
    """Two-asset StableSwap invariant.

    4A(x + y) + D = 4AD + D^3 / (4xy)

    Behaves like a constant sum near balance and like constant product as
    reserves drift apart; ``amplifier`` (A) sets where the transition lies.
    D and the post-trade reserve are found by Newton iteration.
    """

    def __init__(self, amplifier: Decimal):
        if amplifier <= 0:
            raise InvalidPoolParameter(f"amplifier must be > 0, got {amplifier}")
        self.amplifier = amplifier

    @property
    def _ann(self) -> Decimal:
        return self.amplifier * 4

    @decimal_context
    def invariant(self, reserve_a: Decimal, reserve_b: Decimal) -> Decimal:
        total = reserve_a + reserve_b
        if total == 0:
            return ZERO
        ann = self._ann
        d = total
        for _ in range(MAX_ITERATIONS):
            d_p = d * d / (reserve_a * 2) * d / (reserve_b * 2)
            previous = d
            d = (ann * total + d_p * 2) * d / ((ann - ONE) * d + d_p * 3)
            if abs(d - previous) <= max(d, ONE) * CONVERGENCE:
                return d
        raise CurveConvergenceError(
            f"invariant did not converge for reserves {reserve_a}/{reserve_b}"
        )

    @decimal_context
    def reserve_out_after(
        self, reserve_in: Decimal, reserve_out: Decimal, amount_in: Decimal
    ) -> Decimal:
        d = self.invariant(reserve_in, reserve_out)
        x = reserve_in + amount_in
        ann = self._ann
        # y^2 + (b - D) y = c
        c = d * d / (x * 2) * d / (ann * 2)
        b = x + d / ann
        y = d
        for _ in range(MAX_ITERATIONS):
            previous = y
            y = (y * y + c) / (y * 2 + b - d)
            if abs(y - previous) <= max(y, ONE) * CONVERGENCE:
                return y
        raise CurveConvergenceError(
            f"output reserve did not converge for input reserve {x}"
        )

    @decimal_context
    def price(self, reserve_in: Decimal, reserve_out: Decimal) -> Decimal:
        d = self.invariant(reserve_in, reserve_out)
        d_cubed = d * d * d
        ann = self._ann
        d_in = ann + d_cubed / (reserve_in * reserve_in * reserve_out * 4)
        d_out = ann + d_cubed / (reserve_in * reserve_out * reserve_out * 4)
        return d_in / d_out


def curve_for(pool: Pool) -> Curve:
    """Pick the pricing curve declared by the pool."""
    if pool.curve_kind is CurveKind.CONSTANT_PRODUCT:
        return ConstantProductCurve()
    if pool.curve_kind is CurveKind.STABLE:
        return StableSwapCurve(pool.stable_amplifier)
    raise InvalidPoolParameter(f"unknown curve kind: {pool.curve_kind!r}")
