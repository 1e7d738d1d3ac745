"""Pool and Position records the engine operates on."""

import time
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional

from amm_pool.core.errors import InvalidToken

DEFAULT_FEE_TIER = Decimal("0.003")
DEFAULT_PROTOCOL_FEE_SHARE = Decimal("0.1")
DEFAULT_STABLE_AMPLIFIER = Decimal("50")


class CurveKind(Enum):
    """Pricing curve of a pool."""
    CONSTANT_PRODUCT = "constant"
    STABLE = "stable"


class Side(Enum):
    """Which of the pool's two assets an amount refers to."""
    A = "a"
    B = "b"

    @property
    def other(self) -> "Side":
        return Side.B if self is Side.A else Side.A


@dataclass
class Pool:
    """A two-asset liquidity pool.

    ``token_a``/``token_b`` order fixes which reserve is which; the market
    itself is identified by the unordered pair plus the fee tier.
    """
    token_a: str
    token_b: str
    fee_tier: Decimal = DEFAULT_FEE_TIER
    curve_kind: CurveKind = CurveKind.CONSTANT_PRODUCT
    stable_amplifier: Decimal = DEFAULT_STABLE_AMPLIFIER

    reserve_a: Decimal = Decimal("0")
    reserve_b: Decimal = Decimal("0")
    lp_total_supply: Decimal = Decimal("0")

    # Owed to LPs collectively, claimable pro rata
    accumulated_fees_a: Decimal = Decimal("0")
    accumulated_fees_b: Decimal = Decimal("0")
    # Owed to the protocol, never allocated to positions
    protocol_fees_a: Decimal = Decimal("0")
    protocol_fees_b: Decimal = Decimal("0")
    protocol_fee_share: Decimal = DEFAULT_PROTOCOL_FEE_SHARE

    id: Optional[str] = None
    version: int = 0
    created_at: float = field(default_factory=time.time)

    def side_of(self, token: str) -> Side:
        """Resolve a token symbol to its reserve side."""
        if token == self.token_a:
            return Side.A
        if token == self.token_b:
            return Side.B
        raise InvalidToken(
            f"{token!r} is not traded in pool {self.token_a}/{self.token_b}"
        )

    def token(self, side: Side) -> str:
        return self.token_a if side is Side.A else self.token_b

    def reserve(self, side: Side) -> Decimal:
        return self.reserve_a if side is Side.A else self.reserve_b

    def set_reserve(self, side: Side, value: Decimal) -> None:
        if side is Side.A:
            self.reserve_a = value
        else:
            self.reserve_b = value

    def accumulated_fees(self, side: Side) -> Decimal:
        return self.accumulated_fees_a if side is Side.A else self.accumulated_fees_b

    def protocol_fees(self, side: Side) -> Decimal:
        return self.protocol_fees_a if side is Side.A else self.protocol_fees_b

    def credit_fees(self, side: Side, lp_cut: Decimal, protocol_cut: Decimal) -> None:
        if side is Side.A:
            self.accumulated_fees_a += lp_cut
            self.protocol_fees_a += protocol_cut
        else:
            self.accumulated_fees_b += lp_cut
            self.protocol_fees_b += protocol_cut

    @property
    def k(self) -> Decimal:
        """The constant product invariant."""
        return self.reserve_a * self.reserve_b

    @property
    def spot_price(self) -> Decimal:
        """Reserve ratio (B per A)."""
        if self.reserve_a == 0:
            return Decimal("0")
        return self.reserve_b / self.reserve_a

    @property
    def is_empty(self) -> bool:
        return self.lp_total_supply == 0


@dataclass
class Position:
    """One liquidity provider's claim on one pool.

    ``fees_token_a``/``fees_token_b`` hold fees accrued but not yet paid
    out; they are a pending buffer between claims, not a lifetime total.
    """
    pool_id: Optional[str]
    owner: str
    lp_amount: Decimal = Decimal("0")
    fees_token_a: Decimal = Decimal("0")
    fees_token_b: Decimal = Decimal("0")
    id: Optional[str] = None
    created_at: float = field(default_factory=time.time)

    @property
    def is_closed(self) -> bool:
        return self.lp_amount == 0
