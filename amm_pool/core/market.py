"""Pool creation: pair validation and market deduplication."""

from decimal import Decimal
from typing import Iterable, Union

from amm_pool.core.entities import (
    DEFAULT_FEE_TIER,
    DEFAULT_PROTOCOL_FEE_SHARE,
    DEFAULT_STABLE_AMPLIFIER,
    CurveKind,
    Pool,
)
from amm_pool.core.errors import (
    DuplicateMarket,
    InvalidAmount,
    InvalidPair,
    InvalidPoolParameter,
)
from amm_pool.core.numeric import Numeric, to_decimal

MarketKey = tuple[tuple[str, str], Decimal]


def market_key(token_a: str, token_b: str, fee_tier: Numeric) -> MarketKey:
    """Order-independent identity of a market.

    (X, Y) and (Y, X) at the same fee tier are the same market.
    """
    pair = tuple(sorted((token_a, token_b)))
    return pair, to_decimal(fee_tier, "fee_tier").normalize()


def _parse_curve_kind(curve_kind: Union[CurveKind, str]) -> CurveKind:
    if isinstance(curve_kind, CurveKind):
        return curve_kind
    try:
        return CurveKind(curve_kind)
    except ValueError:
        raise InvalidPoolParameter(f"unknown curve kind: {curve_kind!r}")


def _parameter(value: Numeric, name: str) -> Decimal:
    try:
        return to_decimal(value, name)
    except InvalidAmount as e:
        raise InvalidPoolParameter(str(e))


def validate_new_pool(
    token_a: str,
    token_b: str,
    fee_tier: Numeric = DEFAULT_FEE_TIER,
    existing: Iterable[Pool] = (),
    *,
    curve_kind: Union[CurveKind, str] = CurveKind.CONSTANT_PRODUCT,
    stable_amplifier: Numeric = DEFAULT_STABLE_AMPLIFIER,
    protocol_fee_share: Numeric = DEFAULT_PROTOCOL_FEE_SHARE,
) -> Pool:
    """Check a pool request and build its (empty, unsaved) Pool.

    Args:
        token_a: First asset symbol
        token_b: Second asset symbol
        fee_tier: Fraction of each swap input taken as fee, in [0, 1)
        existing: Pools already in the store, for deduplication
        curve_kind: Pricing curve
        stable_amplifier: A coefficient, used by stable pools
        protocol_fee_share: Fraction of each fee kept by the protocol, in [0, 1]

    Raises:
        InvalidPair: missing/blank token, or both tokens equal
        DuplicateMarket: the unordered pair already trades at this fee tier
        InvalidPoolParameter: a numeric parameter or the curve kind is invalid
    """
    for token in (token_a, token_b):
        if not isinstance(token, str) or not token.strip():
            raise InvalidPair(f"token symbols must be non-empty strings, got {token!r}")
    if token_a == token_b:
        raise InvalidPair(f"pool needs two distinct tokens, got {token_a!r} twice")

    fee = _parameter(fee_tier, "fee_tier")
    if not 0 <= fee < 1:
        raise InvalidPoolParameter(f"fee_tier must be in [0, 1), got {fee}")
    share = _parameter(protocol_fee_share, "protocol_fee_share")
    if not 0 <= share <= 1:
        raise InvalidPoolParameter(f"protocol_fee_share must be in [0, 1], got {share}")
    amplifier = _parameter(stable_amplifier, "stable_amplifier")
    if amplifier <= 0:
        raise InvalidPoolParameter(f"stable_amplifier must be > 0, got {amplifier}")
    kind = _parse_curve_kind(curve_kind)

    key = market_key(token_a, token_b, fee)
    for pool in existing:
        if market_key(pool.token_a, pool.token_b, pool.fee_tier) == key:
            raise DuplicateMarket(
                f"pool {pool.id} already trades {token_a}/{token_b} at fee tier {fee}"
            )

    return Pool(
        token_a=token_a,
        token_b=token_b,
        fee_tier=fee,
        curve_kind=kind,
        stable_amplifier=amplifier,
        protocol_fee_share=share,
    )
