"""Decimal helpers shared by the engine.

Engine arithmetic runs in a wide decimal context so intermediate products of
reserves never lose digits. Stored amounts are quantized to AMOUNT_QUANTUM:
payouts round down, collected fees round up.
"""

import functools
from decimal import (
    ROUND_DOWN,
    ROUND_HALF_EVEN,
    ROUND_UP,
    Context,
    Decimal,
    DivisionByZero,
    InvalidOperation,
    Overflow,
    localcontext,
)
from typing import Union

from amm_pool.core.errors import InvalidAmount

PRECISION = 60
AMOUNT_QUANTUM = Decimal("1e-18")
ZERO = Decimal("0")
ONE = Decimal("1")

MATH_CONTEXT = Context(
    prec=PRECISION,
    rounding=ROUND_HALF_EVEN,
    traps=[InvalidOperation, DivisionByZero, Overflow],
)

Numeric = Union[Decimal, int, float, str]


def decimal_context(func):
    """Run ``func`` inside MATH_CONTEXT."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        with localcontext(MATH_CONTEXT):
            return func(*args, **kwargs)
    return wrapper


def to_decimal(value: Numeric, name: str = "amount") -> Decimal:
    """Coerce caller input to a finite Decimal.

    Floats go through ``str()`` so 0.1 stays 0.1 rather than its binary
    expansion.
    """
    if isinstance(value, bool):
        raise InvalidAmount(f"{name} must be numeric, got {value!r}")
    if isinstance(value, float):
        value = str(value)
    try:
        result = Decimal(value.strip() if isinstance(value, str) else value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmount(f"{name} must be numeric, got {value!r}")
    if not result.is_finite():
        raise InvalidAmount(f"{name} must be finite, got {value!r}")
    return result


@decimal_context
def round_down(value: Decimal) -> Decimal:
    return value.quantize(AMOUNT_QUANTUM, rounding=ROUND_DOWN)


@decimal_context
def round_up(value: Decimal) -> Decimal:
    return value.quantize(AMOUNT_QUANTUM, rounding=ROUND_UP)


@decimal_context
def round_nearest(value: Decimal) -> Decimal:
    return value.quantize(AMOUNT_QUANTUM, rounding=ROUND_HALF_EVEN)


def to_amount(value: Numeric, name: str = "amount") -> Decimal:
    """Coerce an asset amount, truncating digits below AMOUNT_QUANTUM.

    Sign checks are left to the caller; an input that truncates to zero
    comes back as zero.
    """
    result = to_decimal(value, name)
    try:
        return round_down(result)
    except InvalidOperation:
        raise InvalidAmount(f"{name} is too large: {result}")
