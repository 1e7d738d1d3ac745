"""Typed failures raised by the pool engine.

Every engine operation validates its inputs before the first mutation, so a
raised error always leaves the Pool and Position untouched.
"""


class PoolError(ValueError):
    """Base class for all engine failures."""


class InvalidAmount(PoolError):
    """Amount is non-positive, unparsable, or exceeds what is available."""


class InvalidToken(PoolError):
    """Token is not one of the pool's two assets."""


class InsufficientLiquidity(PoolError):
    """The pool does not hold enough reserves to price the trade."""


class RatioOutOfTolerance(PoolError):
    """Deposit ratio deviates too far from the pool's current ratio."""


class SlippageExceeded(PoolError):
    """Swap output fell below the caller's minimum."""


class DeadlineExceeded(PoolError):
    """Swap was submitted after its deadline."""


class DuplicateMarket(PoolError):
    """A pool for the same pair and fee tier already exists."""


class InvalidPair(PoolError):
    """Token pair is empty or names the same asset twice."""


class InvalidPoolParameter(PoolError):
    """Fee tier, protocol share, amplifier or curve kind is out of range."""


class PositionMismatch(PoolError):
    """Position belongs to a different pool."""


class CurveConvergenceError(PoolError):
    """Newton iteration on the stable curve did not converge."""
