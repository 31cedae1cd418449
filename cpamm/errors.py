"""
Error types raised by the pool engine.

Every error aborts the whole operation; the ledger never applies a partial
state change. InvariantViolation is the only fatal kind: it means the pricing
math disagrees with its own invariant and the pool must stop trading.
"""


class AmmError(Exception):
    """Base class for all pool errors."""
    pass


class FatalAmmError(AmmError):
    """Defect signal, not a user error."""
    pass


class InvalidFee(AmmError):
    pass


class InvalidAmount(AmmError):
    pass


class InvalidAssetPair(AmmError):
    pass


class InvalidAuthority(AmmError):
    pass


class DuplicatePool(AmmError):
    pass


class PoolNotFound(AmmError):
    pass


class PoolLocked(AmmError):
    pass


class ReentrantCall(AmmError):
    pass


class ZeroLiquidity(AmmError):
    pass


class ZeroOutput(AmmError):
    pass


class SlippageExceeded(AmmError):
    pass


class InsufficientBalance(AmmError):
    pass


class InsufficientLpBalance(AmmError):
    pass


class EmptyPool(AmmError):
    pass


class ArithmeticOverflow(AmmError):
    pass


class DivisionByZero(AmmError):
    pass


class InvariantViolation(FatalAmmError):
    pass
