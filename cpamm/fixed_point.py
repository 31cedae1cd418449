"""
Overflow-checked unsigned integer arithmetic.

Python ints never wrap, so the width limits are enforced explicitly: every
result is checked against the target width and an ArithmeticOverflow is
raised instead of truncating. Reserves and supplies are u64; products of two
u64 values are carried as u128.
"""
from cpamm.errors import ArithmeticOverflow, DivisionByZero

U16_MAX = (1 << 16) - 1
U64_MAX = (1 << 64) - 1
U128_MAX = (1 << 128) - 1


def _check(value: int, limit: int, operation: str) -> int:
    if value < 0:
        raise ArithmeticOverflow(f"{operation} underflowed: {value}")
    if value > limit:
        raise ArithmeticOverflow(f"{operation} overflowed: {value} > {limit}")
    return value


def require_u64(value: int, name: str = "value") -> int:
    """Validate that value is an int in [0, U64_MAX]."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be int, got {type(value).__name__}")
    return _check(value, U64_MAX, name)


def checked_add(a: int, b: int, limit: int = U64_MAX) -> int:
    return _check(a + b, limit, "add")


def checked_sub(a: int, b: int, limit: int = U64_MAX) -> int:
    return _check(a - b, limit, "sub")


def checked_mul(a: int, b: int, limit: int = U128_MAX) -> int:
    return _check(a * b, limit, "mul")


def checked_div(a: int, b: int) -> int:
    """Floor division of non-negative ints."""
    if b == 0:
        raise DivisionByZero(f"division of {a} by zero")
    return a // b


def checked_div_ceil(a: int, b: int) -> int:
    if b == 0:
        raise DivisionByZero(f"division of {a} by zero")
    return -(-a // b)


def mul_div(a: int, b: int, c: int, limit: int = U64_MAX) -> int:
    """
    Compute floor(a * b / c).

    The product is held at u128 width and the quotient must fit in `limit`
    (u64 by default).
    """
    product = checked_mul(a, b)
    return _check(checked_div(product, c), limit, "mul_div")


def mul_div_ceil(a: int, b: int, c: int, limit: int = U64_MAX) -> int:
    """Compute ceil(a * b / c) with the same width rules as mul_div."""
    product = checked_mul(a, b)
    return _check(checked_div_ceil(product, c), limit, "mul_div_ceil")
