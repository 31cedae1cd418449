"""
Constant product pricing: x * y = k

Pure integer functions. Rounding always favours the pool: deposits round
up what the depositor pays, withdrawals and swaps round down what the caller
receives.
"""
from cpamm.errors import DivisionByZero
from cpamm.fixed_point import (
    checked_add,
    checked_div,
    checked_mul,
    checked_sub,
    U128_MAX,
    mul_div,
    mul_div_ceil,
)
from cpamm.pool_state import FEE_DENOMINATOR


def deposit_amounts(reserve_x: int, reserve_y: int, lp_supply: int,
                    lp_amount: int) -> tuple[int, int]:
    """
    Amounts of X and Y needed to mint lp_amount against an existing pool.

    x = ceil(lp_amount * reserve_x / lp_supply)
    y = ceil(lp_amount * reserve_y / lp_supply)
    """
    if lp_supply == 0:
        raise DivisionByZero("deposit ratio undefined for zero LP supply")
    x = mul_div_ceil(lp_amount, reserve_x, lp_supply)
    y = mul_div_ceil(lp_amount, reserve_y, lp_supply)
    return x, y


def withdraw_amounts(reserve_x: int, reserve_y: int, lp_supply: int,
                     lp_amount: int) -> tuple[int, int]:
    """
    Amounts of X and Y returned for burning lp_amount.

    x = floor(lp_amount * reserve_x / lp_supply)
    y = floor(lp_amount * reserve_y / lp_supply)
    """
    if lp_supply == 0:
        raise DivisionByZero("withdraw ratio undefined for zero LP supply")
    x = mul_div(lp_amount, reserve_x, lp_supply)
    y = mul_div(lp_amount, reserve_y, lp_supply)
    return x, y


def amount_after_fee(amount_in: int, fee: int) -> int:
    """floor(amount_in * (10000 - fee) / 10000)"""
    return mul_div(amount_in, FEE_DENOMINATOR - fee, FEE_DENOMINATOR)


def swap_output(reserve_in: int, reserve_out: int, amount_in: int,
                fee: int) -> tuple[int, int]:
    """
    Calculate swap output with the fee taken from the input.

    Formula:
        in_after_fee = floor(amount_in * (10000 - fee) / 10000)
        out = reserve_out - floor(reserve_in * reserve_out / (reserve_in + in_after_fee))

    Returns:
        (in_after_fee, out)
    """
    in_after_fee = amount_after_fee(amount_in, fee)
    k = checked_mul(reserve_in, reserve_out)
    # The denominator is a sum of two u64 values, held at u128 width.
    denominator = checked_add(reserve_in, in_after_fee, limit=U128_MAX)
    remaining_out = checked_div(k, denominator)
    return in_after_fee, checked_sub(reserve_out, remaining_out)
