"""
Pool operations: initialize, deposit, swap, withdraw, lock and fee updates.

Each operation takes a PoolConfig plus its arguments, validates everything,
and returns a brand new PoolConfig together with a receipt. The input pool is
never mutated, so a failed operation leaves no trace.
"""
import logging
from dataclasses import asdict, dataclass
from typing import Optional

from cpamm import curve
from cpamm.errors import (
    EmptyPool,
    InsufficientLpBalance,
    InvalidAmount,
    InvalidAuthority,
    InvariantViolation,
    PoolLocked,
    SlippageExceeded,
    ZeroLiquidity,
    ZeroOutput,
)
from cpamm.fixed_point import checked_add, checked_sub, require_u64
from cpamm.pool_state import PoolConfig, validate_fee

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DepositReceipt:
    lp_minted: int
    amount_x: int
    amount_y: int
    bootstrap: bool

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class SwapReceipt:
    is_x: bool
    amount_in: int
    amount_in_after_fee: int
    amount_out: int
    fee_retained: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class WithdrawReceipt:
    lp_burned: int
    amount_x: int
    amount_y: int

    def to_dict(self) -> dict:
        return asdict(self)


def _require_unlocked(pool: PoolConfig):
    if pool.locked:
        raise PoolLocked(f"Pool {pool.address.hex()} is locked")


def _require_positive(amount: int, name: str) -> int:
    if isinstance(amount, int) and not isinstance(amount, bool) and amount <= 0:
        raise InvalidAmount(f"{name} must be greater than zero, got {amount}")
    return require_u64(amount, name)


def _require_authority(pool: PoolConfig, signer: bytes):
    if pool.authority is None:
        raise InvalidAuthority(f"Pool {pool.address.hex()} has no authority")
    if signer != pool.authority:
        raise InvalidAuthority("Signer is not the pool authority")


def initialize(seed: int, asset_x: bytes, asset_y: bytes, fee: int,
               authority: Optional[bytes] = None) -> PoolConfig:
    """
    Create a new, empty pool.

    Duplicate detection needs a lookup and therefore lives in the ledger.

    Raises:
        InvalidFee: fee above 10000 basis points
        InvalidAssetPair: malformed or identical assets
    """
    validate_fee(fee)
    pool = PoolConfig({
        'seed': seed,
        'asset_x': asset_x,
        'asset_y': asset_y,
        'fee': fee,
        'authority': authority,
    })
    pool.check_invariants()
    return pool


def deposit(pool: PoolConfig, lp_amount: int, max_x: int,
            max_y: int) -> tuple[PoolConfig, DepositReceipt]:
    """
    Mint lp_amount LP tokens against a contribution of X and Y.

    On an empty pool the caller sets the price: exactly max_x and max_y are
    taken and lp_amount becomes the initial LP supply. Otherwise the amounts
    are the ceiling of the pool's current ratio and must not exceed the
    caller's maximums.
    """
    _require_unlocked(pool)
    _require_positive(lp_amount, "lp_amount")
    require_u64(max_x, "max_x")
    require_u64(max_y, "max_y")

    bootstrap = pool.lp_supply == 0
    if bootstrap:
        if max_x == 0 or max_y == 0:
            raise ZeroLiquidity("Initial deposit must provide both assets")
        x, y = max_x, max_y
    else:
        x, y = curve.deposit_amounts(
            pool.reserve_x, pool.reserve_y, pool.lp_supply, lp_amount
        )
        if x > max_x or y > max_y:
            raise SlippageExceeded(
                f"Deposit requires ({x}, {y}), limits are ({max_x}, {max_y})"
            )

    new_pool = pool.copy(
        reserve_x=checked_add(pool.reserve_x, x),
        reserve_y=checked_add(pool.reserve_y, y),
        lp_supply=checked_add(pool.lp_supply, lp_amount),
    )
    new_pool.check_invariants()
    return new_pool, DepositReceipt(lp_amount, x, y, bootstrap)


def quote_swap(pool: PoolConfig, is_x: bool, amount_in: int) -> SwapReceipt:
    """Compute the swap outcome without any slippage checks."""
    _require_positive(amount_in, "amount_in")
    if pool.reserve_x == 0 or pool.reserve_y == 0:
        raise EmptyPool(f"Pool {pool.address.hex()} has no liquidity")

    reserve_in, reserve_out = pool.reserves_for(is_x)
    in_after_fee, amount_out = curve.swap_output(
        reserve_in, reserve_out, amount_in, pool.fee
    )
    return SwapReceipt(
        is_x=is_x,
        amount_in=amount_in,
        amount_in_after_fee=in_after_fee,
        amount_out=amount_out,
        fee_retained=amount_in - in_after_fee,
    )


def prepare_swap(pool: PoolConfig, is_x: bool, amount_in: int,
                 min_out: int) -> tuple[PoolConfig, SwapReceipt]:
    """
    Price a swap and build the resulting pool, without the constant product
    check.

    The whole input, fee included, is added to the input reserve.
    """
    _require_unlocked(pool)
    require_u64(min_out, "min_out")
    receipt = quote_swap(pool, is_x, amount_in)

    if receipt.amount_out < min_out:
        raise SlippageExceeded(
            f"Swap output {receipt.amount_out} below minimum {min_out}"
        )
    if receipt.amount_out == 0:
        raise ZeroOutput(f"Swap of {amount_in} produces no output")

    reserve_in, reserve_out = pool.reserves_for(is_x)
    new_in = checked_add(reserve_in, amount_in)
    new_out = checked_sub(reserve_out, receipt.amount_out)
    if is_x:
        new_pool = pool.copy(reserve_x=new_in, reserve_y=new_out)
    else:
        new_pool = pool.copy(reserve_x=new_out, reserve_y=new_in)
    return new_pool, receipt


def check_swap_invariant(pool: PoolConfig, new_pool: PoolConfig):
    """Raise InvariantViolation if a swap shrank the constant product."""
    if new_pool.k < pool.k:
        raise InvariantViolation(
            f"Constant product decreased from {pool.k} to {new_pool.k}"
        )
    new_pool.check_invariants()


def swap(pool: PoolConfig, is_x: bool, amount_in: int,
         min_out: int) -> tuple[PoolConfig, SwapReceipt]:
    """
    Swap amount_in of one asset for the other.

    The new constant product must not be smaller than the old one.
    """
    new_pool, receipt = prepare_swap(pool, is_x, amount_in, min_out)
    check_swap_invariant(pool, new_pool)
    logger.debug(f"Swap receipt: {receipt.to_dict()}")
    return new_pool, receipt


def withdraw(pool: PoolConfig, lp_amount: int, min_x: int,
             min_y: int) -> tuple[PoolConfig, WithdrawReceipt]:
    """Burn lp_amount LP tokens for a floor-rounded share of both reserves."""
    _require_unlocked(pool)
    _require_positive(lp_amount, "lp_amount")
    require_u64(min_x, "min_x")
    require_u64(min_y, "min_y")

    if pool.lp_supply == 0:
        raise EmptyPool(f"Pool {pool.address.hex()} has no LP supply")
    if lp_amount > pool.lp_supply:
        raise InsufficientLpBalance(
            f"Cannot burn {lp_amount} LP tokens, supply is {pool.lp_supply}"
        )

    x, y = curve.withdraw_amounts(
        pool.reserve_x, pool.reserve_y, pool.lp_supply, lp_amount
    )
    if x < min_x or y < min_y:
        raise SlippageExceeded(
            f"Withdraw returns ({x}, {y}), minimums are ({min_x}, {min_y})"
        )

    new_pool = pool.copy(
        reserve_x=checked_sub(pool.reserve_x, x),
        reserve_y=checked_sub(pool.reserve_y, y),
        lp_supply=checked_sub(pool.lp_supply, lp_amount),
    )
    new_pool.check_invariants()
    return new_pool, WithdrawReceipt(lp_amount, x, y)


def set_lock(pool: PoolConfig, signer: bytes, locked: bool) -> PoolConfig:
    """Pause or resume trading. Authority only."""
    _require_authority(pool, signer)
    return pool.copy(locked=locked)


def set_fee(pool: PoolConfig, signer: bytes, fee: int) -> PoolConfig:
    """Change the swap fee. Authority only."""
    _require_authority(pool, signer)
    validate_fee(fee)
    return pool.copy(fee=fee)
