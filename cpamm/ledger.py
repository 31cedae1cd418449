"""
Host ledger for constant product pools.

Looks pools up by address, runs the pure operations, applies the resulting
asset / LP transfers through custody and persists everything in one commit.
A failed operation discards its staged writes, so neither the pool nor any
account changes.
"""
import logging
import time
from contextlib import contextmanager
from typing import Callable, Optional

import msgpack

from cpamm import operations
from cpamm.config import Config
from cpamm.custody import StateCustody
from cpamm.db import DB, MemoryDB, StateView
from cpamm.errors import (
    DuplicatePool,
    FatalAmmError,
    PoolNotFound,
    ReentrantCall,
)
from cpamm.monitoring import PoolMetrics
from cpamm.operations import DepositReceipt, SwapReceipt, WithdrawReceipt
from cpamm.pool_state import PoolConfig, derive_pool_address

logger = logging.getLogger(__name__)

POOL_PREFIX = b"POOL:"


class PoolLedger:
    def __init__(self, db_path: str = None, db=None,
                 metrics: Optional[PoolMetrics] = None,
                 custody_factory: Callable = StateCustody):
        """
        Args:
            db_path: LevelDB directory; ignored when db is given
            db: Any object with the DB interface (DB or MemoryDB)
            metrics: Optional Prometheus metrics sink
            custody_factory: Builds the asset/LP custody for a StateView
        """
        if db is not None:
            self.db = db
        elif db_path is not None:
            self.db = DB(db_path)
        else:
            self.db = MemoryDB()
        self.metrics = metrics
        self.custody_factory = custody_factory
        self._active: set[bytes] = set()

    @classmethod
    def from_config(cls, config: Config) -> 'PoolLedger':
        if config.database.in_memory:
            db = MemoryDB()
        else:
            db = DB(
                config.database.path,
                write_buffer_size=config.database.write_buffer_size,
                max_open_files=config.database.max_open_files,
            )
        metrics = PoolMetrics() if config.monitoring.enabled else None
        if metrics is not None:
            metrics.serve(config.monitoring.host, config.monitoring.port)
        return cls(db=db, metrics=metrics)

    def close(self):
        if self.metrics is not None:
            self.metrics.stop()
        self.db.close()

    # ==========================================================================
    # POOL STATE
    # ==========================================================================

    def _get_pool(self, address: bytes, state) -> Optional[PoolConfig]:
        raw = state.get(POOL_PREFIX + address)
        if not raw:
            return None
        return PoolConfig.from_dict(msgpack.unpackb(raw, raw=False))

    def _set_pool(self, pool: PoolConfig, state):
        state.set(POOL_PREFIX + pool.address, msgpack.packb(pool.to_dict(), use_bin_type=True))

    def _load_pool(self, address: bytes, state) -> PoolConfig:
        pool = self._get_pool(address, state)
        if pool is None:
            raise PoolNotFound(f"No pool at {address.hex()}")
        return pool

    def get_pool(self, address: bytes) -> PoolConfig:
        return self._load_pool(address, self.db)

    def find_pool(self, seed: int, asset_x: bytes, asset_y: bytes) -> Optional[PoolConfig]:
        return self._get_pool(derive_pool_address(seed, asset_x, asset_y), self.db)

    def list_pools(self) -> list[PoolConfig]:
        return [
            PoolConfig.from_dict(msgpack.unpackb(raw, raw=False))
            for _, raw in self.db.get_prefix(POOL_PREFIX)
        ]

    # ==========================================================================
    # ACCOUNTS
    # ==========================================================================

    def get_account(self, address: bytes) -> dict:
        return StateCustody(self.db).get_account(address)

    def balance_of(self, address: bytes, asset: bytes) -> int:
        return StateCustody(self.db).balance_of(address, asset)

    def lp_balance_of(self, address: bytes, pool_address: bytes) -> int:
        pool = self.get_pool(pool_address)
        return StateCustody(self.db).lp_balance_of(address, pool.lp_mint)

    def fund_account(self, address: bytes, asset: bytes, amount: int):
        """Credit an account with an asset from outside the pools."""
        state = StateView(self.db)
        self.custody_factory(state).credit(address, asset, amount)
        state.commit()
        logger.info(f"Funded {address.hex()[:8]} with {amount} of {asset.hex()[:8]}")

    # ==========================================================================
    # OPERATION RUNNER
    # ==========================================================================

    @contextmanager
    def _operation(self, name: str, pool_address: bytes):
        """
        Run one operation against a fresh StateView.

        Commits on success; on any error discards the view and re-raises.
        """
        if pool_address in self._active:
            raise ReentrantCall(
                f"{name} called while another operation on {pool_address.hex()} is running"
            )
        self._active.add(pool_address)
        state = StateView(self.db)
        started = time.perf_counter()
        try:
            yield state
            if state.dirty:
                state.commit()
            self._record(name, "success", started)
        except FatalAmmError as e:
            state.discard()
            self._record(name, "fatal", started)
            logger.critical(f"{name} on pool {pool_address.hex()} violated an invariant: {e}")
            self._halt(pool_address)
            raise
        except Exception as e:
            state.discard()
            self._record(name, "failure", started)
            logger.warning(f"{name} on pool {pool_address.hex()[:8]} failed: {e}")
            raise
        finally:
            self._active.discard(pool_address)

    def _record(self, name: str, status: str, started: float):
        if self.metrics is None:
            return
        self.metrics.record_operation(name, status, time.perf_counter() - started)
        if status == "fatal":
            self.metrics.record_invariant_violation()

    def _halt(self, pool_address: bytes):
        """Lock a pool whose math disagreed with its invariant."""
        state = StateView(self.db)
        pool = self._get_pool(pool_address, state)
        if pool is None:
            return
        self._set_pool(pool.copy(locked=True), state)
        state.commit()
        logger.critical(f"Pool {pool_address.hex()} halted")

    def _after_commit(self, pool: PoolConfig):
        if self.metrics is not None:
            self.metrics.update_pool(pool)
            self.metrics.update_system()

    # ==========================================================================
    # OPERATIONS
    # ==========================================================================

    def initialize(self, seed: int, asset_x: bytes, asset_y: bytes, fee: int,
                   authority: Optional[bytes] = None) -> PoolConfig:
        """Create a pool; fails with DuplicatePool if the identity is taken."""
        pool = operations.initialize(seed, asset_x, asset_y, fee, authority)
        with self._operation("initialize", pool.address) as state:
            if self._get_pool(pool.address, state) is not None:
                raise DuplicatePool(
                    f"Pool for seed {seed} and pair "
                    f"({asset_x.hex()[:8]}, {asset_y.hex()[:8]}) already exists"
                )
            self._set_pool(pool, state)
        logger.info(f"Pool created: {pool}")
        self._after_commit(pool)
        return pool

    def deposit(self, user: bytes, pool_address: bytes, lp_amount: int,
                max_x: int, max_y: int) -> DepositReceipt:
        with self._operation("deposit", pool_address) as state:
            pool = self._load_pool(pool_address, state)
            new_pool, receipt = operations.deposit(pool, lp_amount, max_x, max_y)

            custody = self.custody_factory(state)
            custody.debit(user, pool.asset_x, receipt.amount_x)
            custody.debit(user, pool.asset_y, receipt.amount_y)
            custody.mint(user, pool.lp_mint, receipt.lp_minted)
            self._set_pool(new_pool, state)

        logger.info(
            f"Deposit: {receipt.amount_x} X + {receipt.amount_y} Y -> "
            f"{receipt.lp_minted} LP (pool {pool_address.hex()[:8]}, "
            f"bootstrap={receipt.bootstrap})"
        )
        self._after_commit(new_pool)
        return receipt

    def swap(self, user: bytes, pool_address: bytes, is_x: bool,
             amount_in: int, min_out: int) -> SwapReceipt:
        with self._operation("swap", pool_address) as state:
            pool = self._load_pool(pool_address, state)
            new_pool, receipt = operations.prepare_swap(pool, is_x, amount_in, min_out)

            asset_in, asset_out = (
                (pool.asset_x, pool.asset_y) if is_x else (pool.asset_y, pool.asset_x)
            )
            custody = self.custody_factory(state)
            # Only a paid-for swap may reach the check that halts the pool
            custody.debit(user, asset_in, receipt.amount_in)
            operations.check_swap_invariant(pool, new_pool)
            custody.credit(user, asset_out, receipt.amount_out)
            self._set_pool(new_pool, state)

        logger.info(
            f"Swap: {receipt.amount_in} {'X' if is_x else 'Y'} -> "
            f"{receipt.amount_out} {'Y' if is_x else 'X'} "
            f"(pool {pool_address.hex()[:8]}, fee kept {receipt.fee_retained})"
        )
        self._after_commit(new_pool)
        return receipt

    def withdraw(self, user: bytes, pool_address: bytes, lp_amount: int,
                 min_x: int, min_y: int) -> WithdrawReceipt:
        with self._operation("withdraw", pool_address) as state:
            pool = self._load_pool(pool_address, state)
            new_pool, receipt = operations.withdraw(pool, lp_amount, min_x, min_y)

            custody = self.custody_factory(state)
            custody.burn(user, pool.lp_mint, receipt.lp_burned)
            custody.credit(user, pool.asset_x, receipt.amount_x)
            custody.credit(user, pool.asset_y, receipt.amount_y)
            self._set_pool(new_pool, state)

        logger.info(
            f"Withdraw: {receipt.lp_burned} LP -> {receipt.amount_x} X + "
            f"{receipt.amount_y} Y (pool {pool_address.hex()[:8]})"
        )
        self._after_commit(new_pool)
        return receipt

    def update_lock(self, signer: bytes, pool_address: bytes, lock: bool) -> PoolConfig:
        with self._operation("update_lock", pool_address) as state:
            pool = self._load_pool(pool_address, state)
            new_pool = operations.set_lock(pool, signer, lock)
            self._set_pool(new_pool, state)
        logger.info(f"Pool {pool_address.hex()[:8]} {'locked' if lock else 'unlocked'}")
        return new_pool

    def update_fee(self, signer: bytes, pool_address: bytes, fee: int) -> PoolConfig:
        with self._operation("update_fee", pool_address) as state:
            pool = self._load_pool(pool_address, state)
            new_pool = operations.set_fee(pool, signer, fee)
            self._set_pool(new_pool, state)
        logger.info(f"Pool {pool_address.hex()[:8]} fee changed {pool.fee} -> {fee}")
        return new_pool

    def quote(self, pool_address: bytes, is_x: bool, amount_in: int) -> SwapReceipt:
        return operations.quote_swap(self.get_pool(pool_address), is_x, amount_in)

    # ==========================================================================
    # PUBLIC API METHODS
    # ==========================================================================

    def get_pool_stats(self, pool_address: bytes) -> dict:
        """Get current pool statistics."""
        pool = self.get_pool(pool_address)

        return {
            'address': pool.address.hex(),
            'asset_x': pool.asset_x.hex(),
            'asset_y': pool.asset_y.hex(),
            'fee': str(pool.fee),
            'reserve_x': str(pool.reserve_x),
            'reserve_y': str(pool.reserve_y),
            'lp_supply': str(pool.lp_supply),
            'lp_mint': pool.lp_mint.hex(),
            'k': str(pool.k),
            'current_price': str(pool.current_price),
            'locked': pool.locked,
            'authority': pool.authority.hex() if pool.authority else None,
        }
