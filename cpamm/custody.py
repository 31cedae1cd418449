"""
Asset and LP token custody.

The pool engine never moves balances itself; the ledger hands the computed
amounts to these interfaces. StateCustody keeps account balances in the same
key/value state as the pools so both change in one commit.
"""
import logging
from abc import ABC, abstractmethod

import msgpack

from cpamm.errors import InsufficientBalance, InsufficientLpBalance
from cpamm.fixed_point import checked_add, require_u64

logger = logging.getLogger(__name__)

ACCOUNT_PREFIX = b"ACCOUNT:"


class AssetCustody(ABC):
    @abstractmethod
    def debit(self, account: bytes, asset: bytes, amount: int):
        """Take amount of asset from account or raise InsufficientBalance."""

    @abstractmethod
    def credit(self, account: bytes, asset: bytes, amount: int):
        """Give amount of asset to account."""


class LpCustody(ABC):
    @abstractmethod
    def mint(self, account: bytes, lp_mint: bytes, amount: int):
        """Create amount LP tokens of lp_mint for account."""

    @abstractmethod
    def burn(self, account: bytes, lp_mint: bytes, amount: int):
        """Destroy amount LP tokens or raise InsufficientLpBalance."""


def _empty_account() -> dict:
    return {'balances': {}, 'lp_tokens': {}}


class StateCustody(AssetCustody, LpCustody):
    """Account balances stored under ACCOUNT:<address> as msgpack dicts."""

    def __init__(self, state):
        self.state = state

    def get_account(self, address: bytes) -> dict:
        raw = self.state.get(ACCOUNT_PREFIX + address)
        if not raw:
            return _empty_account()
        return msgpack.unpackb(raw, raw=False)

    def set_account(self, address: bytes, account: dict):
        self.state.set(ACCOUNT_PREFIX + address, msgpack.packb(account, use_bin_type=True))

    def balance_of(self, address: bytes, asset: bytes) -> int:
        return self.get_account(address)['balances'].get(asset.hex(), 0)

    def lp_balance_of(self, address: bytes, lp_mint: bytes) -> int:
        return self.get_account(address)['lp_tokens'].get(lp_mint.hex(), 0)

    def debit(self, account: bytes, asset: bytes, amount: int):
        require_u64(amount, "amount")
        data = self.get_account(account)
        balance = data['balances'].get(asset.hex(), 0)
        if balance < amount:
            raise InsufficientBalance(
                f"Account {account.hex()[:8]} holds {balance} of "
                f"{asset.hex()[:8]}, needs {amount}"
            )
        data['balances'][asset.hex()] = balance - amount
        self.set_account(account, data)

    def credit(self, account: bytes, asset: bytes, amount: int):
        data = self.get_account(account)
        balance = data['balances'].get(asset.hex(), 0)
        data['balances'][asset.hex()] = checked_add(balance, amount)
        self.set_account(account, data)

    def mint(self, account: bytes, lp_mint: bytes, amount: int):
        data = self.get_account(account)
        balance = data['lp_tokens'].get(lp_mint.hex(), 0)
        data['lp_tokens'][lp_mint.hex()] = checked_add(balance, amount)
        self.set_account(account, data)

    def burn(self, account: bytes, lp_mint: bytes, amount: int):
        require_u64(amount, "amount")
        data = self.get_account(account)
        balance = data['lp_tokens'].get(lp_mint.hex(), 0)
        if balance < amount:
            raise InsufficientLpBalance(
                f"Account {account.hex()[:8]} holds {balance} LP tokens, "
                f"needs {amount}"
            )
        data['lp_tokens'][lp_mint.hex()] = balance - amount
        self.set_account(account, data)
