"""
Tests for account balances held in ledger state.
"""
import pytest

from cpamm.custody import StateCustody
from cpamm.db import MemoryDB, StateView
from cpamm.errors import ArithmeticOverflow, InsufficientBalance, InsufficientLpBalance
from cpamm.fixed_point import U64_MAX

ALICE = b'\xa1' * 20
ASSET = b'\x01' * 20
LP_MINT = b'\x0f' * 20


@pytest.fixture
def custody():
    return StateCustody(StateView(MemoryDB()))


def test_unknown_account_is_empty(custody):
    assert custody.get_account(ALICE) == {'balances': {}, 'lp_tokens': {}}
    assert custody.balance_of(ALICE, ASSET) == 0


def test_credit_then_debit(custody):
    custody.credit(ALICE, ASSET, 500)
    custody.debit(ALICE, ASSET, 200)
    assert custody.balance_of(ALICE, ASSET) == 300


def test_debit_more_than_balance(custody):
    custody.credit(ALICE, ASSET, 10)
    with pytest.raises(InsufficientBalance):
        custody.debit(ALICE, ASSET, 11)
    assert custody.balance_of(ALICE, ASSET) == 10


def test_credit_overflow(custody):
    custody.credit(ALICE, ASSET, U64_MAX)
    with pytest.raises(ArithmeticOverflow):
        custody.credit(ALICE, ASSET, 1)


def test_mint_and_burn(custody):
    custody.mint(ALICE, LP_MINT, 1000)
    custody.burn(ALICE, LP_MINT, 400)
    assert custody.lp_balance_of(ALICE, LP_MINT) == 600
    with pytest.raises(InsufficientLpBalance):
        custody.burn(ALICE, LP_MINT, 601)


def test_changes_stay_staged(custody):
    custody.credit(ALICE, ASSET, 5)
    assert custody.state.db.get(b"ACCOUNT:" + ALICE) is None
    custody.state.commit()
    assert custody.state.db.get(b"ACCOUNT:" + ALICE) is not None
