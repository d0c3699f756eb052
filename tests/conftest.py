"""
conftest.py - Shared pytest fixtures for swapbook tests

Provides common fixtures used across unit, conformance and functional tests:
- Asset-pair constants and an order factory
- A funded two-party note ledger
- A populated order book built by setup_order_book
"""

import numpy as np
import pytest

from swapbook import (
    Asset, Order, NoteLedger, SetupConfig, ExecuteResult,
    build_mint_transaction, setup_order_book,
)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

X = "0xaaaa"
Y = "0xbbbb"
MAKER = "0xmaker"
TAKER = "0xtaker"


def make_order(source_amount: int, target_amount: int, source: str = Y, target: str = X, id=None) -> Order:
    """
    Build an order offering source_amount of source for target_amount of target.

    The defaults describe a resting order that serves an incoming X -> Y order.
    """
    return Order(Asset(source, source_amount), Asset(target, target_amount), id=id)


def fund(ledger: NoteLedger, account: str, issuer: str, amount: int) -> None:
    assert ledger.execute(build_mint_transaction(issuer, account, amount)) == ExecuteResult.APPLIED


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def incoming():
    """Incoming order offering 10 X for 20 Y."""
    return make_order(10, 20, source=X, target=Y)


@pytest.fixture
def ledger():
    """Ledger with issuers X and Y; the maker holds 1000 Y, the taker 1000 X."""
    ledger = NoteLedger("test")
    ledger.register_issuer(X, "XXX", 1_000_000)
    ledger.register_issuer(Y, "YYY", 1_000_000)
    ledger.register_account(MAKER)
    ledger.register_account(TAKER)
    fund(ledger, MAKER, Y, 1000)
    fund(ledger, TAKER, X, 1000)
    return ledger


@pytest.fixture
def small_setup():
    return SetupConfig(
        num_notes=5, max_supply=1000, fund_amount=100,
        total_offered=50, total_requested=50, user_fund_amount=100,
    )


@pytest.fixture
def book(small_setup):
    """Order book with five notes per direction, seeded for reproducibility."""
    ledger = NoteLedger("book")
    details = setup_order_book(ledger, small_setup, np.random.default_rng(7))
    return ledger, details
