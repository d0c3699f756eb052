"""
setup.py - Order-Book Bootstrap

Builds a populated order book on a fresh ledger:
1. Register two faucets (BTC, ETH) and an admin account
2. Mint the configured funding to the admin
3. Publish num_notes swap notes in each direction with random sizes
4. Register and fund a default user account

Ids are derived from the ledger name and registration order, so the same
configuration and seed reproduce the same book.
"""

from __future__ import annotations
from typing import Iterable, List
import hashlib
import logging

import numpy as np

from .config import OrderBookDetails, SetupConfig
from .core import AccountId, ExecuteResult, IssuerId, LedgerError, NOTE_TYPE_PUBLIC
from .ledger import NoteLedger, PendingTransaction, build_create_transaction, build_mint_transaction
from .notes import build_swap_tag, create_swap_notes

logger = logging.getLogger(__name__)

SYMBOL_A = "BTC"
SYMBOL_B = "ETH"


def _derive_id(*parts: object) -> str:
    return "0x" + hashlib.sha256("|".join(str(p) for p in parts).encode()).hexdigest()[:30]


def _apply(ledger: NoteLedger, pending: PendingTransaction, what: str) -> None:
    result = ledger.execute(pending)
    if result != ExecuteResult.APPLIED:
        reason = ledger.rejections.get(pending.intent_id, result.value)
        raise LedgerError(f"{what} failed: {reason}")


def create_funded_account(
    ledger: NoteLedger,
    issuer_ids: Iterable[IssuerId],
    amount: int,
    label: str = "user",
) -> AccountId:
    """
    Register a new account and mint amount of every given asset into it.

    Raises:
        LedgerError: If minting is rejected, e.g. the faucet is exhausted
    """
    account_id = ledger.register_account(_derive_id("account", ledger.name, label, len(ledger.accounts)))
    for issuer_id in issuer_ids:
        _apply(ledger, build_mint_transaction(issuer_id, account_id, amount), f"Funding {account_id}")
    return account_id


def setup_order_book(
    ledger: NoteLedger,
    config: SetupConfig,
    rng: np.random.Generator,
    note_type: str = NOTE_TYPE_PUBLIC,
) -> OrderBookDetails:
    """
    Populate ledger with two faucets, an admin holding swap notes in both
    directions, and a funded user.

    Args:
        ledger: Ledger without swapbook faucets
        config: Sizes of the book
        rng: Source of the random note sizes

    Returns:
        OrderBookDetails of the new book

    Raises:
        ValueError: If the faucets are already registered
        LedgerError: If funding or note creation is rejected
    """
    faucet_a = ledger.register_issuer(_derive_id("faucet", ledger.name, SYMBOL_A), SYMBOL_A, config.max_supply).issuer_id
    faucet_b = ledger.register_issuer(_derive_id("faucet", ledger.name, SYMBOL_B), SYMBOL_B, config.max_supply).issuer_id

    admin = create_funded_account(ledger, [faucet_a, faucet_b], config.fund_amount, label="admin")

    batches: List[tuple] = [
        (faucet_a, faucet_b, 0),
        (faucet_b, faucet_a, config.num_notes),
    ]
    for offered, requested, first_serial in batches:
        notes = create_swap_notes(
            config.num_notes, admin,
            offered, config.total_offered,
            requested, config.total_requested,
            rng, note_type=note_type, first_serial=first_serial,
        )
        _apply(ledger, build_create_transaction(admin, notes), "Creating swap notes")
        logger.info("Published %d swap notes offering %s for %s", len(notes), offered, requested)

    user = create_funded_account(ledger, [faucet_a, faucet_b], config.user_fund_amount)

    return OrderBookDetails(
        faucet_a=faucet_a,
        faucet_b=faucet_b,
        symbol_a=SYMBOL_A,
        symbol_b=SYMBOL_B,
        swap_a_b_tag=build_swap_tag(note_type, faucet_a, faucet_b),
        swap_b_a_tag=build_swap_tag(note_type, faucet_b, faucet_a),
        admin=admin,
        user=user,
    )
