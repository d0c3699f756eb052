"""
swapbook - Swap Order Book on a Note Ledger

Matches an incoming swap order against resting swap notes: compatible notes
are ranked by price, filled greedily within the order's budget and consumed
atomically, or the order is published as a new resting note.

Usage:
    import asyncio
    import numpy as np
    from swapbook import (
        NoteLedger, SetupConfig, setup_order_book, LedgerClient,
        OutcomeDispatcher, ConsolePresenter, SwapEngine, Order, Asset,
    )

    ledger = NoteLedger("local")
    details = setup_order_book(ledger, SetupConfig(), np.random.default_rng(7))

    client = LedgerClient(ledger, details.user)
    dispatcher = OutcomeDispatcher(client, ConsolePresenter(), input)
    engine = SwapEngine(client, dispatcher)

    # Offer 10 ETH for at least 1 BTC
    order = Order(Asset(details.faucet_b, 10), Asset(details.faucet_a, 1))
    outcome = asyncio.run(engine.run(order))
"""

# Core types
from .core import (
    Asset,
    Order,
    NoteRecord,
    BalanceUpdate,
    order_from_record,
    OrderSource,
    OrderExecutor,
    Presenter,
    IncompatibilityReason,
    ExecuteResult,
    SwapBookError,
    MissingIdentifier,
    MalformedNote,
    ConfigError,
    ExecutionError,
    NoteAlreadyConsumed,
    LedgerError,
    AccountNotRegistered,
    IssuerNotRegistered,
    NoteNotFound,
    InsufficientFunds,
    SupplyExceeded,
    MAX_ASSET_AMOUNT,
    NOTE_TYPE_PUBLIC,
    NOTE_TYPE_PRIVATE,
)

# Matching
from .matching import (
    CompatibilityCheck,
    GreedySelection,
    FillPlan,
    FillFailure,
    Insufficient,
    check_compatibility,
    compatible_orders,
    rank_by_price,
    greedy_select,
    plan_fill,
    balance_update,
)

# Swap notes
from .notes import (
    build_swap_tag,
    counter_swap_tag,
    compute_note_id,
    create_swap_note,
    create_swap_notes,
    generate_random_distribution,
)

# Ledger and client
from .ledger import (
    NoteLedger,
    Issuer,
    PendingTransaction,
    Transaction,
    build_consume_transaction,
    build_create_transaction,
    build_mint_transaction,
)
from .client import LedgerClient

# Matching cycle
from .dispatcher import OutcomeDispatcher, DispatchOutcome, is_affirmative
from .engine import SwapEngine
from .display import ConsolePresenter, format_order_table, format_note_table, format_balance_update

# Configuration, setup and persistence
from .config import SwapBookConfig, SetupConfig, OrderBookDetails, load_config, load_details, save_details
from .setup import setup_order_book, create_funded_account
from .store import save_ledger, load_ledger, remove_store

__all__ = [
    # Core
    'Asset', 'Order', 'NoteRecord', 'BalanceUpdate', 'order_from_record',
    'OrderSource', 'OrderExecutor', 'Presenter',
    'IncompatibilityReason', 'ExecuteResult',
    'SwapBookError', 'MissingIdentifier', 'MalformedNote', 'ConfigError',
    'ExecutionError', 'NoteAlreadyConsumed', 'LedgerError', 'AccountNotRegistered',
    'IssuerNotRegistered', 'NoteNotFound', 'InsufficientFunds', 'SupplyExceeded',
    'MAX_ASSET_AMOUNT', 'NOTE_TYPE_PUBLIC', 'NOTE_TYPE_PRIVATE',
    # Matching
    'CompatibilityCheck', 'GreedySelection', 'FillPlan', 'FillFailure', 'Insufficient',
    'check_compatibility', 'compatible_orders', 'rank_by_price', 'greedy_select',
    'plan_fill', 'balance_update',
    # Notes
    'build_swap_tag', 'counter_swap_tag', 'compute_note_id', 'create_swap_note',
    'create_swap_notes', 'generate_random_distribution',
    # Ledger
    'NoteLedger', 'Issuer', 'PendingTransaction', 'Transaction',
    'build_consume_transaction', 'build_create_transaction', 'build_mint_transaction',
    'LedgerClient',
    # Cycle
    'OutcomeDispatcher', 'DispatchOutcome', 'is_affirmative', 'SwapEngine',
    'ConsolePresenter', 'format_order_table', 'format_note_table', 'format_balance_update',
    # Config
    'SwapBookConfig', 'SetupConfig', 'OrderBookDetails', 'load_config',
    'load_details', 'save_details', 'setup_order_book', 'create_funded_account',
    'save_ledger', 'load_ledger', 'remove_store',
]

__version__ = '0.1.0'
