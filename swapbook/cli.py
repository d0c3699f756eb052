"""
cli.py - Command-Line Interface

Usage:
    swapbook init                 delete the ledger store and order-book details
    swapbook setup                build a fresh order book and save it
    swapbook login                create and fund a new user account
    swapbook list                 print the resting notes of both directions
    swapbook order ETH 10 BTC 1   offer 10 ETH for 1 BTC (fill or publish)
    swapbook demo                 setup, list and one order in one go

Assets may be given by symbol (BTC, ETH) or by faucet id. Every command
loads the ledger from the store, and mutating commands save it back.
"""

from __future__ import annotations
from dataclasses import replace
from typing import List, Optional, Tuple
import argparse
import asyncio
import logging
import sys

import numpy as np

from .client import LedgerClient
from .config import OrderBookDetails, SwapBookConfig, load_config, load_details, save_details
from .core import AccountId, Asset, ConfigError, IssuerId, Order, SwapBookError
from .dispatcher import DispatchOutcome, OutcomeDispatcher
from .display import ConsolePresenter, format_note_table
from .engine import SwapEngine
from .ledger import NoteLedger
from .setup import create_funded_account, setup_order_book
from .store import load_ledger, remove_store, save_ledger

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def _positive_int(value: str) -> int:
    try:
        amount = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"{value!r} is not an integer")
    if amount <= 0:
        raise argparse.ArgumentTypeError(f"{value!r} must be positive")
    return amount


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="swapbook", description="Swap order book on a note ledger")
    parser.add_argument("--config", help="YAML configuration file (default: swapbook.yaml)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level")

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("init", help="Delete the ledger store and order-book details")
    commands.add_parser("setup", help="Build a fresh order book")
    commands.add_parser("login", help="Create and fund a new user account")
    commands.add_parser("list", help="List resting swap notes")

    order = commands.add_parser("order", help="Fill an order against the book or publish it")
    order.add_argument("source_issuer", help="Asset you offer (symbol or faucet id)")
    order.add_argument("source_amount", type=_positive_int)
    order.add_argument("target_issuer", help="Asset you want (symbol or faucet id)")
    order.add_argument("target_amount", type=_positive_int)
    order.add_argument("--user", help="Acting account (default: the account from setup or login)")
    order.add_argument("--yes", action="store_true", help="Confirm every prompt")

    demo = commands.add_parser("demo", help="Setup, list and run one order")
    demo.add_argument("--yes", action="store_true", help="Confirm every prompt")
    return parser


# ============================================================================
# SESSION HELPERS
# ============================================================================

def _load_session(config: SwapBookConfig) -> Tuple[NoteLedger, OrderBookDetails]:
    return load_ledger(config.store_path), load_details(config.details_path)


def _save_session(config: SwapBookConfig, ledger: NoteLedger, details: OrderBookDetails) -> None:
    save_ledger(ledger, config.store_path)
    save_details(details, config.details_path)


def resolve_issuer(details: OrderBookDetails, name: str) -> IssuerId:
    """
    Map a symbol (case-insensitive) or faucet id to the faucet id.

    Raises:
        ConfigError: If name is neither
    """
    by_name = {
        details.symbol_a.upper(): details.faucet_a,
        details.symbol_b.upper(): details.faucet_b,
        details.faucet_a.upper(): details.faucet_a,
        details.faucet_b.upper(): details.faucet_b,
    }
    try:
        return by_name[name.upper()]
    except KeyError:
        raise ConfigError(f"Unknown asset {name!r}; use {details.symbol_a} or {details.symbol_b}")


def _ask(prompt: str) -> str:
    """Read an answer from stdin; a closed or interrupted stdin declines."""
    try:
        return input(prompt)
    except (EOFError, KeyboardInterrupt):
        print()
        return "n"


def _confirm_for(assume_yes: bool):
    if not assume_yes:
        return _ask

    def confirm(prompt: str) -> str:
        print(prompt + "y")
        return "y"
    return confirm


def _print_book(ledger: NoteLedger, details: OrderBookDetails) -> None:
    directions = [
        (details.symbol_a, details.symbol_b, details.swap_a_b_tag),
        (details.symbol_b, details.symbol_a, details.swap_b_a_tag),
    ]
    for offered, requested, tag in directions:
        for line in format_note_table(f"{offered}/{requested}", offered, requested, ledger.list_notes(tag=tag)):
            print(line)
        print()


def _print_vault(ledger: NoteLedger, details: OrderBookDetails, account_id: AccountId) -> None:
    symbols = {details.faucet_a: details.symbol_a, details.faucet_b: details.symbol_b}
    print(f"Balances of {account_id}:")
    for issuer_id, symbol in symbols.items():
        print(f"  {symbol}: {ledger.get_balance(account_id, issuer_id)}")


# ============================================================================
# COMMANDS
# ============================================================================

def cmd_init(config: SwapBookConfig, args: argparse.Namespace) -> int:
    removed = remove_store(config.store_path, config.details_path)
    print(f"Removed {len(removed)} files." if removed else "Nothing to remove.")
    return 0


def _build_book(config: SwapBookConfig) -> Tuple[NoteLedger, OrderBookDetails]:
    remove_store(config.store_path, config.details_path)
    ledger = NoteLedger(config.ledger_name)
    details = setup_order_book(ledger, config.setup, np.random.default_rng(config.seed))
    _save_session(config, ledger, details)
    print(f"Order book ready: {details.symbol_a} faucet {details.faucet_a}, "
          f"{details.symbol_b} faucet {details.faucet_b}")
    print(f"User account: {details.user}")
    return ledger, details


def cmd_setup(config: SwapBookConfig, args: argparse.Namespace) -> int:
    _build_book(config)
    return 0


def cmd_login(config: SwapBookConfig, args: argparse.Namespace) -> int:
    ledger, details = _load_session(config)
    user = create_funded_account(ledger, [details.faucet_a, details.faucet_b], config.setup.user_fund_amount)
    _save_session(config, ledger, replace(details, user=user))
    print(f"Logged in as {user}")
    return 0


def cmd_list(config: SwapBookConfig, args: argparse.Namespace) -> int:
    ledger, details = _load_session(config)
    _print_book(ledger, details)
    return 0


def run_order(
    ledger: NoteLedger,
    details: OrderBookDetails,
    order: Order,
    user: Optional[AccountId],
    assume_yes: bool,
) -> DispatchOutcome:
    """Run one matching cycle for user against ledger with console prompts."""
    if user is None:
        raise ConfigError("No user account; run `swapbook login` or pass --user")
    client = LedgerClient(ledger, user)
    dispatcher = OutcomeDispatcher(client, ConsolePresenter(), _confirm_for(assume_yes))
    outcome = asyncio.run(SwapEngine(client, dispatcher).run(order))
    _print_vault(ledger, details, user)
    return outcome


def cmd_order(config: SwapBookConfig, args: argparse.Namespace) -> int:
    ledger, details = _load_session(config)
    source = resolve_issuer(details, args.source_issuer)
    target = resolve_issuer(details, args.target_issuer)
    if source == target:
        raise ConfigError("Source and target asset must differ")
    order = Order(Asset(source, args.source_amount), Asset(target, args.target_amount))
    outcome = run_order(ledger, details, order, args.user or details.user, args.yes)
    save_ledger(ledger, config.store_path)
    logger.info("Order finished: %s", outcome.value)
    return 0


def cmd_demo(config: SwapBookConfig, args: argparse.Namespace) -> int:
    ledger, details = _build_book(config)
    print()
    _print_book(ledger, details)

    # Buy one unit of asset A with up to ten units of asset B.
    order = Order(Asset(details.faucet_b, 10), Asset(details.faucet_a, 1))
    print(f"Submitting order: 10 {details.symbol_b} for 1 {details.symbol_a}")
    outcome = run_order(ledger, details, order, details.user, args.yes)
    save_ledger(ledger, config.store_path)
    logger.info("Demo finished: %s", outcome.value)
    return 0


_COMMANDS = {
    "init": cmd_init,
    "setup": cmd_setup,
    "login": cmd_login,
    "list": cmd_list,
    "order": cmd_order,
    "demo": cmd_demo,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else config.logging_level,
        format=LOG_FORMAT,
    )

    try:
        return _COMMANDS[args.command](config, args)
    except SwapBookError as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
