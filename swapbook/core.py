"""
Core types for the swap order book.

This module provides the foundational data structures and protocols:
1. Protocols: OrderSource, OrderExecutor and Presenter for the collaborators
   around the matching core
2. Immutable data structures: Asset, Order, NoteRecord
3. Exceptions: SwapBookError and domain-specific error types
4. Type aliases: IssuerId, NoteId, AccountId, NoteTag
5. Conversion: order_from_record() turns an observed swap note into an Order

Everything here is a value object. Nothing in this module touches ledger
state.
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_EVEN, getcontext
from enum import Enum
from typing import (
    Any, Awaitable, Callable, Iterable, List, Optional, Protocol, Set, Tuple,
    runtime_checkable,
)


# ============================================================================
# DECIMAL CONTEXT CONFIGURATION
# ============================================================================
#
# Prices are ratios of integer amounts. A wide context keeps two prices that
# differ only far behind the decimal point distinguishable when ranking.
#
_SWAPBOOK_DECIMAL_CONTEXT = getcontext()
_SWAPBOOK_DECIMAL_CONTEXT.prec = 50
_SWAPBOOK_DECIMAL_CONTEXT.rounding = ROUND_HALF_EVEN


# ============================================================================
# CONSTANTS
# ============================================================================

# Largest fungible amount a single asset may carry.
MAX_ASSET_AMOUNT = 2**63 - 2**31

NOTE_TYPE_PUBLIC = "public"
NOTE_TYPE_PRIVATE = "private"

NOTE_SCRIPT_SWAP = "SWAP"

# Swap-note input layout. Slots 0-3 hold the payback recipient digest,
# slot 4 the requested amount and slot 7 the requested issuer.
SWAP_NOTE_INPUTS_LEN = 8
SWAP_INPUT_REQUESTED_AMOUNT = 4
SWAP_INPUT_REQUESTED_ISSUER = 7


# ============================================================================
# TYPE ALIASES
# ============================================================================

IssuerId = str
NoteId = str
AccountId = str
NoteTag = int

# Injected prompt capability: receives the question, returns the raw answer.
Confirm = Callable[[str], str]


# ============================================================================
# ENUMS
# ============================================================================

class IncompatibilityReason(Enum):
    """
    Why a resting order cannot serve an incoming order.

    ASSETS_NOT_MATCHING: The asset classes are not the inverse of each other.
    TOO_FEW_SOURCE_ASSETS: The resting order offers less than the incoming order wants.
    TOO_MANY_TARGET_ASSETS: The resting order asks for more than the incoming order spends.
    """
    ASSETS_NOT_MATCHING = "assets_not_matching"
    TOO_FEW_SOURCE_ASSETS = "too_few_source_assets"
    TOO_MANY_TARGET_ASSETS = "too_many_target_assets"


class ExecuteResult(Enum):
    """
    Outcome of a transaction execution attempt on the note ledger.

    APPLIED: Transaction was validated and applied.
    ALREADY_APPLIED: Transaction intent was processed before (idempotent behavior).
    REJECTED: Transaction failed validation; nothing was applied.
    """
    APPLIED = "applied"
    ALREADY_APPLIED = "already_applied"
    REJECTED = "rejected"


# ============================================================================
# EXCEPTIONS
# ============================================================================

class SwapBookError(Exception):
    """Base exception for all order book errors."""
    pass


class MissingIdentifier(SwapBookError):
    """Raised when an order selected for consumption carries no ledger identifier."""
    pass


class MalformedNote(SwapBookError):
    """Raised when a ledger record does not have the swap-note shape."""
    pass


class ConfigError(SwapBookError):
    """Raised when configuration cannot be read or holds invalid values."""
    pass


class ExecutionError(SwapBookError):
    """
    Raised when the ledger refuses to consume or publish notes.

    Attributes:
        operation: "consume" or "publish"
        note_ids: Notes the operation was about
        reason: The ledger's rejection reason, verbatim
    """

    def __init__(self, operation: str, note_ids: Iterable[NoteId], reason: str):
        self.operation = operation
        self.note_ids = tuple(sorted(note_ids))
        self.reason = reason
        notes = ", ".join(self.note_ids) if self.note_ids else "-"
        super().__init__(f"{operation} failed for notes [{notes}]: {reason}")


class NoteAlreadyConsumed(ExecutionError):
    """Raised when a note from the local snapshot was consumed on the ledger in the meantime."""
    pass


class LedgerError(SwapBookError):
    """Base exception for note ledger errors."""
    pass


class AccountNotRegistered(LedgerError):
    """Raised when operating on an account the ledger does not know."""
    pass


class IssuerNotRegistered(LedgerError):
    """Raised when operating on an asset whose issuer is not registered."""
    pass


class NoteNotFound(LedgerError):
    """Raised when a note id does not exist on the ledger."""
    pass


class InsufficientFunds(LedgerError):
    """Raised when a transaction would drive a vault balance below zero."""
    pass


class SupplyExceeded(LedgerError):
    """Raised when minting would exceed the issuer's maximum supply."""
    pass


# ============================================================================
# CORE DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True, slots=True)
class Asset:
    """
    A fungible quantity of one asset class.

    Attributes:
        issuer: Identifier of the issuing account; defines the asset class.
        amount: Non-negative integer quantity.

    Two assets are of the same class iff their issuers are equal.
    """
    issuer: IssuerId
    amount: int

    def __post_init__(self):
        if not isinstance(self.issuer, str):
            raise ValueError(f"Asset issuer must be str, got {type(self.issuer)}")
        if not self.issuer.strip():
            raise ValueError("Asset issuer cannot be empty")
        if isinstance(self.amount, bool) or not isinstance(self.amount, int):
            raise ValueError(f"Asset amount must be int, got {type(self.amount)}")
        if self.amount < 0:
            raise ValueError(f"Asset amount cannot be negative, got {self.amount}")
        if self.amount > MAX_ASSET_AMOUNT:
            raise ValueError(f"Asset amount {self.amount} exceeds {MAX_ASSET_AMOUNT}")

    def same_class(self, other: Asset) -> bool:
        return self.issuer == other.issuer

    def __repr__(self) -> str:
        return f"Asset({self.amount} {self.issuer})"


@dataclass(frozen=True, slots=True)
class Order:
    """
    A swap order: offer source_asset, want target_asset in return.

    Attributes:
        source_asset: What the order's creator offers.
        target_asset: What the order's creator wants in return.
        id: Ledger-assigned note id. None for orders built locally that
            have not been published yet.

    Orders are immutable value objects. Both amounts must be positive;
    a zero-amount side is not a meaningful offer.
    """
    source_asset: Asset
    target_asset: Asset
    id: Optional[NoteId] = None

    def __post_init__(self):
        if self.source_asset.amount <= 0:
            raise ValueError("Order source amount must be positive")
        if self.target_asset.amount <= 0:
            raise ValueError("Order target amount must be positive")

    @property
    def price(self) -> Decimal:
        """Target units per source unit, from the creator's perspective."""
        return Decimal(self.target_asset.amount) / Decimal(self.source_asset.amount)

    def __repr__(self) -> str:
        ident = self.id[:10] if self.id else "local"
        return (
            f"Order({ident}: {self.source_asset.amount} {self.source_asset.issuer}"
            f" → {self.target_asset.amount} {self.target_asset.issuer})"
        )


@dataclass(frozen=True, slots=True)
class NoteRecord:
    """
    A note as observed on the ledger.

    Attributes:
        note_id: Content-addressed identifier of the note.
        sender: Account that created the note.
        tag: Discovery tag the note is published under.
        assets: Assets locked in the note; a swap note carries exactly one.
        inputs: Script inputs; see SWAP_INPUT_* for the swap layout.
        note_type: NOTE_TYPE_PUBLIC or NOTE_TYPE_PRIVATE.
        script: Script name; NOTE_SCRIPT_SWAP for swap notes.
        serial_num: Creator-chosen nonce making otherwise equal notes distinct.
    """
    note_id: NoteId
    sender: AccountId
    tag: NoteTag
    assets: Tuple[Asset, ...]
    inputs: Tuple[Any, ...]
    note_type: str = NOTE_TYPE_PUBLIC
    script: str = NOTE_SCRIPT_SWAP
    serial_num: int = 0

    @property
    def is_swap(self) -> bool:
        return self.script == NOTE_SCRIPT_SWAP

    def requested_asset(self) -> Asset:
        """
        Return the asset a swap note asks for in exchange for its contents.

        Raises:
            MalformedNote: If the note is not a swap note or its inputs are short
        """
        if not self.is_swap:
            raise MalformedNote(f"Note {self.note_id} is not a swap note")
        if len(self.inputs) < SWAP_NOTE_INPUTS_LEN:
            raise MalformedNote(
                f"Note {self.note_id} has {len(self.inputs)} inputs, "
                f"expected {SWAP_NOTE_INPUTS_LEN}"
            )
        try:
            return Asset(
                self.inputs[SWAP_INPUT_REQUESTED_ISSUER],
                self.inputs[SWAP_INPUT_REQUESTED_AMOUNT],
            )
        except (TypeError, AttributeError, ValueError) as e:
            raise MalformedNote(f"Note {self.note_id} has invalid swap inputs: {e}") from e


def order_from_record(record: NoteRecord) -> Order:
    """
    Convert an observed swap note into an Order.

    The source asset is the note's first (and only) asset; the target asset
    is read from the fixed-position requested issuer and amount inputs.

    Raises:
        MalformedNote: If the record cannot describe a valid order
    """
    if not record.assets:
        raise MalformedNote(f"Note {record.note_id} carries no asset")
    target = record.requested_asset()
    try:
        return Order(source_asset=record.assets[0], target_asset=target, id=record.note_id)
    except ValueError as e:
        raise MalformedNote(f"Note {record.note_id} is not a valid order: {e}") from e


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class OrderSource(Protocol):
    """
    Supplies snapshots of resting swap notes.

    The call may sync with the ledger internally; the returned list is a
    snapshot and is not updated afterwards.
    """

    def fetch_resting_orders(self, tag: NoteTag) -> List[NoteRecord]:
        ...


@runtime_checkable
class OrderExecutor(Protocol):
    """
    Submits consume and publish requests to the ledger.

    Both methods are coroutines and raise ExecutionError on failure.
    """

    def consume(self, order_ids: Set[NoteId]) -> Awaitable[None]:
        """Consume all given notes in one atomic transaction."""
        ...

    def publish(self, order: Order) -> Awaitable[NoteRecord]:
        """Create and broadcast a new swap note with the order's terms."""
        ...


@runtime_checkable
class Presenter(Protocol):
    """One-way display sink. Has no influence on matching decisions."""

    def show_orders(self, title: str, orders: List[Order]) -> None:
        ...

    def show_balance_update(self, update: Optional['BalanceUpdate']) -> None:
        ...

    def show_message(self, text: str) -> None:
        ...


@dataclass(frozen=True, slots=True)
class BalanceUpdate:
    """
    Net change to the participant's vault if a fill plan is executed.

    Attributes:
        spend: Asset leaving the vault (sum of the selected orders' targets)
        receive: Asset entering the vault (sum of the selected orders' sources)
    """
    spend: Asset
    receive: Asset
