"""
ledger.py - In-Process Note Ledger

The NoteLedger holds issuers, account vaults and notes, and is the only
module that mutates that state. It stands in for the network the order book
talks to: clients sync notes from it and submit transactions to it.

Key responsibilities:
    - Executes transactions atomically (all effects apply or none do)
    - Idempotent on the transaction's intent_id
    - Consuming a swap note pays the requested asset to the note's sender
    - Keeps an audit trail of every applied transaction
"""

from __future__ import annotations
from collections import OrderedDict, defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple
import hashlib
import logging

from .core import (
    AccountId, Asset, ExecuteResult, IssuerId, NoteId, NoteRecord, NoteTag,
    AccountNotRegistered, InsufficientFunds, IssuerNotRegistered, LedgerError,
    MalformedNote, NoteNotFound, SupplyExceeded, MAX_ASSET_AMOUNT,
)

logger = logging.getLogger(__name__)

MAX_REJECTIONS = 256


# ============================================================================
# TRANSACTIONS
# ============================================================================

def _compute_intent_id(
    account_id: AccountId,
    consumed_notes: Tuple[NoteId, ...],
    created_notes: Tuple[NoteRecord, ...],
    minted: Tuple[Asset, ...],
) -> str:
    """
    Deterministic content hash of a transaction's intent.

    Consumed notes are sorted so that the same set of notes always yields
    the same intent regardless of request order.
    """
    parts = [f"account:{account_id}"]
    for note_id in sorted(consumed_notes):
        parts.append(f"consume:{note_id}")
    for note in sorted(created_notes, key=lambda n: n.note_id):
        parts.append(f"create:{note.note_id}")
    for asset in sorted(minted, key=lambda a: (a.issuer, a.amount)):
        parts.append(f"mint:{asset.issuer}|{asset.amount}")
    return hashlib.sha256("|".join(parts).encode()).hexdigest()[:16]


@dataclass(frozen=True, slots=True)
class PendingTransaction:
    """
    A transaction before execution - represents INTENT.

    Attributes:
        account_id: Account executing the transaction
        consumed_notes: Notes the account consumes
        created_notes: Notes the account creates (and funds from its vault)
        minted: Assets issued into the account's vault
        intent_id: Content hash of the above (auto-computed)
    """
    account_id: AccountId
    consumed_notes: Tuple[NoteId, ...] = ()
    created_notes: Tuple[NoteRecord, ...] = ()
    minted: Tuple[Asset, ...] = ()
    intent_id: str = field(default="")

    def __post_init__(self):
        if not self.intent_id:
            object.__setattr__(self, 'intent_id', _compute_intent_id(
                self.account_id, self.consumed_notes, self.created_notes, self.minted
            ))

    def is_empty(self) -> bool:
        return not self.consumed_notes and not self.created_notes and not self.minted


@dataclass(frozen=True, slots=True)
class Transaction:
    """
    An executed, immutable record - represents FACT.

    Attributes:
        account_id: Account that executed it
        consumed_notes: Notes consumed
        created_notes: Notes created
        minted: Assets issued
        intent_id: Content hash from the PendingTransaction
        exec_id: Unique execution identifier (ledger + block)
        block_num: Block in which the transaction was applied
    """
    account_id: AccountId
    consumed_notes: Tuple[NoteId, ...]
    created_notes: Tuple[NoteRecord, ...]
    minted: Tuple[Asset, ...]
    intent_id: str
    exec_id: str
    block_num: int

    def __repr__(self) -> str:
        return (
            f"Transaction({self.exec_id}: {len(self.consumed_notes)} consumed, "
            f"{len(self.created_notes)} created, {len(self.minted)} minted)"
        )


def build_consume_transaction(account_id: AccountId, note_ids: Iterable[NoteId]) -> PendingTransaction:
    """Consume the given notes in a single transaction."""
    return PendingTransaction(account_id=account_id, consumed_notes=tuple(sorted(set(note_ids))))


def build_create_transaction(account_id: AccountId, notes: Iterable[NoteRecord]) -> PendingTransaction:
    """Create (and fund) the given notes from account_id's vault."""
    return PendingTransaction(account_id=account_id, created_notes=tuple(notes))


def build_mint_transaction(issuer_id: IssuerId, recipient: AccountId, amount: int) -> PendingTransaction:
    """Issue amount units of issuer_id's asset into recipient's vault."""
    return PendingTransaction(account_id=recipient, minted=(Asset(issuer_id, amount),))


# ============================================================================
# LEDGER
# ============================================================================

@dataclass(frozen=True, slots=True)
class Issuer:
    """A registered fungible asset issuer (faucet)."""
    issuer_id: IssuerId
    symbol: str
    max_supply: int


class NoteLedger:
    """
    Note-based ledger with atomic, idempotent transaction execution.

    State:
        - accounts: registered account ids
        - issuers: registered faucets with their maximum supply
        - vaults: account -> issuer -> amount
        - notes: every note ever created, consumed or not
        - consumed: ids of consumed notes

    Every applied transaction advances block_num by one.

    Thread Safety:
        Not thread-safe. Callers serialize execute() calls.

    Example:
        ledger = NoteLedger("local")
        ledger.register_issuer("0xbtc", "BTC", 1000)
        ledger.register_account("alice")
        ledger.execute(build_mint_transaction("0xbtc", "alice", 100))
    """

    def __init__(self, name: str):
        self.name = name
        self.accounts: Set[AccountId] = set()
        self.issuers: Dict[IssuerId, Issuer] = {}
        self.vaults: Dict[AccountId, Dict[IssuerId, int]] = {}
        self.notes: Dict[NoteId, NoteRecord] = {}
        self.consumed: Set[NoteId] = set()
        self.supply: Dict[IssuerId, int] = defaultdict(int)
        self.seen_intent_ids: Set[str] = set()
        self.rejections: OrderedDict[str, str] = OrderedDict()
        self.transaction_log: List[Transaction] = []
        self._block_num: int = 0

    # ========================================================================
    # READS
    # ========================================================================

    @property
    def block_num(self) -> int:
        """Number of the latest block (one block per applied transaction)."""
        return self._block_num

    def get_balance(self, account_id: AccountId, issuer_id: IssuerId) -> int:
        """
        Return the amount of issuer_id's asset in an account's vault.

        Raises:
            AccountNotRegistered: If the account is unknown
            IssuerNotRegistered: If the issuer is unknown
        """
        if account_id not in self.accounts:
            raise AccountNotRegistered(f"Account {account_id} not registered")
        if issuer_id not in self.issuers:
            raise IssuerNotRegistered(f"Issuer {issuer_id} not registered")
        return self.vaults[account_id].get(issuer_id, 0)

    def get_vault(self, account_id: AccountId) -> Dict[IssuerId, int]:
        """Return a copy of an account's non-zero balances."""
        if account_id not in self.accounts:
            raise AccountNotRegistered(f"Account {account_id} not registered")
        return {k: v for k, v in self.vaults[account_id].items() if v}

    def get_note(self, note_id: NoteId) -> NoteRecord:
        if note_id not in self.notes:
            raise NoteNotFound(f"Note {note_id} not found")
        return self.notes[note_id]

    def is_consumed(self, note_id: NoteId) -> bool:
        return note_id in self.consumed

    def list_notes(self, tag: Optional[NoteTag] = None, include_consumed: bool = False) -> List[NoteRecord]:
        """
        List notes in creation order, optionally filtered by tag.

        Consumed notes are left out unless include_consumed is set.
        """
        return [
            note for note_id, note in self.notes.items()
            if (tag is None or note.tag == tag)
            and (include_consumed or note_id not in self.consumed)
        ]

    def total_supply(self, issuer_id: IssuerId) -> int:
        """Amount issued so far, wherever it sits (vaults or notes)."""
        if issuer_id not in self.issuers:
            raise IssuerNotRegistered(f"Issuer {issuer_id} not registered")
        return self.supply[issuer_id]

    def locked_in_notes(self, issuer_id: IssuerId) -> int:
        """Amount of an asset currently locked in unconsumed notes."""
        return sum(
            asset.amount
            for note in self.list_notes()
            for asset in note.assets
            if asset.issuer == issuer_id
        )

    def verify_conservation(self) -> Dict[IssuerId, bool]:
        """Check, per issuer, that vaults plus unconsumed notes equal the supply issued."""
        result = {}
        for issuer_id in self.issuers:
            held = sum(vault.get(issuer_id, 0) for vault in self.vaults.values())
            result[issuer_id] = held + self.locked_in_notes(issuer_id) == self.supply[issuer_id]
        return result

    # ========================================================================
    # REGISTRATION (Mutating)
    # ========================================================================

    def register_account(self, account_id: AccountId) -> AccountId:
        """
        Register a new account with an empty vault.

        Raises:
            ValueError: If the account is already registered
        """
        if account_id in self.accounts:
            raise ValueError(f"Account {account_id} already registered")
        self.accounts.add(account_id)
        self.vaults[account_id] = {}
        logger.info("Registered account %s", account_id)
        return account_id

    def register_issuer(self, issuer_id: IssuerId, symbol: str, max_supply: int) -> Issuer:
        """
        Register a fungible asset issuer (faucet).

        Raises:
            ValueError: If the issuer is already registered or max_supply is invalid
        """
        if issuer_id in self.issuers:
            raise ValueError(f"Issuer {issuer_id} already registered")
        if max_supply <= 0 or max_supply > MAX_ASSET_AMOUNT:
            raise ValueError(f"Invalid max_supply {max_supply}")
        issuer = Issuer(issuer_id, symbol, max_supply)
        self.issuers[issuer_id] = issuer
        logger.info("Registered issuer %s (%s, max supply %d)", issuer_id, symbol, max_supply)
        return issuer

    # ========================================================================
    # TRANSACTION EXECUTION (Mutating)
    # ========================================================================

    def _generate_exec_id(self, block_num: int) -> str:
        return f"exec:{self.name}:{block_num:012d}"

    def execute(self, pending: PendingTransaction) -> ExecuteResult:
        """
        Execute a PendingTransaction atomically.

        Validation happens against the current state before anything is
        applied; a rejected transaction leaves the ledger untouched and its
        reason is kept in rejections[intent_id] (the latest MAX_REJECTIONS
        reasons only).

        Args:
            pending: PendingTransaction to execute

        Returns:
            ExecuteResult.APPLIED if successful
            ExecuteResult.ALREADY_APPLIED if the intent was executed before
            ExecuteResult.REJECTED if validation failed
        """
        if pending.is_empty():
            return ExecuteResult.APPLIED

        if pending.intent_id in self.seen_intent_ids:
            logger.warning("ALREADY_APPLIED: intent_id=%s", pending.intent_id)
            return ExecuteResult.ALREADY_APPLIED

        try:
            deltas = self._validate_pending(pending)
        except (LedgerError, MalformedNote) as e:
            self.rejections[pending.intent_id] = str(e)
            self.rejections.move_to_end(pending.intent_id)
            while len(self.rejections) > MAX_REJECTIONS:
                self.rejections.popitem(last=False)
            logger.warning("REJECTED %s: %s", pending.intent_id, e)
            return ExecuteResult.REJECTED

        self._block_num += 1
        tx = Transaction(
            account_id=pending.account_id,
            consumed_notes=pending.consumed_notes,
            created_notes=pending.created_notes,
            minted=pending.minted,
            intent_id=pending.intent_id,
            exec_id=self._generate_exec_id(self._block_num),
            block_num=self._block_num,
        )

        for (account_id, issuer_id), delta in deltas.items():
            self.vaults[account_id][issuer_id] = self.vaults[account_id].get(issuer_id, 0) + delta
        for asset in pending.minted:
            self.supply[asset.issuer] += asset.amount
        self.consumed.update(pending.consumed_notes)
        for note in pending.created_notes:
            self.notes[note.note_id] = note

        self.transaction_log.append(tx)
        self.seen_intent_ids.add(pending.intent_id)
        logger.info("APPLIED %r", tx)
        return ExecuteResult.APPLIED

    def _validate_pending(self, pending: PendingTransaction) -> Dict[Tuple[AccountId, IssuerId], int]:
        """
        Validate a pending transaction and compute its vault deltas.

        Checks performed:
        1. Executing account is registered
        2. Consumed notes exist, are unconsumed and listed once
        3. Created notes are new, sent by the executing account, and carry
           registered assets
        4. Minting stays within each issuer's maximum supply
        5. No vault balance goes negative

        Returns:
            Mapping (account, issuer) -> signed amount change

        Raises:
            LedgerError subclasses describing the first violation found
        """
        account = pending.account_id
        if account not in self.accounts:
            raise AccountNotRegistered(f"Account {account} not registered")

        deltas: Dict[Tuple[AccountId, IssuerId], int] = defaultdict(int)

        if len(set(pending.consumed_notes)) != len(pending.consumed_notes):
            raise LedgerError("Transaction consumes the same note twice")

        for note_id in pending.consumed_notes:
            if note_id not in self.notes:
                raise NoteNotFound(f"Note {note_id} not found")
            if note_id in self.consumed:
                raise LedgerError(f"Note {note_id} already consumed")
            note = self.notes[note_id]
            for asset in note.assets:
                deltas[(account, asset.issuer)] += asset.amount
            if note.is_swap and note.sender != account:
                requested = note.requested_asset()
                if requested.issuer not in self.issuers:
                    raise IssuerNotRegistered(f"Issuer {requested.issuer} not registered")
                if note.sender not in self.accounts:
                    raise AccountNotRegistered(f"Account {note.sender} not registered")
                deltas[(account, requested.issuer)] -= requested.amount
                deltas[(note.sender, requested.issuer)] += requested.amount

        seen_created: Set[NoteId] = set()
        for note in pending.created_notes:
            if note.note_id in self.notes or note.note_id in seen_created:
                raise LedgerError(f"Note {note.note_id} already exists")
            if note.sender != account:
                raise LedgerError(f"Note {note.note_id} sender {note.sender} is not {account}")
            seen_created.add(note.note_id)
            for asset in note.assets:
                if asset.issuer not in self.issuers:
                    raise IssuerNotRegistered(f"Issuer {asset.issuer} not registered")
                deltas[(account, asset.issuer)] -= asset.amount
            if note.is_swap:
                note.requested_asset()

        minted_by_issuer: Dict[IssuerId, int] = defaultdict(int)
        for asset in pending.minted:
            if asset.issuer not in self.issuers:
                raise IssuerNotRegistered(f"Issuer {asset.issuer} not registered")
            minted_by_issuer[asset.issuer] += asset.amount
            deltas[(account, asset.issuer)] += asset.amount
        for issuer_id, amount in minted_by_issuer.items():
            max_supply = self.issuers[issuer_id].max_supply
            if self.supply[issuer_id] + amount > max_supply:
                raise SupplyExceeded(
                    f"Minting {amount} of {issuer_id} exceeds max supply {max_supply}"
                )

        for (account_id, issuer_id), delta in deltas.items():
            proposed = self.vaults[account_id].get(issuer_id, 0) + delta
            if proposed < 0:
                raise InsufficientFunds(
                    f"{account_id} {self.issuers[issuer_id].symbol}: {proposed} < 0"
                )

        return {key: delta for key, delta in deltas.items() if delta}
