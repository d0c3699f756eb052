"""
client.py - Session Context for One Account

LedgerClient bundles everything a participant needs to talk to the note
ledger: which account acts, which tags are followed, and the local snapshot
of notes from the last sync. It is passed explicitly to whoever needs it;
there is no module-level client.

It implements both collaborator protocols of the matching core:
    - OrderSource.fetch_resting_orders() - sync, then read the snapshot
    - OrderExecutor.consume() / publish() - submit transactions

The snapshot is only refreshed by sync_state(). A note consumed by someone
else after the sync is still in the snapshot; consuming it fails with
NoteAlreadyConsumed, which is reported, never retried here.
"""

from __future__ import annotations
from typing import Dict, Iterable, List, Optional, Set
import asyncio
import logging

from .core import (
    AccountId, ExecuteResult, NoteId, NoteRecord, NoteTag, Order,
    AccountNotRegistered, ExecutionError, NoteAlreadyConsumed,
    NOTE_TYPE_PUBLIC,
)
from .ledger import NoteLedger, PendingTransaction, build_consume_transaction, build_create_transaction
from .notes import create_swap_note

logger = logging.getLogger(__name__)


class LedgerClient:
    """
    A participant's connection to a NoteLedger.

    Args:
        ledger: The ledger to sync from and submit to
        account_id: The acting account (must be registered)
        note_type: Visibility of notes this client publishes

    Example:
        client = LedgerClient(ledger, "alice")
        records = client.fetch_resting_orders(tag)
        await client.consume({records[0].note_id})
    """

    def __init__(self, ledger: NoteLedger, account_id: AccountId, note_type: str = NOTE_TYPE_PUBLIC):
        if account_id not in ledger.accounts:
            raise AccountNotRegistered(f"Account {account_id} not registered")
        self.ledger = ledger
        self.account_id = account_id
        self.note_type = note_type
        self.tracked_tags: Set[NoteTag] = set()
        self.synced_block: Optional[int] = None
        self._input_notes: Dict[NoteId, NoteRecord] = {}
        self._lock = asyncio.Lock()

    # ========================================================================
    # SYNC
    # ========================================================================

    def add_note_tag(self, tag: NoteTag) -> None:
        """Follow notes published under tag from the next sync on."""
        self.tracked_tags.add(tag)

    def sync_state(self) -> int:
        """
        Replace the local snapshot with the ledger's unconsumed notes for all tracked tags.

        Returns:
            The block number the snapshot reflects
        """
        self._input_notes = {
            note.note_id: note
            for note in self.ledger.list_notes()
            if note.tag in self.tracked_tags
        }
        self.synced_block = self.ledger.block_num
        logger.info(
            "Synced %d notes for %d tags at block %d",
            len(self._input_notes), len(self.tracked_tags), self.synced_block,
        )
        return self.synced_block

    def get_input_notes(self, tag: Optional[NoteTag] = None) -> List[NoteRecord]:
        """Read the local snapshot, optionally for one tag."""
        return [note for note in self._input_notes.values() if tag is None or note.tag == tag]

    def fetch_resting_orders(self, tag: NoteTag) -> List[NoteRecord]:
        """
        Snapshot of notes under tag that this account could fill.

        Tracks the tag, syncs, and leaves out notes the account created
        itself.
        """
        self.add_note_tag(tag)
        self.sync_state()
        return [note for note in self.get_input_notes(tag) if note.sender != self.account_id]

    # ========================================================================
    # EXECUTION
    # ========================================================================

    async def consume(self, order_ids: Set[NoteId]) -> None:
        """
        Consume all given notes in one transaction.

        Raises:
            NoteAlreadyConsumed: If any note is gone from the ledger
            ExecutionError: If the ledger rejected the transaction otherwise
        """
        pending = build_consume_transaction(self.account_id, order_ids)
        await self._submit("consume", pending, order_ids)
        for note_id in order_ids:
            self._input_notes.pop(note_id, None)

    async def publish(self, order: Order) -> NoteRecord:
        """
        Publish order as a new swap note funded from this account.

        Returns:
            The created note

        Raises:
            ExecutionError: If the ledger rejected the note
        """
        note = create_swap_note(
            self.account_id,
            order.source_asset,
            order.target_asset,
            note_type=self.note_type,
            serial_num=self._next_serial(),
        )
        pending = build_create_transaction(self.account_id, [note])
        await self._submit("publish", pending, [note.note_id])
        return note

    def _next_serial(self) -> int:
        return sum(
            1 for note in self.ledger.list_notes(include_consumed=True)
            if note.sender == self.account_id
        )

    async def _submit(self, operation: str, pending: PendingTransaction, note_ids: Iterable[NoteId]) -> None:
        note_ids = list(note_ids)
        async with self._lock:
            result = await asyncio.to_thread(self.ledger.execute, pending)

        if result == ExecuteResult.APPLIED:
            logger.info("%s applied for %d notes", operation, len(note_ids))
            return

        if result == ExecuteResult.ALREADY_APPLIED:
            reason = f"transaction {pending.intent_id} was already applied"
        else:
            reason = self.ledger.rejections.get(pending.intent_id, "rejected by ledger")

        gone = [note_id for note_id in note_ids if self.ledger.is_consumed(note_id)]
        if operation == "consume" and (gone or result == ExecuteResult.ALREADY_APPLIED):
            raise NoteAlreadyConsumed(operation, note_ids, reason)
        raise ExecutionError(operation, note_ids, reason)
