"""
Unit tests for LedgerClient: syncing, snapshots and transaction submission.
"""

import asyncio

import pytest

from swapbook import (
    AccountNotRegistered, Asset, ExecutionError, LedgerClient, NoteAlreadyConsumed,
    OrderExecutor, OrderSource, build_create_transaction, build_mint_transaction,
    build_swap_tag, create_swap_note, NOTE_TYPE_PUBLIC,
)
from tests.conftest import MAKER, TAKER, X, Y, make_order


@pytest.fixture
def resting(ledger):
    """Two maker notes offering Y for X."""
    notes = [
        create_swap_note(MAKER, Asset(Y, 20), Asset(X, 10), serial_num=0),
        create_swap_note(MAKER, Asset(Y, 30), Asset(X, 10), serial_num=1),
    ]
    ledger.execute(build_create_transaction(MAKER, notes))
    return notes


TAG_Y_FOR_X = build_swap_tag(NOTE_TYPE_PUBLIC, Y, X)


class TestSync:

    def test_unknown_account(self, ledger):
        with pytest.raises(AccountNotRegistered):
            LedgerClient(ledger, "0xnobody")

    def test_implements_collaborator_protocols(self, ledger):
        client = LedgerClient(ledger, TAKER)
        assert isinstance(client, OrderSource)
        assert isinstance(client, OrderExecutor)

    def test_fetch_tracks_tag_and_syncs(self, ledger, resting):
        client = LedgerClient(ledger, TAKER)
        records = client.fetch_resting_orders(TAG_Y_FOR_X)
        assert records == resting
        assert TAG_Y_FOR_X in client.tracked_tags
        assert client.synced_block == ledger.block_num

    def test_own_notes_are_left_out(self, ledger, resting):
        maker = LedgerClient(ledger, MAKER)
        assert maker.fetch_resting_orders(TAG_Y_FOR_X) == []
        assert maker.get_input_notes(TAG_Y_FOR_X) == resting

    def test_snapshot_is_not_refreshed_without_sync(self, ledger, resting):
        client = LedgerClient(ledger, TAKER)
        client.add_note_tag(TAG_Y_FOR_X)
        client.sync_state()
        extra = create_swap_note(MAKER, Asset(Y, 5), Asset(X, 1), serial_num=2)
        ledger.execute(build_create_transaction(MAKER, [extra]))

        assert extra not in client.get_input_notes()
        client.sync_state()
        assert extra in client.get_input_notes()


class TestSubmission:

    def test_consume_settles_and_drops_from_snapshot(self, ledger, resting):
        client = LedgerClient(ledger, TAKER)
        client.fetch_resting_orders(TAG_Y_FOR_X)

        asyncio.run(client.consume({n.note_id for n in resting}))

        assert ledger.get_balance(TAKER, Y) == 50
        assert ledger.get_balance(TAKER, X) == 980
        assert ledger.get_balance(MAKER, X) == 20
        assert client.get_input_notes() == []

    def test_stale_snapshot_raises_note_already_consumed(self, ledger, resting):
        ledger.register_account("0xrival")
        ledger.execute(build_mint_transaction(X, "0xrival", 100))
        taker = LedgerClient(ledger, TAKER)
        rival = LedgerClient(ledger, "0xrival")
        target = taker.fetch_resting_orders(TAG_Y_FOR_X)[0]
        rival.fetch_resting_orders(TAG_Y_FOR_X)

        asyncio.run(rival.consume({target.note_id}))

        with pytest.raises(NoteAlreadyConsumed) as info:
            asyncio.run(taker.consume({target.note_id}))
        assert info.value.note_ids == (target.note_id,)
        assert "already consumed" in info.value.reason
        assert ledger.get_balance(TAKER, X) == 1000

    def test_consume_without_funds_is_execution_error(self, ledger, resting):
        ledger.register_account("0xbroke")
        broke = LedgerClient(ledger, "0xbroke")
        with pytest.raises(ExecutionError) as info:
            asyncio.run(broke.consume({resting[0].note_id}))
        assert not isinstance(info.value, NoteAlreadyConsumed)

    def test_publish_creates_funded_note(self, ledger):
        client = LedgerClient(ledger, TAKER)
        order = make_order(10, 20, source=X, target=Y)

        note = asyncio.run(client.publish(order))

        assert ledger.get_note(note.note_id) == note
        assert note.sender == TAKER
        assert note.tag == build_swap_tag(NOTE_TYPE_PUBLIC, X, Y)
        assert note.requested_asset() == Asset(Y, 20)
        assert ledger.get_balance(TAKER, X) == 990

    def test_publishing_same_terms_twice_gives_two_notes(self, ledger):
        client = LedgerClient(ledger, TAKER)
        order = make_order(10, 20, source=X, target=Y)
        first = asyncio.run(client.publish(order))
        second = asyncio.run(client.publish(order))
        assert first.note_id != second.note_id
        assert ledger.get_balance(TAKER, X) == 980

    def test_publish_without_funds(self, ledger):
        client = LedgerClient(ledger, TAKER)
        with pytest.raises(ExecutionError):
            asyncio.run(client.publish(make_order(5000, 1, source=X, target=Y)))
