"""
notes.py - Swap Note Construction

This module builds the ledger records that represent resting orders:
1. build_swap_tag() - Discovery tag for one swap direction of an asset pair
2. counter_swap_tag() - Tag under which counterparties of an order publish
3. compute_note_id() - Content hash identifying a note
4. create_swap_note() - Factory for a single swap note
5. generate_random_distribution() / create_swap_notes() - Split a total
   offer into many notes of random size

A swap note locks the offered asset and records the requested asset in its
inputs (see SWAP_INPUT_* in core). Whoever consumes the note receives the
offered asset and pays the requested asset back to the note's sender.
"""

from __future__ import annotations
from typing import Any, List, Sequence, Tuple
import hashlib

import numpy as np

from .core import (
    AccountId, Asset, IssuerId, NoteId, NoteRecord, NoteTag, Order,
    NOTE_SCRIPT_SWAP, NOTE_TYPE_PRIVATE, NOTE_TYPE_PUBLIC, SWAP_NOTE_INPUTS_LEN,
    SWAP_INPUT_REQUESTED_AMOUNT, SWAP_INPUT_REQUESTED_ISSUER,
)


# Top bit of a tag marks notes that are not publicly discoverable.
_PRIVATE_TAG_BIT = 1 << 31
_TAG_MASK = _PRIVATE_TAG_BIT - 1


def build_swap_tag(note_type: str, offered_issuer: IssuerId, requested_issuer: IssuerId) -> NoteTag:
    """
    Build the discovery tag for swaps offering one asset for another.

    The tag is direction-sensitive: offering A for B and offering B for A
    produce different tags.

    Args:
        note_type: NOTE_TYPE_PUBLIC or NOTE_TYPE_PRIVATE
        offered_issuer: Issuer of the asset locked in the note
        requested_issuer: Issuer of the asset asked for

    Returns:
        31-bit tag, with the private bit set for private notes

    Raises:
        ValueError: If note_type is unknown or both issuers are equal
    """
    if note_type not in (NOTE_TYPE_PUBLIC, NOTE_TYPE_PRIVATE):
        raise ValueError(f"Unknown note type: {note_type}")
    if offered_issuer == requested_issuer:
        raise ValueError("A swap needs two different issuers")
    digest = hashlib.sha256(f"swap|{offered_issuer}|{requested_issuer}".encode()).digest()
    tag = int.from_bytes(digest[:4], "big") & _TAG_MASK
    if note_type == NOTE_TYPE_PRIVATE:
        tag |= _PRIVATE_TAG_BIT
    return tag


def counter_swap_tag(order: Order, note_type: str = NOTE_TYPE_PUBLIC) -> NoteTag:
    """Tag of resting orders that offer what `order` wants and want what it offers."""
    return build_swap_tag(note_type, order.target_asset.issuer, order.source_asset.issuer)


def _payback_digest(sender: AccountId, serial_num: int) -> Tuple[int, int, int, int]:
    # Four words standing in for the payback recipient commitment.
    digest = hashlib.sha256(f"payback|{sender}|{serial_num}".encode()).digest()
    return tuple(int.from_bytes(digest[i:i + 8], "big") for i in range(0, 32, 8))


def compute_note_id(
    sender: AccountId,
    assets: Sequence[Asset],
    inputs: Sequence[Any],
    serial_num: int,
) -> NoteId:
    """
    Compute the content-addressed id of a note.

    Same sender, assets, inputs and serial number always give the same id.
    """
    parts = [f"sender:{sender}", f"serial:{serial_num}"]
    for asset in assets:
        parts.append(f"asset:{asset.issuer}|{asset.amount}")
    parts.append("inputs:" + ",".join(str(value) for value in inputs))
    return "0x" + hashlib.sha256("|".join(parts).encode()).hexdigest()


def create_swap_note(
    sender: AccountId,
    offered: Asset,
    requested: Asset,
    note_type: str = NOTE_TYPE_PUBLIC,
    serial_num: int = 0,
) -> NoteRecord:
    """
    Create a swap note offering one asset for another.

    Args:
        sender: Account creating (and funding) the note
        offered: Asset locked in the note
        requested: Asset the consumer must pay back to sender
        note_type: Visibility of the note
        serial_num: Nonce distinguishing otherwise identical notes

    Returns:
        NoteRecord with the swap input layout and its discovery tag

    Example:
        note = create_swap_note(
            "0xadmin",
            Asset("0xbtc", 10),
            Asset("0xeth", 20),
        )
        # note.inputs[4] == 20, note.inputs[7] == "0xeth"
    """
    if offered.amount <= 0 or requested.amount <= 0:
        raise ValueError("Swap amounts must be positive")

    inputs: List[Any] = [0] * SWAP_NOTE_INPUTS_LEN
    inputs[0:4] = _payback_digest(sender, serial_num)
    inputs[SWAP_INPUT_REQUESTED_AMOUNT] = requested.amount
    inputs[SWAP_INPUT_REQUESTED_ISSUER] = requested.issuer

    assets = (offered,)
    return NoteRecord(
        note_id=compute_note_id(sender, assets, inputs, serial_num),
        sender=sender,
        tag=build_swap_tag(note_type, offered.issuer, requested.issuer),
        assets=assets,
        inputs=tuple(inputs),
        note_type=note_type,
        script=NOTE_SCRIPT_SWAP,
        serial_num=serial_num,
    )


def generate_random_distribution(n: int, total: int, rng: np.random.Generator) -> List[int]:
    """
    Split total into n non-zero integers, in random order.

    The first n-1 values are drawn from [1, total // n]; the last value takes
    the remainder, which is therefore at least total // n.

    Raises:
        ValueError: If n < 1 or total < n
    """
    if n < 1:
        raise ValueError("n must be at least 1")
    if total < n:
        raise ValueError("Total must be at least n so that every value is non-zero")

    upper = total // n
    values = [int(v) for v in rng.integers(1, upper, size=n - 1, endpoint=True)]
    values.append(total - sum(values))
    rng.shuffle(values)
    return values


def create_swap_notes(
    num_notes: int,
    sender: AccountId,
    offered_issuer: IssuerId,
    total_offered: int,
    requested_issuer: IssuerId,
    total_requested: int,
    rng: np.random.Generator,
    note_type: str = NOTE_TYPE_PUBLIC,
    first_serial: int = 0,
) -> List[NoteRecord]:
    """
    Create num_notes swap notes that together offer total_offered for total_requested.

    Offered and requested amounts are distributed independently, so the
    notes end up with different prices.
    """
    offering = generate_random_distribution(num_notes, total_offered, rng)
    requesting = generate_random_distribution(num_notes, total_requested, rng)
    return [
        create_swap_note(
            sender,
            Asset(offered_issuer, offered_amount),
            Asset(requested_issuer, requested_amount),
            note_type=note_type,
            serial_num=first_serial + i,
        )
        for i, (offered_amount, requested_amount) in enumerate(zip(offering, requesting))
    ]
