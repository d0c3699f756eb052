"""
store.py - Ledger Persistence

The CLI runs one command per process, so the in-process NoteLedger is saved
to a YAML file after every mutating command and loaded before the next one.
Notes keep their creation order; everything else is written sorted so the
file diffs cleanly. Rejection reasons are read right after execute() and
are not persisted.
"""

from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, List, Union
import logging

import yaml

from .core import Asset, ConfigError, NoteRecord
from .ledger import Issuer, NoteLedger, Transaction

logger = logging.getLogger(__name__)

STORE_VERSION = 1


def _asset_to_dict(asset: Asset) -> Dict[str, Any]:
    return {"issuer": asset.issuer, "amount": asset.amount}


def _asset_from_dict(data: Dict[str, Any]) -> Asset:
    return Asset(data["issuer"], data["amount"])


def _note_to_dict(note: NoteRecord) -> Dict[str, Any]:
    return {
        "note_id": note.note_id,
        "sender": note.sender,
        "tag": note.tag,
        "assets": [_asset_to_dict(a) for a in note.assets],
        "inputs": list(note.inputs),
        "note_type": note.note_type,
        "script": note.script,
        "serial_num": note.serial_num,
    }


def _note_from_dict(data: Dict[str, Any]) -> NoteRecord:
    return NoteRecord(
        note_id=data["note_id"],
        sender=data["sender"],
        tag=data["tag"],
        assets=tuple(_asset_from_dict(a) for a in data["assets"]),
        inputs=tuple(data["inputs"]),
        note_type=data["note_type"],
        script=data["script"],
        serial_num=data["serial_num"],
    )


def _transaction_to_dict(tx: Transaction) -> Dict[str, Any]:
    return {
        "account_id": tx.account_id,
        "consumed_notes": list(tx.consumed_notes),
        "created_notes": [note.note_id for note in tx.created_notes],
        "minted": [_asset_to_dict(a) for a in tx.minted],
        "intent_id": tx.intent_id,
        "exec_id": tx.exec_id,
        "block_num": tx.block_num,
    }


def _transaction_from_dict(data: Dict[str, Any], notes: Dict[str, NoteRecord]) -> Transaction:
    return Transaction(
        account_id=data["account_id"],
        consumed_notes=tuple(data["consumed_notes"]),
        created_notes=tuple(notes[note_id] for note_id in data["created_notes"]),
        minted=tuple(_asset_from_dict(a) for a in data["minted"]),
        intent_id=data["intent_id"],
        exec_id=data["exec_id"],
        block_num=data["block_num"],
    )


def ledger_to_dict(ledger: NoteLedger) -> Dict[str, Any]:
    return {
        "version": STORE_VERSION,
        "name": ledger.name,
        "block_num": ledger.block_num,
        "accounts": sorted(ledger.accounts),
        "issuers": [
            {"issuer_id": i.issuer_id, "symbol": i.symbol, "max_supply": i.max_supply}
            for i in sorted(ledger.issuers.values(), key=lambda i: i.issuer_id)
        ],
        "vaults": {
            account_id: dict(sorted(vault.items()))
            for account_id, vault in sorted(ledger.vaults.items())
        },
        "supply": dict(sorted(ledger.supply.items())),
        "notes": [_note_to_dict(note) for note in ledger.notes.values()],
        "consumed": sorted(ledger.consumed),
        "seen_intent_ids": sorted(ledger.seen_intent_ids),
        "transactions": [_transaction_to_dict(tx) for tx in ledger.transaction_log],
    }


def ledger_from_dict(data: Dict[str, Any]) -> NoteLedger:
    """
    Rebuild a NoteLedger from ledger_to_dict() output.

    Raises:
        ConfigError: If the data is not a ledger store of a known version
    """
    if not isinstance(data, dict) or data.get("version") != STORE_VERSION:
        raise ConfigError("Not a swapbook ledger store (unknown version)")
    try:
        ledger = NoteLedger(data["name"])
        ledger.accounts = set(data["accounts"])
        ledger.issuers = {
            i["issuer_id"]: Issuer(i["issuer_id"], i["symbol"], i["max_supply"])
            for i in data["issuers"]
        }
        ledger.vaults = {account_id: dict(vault) for account_id, vault in data["vaults"].items()}
        for account_id in ledger.accounts:
            ledger.vaults.setdefault(account_id, {})
        ledger.supply.update(data["supply"])
        for note_data in data["notes"]:
            note = _note_from_dict(note_data)
            ledger.notes[note.note_id] = note
        ledger.consumed = set(data["consumed"])
        ledger.seen_intent_ids = set(data["seen_intent_ids"])
        ledger.transaction_log = [
            _transaction_from_dict(tx, ledger.notes) for tx in data["transactions"]
        ]
        ledger._block_num = data["block_num"]
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigError(f"Corrupt ledger store: {e}") from e
    return ledger


def save_ledger(ledger: NoteLedger, path: Union[str, Path]) -> None:
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(ledger_to_dict(ledger), f, sort_keys=False)
    logger.debug("Saved ledger %s at block %d to %s", ledger.name, ledger.block_num, path)


def load_ledger(path: Union[str, Path]) -> NoteLedger:
    """
    Load a ledger saved by save_ledger().

    Raises:
        ConfigError: If the file is missing or cannot be parsed
    """
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"{path} not found; run `swapbook setup` first")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e
    ledger = ledger_from_dict(data)
    logger.debug("Loaded ledger %s at block %d from %s", ledger.name, ledger.block_num, path)
    return ledger


def remove_store(*paths: Union[str, Path]) -> List[Path]:
    """Delete the given files if present; return the ones that were removed."""
    removed = []
    for path in map(Path, paths):
        if path.exists():
            path.unlink()
            removed.append(path)
            logger.info("Removed %s", path)
    return removed
