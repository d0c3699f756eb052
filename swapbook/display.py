"""
display.py - Console Presentation

Fixed-width tables for orders and notes, and the balance update preview.
The formatting functions return lines; ConsolePresenter writes them out.
"""

from __future__ import annotations
from typing import Callable, List, Optional, Sequence

from .core import BalanceUpdate, NoteRecord, Order


_ORDER_BAR = "+" + "-" * 68 + "+" + "-" * 20 + "+" + "-" * 18 + "+" + "-" * 20 + "+" + "-" * 18 + "+" + "-" * 10 + "+"
_NOTE_BAR = "+" + "-" * 69 + "+" + "-" * 15 + "+" + "-" * 8 + "+" + "-" * 18 + "+" + "-" * 8 + "+"


def format_order_table(title: str, orders: Sequence[Order]) -> List[str]:
    """Lines of a table listing orders with their price to two decimals."""
    lines = [title, "", _ORDER_BAR]
    lines.append(
        f"| {'Note ID':<66} | {'Requested Asset':<18} | {'Amount Requested':<16} "
        f"| {'Offered Asset':<18} | {'Offered Amount':<16} | {'Price':<8} |"
    )
    lines.append(_ORDER_BAR)
    for order in orders:
        lines.append(
            f"| {order.id or 'N/A':<66} | {order.target_asset.issuer:<18} "
            f"| {order.target_asset.amount:<16} | {order.source_asset.issuer:<18} "
            f"| {order.source_asset.amount:<16} | {float(order.price):<8.2f} |"
        )
    lines.append(_ORDER_BAR)
    return lines


def format_note_table(title: str, offered: str, requested: str, notes: Sequence[NoteRecord]) -> List[str]:
    """Lines of a table listing swap notes of one direction."""
    lines = [f"{title} Notes (total {len(notes)}):", _NOTE_BAR]
    lines.append(
        f"| {'Note ID':<67} | {'Offered Asset':<13} | {'Amount':<6} "
        f"| {'Requested Asset':<16} | {'Amount':<6} |"
    )
    lines.append(_NOTE_BAR)
    for note in notes:
        offered_amount = note.assets[0].amount if note.assets else 0
        requested_amount = note.requested_asset().amount if note.is_swap else "-"
        lines.append(
            f"| {note.note_id:<67} | {offered:<13} | {offered_amount:<6} "
            f"| {requested:<16} | {requested_amount:<6} |"
        )
    lines.append(_NOTE_BAR)
    return lines


def format_balance_update(update: Optional[BalanceUpdate]) -> List[str]:
    if update is None:
        return ["No orders to process. Your balance will not change."]
    return [
        "Balance Update Preview:",
        "------------------------",
        "Assets you will receive:",
        f"  Issuer: {update.receive.issuer}",
        f"  Amount: {update.receive.amount}",
        "",
        "Assets you will spend:",
        f"  Issuer: {update.spend.issuer}",
        f"  Amount: {update.spend.amount}",
        "------------------------",
    ]


class ConsolePresenter:
    """
    Presenter writing to the console.

    Args:
        write: Line sink (default: print)
    """

    def __init__(self, write: Callable[[str], None] = print):
        self.write = write

    def _emit(self, lines: List[str]) -> None:
        for line in lines:
            self.write(line)

    def show_orders(self, title: str, orders: List[Order]) -> None:
        self._emit(format_order_table(title, orders))

    def show_balance_update(self, update: Optional[BalanceUpdate]) -> None:
        self._emit(format_balance_update(update))

    def show_message(self, text: str) -> None:
        self.write(text)
