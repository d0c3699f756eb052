"""
engine.py - Matching Cycle

Runs one matching cycle for an incoming order:
1. Take a single snapshot of resting notes under the counterparty tag
2. Convert the notes into orders (malformed notes are skipped)
3. Plan the fill
4. Hand the result to the OutcomeDispatcher

The snapshot is fixed for the whole cycle; it is never refreshed between
planning and dispatch.
"""

from __future__ import annotations
from typing import List
import logging

from .core import MalformedNote, NoteTag, Order, OrderSource, order_from_record, NOTE_TYPE_PUBLIC
from .dispatcher import DispatchOutcome, OutcomeDispatcher
from .matching import PlanResult, plan_fill
from .notes import counter_swap_tag

logger = logging.getLogger(__name__)


class SwapEngine:
    """
    Wires the order source, the planner and the dispatcher together.

    Args:
        source: Supplies resting-note snapshots
        dispatcher: Acts on planning results
        note_type: Visibility of the notes to match against
    """

    def __init__(self, source: OrderSource, dispatcher: OutcomeDispatcher, note_type: str = NOTE_TYPE_PUBLIC):
        self.source = source
        self.dispatcher = dispatcher
        self.note_type = note_type

    def snapshot(self, tag: NoteTag) -> List[Order]:
        """Fetch the resting notes under tag once and convert them to orders."""
        orders: List[Order] = []
        for record in self.source.fetch_resting_orders(tag):
            try:
                orders.append(order_from_record(record))
            except MalformedNote as e:
                logger.debug("Skipping note %s: %s", record.note_id, e)
        return orders

    def plan(self, incoming: Order) -> PlanResult:
        """Dry run: snapshot and plan without dispatching."""
        tag = counter_swap_tag(incoming, self.note_type)
        resting = self.snapshot(tag)
        result = plan_fill(incoming, resting)
        logger.info(
            "Planned %r against %d resting orders: %s",
            incoming, len(resting), type(result).__name__,
        )
        return result

    async def run(self, incoming: Order) -> DispatchOutcome:
        """
        Run one full cycle for incoming.

        Raises:
            MissingIdentifier, ExecutionError: Propagated from dispatch
        """
        result = self.plan(incoming)
        return await self.dispatcher.dispatch(result)
