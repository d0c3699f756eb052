"""
dispatcher.py - Outcome Dispatch for a Fill Plan

Turns a planning result into at most one ledger request:
    FillPlan     -> show plan, confirm, consume every selected order atomically
    Insufficient -> report, confirm, publish the incoming order as a new note

Nothing is built or submitted before the user confirms, so a refusal is a
clean no-op. Execution failures are logged and re-raised unchanged; retrying
is up to the user, against a fresh snapshot.
"""

from __future__ import annotations
from enum import Enum
import asyncio
import logging

from .core import (
    Confirm, ExecutionError, MissingIdentifier, OrderExecutor, Presenter,
)
from .matching import FillFailure, FillPlan, PlanResult, balance_update

logger = logging.getLogger(__name__)


FILL_PROMPT = "Do you want to proceed with this order? (Y/n): "
PUBLISH_PROMPT = "Do you want to publish it as a new order instead? (Y/n): "

_AFFIRMATIVE = {"", "y", "yes"}


class DispatchOutcome(Enum):
    """
    How a matching cycle ended.

    CONSUMED: The selected resting orders were consumed.
    PUBLISHED: The incoming order was published as a new resting order.
    FILL_DECLINED: The user refused the fill plan.
    PUBLISH_DECLINED: The user refused to publish.
    """
    CONSUMED = "consumed"
    PUBLISHED = "published"
    FILL_DECLINED = "fill_declined"
    PUBLISH_DECLINED = "publish_declined"


def is_affirmative(answer: str) -> bool:
    """'y', 'yes' (any case) and an empty answer confirm; everything else declines."""
    return answer.strip().lower() in _AFFIRMATIVE


class OutcomeDispatcher:
    """
    Confirmation-gated dispatch of planning results.

    Args:
        executor: Ledger-execution collaborator (consume / publish)
        presenter: Display sink for plans and messages
        confirm: Prompt capability returning the user's raw answer
    """

    def __init__(self, executor: OrderExecutor, presenter: Presenter, confirm: Confirm):
        self.executor = executor
        self.presenter = presenter
        self.confirm = confirm

    async def dispatch(self, result: PlanResult) -> DispatchOutcome:
        """
        Act on a planning result.

        Raises:
            MissingIdentifier: If a selected order has no ledger id
            ExecutionError: If the ledger refused the request
        """
        if isinstance(result, FillPlan):
            return await self._dispatch_fill(result)
        if isinstance(result, FillFailure):
            return await self._dispatch_publish(result)
        raise TypeError(f"Cannot dispatch {type(result).__name__}")

    async def _ask(self, prompt: str) -> str:
        # confirm may block on stdin; keep it off the event loop.
        return await asyncio.to_thread(self.confirm, prompt)

    async def _dispatch_fill(self, plan: FillPlan) -> DispatchOutcome:
        orders = list(plan.selected)
        self.presenter.show_orders("Matching orders", orders)
        self.presenter.show_balance_update(balance_update(orders))

        if not is_affirmative(await self._ask(FILL_PROMPT)):
            self.presenter.show_message("Order cancelled.")
            logger.info("Fill of %r declined", plan.incoming)
            return DispatchOutcome.FILL_DECLINED

        missing = [order for order in orders if order.id is None]
        if missing:
            raise MissingIdentifier(f"{len(missing)} selected orders have no note id: {missing}")

        note_ids = {order.id for order in orders}
        try:
            await self.executor.consume(note_ids)
        except ExecutionError as e:
            logger.warning("Consuming %d notes failed: %s", len(note_ids), e)
            raise

        self.presenter.show_message(f"Consumed {len(note_ids)} orders.")
        return DispatchOutcome.CONSUMED

    async def _dispatch_publish(self, failure: FillFailure) -> DispatchOutcome:
        incoming = failure.incoming
        self.presenter.show_message(
            f"No combination of resting orders fills {incoming.target_asset.amount} "
            f"{incoming.target_asset.issuer} for {incoming.source_asset.amount} "
            f"{incoming.source_asset.issuer}."
        )

        if not is_affirmative(await self._ask(PUBLISH_PROMPT)):
            self.presenter.show_message("Order cancelled.")
            logger.info("Publishing %r declined", incoming)
            return DispatchOutcome.PUBLISH_DECLINED

        try:
            note = await self.executor.publish(incoming)
        except ExecutionError as e:
            logger.warning("Publishing %r failed: %s", incoming, e)
            raise

        self.presenter.show_message(f"Published new order {note.note_id}.")
        return DispatchOutcome.PUBLISHED
