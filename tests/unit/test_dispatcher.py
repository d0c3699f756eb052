"""
Unit tests for OutcomeDispatcher: confirmation gating, consume and publish
paths, and error propagation.
"""

import asyncio
import threading

import pytest

from swapbook import (
    DispatchOutcome, ExecutionError, FillPlan, Insufficient, MissingIdentifier,
    NoteAlreadyConsumed, OutcomeDispatcher, is_affirmative,
)
from swapbook.dispatcher import FILL_PROMPT, PUBLISH_PROMPT
from tests.conftest import make_order
from tests.fakes import FakeExecutor, RecordingPresenter, ScriptedConfirm


def fill_plan(incoming, *orders):
    return FillPlan(
        incoming=incoming,
        selected=tuple(orders),
        spent=sum(o.target_asset.amount for o in orders),
        received=sum(o.source_asset.amount for o in orders),
    )


def dispatch(dispatcher, result):
    return asyncio.run(dispatcher.dispatch(result))


class TestIsAffirmative:

    @pytest.mark.parametrize("answer", ["", "y", "Y", "yes", "YES", "  y\n"])
    def test_yes(self, answer):
        assert is_affirmative(answer)

    @pytest.mark.parametrize("answer", ["n", "no", "N", "nope", "yy", "q"])
    def test_no(self, answer):
        assert not is_affirmative(answer)


class TestFillPath:

    def test_confirmed_plan_consumes_all_selected(self, incoming):
        a = make_order(20, 4, id="0x0a")
        b = make_order(25, 5, id="0x0b")
        executor, presenter, confirm = FakeExecutor(), RecordingPresenter(), ScriptedConfirm("y")

        outcome = dispatch(OutcomeDispatcher(executor, presenter, confirm), fill_plan(incoming, a, b))

        assert outcome == DispatchOutcome.CONSUMED
        assert executor.consumed == [{"0x0a", "0x0b"}]
        assert confirm.prompts == [FILL_PROMPT]
        assert presenter.orders_shown == [("Matching orders", [a, b])]
        assert presenter.updates[0].receive.amount == 45
        assert presenter.updates[0].spend.amount == 9
        assert presenter.messages[-1] == "Consumed 2 orders."

    def test_declined_plan_consumes_nothing(self, incoming):
        executor, presenter, confirm = FakeExecutor(), RecordingPresenter(), ScriptedConfirm("n")

        outcome = dispatch(
            OutcomeDispatcher(executor, presenter, confirm),
            fill_plan(incoming, make_order(20, 10, id="0x01")),
        )

        assert outcome == DispatchOutcome.FILL_DECLINED
        assert executor.consumed == []
        assert executor.published == []
        assert presenter.messages == ["Order cancelled."]

    def test_order_without_id_is_missing_identifier(self, incoming):
        executor = FakeExecutor()
        dispatcher = OutcomeDispatcher(executor, RecordingPresenter(), ScriptedConfirm("y"))

        with pytest.raises(MissingIdentifier):
            dispatch(dispatcher, fill_plan(incoming, make_order(20, 10, id="0x01"), make_order(20, 10)))
        assert executor.consumed == []

    def test_execution_error_propagates_unchanged(self, incoming):
        error = NoteAlreadyConsumed("consume", ["0x01"], "Note 0x01 already consumed")
        presenter = RecordingPresenter()
        dispatcher = OutcomeDispatcher(FakeExecutor(fail_with=error), presenter, ScriptedConfirm("y"))

        with pytest.raises(NoteAlreadyConsumed) as info:
            dispatch(dispatcher, fill_plan(incoming, make_order(20, 10, id="0x01")))
        assert info.value is error
        assert not any(m.startswith("Consumed") for m in presenter.messages)


class TestPublishPath:

    def test_confirmed_publish(self, incoming):
        executor, presenter, confirm = FakeExecutor(), RecordingPresenter(), ScriptedConfirm("")

        outcome = dispatch(OutcomeDispatcher(executor, presenter, confirm), Insufficient(incoming))

        assert outcome == DispatchOutcome.PUBLISHED
        assert executor.published == [incoming]
        assert executor.consumed == []
        assert confirm.prompts == [PUBLISH_PROMPT]
        assert presenter.messages[-1].startswith("Published new order 0x")

    def test_declined_publish(self, incoming):
        executor, presenter = FakeExecutor(), RecordingPresenter()

        outcome = dispatch(OutcomeDispatcher(executor, presenter, ScriptedConfirm("no")), Insufficient(incoming))

        assert outcome == DispatchOutcome.PUBLISH_DECLINED
        assert executor.published == []
        assert presenter.messages[-1] == "Order cancelled."

    def test_publish_failure_propagates(self, incoming):
        error = ExecutionError("publish", [], "insufficient funds")
        dispatcher = OutcomeDispatcher(FakeExecutor(fail_with=error), RecordingPresenter(), ScriptedConfirm("y"))

        with pytest.raises(ExecutionError):
            dispatch(dispatcher, Insufficient(incoming))


class TestPromptThread:

    def test_confirm_runs_off_the_event_loop_thread(self, incoming):
        threads = []

        def confirm(prompt):
            threads.append(threading.get_ident())
            return "n"

        async def run():
            loop_thread = threading.get_ident()
            dispatcher = OutcomeDispatcher(FakeExecutor(), RecordingPresenter(), confirm)
            await dispatcher.dispatch(fill_plan(incoming, make_order(20, 10, id="0x01")))
            await dispatcher.dispatch(Insufficient(incoming))
            return loop_thread

        loop_thread = asyncio.run(run())

        assert len(threads) == 2
        assert loop_thread not in threads


def test_unknown_result_type(incoming):
    dispatcher = OutcomeDispatcher(FakeExecutor(), RecordingPresenter(), ScriptedConfirm())
    with pytest.raises(TypeError):
        dispatch(dispatcher, incoming)
