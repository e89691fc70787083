"""Unit tests for account lifecycle guardrails."""

from contextlib import contextmanager

import pytest

from paydispatch.common.errors import UnsupportedAction
from paydispatch.common.lifecycle import AccountLifecycleGuard, Applied, SkipReason, Skipped
from paydispatch.common.logging import account_id_ctx
from paydispatch.common.transactions import Action


RECORD = {"acct": "A1", "txn_id": "T1"}


def test_nop_touches_nothing(guard, store, notifier):
    """A no-op action must not reach the account store at all."""

    outcome = guard.process(Action.NOP, RECORD)

    assert outcome == Skipped(SkipReason.NO_OP)
    assert store.calls == []
    assert notifier.messages == []


def test_legal_create_returns_store_result_unchanged(guard, store, notifier):
    sentinel = object()
    store.create_result = sentinel

    outcome = guard.process(Action.CREATE, RECORD)

    assert isinstance(outcome, Applied)
    assert outcome.value is sentinel
    assert store.mutations() == [("create", "A1", RECORD)]
    assert notifier.messages == []


def test_create_existing_account_notifies_once(guard, store, notifier):
    store.created.add("A1")

    outcome = guard.process(Action.CREATE, RECORD)

    assert outcome.reason is SkipReason.ALREADY_EXISTS
    assert store.mutations() == []
    assert len(notifier.messages) == 1
    assert "A1" in notifier.messages[0]
    assert outcome.message == notifier.messages[0]


def test_activate_inactive_account(guard, store, notifier):
    store.created.add("A1")
    store.set_active_result = "ok"

    outcome = guard.process(Action.ACTIVATE, RECORD)

    assert outcome == Applied("ok")
    assert store.mutations() == [("set_active", "A1", True, RECORD)]
    assert notifier.messages == []


def test_deactivate_active_account(guard, store):
    store.created.add("A1")
    store.active.add("A1")

    outcome = guard.process("deactivate", RECORD)

    assert isinstance(outcome, Applied)
    assert store.mutations() == [("set_active", "A1", False, RECORD)]


def test_activate_already_active_is_reported(guard, store, notifier):
    """Requesting the current state is a notified soft failure, not a silent success."""

    store.created.add("A1")
    store.active.add("A1")

    outcome = guard.process(Action.ACTIVATE, RECORD)

    assert outcome.reason is SkipReason.ALREADY_AT_STATE
    assert store.mutations() == []
    assert len(notifier.messages) == 1
    assert "already was" in notifier.messages[0]


def test_deactivate_uncreated_account_is_reported(guard, store, notifier):
    outcome = guard.process(Action.DEACTIVATE, RECORD)

    assert outcome.reason is SkipReason.NOT_CREATED
    assert store.mutations() == []
    assert notifier.messages == [
        "ERROR: Attempted to set account ID A1 activeness to false, but the account wasn't created."
    ]


def test_not_created_is_checked_before_activeness(guard, store):
    guard.process(Action.ACTIVATE, RECORD)

    assert ("is_active", "A1") not in store.calls


def test_unsupported_action_raises(guard, store):
    with pytest.raises(UnsupportedAction):
        guard.process("suspend", RECORD)
    assert store.calls == []


def test_check_and_mutation_run_under_account_lock(store, notifier):
    held = []
    events = []

    @contextmanager
    def locker(account_id):
        held.append(account_id)
        events.append("acquire")
        yield
        events.append("release")

    original_create = store.create

    def create(account_id, record):
        events.append("create")
        return original_create(account_id, record)

    store.create = create
    guard = AccountLifecycleGuard(store, notifier, locker=locker)

    guard.process(Action.CREATE, RECORD)

    assert held == ["A1"]
    assert events == ["acquire", "create", "release"]


def test_deactivate_already_inactive_is_reported(guard, store, notifier):
    store.created.add("A1")

    outcome = guard.process(Action.DEACTIVATE, RECORD)

    assert outcome.reason is SkipReason.ALREADY_AT_STATE
    assert store.mutations() == []
    assert notifier.messages == [
        "ERROR: Attempted to set account ID A1 activeness to false, but it already was."
    ]


def test_notification_is_sent_after_lock_release(store):
    events = []

    @contextmanager
    def locker(account_id):
        events.append("acquire")
        yield
        events.append("release")

    class RecordingNotifier:
        def notify(self, message):
            events.append("notify")

    store.created.add("A1")
    guard = AccountLifecycleGuard(store, RecordingNotifier(), locker=locker)

    guard.process(Action.CREATE, RECORD)

    assert events == ["acquire", "release", "notify"]


def test_guard_leaves_no_account_in_logging_context(guard, store):
    before = account_id_ctx.get()

    guard.process(Action.CREATE, RECORD)
    store.created.add("A1")
    guard.process(Action.ACTIVATE, RECORD)

    assert account_id_ctx.get() == before
