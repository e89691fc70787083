"""Account lifecycle transitions enforced before the account store is touched.

Accounts move non-existent -> created (inactive) -> active <-> inactive. An
illegal request is reported through the notifier and comes back as a
`Skipped` outcome; it is never raised.
"""

from contextlib import nullcontext
from dataclasses import dataclass
from enum import Enum
from typing import Any

from paydispatch.common.interfaces import AccountLocker, AccountStore, Notifier, TransactionRecord
from paydispatch.common.logging import account_id_ctx, logger
from paydispatch.common.transactions import Action, as_action


class SkipReason(str, Enum):
    NO_OP = "NO_OP"
    ALREADY_EXISTS = "ALREADY_EXISTS"
    NOT_CREATED = "NOT_CREATED"
    ALREADY_AT_STATE = "ALREADY_AT_STATE"


@dataclass(frozen=True)
class Applied:
    """The account store performed the transition; `value` is its result."""

    value: Any = None
    outcome = "APPLIED"


@dataclass(frozen=True)
class Skipped:
    """No mutation happened. `message` is what the notifier received, if anything."""

    reason: SkipReason
    message: str | None = None
    outcome = "SKIPPED"


TransitionOutcome = Applied | Skipped


def _no_lock(_account_id: Any):
    return nullcontext()


def _flag(active: bool) -> str:
    return "true" if active else "false"


class AccountLifecycleGuard:
    """Applies create/activate/deactivate only when the account state allows it.

    Check and mutation for one account run inside `locker(account_id)`, so a
    store shared between processes should be paired with a per-account lock.
    """

    def __init__(
        self,
        store: AccountStore,
        notifier: Notifier,
        locker: AccountLocker | None = None,
    ) -> None:
        self.store = store
        self.notifier = notifier
        self.locker = locker or _no_lock

    def process(self, action: Action | str, record: TransactionRecord) -> TransitionOutcome:
        """Dispatch one lifecycle action for the account behind `record`."""

        action = as_action(action)
        if action is Action.NOP:
            return Skipped(SkipReason.NO_OP)
        if action is Action.CREATE:
            return self.create(record)
        if action is Action.ACTIVATE:
            return self.set_active(record, True)
        if action is Action.DEACTIVATE:
            return self.set_active(record, False)
        raise AssertionError(f"unhandled action {action}")

    def _skip(self, reason: SkipReason, message: str) -> Skipped:
        logger.warning("transition skipped reason=%s", reason.value)
        self.notifier.notify(message)
        return Skipped(reason, message)

    def create(self, record: TransactionRecord) -> TransitionOutcome:
        """Create the account unless it already exists."""

        account_id = self.store.get_id(record)
        token = account_id_ctx.set(str(account_id))
        try:
            # Only the check and the mutation hold the lock; notification happens after release.
            with self.locker(account_id):
                exists = self.store.is_created(account_id)
                if not exists:
                    result = self.store.create(account_id, record)
            if exists:
                return self._skip(
                    SkipReason.ALREADY_EXISTS,
                    f"Attempted to create account ID {account_id}, but it already exists.",
                )
            logger.info("account created account_id=%s", account_id)
            return Applied(result)
        finally:
            account_id_ctx.reset(token)

    def set_active(self, record: TransactionRecord, active: bool) -> TransitionOutcome:
        """Flip activeness of an existing account to `active`.

        Requesting the state the account is already in is reported like any
        other illegal transition rather than treated as success.
        """

        account_id = self.store.get_id(record)
        token = account_id_ctx.set(str(account_id))
        try:
            skip = None
            with self.locker(account_id):
                if not self.store.is_created(account_id):
                    skip = (SkipReason.NOT_CREATED, "but the account wasn't created.")
                elif self.store.is_active(account_id) == active:
                    skip = (SkipReason.ALREADY_AT_STATE, "but it already was.")
                else:
                    result = self.store.set_active(account_id, active, record)
            if skip is not None:
                reason, tail = skip
                return self._skip(
                    reason,
                    f"ERROR: Attempted to set account ID {account_id} activeness to {_flag(active)}, {tail}",
                )
            logger.info("account activeness set account_id=%s active=%s", account_id, active)
            return Applied(result)
        finally:
            account_id_ctx.reset(token)
