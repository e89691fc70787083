"""Capability interfaces for the collaborators the dispatcher drives.

Concrete implementations live in `paydispatch.services.dispatcher.adapters`;
tests supply in-memory fakes.
"""

from collections.abc import Callable, Mapping
from typing import Any, ContextManager, Protocol

from paydispatch.common.transactions import Action, Category


TransactionRecord = Mapping[str, Any]
Extractor = Callable[[TransactionRecord], tuple[Action | str, Category | str]]
AccountLocker = Callable[[Any], ContextManager[Any]]


class AccountStore(Protocol):
    """Owns account existence and activeness."""

    def get_id(self, record: TransactionRecord) -> Any: ...

    def is_created(self, account_id: Any) -> bool: ...

    def is_active(self, account_id: Any) -> bool: ...

    def create(self, account_id: Any, record: TransactionRecord) -> Any: ...

    def set_active(self, account_id: Any, active: bool, record: TransactionRecord) -> Any: ...


class TransactionLogger(Protocol):
    """Audit-log sink. Failures must propagate to the caller."""

    def log_transaction(self, log_id: Any, record: TransactionRecord) -> None: ...


class Notifier(Protocol):
    """Reports soft failures (illegal but foreseeable transitions)."""

    def notify(self, message: str) -> None: ...
