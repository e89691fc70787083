"""Concrete collaborators for the transaction pipeline.

SQL-backed account store and audit log, database/webhook notifiers, and a
Redis per-account lock that serializes guard checks across processes.
"""

from collections.abc import Mapping
from contextlib import contextmanager
from typing import Any

import httpx
import redis
from redis.exceptions import LockError, LockNotOwnedError

from paydispatch.common.errors import MissingInput
from paydispatch.common.logging import logger
from paydispatch.common.metrics import notifications_sent_total
from paydispatch.services.dispatcher.models import Account, NotificationLog, TransactionLog


class SqlAccountStore:
    """Account store over the `accounts` table.

    Accounts are keyed by one record field (`payer_id` for PayPal IPN).
    """

    def __init__(self, session_factory, id_field: str = "payer_id") -> None:
        self.session_factory = session_factory
        self.id_field = id_field

    def get_id(self, record: Mapping[str, Any]) -> str:
        account_id = record.get(self.id_field)
        if account_id is None or account_id == "":
            raise MissingInput(f"Record has no account id field {self.id_field!r}")
        return str(account_id)

    def is_created(self, account_id: str) -> bool:
        with self.session_factory() as db:
            return db.get(Account, account_id) is not None

    def is_active(self, account_id: str) -> bool:
        with self.session_factory() as db:
            account = db.get(Account, account_id)
            return bool(account and account.is_active)

    def create(self, account_id: str, record: Mapping[str, Any]) -> str:
        """Insert a new, inactive account and return its id."""

        with self.session_factory() as db:
            db.add(Account(account_id=account_id, is_active=False, payer_email=record.get("payer_email")))
            db.commit()
        return account_id

    def set_active(self, account_id: str, active: bool, record: Mapping[str, Any]) -> bool:
        """Persist the new activeness flag and return it."""

        with self.session_factory() as db:
            account = db.get(Account, account_id)
            if account is None:
                raise LookupError(f"account {account_id} disappeared before activeness update")
            account.is_active = active
            db.commit()
        return active


class SqlTransactionLogger:
    """Audit log writing one `transaction_logs` row per received record."""

    def __init__(self, session_factory) -> None:
        self.session_factory = session_factory

    def log_transaction(self, log_id: Any, record: Mapping[str, Any]) -> None:
        with self.session_factory() as db:
            db.add(TransactionLog(log_id=str(log_id), payload=dict(record)))
            db.commit()


class SqlNotifier:
    """Persists soft-failure notifications and mirrors them to the log."""

    channel = "db"

    def __init__(self, session_factory, service_name: str = "dispatcher") -> None:
        self.session_factory = session_factory
        self.service_name = service_name

    def notify(self, message: str) -> None:
        with self.session_factory() as db:
            db.add(NotificationLog(channel=self.channel, message=message))
            db.commit()
        logger.warning(message)
        notifications_sent_total.labels(service=self.service_name, channel=self.channel).inc()


class WebhookNotifier:
    """Posts soft-failure notifications to an operator webhook."""

    channel = "webhook"

    def __init__(self, url: str, service_name: str = "dispatcher", timeout: float = 5.0, client=None) -> None:
        self.url = url
        self.service_name = service_name
        self.client = client or httpx.Client(timeout=timeout)

    def notify(self, message: str) -> None:
        response = self.client.post(self.url, json={"service": self.service_name, "message": message})
        response.raise_for_status()
        notifications_sent_total.labels(service=self.service_name, channel=self.channel).inc()


class FanoutNotifier:
    """Delivers each notification to every wrapped notifier in order."""

    def __init__(self, *notifiers) -> None:
        self.notifiers = notifiers

    def notify(self, message: str) -> None:
        for notifier in self.notifiers:
            notifier.notify(message)


class RedisAccountLocker:
    """Per-account distributed lock used around lifecycle guard checks."""

    def __init__(
        self,
        client: redis.Redis,
        timeout_seconds: int = 10,
        blocking_timeout_seconds: int = 5,
        prefix: str = "paydispatch:account:",
    ) -> None:
        self.client = client
        self.timeout_seconds = timeout_seconds
        self.blocking_timeout_seconds = blocking_timeout_seconds
        self.prefix = prefix

    @contextmanager
    def __call__(self, account_id: Any):
        name = f"{self.prefix}{account_id}"
        lock = self.client.lock(name, timeout=self.timeout_seconds, blocking_timeout=self.blocking_timeout_seconds)
        if not lock.acquire():
            raise LockError(f"could not acquire account lock {name} within {self.blocking_timeout_seconds}s")
        try:
            yield lock
        finally:
            try:
                lock.release()
            except LockNotOwnedError:
                # The guarded write already committed; an expired lock must not undo its outcome.
                logger.warning("account lock expired before release lock=%s timeout_s=%s", name, self.timeout_seconds)
