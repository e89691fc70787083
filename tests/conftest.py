"""Shared fixtures: environment defaults, in-memory collaborators, SQLite DB."""

import os

# Settings and the SQLAlchemy engine are built at import time.
os.environ.setdefault("POSTGRES_DSN", "sqlite://")
os.environ.setdefault("OTEL_SDK_DISABLED", "true")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from paydispatch.common.db import Base, build_session_factory
from paydispatch.common.lifecycle import AccountLifecycleGuard
from paydispatch.common.pipeline import TransactionPipeline
from paydispatch.services.dispatcher import models  # noqa: F401  (registers tables)
from paydispatch.services.dispatcher.extractors import field_extractor


class FakeAccountStore:
    """In-memory account store that records every call it receives."""

    def __init__(self, id_field: str = "acct", created=(), active=()) -> None:
        self.id_field = id_field
        self.created = set(created)
        self.active = set(active)
        self.calls: list[tuple] = []
        self.create_result = None
        self.set_active_result = None

    def get_id(self, record):
        self.calls.append(("get_id", record))
        return record[self.id_field]

    def is_created(self, account_id):
        self.calls.append(("is_created", account_id))
        return account_id in self.created

    def is_active(self, account_id):
        self.calls.append(("is_active", account_id))
        return account_id in self.active

    def create(self, account_id, record):
        self.calls.append(("create", account_id, record))
        self.created.add(account_id)
        return self.create_result

    def set_active(self, account_id, active, record):
        self.calls.append(("set_active", account_id, active, record))
        if active:
            self.active.add(account_id)
        else:
            self.active.discard(account_id)
        return self.set_active_result

    def mutations(self) -> list[tuple]:
        return [call for call in self.calls if call[0] in ("create", "set_active")]


class FakeTransactionLogger:
    def __init__(self) -> None:
        self.entries: list[tuple] = []

    def log_transaction(self, log_id, record) -> None:
        self.entries.append((log_id, record))


class FakeNotifier:
    def __init__(self) -> None:
        self.messages: list[str] = []

    def notify(self, message: str) -> None:
        self.messages.append(message)


@pytest.fixture
def store() -> FakeAccountStore:
    return FakeAccountStore()


@pytest.fixture
def audit_log() -> FakeTransactionLogger:
    return FakeTransactionLogger()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def guard(store, notifier) -> AccountLifecycleGuard:
    return AccountLifecycleGuard(store, notifier)


@pytest.fixture
def pipeline(guard, audit_log) -> TransactionPipeline:
    """Pipeline reading action/category straight from record fields."""

    return TransactionPipeline(guard, audit_log, field_extractor())


@pytest.fixture
def session_factory():
    """Session factory bound to a fresh in-memory SQLite database."""

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield build_session_factory(engine)
    engine.dispose()
