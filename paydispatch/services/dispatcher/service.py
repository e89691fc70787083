"""Dispatcher service.

Wires the transaction pipeline to its SQL/Redis collaborators and wraps each
record with logging context, a tracing span, and metrics.
"""

from collections.abc import Mapping
from time import perf_counter
from typing import Any
from uuid import uuid4

import redis

from paydispatch.common.config import settings
from paydispatch.common.errors import DispatchError
from paydispatch.common.events import CallbackEnvelope, consume_forever
from paydispatch.common.lifecycle import AccountLifecycleGuard, Applied, TransitionOutcome
from paydispatch.common.logging import logger, trace_id_ctx, transaction_context
from paydispatch.common.metrics import (
    dispatch_failures_total,
    dispatch_latency_seconds,
    transactions_received_total,
    transition_outcomes_total,
)
from paydispatch.common.pipeline import TransactionPipeline
from paydispatch.common.tracing import annotate_outcome, annotate_transaction, tracer
from paydispatch.services.dispatcher.adapters import (
    FanoutNotifier,
    RedisAccountLocker,
    SqlAccountStore,
    SqlNotifier,
    SqlTransactionLogger,
    WebhookNotifier,
)
from paydispatch.services.dispatcher.extractors import EXTRACTORS


def build_pipeline(session_factory, redis_client: redis.Redis | None = None) -> TransactionPipeline:
    """Assemble the pipeline from configured collaborators."""

    notifier = SqlNotifier(session_factory, service_name=settings.service_name)
    if settings.notify_webhook_url:
        notifier = FanoutNotifier(
            notifier,
            WebhookNotifier(settings.notify_webhook_url, service_name=settings.service_name),
        )
    locker = None
    if redis_client is not None:
        locker = RedisAccountLocker(
            redis_client,
            timeout_seconds=settings.account_lock_timeout_seconds,
            blocking_timeout_seconds=settings.account_lock_blocking_timeout_seconds,
        )
    guard = AccountLifecycleGuard(
        SqlAccountStore(session_factory, id_field=settings.account_id_field),
        notifier,
        locker=locker,
    )
    try:
        extractor = EXTRACTORS[settings.extractor]
    except KeyError:
        raise ValueError(f"unknown extractor {settings.extractor!r}; expected one of {sorted(EXTRACTORS)}") from None
    return TransactionPipeline(guard, SqlTransactionLogger(session_factory), extractor)


class DispatcherService:
    """Runs provider callback records through the transaction pipeline."""

    def __init__(self, pipeline: TransactionPipeline, service_name: str = "dispatcher") -> None:
        self.pipeline = pipeline
        self.service_name = service_name

    def handle_record(self, record: Mapping[str, Any] | None, trace_id: str | None = None) -> TransitionOutcome:
        """Process one record; hard failures are counted and re-raised."""

        start = perf_counter()
        with transaction_context(trace_id or trace_id_ctx.get() or str(uuid4())):
            try:
                with tracer.start_as_current_span("transaction.process") as span:
                    action, category = self.pipeline.classify(record)
                    annotate_transaction(span, action.value, category.value)
                    transactions_received_total.labels(service=self.service_name, category=category.value).inc()
                    outcome = self.pipeline.dispatch(action, category, record)
                    reason = None if isinstance(outcome, Applied) else outcome.reason.value
                    annotate_outcome(span, outcome.outcome, reason)
            except DispatchError as exc:
                dispatch_failures_total.labels(service=self.service_name, error_type=type(exc).__name__).inc()
                logger.warning("transaction rejected error_type=%s error=%s", type(exc).__name__, exc)
                raise
            finally:
                dispatch_latency_seconds.labels(service=self.service_name).observe(max(0.0, perf_counter() - start))

        transition_outcomes_total.labels(
            service=self.service_name,
            action=action.value,
            outcome=reason or outcome.outcome,
        ).inc()
        return outcome

    async def handle_callback(self, envelope: CallbackEnvelope) -> None:
        """Kafka handler for relayed callbacks."""

        outcome = self.handle_record(envelope.record, trace_id=envelope.trace_id)
        logger.info("callback processed event_id=%s outcome=%s", envelope.event_id, outcome.outcome)

    async def start_consumers(self) -> None:
        """Consume relayed provider callbacks."""

        await consume_forever(settings.callbacks_topic, f"{self.service_name}-callbacks", self.handle_callback)
