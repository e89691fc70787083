"""Transaction pipeline: classify, audit-log, then apply the lifecycle action.

Per record the pipeline moves Start -> Validated -> Logged -> Dispatched ->
Done. Any failed precondition raises before later stages run, so a rejected
record never reaches the audit log and never mutates an account.
"""

from paydispatch.common.errors import MissingInput, MissingLogId
from paydispatch.common.interfaces import Extractor, TransactionLogger, TransactionRecord
from paydispatch.common.lifecycle import AccountLifecycleGuard, TransitionOutcome
from paydispatch.common.logging import log_id_ctx, logger
from paydispatch.common.transactions import Action, Category, CategoryKeyResolver, as_action, as_category


class TransactionPipeline:
    """Top-level entry point for one provider callback record."""

    def __init__(
        self,
        guard: AccountLifecycleGuard,
        audit_log: TransactionLogger,
        extractor: Extractor,
        resolver: CategoryKeyResolver | None = None,
    ) -> None:
        self.guard = guard
        self.audit_log = audit_log
        self.extractor = extractor
        self.resolver = resolver or CategoryKeyResolver()

    def process(self, record: TransactionRecord | None) -> TransitionOutcome:
        action, category = self.classify(record)
        return self.dispatch(action, category, record)

    def classify(self, record: TransactionRecord | None) -> tuple[Action, Category]:
        """Validate input presence and run the extractor exactly once."""

        if record is None:
            raise MissingInput("Missing transaction record")

        raw_action, raw_category = self.extractor(record)
        action = as_action(raw_action)
        category = as_category(raw_category)
        logger.info("transaction classified action=%s category=%s", action.value, category.value)
        return action, category

    def dispatch(self, action: Action, category: Category, record: TransactionRecord) -> TransitionOutcome:
        """Audit-log a classified record, then hand it to the lifecycle guard."""

        token = log_id_ctx.set(str(record.get(self.resolver.resolve(category))))
        try:
            self.log_transaction(category, record)
            return self.guard.process(action, record)
        finally:
            log_id_ctx.reset(token)

    def log_transaction(self, category: Category, record: TransactionRecord) -> None:
        """Forward the record to the audit log under its category's identifier."""

        key = self.resolver.resolve(category)
        log_id = record.get(key)
        if log_id is None:
            raise MissingLogId(f"Record has no {key!r} audit-log id for category {category.value}")

        self.audit_log.log_transaction(log_id, record)
        logger.info("transaction logged key=%s", key)
