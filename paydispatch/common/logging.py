"""Structured JSON logging scoped to one transaction record.

Every line emitted while a record is in flight carries the trace id, the
record's audit-log id and the account it touches.
"""

import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar

from pythonjsonlogger.json import JsonFormatter

from paydispatch.common.config import settings


trace_id_ctx: ContextVar[str] = ContextVar("trace_id", default="")
log_id_ctx: ContextVar[str] = ContextVar("log_id", default="")
account_id_ctx: ContextVar[str] = ContextVar("account_id", default="")

TRANSACTION_FIELDS = ("trace_id", "log_id", "account_id")


class TransactionContextFilter(logging.Filter):
    """Stamp service name and in-flight transaction identifiers on records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.service_name = settings.service_name
        record.trace_id = trace_id_ctx.get()
        record.log_id = log_id_ctx.get()
        record.account_id = account_id_ctx.get()
        return True


@contextmanager
def transaction_context(trace_id: str):
    """Scope logging identifiers to one record; restores the outer values on exit."""

    tokens = (trace_id_ctx.set(trace_id), log_id_ctx.set(""), account_id_ctx.set(""))
    try:
        yield
    finally:
        for var, token in zip((trace_id_ctx, log_id_ctx, account_id_ctx), tokens):
            var.reset(token)


def configure_logging() -> None:
    """Send JSON lines to stdout; called once per process."""

    handler = logging.StreamHandler(sys.stdout)
    context_filter = TransactionContextFilter()
    handler.addFilter(context_filter)
    fields = " ".join(f"%({name})s" for name in ("service_name", *TRANSACTION_FIELDS))
    handler.setFormatter(JsonFormatter(f"%(asctime)s %(levelname)s %(name)s {fields} %(message)s"))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(settings.log_level)
    # Access logs would repeat every callback line without transaction fields.
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


logger = logging.getLogger("paydispatch")
