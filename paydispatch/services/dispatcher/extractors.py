"""Extractors that classify provider callback records into (action, category)."""

from collections.abc import Mapping
from typing import Any

from paydispatch.common.errors import MissingInput, UnrecognizedTransaction
from paydispatch.common.transactions import Action, Category


# PayPal IPN `txn_type` -> lifecycle action and category.
IPN_TXN_TYPES: dict[str, tuple[Action, Category]] = {
    "subscr_signup": (Action.CREATE, Category.SUBSCRIPTION),
    "subscr_payment": (Action.ACTIVATE, Category.SUBSCRIPTION),
    "subscr_cancel": (Action.DEACTIVATE, Category.SUBSCRIPTION),
    "subscr_eot": (Action.DEACTIVATE, Category.SUBSCRIPTION),
    "subscr_failed": (Action.NOP, Category.SUBSCRIPTION),
    "subscr_modify": (Action.NOP, Category.SUBSCRIPTION),
    "recurring_payment_profile_created": (Action.CREATE, Category.RECURRING),
    "recurring_payment": (Action.ACTIVATE, Category.RECURRING),
    "recurring_payment_profile_cancel": (Action.DEACTIVATE, Category.RECURRING),
    "recurring_payment_suspended": (Action.DEACTIVATE, Category.RECURRING),
    "recurring_payment_suspended_due_to_max_failed_payment": (Action.DEACTIVATE, Category.RECURRING),
    "recurring_payment_expired": (Action.DEACTIVATE, Category.RECURRING),
    "recurring_payment_failed": (Action.NOP, Category.RECURRING),
    "recurring_payment_skipped": (Action.NOP, Category.RECURRING),
    "web_accept": (Action.NOP, Category.PAYMENT),
    "express_checkout": (Action.NOP, Category.PAYMENT),
    "cart": (Action.NOP, Category.PAYMENT),
    "send_money": (Action.NOP, Category.PAYMENT),
    "virtual_terminal": (Action.NOP, Category.PAYMENT),
}

# Refund/reversal notifications arrive without a txn_type.
UNTYPED_PAYMENT_STATUSES = {"Refunded", "Reversed", "Canceled_Reversal"}


def paypal_ipn_extractor(record: Mapping[str, Any]) -> tuple[Action, Category]:
    """Classify a PayPal IPN message."""

    if record.get("case_id") or record.get("case_type"):
        return Action.NOP, Category.DISPUTE

    txn_type = record.get("txn_type")
    if txn_type:
        try:
            return IPN_TXN_TYPES[txn_type]
        except KeyError:
            raise UnrecognizedTransaction(f"unrecognized txn_type {txn_type!r}") from None

    if record.get("payment_status") in UNTYPED_PAYMENT_STATUSES:
        return Action.NOP, Category.PAYMENT
    raise UnrecognizedTransaction("record has neither txn_type nor a refund/reversal payment_status")


def field_extractor(action_field: str = "action", category_field: str = "category"):
    """Build an extractor that reads action and category straight from the record.

    Values are returned as-is; the pipeline coerces and validates them.
    """

    def extract(record: Mapping[str, Any]) -> tuple[Any, Any]:
        missing = [name for name in (action_field, category_field) if record.get(name) is None]
        if missing:
            raise MissingInput(f"record is missing {', '.join(missing)}")
        return record[action_field], record[category_field]

    return extract


EXTRACTORS = {
    "paypal_ipn": paypal_ipn_extractor,
    "fields": field_extractor(),
}
