"""PayPal IPN classification tests."""

import pytest

from paydispatch.common.errors import MissingInput, UnrecognizedTransaction
from paydispatch.common.transactions import Action, Category
from paydispatch.services.dispatcher.extractors import field_extractor, paypal_ipn_extractor


@pytest.mark.parametrize(
    "txn_type, expected",
    [
        ("subscr_signup", (Action.CREATE, Category.SUBSCRIPTION)),
        ("subscr_payment", (Action.ACTIVATE, Category.SUBSCRIPTION)),
        ("subscr_eot", (Action.DEACTIVATE, Category.SUBSCRIPTION)),
        ("recurring_payment_profile_created", (Action.CREATE, Category.RECURRING)),
        ("recurring_payment_suspended", (Action.DEACTIVATE, Category.RECURRING)),
        ("web_accept", (Action.NOP, Category.PAYMENT)),
    ],
)
def test_txn_type_mapping(txn_type, expected):
    assert paypal_ipn_extractor({"txn_type": txn_type}) == expected


def test_dispute_wins_over_txn_type():
    record = {"txn_type": "new_case", "case_id": "PP-D-27", "case_type": "chargeback"}

    assert paypal_ipn_extractor(record) == (Action.NOP, Category.DISPUTE)


@pytest.mark.parametrize("status", ["Refunded", "Reversed", "Canceled_Reversal"])
def test_untyped_refund_statuses_are_payments(status):
    assert paypal_ipn_extractor({"payment_status": status, "txn_id": "T2"}) == (Action.NOP, Category.PAYMENT)


def test_unknown_txn_type_raises():
    with pytest.raises(UnrecognizedTransaction):
        paypal_ipn_extractor({"txn_type": "mp_signup"})


def test_unclassifiable_record_raises():
    with pytest.raises(UnrecognizedTransaction):
        paypal_ipn_extractor({"payment_status": "Completed"})


def test_field_extractor_reads_configured_fields():
    extract = field_extractor("kind", "cat")

    assert extract({"kind": "activate", "cat": "recurring"}) == ("activate", "recurring")


def test_field_extractor_requires_both_fields():
    with pytest.raises(MissingInput, match="category"):
        field_extractor()({"action": "create"})
