"""Transaction categories, lifecycle actions, and audit-log key resolution."""

from enum import Enum
from typing import Any

from paydispatch.common.errors import UnsupportedAction, UnsupportedCategory


class Category(str, Enum):
    PAYMENT = "payment"
    DISPUTE = "dispute"
    SUBSCRIPTION = "subscription"
    RECURRING = "recurring"


class Action(str, Enum):
    NOP = "nop"
    CREATE = "create"
    ACTIVATE = "activate"
    DEACTIVATE = "deactivate"


LOG_ID_FIELDS: dict[Category, str] = {
    Category.PAYMENT: "txn_id",
    Category.SUBSCRIPTION: "subscr_id",
    Category.RECURRING: "recurring_payment_id",
    Category.DISPUTE: "case_id",
}

# Every category must name the record field carrying its audit-log id.
if set(LOG_ID_FIELDS) != set(Category):
    raise RuntimeError(f"LOG_ID_FIELDS is missing categories {set(Category) - set(LOG_ID_FIELDS)}")


def as_category(value: Any) -> Category:
    """Coerce an extractor-supplied value to `Category`."""

    try:
        return Category(value)
    except ValueError:
        raise UnsupportedCategory(f"Unexpected category {value!r}") from None


def as_action(value: Any) -> Action:
    """Coerce an extractor-supplied value to `Action`."""

    try:
        return Action(value)
    except ValueError:
        raise UnsupportedAction(f"Unexpected action {value!r}") from None


class CategoryKeyResolver:
    """Maps a category to the record field holding its audit-log identifier."""

    def __init__(self, fields: dict[Category, str] | None = None) -> None:
        self.fields = LOG_ID_FIELDS if fields is None else fields

    def resolve(self, category: Category | str) -> str:
        """Return the audit-log field name for `category`."""

        category = as_category(category)
        try:
            return self.fields[category]
        except KeyError:
            raise UnsupportedCategory(f"No audit-log field configured for category {category.value}") from None
