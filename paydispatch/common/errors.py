"""Hard failures raised while dispatching a transaction record."""


class DispatchError(Exception):
    """Base class for errors that abort processing of one record."""


class MissingInput(DispatchError):
    """Raised when no transaction record (or a required field of it) was supplied."""


class MissingLogId(DispatchError):
    """Raised when the record lacks the audit-log identifier for its category."""


class UnsupportedCategory(DispatchError):
    """Raised for a category outside the known set."""


class UnsupportedAction(DispatchError):
    """Raised for an action outside the known set."""


class UnrecognizedTransaction(DispatchError):
    """Raised by an extractor that cannot classify a provider record."""
