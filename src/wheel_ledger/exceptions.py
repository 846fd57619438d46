"""Custom exceptions for ledger and valuation operations."""


class LedgerError(Exception):
    """Base exception for ledger operations."""

    pass


class ValidationError(LedgerError):
    """Malformed input or violated precondition."""

    pass


class InsufficientLotsError(LedgerError):
    """Sell or close quantity exceeds the open lots."""

    pass


class UnsupportedActivityError(LedgerError):
    """Activity kind is not meaningful to the target ledger."""

    pass


class InvalidStateError(LedgerError):
    """Operation not allowed in the current lifecycle state."""

    pass
