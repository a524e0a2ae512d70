"""Custom exceptions for Ledger Core."""


class LedgerError(Exception):
    """Base exception for all Ledger Core errors."""

    pass


class ConfigurationError(LedgerError):
    """Raised when configuration is invalid or missing."""

    pass


class DivisionByZero(LedgerError, ZeroDivisionError):
    """Raised when a monetary division has a zero divisor."""

    def __init__(self, dividend: object, message: str | None = None):
        self.dividend = dividend
        super().__init__(message or f"Cannot divide {dividend} by zero")


class SnapshotError(LedgerError):
    """Raised when a ledger snapshot cannot be loaded or validated."""

    pass
