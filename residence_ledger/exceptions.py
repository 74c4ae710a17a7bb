"""
Ledger exceptions.

Every rejection the ledger can produce has its own class and a
stable error_code, so the HTTP layer (or any other caller) can map
errors to user-facing messages without parsing message text.

Exception Hierarchy:
    LedgerError (base)
    ├── LedgerValidationError - rejected before any write (400/422)
    │   ├── UnbalancedTransaction
    │   ├── InvalidEntryLine
    │   ├── InvalidAmount
    │   ├── InvalidPaymentMethod
    │   ├── InvalidLease
    │   ├── InvalidPeriod
    │   ├── InactiveAccount
    │   ├── AccountTypeConflict
    │   └── ReversalNotAllowed
    ├── LedgerNotFoundError - lookup failures (404)
    │   ├── AccountNotFound
    │   ├── NoReceivableAccount
    │   └── TransactionNotFound
    ├── IdempotencyConflict - the posting already exists (409)
    │   ├── AlreadyAccrued
    │   └── AlreadyReversed
    └── AllocationImbalance - invariant violation, batch aborted (500)
"""

from __future__ import annotations

from typing import Any


class LedgerError(Exception):
    """
    Base exception for all ledger operations.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context
    """

    default_error_code: str = "LEDGER_ERROR"
    status_code: int = 400

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a dictionary for API responses."""
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


# =============================================================================
# Validation errors
# =============================================================================


class LedgerValidationError(LedgerError):
    default_error_code: str = "LEDGER_VALIDATION_ERROR"


class UnbalancedTransaction(LedgerValidationError):
    """Raised when total debits and total credits of a transaction differ."""

    default_error_code: str = "UNBALANCED_TRANSACTION"


class InvalidEntryLine(LedgerValidationError):
    """
    Raised for a line that is both a debit and a credit, neither,
    or carries a negative amount.
    """

    default_error_code: str = "INVALID_ENTRY_LINE"


class InvalidAmount(LedgerValidationError):
    default_error_code: str = "INVALID_AMOUNT"


class InvalidPaymentMethod(LedgerValidationError):
    default_error_code: str = "INVALID_PAYMENT_METHOD"


class InvalidLease(LedgerValidationError):
    """
    Raised when a lease cannot be accrued: no lease on record,
    inconsistent dates, or a period outside the lease term.
    """

    default_error_code: str = "INVALID_LEASE"


class InvalidPeriod(LedgerValidationError, ValueError):
    """Raised for a billing period that is not a valid YYYY-MM month."""

    default_error_code: str = "INVALID_PERIOD"


class InactiveAccount(LedgerValidationError):
    default_error_code: str = "INACTIVE_ACCOUNT"


class AccountTypeConflict(LedgerValidationError):
    """Raised when an existing account code is resolved with another type."""

    default_error_code: str = "ACCOUNT_TYPE_CONFLICT"


class ReversalNotAllowed(LedgerValidationError):
    """Raised when asked to reverse a reversal."""

    default_error_code: str = "REVERSAL_NOT_ALLOWED"


# =============================================================================
# Lookup failures
# =============================================================================


class LedgerNotFoundError(LedgerError):
    default_error_code: str = "NOT_FOUND"
    status_code: int = 404


class AccountNotFound(LedgerNotFoundError):
    default_error_code: str = "ACCOUNT_NOT_FOUND"


class NoReceivableAccount(LedgerNotFoundError):
    """Raised when a payment arrives for a tenant that was never billed."""

    default_error_code: str = "NO_RECEIVABLE_ACCOUNT"


class TransactionNotFound(LedgerNotFoundError):
    default_error_code: str = "TRANSACTION_NOT_FOUND"


# =============================================================================
# Idempotency conflicts
# =============================================================================


class IdempotencyConflict(LedgerError):
    """
    The requested posting already exists.

    Callers may treat these as a no-op; details carry the id of
    the transaction that is already on the ledger.
    """

    default_error_code: str = "IDEMPOTENCY_CONFLICT"
    status_code: int = 409


class AlreadyAccrued(IdempotencyConflict):
    default_error_code: str = "ALREADY_ACCRUED"


class AlreadyReversed(IdempotencyConflict):
    default_error_code: str = "ALREADY_REVERSED"


# =============================================================================
# Invariant violations
# =============================================================================


class AllocationImbalance(LedgerError):
    """
    Raised when the slices of a payment do not add up to the payment.

    This is a programming error, not bad input. Nothing of the
    batch has been written when it is raised.
    """

    default_error_code: str = "ALLOCATION_IMBALANCE"
    status_code: int = 500
