"""
Shared enumerations for database models.

Using Python enums mapped to database enums ensures that
only valid values can be stored.
"""

import enum


class AccountType(str, enum.Enum):
    """The five fundamental accounting categories."""
    ASSET = "ASSET"
    LIABILITY = "LIABILITY"
    EQUITY = "EQUITY"
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class TransactionSource(str, enum.Enum):
    """Which part of the system produced a transaction."""
    ACCRUAL = "accrual"
    PAYMENT = "payment"
    REVERSAL = "reversal"
    MANUAL = "manual"
    EXPENSE_PAYMENT = "expense_payment"


class TransactionStatus(str, enum.Enum):
    POSTED = "posted"
    VOID = "void"


class ChargeComponent(str, enum.Enum):
    """The kinds of charge a tenant can owe within a month."""
    RENT = "rent"
    ADMIN_FEE = "admin_fee"
    DEPOSIT = "deposit"


class AllocationType(str, enum.Enum):
    LEASE_START = "lease_start"
    MONTHLY_RENT = "monthly_rent"
    PAYMENT_ALLOCATION = "payment_allocation"
    ADVANCE_PAYMENT = "advance_payment"
    ADVANCE_APPLICATION = "advance_application"
    PREPAYMENT = "prepayment"


class ReportingBasis(str, enum.Enum):
    CASH = "cash"
    ACCRUAL = "accrual"
