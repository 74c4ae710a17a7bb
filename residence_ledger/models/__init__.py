"""
Database models package.

All models must be imported here so that Alembic can discover
them through Base.metadata when generating migrations.
"""

from residence_ledger.models.base import Base
from residence_ledger.models.enums import (
    AccountType,
    AllocationType,
    ChargeComponent,
    ReportingBasis,
    TransactionSource,
    TransactionStatus,
)
from residence_ledger.models.audit_log import AuditLog
from residence_ledger.models.ledger_account import LedgerAccount
from residence_ledger.models.ledger_entry import LedgerEntryLine
from residence_ledger.models.transaction import Transaction
from residence_ledger.models.lease import Lease

__all__ = [
    "Base",
    "AccountType",
    "AllocationType",
    "ChargeComponent",
    "ReportingBasis",
    "TransactionSource",
    "TransactionStatus",
    "AuditLog",
    "LedgerAccount",
    "LedgerEntryLine",
    "Transaction",
    "Lease",
]
