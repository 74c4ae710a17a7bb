"""Business logic services."""

from residence_ledger.services.chart_of_accounts import AccountRef, ChartOfAccounts
from residence_ledger.services.ledger_service import LedgerService
from residence_ledger.services.lease_service import LeaseService
from residence_ledger.services.reporting_service import ReportingService
from residence_ledger.services.allocation_service import AllocationService
from residence_ledger.services.accrual_service import AccrualService
from residence_ledger.services.reversal_service import ReversalService

__all__ = [
    "AccountRef",
    "ChartOfAccounts",
    "LedgerService",
    "LeaseService",
    "ReportingService",
    "AllocationService",
    "AccrualService",
    "ReversalService",
]
