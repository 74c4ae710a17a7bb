"""
Accrual service: bills tenants month by month.

Each call posts one balanced transaction per tenant and month:

    DEBIT  Tenant receivable (1100-{tenant})
    CREDIT Rental Income (4000)            rent, prorated at lease edges
    CREDIT Administrative Income (4100)    admin fee, lease-start month only
    CREDIT Tenant Security Deposits (2020) deposit, lease-start month only

A month is accrued at most once per lease. The check is made
against the ledger itself before anything is built, and a unique
idempotency key on the transaction backs it up at the storage
level, so income is never recognised twice.
"""

import json
import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from residence_ledger.config import Settings, get_settings
from residence_ledger.exceptions import AlreadyAccrued, InvalidLease, LedgerError
from residence_ledger.models.audit_log import AuditLog
from residence_ledger.models.enums import (
    AllocationType,
    ChargeComponent,
    TransactionSource,
)
from residence_ledger.models.lease import Lease
from residence_ledger.models.transaction import Transaction
from residence_ledger.periods import (
    days_in_month,
    month_bounds,
    month_key,
    periods_between,
    to_money,
)
from residence_ledger.schemas.accrual import AccrualRunSummary
from residence_ledger.schemas.ledger import EntryLineCreate, PostTransactionRequest
from residence_ledger.services.allocation_service import AllocationService
from residence_ledger.services.chart_of_accounts import (
    AccountRef,
    COMPONENT_ACCOUNTS,
    ChartOfAccounts,
)
from residence_ledger.services.ledger_service import LedgerService
from residence_ledger.services.lease_service import LeaseService

logger = logging.getLogger(__name__)


def prorated_rent(lease: Lease, period: str) -> Decimal:
    """
    Rent for the days of the period the lease covers.

    room_rate * covered_days / days_in_month, rounded to cents.
    A month the lease covers entirely is charged the full rate.
    """
    first_day, last_day = month_bounds(period)
    start = max(first_day, lease.lease_start)
    end = min(last_day, lease.lease_end)
    if end < start:
        return Decimal("0.00")

    covered = (end - start).days + 1
    total = days_in_month(period)
    if covered == total:
        return to_money(lease.room_rate)
    return to_money(Decimal(lease.room_rate) * covered / total)


def accrual_key(lease: Lease, period: str) -> str:
    return f"accrual:{lease.id}:{period}"


class AccrualService:

    def __init__(self, db: Session, settings: Settings | None = None):
        self.db = db
        self.settings = settings or get_settings()
        self.ledger = LedgerService(db, self.settings)
        self.chart = ChartOfAccounts(db)
        self.leases = LeaseService(db)

    def find_accrual(self, lease: Lease, period: str) -> Transaction | None:
        """The accrual already posted for this lease and month, if any."""
        return self.db.execute(
            select(Transaction).where(
                Transaction.source == TransactionSource.ACCRUAL,
                Transaction.student_id == lease.tenant_id,
                Transaction.period == period,
                Transaction.source_id == str(lease.id),
            )
        ).scalars().first()

    def build_accrual(self, lease: Lease, period: str) -> PostTransactionRequest:
        """Build the posting for one lease and month without writing it."""
        first_day, last_day = month_bounds(period)
        if lease.lease_start > last_day or lease.lease_end < first_day:
            raise InvalidLease(
                f"Period {period} is outside the lease term "
                f"{lease.lease_start} to {lease.lease_end}",
                details={"tenant_id": lease.tenant_id, "period": period},
            )

        is_start_month = month_key(lease.lease_start) == period
        tenant_label = lease.tenant_name or lease.tenant_id
        receivable = self.chart.receivable(
            lease.tenant_id, create=True, owner_name=lease.tenant_name
        )

        charges: list[tuple[ChargeComponent, Decimal, str]] = []
        rent = prorated_rent(lease, period)
        if rent > 0:
            charges.append((
                ChargeComponent.RENT, rent, f"Rent for {period} - {tenant_label}",
            ))
        if is_start_month and lease.admin_fee > 0:
            charges.append((
                ChargeComponent.ADMIN_FEE, to_money(lease.admin_fee),
                f"Admin fee - {tenant_label}",
            ))
        if is_start_month and lease.deposit_amount > 0:
            charges.append((
                ChargeComponent.DEPOSIT, to_money(lease.deposit_amount),
                f"Security deposit - {tenant_label}",
            ))

        entries = []
        for component, amount, description in charges:
            counter = self.chart.resolve(AccountRef(COMPONENT_ACCOUNTS[component]))
            entries.append(EntryLineCreate(
                account_code=receivable.code,
                debit=amount,
                description=description,
                component=component,
            ))
            entries.append(EntryLineCreate(
                account_code=counter.code,
                credit=amount,
                description=description,
            ))

        if is_start_month:
            txn_date = lease.lease_start
            allocation_type = AllocationType.LEASE_START
            description = f"Lease start accrual {period}: {tenant_label}"
        else:
            txn_date = first_day
            allocation_type = AllocationType.MONTHLY_RENT
            description = f"Rent accrual {period}: {tenant_label}"

        return PostTransactionRequest(
            date=txn_date,
            description=description,
            source=TransactionSource.ACCRUAL,
            entries=entries,
            reference=f"lease-{lease.id}",
            source_id=str(lease.id),
            idempotency_key=accrual_key(lease, period),
            student_id=lease.tenant_id,
            period=period,
            allocation_type=allocation_type,
            metadata={
                "lease_id": lease.id,
                "residence_id": lease.residence_id,
                "room": lease.room,
                "room_rate": str(lease.room_rate),
                "rent": str(rent),
                "prorated": rent != to_money(lease.room_rate),
            },
        )

    def post_accrual(self, tenant_id: str, period: str) -> Transaction:
        """
        Accrue a tenant's charges for one month.

        Raises AlreadyAccrued if the month was already accrued for
        the lease (callers may treat that as a no-op) and
        InvalidLease if there is no lease covering the month.
        """
        lease = self.leases.get_lease_for_period(tenant_id, period)

        existing = self.find_accrual(lease, period)
        if existing is None:
            existing = self.ledger.find_by_idempotency_key(accrual_key(lease, period))
        if existing is not None:
            logger.info(
                "Accrual for tenant %s period %s already posted as %s",
                tenant_id, period, existing.id,
            )
            raise AlreadyAccrued(
                f"Tenant {tenant_id} already accrued for {period}",
                details={
                    "tenant_id": tenant_id,
                    "period": period,
                    "transaction_id": existing.id,
                },
            )

        request = self.build_accrual(lease, period)
        if len(request.entries) < 2:
            raise InvalidLease(
                f"Nothing to accrue for tenant {tenant_id} in {period}",
                details={"tenant_id": tenant_id, "period": period},
            )

        txn = self.ledger.post_transaction(request)
        self._apply_advance(tenant_id, period, txn.date)
        return txn

    def _apply_advance(self, tenant_id: str, period: str, on: date) -> None:
        """
        Settle a freshly accrued month from credit the tenant holds,
        including credit paid in after the accrual's own date.
        """
        AllocationService(self.db, self.settings).apply_advance(tenant_id, period, on)

    def accrue_through(self, tenant_id: str, period: str) -> list[Transaction]:
        """
        Catch a tenant up: accrue every lease month up to period that
        has not been accrued yet.
        """
        posted = []
        for lease in self.leases.get_leases(tenant_id):
            first = month_key(lease.lease_start)
            last = min(month_key(lease.lease_end), period)
            for month in periods_between(first, last) if first <= last else []:
                if self.find_accrual(lease, month) is not None:
                    continue
                posted.append(self.post_accrual(tenant_id, month))
        return posted

    def post_monthly_accruals(self, period: str) -> AccrualRunSummary:
        """
        Month-end billing run: accrue every lease active in period.

        Each tenant is posted inside a savepoint, so one failing
        tenant does not undo the others. Tenants already billed are
        reported, not treated as failures.
        """
        summary = AccrualRunSummary(period=period)
        for lease in self.leases.get_active_leases(period):
            try:
                with self.db.begin_nested():
                    self.post_accrual(lease.tenant_id, period)
                summary.created.append(lease.tenant_id)
            except AlreadyAccrued:
                summary.already_accrued.append(lease.tenant_id)
            except LedgerError as e:
                logger.warning(
                    "Accrual for tenant %s period %s failed: %s",
                    lease.tenant_id, period, e,
                )
                summary.failed[lease.tenant_id] = e.error_code

        self.db.add(AuditLog(
            event_type="accrual_run",
            subject_id=period,
            details=json.dumps(summary.model_dump()),
        ))
        self.db.flush()
        logger.info(
            "Accrual run %s: %d created, %d already accrued, %d failed",
            period, len(summary.created), len(summary.already_accrued),
            len(summary.failed),
        )
        return summary
