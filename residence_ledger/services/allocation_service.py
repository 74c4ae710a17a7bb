"""
Payment allocation service.

Splits a tenant payment across what the tenant owes, oldest month
first, and posts one balanced transaction per slice:

    DEBIT  Cash / Bank / wallet (by payment method)
    CREDIT Tenant receivable (1100-{tenant})

Every slice names the month it settles in month_settled. The
balance deriver credits a payment to that month and no other, so
a slice tagged with the wrong month shows up as an arrear.

The whole batch is planned and checked before the first slice
is written: either every slice is posted or none is.
"""

import json
import logging
import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from residence_ledger.config import Settings, get_settings
from residence_ledger.exceptions import (
    AllocationImbalance,
    InvalidAmount,
    NoReceivableAccount,
)
from residence_ledger.models.audit_log import AuditLog
from residence_ledger.models.enums import (
    AllocationType,
    ChargeComponent,
    TransactionSource,
)
from residence_ledger.models.ledger_account import LedgerAccount
from residence_ledger.models.transaction import Transaction
from residence_ledger.periods import month_key, next_period, to_money
from residence_ledger.schemas.ledger import (
    EntryLineCreate,
    PostTransactionRequest,
    TransactionResponse,
)
from residence_ledger.schemas.payment import (
    AllocationPlan,
    AllocationResult,
    AllocationSlice,
    PaymentRequest,
)
from residence_ledger.services.chart_of_accounts import AccountRef, ChartOfAccounts
from residence_ledger.services.ledger_service import LedgerService
from residence_ledger.services.reporting_service import ReportingService

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")

CREDIT_BALANCE = "credit_balance"
PREPAY_FUTURE = "prepay_future"
OVERPAYMENT_POLICIES = (CREDIT_BALANCE, PREPAY_FUTURE)


def component_order(names) -> list[ChargeComponent]:
    """
    Allocation order within a month.

    Components left out of the configured order are settled last,
    in their declared order.
    """
    order = [ChargeComponent(name) for name in names]
    order += [c for c in ChargeComponent if c not in order]
    return order


class AllocationService:

    def __init__(self, db: Session, settings: Settings | None = None):
        self.db = db
        self.settings = settings or get_settings()
        self.ledger = LedgerService(db, self.settings)
        self.chart = ChartOfAccounts(db)
        self.reports = ReportingService(db, self.settings)

        if self.settings.OVERPAYMENT_POLICY not in OVERPAYMENT_POLICIES:
            raise ValueError(
                f"Unknown overpayment policy '{self.settings.OVERPAYMENT_POLICY}'"
            )

    def _receivable(self, tenant_id: str, lock: bool = False) -> LedgerAccount:
        """
        The tenant's receivable account.

        With lock=True the row is selected FOR UPDATE, so two
        payments for the same tenant are allocated one after the
        other and never against the same outstanding amounts.
        """
        query = select(LedgerAccount).where(
            LedgerAccount.code == AccountRef.receivable(tenant_id).code
        )
        if lock:
            query = query.with_for_update()
        account = self.db.execute(query).scalar_one_or_none()
        if account is None:
            raise NoReceivableAccount(
                f"Tenant {tenant_id} has no receivable account",
                details={"tenant_id": tenant_id},
            )
        return account

    def _plan(
        self, tenant_id: str, amount: Decimal, on: date, method: str
    ) -> AllocationPlan:
        obligations = self.reports.get_obligations(tenant_id, on)
        order = component_order(self.settings.ALLOCATION_ORDER)

        slices = []
        remaining = amount
        for obligation in obligations:
            for component in order:
                if remaining <= 0:
                    break
                outstanding = getattr(obligation, component.value).outstanding
                if outstanding <= 0:
                    continue
                applied = min(remaining, outstanding)
                slices.append(AllocationSlice(
                    month_settled=obligation.month,
                    component=component,
                    amount=applied,
                    allocation_type=AllocationType.PAYMENT_ALLOCATION,
                    outstanding_before=outstanding,
                ))
                remaining -= applied

        if remaining > 0:
            if self.settings.OVERPAYMENT_POLICY == PREPAY_FUTURE:
                accrued = [o.month for o in obligations if o.owed > 0]
                month = next_period(max(accrued)) if accrued else month_key(on)
                slices.append(AllocationSlice(
                    month_settled=month,
                    component=ChargeComponent.RENT,
                    amount=remaining,
                    allocation_type=AllocationType.PREPAYMENT,
                ))
            else:
                slices.append(AllocationSlice(
                    month_settled=None,
                    component=None,
                    amount=remaining,
                    allocation_type=AllocationType.ADVANCE_PAYMENT,
                ))

        return AllocationPlan(
            tenant_id=tenant_id, amount=amount, method=method, slices=slices,
        )

    def preview_allocation(
        self, tenant_id: str, amount, on: date, method: str = "cash"
    ) -> AllocationPlan:
        """How a payment would be split, without posting anything."""
        amount = self._check_amount(amount)
        self.chart.account_for_method(method)
        self._receivable(tenant_id)
        return self._plan(tenant_id, amount, on, method)

    def _check_amount(self, amount) -> Decimal:
        money = to_money(amount)
        if money <= 0:
            raise InvalidAmount(
                f"Payment amount must be positive, got {amount}",
                details={"amount": str(amount)},
            )
        return money

    def _slice_request(
        self,
        plan: AllocationPlan,
        part: AllocationSlice,
        position: int,
        on: date,
        reference: str,
        cash_code: str,
        receivable_code: str,
    ) -> PostTransactionRequest:
        if part.allocation_type == AllocationType.ADVANCE_PAYMENT:
            credit_code = self.chart.resolve(AccountRef.advance(plan.tenant_id)).code
            description = f"Advance payment {reference}: credit held"
        else:
            credit_code = receivable_code
            description = (
                f"Payment {reference}: {part.component.value} "
                f"for {part.month_settled}"
            )

        return PostTransactionRequest(
            date=on,
            description=description,
            source=TransactionSource.PAYMENT,
            entries=[
                EntryLineCreate(
                    account_code=cash_code,
                    debit=part.amount,
                    description=description,
                ),
                EntryLineCreate(
                    account_code=credit_code,
                    credit=part.amount,
                    description=description,
                    component=part.component,
                ),
            ],
            reference=reference,
            source_id=reference,
            student_id=plan.tenant_id,
            period=part.month_settled,
            month_settled=part.month_settled,
            payment_type=part.component,
            allocation_type=part.allocation_type,
            metadata={
                "method": plan.method,
                "payment_amount": str(plan.amount),
                "slice": position,
                "slice_count": len(plan.slices),
            },
        )

    def _allocate(
        self,
        tenant_id: str,
        amount,
        on: date,
        method: str,
        reference: str | None,
    ) -> tuple[AllocationPlan, str, list[Transaction]]:
        amount = self._check_amount(amount)
        cash = self.chart.resolve(self.chart.account_for_method(method))
        receivable = self._receivable(tenant_id, lock=True)
        reference = reference or f"PAY-{uuid.uuid4().hex[:12].upper()}"

        plan = self._plan(tenant_id, amount, on, method)
        if plan.allocated != amount:
            logger.error(
                "Allocation of %s for tenant %s sums to %s",
                amount, tenant_id, plan.allocated,
            )
            raise AllocationImbalance(
                f"Slices sum to {plan.allocated}, payment is {amount}",
                details={
                    "tenant_id": tenant_id,
                    "amount": str(amount),
                    "allocated": str(plan.allocated),
                },
            )

        requests = [
            self._slice_request(
                plan, part, position, on, reference, cash.code, receivable.code
            )
            for position, part in enumerate(plan.slices)
        ]
        transactions = self.ledger.post_many(requests)

        self.db.add(AuditLog(
            event_type="payment_allocation",
            subject_id=tenant_id,
            details=json.dumps({
                "reference": reference,
                "amount": str(amount),
                "method": method,
                "transaction_ids": [t.id for t in transactions],
                "slices": [s.model_dump(mode="json") for s in plan.slices],
            }),
        ))
        self.db.flush()
        logger.info(
            "Allocated payment %s of %s for tenant %s in %d slices",
            reference, amount, tenant_id, len(transactions),
        )
        return plan, reference, transactions

    def allocate_payment(
        self,
        tenant_id: str,
        amount,
        on: date,
        method: str = "cash",
        reference: str | None = None,
    ) -> list[Transaction]:
        """
        Allocate a payment and post one transaction per slice.

        Raises InvalidAmount for a non-positive amount,
        InvalidPaymentMethod for an unknown method,
        NoReceivableAccount when the tenant was never billed and
        AllocationImbalance if the slices do not add up to the
        payment. Nothing is written when any of these is raised.
        """
        _, _, transactions = self._allocate(tenant_id, amount, on, method, reference)
        return transactions

    def record_payment(self, request: PaymentRequest) -> AllocationResult:
        plan, reference, transactions = self._allocate(
            request.tenant_id,
            request.amount,
            request.date,
            request.method,
            request.reference,
        )
        return AllocationResult(
            tenant_id=request.tenant_id,
            amount=plan.amount,
            reference=reference,
            slices=plan.slices,
            transactions=[
                TransactionResponse.model_validate(t) for t in transactions
            ],
        )

    def apply_advance(
        self, tenant_id: str, period: str, on: date
    ) -> list[Transaction]:
        """
        Settle a month from the credit balance the tenant holds.

        Moves money from the tenant's advance account to the
        receivable, one transaction per component, each tagged
        with the month it settles.

        All credit held is available, however late it was paid. The
        application is dated on the later of `on` and the last
        advance received, so it never precedes the money it spends.
        """
        advance = self.chart.find(AccountRef.advance(tenant_id))
        if advance is None:
            return []
        available = self.ledger.get_account_balance(advance.code)
        if available <= 0:
            return []

        received = [
            txn.date
            for txn in self.ledger.find_transactions(account_code=advance.code)
            if any(
                line.account_code == advance.code and line.credit > 0
                for line in txn.entries
            )
        ]
        on = max([on] + received)

        receivable = self._receivable(tenant_id, lock=True)
        obligation = next(
            (o for o in self.reports.get_obligations(tenant_id, on) if o.month == period),
            None,
        )
        if obligation is None:
            return []

        requests = []
        for component in component_order(self.settings.ALLOCATION_ORDER):
            if available <= 0:
                break
            outstanding = getattr(obligation, component.value).outstanding
            if outstanding <= 0:
                continue
            applied = min(available, outstanding)
            available -= applied
            description = (
                f"Advance applied: {component.value} for {period}"
            )
            requests.append(PostTransactionRequest(
                date=on,
                description=description,
                source=TransactionSource.PAYMENT,
                entries=[
                    EntryLineCreate(
                        account_code=advance.code,
                        debit=applied,
                        description=description,
                    ),
                    EntryLineCreate(
                        account_code=receivable.code,
                        credit=applied,
                        description=description,
                        component=component,
                    ),
                ],
                reference=f"ADV-{tenant_id}-{period}",
                student_id=tenant_id,
                period=period,
                month_settled=period,
                payment_type=component,
                allocation_type=AllocationType.ADVANCE_APPLICATION,
                metadata={"outstanding_before": str(outstanding)},
            ))

        if not requests:
            return []
        transactions = self.ledger.post_many(requests)
        logger.info(
            "Applied %s of advance to tenant %s period %s",
            sum((t.total_debit for t in transactions), ZERO), tenant_id, period,
        )
        return transactions
