"""
Tests for the AllocationService.

The worked example used throughout: rent of $180 accrued for May
and June, then a $200 payment. It must settle May in full and put
the remaining $20 against June.
"""

from datetime import date
from decimal import Decimal

import pytest

from residence_ledger.exceptions import (
    AllocationImbalance,
    InvalidAmount,
    InvalidPaymentMethod,
    NoReceivableAccount,
)
from residence_ledger.models.audit_log import AuditLog
from residence_ledger.models.enums import (
    AllocationType,
    ChargeComponent,
    TransactionSource,
)
from residence_ledger.models.transaction import Transaction
from residence_ledger.schemas.lease import LeaseCreate
from residence_ledger.schemas.payment import (
    AllocationPlan,
    AllocationSlice,
    PaymentRequest,
)
from residence_ledger.services.accrual_service import AccrualService
from residence_ledger.services.allocation_service import AllocationService
from residence_ledger.services.lease_service import LeaseService
from residence_ledger.services.ledger_service import LedgerService
from residence_ledger.services.reporting_service import ReportingService


def make_tenant(db_session, months=("2025-05", "2025-06"), settings=None,
                admin_fee="0", deposit_amount="0"):
    """Lease T1 at $180 a month from May and accrue the given months."""
    LeaseService(db_session).register_lease(LeaseCreate(
        tenant_id="T1",
        residence_id="RES-1",
        room_rate=Decimal("180.00"),
        admin_fee=Decimal(admin_fee),
        deposit_amount=Decimal(deposit_amount),
        lease_start=date(2025, 5, 1),
        lease_end=date(2025, 12, 31),
    ))
    accruals = AccrualService(db_session, settings)
    for month in months:
        accruals.post_accrual("T1", month)
    db_session.commit()


def outstanding_by_month(db_session, as_of):
    return {
        o.month: o.outstanding
        for o in ReportingService(db_session).get_obligations("T1", as_of)
    }


class TestAllocatePayment:

    def test_oldest_month_settled_first(self, db_session, chart):
        make_tenant(db_session)
        service = AllocationService(db_session)

        slices = service.allocate_payment(
            "T1", Decimal("200.00"), date(2025, 6, 10), "cash"
        )
        db_session.commit()

        assert [(t.month_settled, t.total_debit) for t in slices] == [
            ("2025-05", Decimal("180.00")),
            ("2025-06", Decimal("20.00")),
        ]
        assert outstanding_by_month(db_session, date(2025, 6, 30)) == {
            "2025-05": Decimal("0.00"),
            "2025-06": Decimal("160.00"),
        }

    def test_slices_are_tagged_and_share_reference(self, db_session, chart):
        make_tenant(db_session)
        slices = AllocationService(db_session).allocate_payment(
            "T1", Decimal("200.00"), date(2025, 6, 10), "ecocash",
            reference="RCPT-7",
        )

        for txn in slices:
            assert txn.source == TransactionSource.PAYMENT
            assert txn.reference == "RCPT-7"
            assert txn.period == txn.month_settled
            assert txn.payment_type == ChargeComponent.RENT
            assert txn.allocation_type == AllocationType.PAYMENT_ALLOCATION
            assert txn.meta["method"] == "ecocash"
            codes = {line.account_code for line in txn.entries}
            assert codes == {"1002", "1100-T1"}

    def test_payment_counts_only_for_the_month_it_settles(self, db_session, chart):
        """A June payment that settles May must not reduce June."""
        make_tenant(db_session)
        AllocationService(db_session).allocate_payment(
            "T1", Decimal("180.00"), date(2025, 6, 10), "cash"
        )
        db_session.commit()

        outstanding = outstanding_by_month(db_session, date(2025, 6, 30))
        assert outstanding["2025-05"] == Decimal("0.00")
        assert outstanding["2025-06"] == Decimal("180.00")

    def test_components_follow_configured_order(self, db_session, chart, settings):
        settings.ALLOCATION_ORDER = ("deposit", "admin_fee", "rent")
        make_tenant(db_session, months=("2025-05",), admin_fee="20.00",
                    deposit_amount="100.00")

        slices = AllocationService(db_session, settings).allocate_payment(
            "T1", Decimal("110.00"), date(2025, 5, 5), "cash"
        )

        assert [(t.payment_type, t.total_debit) for t in slices] == [
            (ChargeComponent.DEPOSIT, Decimal("100.00")),
            (ChargeComponent.ADMIN_FEE, Decimal("10.00")),
        ]

    def test_allocation_is_audited(self, db_session, chart):
        make_tenant(db_session)
        AllocationService(db_session).allocate_payment(
            "T1", Decimal("50.00"), date(2025, 6, 10), "cash"
        )
        db_session.commit()

        assert db_session.query(AuditLog).filter_by(
            event_type="payment_allocation", subject_id="T1"
        ).count() == 1

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5.00")])
    def test_non_positive_amount_rejected(self, db_session, chart, amount):
        make_tenant(db_session)

        with pytest.raises(InvalidAmount):
            AllocationService(db_session).allocate_payment(
                "T1", amount, date(2025, 6, 10), "cash"
            )

    def test_tenant_without_receivable_rejected(self, db_session, chart):
        with pytest.raises(NoReceivableAccount):
            AllocationService(db_session).allocate_payment(
                "T404", Decimal("50.00"), date(2025, 6, 10), "cash"
            )

        assert db_session.query(Transaction).count() == 0

    def test_short_plan_aborts_whole_payment(self, db_session, chart, monkeypatch):
        make_tenant(db_session)

        def short_plan(self, tenant_id, amount, on, method):
            return AllocationPlan(
                tenant_id=tenant_id,
                amount=amount,
                method=method,
                slices=[AllocationSlice(
                    month_settled="2025-05",
                    component=ChargeComponent.RENT,
                    amount=Decimal("150.00"),
                    allocation_type=AllocationType.PAYMENT_ALLOCATION,
                )],
            )

        monkeypatch.setattr(AllocationService, "_plan", short_plan)

        with pytest.raises(AllocationImbalance):
            AllocationService(db_session).allocate_payment(
                "T1", Decimal("200.00"), date(2025, 6, 10), "cash"
            )

        assert db_session.query(Transaction).filter_by(
            source=TransactionSource.PAYMENT
        ).count() == 0
        assert db_session.query(AuditLog).filter_by(
            event_type="payment_allocation"
        ).count() == 0

    def test_unknown_method_rejected(self, db_session, chart):
        make_tenant(db_session)

        with pytest.raises(InvalidPaymentMethod):
            AllocationService(db_session).allocate_payment(
                "T1", Decimal("50.00"), date(2025, 6, 10), "cheque"
            )


class TestOverpayment:

    def test_remainder_held_as_credit_balance(self, db_session, chart):
        make_tenant(db_session, months=("2025-05",))
        slices = AllocationService(db_session).allocate_payment(
            "T1", Decimal("300.00"), date(2025, 5, 5), "cash"
        )
        db_session.commit()

        advance = slices[-1]
        assert advance.allocation_type == AllocationType.ADVANCE_PAYMENT
        assert advance.month_settled is None
        ledger = LedgerService(db_session)
        assert ledger.get_account_balance("2200-T1") == Decimal("120.00")
        assert ledger.get_account_balance("1000") == Decimal("300.00")

    def test_credit_balance_applied_to_next_accrual(self, db_session, chart):
        make_tenant(db_session, months=("2025-05",))
        AllocationService(db_session).allocate_payment(
            "T1", Decimal("300.00"), date(2025, 5, 5), "cash"
        )
        AccrualService(db_session).post_accrual("T1", "2025-06")
        db_session.commit()

        applied = db_session.query(Transaction).filter_by(
            allocation_type=AllocationType.ADVANCE_APPLICATION
        ).one()
        assert applied.month_settled == "2025-06"
        assert applied.total_debit == Decimal("120.00")
        assert LedgerService(db_session).get_account_balance("2200-T1") == Decimal("0.00")
        assert outstanding_by_month(db_session, date(2025, 6, 30))["2025-06"] == Decimal("60.00")

    def test_credit_paid_after_month_start_still_applied(self, db_session, chart):
        """Credit paid on 5 June covers June even though June accrues on the 1st."""
        make_tenant(db_session, months=("2025-05",))
        AllocationService(db_session).allocate_payment(
            "T1", Decimal("360.00"), date(2025, 6, 5), "cash"
        )
        AccrualService(db_session).post_accrual("T1", "2025-06")
        db_session.commit()

        applied = db_session.query(Transaction).filter_by(
            allocation_type=AllocationType.ADVANCE_APPLICATION
        ).one()
        assert applied.date == date(2025, 6, 5)
        assert applied.total_debit == Decimal("180.00")
        assert LedgerService(db_session).get_account_balance("2200-T1") == Decimal("0.00")
        assert outstanding_by_month(db_session, date(2025, 6, 30)) == {
            "2025-05": Decimal("0.00"),
            "2025-06": Decimal("0.00"),
        }

    def test_prepay_future_tags_next_unaccrued_month(self, db_session, chart, settings):
        settings.OVERPAYMENT_POLICY = "prepay_future"
        make_tenant(db_session, months=("2025-05",), settings=settings)

        slices = AllocationService(db_session, settings).allocate_payment(
            "T1", Decimal("300.00"), date(2025, 5, 5), "cash"
        )
        AccrualService(db_session, settings).post_accrual("T1", "2025-06")
        db_session.commit()

        prepayment = slices[-1]
        assert prepayment.allocation_type == AllocationType.PREPAYMENT
        assert prepayment.month_settled == "2025-06"
        assert prepayment.total_debit == Decimal("120.00")
        assert outstanding_by_month(db_session, date(2025, 6, 30)) == {
            "2025-05": Decimal("0.00"),
            "2025-06": Decimal("60.00"),
        }

    def test_unknown_policy_rejected(self, db_session, settings):
        settings.OVERPAYMENT_POLICY = "refund"

        with pytest.raises(ValueError, match="overpayment policy"):
            AllocationService(db_session, settings)


class TestPreviewAndRecord:

    def test_preview_posts_nothing(self, db_session, chart):
        make_tenant(db_session)
        plan = AllocationService(db_session).preview_allocation(
            "T1", Decimal("200.00"), date(2025, 6, 10)
        )

        assert [(s.month_settled, s.amount) for s in plan.slices] == [
            ("2025-05", Decimal("180.00")),
            ("2025-06", Decimal("20.00")),
        ]
        assert plan.allocated == Decimal("200.00")
        assert db_session.query(Transaction).filter_by(
            source=TransactionSource.PAYMENT
        ).count() == 0

    def test_record_payment_returns_slices_and_transactions(self, db_session, chart):
        make_tenant(db_session)
        result = AllocationService(db_session).record_payment(PaymentRequest(
            tenant_id="T1",
            amount=Decimal("200.00"),
            date=date(2025, 6, 10),
            method="bank_transfer",
        ))

        assert result.reference.startswith("PAY-")
        assert len(result.slices) == len(result.transactions) == 2
        assert result.slices[0].outstanding_before == Decimal("180.00")
