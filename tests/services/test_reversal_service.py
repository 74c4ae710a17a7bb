"""
Tests for the ReversalService.

Tests cover:
- The mirror transaction and the balances it restores
- At-most-once reversal and no reversal of reversals
- Reversals counted against the month the original counted in
- Lease-start and whole-tenant reversals
- The end-to-end scenarios that leave 260 due: 540 billed with 180
  and 100 paid, or with 100 paid and the first month reversed
"""

from datetime import date
from decimal import Decimal

import pytest

from residence_ledger.exceptions import (
    AlreadyReversed,
    ReversalNotAllowed,
    TransactionNotFound,
)
from residence_ledger.models.audit_log import AuditLog
from residence_ledger.models.enums import (
    AllocationType,
    TransactionSource,
    TransactionStatus,
)
from residence_ledger.schemas.lease import LeaseCreate
from residence_ledger.schemas.ledger import EntryLineCreate, ManualTransactionCreate
from residence_ledger.services.accrual_service import AccrualService
from residence_ledger.services.allocation_service import AllocationService
from residence_ledger.services.lease_service import LeaseService
from residence_ledger.services.ledger_service import LedgerService
from residence_ledger.services.reporting_service import ReportingService
from residence_ledger.services.reversal_service import ReversalService

ON = date(2025, 7, 20)


def bill(db_session, months=("2025-05", "2025-06", "2025-07")):
    LeaseService(db_session).register_lease(LeaseCreate(
        tenant_id="T1",
        residence_id="RES-1",
        room_rate=Decimal("180.00"),
        admin_fee=Decimal("20.00"),
        lease_start=date(2025, 5, 1),
        lease_end=date(2025, 12, 31),
    ))
    accruals = AccrualService(db_session)
    return [accruals.post_accrual("T1", month) for month in months]


def outstanding(db_session, as_of=date(2025, 7, 31)):
    return {
        o.month: o.outstanding
        for o in ReportingService(db_session).get_obligations("T1", as_of)
    }


class TestReverseTransaction:

    def test_reversal_mirrors_every_line(self, db_session, chart):
        may, _, _ = bill(db_session)
        db_session.commit()

        reversal = ReversalService(db_session).reverse_transaction(
            may.id, "Billed in error", effective_date=ON
        )
        db_session.commit()

        assert reversal.source == TransactionSource.REVERSAL
        assert reversal.original_transaction_id == may.id
        assert reversal.period == may.period
        assert reversal.student_id == "T1"
        assert reversal.total_debit == may.total_debit
        original = sorted((line.account_code, line.debit, line.credit) for line in may.entries)
        mirrored = sorted((line.account_code, line.credit, line.debit)
                          for line in reversal.entries)
        assert original == mirrored

    def test_reversal_restores_account_balances(self, db_session, chart):
        (may,) = bill(db_session, months=("2025-05",))
        ReversalService(db_session).reverse_transaction(may.id, "Error", ON)
        db_session.commit()

        ledger = LedgerService(db_session)
        assert ledger.get_account_balance("1100-T1") == Decimal("0.00")
        assert ledger.get_account_balance("4000") == Decimal("0.00")
        assert ledger.get_account_balance("4100") == Decimal("0.00")
        assert ledger.check_integrity().is_balanced is True

    def test_original_becomes_void_without_being_rewritten(self, db_session, chart):
        may, _, _ = bill(db_session)
        service = ReversalService(db_session)
        service.reverse_transaction(may.id, "Error", ON)
        db_session.commit()

        assert service.is_reversed(may.id) is True
        assert may.effective_status == TransactionStatus.VOID
        assert may.status == TransactionStatus.POSTED

    def test_second_reversal_rejected(self, db_session, chart):
        may, _, _ = bill(db_session)
        service = ReversalService(db_session)
        service.reverse_transaction(may.id, "Error", ON)
        db_session.commit()

        with pytest.raises(AlreadyReversed, match="already reversed"):
            service.reverse_transaction(may.id, "Again", ON)

    def test_reversal_cannot_be_reversed(self, db_session, chart):
        may, _, _ = bill(db_session)
        service = ReversalService(db_session)
        reversal = service.reverse_transaction(may.id, "Error", ON)
        db_session.commit()

        with pytest.raises(ReversalNotAllowed):
            service.reverse_transaction(reversal.id, "Undo the undo", ON)

    def test_unknown_transaction_rejected(self, db_session):
        with pytest.raises(TransactionNotFound):
            ReversalService(db_session).reverse_transaction(999, "Nope")

    def test_reversal_is_audited(self, db_session, chart):
        may, _, _ = bill(db_session)
        ReversalService(db_session).reverse_transaction(may.id, "Error", ON)
        db_session.commit()

        entry = db_session.query(AuditLog).filter_by(
            event_type="transaction_reversed"
        ).one()
        assert entry.subject_id == str(may.id)


class TestReversalAttribution:

    def test_reversed_payment_reopens_the_month_it_settled(self, db_session, chart):
        bill(db_session)
        slices = AllocationService(db_session).allocate_payment(
            "T1", Decimal("100.00"), date(2025, 6, 10), "cash"
        )
        ReversalService(db_session).reverse_transaction(
            slices[0].id, "Payment bounced", ON
        )
        db_session.commit()

        assert outstanding(db_session)["2025-05"] == Decimal("200.00")

    def test_reversed_accrual_clears_its_month_only(self, db_session, chart):
        _, june, _ = bill(db_session)
        ReversalService(db_session).reverse_transaction(june.id, "Error", ON)
        db_session.commit()

        assert outstanding(db_session) == {
            "2025-05": Decimal("200.00"),
            "2025-06": Decimal("0.00"),
            "2025-07": Decimal("180.00"),
        }

    def test_end_to_end_balance(self, db_session, chart):
        """Three months at $180, payments of $180 and $100: $260 due."""
        LeaseService(db_session).register_lease(LeaseCreate(
            tenant_id="T2",
            residence_id="RES-1",
            room_rate=Decimal("180.00"),
            lease_start=date(2025, 5, 1),
            lease_end=date(2025, 12, 31),
        ))
        accruals = AccrualService(db_session)
        for month in ("2025-05", "2025-06", "2025-07"):
            accruals.post_accrual("T2", month)
        payments = AllocationService(db_session)
        payments.allocate_payment("T2", Decimal("180.00"), date(2025, 5, 10), "cash")
        payments.allocate_payment("T2", Decimal("100.00"), date(2025, 6, 10), "bank")
        db_session.commit()

        obligations = ReportingService(db_session).get_obligations(
            "T2", date(2025, 7, 31)
        )

        assert sum(o.owed for o in obligations) == Decimal("540.00")
        assert sum(o.paid for o in obligations) == Decimal("280.00")
        assert sum(o.outstanding for o in obligations) == Decimal("260.00")
        assert LedgerService(db_session).get_account_balance("1100-T2") == Decimal("260.00")

    def test_reversed_first_month_after_partial_payment(self, db_session, chart):
        """Bill 3 x $180, pay $100, reverse the first month: $260 due."""
        LeaseService(db_session).register_lease(LeaseCreate(
            tenant_id="T2",
            residence_id="RES-1",
            room_rate=Decimal("180.00"),
            lease_start=date(2025, 5, 1),
            lease_end=date(2025, 12, 31),
        ))
        accruals = AccrualService(db_session)
        may = accruals.post_accrual("T2", "2025-05")
        accruals.post_accrual("T2", "2025-06")
        accruals.post_accrual("T2", "2025-07")
        AllocationService(db_session).allocate_payment(
            "T2", Decimal("100.00"), date(2025, 5, 10), "cash"
        )
        ReversalService(db_session).reverse_transaction(may.id, "Billed in error", ON)
        db_session.commit()

        obligations = ReportingService(db_session).get_obligations(
            "T2", date(2025, 7, 31)
        )

        assert [(o.month, o.owed, o.paid, o.outstanding) for o in obligations] == [
            ("2025-05", Decimal("0.00"), Decimal("100.00"), Decimal("-100.00")),
            ("2025-06", Decimal("180.00"), Decimal("0.00"), Decimal("180.00")),
            ("2025-07", Decimal("180.00"), Decimal("0.00"), Decimal("180.00")),
        ]
        assert sum(o.outstanding for o in obligations) == Decimal("260.00")
        assert LedgerService(db_session).get_account_balance("1100-T2") == Decimal("260.00")

    def test_reversed_manual_charge_leaves_paid_untouched(self, db_session, chart):
        bill(db_session, months=("2025-05",))
        charge = LedgerService(db_session).post_manual(ManualTransactionCreate(
            date=date(2025, 5, 10),
            description="Broken window",
            student_id="T1",
            entries=[
                EntryLineCreate(account_code="1100-T1", debit=Decimal("50.00"),
                                description="Broken window"),
                EntryLineCreate(account_code="4000", credit=Decimal("50.00"),
                                description="Broken window"),
            ],
        ))
        ReversalService(db_session).reverse_transaction(charge.id, "Not the tenant", ON)
        db_session.commit()

        may = ReportingService(db_session).get_obligations("T1", date(2025, 7, 31))[0]

        assert may.month == "2025-05"
        # 180 rent and the 20 admin fee; the 50 charge nets to nothing
        assert (may.owed, may.paid) == (Decimal("200.00"), Decimal("0.00"))


class TestSemanticReversals:

    def test_reverse_lease_start(self, db_session, chart):
        bill(db_session)
        reversal = ReversalService(db_session).reverse_lease_start("T1", "No-show")
        db_session.commit()

        assert reversal.allocation_type == AllocationType.LEASE_START
        assert reversal.period == "2025-05"

    def test_reverse_lease_start_without_accrual(self, db_session, chart):
        with pytest.raises(TransactionNotFound):
            ReversalService(db_session).reverse_lease_start("T1", "No-show")

    def test_reverse_tenant_accruals_from_period(self, db_session, chart):
        bill(db_session)
        reversals = ReversalService(db_session).reverse_tenant_accruals(
            "T1", "Forfeited room", from_period="2025-06"
        )
        db_session.commit()

        assert sorted(r.period for r in reversals) == ["2025-06", "2025-07"]

    def test_reverse_tenant_accruals_skips_reversed(self, db_session, chart):
        may, _, _ = bill(db_session)
        service = ReversalService(db_session)
        service.reverse_transaction(may.id, "Error", ON)

        reversals = service.reverse_tenant_accruals("T1", "No-show")

        assert sorted(r.period for r in reversals) == ["2025-06", "2025-07"]

    def test_semantic_reversals_take_an_effective_date(self, db_session, chart):
        bill(db_session, months=("2025-05", "2025-06"))
        service = ReversalService(db_session)

        forfeited = service.reverse_tenant_accruals(
            "T1", "Forfeited room", from_period="2025-06",
            effective_date=date(2025, 6, 30),
        )
        start = service.reverse_lease_start(
            "T1", "No-show", effective_date=date(2025, 6, 30)
        )
        db_session.commit()

        assert [r.date for r in forfeited + [start]] == [date(2025, 6, 30)] * 2
        assert outstanding(db_session, as_of=date(2025, 6, 30)) == {
            "2025-05": Decimal("0.00"),
            "2025-06": Decimal("0.00"),
        }
