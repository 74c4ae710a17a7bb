"""
Reversal service.

Posted transactions are never edited or deleted. To undo one,
a mirror transaction is posted: every line's debit and credit
swapped, source "reversal", pointing back at the original. The
mirror copies the original's tenant, period and month_settled,
so balances derived afterwards net both to zero in the very
month the original was counted in.

A transaction can be reversed at most once, and a reversal
itself cannot be reversed; the original is simply considered
void from then on.
"""

import json
import logging
from datetime import date

from sqlalchemy.orm import Session

from residence_ledger.config import Settings, get_settings
from residence_ledger.exceptions import (
    AlreadyReversed,
    ReversalNotAllowed,
    TransactionNotFound,
)
from residence_ledger.models.audit_log import AuditLog
from residence_ledger.models.enums import AllocationType, TransactionSource
from residence_ledger.models.transaction import Transaction
from residence_ledger.schemas.ledger import EntryLineCreate, PostTransactionRequest
from residence_ledger.services.ledger_service import LedgerService

logger = logging.getLogger(__name__)


class ReversalService:

    def __init__(self, db: Session, settings: Settings | None = None):
        self.db = db
        self.settings = settings or get_settings()
        self.ledger = LedgerService(db, self.settings)

    def is_reversed(self, transaction_id: int) -> bool:
        return self.ledger.get_transaction(transaction_id).is_reversed

    def build_reversal(
        self, original: Transaction, reason: str, effective_date: date | None = None
    ) -> PostTransactionRequest:
        entries = [
            EntryLineCreate(
                account_code=line.account_code,
                debit=line.credit,
                credit=line.debit,
                description=f"Reversal: {line.description}"[:255],
                component=line.component,
            )
            for line in original.entries
        ]
        return PostTransactionRequest(
            date=effective_date or date.today(),
            description=f"Reversal of #{original.id}: {reason}"[:255],
            source=TransactionSource.REVERSAL,
            entries=entries,
            reference=original.reference,
            source_id=str(original.id),
            idempotency_key=f"reversal:{original.id}",
            student_id=original.student_id,
            period=original.period,
            month_settled=original.month_settled,
            payment_type=original.payment_type,
            allocation_type=original.allocation_type,
            original_transaction_id=original.id,
            metadata={"reason": reason, "original_source": original.source.value},
        )

    def reverse_transaction(
        self,
        transaction_id: int,
        reason: str,
        effective_date: date | None = None,
    ) -> Transaction:
        """
        Post the mirror of a transaction.

        Raises TransactionNotFound for an unknown id, AlreadyReversed
        if a reversal already exists and ReversalNotAllowed when the
        target is itself a reversal.
        """
        original = self.ledger.get_transaction(transaction_id)

        if original.source == TransactionSource.REVERSAL:
            raise ReversalNotAllowed(
                f"Transaction {transaction_id} is a reversal and cannot be reversed",
                details={"transaction_id": transaction_id},
            )
        if original.is_reversed:
            raise AlreadyReversed(
                f"Transaction {transaction_id} was already reversed "
                f"by transaction {original.reversal.id}",
                details={
                    "transaction_id": transaction_id,
                    "reversal_id": original.reversal.id,
                },
            )

        reversal = self.ledger.post_transaction(
            self.build_reversal(original, reason, effective_date)
        )
        self.db.refresh(original)

        self.db.add(AuditLog(
            event_type="transaction_reversed",
            subject_id=str(transaction_id),
            details=json.dumps({
                "reversal_id": reversal.id,
                "reason": reason,
                "student_id": original.student_id,
                "amount": str(original.total_debit),
            }),
        ))
        self.db.flush()
        logger.info(
            "Reversed transaction %s with %s: %s",
            transaction_id, reversal.id, reason,
        )
        return reversal

    def _unreversed_accruals(self, tenant_id: str) -> list[Transaction]:
        return [
            txn for txn in self.ledger.find_transactions(
                student_id=tenant_id, source=TransactionSource.ACCRUAL
            )
            if not txn.is_reversed
        ]

    def reverse_lease_start(
        self, tenant_id: str, reason: str, effective_date: date | None = None
    ) -> Transaction:
        """Reverse the tenant's lease-start accrual (admin fee, deposit, first rent)."""
        for txn in self._unreversed_accruals(tenant_id):
            if txn.allocation_type == AllocationType.LEASE_START:
                return self.reverse_transaction(txn.id, reason, effective_date)
        raise TransactionNotFound(
            f"No unreversed lease-start accrual for tenant {tenant_id}",
            details={"tenant_id": tenant_id},
        )

    def reverse_tenant_accruals(
        self,
        tenant_id: str,
        reason: str,
        from_period: str | None = None,
        effective_date: date | None = None,
    ) -> list[Transaction]:
        """
        Reverse every accrual of a tenant still standing, optionally
        only from a given month on. Used when a tenant never takes
        up the room or forfeits it.
        """
        reversals = []
        for txn in self._unreversed_accruals(tenant_id):
            if from_period is not None and (txn.period or "") < from_period:
                continue
            reversals.append(
                self.reverse_transaction(txn.id, reason, effective_date)
            )

        logger.info(
            "Reversed %d accruals for tenant %s", len(reversals), tenant_id,
        )
        return reversals
