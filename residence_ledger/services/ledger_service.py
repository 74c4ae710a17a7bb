"""
Ledger service: the entry store.

This service enforces the fundamental rules:
1. Every transaction must balance (debits = credits)
2. Every line is either a debit or a credit, never both
3. Transactions are immutable (append-only)
4. Accounts must exist and be active

No other service writes to the ledger directly.
Accruals, payment slices and reversals all go through
post_transaction().
"""

import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import select, func
from sqlalchemy.orm import Session, selectinload

from residence_ledger.config import Settings, get_settings
from residence_ledger.exceptions import (
    AccountNotFound,
    InactiveAccount,
    InvalidEntryLine,
    TransactionNotFound,
    UnbalancedTransaction,
)
from residence_ledger.models.enums import AccountType, TransactionSource
from residence_ledger.models.ledger_account import LedgerAccount
from residence_ledger.models.ledger_entry import LedgerEntryLine
from residence_ledger.models.transaction import Transaction
from residence_ledger.periods import to_money
from residence_ledger.schemas.ledger import (
    EntryLineCreate,
    IntegrityReport,
    ManualTransactionCreate,
    PostTransactionRequest,
)

logger = logging.getLogger(__name__)

# Accounts whose balance grows with debits
DEBIT_NORMAL = (AccountType.ASSET, AccountType.EXPENSE)


def signed_balance(
    account_type: AccountType, debits: Decimal, credits: Decimal
) -> Decimal:
    """
    Balance in the account's natural direction.

    For ASSET and EXPENSE accounts: balance = debits - credits
    For LIABILITY, EQUITY, and INCOME: balance = credits - debits
    """
    if account_type in DEBIT_NORMAL:
        return debits - credits
    return credits - debits


class LedgerService:
    """
    All ledger writes pass through this service.

    The service takes a database session as a constructor
    argument. This means the caller controls the transaction
    boundary: they decide when to commit or rollback.
    """

    def __init__(self, db: Session, settings: Settings | None = None):
        self.db = db
        self.settings = settings or get_settings()

    # --- Writing ---

    def _validate_lines(self, entries: list[EntryLineCreate]) -> list[tuple]:
        """Round every line to cents and check it is a single-sided leg."""
        lines = []
        for position, entry in enumerate(entries):
            debit = to_money(entry.debit)
            credit = to_money(entry.credit)
            if debit < 0 or credit < 0:
                raise InvalidEntryLine(
                    f"Line {position} has a negative amount",
                    details={"line": position, "account_code": entry.account_code},
                )
            if (debit > 0) == (credit > 0):
                raise InvalidEntryLine(
                    f"Line {position} must be either a debit or a credit",
                    details={
                        "line": position,
                        "account_code": entry.account_code,
                        "debit": str(debit),
                        "credit": str(credit),
                    },
                )
            lines.append((entry, debit, credit))
        return lines

    def _load_accounts(self, codes: set[str]) -> dict[str, LedgerAccount]:
        accounts = self.db.execute(
            select(LedgerAccount).where(LedgerAccount.code.in_(codes))
        ).scalars().all()
        accounts_by_code = {a.code: a for a in accounts}

        missing = codes - set(accounts_by_code)
        if missing:
            raise AccountNotFound(
                f"Accounts not found: {sorted(missing)}",
                details={"account_codes": sorted(missing)},
            )

        for account in accounts_by_code.values():
            if not account.is_active:
                raise InactiveAccount(
                    f"Account {account.code} is not active",
                    details={"account_code": account.code},
                )
        return accounts_by_code

    def find_by_idempotency_key(self, key: str) -> Transaction | None:
        return self.db.execute(
            select(Transaction).where(Transaction.idempotency_key == key)
        ).scalar_one_or_none()

    def build_transaction(self, request: PostTransactionRequest) -> Transaction:
        """
        Validate a request and build the Transaction with its lines,
        without adding it to the session.

        Raises before anything is written if a line is malformed,
        an account is missing or inactive, or the lines do not
        balance.
        """
        lines = self._validate_lines(request.entries)
        accounts = self._load_accounts({e.account_code for e, _, _ in lines})

        total_debit = sum((d for _, d, _ in lines), Decimal("0.00"))
        total_credit = sum((c for _, _, c in lines), Decimal("0.00"))
        if abs(total_debit - total_credit) >= self.settings.BALANCE_TOLERANCE:
            raise UnbalancedTransaction(
                f"Transaction does not balance: "
                f"debits={total_debit}, credits={total_credit}",
                details={
                    "total_debit": str(total_debit),
                    "total_credit": str(total_credit),
                },
            )

        txn = Transaction(
            date=request.date,
            description=request.description,
            reference=request.reference,
            source=request.source,
            source_id=request.source_id,
            idempotency_key=request.idempotency_key,
            total_debit=total_debit,
            total_credit=total_credit,
            student_id=request.student_id,
            period=request.period,
            month_settled=request.month_settled,
            payment_type=request.payment_type,
            allocation_type=request.allocation_type,
            original_transaction_id=request.original_transaction_id,
            meta=dict(request.metadata),
        )
        for entry, debit, credit in lines:
            account = accounts[entry.account_code]
            txn.entries.append(LedgerEntryLine(
                account_code=account.code,
                account_name=account.name,
                account_type=account.account_type,
                debit=debit,
                credit=credit,
                description=entry.description,
                component=entry.component,
            ))
        return txn

    def post_transaction(self, request: PostTransactionRequest) -> Transaction:
        """
        Post a balanced transaction.

        The header and every line are flushed together. If the
        idempotency key has been used before, the transaction
        already on the ledger is returned and nothing is written.
        The caller is responsible for calling db.commit().
        """
        if request.idempotency_key:
            existing = self.find_by_idempotency_key(request.idempotency_key)
            if existing:
                logger.info(
                    "Idempotency key %s already posted as transaction %s",
                    request.idempotency_key, existing.id,
                )
                return existing

        txn = self.build_transaction(request)
        self.db.add(txn)
        self.db.flush()
        logger.info(
            "Posted %s transaction %s: %s (%s)",
            txn.source.value, txn.id, txn.description, txn.total_debit,
        )
        return txn

    def post_many(self, requests: list[PostTransactionRequest]) -> list[Transaction]:
        """
        Post several transactions as one unit.

        Every transaction is validated before the first one is
        added, so a bad request leaves the session untouched.
        """
        built = [self.build_transaction(request) for request in requests]
        self.db.add_all(built)
        self.db.flush()
        for txn in built:
            logger.info(
                "Posted %s transaction %s: %s (%s)",
                txn.source.value, txn.id, txn.description, txn.total_debit,
            )
        return built

    def post_manual(self, request: ManualTransactionCreate) -> Transaction:
        """Post a journal supplied by a collaborator."""
        return self.post_transaction(PostTransactionRequest(
            date=request.date,
            description=request.description,
            source=request.source,
            entries=request.entries,
            reference=request.reference,
            idempotency_key=request.idempotency_key,
            student_id=request.student_id,
            metadata=request.metadata,
        ))

    # --- Reading ---

    def get_transaction(self, transaction_id: int) -> Transaction:
        txn = self.db.get(Transaction, transaction_id)
        if not txn:
            raise TransactionNotFound(
                f"Transaction {transaction_id} not found",
                details={"transaction_id": transaction_id},
            )
        return txn

    def find_transactions(
        self,
        student_id: str | None = None,
        source: TransactionSource | None = None,
        period: str | None = None,
        up_to: date | None = None,
        account_code: str | None = None,
    ) -> list[Transaction]:
        """Transactions matching every given filter, oldest first."""
        query = select(Transaction).options(selectinload(Transaction.entries))
        if student_id is not None:
            query = query.where(Transaction.student_id == student_id)
        if source is not None:
            query = query.where(Transaction.source == source)
        if period is not None:
            query = query.where(Transaction.period == period)
        if up_to is not None:
            query = query.where(Transaction.date <= up_to)
        if account_code is not None:
            query = query.where(
                Transaction.entries.any(LedgerEntryLine.account_code == account_code)
            )
        query = query.order_by(Transaction.date, Transaction.id)
        return list(self.db.execute(query).scalars().all())

    def get_account_balance(
        self, account_code: str, as_of: date | None = None
    ) -> Decimal:
        """
        Calculate an account's balance from its lines.

        Balance is never stored. It is always derived from the
        lines, optionally only those dated on or before as_of.
        """
        account = self.db.execute(
            select(LedgerAccount).where(LedgerAccount.code == account_code)
        ).scalar_one_or_none()
        if not account:
            raise AccountNotFound(
                f"Account {account_code} not found",
                details={"account_code": account_code},
            )

        query = (
            select(
                func.coalesce(func.sum(LedgerEntryLine.debit), 0),
                func.coalesce(func.sum(LedgerEntryLine.credit), 0),
            )
            .join(Transaction, LedgerEntryLine.transaction_id == Transaction.id)
            .where(LedgerEntryLine.account_code == account_code)
        )
        if as_of is not None:
            query = query.where(Transaction.date <= as_of)
        total_debits, total_credits = self.db.execute(query).one()

        return signed_balance(
            account.account_type,
            to_money(total_debits),
            to_money(total_credits),
        )

    def get_entries_by_account(self, account_code: str) -> list[LedgerEntryLine]:
        """Return all lines posted to an account, newest first."""
        entries = self.db.execute(
            select(LedgerEntryLine)
            .join(Transaction, LedgerEntryLine.transaction_id == Transaction.id)
            .where(LedgerEntryLine.account_code == account_code)
            .order_by(Transaction.date.desc(), LedgerEntryLine.id.desc())
        ).scalars().all()
        return list(entries)

    def check_integrity(self) -> IntegrityReport:
        """
        Replay every line and confirm each transaction balances and
        that its stored totals match its lines.
        """
        rows = self.db.execute(
            select(
                LedgerEntryLine.transaction_id,
                func.sum(LedgerEntryLine.debit),
                func.sum(LedgerEntryLine.credit),
            ).group_by(LedgerEntryLine.transaction_id)
        ).all()
        headers = {
            txn_id: (to_money(debit), to_money(credit))
            for txn_id, debit, credit in self.db.execute(
                select(
                    Transaction.id,
                    Transaction.total_debit,
                    Transaction.total_credit,
                )
            ).all()
        }

        total_debits = Decimal("0.00")
        total_credits = Decimal("0.00")
        unbalanced = []
        for txn_id, debit, credit in rows:
            debit, credit = to_money(debit), to_money(credit)
            total_debits += debit
            total_credits += credit
            if debit != credit or headers.get(txn_id) != (debit, credit):
                unbalanced.append(txn_id)

        if unbalanced:
            logger.warning("Integrity check found unbalanced transactions: %s", unbalanced)

        return IntegrityReport(
            is_balanced=not unbalanced and total_debits == total_credits,
            total_debits=total_debits,
            total_credits=total_credits,
            difference=total_debits - total_credits,
            transaction_count=len(headers),
            unbalanced_transaction_ids=sorted(unbalanced),
        )
