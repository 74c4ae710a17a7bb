"""
Reporting service: balances, obligations, aging and statements.

Everything here is derived by replaying posted transactions.
No method reads a stored "current balance" or "total paid"
field, because there are none: a figure that can be recomputed
from the log cannot drift away from it.

How a tenant's month is attributed:
- accruals (and their reversals) count towards what was owed for
  the accrual's period;
- payment slices (and their reversals) count towards what was
  paid for the month named in month_settled, and only that month.
"""

import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from residence_ledger.config import Settings, get_settings
from residence_ledger.models.enums import (
    AccountType,
    ChargeComponent,
    ReportingBasis,
    TransactionSource,
)
from residence_ledger.models.ledger_account import LedgerAccount
from residence_ledger.models.transaction import Transaction
from residence_ledger.periods import due_date, month_key
from residence_ledger.schemas.reports import (
    AccountBalance,
    AgingBuckets,
    AgingReport,
    BalanceSheet,
    CashFlowAccount,
    CashFlowMonth,
    CashFlowStatement,
    ComponentBalance,
    IncomeStatement,
    MonthlyObligation,
    TenantAging,
    TenantBalance,
    TrialBalance,
)
from residence_ledger.services.chart_of_accounts import (
    AccountRef,
    BaseAccount,
    CASH_CODES,
    COMPONENT_ACCOUNTS,
    BASE_CHART,
    ChartOfAccounts,
)
from residence_ledger.services.ledger_service import LedgerService, signed_balance

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")

CASH_SOURCES = frozenset({
    TransactionSource.PAYMENT,
    TransactionSource.EXPENSE_PAYMENT,
})


def effective_source(txn: Transaction) -> TransactionSource:
    """The source a transaction counts as: reversals count as what they undo."""
    if txn.source == TransactionSource.REVERSAL and txn.original_transaction:
        return txn.original_transaction.source
    return txn.source


class ReportingService:

    def __init__(self, db: Session, settings: Settings | None = None):
        self.db = db
        self.settings = settings or get_settings()
        self.ledger = LedgerService(db, self.settings)
        self.chart = ChartOfAccounts(db)

    # --- Tenant obligations ---

    def get_obligations(
        self, tenant_id: str, as_of: date
    ) -> list[MonthlyObligation]:
        """
        Per month: what the tenant owed, paid and still owes, using
        only transactions dated on or before as_of.

        outstanding = owed - paid, and may be negative when a month
        has been paid ahead or its accrual was reversed after payment.
        """
        receivable = AccountRef.receivable(tenant_id).code
        months: dict[str, dict[ChargeComponent, ComponentBalance]] = defaultdict(
            lambda: {c: ComponentBalance() for c in ChargeComponent}
        )

        for txn in self.ledger.find_transactions(
            account_code=receivable, up_to=as_of
        ):
            source = effective_source(txn)
            for line in txn.entries:
                if line.account_code != receivable:
                    continue
                component = line.component or ChargeComponent.RENT

                if source == TransactionSource.PAYMENT:
                    if not txn.month_settled:
                        logger.warning(
                            "Payment transaction %s has no month_settled; "
                            "it is not attributed to any month", txn.id,
                        )
                        continue
                    balance = months[txn.month_settled][component]
                    balance.paid += line.credit - line.debit
                elif source == TransactionSource.ACCRUAL:
                    balance = months[txn.period or month_key(txn.date)][component]
                    balance.owed += line.debit - line.credit
                else:
                    # Manual adjustments: charges add to what is owed,
                    # receipts to what is paid, for the month they name
                    counted = txn
                    if txn.source == TransactionSource.REVERSAL:
                        counted = txn.original_transaction or txn
                    month = (
                        counted.month_settled or counted.period
                        or month_key(counted.date)
                    )
                    balance = months[month][component]
                    if txn.source == TransactionSource.REVERSAL:
                        # Mirror lines: take back from the same side
                        balance.owed -= line.credit
                        balance.paid -= line.debit
                    else:
                        balance.owed += line.debit
                        balance.paid += line.credit

        obligations = []
        for month in sorted(months):
            parts = months[month]
            owed = sum((p.owed for p in parts.values()), ZERO)
            paid = sum((p.paid for p in parts.values()), ZERO)
            outstanding = owed - paid
            due = due_date(month, self.settings.RENT_DUE_DAY)
            days_overdue = 0
            if outstanding > 0:
                days_overdue = max(0, (as_of - due).days)
            obligations.append(MonthlyObligation(
                month=month,
                due_date=due,
                rent=parts[ChargeComponent.RENT],
                admin_fee=parts[ChargeComponent.ADMIN_FEE],
                deposit=parts[ChargeComponent.DEPOSIT],
                owed=owed,
                paid=paid,
                outstanding=outstanding,
                days_overdue=days_overdue,
            ))
        return obligations

    def get_tenant_balance(self, tenant_id: str, as_of: date) -> TenantBalance:
        """Receivable, advance (credit held) and the net amount due."""
        receivable = self.chart.find(AccountRef.receivable(tenant_id))
        advance = self.chart.find(AccountRef.advance(tenant_id))

        receivable_balance = (
            self.ledger.get_account_balance(receivable.code, as_of)
            if receivable else ZERO
        )
        advance_balance = (
            self.ledger.get_account_balance(advance.code, as_of)
            if advance else ZERO
        )
        return TenantBalance(
            tenant_id=tenant_id,
            as_of=as_of,
            receivable=receivable_balance,
            advance=advance_balance,
            net_due=receivable_balance - advance_balance,
        )

    def get_aging(self, as_of: date, tenant_id: str | None = None) -> AgingReport:
        """
        Outstanding amounts bucketed by days past due.

        Only months with a positive outstanding amount are aged;
        credits on other months are not netted against them.
        """
        if tenant_id is not None:
            tenant_ids = [tenant_id]
        else:
            tenant_ids = [
                account.owner_id
                for account in self.chart.list_accounts(
                    parent_code=BaseAccount.TENANT_RECEIVABLE.value
                )
            ]

        totals = AgingBuckets()
        tenants = []
        for owner in tenant_ids:
            buckets = AgingBuckets()
            for obligation in self.get_obligations(owner, as_of):
                if obligation.outstanding <= 0:
                    continue
                if obligation.days_overdue <= 30:
                    buckets.current += obligation.outstanding
                elif obligation.days_overdue <= 60:
                    buckets.days_31_60 += obligation.outstanding
                elif obligation.days_overdue <= 90:
                    buckets.days_61_90 += obligation.outstanding
                else:
                    buckets.over_90 += obligation.outstanding
            if buckets.total == 0:
                continue
            tenants.append(TenantAging(
                tenant_id=owner, buckets=buckets, total=buckets.total,
            ))
            totals.current += buckets.current
            totals.days_31_60 += buckets.days_31_60
            totals.days_61_90 += buckets.days_61_90
            totals.over_90 += buckets.over_90

        return AgingReport(
            as_of=as_of, tenants=tenants, totals=totals, total=totals.total,
        )

    # --- Ledger-wide statements ---

    def _transactions(
        self,
        start: date | None,
        end: date,
        basis: ReportingBasis,
    ) -> list[Transaction]:
        query = (
            select(Transaction)
            .options(
                selectinload(Transaction.entries),
                selectinload(Transaction.original_transaction),
            )
            .where(Transaction.date <= end)
            .order_by(Transaction.date, Transaction.id)
        )
        if start is not None:
            query = query.where(Transaction.date >= start)
        txns = list(self.db.execute(query).scalars().all())
        if basis == ReportingBasis.CASH:
            txns = [t for t in txns if effective_source(t) in CASH_SOURCES]
        return txns

    def _accounts(self) -> dict[str, LedgerAccount]:
        return {a.code: a for a in self.chart.list_accounts()}

    def get_trial_balance(
        self,
        as_of: date,
        basis: ReportingBasis = ReportingBasis.ACCRUAL,
        rollup: bool = False,
    ) -> list[AccountBalance]:
        """Account balances as of a date; see build_trial_balance for totals."""
        return self.build_trial_balance(as_of, basis, rollup).accounts

    def build_trial_balance(
        self,
        as_of: date,
        basis: ReportingBasis = ReportingBasis.ACCRUAL,
        rollup: bool = False,
    ) -> TrialBalance:
        """
        Group every line dated on or before as_of by account.

        With rollup=True tenant sub-ledgers are folded into the base
        account they belong to. The cash basis keeps only payments,
        expense payments and reversals of those.
        """
        accounts = self._accounts()
        debits: dict[str, Decimal] = defaultdict(lambda: ZERO)
        credits: dict[str, Decimal] = defaultdict(lambda: ZERO)
        names: dict[str, tuple[str, AccountType]] = {}

        for txn in self._transactions(None, as_of, basis):
            for line in txn.entries:
                code = line.account_code
                name, account_type = line.account_name, line.account_type
                account = accounts.get(code)
                if rollup and account is not None and account.parent_code:
                    code = account.parent_code
                    name, account_type = BASE_CHART[BaseAccount(code)]
                debits[code] += line.debit
                credits[code] += line.credit
                names[code] = (name, account_type)

        rows = []
        total_debit = ZERO
        total_credit = ZERO
        for code in sorted(names):
            name, account_type = names[code]
            net = debits[code] - credits[code]
            if net > 0:
                total_debit += net
            else:
                total_credit -= net
            rows.append(AccountBalance(
                account_code=code,
                account_name=name,
                account_type=account_type,
                total_debit=debits[code],
                total_credit=credits[code],
                balance=signed_balance(account_type, debits[code], credits[code]),
            ))

        return TrialBalance(
            as_of=as_of,
            basis=basis,
            accounts=rows,
            total_debit=total_debit,
            total_credit=total_credit,
            is_balanced=total_debit == total_credit,
        )

    def get_balance_sheet(self, as_of: date, rollup: bool = True) -> BalanceSheet:
        """
        Assets, liabilities and equity as of a date.

        Income and expense accounts are closed into retained
        earnings: cumulative net income up to as_of. Tenant
        sub-ledgers are folded into their base account unless
        rollup is False.
        """
        trial = self.build_trial_balance(as_of, ReportingBasis.ACCRUAL, rollup)

        groups: dict[AccountType, list[AccountBalance]] = defaultdict(list)
        for row in trial.accounts:
            groups[row.account_type].append(row)

        def total(account_type: AccountType) -> Decimal:
            return sum((r.balance for r in groups[account_type]), ZERO)

        retained_earnings = total(AccountType.INCOME) - total(AccountType.EXPENSE)
        total_assets = total(AccountType.ASSET)
        total_liabilities = total(AccountType.LIABILITY)
        total_equity = total(AccountType.EQUITY) + retained_earnings
        difference = total_assets - total_liabilities - total_equity
        if difference != 0:
            logger.warning(
                "Balance sheet as of %s is off by %s", as_of, difference,
            )

        return BalanceSheet(
            as_of=as_of,
            assets=groups[AccountType.ASSET],
            liabilities=groups[AccountType.LIABILITY],
            equity=groups[AccountType.EQUITY],
            retained_earnings=retained_earnings,
            total_assets=total_assets,
            total_liabilities=total_liabilities,
            total_equity=total_equity,
            is_balanced=abs(difference) < self.settings.BALANCE_TOLERANCE,
        )

    def get_income_statement(
        self,
        start: date,
        end: date,
        basis: ReportingBasis = ReportingBasis.ACCRUAL,
    ) -> IncomeStatement:
        """
        Income and expenses for a date range.

        Accrual basis reads the income and expense lines as posted.
        Cash basis recognises income when a tenant's payment settles a
        charge: rent and admin-fee slices count as the matching income,
        deposit slices and advances do not (they are liabilities).
        Expenses on the cash basis come from expense payments.
        """
        debits: dict[str, Decimal] = defaultdict(lambda: ZERO)
        credits: dict[str, Decimal] = defaultdict(lambda: ZERO)
        names: dict[str, tuple[str, AccountType]] = {}

        for txn in self._transactions(start, end, basis):
            source = effective_source(txn)
            for line in txn.entries:
                if basis == ReportingBasis.CASH and source == TransactionSource.PAYMENT:
                    if (line.account_type != AccountType.ASSET
                            or line.account_code in CASH_CODES):
                        continue
                    # Receivable credit: recognise as the income it settles
                    target = COMPONENT_ACCOUNTS[line.component or ChargeComponent.RENT]
                    name, account_type = BASE_CHART[target]
                    if account_type != AccountType.INCOME:
                        continue
                    code = target.value
                    debits[code] += line.debit
                    credits[code] += line.credit
                    names[code] = (name, account_type)
                    continue

                if line.account_type not in (AccountType.INCOME, AccountType.EXPENSE):
                    continue
                code = line.account_code
                debits[code] += line.debit
                credits[code] += line.credit
                names[code] = (line.account_name, line.account_type)

        income, expenses = [], []
        for code in sorted(names):
            name, account_type = names[code]
            row = AccountBalance(
                account_code=code,
                account_name=name,
                account_type=account_type,
                total_debit=debits[code],
                total_credit=credits[code],
                balance=signed_balance(account_type, debits[code], credits[code]),
            )
            (income if account_type == AccountType.INCOME else expenses).append(row)

        total_income = sum((r.balance for r in income), ZERO)
        total_expenses = sum((r.balance for r in expenses), ZERO)
        return IncomeStatement(
            start=start,
            end=end,
            basis=basis,
            income=income,
            expenses=expenses,
            total_income=total_income,
            total_expenses=total_expenses,
            net_income=total_income - total_expenses,
        )

    def get_cash_flow(self, start: date, end: date) -> CashFlowStatement:
        """Receipts into and payments out of each cash account, by month."""
        flows: dict[str, dict[str, list[Decimal]]] = defaultdict(
            lambda: defaultdict(lambda: [ZERO, ZERO])
        )
        names: dict[str, str] = {}

        for txn in self._transactions(start, end, ReportingBasis.ACCRUAL):
            month = month_key(txn.date)
            for line in txn.entries:
                if line.account_code not in CASH_CODES:
                    continue
                flows[line.account_code][month][0] += line.debit
                flows[line.account_code][month][1] += line.credit
                names[line.account_code] = line.account_name

        accounts = []
        total_receipts = ZERO
        total_payments = ZERO
        for code in sorted(flows):
            months = [
                CashFlowMonth(
                    month=month,
                    receipts=receipts,
                    payments=payments,
                    net=receipts - payments,
                )
                for month, (receipts, payments) in sorted(flows[code].items())
            ]
            receipts = sum((m.receipts for m in months), ZERO)
            payments = sum((m.payments for m in months), ZERO)
            total_receipts += receipts
            total_payments += payments
            accounts.append(CashFlowAccount(
                account_code=code,
                account_name=names[code],
                months=months,
                receipts=receipts,
                payments=payments,
                net=receipts - payments,
            ))

        return CashFlowStatement(
            start=start,
            end=end,
            accounts=accounts,
            total_receipts=total_receipts,
            total_payments=total_payments,
            net_cash_flow=total_receipts - total_payments,
        )
