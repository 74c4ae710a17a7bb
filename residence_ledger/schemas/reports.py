"""
Pydantic schemas for derived balances and statements.

Nothing here is stored. Every value is recomputed from the
transaction log when asked for.
"""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field, computed_field

from residence_ledger.models.enums import AccountType, ReportingBasis


ZERO = Decimal("0.00")


class ComponentBalance(BaseModel):
    owed: Decimal = ZERO
    paid: Decimal = ZERO

    @computed_field
    @property
    def outstanding(self) -> Decimal:
        return self.owed - self.paid


class MonthlyObligation(BaseModel):
    """What a tenant owed, paid and still owes for one month."""
    month: str
    due_date: date
    rent: ComponentBalance = Field(default_factory=ComponentBalance)
    admin_fee: ComponentBalance = Field(default_factory=ComponentBalance)
    deposit: ComponentBalance = Field(default_factory=ComponentBalance)
    owed: Decimal = ZERO
    paid: Decimal = ZERO
    outstanding: Decimal = ZERO
    days_overdue: int = 0


class TenantBalance(BaseModel):
    tenant_id: str
    as_of: date
    receivable: Decimal
    advance: Decimal
    net_due: Decimal


class AgingBuckets(BaseModel):
    current: Decimal = ZERO
    days_31_60: Decimal = ZERO
    days_61_90: Decimal = ZERO
    over_90: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.current + self.days_31_60 + self.days_61_90 + self.over_90


class TenantAging(BaseModel):
    tenant_id: str
    buckets: AgingBuckets
    total: Decimal


class AgingReport(BaseModel):
    as_of: date
    tenants: list[TenantAging]
    totals: AgingBuckets
    total: Decimal


class AccountBalance(BaseModel):
    account_code: str
    account_name: str
    account_type: AccountType
    total_debit: Decimal
    total_credit: Decimal
    balance: Decimal


class TrialBalance(BaseModel):
    as_of: date
    basis: ReportingBasis
    accounts: list[AccountBalance]
    total_debit: Decimal
    total_credit: Decimal
    is_balanced: bool


class BalanceSheet(BaseModel):
    """Income and expenses appear only as retained earnings."""
    as_of: date
    assets: list[AccountBalance]
    liabilities: list[AccountBalance]
    equity: list[AccountBalance]
    retained_earnings: Decimal
    total_assets: Decimal
    total_liabilities: Decimal
    total_equity: Decimal
    is_balanced: bool


class IncomeStatement(BaseModel):
    start: date
    end: date
    basis: ReportingBasis
    income: list[AccountBalance]
    expenses: list[AccountBalance]
    total_income: Decimal
    total_expenses: Decimal
    net_income: Decimal


class CashFlowMonth(BaseModel):
    month: str
    receipts: Decimal
    payments: Decimal
    net: Decimal


class CashFlowAccount(BaseModel):
    account_code: str
    account_name: str
    months: list[CashFlowMonth]
    receipts: Decimal
    payments: Decimal
    net: Decimal


class CashFlowStatement(BaseModel):
    start: date
    end: date
    accounts: list[CashFlowAccount]
    total_receipts: Decimal
    total_payments: Decimal
    net_cash_flow: Decimal
