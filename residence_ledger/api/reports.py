"""
Reporting endpoints.

Statements are recomputed from the transaction log on every
request; there are no stored balances to go stale.
"""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from residence_ledger.models.base import get_db
from residence_ledger.models.enums import ReportingBasis
from residence_ledger.schemas.reports import (
    AgingReport,
    BalanceSheet,
    CashFlowStatement,
    IncomeStatement,
    TrialBalance,
)
from residence_ledger.services.reporting_service import ReportingService

router = APIRouter(prefix="/reports", tags=["Reports"])


def _check_range(start: date, end: date) -> None:
    if end < start:
        raise HTTPException(
            status_code=422,
            detail={
                "error": "end must not be before start",
                "error_code": "INVALID_DATE_RANGE",
            },
        )


@router.get("/trial-balance", response_model=TrialBalance)
def trial_balance(
    as_of: date | None = None,
    basis: ReportingBasis = ReportingBasis.ACCRUAL,
    rollup: bool = False,
    db: Session = Depends(get_db),
):
    """
    Debit and credit totals per account as of a date.

    rollup=true folds tenant sub-ledgers into their base account.
    """
    return ReportingService(db).build_trial_balance(
        as_of or date.today(), basis, rollup
    )


@router.get("/income-statement", response_model=IncomeStatement)
def income_statement(
    start: date,
    end: date,
    basis: ReportingBasis = ReportingBasis.ACCRUAL,
    db: Session = Depends(get_db),
):
    _check_range(start, end)
    return ReportingService(db).get_income_statement(start, end, basis)


@router.get("/aging", response_model=AgingReport)
def aging(
    as_of: date | None = None,
    tenant_id: str | None = None,
    db: Session = Depends(get_db),
):
    """Outstanding balances bucketed by days past due."""
    return ReportingService(db).get_aging(as_of or date.today(), tenant_id)


@router.get("/cash-flow", response_model=CashFlowStatement)
def cash_flow(
    start: date,
    end: date,
    db: Session = Depends(get_db),
):
    _check_range(start, end)
    return ReportingService(db).get_cash_flow(start, end)


@router.get("/balance-sheet", response_model=BalanceSheet)
def balance_sheet(
    as_of: date | None = None,
    rollup: bool = True,
    db: Session = Depends(get_db),
):
    """
    Assets against liabilities and equity as of a date, with
    income and expenses closed into retained earnings.
    """
    return ReportingService(db).get_balance_sheet(as_of or date.today(), rollup)
