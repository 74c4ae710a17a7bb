"""
Accrual API endpoints.

Posting the same month twice answers 409 with error_code
ALREADY_ACCRUED, which callers may treat as success.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from residence_ledger.exceptions import LedgerError
from residence_ledger.models.base import get_db
from residence_ledger.schemas.accrual import (
    AccrualRequest,
    AccrualRunRequest,
    AccrualRunSummary,
)
from residence_ledger.schemas.ledger import TransactionResponse
from residence_ledger.services.accrual_service import AccrualService
from residence_ledger.services.chart_of_accounts import ChartOfAccounts

router = APIRouter(prefix="/accruals", tags=["Accruals"])


@router.post("", response_model=TransactionResponse, status_code=201)
def post_accrual(
    request: AccrualRequest,
    db: Session = Depends(get_db),
):
    """Accrue one tenant's rent (and lease-start charges) for one month."""
    ChartOfAccounts(db).ensure_base_accounts()
    service = AccrualService(db)
    try:
        txn = service.post_accrual(request.tenant_id, request.period)
        db.commit()
        return txn
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.post("/run", response_model=AccrualRunSummary)
def run_monthly_accruals(
    request: AccrualRunRequest,
    db: Session = Depends(get_db),
):
    """
    Month-end billing run over every active lease.

    Individual tenant failures are reported in the summary and do
    not fail the run.
    """
    ChartOfAccounts(db).ensure_base_accounts()
    service = AccrualService(db)
    try:
        summary = service.post_monthly_accruals(request.period)
        db.commit()
        return summary
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
