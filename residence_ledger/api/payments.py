"""
Payment API endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from residence_ledger.exceptions import LedgerError
from residence_ledger.models.base import get_db
from residence_ledger.schemas.payment import (
    AllocationPlan,
    AllocationResult,
    PaymentRequest,
)
from residence_ledger.services.allocation_service import AllocationService
from residence_ledger.services.chart_of_accounts import ChartOfAccounts

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post("", response_model=AllocationResult, status_code=201)
def record_payment(
    request: PaymentRequest,
    db: Session = Depends(get_db),
):
    """
    Record a tenant payment.

    The payment is split oldest month first and one transaction is
    posted per slice. Either every slice is committed or none is.
    """
    ChartOfAccounts(db).ensure_base_accounts()
    service = AllocationService(db)
    try:
        result = service.record_payment(request)
        db.commit()
        return result
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.post("/preview", response_model=AllocationPlan)
def preview_payment(
    request: PaymentRequest,
    db: Session = Depends(get_db),
):
    """Show how a payment would be allocated without posting it."""
    service = AllocationService(db)
    try:
        return service.preview_allocation(
            request.tenant_id, request.amount, request.date, request.method
        )
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
