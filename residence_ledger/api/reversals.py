"""
Reversal API endpoints.

Reversing a transaction twice answers 409 with error_code
ALREADY_REVERSED; reversing a reversal answers 400.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from residence_ledger.exceptions import LedgerError
from residence_ledger.models.base import get_db
from residence_ledger.schemas.ledger import TransactionResponse
from residence_ledger.schemas.reversal import (
    ReverseTenantRequest,
    ReverseTransactionRequest,
)
from residence_ledger.services.reversal_service import ReversalService

router = APIRouter(prefix="/reversals", tags=["Reversals"])


@router.post("", response_model=TransactionResponse, status_code=201)
def reverse_transaction(
    request: ReverseTransactionRequest,
    db: Session = Depends(get_db),
):
    """Post the mirror of a transaction. The original is void from then on."""
    service = ReversalService(db)
    try:
        reversal = service.reverse_transaction(
            request.transaction_id, request.reason, request.effective_date
        )
        db.commit()
        return reversal
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.post("/lease-start", response_model=TransactionResponse, status_code=201)
def reverse_lease_start(
    request: ReverseTenantRequest,
    db: Session = Depends(get_db),
):
    service = ReversalService(db)
    try:
        reversal = service.reverse_lease_start(
            request.tenant_id, request.reason, request.effective_date
        )
        db.commit()
        return reversal
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.post("/tenant", response_model=list[TransactionResponse], status_code=201)
def reverse_tenant_accruals(
    request: ReverseTenantRequest,
    db: Session = Depends(get_db),
):
    """
    Reverse every standing accrual of a tenant, from_period on if
    given. Used for no-shows and forfeited rooms.
    """
    service = ReversalService(db)
    try:
        reversals = service.reverse_tenant_accruals(
            request.tenant_id,
            request.reason,
            request.from_period,
            request.effective_date,
        )
        db.commit()
        return reversals
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
