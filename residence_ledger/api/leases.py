"""
Lease API endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from residence_ledger.exceptions import LedgerError
from residence_ledger.models.base import get_db
from residence_ledger.schemas.lease import LeaseCreate, LeaseResponse
from residence_ledger.services.lease_service import LeaseService

router = APIRouter(prefix="/leases", tags=["Leases"])


@router.post("", response_model=LeaseResponse, status_code=201)
def register_lease(
    request: LeaseCreate,
    db: Session = Depends(get_db),
):
    """Record a tenant's lease terms. Overlapping leases are rejected."""
    service = LeaseService(db)
    try:
        lease = service.register_lease(request)
        db.commit()
        return lease
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.get("/{tenant_id}", response_model=list[LeaseResponse])
def get_leases(
    tenant_id: str,
    db: Session = Depends(get_db),
):
    return LeaseService(db).get_leases(tenant_id)
