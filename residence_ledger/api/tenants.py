"""
Tenant balance endpoints.

Everything here is derived from the ledger on request.
"""

from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from residence_ledger.models.base import get_db
from residence_ledger.schemas.reports import MonthlyObligation, TenantBalance
from residence_ledger.services.reporting_service import ReportingService

router = APIRouter(prefix="/tenants", tags=["Tenants"])


@router.get("/{tenant_id}/obligations", response_model=list[MonthlyObligation])
def get_obligations(
    tenant_id: str,
    as_of: date | None = None,
    db: Session = Depends(get_db),
):
    """Owed, paid and outstanding per month, as of a date (default today)."""
    return ReportingService(db).get_obligations(tenant_id, as_of or date.today())


@router.get("/{tenant_id}/balance", response_model=TenantBalance)
def get_tenant_balance(
    tenant_id: str,
    as_of: date | None = None,
    db: Session = Depends(get_db),
):
    return ReportingService(db).get_tenant_balance(tenant_id, as_of or date.today())
