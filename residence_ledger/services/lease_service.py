"""
Lease service: the billing terms the accrual poster reads.
"""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from residence_ledger.exceptions import InvalidLease
from residence_ledger.models.lease import Lease
from residence_ledger.periods import month_bounds
from residence_ledger.schemas.lease import LeaseCreate

logger = logging.getLogger(__name__)


class LeaseService:

    def __init__(self, db: Session):
        self.db = db

    def register_lease(self, request: LeaseCreate) -> Lease:
        """
        Record a tenant's lease terms.

        A tenant may hold several leases over time (re-applications)
        but two leases of the same tenant must not overlap, otherwise
        a month could be billed twice.
        """
        overlapping = self.db.execute(
            select(Lease).where(
                Lease.tenant_id == request.tenant_id,
                Lease.lease_start <= request.lease_end,
                Lease.lease_end >= request.lease_start,
            )
        ).scalars().first()
        if overlapping:
            raise InvalidLease(
                f"Tenant {request.tenant_id} already has a lease from "
                f"{overlapping.lease_start} to {overlapping.lease_end}",
                details={"tenant_id": request.tenant_id, "lease_id": overlapping.id},
            )

        lease = Lease(**request.model_dump())
        self.db.add(lease)
        self.db.flush()
        logger.info(
            "Registered lease %s for tenant %s (%s to %s at %s)",
            lease.id, lease.tenant_id, lease.lease_start,
            lease.lease_end, lease.room_rate,
        )
        return lease

    def get_leases(self, tenant_id: str) -> list[Lease]:
        """All leases of a tenant, earliest first."""
        return list(self.db.execute(
            select(Lease)
            .where(Lease.tenant_id == tenant_id)
            .order_by(Lease.lease_start)
        ).scalars().all())

    def get_lease_for_period(self, tenant_id: str, period: str) -> Lease:
        """
        The tenant's lease that covers at least one day of the period.

        Raises InvalidLease if the tenant has no lease or the period
        falls entirely outside every lease.
        """
        leases = self.get_leases(tenant_id)
        if not leases:
            raise InvalidLease(
                f"No lease found for tenant {tenant_id}",
                details={"tenant_id": tenant_id},
            )

        first_day, last_day = month_bounds(period)
        for lease in leases:
            if lease.lease_start <= last_day and lease.lease_end >= first_day:
                return lease

        raise InvalidLease(
            f"Period {period} is outside the lease term of tenant {tenant_id}",
            details={"tenant_id": tenant_id, "period": period},
        )

    def get_active_leases(self, period: str) -> list[Lease]:
        """Every lease covering at least one day of the period."""
        first_day, last_day = month_bounds(period)
        return list(self.db.execute(
            select(Lease)
            .where(Lease.lease_start <= last_day, Lease.lease_end >= first_day)
            .order_by(Lease.tenant_id, Lease.lease_start)
        ).scalars().all())
