"""
Lease model.

The billing terms the accrual poster works from. Leases are
owned by the application/room management side of the system;
the ledger only keeps the figures it needs to bill.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import String, Date, DateTime, Numeric
from sqlalchemy.orm import Mapped, mapped_column

from residence_ledger.models.base import Base


class Lease(Base):
    __tablename__ = "leases"

    id: Mapped[int] = mapped_column(primary_key=True)
    tenant_id: Mapped[str] = mapped_column(
        String(64), nullable=False, index=True
    )
    tenant_name: Mapped[str | None] = mapped_column(
        String(150), nullable=True
    )
    residence_id: Mapped[str] = mapped_column(String(64), nullable=False)
    room: Mapped[str | None] = mapped_column(String(50), nullable=True)
    room_rate: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False
    )
    admin_fee: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0")
    )
    deposit_amount: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0")
    )
    lease_start: Mapped[date] = mapped_column(Date, nullable=False)
    lease_end: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    def covers(self, day: date) -> bool:
        return self.lease_start <= day <= self.lease_end

    def __repr__(self) -> str:
        return (
            f"<Lease {self.tenant_id} {self.lease_start}..{self.lease_end} "
            f"@ {self.room_rate}>"
        )
