"""
Audit log model.

Records significant ledger events (reversals, billing runs,
allocation batches) alongside the postings themselves.
"""

from datetime import datetime

from sqlalchemy import String, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from residence_ledger.models.base import Base


class AuditLog(Base):
    """
    Immutable record of a system event.

    Like transactions, audit records are append-only.
    """

    __tablename__ = "audit_log"

    id: Mapped[int] = mapped_column(primary_key=True)
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    subject_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True, index=True
    )
    details: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
