"""
Transaction model.

A transaction is one balanced posting: a header carrying the
business context (who, which month, why) and the entry lines
that move amounts between accounts. Transactions are appended
and never edited. Undoing one means posting its reversal.

The allocation context that the deriver filters on (tenant,
period, month settled, payment type) lives in real columns so
it can be indexed; free-form context goes into metadata.
"""

import datetime
import uuid
from decimal import Decimal

from sqlalchemy import (
    String, Date, DateTime, Numeric, ForeignKey, JSON, Index,
    Enum as SAEnum, Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from residence_ledger.models.base import Base
from residence_ledger.models.enums import (
    AllocationType,
    ChargeComponent,
    TransactionSource,
    TransactionStatus,
)


class Transaction(Base):
    __tablename__ = "ledger_transactions"
    __table_args__ = (
        Index("ix_ledger_transactions_student_period", "student_id", "period"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    external_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, unique=True, nullable=False, default=uuid.uuid4
    )
    idempotency_key: Mapped[str | None] = mapped_column(
        String(150), unique=True, nullable=True
    )
    date: Mapped[datetime.date] = mapped_column(Date, nullable=False, index=True)
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    source: Mapped[TransactionSource] = mapped_column(
        SAEnum(
            TransactionSource,
            name="transaction_source_enum",
            create_constraint=True,
        ),
        nullable=False,
    )
    source_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    status: Mapped[TransactionStatus] = mapped_column(
        SAEnum(
            TransactionStatus,
            name="transaction_status_enum",
            create_constraint=True,
        ),
        nullable=False,
        default=TransactionStatus.POSTED,
    )
    total_debit: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False
    )
    total_credit: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False
    )

    # Allocation context
    student_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    period: Mapped[str | None] = mapped_column(String(7), nullable=True)
    month_settled: Mapped[str | None] = mapped_column(
        String(7), nullable=True
    )
    payment_type: Mapped[ChargeComponent | None] = mapped_column(
        SAEnum(ChargeComponent, name="charge_component_enum"),
        nullable=True,
    )
    allocation_type: Mapped[AllocationType | None] = mapped_column(
        SAEnum(AllocationType, name="allocation_type_enum"),
        nullable=True,
    )
    # Unique: a transaction can be reversed at most once
    original_transaction_id: Mapped[int | None] = mapped_column(
        ForeignKey("ledger_transactions.id"), unique=True, nullable=True
    )
    meta: Mapped[dict] = mapped_column(
        "metadata", JSON, nullable=False, default=dict
    )
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.datetime.utcnow
    )

    # Relationships
    entries: Mapped[list["LedgerEntryLine"]] = relationship(
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="LedgerEntryLine.id",
    )
    original_transaction: Mapped["Transaction | None"] = relationship(
        remote_side=[id], back_populates="reversal"
    )
    reversal: Mapped["Transaction | None"] = relationship(
        back_populates="original_transaction"
    )

    @property
    def is_reversed(self) -> bool:
        return self.reversal is not None

    @property
    def effective_status(self) -> TransactionStatus:
        """
        VOID once a reversal exists. The stored status is never
        rewritten; voiding is a property of the log, not the row.
        """
        if self.is_reversed:
            return TransactionStatus.VOID
        return self.status

    def __repr__(self) -> str:
        return (
            f"<Transaction {self.id} {self.source.value} "
            f"{self.total_debit} ({self.date})>"
        )
