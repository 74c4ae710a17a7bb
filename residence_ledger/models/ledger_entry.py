"""
Ledger entry line model.

One leg of a transaction. Lines are immutable: once their
transaction is posted they are never modified or deleted.
"""

from decimal import Decimal

from sqlalchemy import (
    String, Numeric, ForeignKey,
    Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from residence_ledger.models.base import Base
from residence_ledger.models.enums import AccountType, ChargeComponent


class LedgerEntryLine(Base):
    """
    A debit or a credit against one account.

    Exactly one of debit and credit is non-zero. The account
    name and type are copied onto the line at posting time so the
    line reads on its own in reports.

    component is set on receivable and advance lines and names
    the charge (rent, admin fee, deposit) the amount belongs to.
    """

    __tablename__ = "ledger_entry_lines"

    id: Mapped[int] = mapped_column(primary_key=True)
    transaction_id: Mapped[int] = mapped_column(
        ForeignKey("ledger_transactions.id"), nullable=False, index=True
    )
    account_code: Mapped[str] = mapped_column(
        ForeignKey("ledger_accounts.code"), nullable=False, index=True
    )
    account_name: Mapped[str] = mapped_column(String(150), nullable=False)
    account_type: Mapped[AccountType] = mapped_column(
        SAEnum(AccountType, name="account_type_enum"),
        nullable=False,
    )
    debit: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0")
    )
    credit: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0")
    )
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    component: Mapped[ChargeComponent | None] = mapped_column(
        SAEnum(ChargeComponent, name="charge_component_enum"),
        nullable=True,
    )

    transaction: Mapped["Transaction"] = relationship(back_populates="entries")
    account: Mapped["LedgerAccount"] = relationship(back_populates="entries")

    @property
    def amount(self) -> Decimal:
        return self.debit if self.debit else self.credit

    def __repr__(self) -> str:
        side = "DR" if self.debit else "CR"
        return f"<LedgerEntryLine {self.account_code} {side} {self.amount}>"
