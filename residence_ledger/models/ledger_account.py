"""
Ledger account model (chart of accounts).

Every account in the system (cash, income categories, the
per-tenant receivables) is a ledger account. Entry lines are
posted against these accounts by code.
"""

from datetime import datetime

from sqlalchemy import String, Boolean, DateTime, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from residence_ledger.models.base import Base
from residence_ledger.models.enums import AccountType


class LedgerAccount(Base):
    """
    A single account in the chart of accounts.

    Tenant sub-ledgers carry the base account they roll up to in
    parent_code and the tenant in owner_id. An account keeps its
    type for its whole lifetime and is never deleted, only
    deactivated.
    """

    __tablename__ = "ledger_accounts"

    id: Mapped[int] = mapped_column(primary_key=True)
    code: Mapped[str] = mapped_column(
        String(64), unique=True, nullable=False
    )
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    account_type: Mapped[AccountType] = mapped_column(
        SAEnum(AccountType, name="account_type_enum"),
        nullable=False,
    )
    parent_code: Mapped[str | None] = mapped_column(
        String(64), nullable=True, index=True
    )
    owner_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True, index=True
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    entries: Mapped[list["LedgerEntryLine"]] = relationship(
        back_populates="account"
    )

    @property
    def rollup_code(self) -> str:
        """The code this account reports under."""
        return self.parent_code or self.code

    def __repr__(self) -> str:
        return f"<LedgerAccount {self.code} ({self.account_type.value})>"
