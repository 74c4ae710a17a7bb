"""
Chart-of-accounts resolver.

Maps what a posting means (this tenant's receivable, rental
income, the bank account a payment landed in) to the account
codes written on entry lines. Nothing else in the system builds
account codes by hand.

Tenant sub-ledgers are synthesized as "{base}-{tenant}" and
remember their base in parent_code, so each tenant's balance is
isolated while reports can still fold them under the base code.
"""

import enum
import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from residence_ledger.exceptions import (
    AccountNotFound,
    AccountTypeConflict,
    InvalidPaymentMethod,
)
from residence_ledger.models.enums import AccountType, ChargeComponent
from residence_ledger.models.ledger_account import LedgerAccount

logger = logging.getLogger(__name__)


class BaseAccount(str, enum.Enum):
    CASH = "1000"
    BANK = "1001"
    ECOCASH = "1002"
    INNBUCKS = "1003"
    TENANT_RECEIVABLE = "1100"
    TENANT_DEPOSITS = "2020"
    ADVANCE_PAYMENTS = "2200"
    RENTAL_INCOME = "4000"
    ADMIN_INCOME = "4100"


BASE_CHART: dict[BaseAccount, tuple[str, AccountType]] = {
    BaseAccount.CASH: ("Cash", AccountType.ASSET),
    BaseAccount.BANK: ("Bank Account", AccountType.ASSET),
    BaseAccount.ECOCASH: ("Ecocash Wallet", AccountType.ASSET),
    BaseAccount.INNBUCKS: ("Innbucks Wallet", AccountType.ASSET),
    BaseAccount.TENANT_RECEIVABLE: (
        "Accounts Receivable - Tenants", AccountType.ASSET,
    ),
    BaseAccount.TENANT_DEPOSITS: (
        "Tenant Security Deposits", AccountType.LIABILITY,
    ),
    BaseAccount.ADVANCE_PAYMENTS: (
        "Advance Payment Liability", AccountType.LIABILITY,
    ),
    BaseAccount.RENTAL_INCOME: (
        "Rental Income - Residential", AccountType.INCOME,
    ),
    BaseAccount.ADMIN_INCOME: ("Administrative Income", AccountType.INCOME),
}

# Bases that only exist per tenant
SUB_LEDGER_BASES = frozenset({
    BaseAccount.TENANT_RECEIVABLE,
    BaseAccount.ADVANCE_PAYMENTS,
})

CASH_ACCOUNTS = frozenset({
    BaseAccount.CASH,
    BaseAccount.BANK,
    BaseAccount.ECOCASH,
    BaseAccount.INNBUCKS,
})

# Where the credit side of an accrued charge lands
COMPONENT_ACCOUNTS: dict[ChargeComponent, BaseAccount] = {
    ChargeComponent.RENT: BaseAccount.RENTAL_INCOME,
    ChargeComponent.ADMIN_FEE: BaseAccount.ADMIN_INCOME,
    ChargeComponent.DEPOSIT: BaseAccount.TENANT_DEPOSITS,
}

CASH_CODES = frozenset(base.value for base in CASH_ACCOUNTS)

PAYMENT_METHOD_ACCOUNTS: dict[str, BaseAccount] = {
    "cash": BaseAccount.CASH,
    "bank": BaseAccount.BANK,
    "bank_transfer": BaseAccount.BANK,
    "transfer": BaseAccount.BANK,
    "ecocash": BaseAccount.ECOCASH,
    "innbucks": BaseAccount.INNBUCKS,
}


@dataclass(frozen=True)
class AccountRef:
    """
    A typed pointer to an account: a base account, optionally
    owned by a tenant.

    >>> AccountRef.receivable("T42").code
    '1100-T42'
    """

    base: BaseAccount
    owner_id: str | None = None

    def __post_init__(self):
        if self.base in SUB_LEDGER_BASES and not self.owner_id:
            raise ValueError(f"Account {self.base.value} needs an owner")
        if self.base not in SUB_LEDGER_BASES and self.owner_id:
            raise ValueError(f"Account {self.base.value} cannot have an owner")

    @classmethod
    def receivable(cls, tenant_id: str) -> "AccountRef":
        return cls(BaseAccount.TENANT_RECEIVABLE, str(tenant_id))

    @classmethod
    def advance(cls, tenant_id: str) -> "AccountRef":
        return cls(BaseAccount.ADVANCE_PAYMENTS, str(tenant_id))

    @property
    def code(self) -> str:
        if self.owner_id:
            return f"{self.base.value}-{self.owner_id}"
        return self.base.value

    @property
    def account_type(self) -> AccountType:
        return BASE_CHART[self.base][1]

    def default_name(self, owner_name: str | None = None) -> str:
        name = BASE_CHART[self.base][0]
        if self.owner_id:
            return f"{name} - {owner_name or self.owner_id}"
        return name


class ChartOfAccounts:
    """
    Resolves AccountRefs to LedgerAccount rows, creating them on
    first use. The caller controls the commit.
    """

    def __init__(self, db: Session):
        self.db = db

    def ensure_base_accounts(self) -> list[LedgerAccount]:
        """Create any missing base account. Safe to call repeatedly."""
        return [
            self.resolve(AccountRef(base))
            for base in BaseAccount
            if base not in SUB_LEDGER_BASES
        ]

    def find(self, ref: AccountRef) -> LedgerAccount | None:
        account = self.db.execute(
            select(LedgerAccount).where(LedgerAccount.code == ref.code)
        ).scalar_one_or_none()
        if account is not None and account.account_type != ref.account_type:
            raise AccountTypeConflict(
                f"Account {ref.code} is {account.account_type.value}, "
                f"expected {ref.account_type.value}",
                details={"account_code": ref.code},
            )
        return account

    def resolve(
        self,
        ref: AccountRef,
        owner_name: str | None = None,
        create: bool = True,
    ) -> LedgerAccount:
        """
        Return the account for ref.

        With create=False a missing account raises AccountNotFound
        instead of being created.
        """
        account = self.find(ref)
        if account is not None:
            return account
        if not create:
            raise AccountNotFound(
                f"Account {ref.code} not found",
                details={"account_code": ref.code},
            )

        account = LedgerAccount(
            code=ref.code,
            name=ref.default_name(owner_name),
            account_type=ref.account_type,
            parent_code=ref.base.value if ref.owner_id else None,
            owner_id=ref.owner_id,
        )
        self.db.add(account)
        self.db.flush()
        logger.info("Created ledger account %s (%s)", account.code, account.name)
        return account

    def get(self, code: str) -> LedgerAccount:
        account = self.db.execute(
            select(LedgerAccount).where(LedgerAccount.code == code)
        ).scalar_one_or_none()
        if not account:
            raise AccountNotFound(
                f"Account {code} not found",
                details={"account_code": code},
            )
        return account

    def receivable(self, tenant_id: str, create: bool = False,
                   owner_name: str | None = None) -> LedgerAccount:
        return self.resolve(
            AccountRef.receivable(tenant_id), owner_name=owner_name, create=create
        )

    def account_for_method(self, method: str) -> AccountRef:
        """Map a payment method to the asset account the money lands in."""
        key = method.strip().lower().replace(" ", "_")
        base = PAYMENT_METHOD_ACCOUNTS.get(key)
        if base is None:
            raise InvalidPaymentMethod(
                f"Unknown payment method '{method}'",
                details={
                    "method": method,
                    "supported": sorted(PAYMENT_METHOD_ACCOUNTS),
                },
            )
        return AccountRef(base)

    def list_accounts(self, parent_code: str | None = None) -> list[LedgerAccount]:
        query = select(LedgerAccount).order_by(LedgerAccount.code)
        if parent_code is not None:
            query = query.where(LedgerAccount.parent_code == parent_code)
        return list(self.db.execute(query).scalars().all())
