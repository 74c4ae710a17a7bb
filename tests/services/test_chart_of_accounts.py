"""
Tests for the chart-of-accounts resolver.
"""

import pytest

from residence_ledger.exceptions import (
    AccountNotFound,
    AccountTypeConflict,
    InvalidPaymentMethod,
)
from residence_ledger.models.enums import AccountType
from residence_ledger.models.ledger_account import LedgerAccount
from residence_ledger.services.chart_of_accounts import (
    AccountRef,
    BaseAccount,
    ChartOfAccounts,
)


class TestAccountRef:

    def test_receivable_code_is_base_and_tenant(self):
        assert AccountRef.receivable("T42").code == "1100-T42"

    def test_advance_code_is_base_and_tenant(self):
        assert AccountRef.advance("T42").code == "2200-T42"

    def test_base_account_code(self):
        assert AccountRef(BaseAccount.RENTAL_INCOME).code == "4000"

    def test_sub_ledger_requires_owner(self):
        with pytest.raises(ValueError, match="needs an owner"):
            AccountRef(BaseAccount.TENANT_RECEIVABLE)

    def test_base_account_rejects_owner(self):
        with pytest.raises(ValueError, match="cannot have an owner"):
            AccountRef(BaseAccount.CASH, "T1")

    def test_type_comes_from_base(self):
        assert AccountRef.advance("T1").account_type == AccountType.LIABILITY


class TestResolve:

    def test_ensure_base_accounts_is_repeatable(self, db_session):
        chart = ChartOfAccounts(db_session)
        chart.ensure_base_accounts()
        chart.ensure_base_accounts()
        db_session.commit()

        codes = [a.code for a in chart.list_accounts()]
        assert codes == sorted({"1000", "1001", "1002", "1003", "2020", "4000", "4100"})

    def test_tenant_receivable_created_on_first_use(self, db_session):
        chart = ChartOfAccounts(db_session)
        account = chart.receivable("T1", create=True, owner_name="Tariro Moyo")
        db_session.commit()

        assert account.code == "1100-T1"
        assert account.parent_code == "1100"
        assert account.owner_id == "T1"
        assert account.name == "Accounts Receivable - Tenants - Tariro Moyo"
        assert account.rollup_code == "1100"

    def test_resolve_returns_same_account(self, db_session):
        chart = ChartOfAccounts(db_session)
        first = chart.receivable("T1", create=True)
        second = chart.receivable("T1", create=True)

        assert first.id == second.id

    def test_missing_account_without_create_raises(self, db_session):
        chart = ChartOfAccounts(db_session)

        with pytest.raises(AccountNotFound, match="1100-T9"):
            chart.receivable("T9")

    def test_existing_account_with_wrong_type_raises(self, db_session):
        db_session.add(LedgerAccount(
            code="4000", name="Misconfigured", account_type=AccountType.ASSET,
        ))
        db_session.commit()

        with pytest.raises(AccountTypeConflict):
            ChartOfAccounts(db_session).resolve(AccountRef(BaseAccount.RENTAL_INCOME))

    def test_list_sub_ledgers_of_a_base(self, db_session):
        chart = ChartOfAccounts(db_session)
        chart.ensure_base_accounts()
        chart.receivable("T1", create=True)
        chart.receivable("T2", create=True)

        owners = [a.owner_id for a in chart.list_accounts(parent_code="1100")]
        assert owners == ["T1", "T2"]


class TestPaymentMethods:

    @pytest.mark.parametrize("method, code", [
        ("cash", "1000"),
        ("bank", "1001"),
        ("Bank Transfer", "1001"),
        ("ecocash", "1002"),
        ("innbucks", "1003"),
    ])
    def test_method_maps_to_asset_account(self, db_session, method, code):
        assert ChartOfAccounts(db_session).account_for_method(method).code == code

    def test_unknown_method_rejected(self, db_session):
        with pytest.raises(InvalidPaymentMethod, match="cheque"):
            ChartOfAccounts(db_session).account_for_method("cheque")
