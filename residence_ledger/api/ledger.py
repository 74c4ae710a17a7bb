"""
Ledger API endpoints.

These endpoints expose the entry store to HTTP clients. The API
layer is thin: it handles HTTP concerns (status codes, response
formatting) and delegates all business logic to the services.
Only manual and expense-payment journals can be posted here;
accruals, payments and reversals have their own endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from residence_ledger.exceptions import LedgerError
from residence_ledger.models.base import get_db
from residence_ledger.schemas.ledger import (
    EntryLineResponse,
    IntegrityReport,
    LedgerAccountResponse,
    ManualTransactionCreate,
    TransactionResponse,
)
from residence_ledger.services.chart_of_accounts import ChartOfAccounts
from residence_ledger.services.ledger_service import LedgerService

router = APIRouter(prefix="/ledger", tags=["Ledger"])


@router.post("/transactions", response_model=TransactionResponse, status_code=201)
def post_transaction(
    request: ManualTransactionCreate,
    db: Session = Depends(get_db),
):
    """
    Post a balanced manual journal.

    Lines must balance and every account must exist. If the
    idempotency_key has been used before, the existing
    transaction is returned.
    """
    ChartOfAccounts(db).ensure_base_accounts()
    service = LedgerService(db)
    try:
        txn = service.post_manual(request)
        db.commit()
        return txn
    except LedgerError as e:
        db.rollback()
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.get("/transactions/{transaction_id}", response_model=TransactionResponse)
def get_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
):
    service = LedgerService(db)
    try:
        return service.get_transaction(transaction_id)
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.get("/accounts", response_model=list[LedgerAccountResponse])
def list_accounts(
    parent_code: str | None = None,
    db: Session = Depends(get_db),
):
    """The chart of accounts, optionally only one base's sub-ledgers."""
    return ChartOfAccounts(db).list_accounts(parent_code)


@router.get(
    "/accounts/{account_code}/entries",
    response_model=list[EntryLineResponse],
)
def get_account_entries(
    account_code: str,
    db: Session = Depends(get_db),
):
    """All lines posted to an account, newest first."""
    try:
        ChartOfAccounts(db).get(account_code)
    except LedgerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    return LedgerService(db).get_entries_by_account(account_code)


@router.get("/integrity", response_model=IntegrityReport)
def check_integrity(db: Session = Depends(get_db)):
    """Replay the whole log and report any transaction that does not balance."""
    return LedgerService(db).check_integrity()
