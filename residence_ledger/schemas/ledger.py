"""
Pydantic schemas for ledger operations.

These define the contract for posting and reading transactions.
They are separate from the database models because the API
shape and the storage shape differ (lines reference accounts by
code on the way in, and carry the copied name and type on the
way out).
"""

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from residence_ledger.models.enums import (
    AccountType,
    AllocationType,
    ChargeComponent,
    TransactionSource,
    TransactionStatus,
)


# --- Request Schemas ---

class EntryLineCreate(BaseModel):
    """One leg of a transaction. Exactly one of debit/credit is non-zero."""
    account_code: str = Field(min_length=1, max_length=64)
    debit: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    credit: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    description: str = Field(min_length=1, max_length=255)
    component: ChargeComponent | None = None


class PostTransactionRequest(BaseModel):
    """
    A complete transaction: a header plus lines that must balance.

    Used internally by every poster. The allocation context fields
    are optional and only meaningful for tenant postings.
    """
    date: date
    description: str = Field(min_length=1, max_length=255)
    source: TransactionSource
    entries: list[EntryLineCreate] = Field(min_length=2)
    reference: str | None = Field(default=None, max_length=100)
    source_id: str | None = Field(default=None, max_length=64)
    idempotency_key: str | None = Field(default=None, max_length=150)
    student_id: str | None = Field(default=None, max_length=64)
    period: str | None = Field(default=None, pattern=r"^\d{4}-\d{2}$")
    month_settled: str | None = Field(default=None, pattern=r"^\d{4}-\d{2}$")
    payment_type: ChargeComponent | None = None
    allocation_type: AllocationType | None = None
    original_transaction_id: int | None = None
    metadata: dict = Field(default_factory=dict)


class ManualTransactionCreate(BaseModel):
    """A journal posted by a collaborator (adjustments, expense payments)."""
    date: date
    description: str = Field(min_length=1, max_length=255)
    entries: list[EntryLineCreate] = Field(min_length=2)
    source: TransactionSource = TransactionSource.MANUAL
    reference: str | None = Field(default=None, max_length=100)
    idempotency_key: str | None = Field(default=None, max_length=150)
    student_id: str | None = Field(default=None, max_length=64)
    metadata: dict = Field(default_factory=dict)

    @field_validator("source")
    @classmethod
    def source_must_be_manual(cls, v: TransactionSource) -> TransactionSource:
        if v not in (TransactionSource.MANUAL, TransactionSource.EXPENSE_PAYMENT):
            raise ValueError(
                "only manual and expense_payment transactions can be posted directly"
            )
        return v


# --- Response Schemas ---

class EntryLineResponse(BaseModel):
    id: int
    account_code: str
    account_name: str
    account_type: AccountType
    debit: Decimal
    credit: Decimal
    description: str
    component: ChargeComponent | None

    model_config = {"from_attributes": True}


class TransactionResponse(BaseModel):
    id: int
    external_id: uuid.UUID
    date: date
    description: str
    reference: str | None
    source: TransactionSource
    source_id: str | None
    status: TransactionStatus
    effective_status: TransactionStatus
    is_reversed: bool
    total_debit: Decimal
    total_credit: Decimal
    student_id: str | None
    period: str | None
    month_settled: str | None
    payment_type: ChargeComponent | None
    allocation_type: AllocationType | None
    original_transaction_id: int | None
    meta: dict = Field(serialization_alias="metadata")
    entries: list[EntryLineResponse]
    created_at: datetime

    model_config = {"from_attributes": True}


class LedgerAccountResponse(BaseModel):
    id: int
    code: str
    name: str
    account_type: AccountType
    parent_code: str | None
    owner_id: str | None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class IntegrityReport(BaseModel):
    """Result of replaying the whole log and checking every posting balances."""
    is_balanced: bool
    total_debits: Decimal
    total_credits: Decimal
    difference: Decimal
    transaction_count: int
    unbalanced_transaction_ids: list[int]
