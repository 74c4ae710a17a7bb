"""
Pydantic schemas for payment allocation.
"""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field

from residence_ledger.models.enums import AllocationType, ChargeComponent
from residence_ledger.schemas.ledger import TransactionResponse


class PaymentRequest(BaseModel):
    tenant_id: str = Field(min_length=1, max_length=64)
    # Non-positive amounts are rejected by the allocator with a typed error
    amount: Decimal = Field(decimal_places=2)
    date: date
    method: str = Field(default="cash", min_length=1, max_length=30)
    reference: str | None = Field(default=None, max_length=100)


class AllocationSlice(BaseModel):
    """One part of a payment, settling one component of one month."""
    month_settled: str | None
    # None for money held as a credit balance
    component: ChargeComponent | None
    amount: Decimal
    allocation_type: AllocationType
    outstanding_before: Decimal = Decimal("0")


class AllocationPlan(BaseModel):
    tenant_id: str
    amount: Decimal
    method: str
    slices: list[AllocationSlice]

    @property
    def allocated(self) -> Decimal:
        return sum((s.amount for s in self.slices), Decimal("0"))


class AllocationResult(BaseModel):
    tenant_id: str
    amount: Decimal
    reference: str
    slices: list[AllocationSlice]
    transactions: list[TransactionResponse]
