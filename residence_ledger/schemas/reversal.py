"""
Pydantic schemas for reversals.
"""

from datetime import date

from pydantic import BaseModel, Field


class ReverseTransactionRequest(BaseModel):
    transaction_id: int
    reason: str = Field(min_length=1, max_length=255)
    effective_date: date | None = None


class ReverseTenantRequest(BaseModel):
    tenant_id: str = Field(min_length=1, max_length=64)
    reason: str = Field(min_length=1, max_length=255)
    from_period: str | None = Field(default=None, pattern=r"^\d{4}-\d{2}$")
    effective_date: date | None = None
